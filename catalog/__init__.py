"""catalog/ -- Product aggregate, its store, and the business rules around it.

Layer rule: catalog/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or auth/.
"""
