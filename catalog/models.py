"""
catalog/models.py -- Domain dataclass for the coffee catalog.

Pure data container with zero logic. The uniqueness and discount rules live
in catalog/service.py; persistence lives in catalog/store.py.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass
class Product:
    """A named, priced coffee.

    name is unique across live products (case-sensitive).
    price is a Decimal so repeated discounts compound without float drift.

    id is None before the record is written to the database.
    """

    name: str
    price: Decimal
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, set by store on every write
