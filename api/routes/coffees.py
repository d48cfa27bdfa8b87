"""
api/routes/coffees.py -- Catalog routes for the coffee REST API.

Routes:
  GET    /coffees          -- list every coffee
  GET    /coffees/{id}     -- one coffee, 404 if absent
  POST   /coffees          -- create, 409 on a duplicate name
  PUT    /coffees/{id}     -- full replacement (upsert)
  PATCH  /coffees          -- apply a discount by name, 404 if absent
  DELETE /coffees/{id}     -- remove, 404 if absent

Handlers stay thin: ProductService raises NotFoundError / DuplicateNameError
and the exception handler in api/main.py turns them into {code, message}
responses with the right status.

Auth policy: open by default. guard_catalog requires a principal on every
route here when PROTECT_CATALOG=true.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.models import CoffeeIn, CoffeeResponse, DiscountIn
from auth.dependencies import guard_catalog
from catalog.service import ProductService

router = APIRouter(prefix="/coffees", dependencies=[Depends(guard_catalog)])


def _service(request: Request) -> ProductService:
    return request.app.state.product_service


@router.get("", response_model=list[CoffeeResponse])
def list_coffees(request: Request) -> list[CoffeeResponse]:
    return [CoffeeResponse.from_product(p) for p in _service(request).list_all()]


@router.get("/{coffee_id}", response_model=CoffeeResponse)
def get_coffee(request: Request, coffee_id: int) -> CoffeeResponse:
    return CoffeeResponse.from_product(_service(request).find_by_id(coffee_id))


@router.post("", response_model=CoffeeResponse, status_code=201)
def create_coffee(request: Request, body: CoffeeIn) -> CoffeeResponse:
    """Create a coffee. The name must not already be in use."""
    product = _service(request).create(body.name, body.price)
    return CoffeeResponse.from_product(product)


@router.put("/{coffee_id}", response_model=CoffeeResponse)
def update_coffee(request: Request, coffee_id: int, body: CoffeeIn) -> CoffeeResponse:
    """Replace the coffee at coffee_id. A missing id is created with that id."""
    product = _service(request).update_by_id(coffee_id, body.name, body.price)
    return CoffeeResponse.from_product(product)


@router.patch("", response_model=CoffeeResponse)
def discount_coffee(request: Request, body: DiscountIn) -> CoffeeResponse:
    """Subtract body.discount x current price from the coffee called body.name."""
    product = _service(request).apply_discount(body.name, body.discount)
    return CoffeeResponse.from_product(product)


@router.delete("/{coffee_id}", status_code=204)
def delete_coffee(request: Request, coffee_id: int) -> Response:
    _service(request).delete_by_id(coffee_id)
    return Response(status_code=204)
