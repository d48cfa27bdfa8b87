"""
catalog/service.py -- Business rules for the coffee catalog.

ProductService owns the two rules the store cannot express on its own:

  Uniqueness: create() refuses a name that a live product already uses.
      The UNIQUE index in catalog/store.py catches the race where two
      creates pass the check together; both paths raise DuplicateNameError.

  Discount: apply_discount() re-prices by subtracting a fraction of the
      current price. The fraction is not range-checked -- values outside
      [0, 1] are accepted and may raise the price or push it below zero.
      Discounts compound: 10.00 at 0.1 twice gives 9.00 then 8.10.

Absence is never returned as None. Lookups that miss raise NotFoundError.

There is no cache and no locking. apply_discount() is read-then-write, so
two concurrent discounts on the same product race and the last write wins.
"""

import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from catalog.models import Product
from catalog.store import ProductStore
from core.errors import DuplicateNameError, NotFoundError

logger = logging.getLogger("coffeeshop.catalog")


def discounted_price(price: Decimal, fraction: Decimal) -> Decimal:
    return price - price * fraction


class ProductService:
    def __init__(self, store: ProductStore) -> None:
        self._store = store

    def list_all(self) -> list[Product]:
        return self._store.list_products()

    def find_by_id(self, product_id: int) -> Product:
        product = self._store.get_by_id(product_id)
        if product is None:
            raise NotFoundError(f"No coffee with id {product_id}.")
        return product

    def create(self, name: str, price: Decimal) -> Product:
        """Store a new product and return it with its assigned id.

        Raises DuplicateNameError if a product called `name` already exists.
        """
        if self._store.get_by_name(name) is not None:
            raise DuplicateNameError(f"A coffee named {name!r} already exists.")
        try:
            product_id = self._store.create_product(Product(name=name, price=price))
        except IntegrityError as exc:
            raise DuplicateNameError(f"A coffee named {name!r} already exists.") from exc
        logger.info("Created coffee %d (%s)", product_id, name)
        return self.find_by_id(product_id)

    def update_by_id(self, product_id: int, name: str, price: Decimal) -> Product:
        """Overwrite the product at `product_id` with the given fields.

        No existence check: a missing id is inserted with that id. A name that
        belongs to a different product raises DuplicateNameError.
        """
        try:
            self._store.save_product(Product(id=product_id, name=name, price=price))
        except IntegrityError as exc:
            raise DuplicateNameError(f"A coffee named {name!r} already exists.") from exc
        logger.info("Updated coffee %d (%s)", product_id, name)
        return self.find_by_id(product_id)

    def apply_discount(self, name: str, fraction: Decimal) -> Product:
        """Reduce the price of the product called `name` by `fraction` of its current price.

        Raises NotFoundError if no product has that name.
        """
        product = self._store.get_by_name(name)
        if product is None:
            raise NotFoundError(f"No coffee named {name!r}.")
        old_price = product.price
        product.price = discounted_price(old_price, fraction)
        self._store.save_product(product)
        logger.info("Discounted coffee %d (%s): %s -> %s", product.id, name, old_price, product.price)
        return product

    def delete_by_id(self, product_id: int) -> None:
        """Remove the product. Raises NotFoundError if the id does not exist."""
        if not self._store.delete_product(product_id):
            raise NotFoundError(f"No coffee with id {product_id}.")
        logger.info("Deleted coffee %d", product_id)
