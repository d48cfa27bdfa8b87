"""
catalog/store.py -- SQLAlchemy-backed persistence layer for products.

Uses SQLAlchemy Core (not ORM) so the Product dataclass in catalog/models.py
remains the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. ProductStore is the repository;
_row_to_product is the mapper. Services never touch SQL directly.

Prices are stored as decimal text. SQLite has no native decimal type, and a
REAL column would reintroduce the float rounding the Decimal domain type
exists to avoid.

The UNIQUE constraint on name backs up the service-level duplicate check:
two concurrent creates that both pass the check still cannot both commit.

Usage:
    store = ProductStore("sqlite:///coffeeshop.db")
    product_id = store.create_product(Product(name="Latte", price=Decimal("10.00")))
    store.get_by_name("Latte")
    store.close()
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, event
from sqlalchemy.engine import Engine

from catalog.models import Product

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_coffees = Table(
    "coffees",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("price", String(40), nullable=False),  # Decimal serialized as text
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ProductStore:
    """Repository for Product records.

    Every method opens its own connection and commits before returning; no
    method spans more than one statement under a shared transaction except
    save_product's update-or-insert.
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def list_products(self) -> list[Product]:
        """Return every product ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(_coffees.select().order_by(_coffees.c.id)).fetchall()
        return [_row_to_product(r) for r in rows]

    def get_by_id(self, product_id: int) -> Optional[Product]:
        """Look up a product by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_coffees.select().where(_coffees.c.id == product_id)).fetchone()
        return _row_to_product(row) if row is not None else None

    def get_by_name(self, name: str) -> Optional[Product]:
        """Look up a product by exact name (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_coffees.select().where(_coffees.c.name == name)).fetchone()
        return _row_to_product(row) if row is not None else None

    def create_product(self, product: Product) -> int:
        """Insert a new product and return its assigned id.

        Raises sqlalchemy.exc.IntegrityError if the name is already taken.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _coffees.insert().values(
                    name=product.name,
                    price=str(product.price),
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def save_product(self, product: Product) -> None:
        """Write `product` at product.id, inserting the row if no such id exists.

        Raises sqlalchemy.exc.IntegrityError if the new name belongs to a
        different row.
        """
        if product.id is None:
            raise ValueError("save_product requires a product with an id")
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _coffees.update()
                .where(_coffees.c.id == product.id)
                .values(name=product.name, price=str(product.price), updated_at=now)
            )
            if result.rowcount == 0:
                conn.execute(
                    _coffees.insert().values(
                        id=product.id,
                        name=product.name,
                        price=str(product.price),
                        created_at=now,
                        updated_at=now,
                    )
                )
            conn.commit()

    def delete_product(self, product_id: int) -> bool:
        """Delete a product. Returns True if a row was removed, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_coffees.delete().where(_coffees.c.id == product_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_product(row) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        price=Decimal(row.price),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
