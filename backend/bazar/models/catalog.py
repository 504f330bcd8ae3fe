from __future__ import annotations

from ..extensions import db
from bazar.money_utils import to_number
from bazar.time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog product priced in IQD.

    stock_quantity is a stored counter (not ledger-derived). Every change
    to it goes through services/stock_service.py, which writes the matching
    StockMovement and Activity rows in the same transaction.

    version_id guards read-then-write updates of stock_quantity: two
    concurrent sales of the same product cannot both commit a decrement
    computed from the same starting value.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    name_ar = db.Column(db.String(255), nullable=True)
    name_ku = db.Column(db.String(255), nullable=True)
    sku = db.Column(db.String(64), nullable=False, unique=True)

    # mufrad / jumla prices
    retail_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    wholesale_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} stock={self.stock_quantity}>"

    @property
    def display_name(self) -> str:
        return self.name

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "name_ar": self.name_ar,
            "name_ku": self.name_ku,
            "sku": self.sku,
            "retail_price": to_number(self.retail_price),
            "wholesale_price": to_number(self.wholesale_price),
            "stock_quantity": self.stock_quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Motorcycle(db.Model):
    """
    Motorcycle stock item priced in USD.

    Motorcycles are sold through the same drafts as products but keep no
    StockMovement trail; their stock history lives in Activity rows only.
    """
    __tablename__ = "motorcycles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    brand = db.Column(db.String(128), nullable=False)
    model = db.Column(db.String(128), nullable=False)
    name = db.Column(db.String(255), nullable=True)
    sku = db.Column(db.String(64), nullable=False, unique=True)

    usd_retail_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    usd_wholesale_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    # IN_STOCK, RESERVED, SOLD, OUT_OF_STOCK
    status = db.Column(db.String(16), nullable=False, default="IN_STOCK")
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Motorcycle id={self.id} {self.brand} {self.model} stock={self.stock_quantity}>"

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.model}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "brand": self.brand,
            "model": self.model,
            "name": self.name,
            "sku": self.sku,
            "usd_retail_price": to_number(self.usd_retail_price),
            "usd_wholesale_price": to_number(self.usd_wholesale_price),
            "stock_quantity": self.stock_quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
