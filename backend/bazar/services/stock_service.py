# Overview: Stock ledger for products and motorcycles.

from __future__ import annotations

from typing import Optional

from ..extensions import db
from ..models import Invoice, Motorcycle, Product, Sale, StockMovement
from ..validation import NotFoundError, SaleError, ValidationError
from bazar.money_utils import CURRENCY_IQD, CURRENCY_USD, format_amount, to_number
from .activity_service import (
    ENTITY_MOTORCYCLE,
    ENTITY_PRODUCT,
    describe_activity,
    log_activity,
)
from .concurrency import lock_for_update
from .line_items import KIND_MOTORCYCLE, KIND_PRODUCT

"""
Stock invariants:

- stock_quantity never goes below zero. Every decrement is checked
  against the locked row before it is applied.
- Products: every change writes one StockMovement with the signed delta
  and the resulting balance.
- Motorcycles: no StockMovement; the Activity row is the only trail.
- Editing or cancelling an invoice returns its lines as RETURN movements;
  SALE movements are never deleted.
- Every change writes Activity rows for the touched item in the same
  transaction.
"""

MOVEMENT_SALE = "SALE"
MOVEMENT_PURCHASE = "PURCHASE"
MOVEMENT_ADJUSTMENT = "ADJUSTMENT"
MOVEMENT_RETURN = "RETURN"


class InsufficientStockError(SaleError):
    """Requested quantity exceeds the stock on hand."""
    status_code = 400

    def __init__(self, kind: str, entity_id: int, available: int, requested: int):
        label = "motorcycle" if kind == KIND_MOTORCYCLE else "product"
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}, Requested: {requested}",
            details={
                "kind": kind,
                "entity_id": entity_id,
                "available": available,
                "requested": requested,
            },
        )
        self.kind = kind
        self.entity_id = entity_id
        self.available = available
        self.requested = requested


def _load_locked(kind: str, entity_id: int):
    model = Motorcycle if kind == KIND_MOTORCYCLE else Product
    item = lock_for_update(db.session.query(model).filter(model.id == entity_id)).first()
    if not item:
        raise NotFoundError(
            f"{kind.capitalize()} {entity_id} not found",
            details={"kind": kind, "entity_id": entity_id},
        )
    return item


def reduce_for_sale(line, *, sale: Optional[Sale], invoice: Invoice, user_id: int) -> int:
    """
    Take one sold line out of stock.

    Writes the StockMovement (products only) plus STOCK_REDUCED and
    INVOICED activities. Returns the new stock level.

    Raises InsufficientStockError without touching the row when the line
    asks for more than is on hand; the caller rolls back the whole sale.
    """
    kind = line.kind
    item = _load_locked(kind, line.entity_id)

    old_stock = item.stock_quantity
    if line.quantity > old_stock:
        raise InsufficientStockError(kind, line.entity_id, old_stock, line.quantity)

    new_stock = max(0, old_stock - line.quantity)
    item.stock_quantity = new_stock

    if kind == KIND_PRODUCT:
        db.session.add(StockMovement(
            product_id=item.id,
            type=MOVEMENT_SALE,
            quantity=-line.quantity,
            balance_after=new_stock,
            sale_id=sale.id if sale is not None else None,
            invoice_id=invoice.id,
            reason=f"Sale {invoice.invoice_number}",
            created_by_user_id=user_id,
        ))
        entity_type = ENTITY_PRODUCT
        price_currency = CURRENCY_IQD
    else:
        entity_type = ENTITY_MOTORCYCLE
        price_currency = CURRENCY_USD

    name = item.display_name
    total_price = line.unit_price * line.quantity
    price_label = format_amount(total_price, price_currency)

    log_activity(
        entity_type=entity_type,
        entity_id=item.id,
        activity_type="STOCK_REDUCED",
        user_id=user_id,
        description=(
            f"{describe_activity('STOCK_REDUCED', name)} due to sale "
            f"(Qty: {line.quantity}, Price: {price_label})"
        ),
        changes={"stock_quantity": {"old": old_stock, "new": new_stock}},
        invoice_id=invoice.id,
    )
    log_activity(
        entity_type=entity_type,
        entity_id=item.id,
        activity_type="INVOICED",
        user_id=user_id,
        description=(
            f"{describe_activity('INVOICED', name)} "
            f"(Invoice: {invoice.invoice_number}, Qty: {line.quantity}, Price: {price_label})"
        ),
        changes={
            "invoice_number": invoice.invoice_number,
            "quantity": line.quantity,
            "unit_price": to_number(line.unit_price),
            "total_price": to_number(total_price),
        },
        invoice_id=invoice.id,
    )
    return new_stock


def restore_for_invoice(line, *, invoice: Invoice, user_id: int, reason: str) -> int:
    """
    Put one invoiced line back into stock (invoice edited or cancelled).

    Products get a RETURN movement with the positive delta; both kinds get
    a STOCK_ADDED activity tied to the invoice. Earlier SALE movements are
    left in place. Returns the new stock level.
    """
    kind = line.kind
    item = _load_locked(kind, line.entity_id)

    old_stock = item.stock_quantity
    new_stock = old_stock + line.quantity
    item.stock_quantity = new_stock

    if kind == KIND_PRODUCT:
        db.session.add(StockMovement(
            product_id=item.id,
            type=MOVEMENT_RETURN,
            quantity=line.quantity,
            balance_after=new_stock,
            sale_id=invoice.sale_id,
            invoice_id=invoice.id,
            reason=reason,
            created_by_user_id=user_id,
        ))
        entity_type = ENTITY_PRODUCT
    else:
        entity_type = ENTITY_MOTORCYCLE

    log_activity(
        entity_type=entity_type,
        entity_id=item.id,
        activity_type="STOCK_ADDED",
        user_id=user_id,
        description=(
            f"{describe_activity('STOCK_ADDED', item.display_name)} "
            f"({reason}, Qty: {line.quantity})"
        ),
        changes={"stock_quantity": {"old": old_stock, "new": new_stock}},
        invoice_id=invoice.id,
    )
    return new_stock


def adjust_stock(
    *,
    entity_type: str,
    entity_id: int,
    quantity_delta: int,
    user_id: int,
    reason: Optional[str] = None,
) -> int:
    """
    Manual restock or correction. Positive deltas on products are recorded
    as PURCHASE movements, everything else as ADJUSTMENT.

    Flushes but does not commit; returns the new stock level.
    """
    if entity_type not in (KIND_PRODUCT, KIND_MOTORCYCLE):
        raise ValidationError("entity_type must be PRODUCT or MOTORCYCLE")
    if quantity_delta == 0:
        raise ValidationError("quantity_delta cannot be zero")

    item = _load_locked(entity_type, entity_id)
    old_stock = item.stock_quantity
    new_stock = old_stock + quantity_delta
    if new_stock < 0:
        raise InsufficientStockError(entity_type, entity_id, old_stock, -quantity_delta)

    item.stock_quantity = new_stock

    if entity_type == KIND_PRODUCT:
        db.session.add(StockMovement(
            product_id=item.id,
            type=MOVEMENT_PURCHASE if quantity_delta > 0 else MOVEMENT_ADJUSTMENT,
            quantity=quantity_delta,
            balance_after=new_stock,
            reason=reason,
            created_by_user_id=user_id,
        ))

    activity_type = "STOCK_ADDED" if quantity_delta > 0 else "STOCK_ADJUSTED"
    description = describe_activity(activity_type, item.display_name)
    if reason:
        description = f"{description} ({reason})"

    log_activity(
        entity_type=entity_type,
        entity_id=item.id,
        activity_type=activity_type,
        user_id=user_id,
        description=description,
        changes={"stock_quantity": {"old": old_stock, "new": new_stock}},
    )
    db.session.flush()
    return new_stock


def list_stock_movements(product_id: int, *, limit: int = 100) -> list[StockMovement]:
    if not db.session.get(Product, product_id):
        raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
