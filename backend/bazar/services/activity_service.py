# Overview: Append-only activity trail for products and motorcycles.

from __future__ import annotations

import json
from typing import Any, Iterable, Optional

from ..extensions import db
from ..models import Activity

"""
Activity invariants:

- One row per state change of one product or motorcycle.
- Rows are written in the caller's transaction. When the caller rolls
  back (e.g. insufficient stock while posting a sale), its activity rows
  go with it; an activity never outlives the change it describes.
- No updates or deletes.
"""

ENTITY_PRODUCT = "PRODUCT"
ENTITY_MOTORCYCLE = "MOTORCYCLE"
ENTITY_TYPES = (ENTITY_PRODUCT, ENTITY_MOTORCYCLE)

ACTIVITY_TYPES = (
    "CREATED",
    "UPDATED",
    "STOCK_ADDED",
    "STOCK_REDUCED",
    "STOCK_ADJUSTED",
    "PRICE_CHANGED",
    "IMAGE_CHANGED",
    "CATEGORY_CHANGED",
    "ATTACHMENT_ADDED",
    "ATTACHMENT_REMOVED",
    "INVOICED",
    "DELETED",
)

FIELD_LABELS = {
    "name": "Name",
    "sku": "SKU",
    "retail_price": "Retail Price",
    "wholesale_price": "Wholesale Price",
    "usd_retail_price": "USD Retail Price",
    "usd_wholesale_price": "USD Wholesale Price",
    "stock_quantity": "Stock Quantity",
    "low_stock_threshold": "Low Stock Threshold",
    "brand": "Brand",
    "model": "Model",
    "notes": "Notes",
}


def describe_activity(activity_type: str, entity_name: str, changes: Optional[dict] = None) -> str:
    """Default human-readable description for an activity type."""
    if activity_type == "CREATED":
        return f"{entity_name} was created"
    if activity_type == "UPDATED":
        if not changes:
            return f"{entity_name} was updated"
        labels = ", ".join(FIELD_LABELS.get(key, key) for key in changes)
        return f"{entity_name} was updated: {labels}"
    if activity_type == "STOCK_ADDED":
        return f"Stock added to {entity_name}"
    if activity_type == "STOCK_REDUCED":
        return f"Stock reduced for {entity_name}"
    if activity_type == "STOCK_ADJUSTED":
        return f"Stock manually adjusted for {entity_name}"
    if activity_type == "PRICE_CHANGED":
        return f"Price changed for {entity_name}"
    if activity_type == "IMAGE_CHANGED":
        return f"Image updated for {entity_name}"
    if activity_type == "ATTACHMENT_ADDED":
        return f"Attachment added to {entity_name}"
    if activity_type == "ATTACHMENT_REMOVED":
        return f"Attachment removed from {entity_name}"
    if activity_type == "CATEGORY_CHANGED":
        return f"Category changed for {entity_name}"
    if activity_type == "DELETED":
        return f"{entity_name} was deleted"
    if activity_type == "INVOICED":
        return f"{entity_name} was invoiced"
    return f"{entity_name} was modified"


def diff_changes(old: dict, new: dict, fields: Optional[Iterable[str]] = None) -> Optional[dict]:
    """
    Compare two snapshots and return {field: {"old": .., "new": ..}} for
    the fields that differ, or None when nothing changed.
    """
    changes = {}
    for field in fields if fields is not None else old.keys():
        old_value = old.get(field)
        new_value = new.get(field)
        if json.dumps(old_value, default=str, sort_keys=True) != json.dumps(new_value, default=str, sort_keys=True):
            changes[field] = {"old": old_value, "new": new_value}
    return changes or None


def log_activity(
    *,
    entity_type: str,
    entity_id: int,
    activity_type: str,
    user_id: int,
    description: str,
    changes: Optional[dict[str, Any]] = None,
    invoice_id: Optional[int] = None,
) -> Activity:
    if entity_type not in ENTITY_TYPES:
        raise ValueError(f"Unknown activity entity type: {entity_type}")
    if activity_type not in ACTIVITY_TYPES:
        raise ValueError(f"Unknown activity type: {activity_type}")

    activity = Activity(
        entity_type=entity_type,
        entity_id=entity_id,
        type=activity_type,
        description=description,
        changes=changes,
        invoice_id=invoice_id,
        created_by_user_id=user_id,
    )
    db.session.add(activity)
    db.session.flush()
    return activity


def list_activities(
    *,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    invoice_id: Optional[int] = None,
    limit: int = 100,
) -> list[Activity]:
    query = db.session.query(Activity)
    if entity_type:
        query = query.filter(Activity.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(Activity.entity_id == entity_id)
    if invoice_id is not None:
        query = query.filter(Activity.invoice_id == invoice_id)
    return query.order_by(Activity.created_at.desc(), Activity.id.desc()).limit(limit).all()
