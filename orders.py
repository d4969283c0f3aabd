"""
Order pricing and persistence.

Line items are priced from the catalog and the total is always
``subtotal - discount_amount``; a total declared by the client is only
compared and logged.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from pymongo.database import Database

from database import create_document, to_public
from discounts import apply_code, release_code
from errors import NotFound, ValidationError
from schemas import Order, OrderItem, OrderRequest, is_valid_email

logger = logging.getLogger(__name__)

RECENT_ORDERS_LIMIT = 10


def price_items(db: Database, payload: OrderRequest) -> List[OrderItem]:
    if not payload.items:
        raise ValidationError("Order must contain at least one item")
    items = []
    for line in payload.items:
        if line.quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        product = db["product"].find_one({"_id": line.product_id})
        if not product:
            raise NotFound(f"Product {line.product_id} not found")
        if not product.get("in_stock", True):
            raise ValidationError(f"{product['name']} is out of stock")
        items.append(OrderItem(
            product_id=line.product_id,
            product_name=product["name"],
            quantity=line.quantity,
            price=product["price"],
        ))
    return items


def order_subtotal(items: List[OrderItem]) -> float:
    return round(sum(item.price * item.quantity for item in items), 2)


def build_order(db: Database, user: Dict[str, Any], payload: OrderRequest) -> Order:
    if not payload.customer_name or not payload.customer_email:
        raise ValidationError("Customer name and email are required")
    if not is_valid_email(payload.customer_email):
        raise ValidationError("Invalid customer email")
    items = price_items(db, payload)
    subtotal = order_subtotal(items)
    discount_code = None
    discount_amount = 0.0
    if payload.discount_code:
        result = apply_code(db, payload.discount_code, subtotal)
        discount_code = result.code
        discount_amount = result.discount_amount
    total = round(subtotal - discount_amount, 2)
    if payload.total is not None and round(payload.total, 2) != total:
        logger.warning(
            "Order total mismatch for user %s: client sent %.2f, computed %.2f",
            user["_id"], payload.total, total,
        )
    return Order(
        user_id=str(user["_id"]),
        customer_name=payload.customer_name,
        customer_email=payload.customer_email,
        customer_phone=payload.customer_phone,
        customer_address=payload.customer_address,
        items=items,
        subtotal=subtotal,
        discount_code=discount_code,
        discount_amount=discount_amount,
        total=total,
    )


def place_order(db: Database, user: Dict[str, Any], payload: OrderRequest) -> Dict[str, Any]:
    order = build_order(db, user, payload)
    try:
        order_id = create_document(db, "order", order)
    except Exception:
        if order.discount_code:
            release_code(db, order.discount_code)
        raise
    logger.info("Order %s placed by user %s, total %.2f", order_id, user["_id"], order.total)
    return {"id": order_id, **order.model_dump()}


def recent_orders(db: Database, user: Dict[str, Any], limit: int = RECENT_ORDERS_LIMIT) -> List[Dict[str, Any]]:
    cursor = db["order"].find({"user_id": str(user["_id"])}).sort("created_at", -1).limit(limit)
    return [to_public(doc) for doc in cursor]
