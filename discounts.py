"""
Discount code evaluation.

``validate_code`` is a read-only check. ``apply_code`` runs the same checks
and then consumes one use of the code.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from pymongo import ReturnDocument
from pymongo.database import Database

from database import as_utc, utcnow
from errors import Expired, LimitExceeded, NotFound, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class DiscountResult:
    code: str
    type: str
    discount: float
    amount: float
    discount_amount: float
    final_amount: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def calculate_discount(code: Dict[str, Any], amount: float) -> float:
    """Discount for ``amount``; a fixed discount never exceeds the amount."""
    if code["type"] == "percentage":
        value = amount * code["discount"] / 100
    else:
        value = min(code["discount"], amount)
    return round(value, 2)


def find_code(db: Database, code: str) -> Dict[str, Any]:
    doc = db["discountcode"].find_one({"code": normalize_code(code), "active": True})
    if not doc:
        raise NotFound("Invalid discount code")
    return doc


def check_usable(doc: Dict[str, Any], now: Optional[datetime] = None) -> None:
    now = now or utcnow()
    valid_until = as_utc(doc.get("valid_until"))
    if valid_until is not None and now > valid_until:
        raise Expired("Discount code has expired")
    if doc.get("used_count", 0) >= doc.get("max_uses", 0):
        raise LimitExceeded("Discount code usage limit exceeded")


def _check_request(code: str, amount: Optional[float]) -> None:
    if not normalize_code(code) or amount is None:
        raise ValidationError("Code and amount are required")
    if amount < 0:
        raise ValidationError("Amount must not be negative")


def _result(doc: Dict[str, Any], amount: float) -> DiscountResult:
    discount_amount = calculate_discount(doc, amount)
    return DiscountResult(
        code=doc["code"],
        type=doc["type"],
        discount=doc["discount"],
        amount=amount,
        discount_amount=discount_amount,
        final_amount=round(amount - discount_amount, 2),
    )


def validate_code(db: Database, code: str, amount: Optional[float], now: Optional[datetime] = None) -> DiscountResult:
    _check_request(code, amount)
    doc = find_code(db, code)
    check_usable(doc, now)
    return _result(doc, amount)


def apply_code(db: Database, code: str, amount: Optional[float], now: Optional[datetime] = None) -> DiscountResult:
    """Validate then consume one use of the code.

    The increment is a single conditional update on ``used_count < max_uses``,
    so two concurrent applies can never push the count past the limit.
    """
    _check_request(code, amount)
    doc = find_code(db, code)
    check_usable(doc, now)
    updated = db["discountcode"].find_one_and_update(
        {"_id": doc["_id"], "active": True, "used_count": {"$lt": doc.get("max_uses", 0)}},
        {"$inc": {"used_count": 1}, "$set": {"updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        # lost the race for the last use
        raise LimitExceeded("Discount code usage limit exceeded")
    logger.info("Applied discount %s (%s/%s uses)", updated["code"], updated["used_count"], updated["max_uses"])
    return _result(updated, amount)


def release_code(db: Database, code: str) -> None:
    """Give back one use taken by ``apply_code``."""
    db["discountcode"].update_one(
        {"code": normalize_code(code), "used_count": {"$gt": 0}},
        {"$inc": {"used_count": -1}, "$set": {"updated_at": utcnow()}},
    )
    logger.info("Released one use of discount %s", normalize_code(code))
