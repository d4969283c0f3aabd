"""
Affiliate program: redeem codes, commission crediting and reward tiers.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ReturnDocument
from pymongo.database import Database

from config import AFFILIATE_CODE_PREFIX, AFFILIATE_COMMISSION_RATE
from database import utcnow
from errors import Conflict, NotFound, ValidationError
from schemas import Referral

logger = logging.getLogger(__name__)

# highest first; the first threshold met wins
TIERS: List[Tuple[str, float]] = [
    ("Diamond", 1_000_000),
    ("Gold", 500_000),
    ("Silver", 100_000),
    ("Bronze", 0),
]
TIER_RANK = {name: rank for rank, (name, _) in enumerate(reversed(TIERS))}


REDEEM_SUFFIX_LENGTH = 4


def generate_redeem_code(user_id: str, length: int = REDEEM_SUFFIX_LENGTH) -> str:
    return f"{AFFILIATE_CODE_PREFIX}{str(user_id)[-length:]}".upper()


def available_redeem_code(db: Database, user_id) -> str:
    """The shortest free code for ``user_id``, widening the id suffix on collision."""
    user_id = str(user_id)
    for length in range(REDEEM_SUFFIX_LENGTH, len(user_id) + 1, 2):
        code = generate_redeem_code(user_id, length)
        owner = code_owner(db, code)
        if owner is None or str(owner["_id"]) == user_id:
            return code
        logger.warning("Affiliate code %s already belongs to user %s", code, owner["_id"])
    raise Conflict("Affiliate code already in use")


def tier_for(total_earned: float) -> str:
    for name, threshold in TIERS:
        if total_earned >= threshold:
            return name
    return "Bronze"


def next_tier(total_earned: float) -> Optional[Dict[str, Any]]:
    """The next tier up and the lifetime commission it requires."""
    upcoming = None
    for name, threshold in TIERS:
        if total_earned >= threshold:
            break
        upcoming = {"tier": name, "threshold": threshold, "remaining": round(threshold - total_earned, 2)}
    return upcoming


def calculate_commission(order_amount: float) -> float:
    return round(order_amount * AFFILIATE_COMMISSION_RATE, 2)


def code_owner(db: Database, code: str) -> Optional[Dict[str, Any]]:
    return db["user"].find_one({"affiliate.redeem_code": code})


def find_affiliate(db: Database, code: str) -> Dict[str, Any]:
    user = code_owner(db, code) if code else None
    if not user:
        raise NotFound("Affiliate code not found")
    return user


def ensure_redeem_code(db: Database, user: Dict[str, Any]) -> str:
    """Give ``user`` a redeem code if it has none yet and return the code."""
    affiliate = user.get("affiliate") or {}
    if affiliate.get("redeem_code"):
        return affiliate["redeem_code"]
    code = available_redeem_code(db, user["_id"])
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"affiliate.redeem_code": code, "updated_at": utcnow()}},
    )
    logger.info("Generated affiliate code %s for user %s", code, user["_id"])
    return code


def promote_tier(db: Database, user_id, tier: str) -> bool:
    """Raise the stored tier to ``tier`` unless it is already at or above it."""
    lower = [name for name, rank in TIER_RANK.items() if rank < TIER_RANK[tier]]
    result = db["user"].update_one(
        {"_id": user_id, "affiliate.tier": {"$in": lower}},
        {"$set": {"affiliate.tier": tier}},
    )
    return result.modified_count > 0


def track_referral(
    db: Database,
    code: str,
    order_amount: Optional[float],
    referred_user_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Credit the affiliate owning ``code`` with commission on ``order_amount``.

    Returns the updated affiliate profile.
    """
    if not code or order_amount is None:
        raise ValidationError("Affiliate code and order amount are required")
    if order_amount < 0:
        raise ValidationError("Order amount must not be negative")
    user = find_affiliate(db, code)
    commission = calculate_commission(order_amount)
    referral = Referral(
        amount=order_amount,
        commission=commission,
        referred_user_id=referred_user_id,
        date=utcnow(),
    )
    updated = db["user"].find_one_and_update(
        {"_id": user["_id"]},
        {
            "$push": {"affiliate.referrals": referral.model_dump()},
            "$inc": {"affiliate.commission": commission, "affiliate.total_earned": commission},
            "$set": {"updated_at": utcnow()},
        },
        return_document=ReturnDocument.AFTER,
    )
    affiliate = updated["affiliate"]
    current = affiliate.get("tier", "Bronze")
    earned = tier_for(affiliate["total_earned"])
    if TIER_RANK[earned] > TIER_RANK.get(current, 0) and promote_tier(db, user["_id"], earned):
        affiliate["tier"] = earned
        logger.info("Affiliate %s upgraded %s -> %s", code, current, earned)
    logger.info("Credited affiliate %s with %.2f on order of %.2f", code, commission, order_amount)
    return affiliate


def dashboard(user: Dict[str, Any]) -> Dict[str, Any]:
    affiliate = user.get("affiliate") or {}
    total_earned = affiliate.get("total_earned", 0)
    referrals = sorted(affiliate.get("referrals", []), key=lambda r: r["date"], reverse=True)
    return {
        "redeem_code": affiliate.get("redeem_code"),
        "tier": affiliate.get("tier", "Bronze"),
        "commission": affiliate.get("commission", 0),
        "total_earned": total_earned,
        "commission_rate": AFFILIATE_COMMISSION_RATE * 100,
        "next_tier": next_tier(total_earned),
        "referral_count": len(referrals),
        "referrals": referrals,
    }
