"""
Password hashing, bearer tokens and the current-user dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, Header
from pymongo.database import Database

from config import JWT_ALGO, JWT_EXPIRY_DAYS, JWT_SECRET
from database import get_db
from errors import AuthError, ForbiddenError, ValidationError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes and newer releases reject longer input
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise ValidationError("Password must be at most 72 bytes")
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(password.encode(), password_hash.encode())


def create_token(user_doc: Dict[str, Any]) -> str:
    payload = {
        "sub": str(user_doc["_id"]),
        "email": user_doc["email"],
        "exp": datetime.now(timezone.utc) + timedelta(days=JWT_EXPIRY_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGO)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGO])
    except jwt.PyJWTError:
        return None


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _load_user(db: Database, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    try:
        user_id = ObjectId(payload.get("sub"))
    except (InvalidId, TypeError):
        return None
    return db["user"].find_one({"_id": user_id})


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Database = Depends(get_db),
) -> Optional[dict]:
    """The caller's user document, or None for anonymous or bad tokens."""
    token = _bearer_token(authorization)
    if token is None:
        return None
    payload = decode_token(token)
    if payload is None:
        return None
    return _load_user(db, payload)


def require_user(
    authorization: Optional[str] = Header(None),
    db: Database = Depends(get_db),
) -> dict:
    token = _bearer_token(authorization)
    if token is None:
        raise AuthError("Access token required")
    payload = decode_token(token)
    if payload is None:
        raise ForbiddenError("Invalid or expired token")
    user = _load_user(db, payload)
    if user is None:
        logger.warning("Token for unknown user %s", payload.get("sub"))
        raise ForbiddenError("Invalid or expired token")
    return user
