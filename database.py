"""
MongoDB access for the store.

Each Pydantic model in ``schemas.py`` maps to a collection named after the
lowercase class name. Routes receive the database through the ``get_db``
dependency so tests can swap in an in-process database.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import DATABASE_NAME, DATABASE_URL

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        logger.info("Connecting to MongoDB at %s", DATABASE_URL)
        _client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
    return _client


def get_db() -> Database:
    """FastAPI dependency returning the store database."""
    return get_client()[DATABASE_NAME]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Mongo hands back naive datetimes that are already UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def ensure_indexes(db: Database) -> None:
    db["user"].create_index([("email", ASCENDING)], unique=True)
    # not unique: users without a code hold null here
    db["user"].create_index([("affiliate.redeem_code", ASCENDING)])
    db["discountcode"].create_index([("code", ASCENDING)], unique=True)
    db["newslettersubscriber"].create_index([("email", ASCENDING)], unique=True)
    db["order"].create_index([("user_id", ASCENDING), ("created_at", ASCENDING)])


def create_document(db: Database, collection_name: str, data: BaseModel | Dict[str, Any]) -> str:
    """Insert a document, stamping created_at/updated_at, and return its id."""
    if isinstance(data, BaseModel):
        doc = data.model_dump(by_alias=True)
    else:
        doc = dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def to_public(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Render ``_id`` as a string ``id``."""
    if doc is None:
        return None
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[Sequence[Tuple[str, int]]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(list(sort))
    if limit:
        cursor = cursor.limit(int(limit))
    return [to_public(doc) for doc in cursor]


def ping(db: Database) -> bool:
    try:
        db.list_collection_names()
        return True
    except Exception:
        logger.exception("Database ping failed")
        return False
