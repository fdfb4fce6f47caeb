"""
MongoDB access for devHabit.

The client is created lazily from settings and shared by every request;
pymongo keeps its own connection pool. Route handlers receive the database
through the ``get_db`` dependency so tests can swap it out.
"""
import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import get_settings

logger = logging.getLogger(__name__)

USERS = "users"
GOALS = "goals"
LIBRARIES = "libraries"


@lru_cache
def get_client() -> MongoClient:
    settings = get_settings()
    return MongoClient(settings.db_uri, tz_aware=False)


def get_db() -> Database:
    settings = get_settings()
    return get_client().get_default_database(default=settings.database_name)


def ensure_indexes(db: Database) -> None:
    db[USERS].create_index([("username", ASCENDING)], unique=True)
    db[USERS].create_index([("email", ASCENDING)], unique=True)
    db[GOALS].create_index([("user_id", ASCENDING)])
    db[LIBRARIES].create_index([("goal_id", ASCENDING)], unique=True)
    logger.info("Database indexes ensured", extra={"database": db.name})


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id from a URL or token; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def create_document(db: Database, collection_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Insert ``data`` with timestamps and return the stored document."""
    now = datetime.utcnow()
    doc = dict(data)
    doc["created_at"] = now
    doc["updated_at"] = now
    doc["_id"] = db[collection_name].insert_one(doc).inserted_id
    return doc


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    return list(db[collection_name].find(filter_dict or {}).sort("created_at", -1))


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_serialize_value(v) for v in value]
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def serialize_doc(doc: Optional[Dict[str, Any]], exclude: tuple = ()) -> Optional[Dict[str, Any]]:
    """Make a stored document JSON-friendly: ``_id`` -> ``id``, ObjectIds and dates to strings."""
    if not doc:
        return doc
    out = {}
    if "_id" in doc:
        out["id"] = str(doc["_id"])
    for k, v in doc.items():
        if k == "_id" or k in exclude:
            continue
        out[k] = _serialize_value(v)
    return out
