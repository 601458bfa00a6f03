"""
MongoDB access helpers.

The client is created lazily from settings. Handlers never import a global
database handle; they receive one through the ``get_db`` dependency so tests
can swap in an in-memory database.
"""

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Optional

from bson import ObjectId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import settings

logger = logging.getLogger(__name__)

# Never leave the server in a response
PRIVATE_FIELDS = {"password", "sessionToken"}


@lru_cache
def get_client() -> MongoClient:
    logger.info(f"Creating MongoDB client for database '{settings.DATABASE_NAME}'")
    return MongoClient(settings.DATABASE_URL, tz_aware=True)


def get_db() -> Database:
    """FastAPI dependency returning the application database"""
    return get_client()[settings.DATABASE_NAME]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def objid(id_str: Any, label: str = "id") -> ObjectId:
    """Parse a path/query id, rejecting malformed ones with a 400"""
    if isinstance(id_str, ObjectId):
        return id_str
    if not isinstance(id_str, str) or not ObjectId.is_valid(id_str):
        raise HTTPException(status_code=400, detail=f"Invalid {label}")
    return ObjectId(id_str)


def to_str_id(doc):
    """Make a document JSON friendly: _id -> id, ObjectId -> str, datetime -> ISO 8601."""
    if isinstance(doc, list):
        return [to_str_id(item) for item in doc]
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, datetime):
        return doc.isoformat()
    if not isinstance(doc, dict):
        return doc
    d = {}
    for k, v in doc.items():
        if k in PRIVATE_FIELDS:
            continue
        d["id" if k == "_id" else k] = to_str_id(v)
    return d


def create_document(db: Database, collection_name: str, data: BaseModel) -> dict:
    """Insert a validated model with timestamps and return the stored document"""
    doc = data.model_dump(exclude_none=True)
    now = utcnow()
    doc["createdAt"] = now
    doc["updatedAt"] = now
    result = db[collection_name].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"Created {collection_name} {result.inserted_id}")
    return doc


def find_by_id(db: Database, collection_name: str, _id: ObjectId, label: str) -> dict:
    """Fetch one document or raise a 404 naming the entity"""
    doc = db[collection_name].find_one({"_id": _id})
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return doc


def find_visible_video(db: Database, video_id: ObjectId, viewer_id: ObjectId) -> dict:
    """A video the viewer may see: published, or their own. Anything else is a 404."""
    video = db["video"].find_one(
        {"_id": video_id, "$or": [{"isPublished": True}, {"owner": viewer_id}]}
    )
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")
    return video


def require_owner(doc: dict, user: dict, action: str) -> None:
    """Owner gate: only the stored owner may mutate the document"""
    if doc.get("owner") != user["_id"]:
        raise HTTPException(status_code=403, detail=f"You can only {action}")


def ensure_indexes(db: Database) -> None:
    """Unique constraints backing the toggle and registration logic"""
    db["user"].create_index("username", unique=True)
    db["user"].create_index("email", unique=True)
    db["user"].create_index("sessionToken", sparse=True)
    db["subscription"].create_index(
        [("subscriber", ASCENDING), ("channel", ASCENDING)], unique=True
    )
    db["subscription"].create_index("channel")
    for field in ("video", "comment", "tweet"):
        db["like"].create_index(
            [(field, ASCENDING), ("likedBy", ASCENDING)],
            unique=True,
            partialFilterExpression={field: {"$exists": True}},
        )
    db["video"].create_index([("owner", ASCENDING), ("createdAt", ASCENDING)])
    db["comment"].create_index("video")
    logger.info("MongoDB indexes ensured")


def ping(db: Database) -> Optional[str]:
    """Return None when the database answers, else the error text"""
    try:
        db.command("ping")
        return None
    except Exception as e:
        logger.warning(f"Database ping failed: {e}")
        return str(e)[:100]


def toggle_document(db: Database, collection_name: str, data: BaseModel) -> bool:
    """
    Flip a (target, actor) relation: delete the matching document if present,
    otherwise create it. Returns True when the relation now exists.
    """
    query = data.model_dump(exclude_none=True)
    existing = db[collection_name].find_one(query)
    if existing:
        db[collection_name].delete_one({"_id": existing["_id"]})
        logger.info(f"Removed {collection_name} {existing['_id']}")
        return False
    try:
        create_document(db, collection_name, data)
    except DuplicateKeyError:
        # A concurrent toggle inserted the same pair first
        logger.info(f"Concurrent {collection_name} insert for {query}")
    return True
