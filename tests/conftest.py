from __future__ import annotations

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

import main
from auth import hash_token
from database import get_db, utcnow
from media import get_media_store


class RecordingMediaStore:
    """Media store double that keeps uploads in memory and records deletes."""

    def __init__(self, delete_ok: bool = True):
        self.delete_ok = delete_ok
        self.uploaded: list[str] = []
        self.deleted: list[str] = []

    def upload(self, file, resource_type: str = "image") -> dict:
        public_id = f"{resource_type}s/{ObjectId()}"
        self.uploaded.append(public_id)
        return {"url": f"/static/{public_id}", "public_id": public_id, "duration": None}

    def delete(self, public_id: str, resource_type: str = "image") -> bool:
        self.deleted.append(public_id)
        return self.delete_ok


@pytest.fixture
def db():
    client = mongomock.MongoClient()
    name = f"videotube_test_{ObjectId()}"
    yield client[name]
    client.drop_database(name)


@pytest.fixture
def media() -> RecordingMediaStore:
    return RecordingMediaStore()


@pytest.fixture
def failing_media() -> RecordingMediaStore:
    return RecordingMediaStore(delete_ok=False)


@pytest.fixture
def client(db, media):
    main.app.dependency_overrides[get_db] = lambda: db
    main.app.dependency_overrides[get_media_store] = lambda: media
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Insert a user with a live session; returns (user_doc, auth_headers)."""
    def _make(username: str) -> tuple[dict, dict]:
        token = f"token-{username}"
        now = utcnow()
        user = {
            "username": username,
            "email": f"{username}@mail.com",
            "fullName": username.title(),
            "password": "not-a-real-hash",
            "watchHistory": [],
            "sessionToken": hash_token(token),
            "createdAt": now,
            "updatedAt": now,
        }
        user["_id"] = db["user"].insert_one(user).inserted_id
        return user, {"Authorization": f"Bearer {token}"}
    return _make


@pytest.fixture
def make_video(db):
    def _make(owner: dict, published: bool = True, views: int = 0, title: str = "Clip") -> dict:
        now = utcnow()
        video = {
            "videoFile": {"url": "/static/videos/v.mp4", "public_id": f"videos/{ObjectId()}.mp4"},
            "thumbnail": {"url": "/static/images/t.jpg", "public_id": f"images/{ObjectId()}.jpg"},
            "title": title,
            "description": "A test video",
            "duration": 12.5,
            "views": views,
            "isPublished": published,
            "owner": owner["_id"],
            "createdAt": now,
            "updatedAt": now,
        }
        video["_id"] = db["video"].insert_one(video).inserted_id
        return video
    return _make
