"""Tests for like toggles."""
from __future__ import annotations

from bson import ObjectId

from database import utcnow


def test_toggle_video_like_twice_restores_state(client, db, make_user, make_video):
    owner, _ = make_user("owner")
    _, headers = make_user("fan")
    video = make_video(owner)
    url = f"/api/v1/likes/toggle/v/{video['_id']}"

    first = client.post(url, headers=headers)
    assert first.status_code == 200
    assert first.json()["data"] == {"isLiked": True}
    assert first.json()["success"] is True
    assert db["like"].count_documents({"video": video["_id"]}) == 1

    second = client.post(url, headers=headers)
    assert second.json()["data"] == {"isLiked": False}
    assert db["like"].count_documents({"video": video["_id"]}) == 0


def test_like_is_per_user(client, db, make_user, make_video):
    owner, owner_headers = make_user("owner")
    _, fan_headers = make_user("fan")
    video = make_video(owner)
    url = f"/api/v1/likes/toggle/v/{video['_id']}"

    client.post(url, headers=owner_headers)
    response = client.post(url, headers=fan_headers)
    assert response.json()["data"] == {"isLiked": True}
    assert db["like"].count_documents({"video": video["_id"]}) == 2


def test_comment_and_tweet_likes_use_their_own_field(client, db, make_user, make_video):
    user, headers = make_user("alice")
    video = make_video(user)
    now = utcnow()
    comment_id = db["comment"].insert_one(
        {"content": "hi", "video": video["_id"], "owner": user["_id"], "createdAt": now}
    ).inserted_id
    tweet_id = db["tweet"].insert_one(
        {"content": "hello", "owner": user["_id"], "createdAt": now}
    ).inserted_id

    assert client.post(f"/api/v1/likes/toggle/c/{comment_id}", headers=headers).json()["data"]["isLiked"]
    assert client.post(f"/api/v1/likes/toggle/t/{tweet_id}", headers=headers).json()["data"]["isLiked"]

    comment_like = db["like"].find_one({"comment": comment_id})
    tweet_like = db["like"].find_one({"tweet": tweet_id})
    assert comment_like["likedBy"] == user["_id"]
    assert "video" not in comment_like and "tweet" not in comment_like
    assert tweet_like["likedBy"] == user["_id"]


def test_malformed_id_is_a_client_error(client, make_user):
    _, headers = make_user("alice")
    response = client.post("/api/v1/likes/toggle/v/not-an-id", headers=headers)
    assert response.status_code == 400
    assert response.json() == {
        "statusCode": 400,
        "message": "Invalid videoId",
        "success": False,
        "errors": [],
    }


def test_missing_target_is_not_found(client, db, make_user):
    _, headers = make_user("alice")
    response = client.post(f"/api/v1/likes/toggle/c/{ObjectId()}", headers=headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Comment not found"
    assert db["like"].count_documents({}) == 0


def test_toggle_requires_a_session(client, make_user, make_video):
    owner, _ = make_user("owner")
    video = make_video(owner)
    response = client.post(f"/api/v1/likes/toggle/v/{video['_id']}")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_cannot_like_someone_elses_unpublished_video(client, db, make_user, make_video):
    owner, owner_headers = make_user("owner")
    _, fan_headers = make_user("fan")
    video = make_video(owner, published=False)
    url = f"/api/v1/likes/toggle/v/{video['_id']}"

    response = client.post(url, headers=fan_headers)
    assert response.status_code == 404
    assert db["like"].count_documents({}) == 0

    assert client.post(url, headers=owner_headers).json()["data"] == {"isLiked": True}
