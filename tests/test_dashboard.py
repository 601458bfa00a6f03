"""Tests for creator dashboard statistics."""
from __future__ import annotations

import dashboard
from database import utcnow


def test_stats_for_channel_without_videos(client, db, make_user):
    creator, headers = make_user("creator")
    for name in ("fan1", "fan2"):
        fan, _ = make_user(name)
        db["subscription"].insert_one({"subscriber": fan["_id"], "channel": creator["_id"], "createdAt": utcnow()})

    response = client.get("/api/v1/dashboard/stats", headers=headers)

    assert response.status_code == 200
    assert response.json()["data"] == {
        "totalVideos": 0,
        "totalViews": 0,
        "totalLikes": 0,
        "totalSubscribers": 2,
    }


def test_stats_without_videos_or_subscribers(db, make_user):
    creator, _ = make_user("creator")
    assert dashboard.channel_stats(db, creator["_id"]) == {
        "totalVideos": 0,
        "totalViews": 0,
        "totalLikes": 0,
        "totalSubscribers": 0,
    }


def test_other_channels_videos_do_not_count(db, make_user, make_video):
    creator, _ = make_user("creator")
    other, _ = make_user("other")
    make_video(other, views=100)
    assert dashboard.channel_stats(db, creator["_id"])["totalVideos"] == 0


def test_stats_require_a_session(client):
    response = client.get("/api/v1/dashboard/stats")
    assert response.status_code == 401


def test_stats_sum_views_likes_and_subscribers(client, db, make_user, make_video):
    creator, headers = make_user("creator")
    fan, _ = make_user("fan")
    first = make_video(creator, views=3)
    make_video(creator, views=4)
    db["like"].insert_one({"video": first["_id"], "likedBy": fan["_id"], "createdAt": utcnow()})
    db["subscription"].insert_one({"subscriber": fan["_id"], "channel": creator["_id"], "createdAt": utcnow()})

    response = client.get("/api/v1/dashboard/stats", headers=headers)

    assert response.status_code == 200
    assert response.json()["data"] == {
        "totalVideos": 2,
        "totalViews": 7,
        "totalLikes": 1,
        "totalSubscribers": 1,
    }
