"""Tests for the aggregation pipeline builders."""
from __future__ import annotations

import pytest
from bson import ObjectId
from fastapi import HTTPException

import pipelines
from config import settings


def stage_names(pipeline: list[dict]) -> list[str]:
    return [next(iter(stage)) for stage in pipeline]


def test_video_list_defaults():
    pipeline = pipelines.video_list()
    assert stage_names(pipeline) == ["$match", "$sort", "$lookup", "$unwind", "$project"]
    assert pipeline[0] == {"$match": {"isPublished": True}}
    assert pipeline[1] == {"$sort": {"createdAt": -1, "_id": -1}}


def test_video_list_with_search_and_owner():
    owner = ObjectId()
    pipeline = pipelines.video_list(query="cats", owner_id=owner, sort_by="views", sort_type="asc")

    assert stage_names(pipeline) == [
        "$search", "$match", "$match", "$sort", "$lookup", "$unwind", "$project",
    ]
    assert pipeline[0]["$search"]["index"] == settings.VIDEO_SEARCH_INDEX
    assert pipeline[0]["$search"]["text"] == {"query": "cats", "path": ["title", "description"]}
    assert pipeline[1] == {"$match": {"owner": owner}}
    assert pipeline[3] == {"$sort": {"views": 1, "_id": 1}}


def test_blank_query_adds_no_search_stage():
    assert "$search" not in stage_names(pipelines.video_list(query="   "))


def test_regex_search_when_no_search_index(monkeypatch):
    monkeypatch.setattr(settings, "VIDEO_SEARCH_INDEX", "")
    pipeline = pipelines.video_list(query="a.b")
    match = pipeline[0]["$match"]["$or"]
    assert match[0] == {"title": {"$regex": r"a\.b", "$options": "i"}}
    assert match[1]["description"]["$regex"] == r"a\.b"


def test_owner_join_drops_unmatched_rows_by_default():
    pipeline = pipelines.video_list()
    unwind = pipeline[3]["$unwind"]
    assert unwind == {"path": "$ownerDetails", "preserveNullAndEmptyArrays": False}


def test_lookup_one_can_preserve_empty():
    lookup, unwind = pipelines.lookup_one("user", "owner", "owner", preserve_empty=True)
    assert lookup["$lookup"] == {
        "from": "user", "localField": "owner", "foreignField": "_id", "as": "owner",
    }
    assert unwind["$unwind"]["preserveNullAndEmptyArrays"] is True


@pytest.mark.parametrize(
    "sort_type, direction",
    [("asc", 1), ("desc", -1), ("ASC", -1), ("sideways", -1), (None, -1)],
)
def test_sort_direction(sort_type, direction):
    stage = pipelines.sort_stage("views", sort_type, pipelines.VIDEO_SORT_FIELDS)
    assert stage == {"$sort": {"views": direction, "_id": direction}}


def test_sort_rejects_unknown_field():
    with pytest.raises(HTTPException) as exc:
        pipelines.sort_stage("password", "asc", pipelines.VIDEO_SORT_FIELDS)
    assert exc.value.status_code == 400


def test_channel_videos_can_sort_by_likes():
    pipeline = pipelines.channel_videos(ObjectId(), "likesCount", "desc")
    assert {"$sort": {"likesCount": -1, "_id": -1}} in pipeline
    assert stage_names(pipeline) == ["$match", "$lookup", "$addFields", "$sort", "$project"]


def test_channel_stats_groups_everything_into_one_row():
    owner = ObjectId()
    pipeline = pipelines.channel_stats(owner)
    assert pipeline[0] == {"$match": {"owner": owner}}
    group = pipeline[3]["$group"]
    assert group["_id"] is None
    assert set(group) == {"_id", "totalVideos", "totalViews", "totalLikes", "totalSubscribers"}


def test_video_detail_hides_unpublished_from_others():
    video, viewer = ObjectId(), ObjectId()
    match = pipelines.video_detail(video, viewer)[0]["$match"]
    assert match["_id"] == video
    assert {"owner": viewer} in match["$or"]
    assert {"isPublished": True} in match["$or"]


def test_playlist_detail_only_embeds_published_videos():
    lookup = pipelines.playlist_detail(ObjectId())[1]["$lookup"]
    assert lookup["from"] == "video"
    assert lookup["pipeline"][0] == {"$match": {"isPublished": True}}


def test_builders_return_fresh_lists():
    owner = ObjectId()
    first = pipelines.user_playlists(owner)
    first.append({"$limit": 1})
    assert {"$limit": 1} not in pipelines.user_playlists(owner)
