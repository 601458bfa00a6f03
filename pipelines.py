"""
Aggregation pipeline builders.

Every function here only assembles a list of stages; nothing touches the
database. Handlers feed the result to ``collection.aggregate`` directly or
through ``pagination.paginate``.

Joins use the lookup-then-unwind pattern. An unwind without
``preserveNullAndEmptyArrays`` drops rows whose join found nothing, so a video
whose owner account is gone disappears from listings. Pass
``preserve_empty=True`` where that is not wanted.
"""

import re
from typing import Iterable, List, Optional

from bson import ObjectId
from fastapi import HTTPException

from config import settings

VIDEO_SORT_FIELDS = {"createdAt", "updatedAt", "views", "duration", "title"}
CHANNEL_VIDEO_SORT_FIELDS = VIDEO_SORT_FIELDS | {"likesCount", "isPublished"}

# Public fields of a user when embedded in another document
OWNER_PROJECTION = {"username": 1, "fullName": 1, "avatar.url": 1}


def sort_stage(sort_by: Optional[str], sort_type: Optional[str],
               allowed: Iterable[str], default: str = "createdAt") -> dict:
    """Sort by ``sort_by`` (ascending only for "asc"), else newest first.

    ``_id`` breaks ties so pages never overlap.
    """
    if not sort_by:
        return {"$sort": {default: -1, "_id": -1}}
    if sort_by not in allowed:
        raise HTTPException(status_code=400, detail=f"Cannot sort by '{sort_by}'")
    direction = 1 if sort_type == "asc" else -1
    return {"$sort": {sort_by: direction, "_id": direction}}


def lookup_one(from_: str, local_field: str, as_: str, project: Optional[dict] = None,
               foreign_field: str = "_id", preserve_empty: bool = False) -> List[dict]:
    """Left outer join to a single document, flattened with $unwind."""
    lookup = {"from": from_, "localField": local_field, "foreignField": foreign_field, "as": as_}
    if project:
        lookup["pipeline"] = [{"$project": project}]
    unwind = {"path": f"${as_}", "preserveNullAndEmptyArrays": preserve_empty}
    return [{"$lookup": lookup}, {"$unwind": unwind}]


def text_search_stage(query: str) -> dict:
    if settings.VIDEO_SEARCH_INDEX:
        return {
            "$search": {
                "index": settings.VIDEO_SEARCH_INDEX,
                "text": {"query": query, "path": ["title", "description"]},
            }
        }
    pattern = {"$regex": re.escape(query), "$options": "i"}
    return {"$match": {"$or": [{"title": pattern}, {"description": pattern}]}}


# -------------------- Videos --------------------

def video_list(query: Optional[str] = None, owner_id: Optional[ObjectId] = None,
               sort_by: Optional[str] = None, sort_type: Optional[str] = None) -> List[dict]:
    pipeline = []
    # $search has to be the first stage
    if query and query.strip():
        pipeline.append(text_search_stage(query.strip()))
    if owner_id is not None:
        pipeline.append({"$match": {"owner": owner_id}})
    pipeline.append({"$match": {"isPublished": True}})
    pipeline.append(sort_stage(sort_by, sort_type, VIDEO_SORT_FIELDS))
    pipeline.extend(lookup_one("user", "owner", "ownerDetails", OWNER_PROJECTION))
    pipeline.append({
        "$project": {
            "videoFile.url": 1,
            "thumbnail.url": 1,
            "title": 1,
            "description": 1,
            "duration": 1,
            "views": 1,
            "isPublished": 1,
            "owner": 1,
            "ownerDetails": 1,
            "createdAt": 1,
        }
    })
    return pipeline


def video_detail(video_id: ObjectId, viewer_id: ObjectId) -> List[dict]:
    """One video with likes, owner and the viewer's like/subscription state.

    Unpublished videos only match for their owner.
    """
    return [
        {"$match": {"_id": video_id, "$or": [{"isPublished": True}, {"owner": viewer_id}]}},
        {"$lookup": {"from": "like", "localField": "_id", "foreignField": "video", "as": "likes"}},
        {
            "$lookup": {
                "from": "user",
                "localField": "owner",
                "foreignField": "_id",
                "as": "owner",
                "pipeline": [
                    {"$lookup": {"from": "subscription", "localField": "_id",
                                 "foreignField": "channel", "as": "subscribers"}},
                    {
                        "$addFields": {
                            "subscribersCount": {"$size": "$subscribers"},
                            "isSubscribed": {"$in": [viewer_id, "$subscribers.subscriber"]},
                        }
                    },
                    {"$project": {"username": 1, "fullName": 1, "avatar.url": 1,
                                  "subscribersCount": 1, "isSubscribed": 1}},
                ],
            }
        },
        {
            "$addFields": {
                "likesCount": {"$size": "$likes"},
                "owner": {"$first": "$owner"},
                "isLiked": {"$in": [viewer_id, "$likes.likedBy"]},
            }
        },
        {
            "$project": {
                "videoFile.url": 1,
                "thumbnail.url": 1,
                "title": 1,
                "description": 1,
                "views": 1,
                "duration": 1,
                "isPublished": 1,
                "createdAt": 1,
                "owner": 1,
                "likesCount": 1,
                "isLiked": 1,
            }
        },
    ]


def channel_videos(owner_id: ObjectId, sort_by: Optional[str] = None,
                   sort_type: Optional[str] = None) -> List[dict]:
    """All of a creator's videos, published or not, with like counts."""
    return [
        {"$match": {"owner": owner_id}},
        {"$lookup": {"from": "like", "localField": "_id", "foreignField": "video", "as": "likes"}},
        {"$addFields": {"likesCount": {"$size": "$likes"}}},
        sort_stage(sort_by, sort_type, CHANNEL_VIDEO_SORT_FIELDS),
        {
            "$project": {
                "videoFile": 1,
                "thumbnail": 1,
                "title": 1,
                "description": 1,
                "duration": 1,
                "views": 1,
                "isPublished": 1,
                "likesCount": 1,
                "createdAt": 1,
                "updatedAt": 1,
            }
        },
    ]


def channel_stats(owner_id: ObjectId) -> List[dict]:
    """Totals over a creator's videos. Yields no row when they have none."""
    return [
        {"$match": {"owner": owner_id}},
        {"$lookup": {"from": "like", "localField": "_id", "foreignField": "video", "as": "likes"}},
        {"$lookup": {"from": "subscription", "localField": "owner",
                     "foreignField": "channel", "as": "subscribers"}},
        {
            "$group": {
                "_id": None,
                "totalVideos": {"$sum": 1},
                "totalViews": {"$sum": "$views"},
                "totalLikes": {"$sum": {"$size": "$likes"}},
                "totalSubscribers": {"$first": {"$size": "$subscribers"}},
            }
        },
        {"$project": {"_id": 0, "totalVideos": 1, "totalViews": 1,
                      "totalLikes": 1, "totalSubscribers": 1}},
    ]


# -------------------- Likes --------------------

def liked_videos(user_id: ObjectId) -> List[dict]:
    return [
        {"$match": {"likedBy": user_id, "video": {"$exists": True}}},
        {
            "$lookup": {
                "from": "video",
                "localField": "video",
                "foreignField": "_id",
                "as": "likedVideo",
                "pipeline": [
                    {"$match": {"isPublished": True}},
                    *lookup_one("user", "owner", "ownerDetails", OWNER_PROJECTION),
                ],
            }
        },
        {"$unwind": "$likedVideo"},
        {"$sort": {"createdAt": -1, "_id": -1}},
        {
            "$project": {
                "_id": 0,
                "likedAt": "$createdAt",
                "likedVideo": {
                    "_id": 1,
                    "videoFile.url": 1,
                    "thumbnail.url": 1,
                    "owner": 1,
                    "title": 1,
                    "description": 1,
                    "views": 1,
                    "duration": 1,
                    "createdAt": 1,
                    "isPublished": 1,
                    "ownerDetails": 1,
                },
            }
        },
    ]


# -------------------- Subscriptions --------------------

def channel_subscribers(channel_id: ObjectId, viewer_id: ObjectId) -> List[dict]:
    """Who subscribes to a channel, and whether the viewer follows each of them back."""
    return [
        {"$match": {"channel": channel_id}},
        {
            "$lookup": {
                "from": "user",
                "localField": "subscriber",
                "foreignField": "_id",
                "as": "subscriber",
                "pipeline": [
                    {"$lookup": {"from": "subscription", "localField": "_id",
                                 "foreignField": "channel", "as": "subscribedToSubscriber"}},
                    {
                        "$addFields": {
                            "subscribersCount": {"$size": "$subscribedToSubscriber"},
                            "isSubscribed": {"$in": [viewer_id, "$subscribedToSubscriber.subscriber"]},
                        }
                    },
                    {"$project": {"username": 1, "fullName": 1, "avatar.url": 1,
                                  "subscribersCount": 1, "isSubscribed": 1}},
                ],
            }
        },
        {"$unwind": "$subscriber"},
        {"$sort": {"createdAt": -1, "_id": -1}},
        {"$project": {"_id": 0, "subscriber": 1, "subscribedDate": "$createdAt"}},
    ]


def subscribed_channels(subscriber_id: ObjectId) -> List[dict]:
    return [
        {"$match": {"subscriber": subscriber_id}},
        {
            "$lookup": {
                "from": "user",
                "localField": "channel",
                "foreignField": "_id",
                "as": "channel",
                "pipeline": [
                    {"$lookup": {"from": "subscription", "localField": "_id",
                                 "foreignField": "channel", "as": "subscribers"}},
                    {"$addFields": {"subscribersCount": {"$size": "$subscribers"}}},
                    {"$project": {"username": 1, "fullName": 1, "avatar.url": 1,
                                  "subscribersCount": 1}},
                ],
            }
        },
        {"$unwind": "$channel"},
        {"$sort": {"createdAt": -1, "_id": -1}},
        {"$project": {"_id": 0, "channel": 1, "subscribedDate": "$createdAt"}},
    ]


# -------------------- Playlists --------------------

def user_playlists(owner_id: ObjectId) -> List[dict]:
    return [
        {"$match": {"owner": owner_id}},
        {"$lookup": {"from": "video", "localField": "videos", "foreignField": "_id", "as": "videos"}},
        {
            "$addFields": {
                "totalVideos": {"$size": "$videos"},
                "totalViews": {"$sum": "$videos.views"},
            }
        },
        {"$sort": {"updatedAt": -1, "_id": -1}},
        {"$project": {"_id": 1, "name": 1, "description": 1, "totalVideos": 1,
                      "totalViews": 1, "updatedAt": 1, "createdAt": 1}},
    ]


def playlist_detail(playlist_id: ObjectId) -> List[dict]:
    """A playlist with its published videos and owner summaries."""
    owner_lookup = {
        "from": "user",
        "localField": "owner",
        "foreignField": "_id",
        "as": "owner",
        "pipeline": [{"$project": OWNER_PROJECTION}],
    }
    return [
        {"$match": {"_id": playlist_id}},
        {
            "$lookup": {
                "from": "video",
                "localField": "videos",
                "foreignField": "_id",
                "as": "videos",
                "pipeline": [
                    {"$match": {"isPublished": True}},
                    {"$lookup": owner_lookup},
                    {"$addFields": {"owner": {"$first": "$owner"}}},
                    {"$project": {"videoFile.url": 1, "thumbnail.url": 1, "title": 1,
                                  "description": 1, "duration": 1, "views": 1,
                                  "createdAt": 1, "owner": 1}},
                ],
            }
        },
        {"$lookup": owner_lookup},
        {
            "$addFields": {
                "totalVideos": {"$size": "$videos"},
                "totalViews": {"$sum": "$videos.views"},
                "owner": {"$first": "$owner"},
            }
        },
    ]


# -------------------- Comments & tweets --------------------

def _with_author_and_likes(like_field: str, viewer_id: ObjectId) -> List[dict]:
    return [
        *lookup_one("user", "owner", "owner", OWNER_PROJECTION),
        {"$lookup": {"from": "like", "localField": "_id", "foreignField": like_field, "as": "likes"}},
        {
            "$addFields": {
                "likesCount": {"$size": "$likes"},
                "isLiked": {"$in": [viewer_id, "$likes.likedBy"]},
            }
        },
    ]


def video_comments(video_id: ObjectId, viewer_id: ObjectId) -> List[dict]:
    return [
        {"$match": {"video": video_id}},
        *_with_author_and_likes("comment", viewer_id),
        {"$sort": {"createdAt": -1, "_id": -1}},
        {"$project": {"content": 1, "createdAt": 1, "updatedAt": 1, "owner": 1,
                      "likesCount": 1, "isLiked": 1}},
    ]


def user_tweets(owner_id: ObjectId, viewer_id: ObjectId) -> List[dict]:
    return [
        {"$match": {"owner": owner_id}},
        *_with_author_and_likes("tweet", viewer_id),
        {"$sort": {"createdAt": -1, "_id": -1}},
        {"$project": {"content": 1, "createdAt": 1, "updatedAt": 1, "owner": 1,
                      "likesCount": 1, "isLiked": 1}},
    ]


# -------------------- Users --------------------

def channel_profile(username: str, viewer_id: ObjectId) -> List[dict]:
    return [
        {"$match": {"username": username.lower()}},
        {"$lookup": {"from": "subscription", "localField": "_id",
                     "foreignField": "channel", "as": "subscribers"}},
        {"$lookup": {"from": "subscription", "localField": "_id",
                     "foreignField": "subscriber", "as": "subscribedTo"}},
        {
            "$addFields": {
                "subscribersCount": {"$size": "$subscribers"},
                "channelsSubscribedToCount": {"$size": "$subscribedTo"},
                "isSubscribed": {"$in": [viewer_id, "$subscribers.subscriber"]},
            }
        },
        {
            "$project": {
                "fullName": 1,
                "username": 1,
                "avatar.url": 1,
                "coverImage.url": 1,
                "subscribersCount": 1,
                "channelsSubscribedToCount": 1,
                "isSubscribed": 1,
                "createdAt": 1,
            }
        },
    ]


def watch_history(user_id: ObjectId) -> List[dict]:
    # $lookup does not keep the order of watchHistory; historyIds lets handlers restore it
    return [
        {"$match": {"_id": user_id}},
        {"$addFields": {"historyIds": "$watchHistory"}},
        {
            "$lookup": {
                "from": "video",
                "localField": "watchHistory",
                "foreignField": "_id",
                "as": "watchHistory",
                "pipeline": [
                    *lookup_one("user", "owner", "owner", OWNER_PROJECTION),
                    {"$project": {"videoFile.url": 1, "thumbnail.url": 1, "title": 1,
                                  "duration": 1, "views": 1, "createdAt": 1, "owner": 1}},
                ],
            }
        },
        {"$project": {"watchHistory": 1, "historyIds": 1}},
    ]
