from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database

import pipelines
from auth import get_current_user
from database import get_db
from pagination import page_params, paginate
from responses import api_response

router = APIRouter()


def channel_stats(db: Database, owner_id) -> dict:
    """Video, view, like and subscriber totals for one creator"""
    if db["video"].find_one({"owner": owner_id}, {"_id": 1}):
        stats = list(db["video"].aggregate(pipelines.channel_stats(owner_id)))
        if stats:
            return stats[0]
    # No videos means no row to group; subscribers still count
    return {
        "totalVideos": 0,
        "totalViews": 0,
        "totalLikes": 0,
        "totalSubscribers": db["subscription"].count_documents({"channel": owner_id}),
    }


@router.get("/stats")
def get_channel_stats(db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    return api_response(200, channel_stats(db, current_user["_id"]), "Channel stats fetched successfully")


@router.get("/videos")
def get_channel_videos(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sortBy: Optional[str] = None,
    sortType: Optional[str] = None,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    page_num, limit_num = page_params(page, limit)
    pipeline = pipelines.channel_videos(current_user["_id"], sortBy, sortType)
    result = paginate(db["video"], pipeline, page_num, limit_num)
    return api_response(200, result, "Channel videos fetched successfully")
