import logging
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo.database import Database

import pipelines
from auth import get_current_user
from database import find_by_id, find_visible_video, get_db, objid, toggle_document
from pagination import page_params, paginate
from responses import api_response
from schemas import Like, LikeTarget

logger = logging.getLogger(__name__)
router = APIRouter()


def toggle_like(db: Database, target: LikeTarget, target_id: ObjectId, user_id: ObjectId) -> bool:
    """Like or unlike a video, comment or tweet. Returns True when it is now liked."""
    if target is LikeTarget.VIDEO:
        find_visible_video(db, target_id, user_id)
    else:
        find_by_id(db, target.collection, target_id, target.value.capitalize())
    like = Like(**{target.value: target_id}, likedBy=user_id)
    return toggle_document(db, "like", like)


def _toggle_response(db: Database, target: LikeTarget, raw_id: str, user: dict) -> dict:
    target_id = objid(raw_id, f"{target.value}Id")
    is_liked = toggle_like(db, target, target_id, user["_id"])
    message = f"{target.value.capitalize()} {'liked' if is_liked else 'unliked'}"
    return api_response(200, {"isLiked": is_liked}, message)


@router.post("/toggle/v/{videoId}")
def toggle_video_like(videoId: str, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    return _toggle_response(db, LikeTarget.VIDEO, videoId, current_user)


@router.post("/toggle/c/{commentId}")
def toggle_comment_like(commentId: str, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    return _toggle_response(db, LikeTarget.COMMENT, commentId, current_user)


@router.post("/toggle/t/{tweetId}")
def toggle_tweet_like(tweetId: str, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    return _toggle_response(db, LikeTarget.TWEET, tweetId, current_user)


@router.get("/videos")
def get_liked_videos(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    page_num, limit_num = page_params(page, limit)
    result = paginate(db["like"], pipelines.liked_videos(current_user["_id"]), page_num, limit_num)
    return api_response(200, result, "Liked videos fetched successfully")
