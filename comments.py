import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pymongo import ReturnDocument
from pymongo.database import Database

import pipelines
from auth import get_current_user
from database import create_document, find_by_id, find_visible_video, get_db, objid, require_owner, to_str_id, utcnow
from pagination import page_params, paginate
from responses import api_response
from schemas import Comment, CommentRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{videoId}")
def get_video_comments(
    videoId: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    video_id = objid(videoId, "videoId")
    find_visible_video(db, video_id, current_user["_id"])
    page_num, limit_num = page_params(page, limit)
    result = paginate(db["comment"], pipelines.video_comments(video_id, current_user["_id"]), page_num, limit_num)
    return api_response(200, result, "Comments fetched successfully")


@router.post("/{videoId}", status_code=201)
def add_comment(
    videoId: str,
    payload: CommentRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    video_id = objid(videoId, "videoId")
    find_visible_video(db, video_id, current_user["_id"])
    comment = create_document(db, "comment", Comment(
        content=payload.content, video=video_id, owner=current_user["_id"]
    ))
    return api_response(201, to_str_id(comment), "Comment added successfully")


@router.patch("/c/{commentId}")
def update_comment(
    commentId: str,
    payload: CommentRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    comment_id = objid(commentId, "commentId")
    comment = find_by_id(db, "comment", comment_id, "Comment")
    require_owner(comment, current_user, "edit your own comments")
    updated = db["comment"].find_one_and_update(
        {"_id": comment_id},
        {"$set": {"content": payload.content, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    return api_response(200, to_str_id(updated), "Comment updated successfully")


@router.delete("/c/{commentId}")
def delete_comment(commentId: str, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    comment_id = objid(commentId, "commentId")
    comment = find_by_id(db, "comment", comment_id, "Comment")
    require_owner(comment, current_user, "delete your own comments")
    db["comment"].delete_one({"_id": comment_id})
    db["like"].delete_many({"comment": comment_id})
    logger.info(f"Comment deleted: {commentId}")
    return api_response(200, {}, "Comment deleted successfully")
