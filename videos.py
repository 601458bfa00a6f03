import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pymongo import ReturnDocument
from pymongo.database import Database

import pipelines
from auth import get_current_user
from config import settings
from database import create_document, find_by_id, get_db, objid, require_owner, to_str_id, utcnow
from media import MediaStore, get_media_store
from pagination import page_params, paginate
from responses import api_response
from schemas import TITLE_MAX_LENGTH, MediaAsset, Video

logger = logging.getLogger(__name__)
router = APIRouter()


def _required(value: Optional[str], label: str) -> str:
    if value is None or not value.strip():
        raise HTTPException(status_code=400, detail=f"{label} is required")
    return value.strip()


def _title(value: Optional[str]) -> str:
    title = _required(value, "Title")
    if len(title) > TITLE_MAX_LENGTH:
        raise HTTPException(status_code=400, detail=f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return title


@router.get("")
def list_videos(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    query: Optional[str] = None,
    sortBy: Optional[str] = None,
    sortType: Optional[str] = None,
    userId: Optional[str] = None,
    db: Database = Depends(get_db),
):
    """
    Published videos, newest first unless sortBy/sortType say otherwise.
    - query: free-text search over title and description
    - userId: only this owner's videos
    """
    owner_id = objid(userId, "userId") if userId else None
    page_num, limit_num = page_params(page, limit)
    pipeline = pipelines.video_list(query, owner_id, sortBy, sortType)
    result = paginate(db["video"], pipeline, page_num, limit_num)
    return api_response(200, result, "Videos fetched successfully")


@router.post("", status_code=201)
def publish_video(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    duration: Optional[float] = Form(None),
    videoFile: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
    media: MediaStore = Depends(get_media_store),
    current_user: dict = Depends(get_current_user),
):
    """Upload a video and its thumbnail. New videos start unpublished."""
    title = _title(title)
    description = _required(description, "Description")
    if videoFile is None or thumbnail is None:
        raise HTTPException(status_code=400, detail="Video and thumbnail are required")
    if duration is not None and not duration >= 0:
        raise HTTPException(status_code=400, detail="Duration must not be negative")

    stored_video = media.upload(videoFile, "video")
    try:
        stored_thumb = media.upload(thumbnail, "image")
    except HTTPException:
        media.delete(stored_video["public_id"], "video")
        raise

    try:
        video = create_document(db, "video", Video(
            videoFile=MediaAsset(url=stored_video["url"], public_id=stored_video["public_id"]),
            thumbnail=MediaAsset(url=stored_thumb["url"], public_id=stored_thumb["public_id"]),
            title=title,
            description=description,
            duration=duration if duration is not None else (stored_video["duration"] or 0),
            owner=current_user["_id"],
            isPublished=False,
        ))
    except Exception:
        # No document points at the uploads, so drop them
        media.delete(stored_video["public_id"], "video")
        media.delete(stored_thumb["public_id"], "image")
        logger.warning(f"Video upload by {current_user['username']} not stored; removed its files")
        raise
    return api_response(201, to_str_id(video), "Video uploaded successfully")


@router.get("/{videoId}")
def get_video(videoId: str, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    """Video details. Counts a view and records it in the viewer's watch history."""
    video_id = objid(videoId, "videoId")
    found = list(db["video"].aggregate(pipelines.video_detail(video_id, current_user["_id"])))
    if not found:
        raise HTTPException(status_code=404, detail="Video not found")

    db["video"].update_one({"_id": video_id}, {"$inc": {"views": 1}})
    db["user"].update_one({"_id": current_user["_id"]}, {"$addToSet": {"watchHistory": video_id}})
    video = found[0]
    video["views"] = video.get("views", 0) + 1
    return api_response(200, to_str_id(video), "Video details fetched successfully")


@router.patch("/{videoId}")
def update_video(
    videoId: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
    media: MediaStore = Depends(get_media_store),
    current_user: dict = Depends(get_current_user),
):
    """Edit title and description; a new thumbnail replaces the old one."""
    video_id = objid(videoId, "videoId")
    title = _title(title)
    description = _required(description, "Description")

    video = find_by_id(db, "video", video_id, "Video")
    require_owner(video, current_user, "edit your own videos")

    changes = {"title": title, "description": description, "updatedAt": utcnow()}
    if thumbnail is not None and thumbnail.filename:
        stored = media.upload(thumbnail, "image")
        changes["thumbnail"] = {"url": stored["url"], "public_id": stored["public_id"]}

    updated = db["video"].find_one_and_update(
        {"_id": video_id}, {"$set": changes}, return_document=ReturnDocument.AFTER
    )
    if updated is None:
        raise HTTPException(status_code=404, detail="Video not found")
    if "thumbnail" in changes:
        media.delete(video["thumbnail"]["public_id"], "image")
    logger.info(f"Video updated: {videoId}")
    return api_response(200, to_str_id(updated), "Video updated successfully")


def _delete_video_records(db: Database, video_id, session=None):
    opts = {"session": session} if session is not None else {}
    db["video"].delete_one({"_id": video_id}, **opts)
    comment_ids = [c["_id"] for c in db["comment"].find({"video": video_id}, {"_id": 1}, **opts)]
    db["like"].delete_many({"video": video_id}, **opts)
    if comment_ids:
        db["like"].delete_many({"comment": {"$in": comment_ids}}, **opts)
    db["comment"].delete_many({"video": video_id}, **opts)
    db["playlist"].update_many({"videos": video_id}, {"$pull": {"videos": video_id}}, **opts)


@router.delete("/{videoId}")
def delete_video(
    videoId: str,
    db: Database = Depends(get_db),
    media: MediaStore = Depends(get_media_store),
    current_user: dict = Depends(get_current_user),
):
    """
    Delete a video with its likes, comments (and their likes), playlist entries
    and stored files. The database part runs in one transaction when
    USE_TRANSACTIONS is on, otherwise step by step. File removal comes last and
    a failure there is reported as mediaCleanup "partial" instead of an error.
    """
    video_id = objid(videoId, "videoId")
    video = find_by_id(db, "video", video_id, "Video")
    require_owner(video, current_user, "delete your own videos")

    if settings.USE_TRANSACTIONS:
        with db.client.start_session() as session:
            session.with_transaction(lambda s: _delete_video_records(db, video_id, session=s))
    else:
        _delete_video_records(db, video_id)

    cleaned = [
        media.delete(video["videoFile"]["public_id"], "video"),
        media.delete(video["thumbnail"]["public_id"], "image"),
    ]
    if not all(cleaned):
        logger.warning(f"Video {videoId} deleted but some media files remain")
    logger.info(f"Video deleted: {videoId}")
    return api_response(
        200,
        {"mediaCleanup": "complete" if all(cleaned) else "partial"},
        "Video deleted successfully",
    )


@router.patch("/toggle/publish/{videoId}")
def toggle_publish_status(videoId: str, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    video_id = objid(videoId, "videoId")
    video = find_by_id(db, "video", video_id, "Video")
    require_owner(video, current_user, "publish or unpublish your own videos")

    updated = db["video"].find_one_and_update(
        {"_id": video_id},
        {"$set": {"isPublished": not video.get("isPublished", False), "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    return api_response(200, {"isPublished": updated["isPublished"]}, "Publish status toggled")
