import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException
from pymongo import ReturnDocument
from pymongo.database import Database

import pipelines
from auth import get_current_user
from database import create_document, find_by_id, find_visible_video, get_db, objid, require_owner, to_str_id, utcnow
from pagination import page_params, paginate
from responses import api_response
from schemas import Playlist, PlaylistRequest

logger = logging.getLogger(__name__)
router = APIRouter()


def _name_and_description(payload: PlaylistRequest) -> Tuple[str, str]:
    """Both fields are required and non-blank; checked before any write"""
    if not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="Playlist name is required")
    if not payload.description or not payload.description.strip():
        raise HTTPException(status_code=400, detail="Playlist description is required")
    return payload.name.strip(), payload.description.strip()


def _owned_playlist_and_video(db: Database, playlistId: str, videoId: str, user: dict, action: str):
    playlist_id = objid(playlistId, "playlist ID")
    video_id = objid(videoId, "video ID")
    playlist = find_by_id(db, "playlist", playlist_id, "Playlist")
    find_by_id(db, "video", video_id, "Video")
    require_owner(playlist, user, action)
    return playlist, video_id


@router.post("", status_code=201)
def create_playlist(payload: PlaylistRequest, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    name, description = _name_and_description(payload)
    playlist = create_document(db, "playlist", Playlist(
        name=name, description=description, owner=current_user["_id"], videos=[]
    ))
    return api_response(201, to_str_id(playlist), "Playlist created successfully")


@router.get("/user/{userId}")
def get_user_playlists(
    userId: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Database = Depends(get_db),
):
    owner_id = objid(userId, "user ID")
    page_num, limit_num = page_params(page, limit)
    result = paginate(db["playlist"], pipelines.user_playlists(owner_id), page_num, limit_num)
    return api_response(200, result, "User playlists fetched successfully")


@router.get("/{playlistId}")
def get_playlist(playlistId: str, db: Database = Depends(get_db)):
    playlist_id = objid(playlistId, "playlist ID")
    found = list(db["playlist"].aggregate(pipelines.playlist_detail(playlist_id)))
    if not found:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return api_response(200, to_str_id(found[0]), "Playlist fetched successfully")


@router.patch("/add/{videoId}/{playlistId}")
def add_video_to_playlist(
    videoId: str,
    playlistId: str,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    playlist, video_id = _owned_playlist_and_video(
        db, playlistId, videoId, current_user, "add videos to your own playlists"
    )
    find_visible_video(db, video_id, current_user["_id"])
    if video_id in playlist.get("videos", []):
        raise HTTPException(status_code=409, detail="Video already exists in playlist")

    updated = db["playlist"].find_one_and_update(
        {"_id": playlist["_id"]},
        {"$addToSet": {"videos": video_id}, "$set": {"updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    logger.info(f"Video {videoId} added to playlist {playlistId}")
    return api_response(200, to_str_id(updated), "Video added to playlist successfully")


@router.patch("/remove/{videoId}/{playlistId}")
def remove_video_from_playlist(
    videoId: str,
    playlistId: str,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    playlist, video_id = _owned_playlist_and_video(
        db, playlistId, videoId, current_user, "remove videos from your own playlists"
    )
    updated = db["playlist"].find_one_and_update(
        {"_id": playlist["_id"]},
        {"$pull": {"videos": video_id}, "$set": {"updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    logger.info(f"Video {videoId} removed from playlist {playlistId}")
    return api_response(200, to_str_id(updated), "Video removed from playlist successfully")


@router.patch("/{playlistId}")
def update_playlist(
    playlistId: str,
    payload: PlaylistRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    playlist_id = objid(playlistId, "playlist ID")
    name, description = _name_and_description(payload)
    playlist = find_by_id(db, "playlist", playlist_id, "Playlist")
    require_owner(playlist, current_user, "update your own playlists")

    updated = db["playlist"].find_one_and_update(
        {"_id": playlist_id},
        {"$set": {"name": name, "description": description, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    return api_response(200, to_str_id(updated), "Playlist updated successfully")


@router.delete("/{playlistId}")
def delete_playlist(playlistId: str, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    playlist_id = objid(playlistId, "playlist ID")
    playlist = find_by_id(db, "playlist", playlist_id, "Playlist")
    require_owner(playlist, current_user, "delete your own playlists")
    db["playlist"].delete_one({"_id": playlist_id})
    logger.info(f"Playlist deleted: {playlistId}")
    return api_response(200, {}, "Playlist deleted successfully")
