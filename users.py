import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from pymongo import ReturnDocument
from pymongo.database import Database

import pipelines
from auth import get_current_user, hash_password, hash_token, new_session_token, verify_password
from config import settings
from database import create_document, get_db, to_str_id, utcnow
from media import MediaStore, get_media_store
from responses import api_response
from schemas import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    UpdateAccountRequest,
    User,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db: Database = Depends(get_db)):
    """Create an account. Username and email must be unused."""
    if db["user"].find_one({"email": payload.email}):
        raise HTTPException(status_code=409, detail="Email already in use")
    if db["user"].find_one({"username": payload.username}):
        raise HTTPException(status_code=409, detail="Username already in use")

    user = create_document(db, "user", User(
        username=payload.username,
        email=payload.email,
        fullName=payload.fullName,
        password=hash_password(payload.password),
    ))
    return api_response(201, to_str_id(user), "User registered successfully")


@router.post("/login")
def login(payload: LoginRequest, response: Response, db: Database = Depends(get_db)):
    """
    Log in with username or email. Starts a new session (dropping any previous
    one) and returns the token both as a cookie and in the body.
    """
    if not payload.username and not payload.email:
        raise HTTPException(status_code=400, detail="Username or email is required")
    query = {"username": payload.username.lower()} if payload.username else {"email": payload.email}
    user = db["user"].find_one(query)
    if not user or not verify_password(payload.password, user.get("password", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = new_session_token()
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"sessionToken": hash_token(token), "updatedAt": utcnow()}},
    )
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
    logger.info(f"User logged in: {user['username']}")
    return api_response(200, {"user": to_str_id(user), "accessToken": token}, "User logged in successfully")


@router.post("/logout")
def logout(response: Response, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    db["user"].update_one({"_id": current_user["_id"]}, {"$unset": {"sessionToken": ""}})
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return api_response(200, {}, "User logged out")


@router.get("/current-user")
def current_user_info(current_user: dict = Depends(get_current_user)):
    return api_response(200, to_str_id(current_user), "Current user fetched successfully")


@router.patch("/update-account")
def update_account(
    payload: UpdateAccountRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    taken = db["user"].find_one({"email": payload.email, "_id": {"$ne": current_user["_id"]}})
    if taken:
        raise HTTPException(status_code=409, detail="Email already in use")
    user = db["user"].find_one_and_update(
        {"_id": current_user["_id"]},
        {"$set": {"fullName": payload.fullName, "email": payload.email, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    return api_response(200, to_str_id(user), "Account details updated successfully")


@router.post("/change-password")
def change_password(
    payload: ChangePasswordRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    if not verify_password(payload.oldPassword, current_user.get("password", "")):
        raise HTTPException(status_code=400, detail="Invalid old password")
    db["user"].update_one(
        {"_id": current_user["_id"]},
        {"$set": {"password": hash_password(payload.newPassword), "updatedAt": utcnow()}},
    )
    return api_response(200, {}, "Password changed successfully")


def _replace_image(field: str, file: Optional[UploadFile], db: Database, media: MediaStore, user: dict) -> dict:
    asset = media.upload(file, "image")
    updated = db["user"].find_one_and_update(
        {"_id": user["_id"]},
        {"$set": {field: {"url": asset["url"], "public_id": asset["public_id"]}, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    old = user.get(field)
    if old:
        media.delete(old["public_id"], "image")
    return updated


@router.patch("/avatar")
def update_avatar(
    avatar: UploadFile = File(...),
    db: Database = Depends(get_db),
    media: MediaStore = Depends(get_media_store),
    current_user: dict = Depends(get_current_user),
):
    user = _replace_image("avatar", avatar, db, media, current_user)
    return api_response(200, to_str_id(user), "Avatar updated successfully")


@router.patch("/cover-image")
def update_cover_image(
    coverImage: UploadFile = File(...),
    db: Database = Depends(get_db),
    media: MediaStore = Depends(get_media_store),
    current_user: dict = Depends(get_current_user),
):
    user = _replace_image("coverImage", coverImage, db, media, current_user)
    return api_response(200, to_str_id(user), "Cover image updated successfully")


@router.get("/c/{username}")
def channel_profile(username: str, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    if not username.strip():
        raise HTTPException(status_code=400, detail="Username is missing")
    channel = list(db["user"].aggregate(pipelines.channel_profile(username.strip(), current_user["_id"])))
    if not channel:
        raise HTTPException(status_code=404, detail="Channel does not exist")
    return api_response(200, to_str_id(channel[0]), "User channel fetched successfully")


@router.get("/history")
def watch_history(db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    """Watched videos, most recently first-watched first"""
    result = list(db["user"].aggregate(pipelines.watch_history(current_user["_id"])))
    if not result:
        return api_response(200, [], "Watch history fetched successfully")
    order = {vid: i for i, vid in enumerate(result[0].get("historyIds", []))}
    videos = sorted(result[0]["watchHistory"], key=lambda v: order.get(v["_id"], -1), reverse=True)
    return api_response(200, to_str_id(videos), "Watch history fetched successfully")
