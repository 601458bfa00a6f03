import logging
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException
from pymongo.database import Database

import pipelines
from auth import get_current_user
from database import find_by_id, get_db, objid, toggle_document
from pagination import page_params, paginate
from responses import api_response
from schemas import Subscription

logger = logging.getLogger(__name__)
router = APIRouter()


def toggle_subscription(db: Database, channel_id: ObjectId, subscriber_id: ObjectId) -> bool:
    """Subscribe to or unsubscribe from a channel. Returns True when now subscribed."""
    find_by_id(db, "user", channel_id, "Channel")
    if channel_id == subscriber_id:
        raise HTTPException(status_code=400, detail="You cannot subscribe to your own channel")
    return toggle_document(db, "subscription", Subscription(subscriber=subscriber_id, channel=channel_id))


@router.post("/c/{channelId}")
def toggle_channel_subscription(channelId: str, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    channel_id = objid(channelId, "channel ID")
    subscribed = toggle_subscription(db, channel_id, current_user["_id"])
    message = "Subscribed successfully" if subscribed else "Unsubscribed successfully"
    return api_response(200, {"subscribed": subscribed}, message)


@router.get("/c/{channelId}")
def get_channel_subscribers(
    channelId: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """Subscribers of a channel, flagged with whether the viewer follows each back"""
    channel_id = objid(channelId, "channel ID")
    find_by_id(db, "user", channel_id, "Channel")
    page_num, limit_num = page_params(page, limit)
    pipeline = pipelines.channel_subscribers(channel_id, current_user["_id"])
    result = paginate(db["subscription"], pipeline, page_num, limit_num)
    return api_response(200, result, "Subscribers fetched successfully")


@router.get("/u/{subscriberId}")
def get_subscribed_channels(
    subscriberId: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    subscriber_id = objid(subscriberId, "subscriber ID")
    find_by_id(db, "user", subscriber_id, "Subscriber")
    page_num, limit_num = page_params(page, limit)
    result = paginate(db["subscription"], pipelines.subscribed_channels(subscriber_id), page_num, limit_num)
    return api_response(200, result, "Subscribed channels fetched successfully")
