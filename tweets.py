import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pymongo import ReturnDocument
from pymongo.database import Database

import pipelines
from auth import get_current_user
from database import create_document, find_by_id, get_db, objid, require_owner, to_str_id, utcnow
from pagination import page_params, paginate
from responses import api_response
from schemas import Tweet, TweetRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", status_code=201)
def create_tweet(payload: TweetRequest, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    tweet = create_document(db, "tweet", Tweet(content=payload.content, owner=current_user["_id"]))
    return api_response(201, to_str_id(tweet), "Tweet created successfully")


@router.get("/user/{userId}")
def get_user_tweets(
    userId: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    owner_id = objid(userId, "userId")
    find_by_id(db, "user", owner_id, "User")
    page_num, limit_num = page_params(page, limit)
    result = paginate(db["tweet"], pipelines.user_tweets(owner_id, current_user["_id"]), page_num, limit_num)
    return api_response(200, result, "Tweets fetched successfully")


@router.patch("/{tweetId}")
def update_tweet(
    tweetId: str,
    payload: TweetRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    tweet_id = objid(tweetId, "tweetId")
    tweet = find_by_id(db, "tweet", tweet_id, "Tweet")
    require_owner(tweet, current_user, "edit your own tweets")
    updated = db["tweet"].find_one_and_update(
        {"_id": tweet_id},
        {"$set": {"content": payload.content, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    return api_response(200, to_str_id(updated), "Tweet updated successfully")


@router.delete("/{tweetId}")
def delete_tweet(tweetId: str, db: Database = Depends(get_db), current_user: dict = Depends(get_current_user)):
    tweet_id = objid(tweetId, "tweetId")
    tweet = find_by_id(db, "tweet", tweet_id, "Tweet")
    require_owner(tweet, current_user, "delete your own tweets")
    db["tweet"].delete_one({"_id": tweet_id})
    db["like"].delete_many({"tweet": tweet_id})
    logger.info(f"Tweet deleted: {tweetId}")
    return api_response(200, {}, "Tweet deleted successfully")
