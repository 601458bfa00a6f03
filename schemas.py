"""
Database Schemas for the video sharing backend

Each Pydantic model maps to a MongoDB collection. The collection name is the lowercase of the class name.

Collections:
- User -> user
- Video -> video
- Comment -> comment
- Tweet -> tweet
- Like -> like
- Subscription -> subscription
- Playlist -> playlist

Stored field names are camelCase, the same as they appear in API responses.
"""

from enum import Enum
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

FULL_NAME_MAX_LENGTH = 80
TITLE_MAX_LENGTH = 120


class Document(BaseModel):
    """Base for stored documents; ObjectId references stay ObjectId."""
    model_config = ConfigDict(arbitrary_types_allowed=True)


class MediaAsset(BaseModel):
    url: str
    public_id: str


class User(Document):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    fullName: str = Field(..., min_length=1, max_length=FULL_NAME_MAX_LENGTH)
    password: str = Field(..., description="Bcrypt hash")
    avatar: Optional[MediaAsset] = None
    coverImage: Optional[MediaAsset] = None
    watchHistory: List[ObjectId] = Field(default_factory=list)
    sessionToken: Optional[str] = Field(None, description="sha256 of the current session token")


class Video(Document):
    videoFile: MediaAsset
    thumbnail: MediaAsset
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1)
    duration: float = Field(0, ge=0, description="Length in seconds")
    views: int = Field(0, ge=0)
    isPublished: bool = False
    owner: ObjectId


class Comment(Document):
    content: str = Field(..., min_length=1, max_length=1000)
    video: ObjectId
    owner: ObjectId


class Tweet(Document):
    content: str = Field(..., min_length=1, max_length=280)
    owner: ObjectId


class Like(Document):
    """Exactly one of video, comment or tweet is set."""
    video: Optional[ObjectId] = None
    comment: Optional[ObjectId] = None
    tweet: Optional[ObjectId] = None
    likedBy: ObjectId


class Subscription(Document):
    subscriber: ObjectId = Field(..., description="The user who subscribes")
    channel: ObjectId = Field(..., description="The user being subscribed to")


class Playlist(Document):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    owner: ObjectId
    videos: List[ObjectId] = Field(default_factory=list)


class LikeTarget(str, Enum):
    """What a like points at. The value is both the like field and the target collection."""
    VIDEO = "video"
    COMMENT = "comment"
    TWEET = "tweet"

    @property
    def collection(self) -> str:
        return self.value


# -------------------- Request bodies --------------------

def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    fullName: str = Field(..., max_length=FULL_NAME_MAX_LENGTH)
    password: str = Field(..., min_length=8)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        return _not_blank(v).lower()

    @field_validator("fullName")
    @classmethod
    def full_name_not_blank(cls, v: str) -> str:
        return _not_blank(v)


class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: str


class UpdateAccountRequest(BaseModel):
    fullName: str = Field(..., max_length=FULL_NAME_MAX_LENGTH)
    email: EmailStr

    @field_validator("fullName")
    @classmethod
    def full_name_not_blank(cls, v: str) -> str:
        return _not_blank(v)


class ChangePasswordRequest(BaseModel):
    oldPassword: str
    newPassword: str = Field(..., min_length=8)


class CommentRequest(BaseModel):
    content: str = Field(..., max_length=1000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        return _not_blank(v)


class TweetRequest(BaseModel):
    content: str = Field(..., max_length=280)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        return _not_blank(v)


class PlaylistRequest(BaseModel):
    # Blank values are rejected by the handlers so the message names the field
    name: Optional[str] = None
    description: Optional[str] = None
