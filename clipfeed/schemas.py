"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.

Responses are serialised with camelCase aliases (``likesCount``,
``aspectRatio``, ``hasMore``), the mobile client's wire format.
"""
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from clipfeed.config import settings


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ──────────────────────────── Query parameters ────────────────────────────

def _blank_to_default(value, default):
    # Query strings arrive as text; an empty value means "use the default"
    if value is None or value == "":
        return default
    return value


class FeedQuery(BaseModel):
    limit: int = Field(settings.feed_default_limit, ge=1, le=settings.feed_max_limit)
    offset: int = Field(0, ge=0)
    query: Optional[str] = None
    type: Literal["all", "videos", "users", "sounds"] = "all"

    @field_validator("limit", mode="before")
    @classmethod
    def _limit_default(cls, v):
        return _blank_to_default(v, settings.feed_default_limit)

    @field_validator("offset", mode="before")
    @classmethod
    def _offset_default(cls, v):
        return _blank_to_default(v, 0)

    @field_validator("type", mode="before")
    @classmethod
    def _type_default(cls, v):
        return _blank_to_default(v, "all")


class ExploreQuery(BaseModel):
    section: Literal[
        "trending", "creators", "categories", "sounds", "recommendations"
    ] = "trending"
    category: Optional[str] = None
    timeframe: Literal["hour", "day", "week", "month", "all"] = "week"
    limit: int = Field(settings.feed_default_limit, ge=1, le=settings.feed_max_limit)
    offset: int = Field(0, ge=0)

    @field_validator("section", mode="before")
    @classmethod
    def _section_default(cls, v):
        return _blank_to_default(v, "trending")

    @field_validator("timeframe", mode="before")
    @classmethod
    def _timeframe_default(cls, v):
        return _blank_to_default(v, "week")

    @field_validator("category", mode="before")
    @classmethod
    def _category_default(cls, v):
        return _blank_to_default(v, None)

    @field_validator("limit", mode="before")
    @classmethod
    def _limit_default(cls, v):
        return _blank_to_default(v, settings.feed_default_limit)

    @field_validator("offset", mode="before")
    @classmethod
    def _offset_default(cls, v):
        return _blank_to_default(v, 0)


# ──────────────────────────── Content summaries ───────────────────────────

class VideoOwner(CamelModel):
    id: str
    username: str
    full_name: Optional[str] = None
    profile_photo_url: Optional[str] = None
    creator_verified: bool = False
    creator_category: Optional[str] = None


class SoundRef(CamelModel):
    id: str
    title: str
    artist_name: Optional[str] = None
    sound_url: str
    duration: float


class VideoSummary(CamelModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    video_url: str
    thumbnail_url: Optional[str] = None
    duration: float
    user: VideoOwner
    sound: Optional[SoundRef] = None
    likes_count: int = Field(0, ge=0)
    comments_count: int = Field(0, ge=0)
    views_count: int = Field(0, ge=0)
    shares_count: int = Field(0, ge=0)
    created_at: datetime
    # Derived at read time, never persisted
    trending_score: Optional[float] = None
    type: Literal["video"] = "video"


class CreatorSummary(CamelModel):
    id: str
    username: str
    full_name: Optional[str] = None
    bio: Optional[str] = None
    profile_photo_url: Optional[str] = None
    verified: bool = False
    category: Optional[str] = None
    followers_count: int = Field(0, ge=0)
    videos_count: int = Field(0, ge=0)
    recent_engagement: int = 0
    type: Literal["creator"] = "creator"


class SoundSummary(CamelModel):
    id: str
    title: str
    artist_name: Optional[str] = None
    sound_url: str
    duration: float
    is_original: bool = False
    videos_count: int = Field(0, ge=0)
    recent_engagement: int = 0
    created_at: datetime
    type: Literal["sound"] = "sound"


class CategorySummary(CamelModel):
    name: str
    videos_count: int
    type: Literal["category"] = "category"


ExploreContent = Annotated[
    Union[VideoSummary, CreatorSummary, SoundSummary, CategorySummary],
    Field(discriminator="type"),
]


# ──────────────────────────── Mixed feed ──────────────────────────────────

class AspectRatio(str, Enum):
    SQUARE = "1:1"
    TALL = "1:2"
    PORTRAIT = "2:3"
    FULL = "9:16"
    WIDE = "2:1"


FeedKind = Literal["video", "user", "sound"]


class FeedItem(CamelModel):
    """One entry of the mixed explore feed."""
    id: str                     # "<kind>-<source id>"
    kind: FeedKind
    aspect_ratio: AspectRatio
    priority: float
    data: Union[VideoSummary, CreatorSummary, SoundSummary] = Field(discriminator="type")


class Pagination(CamelModel):
    limit: int
    offset: int
    has_more: bool


class FeedResponse(CamelModel):
    success: bool = True
    feed: list[FeedItem]
    pagination: Pagination


class ExploreResponse(CamelModel):
    success: bool = True
    section: str
    content: list[ExploreContent]
    pagination: Pagination


# ──────────────────────────── App permissions ─────────────────────────────

class PermissionUpdate(CamelModel):
    permission_id: str
    granted: bool


class PermissionStatus(CamelModel):
    id: str
    name: str
    description: str
    required: bool
    granted: bool


class PermissionsResponse(CamelModel):
    success: bool = True
    permissions: list[PermissionStatus]


class PermissionUpdateResponse(CamelModel):
    success: bool = True
    message: str
    permission: PermissionStatus
