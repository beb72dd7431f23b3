"""
Content fetchers — per-type candidate queries for the explore feed.

Every fetcher takes an AsyncSession and returns summaries with engagement
counters attached. Counters are correlated COUNT subqueries, so one
statement returns a page of rows with their likes/comments/shares/views.

Visibility: public videos, plus private videos of creators the viewer
follows. Recency: ``timeframe`` ∈ hour/day/week/month/all (all = no cutoff).
"""
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clipfeed.feed.scoring import trending_score
from clipfeed.models import (
    Comment,
    Follow,
    Like,
    Share,
    Sound,
    User,
    UserRole,
    Video,
    ViewHistory,
    utcnow,
)
from clipfeed.schemas import (
    CategorySummary,
    CreatorSummary,
    SoundRef,
    SoundSummary,
    VideoOwner,
    VideoSummary,
)

logger = logging.getLogger(__name__)

TIMEFRAMES = {
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "all": None,
}

CREATOR_ROLES = (UserRole.CREATOR.value, UserRole.ADMIN.value)
RECENT_VIDEOS_SAMPLED = 10    # videos per creator/sound summed into recent engagement
RECOMMEND_MIN_LIKES = 10


def window_start(timeframe: str, now: Optional[datetime] = None) -> Optional[datetime]:
    span = TIMEFRAMES[timeframe]
    if span is None:
        return None
    return (now or utcnow()) - span


# ─────────────────────────── Query building blocks ────────────────────────

def _video_count(model, fk):
    """Correlated COUNT(*) of *model* rows whose *fk* points at the outer video."""
    return (
        select(func.count())
        .select_from(model)
        .where(fk == Video.id)
        .correlate(Video)
        .scalar_subquery()
    )


def _engagement_columns():
    return (
        _video_count(Like, Like.video_id).label("likes_count"),
        _video_count(Comment, Comment.video_id).label("comments_count"),
        _video_count(Share, Share.video_id).label("shares_count"),
        _video_count(ViewHistory, ViewHistory.video_id).label("views_count"),
    )


def _visible_to(viewer_id: Optional[str]):
    public = Video.is_public.is_(True)
    if viewer_id is None:
        return public
    followed = select(Follow.following_id).where(Follow.follower_id == viewer_id)
    return or_(public, and_(Video.is_public.is_(False), Video.user_id.in_(followed)))


def _text_match(term: str, words: list[str], term_columns, word_columns):
    """OR of case-insensitive substring tests: whole term, then each word."""
    clauses = [
        func.lower(col).contains(term.lower(), autoescape=True) for col in term_columns
    ]
    for word in words:
        clauses.extend(
            func.lower(col).contains(word.lower(), autoescape=True)
            for col in word_columns
        )
    return or_(*clauses)


def _follower_count():
    return (
        select(func.count())
        .select_from(Follow)
        .where(Follow.following_id == User.id)
        .correlate(User)
        .scalar_subquery()
        .label("followers_count")
    )


def _user_video_count():
    return (
        select(func.count())
        .select_from(Video)
        .where(Video.user_id == User.id)
        .correlate(User)
        .scalar_subquery()
        .label("videos_count")
    )


def _sound_usage_count():
    return (
        select(func.count())
        .select_from(Video)
        .where(Video.sound_id == Sound.id)
        .correlate(Sound)
        .scalar_subquery()
        .label("videos_count")
    )


def _video_summary(
    video: Video,
    likes: int,
    comments: int,
    shares: int,
    views: int,
    now: Optional[datetime] = None,
) -> VideoSummary:
    return VideoSummary(
        id=video.id,
        title=video.title,
        description=video.description,
        video_url=video.video_url,
        thumbnail_url=video.thumbnail_url,
        duration=video.duration,
        user=VideoOwner.model_validate(video.user),
        sound=SoundRef.model_validate(video.sound) if video.sound else None,
        likes_count=likes,
        comments_count=comments,
        shares_count=shares,
        views_count=views,
        created_at=video.created_at,
        trending_score=trending_score(
            likes, comments, shares, views, video.created_at, now=now
        ),
    )


def _creator_summary(user: User, followers: int, videos: int, recent: int = 0) -> CreatorSummary:
    return CreatorSummary(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        bio=user.bio,
        profile_photo_url=user.profile_photo_url,
        verified=user.creator_verified,
        category=user.creator_category,
        followers_count=followers,
        videos_count=videos,
        recent_engagement=recent,
    )


def _sound_summary(sound: Sound, usage: int, recent: int = 0) -> SoundSummary:
    return SoundSummary(
        id=sound.id,
        title=sound.title,
        artist_name=sound.artist_name,
        sound_url=sound.sound_url,
        duration=sound.duration,
        is_original=sound.is_original,
        videos_count=usage,
        recent_engagement=recent,
        created_at=sound.created_at,
    )


async def _recent_engagement(
    session: AsyncSession, owner_col, owner_ids: list[str], since: Optional[datetime]
) -> dict[str, int]:
    """likes + views over the newest public videos of each owner in the window."""
    if not owner_ids:
        return {}

    likes = _video_count(Like, Like.video_id)
    views = _video_count(ViewHistory, ViewHistory.video_id)
    conditions = [owner_col.in_(owner_ids), Video.is_public.is_(True)]
    if since is not None:
        conditions.append(Video.created_at >= since)

    rows = await session.execute(
        select(owner_col, likes, views)
        .where(*conditions)
        .order_by(Video.created_at.desc())
    )

    totals: dict[str, int] = defaultdict(int)
    sampled: dict[str, int] = defaultdict(int)
    for owner_id, like_count, view_count in rows.all():
        if sampled[owner_id] >= RECENT_VIDEOS_SAMPLED:
            continue
        sampled[owner_id] += 1
        totals[owner_id] += like_count + view_count
    return totals


# ─────────────────────────── Trending / popular ───────────────────────────

async def fetch_trending_videos(
    session: AsyncSession,
    *,
    limit: int,
    offset: int = 0,
    viewer_id: Optional[str] = None,
    timeframe: str = "week",
    category: Optional[str] = None,
    overfetch: int = 2,
    now: Optional[datetime] = None,
) -> list[VideoSummary]:
    """
    Videos ranked by trending score.

    Reads ``(offset + limit) * overfetch`` of the newest visible videos in the
    window, scores them, and slices the requested page out of that ranking.
    """
    now = now or utcnow()
    conditions = [_visible_to(viewer_id)]
    since = window_start(timeframe, now)
    if since is not None:
        conditions.append(Video.created_at >= since)
    if category:
        conditions.append(
            Video.user.has(func.lower(User.creator_category) == category.lower())
        )

    stmt = (
        select(Video, *_engagement_columns())
        .where(*conditions)
        .order_by(Video.created_at.desc())
        .limit((offset + limit) * overfetch)
    )
    rows = (await session.execute(stmt)).all()

    videos = [_video_summary(*row, now=now) for row in rows]
    videos.sort(key=lambda v: v.trending_score, reverse=True)
    return videos[offset : offset + limit]


async def fetch_popular_creators(
    session: AsyncSession,
    *,
    limit: int,
    offset: int = 0,
    timeframe: str = "week",
    now: Optional[datetime] = None,
) -> list[CreatorSummary]:
    """Active creators with a public video in the window, most-followed first."""
    since = window_start(timeframe, now)
    recent_public = [Video.user_id == User.id, Video.is_public.is_(True)]
    if since is not None:
        recent_public.append(Video.created_at >= since)

    followers = _follower_count()
    videos = _user_video_count()
    stmt = (
        select(User, followers, videos)
        .where(
            User.deactivated_at.is_(None),
            User.role.in_(CREATOR_ROLES),
            select(Video.id).where(*recent_public).exists(),
        )
        .order_by(followers.desc(), User.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = (await session.execute(stmt)).all()

    engagement = await _recent_engagement(
        session, Video.user_id, [user.id for user, _, _ in rows], since
    )
    return [
        _creator_summary(user, follower_count, video_count, engagement.get(user.id, 0))
        for user, follower_count, video_count in rows
    ]


async def fetch_trending_sounds(
    session: AsyncSession,
    *,
    limit: int,
    offset: int = 0,
    timeframe: str = "week",
    now: Optional[datetime] = None,
) -> list[SoundSummary]:
    """Sounds used by a public video in the window, most-used first."""
    since = window_start(timeframe, now)
    recent_public = [Video.sound_id == Sound.id, Video.is_public.is_(True)]
    if since is not None:
        recent_public.append(Video.created_at >= since)

    usage = _sound_usage_count()
    stmt = (
        select(Sound, usage)
        .where(select(Video.id).where(*recent_public).exists())
        .order_by(usage.desc(), Sound.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = (await session.execute(stmt)).all()

    engagement = await _recent_engagement(
        session, Video.sound_id, [sound.id for sound, _ in rows], since
    )
    return [
        _sound_summary(sound, usage_count, engagement.get(sound.id, 0))
        for sound, usage_count in rows
    ]


# ─────────────────────────── Search ───────────────────────────────────────

def split_words(term: str) -> list[str]:
    return [word for word in term.split(" ") if word]


async def search_videos(
    session: AsyncSession,
    term: str,
    *,
    limit: int,
    offset: int = 0,
    viewer_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list[VideoSummary]:
    words = split_words(term)
    matches = or_(
        _text_match(term, words, [Video.title, Video.description], [Video.title, Video.description]),
        Video.user.has(func.lower(User.username).contains(term.lower(), autoescape=True)),
    )
    likes, comments, shares, views = _engagement_columns()
    stmt = (
        select(Video, likes, comments, shares, views)
        .where(_visible_to(viewer_id), matches)
        .order_by(likes.desc(), views.desc(), Video.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = (await session.execute(stmt)).all()
    return [_video_summary(*row, now=now) for row in rows]


async def search_users(
    session: AsyncSession, term: str, *, limit: int, offset: int = 0
) -> list[CreatorSummary]:
    words = split_words(term)
    followers = _follower_count()
    videos = _user_video_count()
    stmt = (
        select(User, followers, videos)
        .where(
            User.deactivated_at.is_(None),
            _text_match(
                term,
                words,
                [User.username, User.full_name, User.bio],
                [User.username, User.full_name],
            ),
        )
        .order_by(followers.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = (await session.execute(stmt)).all()
    return [_creator_summary(user, f, v) for user, f, v in rows]


async def search_sounds(
    session: AsyncSession, term: str, *, limit: int, offset: int = 0
) -> list[SoundSummary]:
    words = split_words(term)
    usage = _sound_usage_count()
    stmt = (
        select(Sound, usage)
        .where(
            _text_match(
                term,
                words,
                [Sound.title, Sound.artist_name],
                [Sound.title, Sound.artist_name],
            )
        )
        .order_by(usage.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = (await session.execute(stmt)).all()
    return [_sound_summary(sound, usage_count) for sound, usage_count in rows]


# ─────────────────────────── Explore sections ─────────────────────────────

async def fetch_categories(
    session: AsyncSession, *, limit: int, offset: int = 0
) -> list[CategorySummary]:
    """Creator categories with the number of videos published in each."""
    video_total = func.count(Video.id)
    stmt = (
        select(User.creator_category, video_total)
        .select_from(User)
        .outerjoin(Video, Video.user_id == User.id)
        .where(
            User.creator_category.is_not(None),
            User.deactivated_at.is_(None),
            User.role.in_(CREATOR_ROLES),
        )
        .group_by(User.creator_category)
        .order_by(video_total.desc(), User.creator_category)
        .limit(limit)
        .offset(offset)
    )
    rows = (await session.execute(stmt)).all()
    return [CategorySummary(name=name, videos_count=count) for name, count in rows]


async def fetch_recommendations(
    session: AsyncSession,
    viewer_id: str,
    *,
    limit: int,
    offset: int = 0,
    now: Optional[datetime] = None,
) -> Optional[list[VideoSummary]]:
    """
    Newest public videos from followed creators, creators in the viewer's
    interest categories, or with at least RECOMMEND_MIN_LIKES likes.

    Returns None when the viewer no longer exists, so the caller can fall back
    to trending content.
    """
    # populate_existing: the viewer may already sit in the identity map
    # without its interests loaded
    user = await session.get(
        User,
        viewer_id,
        options=[selectinload(User.interests)],
        populate_existing=True,
    )
    if user is None:
        return None

    interests = [interest.name for interest in user.interests]
    followed = select(Follow.following_id).where(Follow.follower_id == viewer_id)

    reasons = [
        Video.user_id.in_(followed),
        _video_count(Like, Like.video_id) >= RECOMMEND_MIN_LIKES,
    ]
    if interests:
        reasons.append(Video.user.has(User.creator_category.in_(interests)))

    stmt = (
        select(Video, *_engagement_columns())
        .where(Video.is_public.is_(True), or_(*reasons))
        .order_by(Video.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = (await session.execute(stmt)).all()
    return [_video_summary(*row, now=now) for row in rows]
