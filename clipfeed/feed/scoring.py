"""
Scoring for the explore feed.

Trending mode (default explore feed):
  video    engagement = likes*2 + comments*3 + shares*4 + views
           score      = engagement / max(1, (age_hours + 1) ** 0.8)
  creator  score      = followers/1000 + recent_engagement + 500 if verified
  sound    score      = usage_count + recent_engagement/100

  The age penalty lets fresh, modestly engaged videos surface while old viral
  ones decay; shares weigh most because they spread content furthest.
  Explore-mode priorities add a bounded random jitter so repeated requests do
  not return an identical, stale ordering.

Search mode scores whole-query substring matches plus a popularity term.
"""
import random
from datetime import datetime
from typing import Optional

from clipfeed.config import settings
from clipfeed.models import utcnow
from clipfeed.schemas import CreatorSummary, SoundSummary, VideoSummary

AGE_EXPONENT = 0.8
VERIFIED_BONUS = 500


def video_engagement(likes: int, comments: int, shares: int, views: int) -> int:
    return likes * 2 + comments * 3 + shares * 4 + views


def trending_score(
    likes: int,
    comments: int,
    shares: int,
    views: int,
    created_at: datetime,
    now: Optional[datetime] = None,
) -> float:
    now = now or utcnow()
    # Clock skew can put created_at slightly in the future
    age_hours = max(0.0, (now - created_at).total_seconds() / 3600)
    engagement = video_engagement(likes, comments, shares, views)
    return engagement / max(1.0, (age_hours + 1) ** AGE_EXPONENT)


def base_score(kind: str, item) -> float:
    if kind == "video":
        if item.trending_score is not None:
            return item.trending_score
        return (item.likes_count + item.views_count) / 100
    if kind == "user":
        return (
            item.followers_count / 1000
            + item.recent_engagement
            + (VERIFIED_BONUS if item.verified else 0)
        )
    if kind == "sound":
        return item.videos_count + item.recent_engagement / 100
    raise ValueError(f"unknown feed kind: {kind}")


def explore_priority(
    kind: str, item, index: int, rng: Optional[random.Random] = None
) -> float:
    """Trending score plus jitter in [0, span), minus 0.1 per list position."""
    rng = rng or random
    jitter = rng.random() * settings.priority_jitter - index * 0.1
    return base_score(kind, item) + jitter


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def search_priority(kind: str, item, query: str) -> float:
    q = query.lower()
    score = 0.0

    if kind == "video":
        video: VideoSummary = item
        if _contains(video.title, q):
            score += 100
        if _contains(video.user.username, q):
            score += 50
        score += (video.likes_count + video.views_count) / 1000
    elif kind == "user":
        creator: CreatorSummary = item
        if _contains(creator.username, q):
            score += 100
        if _contains(creator.full_name, q):
            score += 80
        score += creator.followers_count / 1000
    elif kind == "sound":
        sound: SoundSummary = item
        if _contains(sound.title, q):
            score += 100
        if _contains(sound.artist_name, q):
            score += 50
        score += sound.videos_count
    else:
        raise ValueError(f"unknown feed kind: {kind}")

    return score
