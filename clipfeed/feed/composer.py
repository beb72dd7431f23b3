"""
Explore feed composer — GET /explore/feed.

  Stage 1 │ Plan
  ────────┼──────────────────────────────────────────────────────────────
          │  Split the page between videos / creators / sounds by type
          │  ratio (all: 65% / 25% / 10%; a single type gets 100%).

  Stage 2 │ Fetch (concurrent, failure-isolated)
  ────────┼──────────────────────────────────────────────────────────────
          │  One task per content type, each with its own DB session.
          │  A failed fetch is logged and served as an empty list.

  Stage 3 │ Score & lay out
  ────────┼──────────────────────────────────────────────────────────────
          │  Explore mode: trending score + jitter.
          │  Search mode:  relevance score.
          │  Each item gets a grid aspect ratio from (item, index).

  Stage 4 │ Mix & paginate
  ────────┼──────────────────────────────────────────────────────────────
          │  Explore mode interleaves the kinds under positional quotas;
          │  search mode orders everything by relevance. Truncate to limit.
"""
import asyncio
import logging
import math
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clipfeed.config import settings
from clipfeed.feed import fetchers
from clipfeed.feed.layout import assign_aspect_ratio
from clipfeed.feed.mixer import mix_for_grid, paginate
from clipfeed.feed.scoring import explore_priority, search_priority
from clipfeed.schemas import FeedItem
from clipfeed.telemetry import FETCH_FAILURES_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

KINDS = ("video", "user", "sound")
TYPE_FILTER = {"videos": "video", "users": "user", "sounds": "sound"}


@dataclass(frozen=True)
class FeedPlan:
    """How many items of each kind to fetch, and from which offset."""
    video_limit: int
    user_limit: int
    sound_limit: int
    video_offset: int
    user_offset: int
    sound_offset: int


def type_ratios(content_type: str) -> dict[str, float]:
    if content_type == "all":
        return {
            "video": settings.video_ratio,
            "user": settings.user_ratio,
            "sound": settings.sound_ratio,
        }
    wanted = TYPE_FILTER[content_type]
    return {kind: 1.0 if kind == wanted else 0.0 for kind in KINDS}


def plan_feed(content_type: str, limit: int, offset: int) -> FeedPlan:
    ratios = type_ratios(content_type)
    return FeedPlan(
        video_limit=math.ceil(limit * ratios["video"]),
        user_limit=math.ceil(limit * ratios["user"]),
        sound_limit=math.ceil(limit * ratios["sound"]),
        video_offset=math.floor(offset * ratios["video"]),
        user_offset=math.floor(offset * ratios["user"]),
        sound_offset=math.floor(offset * ratios["sound"]),
    )


def is_search(query: Optional[str]) -> bool:
    return bool(query) and len(query.strip()) >= settings.search_min_length


Fetch = Callable[[AsyncSession], Awaitable[list]]


async def _run_fetch(session_factory: async_sessionmaker, fetch: Fetch) -> list:
    async with session_factory() as session:
        return await fetch(session)


async def gather_isolated(
    session_factory: async_sessionmaker, fetches: dict[str, Fetch]
) -> dict[str, list]:
    """
    Run one fetch per kind concurrently; a failure yields [] for that kind.

    Every task opens its own session; an AsyncSession must not be shared
    between concurrent tasks.
    """
    kinds = list(fetches)
    results = await asyncio.gather(
        *(_run_fetch(session_factory, fetches[kind]) for kind in kinds),
        return_exceptions=True,
    )

    out: dict[str, list] = {kind: [] for kind in KINDS}
    for kind, result in zip(kinds, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result  # cancellation and interpreter exits propagate
            logger.warning("Fetch of %s content failed (%s), serving none", kind, result)
            FETCH_FAILURES_TOTAL.labels(kind=kind).inc()
            continue
        out[kind] = result
    return out


def _feed_item(kind: str, data, index: int, priority: float) -> FeedItem:
    return FeedItem(
        id=f"{kind}-{data.id}",
        kind=kind,
        aspect_ratio=assign_aspect_ratio(kind, data, index),
        priority=priority,
        data=data,
    )


async def compose_explore_feed(
    session_factory: async_sessionmaker,
    *,
    content_type: str,
    limit: int,
    offset: int,
    viewer_id: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> tuple[list[FeedItem], bool]:
    plan = plan_feed(content_type, limit, offset)

    fetches: dict[str, Fetch] = {}
    if plan.video_limit > 0:
        fetches["video"] = lambda s: fetchers.fetch_trending_videos(
            s,
            limit=plan.video_limit,
            offset=plan.video_offset,
            viewer_id=viewer_id,
            timeframe=settings.feed_timeframe,
            overfetch=settings.feed_overfetch,
        )
    if plan.user_limit > 0:
        fetches["user"] = lambda s: fetchers.fetch_popular_creators(
            s,
            limit=plan.user_limit,
            offset=plan.user_offset,
            timeframe=settings.feed_timeframe,
        )
    if plan.sound_limit > 0:
        fetches["sound"] = lambda s: fetchers.fetch_trending_sounds(
            s,
            limit=plan.sound_limit,
            offset=plan.sound_offset,
            timeframe=settings.feed_timeframe,
        )

    with tracer.start_as_current_span("explore_fetch"):
        fetched = await gather_isolated(session_factory, fetches)

    with tracer.start_as_current_span("explore_mix") as span:
        per_kind: dict[str, list[FeedItem]] = {}
        for kind in KINDS:
            items = [
                _feed_item(kind, data, index, explore_priority(kind, data, index, rng))
                for index, data in enumerate(fetched[kind])
            ]
            # Mixer consumes each list from the front, highest priority first
            items.sort(key=lambda item: item.priority, reverse=True)
            per_kind[kind] = items
            span.set_attribute(f"candidates.{kind}", len(items))

        mixed = mix_for_grid(per_kind["video"], per_kind["user"], per_kind["sound"])

    return paginate(mixed, limit)


async def compose_search_feed(
    session_factory: async_sessionmaker,
    query: str,
    *,
    content_type: str,
    limit: int,
    offset: int,
    viewer_id: Optional[str] = None,
) -> tuple[list[FeedItem], bool]:
    term = query.strip()
    wanted = KINDS if content_type == "all" else (TYPE_FILTER[content_type],)

    fetches: dict[str, Fetch] = {}
    if "video" in wanted:
        fetches["video"] = lambda s: fetchers.search_videos(
            s, term, limit=limit, offset=offset, viewer_id=viewer_id
        )
    if "user" in wanted:
        fetches["user"] = lambda s: fetchers.search_users(s, term, limit=limit, offset=offset)
    if "sound" in wanted:
        fetches["sound"] = lambda s: fetchers.search_sounds(s, term, limit=limit, offset=offset)

    with tracer.start_as_current_span("search_fetch"):
        fetched = await gather_isolated(session_factory, fetches)

    items = [
        _feed_item(kind, data, index, search_priority(kind, data, term))
        for kind in KINDS
        for index, data in enumerate(fetched[kind])
    ]
    # Stable sort: equal relevance keeps videos, then users, then sounds
    items.sort(key=lambda item: item.priority, reverse=True)

    return paginate(items, limit)
