"""
Explore endpoints:
  GET /explore/feed — mixed videos / creators / sounds stream for the
                      masonry grid (search mode when ``query`` is given)
  GET /explore      — one content section: trending, creators,
                      categories, sounds or recommendations

Authentication is optional: a valid bearer token adds private videos of
followed creators and personalises recommendations.
"""
import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clipfeed.auth import AuthUser, get_optional_user
from clipfeed.config import settings
from clipfeed.database import get_db, get_session_factory
from clipfeed.errors import parse_query
from clipfeed.feed import fetchers
from clipfeed.feed.composer import compose_explore_feed, compose_search_feed, is_search
from clipfeed.schemas import ExploreQuery, ExploreResponse, FeedQuery, FeedResponse, Pagination
from clipfeed.telemetry import FEED_ITEMS_TOTAL, FEED_LATENCY, SECTION_REQUESTS_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    params: FeedQuery = Depends(parse_query(FeedQuery)),
    auth_user: Optional[AuthUser] = Depends(get_optional_user),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    start_time = time.time()
    viewer_id = auth_user.user_id if auth_user else None
    mode = "search" if is_search(params.query) else "explore"

    with tracer.start_as_current_span("get_explore_feed") as span:
        span.set_attribute("feed.mode", mode)
        span.set_attribute("feed.type", params.type)
        span.set_attribute("feed.authenticated", viewer_id is not None)

        if mode == "search":
            feed, has_more = await compose_search_feed(
                session_factory,
                params.query,
                content_type=params.type,
                limit=params.limit,
                offset=params.offset,
                viewer_id=viewer_id,
            )
        else:
            feed, has_more = await compose_explore_feed(
                session_factory,
                content_type=params.type,
                limit=params.limit,
                offset=params.offset,
                viewer_id=viewer_id,
            )

        for item in feed:
            FEED_ITEMS_TOTAL.labels(kind=item.kind).inc()
        span.set_attribute("feed.items_returned", len(feed))

    FEED_LATENCY.labels(mode=mode).observe(time.time() - start_time)
    return FeedResponse(
        feed=feed,
        pagination=Pagination(limit=params.limit, offset=params.offset, has_more=has_more),
    )


@router.get("", response_model=ExploreResponse)
async def get_explore(
    params: ExploreQuery = Depends(parse_query(ExploreQuery)),
    auth_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    viewer_id = auth_user.user_id if auth_user else None
    SECTION_REQUESTS_TOTAL.labels(section=params.section).inc()

    with tracer.start_as_current_span("get_explore_section") as span:
        span.set_attribute("explore.section", params.section)
        content = await _load_section(db, params, viewer_id)
        span.set_attribute("explore.items_returned", len(content))

    return ExploreResponse(
        section=params.section,
        content=content,
        pagination=Pagination(
            limit=params.limit,
            offset=params.offset,
            has_more=len(content) == params.limit,
        ),
    )


async def _trending(db: AsyncSession, params: ExploreQuery, viewer_id, timeframe, category):
    return await fetchers.fetch_trending_videos(
        db,
        limit=params.limit,
        offset=params.offset,
        viewer_id=viewer_id,
        timeframe=timeframe,
        category=category,
        overfetch=settings.explore_overfetch,
    )


async def _load_section(db: AsyncSession, params: ExploreQuery, viewer_id: Optional[str]) -> list:
    section = params.section

    if section == "creators":
        return await fetchers.fetch_popular_creators(
            db, limit=params.limit, offset=params.offset, timeframe=params.timeframe
        )

    if section == "sounds":
        return await fetchers.fetch_trending_sounds(
            db, limit=params.limit, offset=params.offset, timeframe=params.timeframe
        )

    if section == "categories":
        if not params.category:
            return await fetchers.fetch_categories(db, limit=params.limit, offset=params.offset)
        return await _trending(db, params, viewer_id, "week", params.category)

    if section == "recommendations":
        if viewer_id is not None:
            videos = await fetchers.fetch_recommendations(
                db, viewer_id, limit=params.limit, offset=params.offset
            )
            if videos is not None:
                return videos
        # Anonymous viewers get the week's trending videos
        return await _trending(db, params, viewer_id, "week", None)

    return await _trending(db, params, viewer_id, params.timeframe, params.category)
