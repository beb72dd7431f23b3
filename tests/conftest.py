import os
from datetime import timedelta

# Settings are read at import time
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clipfeed.database import Base, get_db, get_session_factory
from clipfeed.main import app
from clipfeed.models import (
    Comment,
    Follow,
    Interest,
    Like,
    Share,
    Sound,
    User,
    UserRole,
    Video,
    ViewHistory,
    utcnow,
)


class Factory:
    """Inserts rows with engagement counters for query tests."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._fans: list[User] = []

    async def user(
        self,
        username,
        *,
        role=UserRole.CREATOR,
        verified=False,
        category=None,
        full_name=None,
        bio=None,
        deactivated=False,
        interests=(),
    ) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            full_name=full_name,
            bio=bio,
            role=role.value,
            creator_verified=verified,
            creator_category=category,
            deactivated_at=utcnow() if deactivated else None,
        )
        if interests:
            user.interests = [Interest(name=name) for name in interests]
        self.session.add(user)
        await self.session.flush()
        return user

    async def _fan_pool(self, n: int) -> list[User]:
        while len(self._fans) < n:
            self._fans.append(
                await self.user(f"zz_fan_{len(self._fans)}", role=UserRole.USER)
            )
        return self._fans[:n]

    async def sound(self, title, *, artist=None) -> Sound:
        sound = Sound(
            title=title,
            artist_name=artist,
            sound_url=f"https://cdn.test/{title}.mp3",
            duration=15.0,
        )
        self.session.add(sound)
        await self.session.flush()
        return sound

    async def video(
        self,
        owner: User,
        *,
        title=None,
        description=None,
        public=True,
        sound=None,
        age_hours=1.0,
        likes=0,
        comments=0,
        shares=0,
        views=0,
    ) -> Video:
        video = Video(
            title=title,
            description=description,
            video_url="https://cdn.test/v.mp4",
            duration=30.0,
            is_public=public,
            user_id=owner.id,
            sound_id=sound.id if sound else None,
            created_at=utcnow() - timedelta(hours=age_hours),
        )
        self.session.add(video)
        await self.session.flush()

        for fan in await self._fan_pool(likes):
            self.session.add(Like(user_id=fan.id, video_id=video.id))
        for _ in range(comments):
            self.session.add(Comment(user_id=owner.id, video_id=video.id, text="nice"))
        for _ in range(shares):
            self.session.add(Share(user_id=owner.id, video_id=video.id, platform="link"))
        for _ in range(views):
            self.session.add(ViewHistory(user_id=owner.id, video_id=video.id, watch_time=5.0))
        await self.session.flush()
        return video

    async def follow(self, follower: User, following: User) -> None:
        self.session.add(Follow(follower_id=follower.id, following_id=following.id))
        await self.session.flush()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    # File-backed so concurrent fetch tasks each get their own connection
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'clipfeed.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def factory(session):
    return Factory(session)


@pytest_asyncio.fixture
async def api_client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    # Unhandled errors must surface as 500 responses, not test exceptions
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
