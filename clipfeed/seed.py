#!/usr/bin/env python3
"""
Seed script — creates a realistic dataset for trying the explore feed.

Creates:
  • 10 users, 6 of them creators (2 verified) across several categories
  • A follow graph (each user follows 3-5 others)
  • 8 sounds
  • 5 videos per creator spread over the last 10 days, some private
  • Likes, comments, shares and views across videos

Run against the configured database:
  python -m clipfeed.seed

The first user's access token is printed so you can call the feed
authenticated.
"""
import argparse
import asyncio
import random
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clipfeed.auth import encode_access
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

BASE_USERS = [
    # username, full name, role, category, verified
    ("alice_dances", "Alice Chen", UserRole.CREATOR, "Dance", True),
    ("bob_cooks", "Bob Martinez", UserRole.CREATOR, "Food", False),
    ("carol_comedy", "Carol Singh", UserRole.CREATOR, "Comedy", True),
    ("dave_diy", "Dave Kim", UserRole.CREATOR, "DIY", False),
    ("eve_eats", "Eve Johnson", UserRole.CREATOR, "Food", False),
    ("frank_fits", "Frank Williams", UserRole.CREATOR, "Fitness", False),
    ("grace_watches", "Grace Li", UserRole.USER, None, False),
    ("henry_scrolls", "Henry Brown", UserRole.USER, None, False),
    ("iris_likes", "Iris Davis", UserRole.USER, None, False),
    ("jack_shares", "Jack Wilson", UserRole.USER, None, False),
]

SOUNDS = [
    ("Midnight Drive", "Neon Lanes"),
    ("Sunday Pancakes", "The Breakfast Club"),
    ("Laugh Track 3", None),
    ("Power Hour", "Gym Heroes"),
    ("Lo-fi Study Loop", "Chillhop Kid"),
    ("Summer Anthem", "Beach Radio"),
    ("Original audio", None),
    ("Drum Break 88", "Crate Diggers"),
]

VIDEO_TITLES = [
    "Learn this dance in 30 seconds",
    "5-minute pasta you will make every week",
    "When the group chat goes silent",
    "Turning a pallet into a bookshelf",
    "Street food tour: late night edition",
    "Morning mobility routine",
    "Trying the viral dance challenge",
    "Crispy tofu, no oven",
    "POV: your first day at a new job",
    "Fixing a squeaky door for free",
]

INTERESTS = ["Dance", "Food", "Comedy", "DIY", "Fitness"]


async def seed(session: AsyncSession, rng: Optional[random.Random] = None) -> list[User]:
    """Insert the demo dataset; returns the created users."""
    rng = rng or random.Random()
    now = utcnow()

    interests = {name: Interest(name=name) for name in INTERESTS}
    session.add_all(interests.values())

    # ── Users ────────────────────────────────────────────────────────────
    users: list[User] = []
    for username, full_name, role, category, verified in BASE_USERS:
        user = User(
            username=username,
            email=f"{username}@example.com",
            full_name=full_name,
            bio=f"{full_name} on clipfeed",
            role=role.value,
            creator_category=category,
            creator_verified=verified,
            created_at=now - timedelta(days=60),
        )
        user.interests = rng.sample(list(interests.values()), k=2)
        users.append(user)
    session.add_all(users)
    await session.flush()

    # ── Follow graph ──────────────────────────────────────────────────────
    for follower in users:
        others = [u for u in users if u is not follower]
        for followee in rng.sample(others, k=rng.randint(3, 5)):
            session.add(Follow(follower_id=follower.id, following_id=followee.id))

    # ── Sounds ────────────────────────────────────────────────────────────
    sounds = [
        Sound(
            title=title,
            artist_name=artist,
            sound_url=f"https://cdn.example.com/sounds/{i}.mp3",
            duration=rng.uniform(10, 60),
            is_original=artist is None,
            created_at=now - timedelta(days=30),
        )
        for i, (title, artist) in enumerate(SOUNDS)
    ]
    session.add_all(sounds)
    await session.flush()

    # ── Videos ────────────────────────────────────────────────────────────
    creators = [u for u in users if u.role == UserRole.CREATOR.value]
    videos: list[Video] = []
    for creator in creators:
        for _ in range(5):
            videos.append(
                Video(
                    title=rng.choice(VIDEO_TITLES),
                    description=f"New clip by {creator.full_name}",
                    video_url=f"https://cdn.example.com/videos/{len(videos)}.mp4",
                    thumbnail_url=f"https://cdn.example.com/thumbs/{len(videos)}.jpg",
                    duration=rng.uniform(8, 90),
                    is_public=rng.random() > 0.15,
                    user_id=creator.id,
                    sound_id=rng.choice(sounds).id if rng.random() > 0.3 else None,
                    created_at=now - timedelta(hours=rng.uniform(0, 240)),
                )
            )
    session.add_all(videos)
    await session.flush()

    # ── Engagement ────────────────────────────────────────────────────────
    for video in videos:
        for viewer in rng.sample(users, k=rng.randint(0, len(users))):
            session.add(
                ViewHistory(
                    user_id=viewer.id,
                    video_id=video.id,
                    watch_time=rng.uniform(1, video.duration),
                )
            )
        for fan in rng.sample(users, k=rng.randint(0, 6)):
            session.add(Like(user_id=fan.id, video_id=video.id))
        for commenter in rng.sample(users, k=rng.randint(0, 3)):
            session.add(Comment(user_id=commenter.id, video_id=video.id, text="🔥"))
        for sharer in rng.sample(users, k=rng.randint(0, 2)):
            session.add(Share(user_id=sharer.id, video_id=video.id, platform="link"))

    await session.flush()
    return users


async def main(reset: bool) -> None:
    from clipfeed.database import AsyncSessionLocal, Base, engine, init_db

    if reset:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await init_db()

    async with AsyncSessionLocal() as session:
        users = await seed(session)
        await session.commit()

    first = users[0]
    token = encode_access(
        {
            "userId": first.id,
            "email": first.email,
            "role": first.role,
            "username": first.username,
        }
    )

    print("=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    print("# Mixed explore feed:")
    print("  curl -s 'http://localhost:8000/explore/feed?limit=20' | python3 -m json.tool\n")
    print("# Search mode:")
    print("  curl -s 'http://localhost:8000/explore/feed?query=dance' | python3 -m json.tool\n")
    print(f"# Recommendations for '{first.username}':")
    print("  curl -s 'http://localhost:8000/explore?section=recommendations' \\")
    print(f"    -H 'Authorization: Bearer {token}' | python3 -m json.tool\n")
    print("# Check Jaeger traces: http://localhost:16686")
    print("=" * 60)
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the explore feed database")
    parser.add_argument("--reset", action="store_true", help="Drop all tables first")
    args = parser.parse_args()
    asyncio.run(main(args.reset))
