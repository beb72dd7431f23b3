from datetime import timedelta

import pytest
from sqlalchemy.exc import InvalidRequestError

from clipfeed.feed import fetchers
from clipfeed.models import User, UserRole, utcnow


async def _commit(session):
    await session.commit()


# ─────────────────────────── Trending videos ──────────────────────────────

@pytest.mark.asyncio
async def test_trending_excludes_private_videos_for_anonymous(session, session_factory, factory):
    maker = await factory.user("maker")
    await factory.video(maker, title="public one")
    await factory.video(maker, title="private one", public=False)
    await _commit(session)

    async with session_factory() as s:
        videos = await fetchers.fetch_trending_videos(s, limit=10)

    assert [v.title for v in videos] == ["public one"]


@pytest.mark.asyncio
async def test_followers_see_private_videos(session, session_factory, factory):
    maker = await factory.user("maker")
    fan = await factory.user("fan", role=UserRole.USER)
    stranger = await factory.user("stranger", role=UserRole.USER)
    await factory.follow(fan, maker)
    await factory.video(maker, title="private one", public=False)
    await _commit(session)

    async with session_factory() as s:
        for_fan = await fetchers.fetch_trending_videos(s, limit=10, viewer_id=fan.id)
        for_stranger = await fetchers.fetch_trending_videos(s, limit=10, viewer_id=stranger.id)

    assert [v.title for v in for_fan] == ["private one"]
    assert for_stranger == []


@pytest.mark.asyncio
async def test_trending_respects_timeframe(session, session_factory, factory):
    maker = await factory.user("maker")
    await factory.video(maker, title="fresh", age_hours=2)
    await factory.video(maker, title="last month", age_hours=24 * 20)
    await _commit(session)

    async with session_factory() as s:
        week = await fetchers.fetch_trending_videos(s, limit=10, timeframe="week")
        day = await fetchers.fetch_trending_videos(s, limit=10, timeframe="day")
        forever = await fetchers.fetch_trending_videos(s, limit=10, timeframe="all")

    assert [v.title for v in week] == ["fresh"]
    assert [v.title for v in day] == ["fresh"]
    assert {v.title for v in forever} == {"fresh", "last month"}


@pytest.mark.asyncio
async def test_trending_orders_by_score_and_attaches_counters(session, session_factory, factory):
    maker = await factory.user("maker")
    await factory.video(maker, title="quiet", age_hours=1, views=2)
    await factory.video(maker, title="viral", age_hours=30, likes=6, comments=2, shares=3, views=20)
    await _commit(session)

    async with session_factory() as s:
        videos = await fetchers.fetch_trending_videos(s, limit=10)

    assert [v.title for v in videos] == ["viral", "quiet"]
    viral = videos[0]
    assert (viral.likes_count, viral.comments_count, viral.shares_count, viral.views_count) == (
        6, 2, 3, 20,
    )
    assert viral.trending_score == pytest.approx(50 / 31 ** 0.8, rel=1e-3)
    assert viral.user.username == "maker"


@pytest.mark.asyncio
async def test_trending_offset_slices_the_ranking(session, session_factory, factory):
    maker = await factory.user("maker")
    for views in (30, 20, 10):
        await factory.video(maker, title=f"views {views}", views=views)
    await _commit(session)

    async with session_factory() as s:
        page = await fetchers.fetch_trending_videos(s, limit=1, offset=1)

    assert [v.title for v in page] == ["views 20"]


@pytest.mark.asyncio
async def test_trending_filters_by_creator_category(session, session_factory, factory):
    cook = await factory.user("cook", category="Food")
    dancer = await factory.user("dancer", category="Dance")
    await factory.video(cook, title="pasta")
    await factory.video(dancer, title="spin")
    await _commit(session)

    async with session_factory() as s:
        videos = await fetchers.fetch_trending_videos(s, limit=10, category="food")

    assert [v.title for v in videos] == ["pasta"]


# ─────────────────────────── Creators & sounds ────────────────────────────

@pytest.mark.asyncio
async def test_popular_creators_filters_and_orders(session, session_factory, factory):
    big = await factory.user("big")
    small = await factory.user("small")
    idle = await factory.user("idle")            # no recent video
    gone = await factory.user("gone", deactivated=True)
    viewer = await factory.user("viewer", role=UserRole.USER)
    for follower in (small, idle, viewer):
        await factory.follow(follower, big)
    await factory.follow(viewer, small)
    await factory.video(big, likes=2, views=5)
    await factory.video(small)
    await factory.video(idle, age_hours=24 * 40)
    await factory.video(gone)
    await factory.video(viewer)
    await _commit(session)

    async with session_factory() as s:
        creators = await fetchers.fetch_popular_creators(s, limit=10)

    assert [c.username for c in creators] == ["big", "small"]
    assert creators[0].followers_count == 3
    assert creators[0].videos_count == 1
    assert creators[0].recent_engagement == 7


@pytest.mark.asyncio
async def test_creator_needs_public_recent_video(session, session_factory, factory):
    shy = await factory.user("shy")
    await factory.video(shy, public=False)
    await _commit(session)

    async with session_factory() as s:
        assert await fetchers.fetch_popular_creators(s, limit=10) == []


@pytest.mark.asyncio
async def test_trending_sounds_ordered_by_usage(session, session_factory, factory):
    maker = await factory.user("maker")
    hit = await factory.sound("Hit Song", artist="Band")
    niche = await factory.sound("Niche Loop")
    await factory.sound("Unused")
    for _ in range(3):
        await factory.video(maker, sound=hit, views=1)
    await factory.video(maker, sound=niche)
    await _commit(session)

    async with session_factory() as s:
        sounds = await fetchers.fetch_trending_sounds(s, limit=10)

    assert [(snd.title, snd.videos_count) for snd in sounds] == [("Hit Song", 3), ("Niche Loop", 1)]
    assert sounds[0].recent_engagement == 3


# ─────────────────────────── Search ───────────────────────────────────────

def test_split_words_drops_blanks():
    assert fetchers.split_words("street  food ") == ["street", "food"]


@pytest.mark.asyncio
async def test_search_videos_matches_title_description_and_owner(session, session_factory, factory):
    chef = await factory.user("pasta_chef")
    other = await factory.user("other")
    await factory.video(other, title="Street FOOD tour")
    await factory.video(other, description="the best street noodles")
    await factory.video(chef, title="untitled")
    await factory.video(other, title="gardening")
    await _commit(session)

    async with session_factory() as s:
        by_word = await fetchers.search_videos(s, "food street", limit=10)
        by_owner = await fetchers.search_videos(s, "pasta", limit=10)

    assert {v.title for v in by_word} == {"Street FOOD tour", None}
    assert [v.user.username for v in by_owner] == ["pasta_chef"]


@pytest.mark.asyncio
async def test_search_videos_orders_by_likes_then_views(session, session_factory, factory):
    maker = await factory.user("maker")
    await factory.video(maker, title="dance a", likes=1, views=50)
    await factory.video(maker, title="dance b", likes=3)
    await factory.video(maker, title="dance c", likes=1, views=80)
    await _commit(session)

    async with session_factory() as s:
        videos = await fetchers.search_videos(s, "dance", limit=10)

    assert [v.title for v in videos] == ["dance b", "dance c", "dance a"]


@pytest.mark.asyncio
async def test_search_videos_hides_private(session, session_factory, factory):
    maker = await factory.user("maker")
    await factory.video(maker, title="secret dance", public=False)
    await _commit(session)

    async with session_factory() as s:
        assert await fetchers.search_videos(s, "dance", limit=10) == []


@pytest.mark.asyncio
async def test_search_users_matches_profile_fields(session, session_factory, factory):
    await factory.user("amy", full_name="Amy Dancer")
    await factory.user("bo", bio="I post dance tutorials")
    await factory.user("dancing_dan", deactivated=True)
    await factory.user("carl")
    await _commit(session)

    async with session_factory() as s:
        users = await fetchers.search_users(s, "dance", limit=10)

    assert {u.username for u in users} == {"amy", "bo"}


@pytest.mark.asyncio
async def test_search_sounds_matches_artist(session, session_factory, factory):
    await factory.sound("Summer Anthem", artist="Beach Radio")
    await factory.sound("Winter Song")
    await _commit(session)

    async with session_factory() as s:
        sounds = await fetchers.search_sounds(s, "radio", limit=10)

    assert [snd.title for snd in sounds] == ["Summer Anthem"]


@pytest.mark.asyncio
async def test_search_treats_like_wildcards_literally(session, session_factory, factory):
    await factory.sound("100% Energy")
    await factory.sound("1000 Days")
    await _commit(session)

    async with session_factory() as s:
        sounds = await fetchers.search_sounds(s, "0%", limit=10)

    assert [snd.title for snd in sounds] == ["100% Energy"]


# ─────────────────────────── Sections ─────────────────────────────────────

@pytest.mark.asyncio
async def test_categories_count_videos(session, session_factory, factory):
    cook = await factory.user("cook", category="Food")
    baker = await factory.user("baker", category="Food")
    dancer = await factory.user("dancer", category="Dance")
    await factory.user("newbie", category="DIY")
    await factory.user("viewer", role=UserRole.USER, category="Gaming")
    for owner in (cook, baker, cook):
        await factory.video(owner)
    await factory.video(dancer)
    await _commit(session)

    async with session_factory() as s:
        categories = await fetchers.fetch_categories(s, limit=10)

    assert [(c.name, c.videos_count) for c in categories] == [
        ("Food", 3),
        ("Dance", 1),
        ("DIY", 0),
    ]


@pytest.mark.asyncio
async def test_recommendations_mix_follows_interests_and_popular(session, session_factory, factory):
    viewer = await factory.user("viewer", role=UserRole.USER, interests=("Food",))
    followed = await factory.user("followed")
    cook = await factory.user("cook", category="Food")
    star = await factory.user("star")
    nobody = await factory.user("nobody")
    await factory.follow(viewer, followed)
    await factory.video(followed, title="from follow", age_hours=1)
    await factory.video(cook, title="from interest", age_hours=2)
    await factory.video(star, title="popular", age_hours=3, likes=10)
    await factory.video(nobody, title="ignored", age_hours=4, likes=2)
    await factory.video(followed, title="private", public=False)
    await _commit(session)

    async with session_factory() as s:
        videos = await fetchers.fetch_recommendations(s, viewer.id, limit=10)

    assert [v.title for v in videos] == ["from follow", "from interest", "popular"]


@pytest.mark.asyncio
async def test_recommendations_unknown_viewer(session_factory):
    async with session_factory() as s:
        assert await fetchers.fetch_recommendations(s, "missing-user", limit=10) is None


def test_window_start():
    now = utcnow()
    assert fetchers.window_start("all", now) is None
    assert fetchers.window_start("day", now) == now - timedelta(days=1)


@pytest.mark.asyncio
async def test_unloaded_user_relationships_raise(session, session_factory, factory):
    viewer = await factory.user("viewer", role=UserRole.USER, interests=("Food",))
    await _commit(session)

    async with session_factory() as s:
        loaded = await s.get(User, viewer.id)
        with pytest.raises(InvalidRequestError):
            loaded.interests
        with pytest.raises(InvalidRequestError):
            loaded.videos


@pytest.mark.asyncio
async def test_recommendations_load_interests_for_cached_viewer(session, session_factory, factory):
    viewer = await factory.user("viewer", role=UserRole.USER, interests=("Food",))
    cook = await factory.user("cook", category="Food")
    await factory.video(cook, title="from interest")
    await _commit(session)

    async with session_factory() as s:
        # Viewer already in the identity map, interests not loaded
        await s.get(User, viewer.id)
        videos = await fetchers.fetch_recommendations(s, viewer.id, limit=10)

    assert [v.title for v in videos] == ["from interest"]
