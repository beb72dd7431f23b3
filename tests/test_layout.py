from builders import creator_summary, sound_summary, video_summary
from clipfeed.feed.layout import (
    assign_aspect_ratio,
    creator_aspect_ratio,
    sound_aspect_ratio,
    video_aspect_ratio,
)
from clipfeed.schemas import AspectRatio


def test_ordinary_videos_rotate_through_three_ratios():
    video = video_summary(likes=10, views=100, trending=5.0)
    ratios = [video_aspect_ratio(video, i) for i in range(6)]
    assert ratios == [
        AspectRatio.SQUARE,
        AspectRatio.PORTRAIT,
        AspectRatio.FULL,
        AspectRatio.SQUARE,
        AspectRatio.PORTRAIT,
        AspectRatio.FULL,
    ]


def test_high_engagement_video_gets_tall_every_third_slot():
    video = video_summary(likes=20_000, views=40_000, trending=10.0)
    assert video_aspect_ratio(video, 0) == AspectRatio.TALL
    assert video_aspect_ratio(video, 1) == AspectRatio.FULL
    assert video_aspect_ratio(video, 2) == AspectRatio.FULL
    assert video_aspect_ratio(video, 3) == AspectRatio.TALL


def test_high_trending_score_counts_as_prominent():
    video = video_summary(trending=1500.0)
    assert video_aspect_ratio(video, 3) == AspectRatio.TALL
    assert video_aspect_ratio(video, 4) == AspectRatio.FULL


def test_engagement_threshold_is_exclusive():
    video = video_summary(likes=50_000, trending=0.0)
    assert video_aspect_ratio(video, 1) == AspectRatio.PORTRAIT


def test_missing_trending_score_treated_as_zero():
    video = video_summary(trending=None)
    assert video_aspect_ratio(video, 0) == AspectRatio.SQUARE


def test_verified_creator_alternates_tall_and_square():
    creator = creator_summary(verified=True)
    ratios = [creator_aspect_ratio(creator, i) for i in range(5)]
    assert ratios == [
        AspectRatio.TALL,
        AspectRatio.SQUARE,
        AspectRatio.SQUARE,
        AspectRatio.SQUARE,
        AspectRatio.TALL,
    ]


def test_large_creator_treated_like_verified():
    creator = creator_summary(followers=150_000)
    assert creator_aspect_ratio(creator, 8) == AspectRatio.TALL


def test_small_creator_always_square():
    creator = creator_summary(followers=99)
    assert {creator_aspect_ratio(creator, i) for i in range(8)} == {AspectRatio.SQUARE}


def test_sound_ratio_depends_on_usage():
    assert sound_aspect_ratio(sound_summary(usage=1001), 0) == AspectRatio.WIDE
    assert sound_aspect_ratio(sound_summary(usage=1000), 0) == AspectRatio.SQUARE


def test_assignment_is_deterministic():
    video = video_summary(likes=3, views=7)
    first = [assign_aspect_ratio("video", video, i) for i in range(10)]
    second = [assign_aspect_ratio("video", video, i) for i in range(10)]
    assert first == second


def test_ratio_serialises_as_grid_string():
    assert AspectRatio.FULL.value == "9:16"
    assert AspectRatio.WIDE.value == "2:1"
