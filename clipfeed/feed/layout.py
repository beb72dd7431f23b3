"""
Aspect-ratio assignment for the masonry grid.

Pure functions of (item, index): the same inputs always produce the same
ratio. All randomness in the feed lives in scoring.
"""
from clipfeed.config import settings
from clipfeed.schemas import AspectRatio, CreatorSummary, SoundSummary, VideoSummary

VIDEO_ROTATION = (AspectRatio.SQUARE, AspectRatio.PORTRAIT, AspectRatio.FULL)


def video_aspect_ratio(video: VideoSummary, index: int) -> AspectRatio:
    engagement = video.likes_count + video.views_count + video.comments_count
    trending = video.trending_score or 0.0

    # High-engagement videos get prominent placement
    if (
        engagement > settings.high_engagement_threshold
        or trending > settings.high_trending_threshold
    ):
        return AspectRatio.TALL if index % 3 == 0 else AspectRatio.FULL

    return VIDEO_ROTATION[index % len(VIDEO_ROTATION)]


def creator_aspect_ratio(creator: CreatorSummary, index: int) -> AspectRatio:
    if creator.verified or creator.followers_count > settings.featured_follower_threshold:
        return AspectRatio.TALL if index % 4 == 0 else AspectRatio.SQUARE
    return AspectRatio.SQUARE


def sound_aspect_ratio(sound: SoundSummary, index: int) -> AspectRatio:
    if sound.videos_count > settings.popular_sound_threshold:
        return AspectRatio.WIDE
    return AspectRatio.SQUARE


_ASSIGNERS = {
    "video": video_aspect_ratio,
    "user": creator_aspect_ratio,
    "sound": sound_aspect_ratio,
}


def assign_aspect_ratio(kind: str, item, index: int) -> AspectRatio:
    return _ASSIGNERS[kind](item, index)
