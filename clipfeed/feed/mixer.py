"""
Grid interleaving and pagination.

The mixer merges per-kind lists (each already sorted by descending priority)
into one sequence that avoids clustering one content type. For each 0-based
position i:

  i % 5 == 0 and creators remain  → creator
  i % 8 == 0 and sounds remain    → sound
  videos remain                   → video
  otherwise                       → next creator, then next sound

Rules are checked in that order, so a position divisible by both 5 and 8
(0, 40, 80, ...) always takes a creator while one remains. The mixer only
consumes from the front of each list; it never re-sorts.
"""
from typing import Sequence

from clipfeed.schemas import FeedItem

CREATOR_EVERY = 5
SOUND_EVERY = 8


def mix_for_grid(
    videos: Sequence[FeedItem],
    creators: Sequence[FeedItem],
    sounds: Sequence[FeedItem],
) -> list[FeedItem]:
    mixed: list[FeedItem] = []
    v = u = s = 0
    total = len(videos) + len(creators) + len(sounds)

    for i in range(total):
        if i % CREATOR_EVERY == 0 and u < len(creators):
            mixed.append(creators[u])
            u += 1
        elif i % SOUND_EVERY == 0 and s < len(sounds):
            mixed.append(sounds[s])
            s += 1
        elif v < len(videos):
            mixed.append(videos[v])
            v += 1
        elif u < len(creators):
            mixed.append(creators[u])
            u += 1
        else:
            mixed.append(sounds[s])
            s += 1

    return mixed


def paginate(items: Sequence[FeedItem], limit: int) -> tuple[list[FeedItem], bool]:
    """
    Truncate to *limit* and report has_more.

    has_more is ``len(page) == limit``: a heuristic that reports True on an
    exact final page, since no total count is queried.
    """
    page = list(items[:limit])
    return page, len(page) == limit
