"""Post ranking heuristics."""

from __future__ import annotations

import math
from collections.abc import Callable

from ..schemas.content import Post

# 2005-12-08T07:46:43Z; keeps the time term small for current posts
RANKING_EPOCH = 1134028003
# Seconds of age worth one order of magnitude of net votes
HOT_DECAY_SECONDS = 45000

PostRanker = Callable[[Post], float]


def hot_score(post: Post) -> float:
    """Log-scaled net votes plus a recency term signed by the vote direction.

    A post with a net score of zero gets no recency boost.
    """

    score = post.score
    order = math.log10(max(abs(score), 1))
    sign = (score > 0) - (score < 0)
    seconds = post.created_at.timestamp() - RANKING_EPOCH
    return order + sign * seconds / HOT_DECAY_SECONDS


__all__ = ["PostRanker", "hot_score"]
