"""
Points and levels.
A user's level is always derived from points: points // POINTS_PER_LEVEL + 1.
"""

import logging
from typing import Any, Dict, Optional

from vidya import config
from vidya.learning.database import LearningStore
from vidya.learning.models import User, QuizAttempt

logger = logging.getLogger(__name__)


def level_for_points(points: int) -> int:
    return points // config.POINTS_PER_LEVEL + 1


def with_points(user: User, points: int) -> User:
    """Copy of user with new points and the matching level"""
    return user.model_copy(update={"points": points, "level": level_for_points(points)})


def apply_profile_changes(user: User, changes: Dict[str, Any]) -> User:
    """Merge a partial profile update; setting points re-derives the level"""
    updated = user.model_copy(update=changes)
    if "points" in changes:
        updated = with_points(updated, changes["points"])
    return updated


async def award_quiz_points(store: LearningStore, attempt: QuizAttempt) -> Optional[User]:
    """
    Add the attempt score to its user's points.

    Runs as a single store update so points and level never disagree.
    Returns None (and leaves the attempt in place) when the user is gone.
    """
    user = await store.update_user(
        attempt.user_id, lambda u: with_points(u, u.points + attempt.score)
    )
    if user is None:
        logger.warning(
            "Quiz attempt %s recorded for unknown user %s; no points awarded",
            attempt.id, attempt.user_id
        )
        return None

    logger.info(
        "User %s earned %d points (total %d, level %d)",
        user.id, attempt.score, user.points, user.level
    )
    return user
