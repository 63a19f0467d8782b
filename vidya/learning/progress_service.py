import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from vidya.learning.database import LearningStore, utcnow
from vidya.learning.errors import UserNotFoundError
from vidya.learning.models import (
    Achievement, AchievementId, Dashboard, QuizAttempt, Subject, SubjectProgress,
    UserProgress
)

QUICK_LEARNER_LESSONS = 5

ACHIEVEMENTS = {
    AchievementId.FIRST_QUIZ: Achievement(
        id=AchievementId.FIRST_QUIZ, name="First Quiz", icon="fas fa-star", color="secondary"
    ),
    AchievementId.QUICK_LEARNER: Achievement(
        id=AchievementId.QUICK_LEARNER, name="Quick Learner", icon="fas fa-medal", color="primary"
    ),
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def completion_percentage(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(100 * completed / total)


def derive_achievements(
    progress: List[UserProgress], attempts: List[QuizAttempt]
) -> List[Achievement]:
    """Achievements are recomputed from current state, never stored"""
    earned = []
    if attempts:
        earned.append(ACHIEVEMENTS[AchievementId.FIRST_QUIZ])
    if sum(1 for p in progress if p.completed) >= QUICK_LEARNER_LESSONS:
        earned.append(ACHIEVEMENTS[AchievementId.QUICK_LEARNER])
    return earned


async def subject_progress(
    store: LearningStore, subject: Subject, progress: List[UserProgress]
) -> SubjectProgress:
    lessons = await store.list_lessons_by_subject(subject.id)
    completed = sum(1 for p in progress if p.subject_id == subject.id and p.completed)

    data: Dict[str, Any] = subject.model_dump()
    data.update(
        total_lessons=len(lessons),
        completed_lessons=completed,
        progress_percentage=completion_percentage(completed, len(lessons)),
    )
    return SubjectProgress(**data)


async def build_dashboard(store: LearningStore, user_id: str) -> Dashboard:
    """
    Aggregate a user's dashboard: per-subject completion, achievements, totals.
    Raises UserNotFoundError before reading any catalog or progress data.
    """
    user = await store.get_user(user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    subjects = await store.list_subjects()
    progress = await store.list_progress(user_id)
    attempts = await store.list_quiz_attempts(user_id)

    return Dashboard(
        user=user,
        subjects=[await subject_progress(store, s, progress) for s in subjects],
        achievements=derive_achievements(progress, attempts),
        total_lessons_completed=sum(1 for p in progress if p.completed),
        total_quizzes_taken=len(attempts),
    )


def apply_progress_changes(
    progress: UserProgress, changes: Dict[str, Any], now: Optional[datetime] = None
) -> UserProgress:
    """Merge changes; completed_at is stamped only on a false -> true transition"""
    updated = progress.model_copy(update=changes)
    if changes.get("completed") and not progress.completed:
        updated = updated.model_copy(update={"completed_at": now or utcnow()})
    return updated
