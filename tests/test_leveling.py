import pytest

from vidya.learning.leveling import (
    apply_profile_changes, award_quiz_points, level_for_points, with_points
)
from vidya.learning.models import QuizAttemptCreate, UserCreate


def attempt_for(score: int) -> QuizAttemptCreate:
    return QuizAttemptCreate(
        quiz_id="quiz-math-1", score=score, total_questions=2, time_spent=60, answers=[1, 1]
    )


async def make_user(store, mobile="9876543210"):
    return await store.create_user(UserCreate(mobile_number=mobile, name="Ravi", class_level="6"))


@pytest.mark.parametrize("points,level", [(0, 1), (99, 1), (100, 2), (115, 2), (250, 3), (1000, 11)])
def test_level_for_points(points, level):
    assert level_for_points(points) == level


async def test_quiz_score_moves_user_to_next_level(store):
    user = await make_user(store)
    await store.update_user(user.id, lambda u: with_points(u, 85))

    attempt = await store.create_quiz_attempt(user.id, attempt_for(30))
    updated = await award_quiz_points(store, attempt)

    assert updated.points == 115
    assert updated.level == 2
    assert (await store.get_user(user.id)).points == 115


async def test_points_equal_sum_of_scores(store):
    user = await make_user(store)
    scores = [10, 0, 45, 70, 5, 90]

    for score in scores:
        attempt = await store.create_quiz_attempt(user.id, attempt_for(score))
        await award_quiz_points(store, attempt)

    stored = await store.get_user(user.id)
    assert stored.points == sum(scores)
    assert stored.level == sum(scores) // 100 + 1


async def test_attempt_kept_when_user_missing(store):
    attempt = await store.create_quiz_attempt("USR_GONE", attempt_for(40))

    assert await award_quiz_points(store, attempt) is None
    assert [a.id for a in await store.list_quiz_attempts("USR_GONE")] == [attempt.id]


async def test_profile_points_change_rederives_level(store):
    user = await make_user(store)

    updated = apply_profile_changes(user, {"points": 340, "name": "Ravi K"})

    assert updated.points == 340
    assert updated.level == 4
    assert updated.name == "Ravi K"


async def test_profile_change_without_points_keeps_level(store):
    user = await make_user(store)
    user = with_points(user, 150)

    updated = apply_profile_changes(user, {"language": "hindi"})

    assert updated.level == 2
    assert updated.language == "hindi"
