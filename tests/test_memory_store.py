import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from vidya.learning.database import KeyedLocks, MemoryStore
from vidya.learning.errors import DuplicateMobileError
from vidya.learning.leveling import with_points
from vidya.learning.models import (
    Lesson, LessonContent, ProgressCreate, QuizAttemptCreate, UserCreate
)

NOW = datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)


def make_lesson(lesson_id: str, subject_id: str, order: int) -> Lesson:
    return Lesson(
        id=lesson_id,
        subject_id=subject_id,
        title=f"Lesson {order}",
        description="",
        content=LessonContent(),
        order=order,
    )


def new_user(mobile: str = "9876543210") -> UserCreate:
    return UserCreate(mobile_number=mobile, name="Asha", class_level="5")


async def test_lessons_come_back_in_order_regardless_of_insertion():
    store = MemoryStore()
    for lesson_id, order in [("c", 3), ("a", 1), ("b", 2)]:
        await store.add_lesson(make_lesson(lesson_id, "hist-1", order))
    await store.add_lesson(make_lesson("other", "geo-1", 0))

    lessons = await store.list_lessons_by_subject("hist-1")

    assert [l.order for l in lessons] == [1, 2, 3]
    assert [l.id for l in lessons] == ["a", "b", "c"]


async def test_create_user_defaults():
    store = MemoryStore()
    user = await store.create_user(new_user())

    assert user.id.startswith("USR_")
    assert user.language == "english"
    assert user.points == 0
    assert user.level == 1
    assert user.achievements == []
    assert await store.get_user_by_mobile("9876543210") == user


async def test_create_user_rejects_registered_mobile():
    store = MemoryStore()
    await store.create_user(new_user())

    with pytest.raises(DuplicateMobileError):
        await store.create_user(new_user())


async def test_update_missing_user_returns_none():
    store = MemoryStore()
    assert await store.update_user("USR_MISSING", lambda u: u) is None


async def test_concurrent_point_updates_are_not_lost():
    store = MemoryStore()
    user = await store.create_user(new_user())

    await asyncio.gather(*[
        store.update_user(user.id, lambda u: with_points(u, u.points + 15))
        for _ in range(20)
    ])

    stored = await store.get_user(user.id)
    assert stored.points == 300
    assert stored.level == 4
    assert len(store._locks) == 0


async def test_keyed_locks_serialize_holders_and_drop_idle_keys():
    locks = KeyedLocks()
    events = []

    async def worker(name):
        async with locks.hold("user:1"):
            events.append(f"{name} in")
            await asyncio.sleep(0)
            events.append(f"{name} out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events == ["a in", "a out", "b in", "b out"]
    assert len(locks) == 0


async def test_lock_table_stays_empty_across_many_records():
    store = MemoryStore()
    for i in range(50):
        user = await store.create_user(new_user(f"90000000{i:02d}"))
        await store.update_user(user.id, lambda u: with_points(u, 10))
        progress = await store.create_progress(user.id, ProgressCreate(subject_id="math-1"))
        await store.update_progress(progress.id, lambda p: p.model_copy(update={"score": 1}))

    assert len(store._locks) == 0


async def test_progress_filters_by_user_and_subject():
    store = MemoryStore()
    await store.create_progress("u1", ProgressCreate(subject_id="math-1", completed=True))
    await store.create_progress("u1", ProgressCreate(subject_id="science-1"))
    await store.create_progress("u2", ProgressCreate(subject_id="math-1"))

    assert len(await store.list_progress("u1")) == 2
    math = await store.list_progress("u1", "math-1")
    assert len(math) == 1
    assert math[0].completed is True
    assert math[0].completed_at is not None
    assert await store.list_progress("u3") == []


async def test_incomplete_progress_has_no_completion_time():
    store = MemoryStore()
    progress = await store.create_progress("u1", ProgressCreate(subject_id="math-1"))

    assert progress.completed is False
    assert progress.completed_at is None
    assert progress.lesson_id is None
    assert progress.score is None


async def test_quiz_attempts_filtered_by_user():
    store = MemoryStore()
    data = QuizAttemptCreate(
        quiz_id="quiz-math-1", score=20, total_questions=2, time_spent=45, answers=[1, 1]
    )
    attempt = await store.create_quiz_attempt("u1", data)
    await store.create_quiz_attempt("u2", data)

    assert attempt.completed_at is not None
    assert [a.id for a in await store.list_quiz_attempts("u1")] == [attempt.id]


async def test_new_otp_replaces_previous_record():
    store = MemoryStore()
    first = await store.create_otp("9999999999", "1234", NOW, NOW + timedelta(minutes=5))
    second = await store.create_otp("9999999999", "5678", NOW, NOW + timedelta(minutes=5))

    current = await store.get_otp("9999999999")
    assert current.id == second.id
    assert current.otp == "5678"
    assert await store.mark_otp_verified("9999999999", first.id) is False


async def test_otp_can_be_marked_verified_once():
    store = MemoryStore()
    record = await store.create_otp("9999999999", "1234", NOW, NOW + timedelta(minutes=5))

    assert await store.mark_otp_verified("9999999999", record.id) is True
    assert await store.mark_otp_verified("9999999999", record.id) is False
    assert (await store.get_otp("9999999999")).verified is True


async def test_purge_expired_otps():
    store = MemoryStore()
    await store.create_otp("1111111111", "1234", NOW, NOW + timedelta(minutes=5))
    await store.create_otp("2222222222", "1234", NOW, NOW + timedelta(minutes=10))

    removed = await store.purge_expired_otps(NOW + timedelta(minutes=5))

    assert removed == 1
    assert await store.get_otp("1111111111") is None
    assert await store.get_otp("2222222222") is not None
