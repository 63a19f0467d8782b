"""
Learning data store
Backend-neutral interface used by the routers and rule components,
plus the in-memory backend (default, and the one tests run against)
"""

import asyncio
import secrets
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from vidya.learning.errors import DuplicateMobileError
from vidya.learning.models import (
    User, UserCreate, Subject, Lesson, Quiz, UserProgress, ProgressCreate,
    QuizAttempt, QuizAttemptCreate, OtpVerification
)

UserTransform = Callable[[User], User]
ProgressTransform = Callable[[UserProgress], UserProgress]


def generate_id(prefix: str) -> str:
    """Generate unique ID with prefix"""
    return f"{prefix}_{secrets.token_hex(8).upper()}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KeyedLocks:
    """
    One asyncio.Lock per key. A key's lock is dropped as soon as no task
    holds or waits on it, so the table only holds keys in active use.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class LearningStore(ABC):
    """
    Storage contract for users, catalog, progress, attempts and OTPs.

    Read-modify-write on a user or progress record goes through
    update_user / update_progress, which apply the transform while
    holding that record exclusively.
    """

    # ==================== USERS ====================

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    async def get_user_by_mobile(self, mobile_number: str) -> Optional[User]: ...

    @abstractmethod
    async def create_user(self, data: UserCreate) -> User:
        """Raises DuplicateMobileError if the number is already registered"""

    @abstractmethod
    async def update_user(self, user_id: str, transform: UserTransform) -> Optional[User]:
        """Apply transform atomically; None if the user does not exist"""

    # ==================== OTP ====================

    @abstractmethod
    async def create_otp(
        self, mobile_number: str, otp: str, created_at: datetime, expires_at: datetime
    ) -> OtpVerification:
        """Store a fresh code, replacing any record for the same number"""

    @abstractmethod
    async def get_otp(self, mobile_number: str) -> Optional[OtpVerification]: ...

    @abstractmethod
    async def mark_otp_verified(self, mobile_number: str, otp_id: str) -> bool:
        """Flip verified only if record otp_id is still live and unverified"""

    @abstractmethod
    async def purge_expired_otps(self, now: datetime) -> int: ...

    # ==================== CATALOG ====================

    @abstractmethod
    async def list_subjects(self) -> List[Subject]: ...

    @abstractmethod
    async def get_subject(self, subject_id: str) -> Optional[Subject]: ...

    @abstractmethod
    async def add_subject(self, subject: Subject) -> Subject: ...

    @abstractmethod
    async def list_lessons_by_subject(self, subject_id: str) -> List[Lesson]:
        """Lessons of a subject, ascending by order"""

    @abstractmethod
    async def get_lesson(self, lesson_id: str) -> Optional[Lesson]: ...

    @abstractmethod
    async def add_lesson(self, lesson: Lesson) -> Lesson: ...

    @abstractmethod
    async def list_quizzes_by_subject(self, subject_id: str) -> List[Quiz]: ...

    @abstractmethod
    async def get_quiz(self, quiz_id: str) -> Optional[Quiz]: ...

    @abstractmethod
    async def add_quiz(self, quiz: Quiz) -> Quiz: ...

    # ==================== PROGRESS ====================

    @abstractmethod
    async def list_progress(
        self, user_id: str, subject_id: Optional[str] = None
    ) -> List[UserProgress]: ...

    @abstractmethod
    async def get_progress(self, progress_id: str) -> Optional[UserProgress]: ...

    @abstractmethod
    async def create_progress(self, user_id: str, data: ProgressCreate) -> UserProgress: ...

    @abstractmethod
    async def update_progress(
        self, progress_id: str, transform: ProgressTransform
    ) -> Optional[UserProgress]: ...

    # ==================== QUIZ ATTEMPTS ====================

    @abstractmethod
    async def create_quiz_attempt(self, user_id: str, data: QuizAttemptCreate) -> QuizAttempt: ...

    @abstractmethod
    async def list_quiz_attempts(self, user_id: str) -> List[QuizAttempt]: ...

    # ==================== LIFECYCLE ====================

    async def create_indexes(self) -> None:
        """Backends with secondary indexes build them here"""

    async def ping(self) -> bool:
        return True


class MemoryStore(LearningStore):
    """Dictionary-backed store. State lives for the lifetime of the process."""

    def __init__(self):
        self.users: Dict[str, User] = {}
        self.subjects: Dict[str, Subject] = {}
        self.lessons: Dict[str, Lesson] = {}
        self.quizzes: Dict[str, Quiz] = {}
        self.user_progress: Dict[str, UserProgress] = {}
        self.quiz_attempts: Dict[str, QuizAttempt] = {}
        self.otp_verifications: Dict[str, OtpVerification] = {}  # keyed by mobile number
        self._locks = KeyedLocks()

    # ==================== USERS ====================

    async def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    async def get_user_by_mobile(self, mobile_number: str) -> Optional[User]:
        return next(
            (u for u in self.users.values() if u.mobile_number == mobile_number), None
        )

    async def create_user(self, data: UserCreate) -> User:
        if await self.get_user_by_mobile(data.mobile_number):
            raise DuplicateMobileError(data.mobile_number)

        user = User(
            id=generate_id("USR"),
            mobile_number=data.mobile_number,
            name=data.name,
            class_level=data.class_level,
            language=data.language or "english",
            points=0,
            level=1,
            achievements=[],
            created_at=utcnow(),
        )
        self.users[user.id] = user
        return user

    async def update_user(self, user_id: str, transform: UserTransform) -> Optional[User]:
        async with self._locks.hold(f"user:{user_id}"):
            user = self.users.get(user_id)
            if user is None:
                return None
            updated = transform(user)
            self.users[user_id] = updated
            return updated

    # ==================== OTP ====================

    async def create_otp(
        self, mobile_number: str, otp: str, created_at: datetime, expires_at: datetime
    ) -> OtpVerification:
        record = OtpVerification(
            id=generate_id("OTP"),
            mobile_number=mobile_number,
            otp=otp,
            verified=False,
            expires_at=expires_at,
            created_at=created_at,
        )
        self.otp_verifications[mobile_number] = record
        return record

    async def get_otp(self, mobile_number: str) -> Optional[OtpVerification]:
        return self.otp_verifications.get(mobile_number)

    async def mark_otp_verified(self, mobile_number: str, otp_id: str) -> bool:
        record = self.otp_verifications.get(mobile_number)
        if record is None or record.id != otp_id or record.verified:
            return False
        self.otp_verifications[mobile_number] = record.model_copy(update={"verified": True})
        return True

    async def purge_expired_otps(self, now: datetime) -> int:
        expired = [m for m, r in self.otp_verifications.items() if r.expires_at <= now]
        for mobile_number in expired:
            del self.otp_verifications[mobile_number]
        return len(expired)

    # ==================== CATALOG ====================

    async def list_subjects(self) -> List[Subject]:
        return list(self.subjects.values())

    async def get_subject(self, subject_id: str) -> Optional[Subject]:
        return self.subjects.get(subject_id)

    async def add_subject(self, subject: Subject) -> Subject:
        self.subjects[subject.id] = subject
        return subject

    async def list_lessons_by_subject(self, subject_id: str) -> List[Lesson]:
        lessons = [l for l in self.lessons.values() if l.subject_id == subject_id]
        return sorted(lessons, key=lambda l: l.order)

    async def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        return self.lessons.get(lesson_id)

    async def add_lesson(self, lesson: Lesson) -> Lesson:
        self.lessons[lesson.id] = lesson
        return lesson

    async def list_quizzes_by_subject(self, subject_id: str) -> List[Quiz]:
        return [q for q in self.quizzes.values() if q.subject_id == subject_id]

    async def get_quiz(self, quiz_id: str) -> Optional[Quiz]:
        return self.quizzes.get(quiz_id)

    async def add_quiz(self, quiz: Quiz) -> Quiz:
        self.quizzes[quiz.id] = quiz
        return quiz

    # ==================== PROGRESS ====================

    async def list_progress(
        self, user_id: str, subject_id: Optional[str] = None
    ) -> List[UserProgress]:
        return [
            p for p in self.user_progress.values()
            if p.user_id == user_id and (subject_id is None or p.subject_id == subject_id)
        ]

    async def get_progress(self, progress_id: str) -> Optional[UserProgress]:
        return self.user_progress.get(progress_id)

    async def create_progress(self, user_id: str, data: ProgressCreate) -> UserProgress:
        progress = UserProgress(
            id=generate_id("PRG"),
            user_id=user_id,
            subject_id=data.subject_id,
            lesson_id=data.lesson_id,
            completed=data.completed,
            score=data.score,
            completed_at=utcnow() if data.completed else None,
        )
        self.user_progress[progress.id] = progress
        return progress

    async def update_progress(
        self, progress_id: str, transform: ProgressTransform
    ) -> Optional[UserProgress]:
        async with self._locks.hold(f"progress:{progress_id}"):
            progress = self.user_progress.get(progress_id)
            if progress is None:
                return None
            updated = transform(progress)
            self.user_progress[progress_id] = updated
            return updated

    # ==================== QUIZ ATTEMPTS ====================

    async def create_quiz_attempt(self, user_id: str, data: QuizAttemptCreate) -> QuizAttempt:
        attempt = QuizAttempt(
            id=generate_id("ATT"),
            user_id=user_id,
            quiz_id=data.quiz_id,
            score=data.score,
            total_questions=data.total_questions,
            time_spent=data.time_spent,
            answers=data.answers,
            completed_at=utcnow(),
        )
        self.quiz_attempts[attempt.id] = attempt
        return attempt

    async def list_quiz_attempts(self, user_id: str) -> List[QuizAttempt]:
        return [a for a in self.quiz_attempts.values() if a.user_id == user_id]
