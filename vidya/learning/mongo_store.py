import logging
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from vidya.learning.database import (
    KeyedLocks, LearningStore, UserTransform, ProgressTransform, generate_id, utcnow
)
from vidya.learning.errors import DuplicateMobileError
from vidya.learning.models import (
    User, UserCreate, Subject, Lesson, Quiz, UserProgress, ProgressCreate,
    QuizAttempt, QuizAttemptCreate, OtpVerification
)

logger = logging.getLogger(__name__)

NO_ID = {"_id": 0}


def connect(mongo_url: str, db_name: str) -> AsyncIOMotorDatabase:
    client = AsyncIOMotorClient(mongo_url, tz_aware=True)
    return client[db_name]


class MongoStore(LearningStore):
    """
    MongoDB backend. Documents hold the snake_case model fields plus Mongo's _id,
    which is never returned.

    Read-modify-write is serialized per record inside this process, and the
    write is conditional on the document still matching what was read, so a
    concurrent writer in another process makes the update retry instead of
    being overwritten.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self._locks = KeyedLocks()

    # ==================== INDEXES ====================

    async def create_indexes(self) -> None:
        await self.db.users.create_index("id", unique=True)
        await self.db.users.create_index("mobile_number", unique=True)

        await self.db.subjects.create_index("id", unique=True)
        await self.db.lessons.create_index("id", unique=True)
        await self.db.lessons.create_index([("subject_id", 1), ("order", 1)], unique=True)
        await self.db.quizzes.create_index("id", unique=True)
        await self.db.quizzes.create_index("subject_id")

        await self.db.user_progress.create_index("id", unique=True)
        await self.db.user_progress.create_index([("user_id", 1), ("subject_id", 1)])
        await self.db.quiz_attempts.create_index("id", unique=True)
        await self.db.quiz_attempts.create_index("user_id")

        await self.db.otp_verifications.create_index("mobile_number", unique=True)
        await self.db.otp_verifications.create_index("expires_at")

        logger.info("Learning store indexes created")

    async def ping(self) -> bool:
        try:
            await self.db.command("ping")
            return True
        except Exception as e:
            logger.warning("Mongo ping failed: %s", e)
            return False

    # ==================== USERS ====================

    async def get_user(self, user_id: str) -> Optional[User]:
        doc = await self.db.users.find_one({"id": user_id}, NO_ID)
        return User(**doc) if doc else None

    async def get_user_by_mobile(self, mobile_number: str) -> Optional[User]:
        doc = await self.db.users.find_one({"mobile_number": mobile_number}, NO_ID)
        return User(**doc) if doc else None

    async def create_user(self, data: UserCreate) -> User:
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
        try:
            await self.db.users.insert_one(user.model_dump())
        except DuplicateKeyError:
            raise DuplicateMobileError(data.mobile_number)
        return user

    async def update_user(self, user_id: str, transform: UserTransform) -> Optional[User]:
        async with self._locks.hold(f"user:{user_id}"):
            while True:
                doc = await self.db.users.find_one({"id": user_id}, NO_ID)
                if not doc:
                    return None
                updated = transform(User(**doc))
                result = await self.db.users.replace_one(doc, updated.model_dump())
                if result.matched_count:
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
        await self.db.otp_verifications.replace_one(
            {"mobile_number": mobile_number}, record.model_dump(), upsert=True
        )
        return record

    async def get_otp(self, mobile_number: str) -> Optional[OtpVerification]:
        doc = await self.db.otp_verifications.find_one({"mobile_number": mobile_number}, NO_ID)
        return OtpVerification(**doc) if doc else None

    async def mark_otp_verified(self, mobile_number: str, otp_id: str) -> bool:
        result = await self.db.otp_verifications.update_one(
            {"mobile_number": mobile_number, "id": otp_id, "verified": False},
            {"$set": {"verified": True}}
        )
        return result.modified_count > 0

    async def purge_expired_otps(self, now: datetime) -> int:
        result = await self.db.otp_verifications.delete_many({"expires_at": {"$lte": now}})
        return result.deleted_count

    # ==================== CATALOG ====================

    async def list_subjects(self) -> List[Subject]:
        docs = await self.db.subjects.find({}, NO_ID).to_list(length=None)
        return [Subject(**d) for d in docs]

    async def get_subject(self, subject_id: str) -> Optional[Subject]:
        doc = await self.db.subjects.find_one({"id": subject_id}, NO_ID)
        return Subject(**doc) if doc else None

    async def add_subject(self, subject: Subject) -> Subject:
        await self.db.subjects.insert_one(subject.model_dump())
        return subject

    async def list_lessons_by_subject(self, subject_id: str) -> List[Lesson]:
        cursor = self.db.lessons.find({"subject_id": subject_id}, NO_ID).sort("order", 1)
        return [Lesson(**d) for d in await cursor.to_list(length=None)]

    async def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        doc = await self.db.lessons.find_one({"id": lesson_id}, NO_ID)
        return Lesson(**doc) if doc else None

    async def add_lesson(self, lesson: Lesson) -> Lesson:
        await self.db.lessons.insert_one(lesson.model_dump())
        return lesson

    async def list_quizzes_by_subject(self, subject_id: str) -> List[Quiz]:
        docs = await self.db.quizzes.find({"subject_id": subject_id}, NO_ID).to_list(length=None)
        return [Quiz(**d) for d in docs]

    async def get_quiz(self, quiz_id: str) -> Optional[Quiz]:
        doc = await self.db.quizzes.find_one({"id": quiz_id}, NO_ID)
        return Quiz(**doc) if doc else None

    async def add_quiz(self, quiz: Quiz) -> Quiz:
        await self.db.quizzes.insert_one(quiz.model_dump())
        return quiz

    # ==================== PROGRESS ====================

    async def list_progress(
        self, user_id: str, subject_id: Optional[str] = None
    ) -> List[UserProgress]:
        query = {"user_id": user_id}
        if subject_id is not None:
            query["subject_id"] = subject_id
        docs = await self.db.user_progress.find(query, NO_ID).to_list(length=None)
        return [UserProgress(**d) for d in docs]

    async def get_progress(self, progress_id: str) -> Optional[UserProgress]:
        doc = await self.db.user_progress.find_one({"id": progress_id}, NO_ID)
        return UserProgress(**doc) if doc else None

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
        await self.db.user_progress.insert_one(progress.model_dump())
        return progress

    async def update_progress(
        self, progress_id: str, transform: ProgressTransform
    ) -> Optional[UserProgress]:
        async with self._locks.hold(f"progress:{progress_id}"):
            while True:
                doc = await self.db.user_progress.find_one({"id": progress_id}, NO_ID)
                if not doc:
                    return None
                updated = transform(UserProgress(**doc))
                result = await self.db.user_progress.replace_one(doc, updated.model_dump())
                if result.matched_count:
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
        await self.db.quiz_attempts.insert_one(attempt.model_dump())
        return attempt

    async def list_quiz_attempts(self, user_id: str) -> List[QuizAttempt]:
        docs = await self.db.quiz_attempts.find({"user_id": user_id}, NO_ID).to_list(length=None)
        return [QuizAttempt(**d) for d in docs]
