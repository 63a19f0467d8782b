from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from datetime import datetime
from enum import Enum

MOBILE_NUMBER_PATTERN = r"^\+?[0-9]{7,15}$"


class ApiModel(BaseModel):
    """snake_case attributes, camelCase JSON"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==================== ENUMS ====================

class AchievementId(str, Enum):
    FIRST_QUIZ = "first-quiz"
    QUICK_LEARNER = "quick-learner"


# ==================== USER MODELS ====================

class User(ApiModel):
    id: str
    mobile_number: str
    name: str
    class_level: str = Field(..., alias="class")
    language: str = "english"
    points: int = Field(0, ge=0)
    level: int = Field(1, ge=1)
    achievements: List[str] = []
    created_at: datetime


class UserCreate(ApiModel):
    mobile_number: str = Field(..., pattern=MOBILE_NUMBER_PATTERN)
    name: str = Field(..., min_length=1)
    class_level: str = Field(..., alias="class", min_length=1)
    language: Optional[str] = None


class UserUpdate(ApiModel):
    """Partial profile update. Mobile number is the login identity and cannot change here."""
    name: Optional[str] = Field(None, min_length=1)
    class_level: Optional[str] = Field(None, alias="class", min_length=1)
    language: Optional[str] = None
    points: Optional[int] = Field(None, ge=0)
    achievements: Optional[List[str]] = None


# ==================== CATALOG MODELS ====================

class ExplanationSection(ApiModel):
    type: Literal["explanation"] = "explanation"
    title: str
    content: str
    image: Optional[str] = None


class InteractiveSection(ApiModel):
    type: Literal["interactive"] = "interactive"
    title: str
    problem: str
    answer: str


LessonSection = Annotated[
    Union[ExplanationSection, InteractiveSection], Field(discriminator="type")
]


class LessonContent(ApiModel):
    type: str = "interactive"
    sections: List[LessonSection] = []


class Subject(ApiModel):
    id: str
    name: str
    icon: str
    color: str
    description: str
    class_levels: List[str] = []
    total_lessons: int = 0  # denormalized, not kept in sync with the lesson table


class Lesson(ApiModel):
    id: str
    subject_id: str
    title: str
    description: str
    content: LessonContent
    order: int
    points: int = 10


class QuizQuestion(ApiModel):
    id: int
    question: str
    options: List[str]
    correct_answer: int = Field(..., ge=0)
    points: int = 10


class Quiz(ApiModel):
    id: str
    subject_id: str
    lesson_id: Optional[str] = None
    title: str
    questions: List[QuizQuestion]
    time_limit: int = 300  # seconds
    points: int = 50


# ==================== PROGRESS MODELS ====================

class UserProgress(ApiModel):
    id: str
    user_id: str
    subject_id: str
    lesson_id: Optional[str] = None
    completed: bool = False
    score: Optional[int] = None
    completed_at: Optional[datetime] = None


class ProgressCreate(ApiModel):
    subject_id: str = Field(..., min_length=1)
    lesson_id: Optional[str] = None
    completed: bool = False
    score: Optional[int] = Field(None, ge=0)


class ProgressUpdate(ApiModel):
    completed: Optional[bool] = None
    score: Optional[int] = Field(None, ge=0)


class QuizAttempt(ApiModel):
    id: str
    user_id: str
    quiz_id: str
    score: int = Field(..., ge=0)
    total_questions: int
    time_spent: int  # seconds
    answers: Union[List[Any], Dict[str, Any]]
    completed_at: datetime


class QuizAttemptCreate(ApiModel):
    quiz_id: str = Field(..., min_length=1)
    score: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=0)
    time_spent: int = Field(..., ge=0)
    answers: Union[List[Any], Dict[str, Any]]


# ==================== OTP MODELS ====================

class OtpVerification(ApiModel):
    id: str
    mobile_number: str
    otp: str
    verified: bool = False
    expires_at: datetime
    created_at: datetime


class OtpSendRequest(ApiModel):
    mobile_number: str = Field(..., pattern=MOBILE_NUMBER_PATTERN)


class OtpVerifyRequest(ApiModel):
    mobile_number: str = Field(..., pattern=MOBILE_NUMBER_PATTERN)
    otp: str = Field(..., min_length=4, max_length=4)


class OtpSendResponse(ApiModel):
    success: bool
    message: str
    otp: str


class OtpVerifyResponse(ApiModel):
    success: bool
    user_exists: bool
    user: Optional[User] = None


class ProfileResponse(ApiModel):
    success: bool
    user: User


# ==================== DASHBOARD MODELS ====================

class Achievement(ApiModel):
    id: AchievementId
    name: str
    icon: str
    color: str


class SubjectProgress(Subject):
    """Subject plus the user's completion; total_lessons is the counted value"""
    progress_percentage: int
    completed_lessons: int


class Dashboard(ApiModel):
    user: User
    subjects: List[SubjectProgress]
    achievements: List[Achievement]
    total_lessons_completed: int
    total_quizzes_taken: int
