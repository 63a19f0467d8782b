import logging
from fastapi import APIRouter, HTTPException, Depends, Query
from typing import List, Optional

from vidya.learning.database import LearningStore
from vidya.learning.dependencies import get_store
from vidya.learning.errors import UserNotFoundError
from vidya.learning.leveling import award_quiz_points
from vidya.learning.models import (
    UserProgress, ProgressCreate, ProgressUpdate, QuizAttempt, QuizAttemptCreate, Dashboard
)
from vidya.learning.progress_service import build_dashboard, apply_progress_changes

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Progress"])

# ==================== PROGRESS ====================

@router.get("/users/{user_id}/progress", response_model=List[UserProgress])
@router.get("/user/{user_id}/progress", response_model=List[UserProgress], include_in_schema=False)
async def list_progress(
    user_id: str,
    subject_id: Optional[str] = Query(None, alias="subjectId"),
    store: LearningStore = Depends(get_store)
):
    return await store.list_progress(user_id, subject_id)


@router.get("/users/{user_id}/progress/{subject_id}", response_model=List[UserProgress])
@router.get("/user/{user_id}/progress/{subject_id}", response_model=List[UserProgress], include_in_schema=False)
async def list_subject_progress(
    user_id: str,
    subject_id: str,
    store: LearningStore = Depends(get_store)
):
    return await store.list_progress(user_id, subject_id)


@router.post("/users/{user_id}/progress", response_model=UserProgress)
@router.post("/user/{user_id}/progress", response_model=UserProgress, include_in_schema=False)
async def create_progress(
    user_id: str,
    payload: ProgressCreate,
    store: LearningStore = Depends(get_store)
):
    return await store.create_progress(user_id, payload)


@router.put("/users/{user_id}/progress/{progress_id}", response_model=UserProgress)
async def update_progress(
    user_id: str,
    progress_id: str,
    payload: ProgressUpdate,
    store: LearningStore = Depends(get_store)
):
    """Mark a lesson complete or record its score"""
    existing = await store.get_progress(progress_id)
    if not existing or existing.user_id != user_id:
        raise HTTPException(status_code=404, detail="Progress not found")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    progress = await store.update_progress(progress_id, lambda p: apply_progress_changes(p, changes))
    if not progress:
        raise HTTPException(status_code=404, detail="Progress not found")
    return progress

# ==================== QUIZ ATTEMPTS ====================

@router.post("/users/{user_id}/quiz-attempts", response_model=QuizAttempt)
@router.post("/user/{user_id}/quiz-attempts", response_model=QuizAttempt, include_in_schema=False)
async def submit_quiz_attempt(
    user_id: str,
    payload: QuizAttemptCreate,
    store: LearningStore = Depends(get_store)
):
    """Record the attempt, then award its score as points"""
    attempt = await store.create_quiz_attempt(user_id, payload)
    await award_quiz_points(store, attempt)
    return attempt


@router.get("/users/{user_id}/quiz-attempts", response_model=List[QuizAttempt])
@router.get("/user/{user_id}/quiz-attempts", response_model=List[QuizAttempt], include_in_schema=False)
async def list_quiz_attempts(user_id: str, store: LearningStore = Depends(get_store)):
    return await store.list_quiz_attempts(user_id)

# ==================== DASHBOARD ====================

@router.get("/users/{user_id}/dashboard", response_model=Dashboard)
@router.get("/user/{user_id}/dashboard", response_model=Dashboard, include_in_schema=False)
async def get_dashboard(user_id: str, store: LearningStore = Depends(get_store)):
    try:
        return await build_dashboard(store, user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except Exception as e:
        logger.exception("Dashboard failed for user %s: %s", user_id, e)
        raise HTTPException(status_code=500, detail="Failed to load dashboard data")
