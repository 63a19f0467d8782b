from fastapi import APIRouter, HTTPException, Depends
from typing import List

from vidya.learning.database import LearningStore
from vidya.learning.dependencies import get_store
from vidya.learning.models import Subject, Lesson, Quiz

router = APIRouter(tags=["Catalog"])

# ==================== SUBJECTS ====================

@router.get("/subjects", response_model=List[Subject])
async def list_subjects(store: LearningStore = Depends(get_store)):
    return await store.list_subjects()


@router.get("/subjects/{subject_id}", response_model=Subject)
async def get_subject(subject_id: str, store: LearningStore = Depends(get_store)):
    subject = await store.get_subject(subject_id)
    if not subject:
        raise HTTPException(status_code=404, detail="Subject not found")
    return subject

# ==================== LESSONS ====================

@router.get("/subjects/{subject_id}/lessons", response_model=List[Lesson])
async def list_subject_lessons(subject_id: str, store: LearningStore = Depends(get_store)):
    """Lessons in display order"""
    return await store.list_lessons_by_subject(subject_id)


@router.get("/lessons/{lesson_id}", response_model=Lesson)
async def get_lesson(lesson_id: str, store: LearningStore = Depends(get_store)):
    lesson = await store.get_lesson(lesson_id)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return lesson

# ==================== QUIZZES ====================

@router.get("/subjects/{subject_id}/quizzes", response_model=List[Quiz])
async def list_subject_quizzes(subject_id: str, store: LearningStore = Depends(get_store)):
    return await store.list_quizzes_by_subject(subject_id)


@router.get("/quizzes/{quiz_id}", response_model=Quiz)
async def get_quiz(quiz_id: str, store: LearningStore = Depends(get_store)):
    quiz = await store.get_quiz(quiz_id)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")
    return quiz
