"""
Starter catalog for a fresh store.
Subjects carry their planned lesson totals even though only the first
mathematics lessons are written so far.
"""

import logging

from vidya.learning.database import LearningStore
from vidya.learning.models import Subject, Lesson, Quiz

logger = logging.getLogger(__name__)

ALL_CLASSES = [str(c) for c in range(1, 13)]

SUBJECTS = [
    {
        "id": "math-1",
        "name": "Mathematics",
        "icon": "fas fa-calculator",
        "color": "blue-600",
        "description": "Learn numbers, calculations, and problem-solving",
        "class_levels": ALL_CLASSES,
        "total_lessons": 12,
    },
    {
        "id": "science-1",
        "name": "Science",
        "icon": "fas fa-flask",
        "color": "green-600",
        "description": "Explore the natural world and scientific concepts",
        "class_levels": ALL_CLASSES,
        "total_lessons": 8,
    },
    {
        "id": "language-1",
        "name": "Language Arts",
        "icon": "fas fa-book",
        "color": "purple-600",
        "description": "Develop reading, writing, and communication skills",
        "class_levels": ALL_CLASSES,
        "total_lessons": 15,
    },
    {
        "id": "social-1",
        "name": "Social Studies",
        "icon": "fas fa-globe-asia",
        "color": "orange-600",
        "description": "Learn about history, geography, and society",
        "class_levels": [str(c) for c in range(3, 13)],
        "total_lessons": 10,
    },
]

LESSONS = [
    {
        "id": "lesson-math-1",
        "subject_id": "math-1",
        "title": "Introduction to Addition",
        "description": "Learn the basics of adding numbers together",
        "content": {
            "type": "interactive",
            "sections": [
                {
                    "type": "explanation",
                    "title": "What is Addition?",
                    "content": "Addition is one of the basic operations in mathematics that helps us combine quantities.",
                    "image": "https://images.unsplash.com/photo-1503676260728-1c00da094a0b?ixlib=rb-4.0.3&auto=format&fit=crop&w=800&h=400",
                },
                {
                    "type": "interactive",
                    "title": "Try it yourself:",
                    "problem": "2 + 3 = ?",
                    "answer": "5",
                },
            ],
        },
        "order": 1,
        "points": 10,
    },
    {
        "id": "lesson-math-2",
        "subject_id": "math-1",
        "title": "Basic Subtraction",
        "description": "Learn how to subtract numbers",
        "content": {
            "type": "interactive",
            "sections": [
                {
                    "type": "explanation",
                    "title": "Understanding Subtraction",
                    "content": "Subtraction is the opposite of addition. It helps us find the difference between numbers.",
                },
            ],
        },
        "order": 2,
        "points": 10,
    },
]

QUIZZES = [
    {
        "id": "quiz-math-1",
        "subject_id": "math-1",
        "lesson_id": "lesson-math-1",
        "title": "Math Quiz - Addition",
        "questions": [
            {
                "id": 1,
                "question": "What is 15 + 7?",
                "options": ["20", "22", "25", "28"],
                "correct_answer": 1,
                "points": 10,
            },
            {
                "id": 2,
                "question": "What is 9 + 6?",
                "options": ["14", "15", "16", "17"],
                "correct_answer": 1,
                "points": 10,
            },
        ],
        "time_limit": 300,
        "points": 50,
    },
]


async def seed_catalog(store: LearningStore) -> bool:
    """Seed subjects, lessons and quizzes if the store has no subjects yet"""
    if await store.list_subjects():
        return False

    for doc in SUBJECTS:
        await store.add_subject(Subject(**doc))
    for doc in LESSONS:
        await store.add_lesson(Lesson(**doc))
    for doc in QUIZZES:
        await store.add_quiz(Quiz(**doc))

    logger.info(
        "Seeded catalog: %d subjects, %d lessons, %d quizzes",
        len(SUBJECTS), len(LESSONS), len(QUIZZES)
    )
    return True
