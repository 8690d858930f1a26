"""
Exam Domain Module

Multiple choice questions, grading rules and exam attempts.
"""

from examportal.domain.exams.entities import (
    AttemptDetail,
    Difficulty,
    ExamAttempt,
    Question,
    QuestionOption,
    QuestionOutcome,
    QuestionReview,
    MAX_STORED_INT,
    UNANSWERED,
    calculate_percentage,
    grade_for_percentage,
)
from examportal.domain.exams.repositories import AttemptRepository, QuestionRepository

__all__ = [
    "AttemptDetail",
    "Difficulty",
    "ExamAttempt",
    "Question",
    "QuestionOption",
    "QuestionOutcome",
    "QuestionReview",
    "MAX_STORED_INT",
    "UNANSWERED",
    "calculate_percentage",
    "grade_for_percentage",
    "AttemptRepository",
    "QuestionRepository",
]
