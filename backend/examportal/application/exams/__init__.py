"""
Exam Application Service Module
"""

from examportal.application.exams.service import (
    AnswerSubmission,
    ExamPaper,
    ExamService,
    GradingResult,
    SampledQuestion,
    ensure_owner,
)

__all__ = [
    "AnswerSubmission",
    "ExamPaper",
    "ExamService",
    "GradingResult",
    "SampledQuestion",
    "ensure_owner",
]
