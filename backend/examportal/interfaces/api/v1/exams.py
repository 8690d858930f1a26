"""
Exam Portal - Exam API Endpoints
Randomized exams, submission, results and history
"""

from datetime import datetime
from typing import Annotated, Any, AsyncGenerator, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import AliasChoices, BaseModel, Field, field_validator

from examportal.application.exams.service import AnswerSubmission, ExamService
from examportal.domain.exams.entities import MAX_STORED_INT, UNANSWERED
from examportal.infrastructure.database import DatabaseManager
from examportal.infrastructure.repositories import (
    SqlAlchemyAttemptRepository,
    SqlAlchemyQuestionRepository,
)
from examportal.interfaces.api.v1.auth import get_current_user_id, require_admin

router = APIRouter()


# Request/Response Models

class ExamOptionResponse(BaseModel):
    """Option as shown to the candidate (no answer key)."""
    index: int
    text: str


class ExamQuestionResponse(BaseModel):
    """Sampled exam question."""
    id: str
    question: str
    options: list[ExamOptionResponse]
    category: str
    difficulty: str


class ExamQuestionsResponse(BaseModel):
    """Randomized exam."""
    questions: list[ExamQuestionResponse]
    total_questions: int
    exam_duration: int  # minutes


class AnswerSubmissionRequest(BaseModel):
    """
    Single submitted answer.

    Any selection that is not an option index (null, text, fractions) is
    graded as unanswered rather than rejected.
    """
    question_id: str | int = Field(
        validation_alias=AliasChoices("question_id", "questionId"),
    )
    selected_option: Any = Field(
        default=UNANSWERED,
        validation_alias=AliasChoices("selected_option", "selectedOption"),
    )


class ExamSubmitRequest(BaseModel):
    """Exam submission request."""
    answers: list[AnswerSubmissionRequest]
    time_spent: int | None = Field(
        default=0,
        ge=0,
        le=MAX_STORED_INT,
        validation_alias=AliasChoices("time_spent", "timeSpent"),
    )


class ExamSummaryResponse(BaseModel):
    """Attempt summary without per-question detail."""
    id: str
    score: int
    total_questions: int
    percentage: int
    grade: str
    passed: bool
    time_spent: int
    completed_at: datetime


class ExamSubmitResponse(BaseModel):
    """Exam submission response."""
    message: str
    result: ExamSummaryResponse


class QuestionReviewResponse(BaseModel):
    """One reviewed question of an attempt."""
    question_id: str
    question: str | None
    options: list[str]
    selected_option: int
    correct_option: int
    is_correct: bool
    question_missing: bool = False


class ExamResultDetail(ExamSummaryResponse):
    """Attempt summary plus per-question review."""
    questions: list[QuestionReviewResponse]


class ExamResultResponse(BaseModel):
    """Detailed result response."""
    result: ExamResultDetail


class ExamHistoryResponse(BaseModel):
    """Recent attempts, newest first."""
    results: list[ExamSummaryResponse]


class QuestionOptionCreate(BaseModel):
    """Option of a new question."""
    text: str = Field(min_length=1)
    is_correct: bool = False


class QuestionCreateRequest(BaseModel):
    """Create question request (admin)."""
    question: str = Field(min_length=1)
    options: list[QuestionOptionCreate] = Field(min_length=1)
    category: str = Field(default="General", max_length=100)
    difficulty: Literal["Easy", "Medium", "Hard"] = "Medium"

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: list[QuestionOptionCreate]) -> list[QuestionOptionCreate]:
        if not any(opt.is_correct for opt in v):
            raise ValueError("At least one option must be correct")
        return v


class AdminOptionResponse(ExamOptionResponse):
    """Option including the answer key."""
    is_correct: bool


class QuestionAdminResponse(BaseModel):
    """Full question (admin)."""
    id: str
    question: str
    options: list[AdminOptionResponse]
    category: str
    difficulty: str


# Dependencies

async def get_exam_service(request: Request) -> AsyncGenerator[ExamService, None]:
    """Exam service bound to a request-scoped database session."""
    settings = request.app.state.settings
    db: DatabaseManager = request.app.state.db

    async with db.session() as session:
        yield ExamService(
            questions=SqlAlchemyQuestionRepository(session),
            attempts=SqlAlchemyAttemptRepository(session),
            default_question_count=settings.exam_default_question_count,
            exam_duration_minutes=settings.exam_duration_minutes,
            history_limit=settings.exam_history_limit,
            passing_percentage=settings.exam_passing_percentage,
        )


# Endpoints

@router.get(
    "/questions",
    response_model=ExamQuestionsResponse,
    summary="Get Exam Questions",
    description="Draw a random set of questions. Correct answers are never included.",
)
async def get_exam_questions(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    exam_service: Annotated[ExamService, Depends(get_exam_service)],
    count: Annotated[int | None, Query(description="Number of questions")] = None,
) -> ExamQuestionsResponse:
    """Get randomized exam questions."""
    paper = await exam_service.sample_questions(count)

    return ExamQuestionsResponse(
        questions=[ExamQuestionResponse(**q.to_dict()) for q in paper.questions],
        total_questions=paper.total_questions,
        exam_duration=paper.duration_minutes,
    )


@router.post(
    "/submit",
    response_model=ExamSubmitResponse,
    summary="Submit Exam",
    description="Grade submitted answers and store the attempt.",
    responses={400: {"description": "Invalid answers format"}},
)
async def submit_exam(
    body: ExamSubmitRequest,
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    exam_service: Annotated[ExamService, Depends(get_exam_service)],
) -> ExamSubmitResponse:
    """Submit exam and calculate score."""
    answers = [
        AnswerSubmission(question_id=a.question_id, selected_option=a.selected_option)
        for a in body.answers
    ]

    attempt = await exam_service.submit_exam(user_id, answers, body.time_spent)

    return ExamSubmitResponse(
        message="Exam submitted successfully",
        result=ExamSummaryResponse(
            **attempt.to_summary_dict(exam_service.passing_percentage)
        ),
    )


@router.get(
    "/result/{attempt_id}",
    response_model=ExamResultResponse,
    summary="Get Exam Result",
    description="Detailed review of one of the caller's attempts.",
    responses={404: {"description": "Exam result not found"}},
)
async def get_exam_result(
    attempt_id: str,
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    exam_service: Annotated[ExamService, Depends(get_exam_service)],
) -> ExamResultResponse:
    """Get exam result by ID."""
    detail = await exam_service.get_result(attempt_id, user_id)

    return ExamResultResponse(
        result=ExamResultDetail(**detail.to_dict(exam_service.passing_percentage))
    )


@router.get(
    "/history",
    response_model=ExamHistoryResponse,
    summary="Get Exam History",
)
async def get_exam_history(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    exam_service: Annotated[ExamService, Depends(get_exam_service)],
) -> ExamHistoryResponse:
    """Get the caller's recent attempts."""
    attempts = await exam_service.get_history(user_id)

    return ExamHistoryResponse(
        results=[
            ExamSummaryResponse(**a.to_summary_dict(exam_service.passing_percentage))
            for a in attempts
        ]
    )


# Admin Endpoints

@router.post(
    "/questions",
    response_model=QuestionAdminResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Question (Admin)",
)
async def add_question(
    body: QuestionCreateRequest,
    current_user: Annotated[dict, Depends(require_admin)],
    exam_service: Annotated[ExamService, Depends(get_exam_service)],
) -> QuestionAdminResponse:
    """Add a question to the pool (admin only)."""
    question = await exam_service.create_question(
        prompt=body.question,
        options=[(opt.text, opt.is_correct) for opt in body.options],
        category=body.category,
        difficulty=body.difficulty,
    )

    return QuestionAdminResponse(**question.to_dict(include_answers=True))


@router.delete(
    "/questions/{question_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Question (Admin)",
    responses={404: {"description": "Question not found"}},
)
async def delete_question(
    question_id: UUID,
    current_user: Annotated[dict, Depends(require_admin)],
    exam_service: Annotated[ExamService, Depends(get_exam_service)],
) -> None:
    """Delete a question (admin only). Past attempts keep their outcomes."""
    await exam_service.delete_question(question_id)
