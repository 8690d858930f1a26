"""
Exam Portal - Exam Application Service
Question sampling, grading, result assembly and history
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from uuid import UUID

import structlog

from examportal.core.exceptions import NotFoundError, ValidationError
from examportal.domain.exams.entities import (
    MAX_STORED_INT,
    UNANSWERED,
    AttemptDetail,
    Difficulty,
    ExamAttempt,
    Question,
    QuestionOption,
    QuestionOutcome,
    QuestionReview,
    calculate_percentage,
)
from examportal.domain.exams.repositories import AttemptRepository, QuestionRepository

logger = structlog.get_logger(__name__)

RESULT_NOT_FOUND = "Exam result not found"


@dataclass
class SampledQuestion:
    """Question as shown to a candidate: option texts only, no answer key."""
    id: UUID
    prompt: str
    options: List[str]
    category: str
    difficulty: Difficulty

    @classmethod
    def from_question(cls, question: Question) -> "SampledQuestion":
        return cls(
            id=question.id,
            prompt=question.prompt,
            options=[opt.text for opt in question.options],
            category=question.category,
            difficulty=question.difficulty,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": str(self.id),
            "question": self.prompt,
            "options": [
                {"index": index, "text": text}
                for index, text in enumerate(self.options)
            ],
            "category": self.category,
            "difficulty": self.difficulty.value,
        }


@dataclass
class ExamPaper:
    """A freshly sampled exam."""
    questions: List[SampledQuestion]
    duration_minutes: int

    @property
    def total_questions(self) -> int:
        return len(self.questions)


@dataclass
class AnswerSubmission:
    """One submitted answer. A ``selected_option`` that is not an int means unanswered."""
    question_id: Union[UUID, str]
    selected_option: Any = UNANSWERED


@dataclass
class GradingResult:
    """Outcome of grading a submission."""
    outcomes: List[QuestionOutcome] = field(default_factory=list)
    score: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def percentage(self) -> int:
        return calculate_percentage(self.score, self.total)


def ensure_owner(attempt: Optional[ExamAttempt], user_id: UUID) -> ExamAttempt:
    """
    Authorization guard for result access.

    Missing attempts and attempts of other users raise the same NotFoundError,
    so callers cannot probe which attempt ids exist.
    """
    if attempt is None or attempt.user_id != user_id:
        raise NotFoundError(RESULT_NOT_FOUND)
    return attempt


def _parse_uuid(value: Union[UUID, str]) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _normalize_selection(selected: Any) -> int:
    if isinstance(selected, bool) or not isinstance(selected, int):
        return UNANSWERED
    return selected


class ExamService:
    """
    Service for running exams.

    Stateless between calls: every operation works only from its arguments
    and the repositories.
    """

    def __init__(
        self,
        questions: QuestionRepository,
        attempts: AttemptRepository,
        default_question_count: int = 10,
        exam_duration_minutes: int = 30,
        history_limit: int = 10,
        passing_percentage: int = 60,
    ):
        """
        Initialize exam service.

        Args:
            questions: Question store
            attempts: Attempt store
            default_question_count: Questions per exam when the caller gives none
            exam_duration_minutes: Duration advertised with every exam
            history_limit: Maximum attempts returned by history
            passing_percentage: Threshold for the ``passed`` flag
        """
        self._questions = questions
        self._attempts = attempts
        self.default_question_count = default_question_count
        self.exam_duration_minutes = exam_duration_minutes
        self.history_limit = history_limit
        self.passing_percentage = passing_percentage

    # Sampling

    async def sample_questions(self, count: Optional[int] = None) -> ExamPaper:
        """
        Draw a random exam.

        Args:
            count: Requested number of questions; None or 0 means the default

        Returns:
            ExamPaper with at most ``count`` questions and no answer key
        """
        if not count:
            count = self.default_question_count
        if count < 0:
            raise ValidationError("Question count must not be negative")

        questions = await self._questions.sample(min(count, MAX_STORED_INT))
        sampled = [SampledQuestion.from_question(q) for q in questions]

        if len(sampled) < count:
            logger.info(
                "Question pool smaller than requested count",
                requested=count,
                returned=len(sampled),
            )

        return ExamPaper(questions=sampled, duration_minutes=self.exam_duration_minutes)

    # Grading

    async def grade_answers(self, answers: Sequence[AnswerSubmission]) -> GradingResult:
        """
        Grade answers in submission order.

        Answers naming an unknown question are skipped: they produce no
        outcome and do not count toward the total.
        """
        result = GradingResult()

        for answer in answers:
            question_id = _parse_uuid(answer.question_id)
            question = await self._questions.get(question_id) if question_id else None

            if question is None:
                result.skipped += 1
                logger.warning(
                    "Skipping answer for unknown question",
                    question_id=str(answer.question_id),
                )
                continue

            selected = _normalize_selection(answer.selected_option)
            if question.option_at(selected) is None:
                # Out-of-range picks are wrong answers, stored as unanswered.
                selected = UNANSWERED
            is_correct = question.is_correct_choice(selected)
            if is_correct:
                result.score += 1

            result.outcomes.append(QuestionOutcome(
                question_id=question.id,
                selected_option=selected,
                is_correct=is_correct,
            ))

        return result

    async def submit_exam(
        self,
        user_id: UUID,
        answers: Optional[Sequence[AnswerSubmission]],
        time_spent: Optional[int] = 0,
    ) -> ExamAttempt:
        """
        Grade and persist a submission.

        Args:
            user_id: Submitting user
            answers: Submitted answers, must be a list
            time_spent: Elapsed seconds reported by the client

        Returns:
            The stored attempt
        """
        if answers is None or not isinstance(answers, (list, tuple)):
            raise ValidationError("Invalid answers format")

        graded = await self.grade_answers(answers)

        attempt = ExamAttempt(
            user_id=user_id,
            outcomes=tuple(graded.outcomes),
            score=graded.score,
            total=graded.total,
            percentage=graded.percentage,
            time_spent=time_spent or 0,
        )
        attempt = await self._attempts.add(attempt)

        logger.info(
            "Exam submitted",
            attempt_id=str(attempt.id),
            user_id=str(user_id),
            score=attempt.score,
            total=attempt.total,
            percentage=attempt.percentage,
            skipped=graded.skipped,
        )

        return attempt

    # Results

    async def get_result(self, attempt_id: Union[UUID, str], user_id: UUID) -> AttemptDetail:
        """
        Rebuild the detailed review of one of the caller's attempts.

        Raises:
            NotFoundError: unknown id, malformed id, or another user's attempt
        """
        parsed_id = _parse_uuid(attempt_id)
        if parsed_id is None:
            raise NotFoundError(RESULT_NOT_FOUND)

        attempt = ensure_owner(await self._attempts.get(parsed_id), user_id)

        reviews = []
        for outcome in attempt.outcomes:
            question = await self._questions.get(outcome.question_id)
            if question is None:
                logger.warning(
                    "Question referenced by attempt no longer exists",
                    attempt_id=str(attempt.id),
                    question_id=str(outcome.question_id),
                )
            reviews.append(QuestionReview.from_outcome(outcome, question))

        return AttemptDetail(attempt=attempt, questions=reviews)

    async def get_history(self, user_id: UUID) -> List[ExamAttempt]:
        """Most recent attempts of the user, newest first."""
        return await self._attempts.list_recent(user_id, self.history_limit)

    # Question administration

    async def create_question(
        self,
        prompt: str,
        options: Sequence[Tuple[str, bool]],
        category: str = "General",
        difficulty: Union[Difficulty, str] = Difficulty.MEDIUM,
    ) -> Question:
        """Validate and store a new question."""
        question = Question(
            prompt=prompt,
            options=[QuestionOption(text=text, is_correct=is_correct)
                     for text, is_correct in options],
            category=category,
            difficulty=difficulty,
        )
        question = await self._questions.add(question)

        logger.info(
            "Question created",
            question_id=str(question.id),
            category=question.category,
            difficulty=question.difficulty.value,
        )
        return question

    async def delete_question(self, question_id: UUID) -> None:
        """Delete a question; stored attempts keep their outcomes."""
        if not await self._questions.delete(question_id):
            raise NotFoundError("Question not found")
        logger.info("Question deleted", question_id=str(question_id))
