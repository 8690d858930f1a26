"""
Exam Portal - Exam Domain Entities
Questions, graded outcomes and immutable exam attempts
"""

from dataclasses import InitVar, dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from examportal.core.exceptions import ValidationError

UNANSWERED = -1

# Largest value the integer columns of the attempt tables can hold.
MAX_STORED_INT = 2**31 - 1

# Lower bound (inclusive) -> grade label, checked top-down.
GRADE_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (90, "A+"),
    (80, "A"),
    (70, "B"),
    (60, "C"),
    (50, "D"),
)
FAILING_GRADE = "F"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Difficulty(str, Enum):
    """Question difficulty levels."""
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


def calculate_percentage(score: int, total: int) -> int:
    """
    Percentage of correct answers as an integer, rounded half up.

    1 of 3 gives 33, 2 of 3 gives 67 and 1 of 8 gives 13. An exam with no
    graded answers scores 0 rather than dividing by zero.
    """
    if total <= 0:
        return 0
    ratio = Decimal(score) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def grade_for_percentage(percentage: int) -> str:
    """Map a percentage to its letter grade."""
    for threshold, grade in GRADE_THRESHOLDS:
        if percentage >= threshold:
            return grade
    return FAILING_GRADE


@dataclass
class QuestionOption:
    """Value object for a question option."""
    text: str = ""
    is_correct: bool = False
    position: int = 0

    def to_dict(self, include_answer: bool = False) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {
            "index": self.position,
            "text": self.text,
        }
        if include_answer:
            result["is_correct"] = self.is_correct
        return result


@dataclass
class Question:
    """
    Multiple choice question.

    Options are re-indexed by list order on construction. New questions must
    carry at least one correct option; rows loaded from storage pass
    ``validate=False`` so legacy data without a correct option can still be
    read (its correct index is then -1).
    """
    id: UUID = field(default_factory=uuid4)
    prompt: str = ""
    options: List[QuestionOption] = field(default_factory=list)
    category: str = "General"
    difficulty: Difficulty = Difficulty.MEDIUM
    created_at: datetime = field(default_factory=_utcnow)
    validate: InitVar[bool] = True

    def __post_init__(self, validate: bool) -> None:
        """Normalize and validate question after initialization."""
        if not isinstance(self.difficulty, Difficulty):
            try:
                self.difficulty = Difficulty(self.difficulty)
            except ValueError as e:
                raise ValidationError(f"Unknown difficulty: {self.difficulty}") from e

        for index, option in enumerate(self.options):
            option.position = index

        if not validate:
            return

        self.prompt = self.prompt.strip()
        self.category = (self.category or "General").strip() or "General"

        if not self.prompt:
            raise ValidationError("Question text must not be empty")
        if not self.options:
            raise ValidationError("Question must have at least one option")
        if any(not option.text.strip() for option in self.options):
            raise ValidationError("Option text must not be empty")
        if not any(option.is_correct for option in self.options):
            raise ValidationError("At least one option must be correct")

    def option_at(self, index: int) -> Optional[QuestionOption]:
        """Option at a 0-based position, or None when out of range."""
        if index < 0 or index >= len(self.options):
            return None
        return self.options[index]

    def is_correct_choice(self, index: int) -> bool:
        """
        Grade a single selection.

        The sentinel, negative and out-of-range indices are wrong answers,
        never errors.
        """
        option = self.option_at(index)
        return option is not None and option.is_correct

    @property
    def correct_option_index(self) -> int:
        """Position of the first correct option, -1 if there is none."""
        return next(
            (option.position for option in self.options if option.is_correct),
            UNANSWERED,
        )

    def to_dict(self, include_answers: bool = False) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": str(self.id),
            "question": self.prompt,
            "options": [opt.to_dict(include_answer=include_answers)
                        for opt in self.options],
            "category": self.category,
            "difficulty": self.difficulty.value,
        }


@dataclass(frozen=True)
class QuestionOutcome:
    """Graded answer to one question inside an attempt."""
    question_id: UUID
    selected_option: int = UNANSWERED
    is_correct: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "question_id": str(self.question_id),
            "selected_option": self.selected_option,
            "is_correct": self.is_correct,
        }


@dataclass(frozen=True)
class ExamAttempt:
    """
    One completed exam submission.

    Attempts are written once and never updated. History listings load them
    without outcomes.
    """
    user_id: UUID
    score: int
    total: int
    percentage: int
    time_spent: int = 0
    outcomes: Tuple[QuestionOutcome, ...] = ()
    id: UUID = field(default_factory=uuid4)
    completed_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.time_spent < 0:
            raise ValidationError("Time spent must not be negative")
        if self.time_spent > MAX_STORED_INT:
            raise ValidationError("Time spent is out of range")
        if self.score < 0 or self.score > self.total:
            raise ValidationError("Score must be between 0 and total")
        # Outcomes may arrive as a list; keep the stored sequence immutable.
        object.__setattr__(self, "outcomes", tuple(self.outcomes))

    @property
    def grade(self) -> str:
        return grade_for_percentage(self.percentage)

    def passed(self, passing_percentage: int) -> bool:
        return self.percentage >= passing_percentage

    def to_summary_dict(self, passing_percentage: int) -> Dict[str, Any]:
        """Summary fields only, no per-question detail."""
        return {
            "id": str(self.id),
            "score": self.score,
            "total_questions": self.total,
            "percentage": self.percentage,
            "grade": self.grade,
            "passed": self.passed(passing_percentage),
            "time_spent": self.time_spent,
            "completed_at": self.completed_at.isoformat(),
        }


@dataclass
class QuestionReview:
    """Per-question line of a detailed result view."""
    question_id: UUID
    prompt: Optional[str]
    options: List[str]
    selected_option: int
    correct_option: int
    is_correct: bool
    question_missing: bool = False

    @classmethod
    def from_outcome(
        cls,
        outcome: QuestionOutcome,
        question: Optional[Question],
    ) -> "QuestionReview":
        """
        Combine a stored outcome with the current question.

        A question deleted since the attempt yields a degraded line that keeps
        the stored selection and correctness.
        """
        if question is None:
            return cls(
                question_id=outcome.question_id,
                prompt=None,
                options=[],
                selected_option=outcome.selected_option,
                correct_option=UNANSWERED,
                is_correct=outcome.is_correct,
                question_missing=True,
            )

        return cls(
            question_id=outcome.question_id,
            prompt=question.prompt,
            options=[opt.text for opt in question.options],
            selected_option=outcome.selected_option,
            correct_option=question.correct_option_index,
            is_correct=outcome.is_correct,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "question_id": str(self.question_id),
            "question": self.prompt,
            "options": list(self.options),
            "selected_option": self.selected_option,
            "correct_option": self.correct_option,
            "is_correct": self.is_correct,
            "question_missing": self.question_missing,
        }


@dataclass
class AttemptDetail:
    """Attempt summary plus its reconstructed per-question review."""
    attempt: ExamAttempt
    questions: List[QuestionReview] = field(default_factory=list)

    @property
    def missing_questions(self) -> int:
        return sum(1 for q in self.questions if q.question_missing)

    def to_dict(self, passing_percentage: int) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = self.attempt.to_summary_dict(passing_percentage)
        result["questions"] = [q.to_dict() for q in self.questions]
        return result
