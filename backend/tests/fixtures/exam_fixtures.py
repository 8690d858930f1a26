"""
Pytest fixtures for exam sampling, grading and results.
"""

import dataclasses
import random
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional
from uuid import UUID, uuid4

import pytest

from examportal.application.exams.service import ExamService
from examportal.core.exceptions import TransientStorageError
from examportal.domain.exams.entities import (
    Difficulty,
    ExamAttempt,
    Question,
    QuestionOption,
    QuestionOutcome,
)
from examportal.domain.exams.repositories import AttemptRepository, QuestionRepository


def make_question(
    prompt: str,
    options: List[str],
    correct: int,
    category: str = "General",
    difficulty: Difficulty = Difficulty.MEDIUM,
) -> Question:
    """Build a single-answer question with the option at ``correct`` flagged."""
    return Question(
        id=uuid4(),
        prompt=prompt,
        options=[
            QuestionOption(text=text, is_correct=(index == correct))
            for index, text in enumerate(options)
        ],
        category=category,
        difficulty=difficulty,
    )


def make_attempt(
    user_id: UUID,
    completed_at: datetime,
    score: int = 5,
    total: int = 10,
) -> ExamAttempt:
    """Build a stored attempt without touching the grader."""
    return ExamAttempt(
        user_id=user_id,
        score=score,
        total=total,
        percentage=score * 100 // total if total else 0,
        time_spent=120,
        outcomes=tuple(
            QuestionOutcome(question_id=uuid4(), selected_option=0, is_correct=i < score)
            for i in range(total)
        ),
        completed_at=completed_at,
    )


class InMemoryQuestionRepository(QuestionRepository):
    """Dictionary-backed question store that counts lookups."""

    def __init__(self, questions: Iterable[Question] = (), seed: Optional[int] = None):
        self._questions: Dict[UUID, Question] = {q.id: q for q in questions}
        self._rng = random.Random(seed)
        self.lookups = 0
        self.last_sample_count: Optional[int] = None
        self.available = True

    def _check_available(self) -> None:
        if not self.available:
            raise TransientStorageError("question store offline")

    async def get(self, question_id: UUID) -> Optional[Question]:
        self._check_available()
        self.lookups += 1
        return self._questions.get(question_id)

    async def sample(self, count: int) -> List[Question]:
        self._check_available()
        self.last_sample_count = count
        pool = list(self._questions.values())
        return self._rng.sample(pool, min(count, len(pool)))

    async def add(self, question: Question) -> Question:
        self._check_available()
        self._questions[question.id] = question
        return question

    async def delete(self, question_id: UUID) -> bool:
        self._check_available()
        return self._questions.pop(question_id, None) is not None


class InMemoryAttemptRepository(AttemptRepository):
    """Dictionary-backed attempt store."""

    def __init__(self):
        self._attempts: Dict[UUID, ExamAttempt] = {}

    async def add(self, attempt: ExamAttempt) -> ExamAttempt:
        self._attempts[attempt.id] = attempt
        return attempt

    async def get(self, attempt_id: UUID) -> Optional[ExamAttempt]:
        return self._attempts.get(attempt_id)

    async def list_recent(self, user_id: UUID, limit: int) -> List[ExamAttempt]:
        owned = [a for a in self._attempts.values() if a.user_id == user_id]
        owned.sort(key=lambda a: a.completed_at, reverse=True)
        return [dataclasses.replace(a, outcomes=()) for a in owned[:limit]]

    def __iter__(self):
        return iter(self._attempts.values())

    def __len__(self) -> int:
        return len(self._attempts)


@pytest.fixture
def sample_user_id() -> UUID:
    """Sample user ID."""
    return uuid4()


@pytest.fixture
def other_user_id() -> UUID:
    """A second, unrelated user."""
    return uuid4()


@pytest.fixture
def capital_question() -> Question:
    """Four options, the third one correct."""
    return make_question(
        "What is the capital of France?",
        ["London", "Berlin", "Paris", "Madrid"],
        correct=2,
        category="Geography",
        difficulty=Difficulty.EASY,
    )


@pytest.fixture
def question_pool(capital_question: Question) -> List[Question]:
    """Ten questions: the capital question plus nine numbered ones."""
    pool = [capital_question]
    for i in range(1, 10):
        pool.append(make_question(
            f"Question {i}?",
            ["A", "B", "C", "D"],
            correct=i % 4,
            category="Programming" if i % 2 else "Science",
            difficulty=list(Difficulty)[i % 3],
        ))
    return pool


@pytest.fixture
def question_repository(question_pool: List[Question]) -> InMemoryQuestionRepository:
    """Question store seeded with the pool."""
    return InMemoryQuestionRepository(question_pool, seed=1234)


@pytest.fixture
def attempt_repository() -> InMemoryAttemptRepository:
    """Empty attempt store."""
    return InMemoryAttemptRepository()


@pytest.fixture
def exam_service(
    question_repository: InMemoryQuestionRepository,
    attempt_repository: InMemoryAttemptRepository,
) -> ExamService:
    """Exam service with default settings over in-memory stores."""
    return ExamService(
        questions=question_repository,
        attempts=attempt_repository,
        default_question_count=10,
        exam_duration_minutes=30,
        history_limit=10,
        passing_percentage=60,
    )


@pytest.fixture
def twelve_attempts(sample_user_id: UUID) -> List[ExamAttempt]:
    """Twelve attempts one hour apart, oldest first."""
    start = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
    return [
        make_attempt(sample_user_id, start + timedelta(hours=i), score=i % 11)
        for i in range(12)
    ]
