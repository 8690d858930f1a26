"""
Exam Portal - Exam Repository Interfaces
Storage ports the application service depends on
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from examportal.domain.exams.entities import ExamAttempt, Question


class QuestionRepository(ABC):
    """Question store."""

    @abstractmethod
    async def get(self, question_id: UUID) -> Optional[Question]:
        """Fetch a question with its options, None if it does not exist."""

    @abstractmethod
    async def sample(self, count: int) -> List[Question]:
        """
        Draw up to ``count`` distinct questions uniformly at random.

        Returns every question, in random order, when fewer than ``count``
        exist.
        """

    @abstractmethod
    async def add(self, question: Question) -> Question:
        """Persist a new question."""

    @abstractmethod
    async def delete(self, question_id: UUID) -> bool:
        """Delete a question. Returns False when it did not exist."""


class AttemptRepository(ABC):
    """Append-only store of exam attempts."""

    @abstractmethod
    async def add(self, attempt: ExamAttempt) -> ExamAttempt:
        """Persist an attempt and its outcomes in one transaction."""

    @abstractmethod
    async def get(self, attempt_id: UUID) -> Optional[ExamAttempt]:
        """Fetch an attempt with outcomes in submission order."""

    @abstractmethod
    async def list_recent(self, user_id: UUID, limit: int) -> List[ExamAttempt]:
        """Latest attempts of a user, newest first, without outcomes."""
