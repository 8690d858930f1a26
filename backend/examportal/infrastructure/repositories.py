"""
Exam Portal - SQLAlchemy Repositories
"""

from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from examportal.domain.exams.entities import ExamAttempt, Question
from examportal.domain.exams.repositories import AttemptRepository, QuestionRepository
from examportal.infrastructure.database import storage_errors
from examportal.infrastructure.models import ExamAttemptRecord, QuestionRecord

logger = structlog.get_logger(__name__)


class SqlAlchemyQuestionRepository(QuestionRepository):
    """Question store backed by the ``questions`` and ``question_options`` tables."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, question_id: UUID) -> Optional[Question]:
        async with storage_errors("question.get"):
            record = await self._session.get(QuestionRecord, question_id)
        return record.to_entity() if record else None

    async def sample(self, count: int) -> List[Question]:
        # ORDER BY random() is a uniform draw without replacement on both
        # PostgreSQL and SQLite.
        stmt = select(QuestionRecord).order_by(func.random()).limit(count)
        async with storage_errors("question.sample"):
            result = await self._session.execute(stmt)
            records = result.scalars().all()
        return [record.to_entity() for record in records]

    async def add(self, question: Question) -> Question:
        async with storage_errors("question.add"):
            self._session.add(QuestionRecord.from_entity(question))
            await self._session.commit()
        return question

    async def delete(self, question_id: UUID) -> bool:
        async with storage_errors("question.delete"):
            record = await self._session.get(QuestionRecord, question_id)
            if record is None:
                return False
            await self._session.delete(record)
            await self._session.commit()
        return True


class SqlAlchemyAttemptRepository(AttemptRepository):
    """Attempt store backed by ``exam_attempts`` and ``exam_attempt_answers``."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, attempt: ExamAttempt) -> ExamAttempt:
        async with storage_errors("attempt.add"):
            self._session.add(ExamAttemptRecord.from_entity(attempt))
            await self._session.commit()

        logger.debug(
            "Attempt stored",
            attempt_id=str(attempt.id),
            answers=len(attempt.outcomes),
        )
        return attempt

    async def get(self, attempt_id: UUID) -> Optional[ExamAttempt]:
        stmt = (
            select(ExamAttemptRecord)
            .where(ExamAttemptRecord.id == attempt_id)
            .options(selectinload(ExamAttemptRecord.answers))
        )
        async with storage_errors("attempt.get"):
            result = await self._session.execute(stmt)
            record = result.scalar_one_or_none()
        return record.to_entity() if record else None

    async def list_recent(self, user_id: UUID, limit: int) -> List[ExamAttempt]:
        stmt = (
            select(ExamAttemptRecord)
            .where(ExamAttemptRecord.user_id == user_id)
            .order_by(ExamAttemptRecord.completed_at.desc(), ExamAttemptRecord.id.desc())
            .limit(limit)
        )
        async with storage_errors("attempt.list_recent"):
            result = await self._session.execute(stmt)
            records = result.scalars().all()
        return [record.to_entity(with_answers=False) for record in records]
