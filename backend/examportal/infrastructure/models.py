"""
Exam Portal - ORM Models
Table mappings for questions and exam attempts
"""

import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from examportal.domain.exams.entities import (
    ExamAttempt,
    Question,
    QuestionOption,
    QuestionOutcome,
)
from examportal.infrastructure.database import Base


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class QuestionRecord(Base):
    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="General")
    difficulty: Mapped[str] = mapped_column(String(10), nullable=False, default="Medium")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    options: Mapped[List["QuestionOptionRecord"]] = relationship(
        back_populates="question",
        order_by="QuestionOptionRecord.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @classmethod
    def from_entity(cls, question: Question) -> "QuestionRecord":
        return cls(
            id=question.id,
            prompt=question.prompt,
            category=question.category,
            difficulty=question.difficulty.value,
            created_at=question.created_at,
            options=[
                QuestionOptionRecord(
                    position=opt.position,
                    text=opt.text,
                    is_correct=opt.is_correct,
                )
                for opt in question.options
            ],
        )

    def to_entity(self) -> Question:
        return Question(
            id=self.id,
            prompt=self.prompt,
            options=[
                QuestionOption(text=opt.text, is_correct=opt.is_correct, position=opt.position)
                for opt in self.options
            ],
            category=self.category,
            difficulty=self.difficulty,
            created_at=_as_utc(self.created_at),
            validate=False,
        )


class QuestionOptionRecord(Base):
    __tablename__ = "question_options"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    question: Mapped[QuestionRecord] = relationship(back_populates="options")


class ExamAttemptRecord(Base):
    __tablename__ = "exam_attempts"
    __table_args__ = (
        Index("ix_exam_attempts_user_completed", "user_id", "completed_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    answers: Mapped[List["ExamAttemptAnswerRecord"]] = relationship(
        back_populates="attempt",
        order_by="ExamAttemptAnswerRecord.position",
        cascade="all, delete-orphan",
        lazy="raise",
    )

    @classmethod
    def from_entity(cls, attempt: ExamAttempt) -> "ExamAttemptRecord":
        return cls(
            id=attempt.id,
            user_id=attempt.user_id,
            score=attempt.score,
            total_questions=attempt.total,
            percentage=attempt.percentage,
            time_spent=attempt.time_spent,
            completed_at=attempt.completed_at,
            answers=[
                ExamAttemptAnswerRecord(
                    position=position,
                    question_id=outcome.question_id,
                    selected_option=outcome.selected_option,
                    is_correct=outcome.is_correct,
                )
                for position, outcome in enumerate(attempt.outcomes)
            ],
        )

    def to_entity(self, with_answers: bool = True) -> ExamAttempt:
        outcomes = ()
        if with_answers:
            outcomes = tuple(
                QuestionOutcome(
                    question_id=answer.question_id,
                    selected_option=answer.selected_option,
                    is_correct=answer.is_correct,
                )
                for answer in self.answers
            )
        return ExamAttempt(
            id=self.id,
            user_id=self.user_id,
            outcomes=outcomes,
            score=self.score,
            total=self.total_questions,
            percentage=self.percentage,
            time_spent=self.time_spent,
            completed_at=_as_utc(self.completed_at),
        )


class ExamAttemptAnswerRecord(Base):
    __tablename__ = "exam_attempt_answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    attempt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("exam_attempts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    # Weak reference: questions may be deleted after the attempt was stored.
    question_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    selected_option: Mapped[int] = mapped_column(Integer, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)

    attempt: Mapped[ExamAttemptRecord] = relationship(back_populates="answers")
