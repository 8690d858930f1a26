"""
Unit tests for the exam application service.

Tests:
- Random sampling without answer keys
- Grading policy (skips, sentinels, determinism)
- Submission persistence
- Result reconstruction and ownership
- History ordering and limit
"""

import asyncio
from uuid import uuid4

import pytest

from examportal.application.exams.service import (
    AnswerSubmission,
    ExamService,
    ensure_owner,
)
from examportal.core.exceptions import NotFoundError, TransientStorageError, ValidationError
from examportal.domain.exams.entities import MAX_STORED_INT, UNANSWERED, ExamAttempt
from tests.fixtures.exam_fixtures import (
    InMemoryAttemptRepository,
    InMemoryQuestionRepository,
    make_question,
)


def correct_answers(questions):
    return [AnswerSubmission(question_id=q.id, selected_option=q.correct_option_index)
            for q in questions]


def wrong_answers(questions):
    return [AnswerSubmission(question_id=q.id, selected_option=(q.correct_option_index + 1) % 4)
            for q in questions]


class TestSampling:
    """Test question sampling."""

    @pytest.mark.parametrize("count", [1, 3, 10])
    def test_returns_requested_count(self, exam_service, count):
        paper = asyncio.run(exam_service.sample_questions(count))

        assert paper.total_questions == count
        assert len({q.id for q in paper.questions}) == count

    def test_more_than_available_returns_all(self, exam_service, question_pool):
        """Silent truncation when the pool is smaller than requested."""
        paper = asyncio.run(exam_service.sample_questions(25))

        assert paper.total_questions == len(question_pool)
        assert {q.id for q in paper.questions} == {q.id for q in question_pool}

    def test_default_count_and_duration(self, question_pool):
        pool = question_pool + [
            make_question(f"Extra {i}?", ["A", "B"], correct=0) for i in range(5)
        ]
        service = ExamService(
            questions=InMemoryQuestionRepository(pool),
            attempts=InMemoryAttemptRepository(),
        )

        paper = asyncio.run(service.sample_questions())

        assert paper.total_questions == 10
        assert paper.duration_minutes == 30

    def test_zero_means_default(self, exam_service):
        paper = asyncio.run(exam_service.sample_questions(0))

        assert paper.total_questions == 10

    def test_huge_count_is_clamped(self, exam_service, question_repository, question_pool):
        """Counts beyond any column range still return the whole pool."""
        paper = asyncio.run(exam_service.sample_questions(10**20))

        assert paper.total_questions == len(question_pool)
        assert question_repository.last_sample_count == MAX_STORED_INT

    def test_negative_count_rejected(self, exam_service):
        with pytest.raises(ValidationError):
            asyncio.run(exam_service.sample_questions(-1))

    def test_no_answer_key_exposed(self, exam_service):
        paper = asyncio.run(exam_service.sample_questions(10))

        for question in paper.questions:
            data = question.to_dict()
            assert "is_correct" not in str(data)
            assert [opt["index"] for opt in data["options"]] == list(range(len(data["options"])))

    def test_empty_pool(self, attempt_repository):
        service = ExamService(
            questions=InMemoryQuestionRepository(), attempts=attempt_repository,
        )

        paper = asyncio.run(service.sample_questions(5))

        assert paper.questions == []

    def test_store_unreachable(self, exam_service, question_repository):
        question_repository.available = False

        with pytest.raises(TransientStorageError):
            asyncio.run(exam_service.sample_questions(3))


class TestGrading:
    """Test the answer grader."""

    def test_all_correct(self, exam_service, question_pool):
        result = asyncio.run(exam_service.grade_answers(correct_answers(question_pool)))

        assert result.score == 10
        assert result.total == 10
        assert result.percentage == 100

    def test_seven_of_ten(self, exam_service, question_pool):
        answers = correct_answers(question_pool[:7]) + wrong_answers(question_pool[7:])

        result = asyncio.run(exam_service.grade_answers(answers))

        assert (result.score, result.total, result.percentage) == (7, 10, 70)

    def test_outcomes_follow_input_order(self, exam_service, question_pool):
        answers = list(reversed(correct_answers(question_pool[:4])))

        result = asyncio.run(exam_service.grade_answers(answers))

        assert [o.question_id for o in result.outcomes] == [a.question_id for a in answers]

    def test_unknown_question_skipped(self, exam_service, question_pool):
        """Unknown ids are excluded from both outcomes and the denominator."""
        answers = correct_answers(question_pool[:2]) + [
            AnswerSubmission(question_id=uuid4(), selected_option=0),
            AnswerSubmission(question_id="not-a-uuid", selected_option=1),
        ]

        result = asyncio.run(exam_service.grade_answers(answers))

        assert result.total == 2
        assert result.score == 2
        assert result.skipped == 2
        assert result.percentage == 100

    @pytest.mark.parametrize("selected", [UNANSWERED, None, 4, 100, -7])
    def test_unanswered_and_out_of_range_are_wrong(self, exam_service, capital_question, selected):
        answers = [AnswerSubmission(question_id=capital_question.id, selected_option=selected)]

        result = asyncio.run(exam_service.grade_answers(answers))

        assert result.score == 0
        assert result.total == 1
        assert result.outcomes[0].is_correct is False

    @pytest.mark.parametrize("selected", [4, 2**31, 2**63, -2, "2", 2.0, True])
    def test_invalid_selection_stored_as_sentinel(self, exam_service, capital_question, selected):
        """Anything that is not a valid option index is kept as -1."""
        answers = [AnswerSubmission(question_id=capital_question.id, selected_option=selected)]

        result = asyncio.run(exam_service.grade_answers(answers))

        assert result.outcomes[0].selected_option == UNANSWERED
        assert result.outcomes[0].is_correct is False

    def test_none_selection_stored_as_sentinel(self, exam_service, capital_question):
        answers = [AnswerSubmission(question_id=capital_question.id, selected_option=None)]

        result = asyncio.run(exam_service.grade_answers(answers))

        assert result.outcomes[0].selected_option == UNANSWERED

    def test_string_ids_accepted(self, exam_service, capital_question):
        answers = [AnswerSubmission(question_id=str(capital_question.id), selected_option=2)]

        result = asyncio.run(exam_service.grade_answers(answers))

        assert result.score == 1

    def test_one_third_and_two_thirds(self, exam_service, question_pool):
        one = correct_answers(question_pool[:1]) + wrong_answers(question_pool[1:3])
        two = correct_answers(question_pool[:2]) + wrong_answers(question_pool[2:3])

        assert asyncio.run(exam_service.grade_answers(one)).percentage == 33
        assert asyncio.run(exam_service.grade_answers(two)).percentage == 67

    def test_deterministic(self, exam_service, question_pool):
        answers = correct_answers(question_pool[:5]) + wrong_answers(question_pool[5:])

        first = asyncio.run(exam_service.grade_answers(answers))
        second = asyncio.run(exam_service.grade_answers(answers))

        assert first.outcomes == second.outcomes
        assert (first.score, first.percentage) == (second.score, second.percentage)

    def test_one_lookup_per_answer(self, exam_service, question_repository, question_pool):
        asyncio.run(exam_service.grade_answers(correct_answers(question_pool[:6])))

        assert question_repository.lookups == 6


class TestSubmission:
    """Test submit-and-persist."""

    def test_submit_stores_attempt(
        self, exam_service, attempt_repository, sample_user_id, question_pool,
    ):
        answers = correct_answers(question_pool[:7]) + wrong_answers(question_pool[7:])

        attempt = asyncio.run(exam_service.submit_exam(sample_user_id, answers, 420))

        assert attempt.user_id == sample_user_id
        assert (attempt.score, attempt.total, attempt.percentage) == (7, 10, 70)
        assert attempt.grade == "B"
        assert attempt.time_spent == 420
        assert attempt.completed_at.tzinfo is not None
        assert len(attempt_repository) == 1

    def test_empty_submission_scores_zero(self, exam_service, sample_user_id):
        attempt = asyncio.run(exam_service.submit_exam(sample_user_id, [], 10))

        assert (attempt.score, attempt.total, attempt.percentage) == (0, 0, 0)

    def test_missing_time_defaults_to_zero(self, exam_service, sample_user_id):
        attempt = asyncio.run(exam_service.submit_exam(sample_user_id, [], None))

        assert attempt.time_spent == 0

    @pytest.mark.parametrize("answers", [None, "answers", {"question_id": "x"}])
    def test_answers_must_be_a_list(self, exam_service, sample_user_id, answers):
        with pytest.raises(ValidationError, match="Invalid answers format"):
            asyncio.run(exam_service.submit_exam(sample_user_id, answers, 0))

    def test_negative_time_rejected(self, exam_service, sample_user_id, attempt_repository):
        with pytest.raises(ValidationError):
            asyncio.run(exam_service.submit_exam(sample_user_id, [], -5))

        assert len(attempt_repository) == 0

    def test_oversized_selection_is_persisted_as_unanswered(
        self, exam_service, attempt_repository, sample_user_id, capital_question,
    ):
        answers = [AnswerSubmission(question_id=capital_question.id, selected_option=2**31)]

        attempt = asyncio.run(exam_service.submit_exam(sample_user_id, answers, 5))

        assert (attempt.score, attempt.total) == (0, 1)
        assert attempt.outcomes[0].selected_option == UNANSWERED
        assert len(attempt_repository) == 1

    def test_time_spent_out_of_range(self, exam_service, sample_user_id, attempt_repository):
        with pytest.raises(ValidationError):
            asyncio.run(exam_service.submit_exam(sample_user_id, [], MAX_STORED_INT + 1))

        assert len(attempt_repository) == 0


class TestOwnershipGuard:
    """Test the result authorization guard."""

    def test_owner_passes(self, sample_user_id):
        attempt = ExamAttempt(user_id=sample_user_id, score=0, total=0, percentage=0)

        assert ensure_owner(attempt, sample_user_id) is attempt

    def test_other_user_not_found(self, sample_user_id, other_user_id):
        attempt = ExamAttempt(user_id=sample_user_id, score=0, total=0, percentage=0)

        with pytest.raises(NotFoundError):
            ensure_owner(attempt, other_user_id)

    def test_missing_attempt_not_found(self, sample_user_id):
        with pytest.raises(NotFoundError):
            ensure_owner(None, sample_user_id)


class TestResults:
    """Test detailed result reconstruction."""

    def submit(self, service, user_id, answers):
        return asyncio.run(service.submit_exam(user_id, answers, 60))

    def test_detail_for_owner(self, exam_service, sample_user_id, capital_question):
        attempt = self.submit(exam_service, sample_user_id, [
            AnswerSubmission(question_id=capital_question.id, selected_option=2),
        ])

        detail = asyncio.run(exam_service.get_result(attempt.id, sample_user_id))

        assert detail.attempt.id == attempt.id
        review = detail.questions[0]
        assert review.prompt == capital_question.prompt
        assert review.options == ["London", "Berlin", "Paris", "Madrid"]
        assert review.selected_option == 2
        assert review.correct_option == 2
        assert review.is_correct is True

    def test_accepts_string_id(self, exam_service, sample_user_id):
        attempt = self.submit(exam_service, sample_user_id, [])

        detail = asyncio.run(exam_service.get_result(str(attempt.id), sample_user_id))

        assert detail.attempt.id == attempt.id

    def test_other_user_gets_not_found(self, exam_service, sample_user_id, other_user_id):
        attempt = self.submit(exam_service, sample_user_id, [])

        with pytest.raises(NotFoundError):
            asyncio.run(exam_service.get_result(attempt.id, other_user_id))

    @pytest.mark.parametrize("attempt_id", ["garbage", str(uuid4())])
    def test_unknown_or_malformed_id(self, exam_service, sample_user_id, attempt_id):
        with pytest.raises(NotFoundError):
            asyncio.run(exam_service.get_result(attempt_id, sample_user_id))

    def test_deleted_question_degrades(
        self, exam_service, sample_user_id, question_pool, capital_question,
    ):
        """A deleted question yields a placeholder line, the rest stays intact."""
        attempt = self.submit(exam_service, sample_user_id, correct_answers(question_pool[:3]))
        asyncio.run(exam_service.delete_question(capital_question.id))

        detail = asyncio.run(exam_service.get_result(attempt.id, sample_user_id))

        assert detail.missing_questions == 1
        missing = detail.questions[0]
        assert missing.question_id == capital_question.id
        assert missing.question_missing is True
        assert missing.is_correct is True
        assert missing.correct_option == UNANSWERED
        assert all(not q.question_missing for q in detail.questions[1:])
        assert detail.attempt.score == 3


class TestHistory:
    """Test the history lister."""

    def test_newest_first_and_limited(
        self, exam_service, attempt_repository, sample_user_id, twelve_attempts,
    ):
        for attempt in twelve_attempts:
            asyncio.run(attempt_repository.add(attempt))

        history = asyncio.run(exam_service.get_history(sample_user_id))

        assert len(history) == 10
        times = [a.completed_at for a in history]
        assert all(earlier > later for earlier, later in zip(times, times[1:]))
        assert history[0].id == twelve_attempts[-1].id

    def test_summaries_only(self, exam_service, attempt_repository, sample_user_id, twelve_attempts):
        asyncio.run(attempt_repository.add(twelve_attempts[0]))

        history = asyncio.run(exam_service.get_history(sample_user_id))

        assert history[0].outcomes == ()
        assert history[0].total == twelve_attempts[0].total

    def test_only_own_attempts(
        self, exam_service, attempt_repository, other_user_id, twelve_attempts,
    ):
        for attempt in twelve_attempts:
            asyncio.run(attempt_repository.add(attempt))

        assert asyncio.run(exam_service.get_history(other_user_id)) == []


class TestQuestionAdministration:
    """Test question creation and deletion."""

    def test_create_question(self, exam_service, question_repository):
        question = asyncio.run(exam_service.create_question(
            "  Largest planet?  ",
            [("Mars", False), ("Jupiter", True)],
            category="Astronomy",
            difficulty="Easy",
        ))

        assert question.prompt == "Largest planet?"
        assert question.correct_option_index == 1
        assert asyncio.run(question_repository.get(question.id)) is question

    def test_create_without_correct_option(self, exam_service):
        with pytest.raises(ValidationError):
            asyncio.run(exam_service.create_question("Q?", [("A", False), ("B", False)]))

    def test_delete_unknown_question(self, exam_service):
        with pytest.raises(NotFoundError):
            asyncio.run(exam_service.delete_question(uuid4()))
