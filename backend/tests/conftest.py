"""
Pytest configuration and shared fixtures.
"""

import os

# Settings require a signing key; set one before any app module is imported.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-exam-portal-0123456789")

from tests.fixtures.exam_fixtures import (  # noqa: E402
    attempt_repository,
    capital_question,
    exam_service,
    other_user_id,
    question_pool,
    question_repository,
    sample_user_id,
    twelve_attempts,
)

__all__ = [
    "attempt_repository",
    "capital_question",
    "exam_service",
    "other_user_id",
    "question_pool",
    "question_repository",
    "sample_user_id",
    "twelve_attempts",
]


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "api: tests that go through the HTTP layer"
    )
