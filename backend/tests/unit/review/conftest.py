"""Pytest fixtures for review workflow unit tests."""

import pytest

from mistmatch.config import Settings
from tests.fixtures.users import (
    FakePhotoResolver,
    FakeRecordSource,
    make_gender_dataset,
    make_pending,
)


@pytest.fixture
def settings() -> Settings:
    """Production constants with a refresh interval long enough to never fire."""
    return Settings(
        queue_batch_size=20,
        queue_low_watermark=3,
        queue_refresh_interval_seconds=3600,
        gender_page_size=20,
        gender_success_display_seconds=0.01,
        gender_error_display_seconds=0.02,
    )


@pytest.fixture
def pending_source() -> FakeRecordSource:
    """Record source holding 45 pending users."""
    return FakeRecordSource(make_pending(45))


@pytest.fixture
def gender_source() -> FakeRecordSource:
    """Record source holding 50 users, 10 without gender."""
    return FakeRecordSource(make_gender_dataset(50))


@pytest.fixture
def photos() -> FakePhotoResolver:
    return FakePhotoResolver()
