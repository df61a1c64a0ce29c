"""Unit tests for QueueController.

Tests loading, batching, refresh merging and lifecycle against
in-memory collaborators.

Run with: pytest tests/unit/review/test_queue_controller.py -v
"""

import asyncio

import pytest

from mistmatch.review.models import VerificationStatus
from mistmatch.review.queue import QueueController
from tests.fixtures.users import FakePhotoResolver, FakeRecordSource, make_pending


def _newest_first_ids(records) -> list[str]:
    return [r.id for r in sorted(records, key=lambda r: r.created_at, reverse=True)]


class TestInitialize:
    """Tests for the initial load."""

    @pytest.mark.asyncio
    async def test_seeds_first_batch(self, pending_source, photos, settings):
        """Test initialize seeds the queue with the first batch."""
        queue = QueueController(pending_source, photos, settings)

        await queue.initialize()

        assert len(queue.queue) == 20
        assert len(queue.snapshot) == 45
        assert queue.total_pending == 45
        assert queue.has_more is True
        assert [e.id for e in queue.queue] == _newest_first_ids(pending_source.records)[:20]

    @pytest.mark.asyncio
    async def test_resolves_verification_photos(self, pending_source, photos, settings):
        """Test verification photos are attached to each entry."""
        queue = QueueController(pending_source, photos, settings)

        await queue.initialize()

        head = queue.queue[0]
        assert head.verification_photos == [
            f"https://storage.example.test/verificationphotos/{head.id}/selfie.jpg"
        ]
        assert sorted(photos.resolved) == sorted(r.id for r in pending_source.records)

    @pytest.mark.asyncio
    async def test_failed_photo_listing_only_affects_owner(self, pending_source, settings):
        """Test a failed photo listing only empties that entry's photos."""
        photos = FakePhotoResolver(failing={"user-044"})
        queue = QueueController(pending_source, photos, settings)

        await queue.initialize()

        assert queue.queue[0].id == "user-044"
        assert queue.queue[0].verification_photos == []
        assert len(queue.queue[1].verification_photos) == 1

    @pytest.mark.asyncio
    async def test_only_pending_users_loaded(self, photos, settings):
        """Test only pending users reach the snapshot."""
        records = make_pending(3)
        records[1] = records[1].model_copy(update={"is_verified": VerificationStatus.VERIFIED})
        queue = QueueController(FakeRecordSource(records), photos, settings)

        await queue.initialize()

        assert [e.id for e in queue.queue] == ["user-002", "user-000"]
        assert queue.total_pending == 2

    @pytest.mark.asyncio
    async def test_snapshot_failure_zeroes_count(self, pending_source, photos, settings):
        """Test a failed snapshot query leaves an empty queue and zero count."""
        pending_source.failing.add("fetch_pending")
        queue = QueueController(pending_source, photos, settings)

        await queue.initialize()

        assert queue.queue == []
        assert queue.total_pending == 0


class TestAppendNextBatch:
    """Tests for appending batches."""

    @pytest.mark.asyncio
    async def test_appends_until_consumed(self, pending_source, photos, settings):
        """Test appending batches until the snapshot is consumed."""
        queue = QueueController(pending_source, photos, settings)
        await queue.initialize()

        assert queue.append_next_batch() == 20
        assert queue.append_next_batch() == 5
        assert queue.append_next_batch() == 0
        assert len(queue.queue) == 45
        assert queue.has_more is False
        assert len({e.id for e in queue.queue}) == 45

    @pytest.mark.asyncio
    async def test_no_auto_refill_outside_review(self, pending_source, photos, settings):
        """Test the queue does not refill outside review mode."""
        queue = QueueController(pending_source, photos, settings)
        await queue.initialize()

        for entry in queue.queue[:18]:
            queue.record_decision(entry.id)

        assert len(queue.queue) == 2

        assert queue.append_next_batch() == 20
        assert len(queue.queue) == 22
        assert queue.has_more is True
        assert len(queue.state.unconsumed) == 5

    @pytest.mark.asyncio
    async def test_auto_refill_at_low_watermark(self, pending_source, photos, settings):
        """Test the queue refills at the low watermark."""
        queue = QueueController(pending_source, photos, settings)
        await queue.initialize()
        queue.start_review()

        for _ in range(16):
            queue.record_decision(queue.current.id)
        assert len(queue.queue) == 4

        queue.record_decision(queue.current.id)

        assert len(queue.queue) == 23
        assert queue.is_reviewing is True

    @pytest.mark.asyncio
    async def test_start_review_refills_short_queue(self, photos, settings):
        """Test starting review refills a short queue."""
        source = FakeRecordSource(make_pending(30))
        settings = settings.model_copy(update={"queue_batch_size": 2})
        queue = QueueController(source, photos, settings)
        await queue.initialize()
        assert len(queue.queue) == 2

        queue.start_review()

        assert len(queue.queue) == 4


class TestRefresh:
    """Tests for the refresh merge policy."""

    @pytest.mark.asyncio
    async def test_refresh_not_reviewing_replaces_queue(self, pending_source, photos, settings):
        """Test a refresh outside review restarts the queue."""
        queue = QueueController(pending_source, photos, settings)
        await queue.initialize()
        queue.append_next_batch()

        pending_source.records.extend(make_pending(5, start=100))
        await queue.refresh()

        expected = _newest_first_ids(pending_source.records)[:20]
        assert [e.id for e in queue.queue] == expected
        assert queue.queue[0].id == "user-104"
        assert queue.total_pending == 50

    @pytest.mark.asyncio
    async def test_refresh_with_small_snapshot(self, photos, settings):
        """Test a refresh with fewer users than a batch."""
        source = FakeRecordSource(make_pending(30))
        queue = QueueController(source, photos, settings)
        await queue.initialize()

        source.records = source.records[:7]
        await queue.refresh()

        assert len(queue.queue) == 7

    @pytest.mark.asyncio
    async def test_refresh_while_reviewing_keeps_queue(self, pending_source, photos, settings):
        """Test a refresh during review leaves the queue alone."""
        queue = QueueController(pending_source, photos, settings)
        await queue.initialize()
        queue.start_review()
        before = [e.id for e in queue.queue]
        current = queue.current.id

        pending_source.records.extend(make_pending(5, start=100))
        await queue.refresh()

        assert [e.id for e in queue.queue] == before
        assert queue.current.id == current
        assert len(queue.snapshot) == 50
        assert queue.total_pending == 50

    @pytest.mark.asyncio
    async def test_refresh_while_reviewing_refills_short_queue(self, photos, settings):
        """Test a refresh during review refills a short queue."""
        source = FakeRecordSource(make_pending(2))
        queue = QueueController(source, photos, settings)
        await queue.initialize()
        queue.start_review()
        assert len(queue.queue) == 2

        source.records.extend(make_pending(30, start=100))
        await queue.refresh()

        assert len(queue.queue) == 22
        assert [e.id for e in queue.queue[:2]] == ["user-001", "user-000"]

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_queue(self, pending_source, photos, settings):
        """Test a failed refresh keeps the current queue."""
        queue = QueueController(pending_source, photos, settings)
        await queue.initialize()
        before = [e.id for e in queue.queue]

        pending_source.failing.add("fetch_pending")
        await queue.refresh()

        assert [e.id for e in queue.queue] == before
        assert len(queue.snapshot) == 45
        assert queue.total_pending == 0

    @pytest.mark.asyncio
    async def test_failed_count_zeroes_total(self, pending_source, photos, settings):
        """Test a failed count query reports zero pending."""
        queue = QueueController(pending_source, photos, settings)
        await queue.initialize()

        pending_source.failing.add("count_pending")
        await queue.refresh()

        assert queue.total_pending == 0
        assert len(queue.queue) == 20

    @pytest.mark.asyncio
    async def test_stale_snapshot_does_not_readmit_decided(self, pending_source, photos, settings):
        """Test a stale snapshot does not bring back a decided user."""
        queue = QueueController(pending_source, photos, settings)
        await queue.initialize()
        decided = queue.queue[0].id

        # Confirmed locally, not yet visible in the record store
        queue.record_decision(decided)
        await queue.refresh()

        assert decided not in [e.id for e in queue.queue]
        assert decided in queue.state.decided_ids

        pending_source.records = [r for r in pending_source.records if r.id != decided]
        await queue.refresh()

        assert decided not in queue.state.decided_ids


class TestReviewMode:
    """Tests for entering and leaving review mode."""

    @pytest.mark.asyncio
    async def test_start_review_shows_head(self, pending_source, photos, settings):
        """Test starting review shows the head of the queue."""
        queue = QueueController(pending_source, photos, settings)
        await queue.initialize()

        current = queue.start_review()

        assert current.id == "user-044"
        assert queue.is_reviewing is True

    @pytest.mark.asyncio
    async def test_start_review_on_empty_queue(self, photos, settings):
        """Test starting review on an empty queue does nothing."""
        queue = QueueController(FakeRecordSource([]), photos, settings)
        await queue.initialize()

        assert queue.start_review() is None
        assert queue.is_reviewing is False

    @pytest.mark.asyncio
    async def test_stop_review(self, pending_source, photos, settings):
        """Test stopping review clears the current entry."""
        queue = QueueController(pending_source, photos, settings)
        await queue.initialize()
        queue.start_review()

        queue.stop_review()

        assert queue.is_reviewing is False
        assert queue.current is None


class TestLifecycle:
    """Tests for the periodic refresh and teardown."""

    @pytest.mark.asyncio
    async def test_periodic_refresh_picks_up_new_users(self, pending_source, photos, settings):
        """Test the refresh task picks up newly pending users."""
        settings = settings.model_copy(update={"queue_refresh_interval_seconds": 0.01})
        queue = QueueController(pending_source, photos, settings)
        await queue.initialize()
        queue.start()

        pending_source.records.extend(make_pending(2, start=100))
        await asyncio.sleep(0.1)
        await queue.close()

        assert queue.total_pending == 47
        assert queue.queue[0].id == "user-101"

    @pytest.mark.asyncio
    async def test_close_cancels_refresh_task(self, pending_source, photos, settings):
        """Test close cancels the refresh task."""
        queue = QueueController(pending_source, photos, settings)
        await queue.initialize()
        queue.start()

        await queue.close()

        assert queue.is_closed is True
        assert queue._refresh_task is None

    @pytest.mark.asyncio
    async def test_results_after_close_are_discarded(self, pending_source, photos, settings):
        """Test fetch results arriving after close are discarded."""
        pending_source.query_gate = asyncio.Event()
        queue = QueueController(pending_source, photos, settings)

        load = asyncio.create_task(queue.initialize())
        await asyncio.sleep(0)
        await queue.close()
        pending_source.query_gate.set()
        await load

        assert queue.queue == []
        assert queue.total_pending == 0

    @pytest.mark.asyncio
    async def test_context_manager(self, pending_source, photos, settings):
        """Test the async context manager loads and closes the queue."""
        async with QueueController(pending_source, photos, settings) as queue:
            assert len(queue.queue) == 20
            assert queue._refresh_task is not None

        assert queue.is_closed is True
