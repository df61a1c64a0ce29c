"""Pending-verification worklist.

The operator works through an active queue drawn in fixed-size batches from
a backing snapshot of every pending user. The snapshot is re-fetched on a
fixed interval; while the operator is reviewing, the refresh only updates
the snapshot and the pending count so the entry on screen never moves.

State lives in an immutable QueueState. Every change is a pure transition
function returning a new state; QueueController owns the current state, the
remote calls and the periodic refresh task.
"""

import asyncio
import contextlib
from dataclasses import dataclass, replace
from typing import Any

from ..config import Settings, get_settings
from ..logging import get_context_logger, log_fetch_error, log_queue_sync
from ..records import RecordSource
from ..storage import PhotoResolver
from .models import PendingEntry, UserRecord

logger = get_context_logger(__name__, screen="pending_review")


@dataclass(frozen=True)
class QueueState:
    """Snapshot of the worklist at one point in time.

    Attributes:
        snapshot: Every pending entry known to exist, newest first
        queue: Window of the snapshot presented to the operator
        decided_ids: Users decided this session whose removal has not yet
            shown up in a fetched snapshot
        total_pending: Pending count reported by the record store
        reviewing: Whether the operator is in review mode
        current: Entry on screen while reviewing
    """

    snapshot: tuple[PendingEntry, ...] = ()
    queue: tuple[PendingEntry, ...] = ()
    decided_ids: frozenset[str] = frozenset()
    total_pending: int = 0
    reviewing: bool = False
    current: PendingEntry | None = None

    @property
    def queue_ids(self) -> list[str]:
        return [entry.id for entry in self.queue]

    @property
    def unconsumed(self) -> list[PendingEntry]:
        """Snapshot entries neither queued nor decided, in snapshot order."""
        queued = set(self.queue_ids)
        return [
            entry
            for entry in self.snapshot
            if entry.id not in queued and entry.id not in self.decided_ids
        ]

    @property
    def has_more(self) -> bool:
        return len(self.unconsumed) > 0


# =========================
# Transitions
# =========================


def _ingest(
    state: QueueState, fetched: list[PendingEntry]
) -> tuple[tuple[PendingEntry, ...], frozenset[str]]:
    """Fold a fetched snapshot against the session's decisions.

    Decided ids absent from the fetch have been reflected remotely and are
    forgotten; the rest are filtered out of the new snapshot.
    """
    fetched_ids = {entry.id for entry in fetched}
    decided = state.decided_ids & fetched_ids

    seen: set[str] = set()
    snapshot = []
    for entry in fetched:
        if entry.id in decided or entry.id in seen:
            continue
        seen.add(entry.id)
        snapshot.append(entry)
    return tuple(snapshot), decided


def seed_queue(
    state: QueueState, fetched: list[PendingEntry], total: int, batch_size: int
) -> QueueState:
    """Replace the snapshot and restart the queue from its first batch."""
    snapshot, decided = _ingest(state, fetched)
    return replace(
        state,
        snapshot=snapshot,
        queue=snapshot[:batch_size],
        decided_ids=decided,
        total_pending=total,
        reviewing=False,
        current=None,
    )


def merge_snapshot(state: QueueState, fetched: list[PendingEntry], total: int) -> QueueState:
    """Replace the snapshot and count, leaving the queue untouched."""
    snapshot, decided = _ingest(state, fetched)
    return replace(state, snapshot=snapshot, decided_ids=decided, total_pending=total)


def append_batch(state: QueueState, batch_size: int) -> QueueState:
    """Extend the queue with the next unconsumed slice of the snapshot."""
    additions = state.unconsumed[:batch_size]
    if not additions:
        return state
    return replace(state, queue=state.queue + tuple(additions))


def begin_review(state: QueueState) -> QueueState:
    if not state.queue:
        return state
    return replace(state, reviewing=True, current=state.queue[0])


def end_review(state: QueueState) -> QueueState:
    return replace(state, reviewing=False, current=None)


def apply_decision(state: QueueState, user_id: str) -> QueueState:
    """Remove a decided user and advance the displayed entry.

    The pending count only drops when the user is still queued. A decision
    for a user no longer in the queue leaves the count alone.
    """
    decided = state.decided_ids | {user_id}
    snapshot = tuple(entry for entry in state.snapshot if entry.id != user_id)

    if user_id not in state.queue_ids:
        return replace(state, snapshot=snapshot, decided_ids=decided)

    queue = tuple(entry for entry in state.queue if entry.id != user_id)
    total = max(0, state.total_pending - 1)

    if not queue:
        return replace(
            state,
            snapshot=snapshot,
            queue=queue,
            decided_ids=decided,
            total_pending=total,
            reviewing=False,
            current=None,
        )

    return replace(
        state,
        snapshot=snapshot,
        queue=queue,
        decided_ids=decided,
        total_pending=total,
        current=queue[0] if state.reviewing else None,
    )


def patch_entry(state: QueueState, user_id: str, **fields: Any) -> QueueState:
    """Apply a field update to every copy of one entry."""

    def _patch(entries: tuple[PendingEntry, ...]) -> tuple[PendingEntry, ...]:
        return tuple(
            entry.model_copy(update=fields) if entry.id == user_id else entry
            for entry in entries
        )

    current = state.current
    if current is not None and current.id == user_id:
        current = current.model_copy(update=fields)

    return replace(
        state,
        snapshot=_patch(state.snapshot),
        queue=_patch(state.queue),
        current=current,
    )


# =========================
# Photo resolution
# =========================


async def resolve_pending(
    records: list[UserRecord], photos: PhotoResolver
) -> list[PendingEntry]:
    """Attach verification photos to each record, listing owners concurrently.

    A failed listing leaves that entry without photos.
    """

    async def _resolve(record: UserRecord) -> PendingEntry:
        try:
            urls = await photos.resolve(record.id)
        except Exception as e:
            logger.warning(f"Photo listing failed for user {record.id}: {e}")
            urls = []
        return PendingEntry.from_record(record, urls)

    return list(await asyncio.gather(*(_resolve(record) for record in records)))


# =========================
# Controller
# =========================


class QueueController:
    """Owns the pending-verification worklist for one review session."""

    def __init__(
        self,
        source: RecordSource,
        photos: PhotoResolver,
        settings: Settings | None = None,
    ):
        """Initialize the controller.

        Args:
            source: Record store to query
            photos: Resolver for verification photos
            settings: Settings override (defaults to get_settings())
        """
        settings = settings or get_settings()
        self.batch_size = settings.queue_batch_size
        self.low_watermark = settings.queue_low_watermark
        self.refresh_interval = settings.queue_refresh_interval_seconds

        self._source = source
        self._photos = photos
        self._state = QueueState()
        self._refresh_task: asyncio.Task | None = None
        self._closed = False

    # -------------------------
    # Read access
    # -------------------------

    @property
    def state(self) -> QueueState:
        return self._state

    @property
    def queue(self) -> list[PendingEntry]:
        return list(self._state.queue)

    @property
    def snapshot(self) -> list[PendingEntry]:
        return list(self._state.snapshot)

    @property
    def current(self) -> PendingEntry | None:
        return self._state.current

    @property
    def total_pending(self) -> int:
        return self._state.total_pending

    @property
    def has_more(self) -> bool:
        return self._state.has_more

    @property
    def is_reviewing(self) -> bool:
        return self._state.reviewing

    @property
    def is_closed(self) -> bool:
        return self._closed

    # -------------------------
    # Remote sync
    # -------------------------

    async def _fetch(self) -> tuple[list[PendingEntry] | None, int]:
        """Fetch the pending snapshot and count.

        Returns:
            Tuple of (entries or None when the snapshot query failed, total)
        """
        try:
            records = await self._source.fetch_pending()
        except Exception as e:
            log_fetch_error("pending_snapshot", str(e))
            records = None

        try:
            total = await self._source.count_pending()
        except Exception as e:
            log_fetch_error("pending_count", str(e))
            total = 0

        if records is None:
            return None, 0

        return await resolve_pending(records, self._photos), total

    async def initialize(self) -> None:
        """Load the pending snapshot and seed the queue with the first batch."""
        entries, total = await self._fetch()
        if self._closed:
            logger.debug("Discarding initial load for closed queue")
            return

        if entries is None:
            self._state = replace(self._state, total_pending=total)
        else:
            self._state = seed_queue(self._state, entries, total, self.batch_size)

        log_queue_sync(
            "initialize",
            len(self._state.snapshot),
            len(self._state.queue),
            self._state.total_pending,
            self._state.reviewing,
        )

    async def refresh(self) -> None:
        """Re-fetch the snapshot and merge it into the worklist.

        Not reviewing: the queue restarts from the new snapshot's first
        batch. Reviewing: the queue is left alone and only the snapshot and
        the pending count change.
        """
        entries, total = await self._fetch()
        if self._closed:
            logger.debug("Discarding refresh for closed queue")
            return

        if entries is None:
            self._state = replace(self._state, total_pending=total)
        elif self._state.reviewing:
            self._state = merge_snapshot(self._state, entries, total)
        else:
            self._state = seed_queue(self._state, entries, total, self.batch_size)

        self._maybe_refill()
        log_queue_sync(
            "refresh",
            len(self._state.snapshot),
            len(self._state.queue),
            self._state.total_pending,
            self._state.reviewing,
        )

    # -------------------------
    # Local operations
    # -------------------------

    def append_next_batch(self) -> int:
        """Extend the queue with the next batch.

        Returns:
            Number of entries added (0 when the snapshot is consumed)
        """
        before = len(self._state.queue)
        self._state = append_batch(self._state, self.batch_size)
        added = len(self._state.queue) - before
        if added:
            logger.debug(f"Appended {added} entries to pending queue")
        return added

    def _maybe_refill(self) -> None:
        # Low-watermark refill only matters while the operator is reviewing
        state = self._state
        if state.reviewing and len(state.queue) <= self.low_watermark and state.has_more:
            self.append_next_batch()

    def start_review(self) -> PendingEntry | None:
        """Enter review mode on the head of the queue.

        Returns:
            The entry now on screen, or None if the queue is empty
        """
        self._state = begin_review(self._state)
        self._maybe_refill()
        return self._state.current

    def stop_review(self) -> None:
        """Leave review mode."""
        self._state = end_review(self._state)

    def record_decision(self, user_id: str) -> None:
        """Apply a confirmed decision to the worklist."""
        if self._closed:
            logger.debug(f"Discarding decision for {user_id} on closed queue")
            return
        self._state = apply_decision(self._state, user_id)
        self._maybe_refill()

    def patch_entry(self, user_id: str, **fields: Any) -> None:
        """Apply a confirmed field update to the worklist."""
        if self._closed:
            return
        self._state = patch_entry(self._state, user_id, **fields)

    # -------------------------
    # Lifecycle
    # -------------------------

    def start(self) -> None:
        """Start the periodic refresh task."""
        if self._closed or self._refresh_task is not None:
            return
        self._refresh_task = asyncio.create_task(self._refresh_loop())

    async def _refresh_loop(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.refresh_interval)
            try:
                await self.refresh()
            except Exception as e:
                logger.error(f"Pending queue refresh failed: {e}")

    async def close(self) -> None:
        """Cancel the refresh task and stop accepting results."""
        self._closed = True
        task, self._refresh_task = self._refresh_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def __aenter__(self) -> "QueueController":
        await self.initialize()
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
