"""Gender correction for the entry under review.

While reviewing the pending queue the operator can fix the gender of the
user on screen. The editor reports its progress through a status that
shows success or failure for a moment and then returns to idle.
"""

import asyncio
import contextlib

from ..config import Settings, get_settings
from ..logging import log_gender_update
from ..records import RecordSource
from .models import EditorStatus, Gender, MutationResult
from .queue import QueueController


class GenderEditor:
    """Single-record gender editor bound to a QueueController."""

    def __init__(
        self,
        source: RecordSource,
        queue: QueueController,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.success_display_seconds = settings.gender_success_display_seconds
        self.error_display_seconds = settings.gender_error_display_seconds

        self._source = source
        self._queue = queue
        self._status = EditorStatus.IDLE
        self._reset_task: asyncio.Task | None = None
        self._closed = False

    @property
    def status(self) -> EditorStatus:
        return self._status

    async def change_gender(self, gender: Gender | str) -> MutationResult:
        """Write a new gender for the entry on screen.

        Args:
            gender: Male or Female

        Returns:
            MutationResult describing the outcome

        Raises:
            ValueError: If gender is not Male or Female
        """
        gender = Gender(gender)
        if self._closed:
            return MutationResult.failed("", "Editor is closed")
        current = self._queue.current
        if current is None:
            return MutationResult.failed("", "No entry under review")
        if self._status == EditorStatus.SAVING:
            return MutationResult.failed(current.id, "A gender update is already saving")

        self._set_status(EditorStatus.SAVING)
        try:
            await self._source.set_gender(current.id, gender.value)
        except Exception as e:
            log_gender_update(current.id, gender.value, success=False, error=str(e), origin="pending_review")
            if not self._closed:
                self._set_status(EditorStatus.ERROR, revert_after=self.error_display_seconds)
            return MutationResult.failed(current.id, str(e))

        log_gender_update(current.id, gender.value, success=True, origin="pending_review")
        if self._closed:
            return MutationResult.ok(current.id)

        self._queue.patch_entry(current.id, gender=gender.value)
        self._set_status(EditorStatus.SUCCESS, revert_after=self.success_display_seconds)
        return MutationResult.ok(current.id)

    def _set_status(self, status: EditorStatus, revert_after: float | None = None) -> None:
        if self._reset_task is not None:
            self._reset_task.cancel()
            self._reset_task = None
        self._status = status
        if revert_after is not None:
            self._reset_task = asyncio.create_task(self._revert_to_idle(revert_after))

    async def _revert_to_idle(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._status = EditorStatus.IDLE
        self._reset_task = None

    async def close(self) -> None:
        """Cancel a pending status revert and ignore later write results."""
        self._closed = True
        task, self._reset_task = self._reset_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._status = EditorStatus.IDLE
