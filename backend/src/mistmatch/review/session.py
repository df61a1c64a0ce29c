"""Screen sessions for the moderation console.

Each screen gets its own controllers, built when the screen opens and
disposed when it closes, so no worklist state outlives its screen.

Usage:
    async with pending_review_session(source, photos) as session:
        session.queue.start_review()
        await session.decisions.approve(session.queue.current.id)
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator

from ..config import Settings
from ..records import RecordSource
from ..storage import PhotoResolver
from .decisions import DecisionProcessor
from .editor import GenderEditor
from .gender import GenderReviewController
from .queue import QueueController


@dataclass
class PendingReviewSession:
    """Controllers backing the pending-verification screen."""

    queue: QueueController
    decisions: DecisionProcessor
    editor: GenderEditor


@asynccontextmanager
async def pending_review_session(
    source: RecordSource,
    photos: PhotoResolver,
    settings: Settings | None = None,
    auto_refresh: bool = True,
) -> AsyncGenerator[PendingReviewSession, None]:
    """Open the pending-verification screen.

    Loads the worklist, starts the periodic refresh (unless disabled) and
    tears everything down on exit.
    """
    queue = QueueController(source, photos, settings)
    editor = GenderEditor(source, queue, settings)
    try:
        await queue.initialize()
        if auto_refresh:
            queue.start()
        yield PendingReviewSession(
            queue=queue,
            decisions=DecisionProcessor(source, queue),
            editor=editor,
        )
    finally:
        await editor.close()
        await queue.close()


@asynccontextmanager
async def gender_review_session(
    source: RecordSource,
    settings: Settings | None = None,
) -> AsyncGenerator[GenderReviewController, None]:
    """Open the gender review screen with a freshly loaded dataset."""
    async with GenderReviewController(source, settings) as controller:
        yield controller
