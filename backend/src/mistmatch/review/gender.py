"""Gender review over every user record.

The whole user table is loaded once when the screen opens. Filtering,
sorting and pagination happen locally on that snapshot, and a confirmed
correction patches the one affected record instead of re-fetching.
"""

import math
from dataclasses import dataclass, replace
from functools import cached_property

from ..config import Settings, get_settings
from ..logging import get_context_logger, log_fetch_error, log_gender_update
from ..records import RecordSource
from .models import (
    FILTER_ALL,
    FILTER_UNKNOWN,
    Gender,
    MutationResult,
    SortDirection,
    UserRecord,
)

logger = get_context_logger(__name__, screen="gender_review")


def matches_filter(record: UserRecord, gender_filter: str) -> bool:
    """Check a record against a gender filter.

    "all" matches everything, "unknown" matches records without a gender,
    any other value matches that exact gender.
    """
    if gender_filter == FILTER_ALL:
        return True
    if gender_filter == FILTER_UNKNOWN:
        return not record.has_gender
    return record.gender == gender_filter


def derive_view(
    records: tuple[UserRecord, ...] | list[UserRecord],
    gender_filter: str,
    direction: SortDirection,
) -> list[UserRecord]:
    """Filter then sort by creation time; ties keep their input order."""
    filtered = [record for record in records if matches_filter(record, gender_filter)]
    return sorted(
        filtered,
        key=lambda record: record.created_at,
        reverse=direction == SortDirection.DESC,
    )


@dataclass(frozen=True)
class GenderReviewState:
    """Gender review dataset and view settings."""

    records: tuple[UserRecord, ...] = ()
    gender_filter: str = FILTER_ALL
    sort: SortDirection = SortDirection.DESC
    page: int = 1
    page_size: int = 20
    unknown_count: int = 0

    @cached_property
    def view(self) -> list[UserRecord]:
        return derive_view(self.records, self.gender_filter, self.sort)

    @property
    def total_pages(self) -> int:
        return math.ceil(len(self.view) / self.page_size)

    @property
    def page_items(self) -> list[UserRecord]:
        start = (self.page - 1) * self.page_size
        return self.view[start : start + self.page_size]


def with_filter(state: GenderReviewState, gender_filter: str) -> GenderReviewState:
    return replace(state, gender_filter=gender_filter, page=1)


def with_sort(state: GenderReviewState, direction: SortDirection) -> GenderReviewState:
    return replace(state, sort=direction, page=1)


def with_page(state: GenderReviewState, page: int) -> GenderReviewState:
    """Move to a page, clamped to the pages of the current view."""
    last = max(1, state.total_pages)
    return replace(state, page=min(max(1, page), last))


def with_gender(state: GenderReviewState, user_id: str, gender: str) -> GenderReviewState:
    """Patch one record's gender in place.

    The unknown count drops when the record had no gender before.
    """
    unknown_count = state.unknown_count
    records = []
    for record in state.records:
        if record.id == user_id:
            if not record.has_gender:
                unknown_count = max(0, unknown_count - 1)
            record = record.model_copy(update={"gender": gender})
        records.append(record)

    updated = replace(state, records=tuple(records), unknown_count=unknown_count)
    # Patching can shrink a filtered view under the current page
    return with_page(updated, state.page)


class GenderReviewController:
    """Owns the gender review dataset for one screen session."""

    def __init__(self, source: RecordSource, settings: Settings | None = None):
        settings = settings or get_settings()
        self._source = source
        self._state = GenderReviewState(page_size=settings.gender_page_size)
        self._closed = False

    @property
    def state(self) -> GenderReviewState:
        return self._state

    @property
    def records(self) -> list[UserRecord]:
        return list(self._state.records)

    @property
    def view(self) -> list[UserRecord]:
        return self._state.view

    @property
    def page(self) -> int:
        return self._state.page

    @property
    def total_pages(self) -> int:
        return self._state.total_pages

    @property
    def page_items(self) -> list[UserRecord]:
        return self._state.page_items

    @property
    def unknown_count(self) -> int:
        return self._state.unknown_count

    async def load(self) -> None:
        """Fetch every user and the unknown-gender count.

        Failed queries are logged and leave an empty dataset or a zero count.
        """
        try:
            records = await self._source.fetch_all()
        except Exception as e:
            log_fetch_error("all_users", str(e))
            records = []

        try:
            unknown_count = await self._source.count_unknown_gender()
        except Exception as e:
            log_fetch_error("unknown_gender_count", str(e))
            unknown_count = 0

        if self._closed:
            logger.debug("Discarding gender dataset for closed screen")
            return

        self._state = replace(
            self._state,
            records=tuple(records),
            unknown_count=unknown_count,
            page=1,
        )
        logger.info(
            f"Loaded {len(records)} users for gender review ({unknown_count} without gender)"
        )

    def set_filter(self, gender_filter: str) -> None:
        self._state = with_filter(self._state, gender_filter)

    def set_sort(self, direction: SortDirection | str) -> None:
        self._state = with_sort(self._state, SortDirection(direction))

    def set_page(self, page: int) -> int:
        """Move to a page.

        Returns:
            The page actually selected after clamping
        """
        self._state = with_page(self._state, page)
        return self._state.page

    async def update_gender(self, user_id: str, gender: Gender | str) -> MutationResult:
        """Write a gender correction and patch the local record.

        Args:
            user_id: The user to correct
            gender: Male or Female

        Returns:
            MutationResult describing the outcome

        Raises:
            ValueError: If gender is not Male or Female
        """
        gender = Gender(gender)

        try:
            await self._source.set_gender(user_id, gender.value)
        except Exception as e:
            log_gender_update(user_id, gender.value, success=False, error=str(e))
            return MutationResult.failed(user_id, str(e))

        if not self._closed:
            self._state = with_gender(self._state, user_id, gender.value)
        log_gender_update(user_id, gender.value, success=True)
        return MutationResult.ok(user_id)

    async def close(self) -> None:
        """Stop accepting results for this screen."""
        self._closed = True

    async def __aenter__(self) -> "GenderReviewController":
        await self.load()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
