"""Approve/reject decisions on pending users."""

from ..logging import log_decision
from ..records import RecordSource
from .models import Decision, MutationResult
from .queue import QueueController


class DecisionProcessor:
    """Writes operator decisions and applies them to the worklist.

    The worklist only changes once the record store confirms the write.
    A failed write leaves the worklist as it was and is reported back to
    the caller; it is not retried, the next refresh reconciles.
    """

    def __init__(self, source: RecordSource, queue: QueueController):
        self._source = source
        self._queue = queue
        self._in_flight: set[str] = set()

    @property
    def in_flight(self) -> frozenset[str]:
        """Users whose decision write has not settled yet."""
        return frozenset(self._in_flight)

    async def apply_decision(self, user_id: str, decision: Decision | str) -> MutationResult:
        """Approve or reject a queued user.

        Args:
            user_id: The user to decide
            decision: approve (-> verified) or reject (-> unverified)

        Returns:
            MutationResult describing the outcome

        Raises:
            ValueError: If the decision is not approve or reject
        """
        decision = Decision(decision)

        if user_id not in self._queue.state.queue_ids:
            return MutationResult.failed(user_id, "User is not in the active queue")
        if user_id in self._in_flight:
            return MutationResult.failed(user_id, "A decision for this user is already in flight")

        self._in_flight.add(user_id)
        try:
            await self._source.set_verification_status(user_id, decision.status)
        except Exception as e:
            log_decision(user_id, decision.value, success=False, error=str(e))
            return MutationResult.failed(user_id, str(e))
        finally:
            self._in_flight.discard(user_id)

        self._queue.record_decision(user_id)
        log_decision(user_id, decision.value, success=True)
        return MutationResult.ok(user_id)

    async def approve(self, user_id: str) -> MutationResult:
        return await self.apply_decision(user_id, Decision.APPROVE)

    async def reject(self, user_id: str) -> MutationResult:
        return await self.apply_decision(user_id, Decision.REJECT)
