"""Operator review workflows for the moderation console.

Components:
- QueueController: pending-verification worklist with batched refill
- DecisionProcessor: approve/reject writes applied to the worklist
- GenderEditor: gender correction for the entry under review
- GenderReviewController: filter/sort/paginate over all users
"""

__all__: list[str] = []
