"""
SwipeFeed — Premium purchase flow (boundary)

No payment is processed here.  A completed purchase is taken at face value
and its only effect on the feed engine is opening a fresh quota window on
the buyer's session.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog

from swipefeed.schemas.purchase import PurchasePlan, PurchaseReceipt
from swipefeed.services.feed_controller import FeedController

logger = structlog.get_logger("swipefeed.purchase_service")

DEFAULT_PLANS: tuple[PurchasePlan, ...] = (
    PurchasePlan(months=1, monthly_price=29.99, total_price=29.99),
    PurchasePlan(months=3, monthly_price=19.99, total_price=59.99, discount=33, tag="MOST POPULAR"),
    PurchasePlan(months=6, monthly_price=14.99, total_price=89.99, discount=50, tag="BEST VALUE"),
)


class UnknownPlan(ValueError):
    """No plan is offered for the requested duration."""


class PurchaseService:
    def __init__(self, plans: tuple[PurchasePlan, ...] = DEFAULT_PLANS) -> None:
        self._plans = {plan.months: plan for plan in plans}

    def list_plans(self) -> list[PurchasePlan]:
        return sorted(self._plans.values(), key=lambda plan: plan.months)

    def get_plan(self, months: int) -> PurchasePlan:
        try:
            return self._plans[months]
        except KeyError:
            raise UnknownPlan(f"No {months}-month plan is offered") from None

    async def complete_purchase(
        self,
        user_id: str,
        controller: FeedController,
        months: int,
    ) -> PurchaseReceipt:
        """Record a completed purchase and reset the session's quota."""
        plan = self.get_plan(months)
        log = logger.bind(user_id=user_id, months=months)

        snapshot = await controller.reset_quota()
        receipt = PurchaseReceipt(
            receipt_id=str(uuid.uuid4()),
            user_id=user_id,
            plan=plan,
            purchased_at=datetime.now(timezone.utc),
            remaining=snapshot.remaining,
        )
        log.info("purchase_completed", receipt_id=receipt.receipt_id, total=plan.total_price)
        return receipt
