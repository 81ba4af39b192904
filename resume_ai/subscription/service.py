"""Subscription plan lookup for the generation orchestrator."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from resume_ai.generation.models import Plan, SubscriptionContext
from resume_ai.subscription.access import SubscriptionSnapshot, get_access_state

logger = logging.getLogger(__name__)

SnapshotLoader = Callable[[str], Awaitable[SubscriptionSnapshot | None]]


class SubscriptionResolver:
    """Resolve an account's plan from its subscription record.

    The record itself is loaded by an injected async callable, so the
    resolver stays independent of where subscriptions are stored.
    """

    def __init__(
        self,
        loader: SnapshotLoader,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the resolver.

        Args:
            loader: Returns the account's snapshot, or None without a record.
            clock: Optional source of the current time (UTC).
        """
        self.loader = loader
        self.clock = clock

    async def get_plan(self, account_id: str) -> SubscriptionContext:
        """Return the account's effective plan. Accounts without a record are free."""
        snapshot = await self.loader(account_id)
        now = self.clock() if self.clock else None
        state = get_access_state(snapshot, now=now)
        plan = Plan.PRO if state.effective_plan == "pro" else Plan.FREE
        logger.debug("Account %s resolved to %s plan", account_id, plan.value)
        return SubscriptionContext(plan=plan, account_id=account_id)


class StaticPlanProvider:
    """Plan provider that returns a fixed plan for every account."""

    def __init__(self, plan: Plan = Plan.FREE):
        self.plan = plan

    async def get_plan(self, account_id: str) -> SubscriptionContext:
        return SubscriptionContext(plan=self.plan, account_id=account_id)
