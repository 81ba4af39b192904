"""Subscription access rules.

Derives what an account is entitled to from the raw subscription record
(plan, status, billing period end, trial end, Stripe subscription id).
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class SubscriptionSnapshot(BaseModel):
    """Raw subscription fields as stored for an account."""

    subscription_plan: str | None = Field(default=None, description="Plan name, e.g. 'pro'")
    subscription_status: str | None = Field(
        default=None, description="Status, e.g. 'active' or 'canceled'"
    )
    current_period_end: datetime | None = Field(
        default=None, description="End of the paid billing period"
    )
    trial_end: datetime | None = Field(default=None, description="End of the free trial")
    stripe_subscription_id: str | None = Field(
        default=None, description="Stripe subscription id, if any"
    )

    @field_validator("current_period_end", "trial_end", mode="before")
    @classmethod
    def parse_optional_date(cls, v: object) -> object:
        """Treat empty or unparseable dates as absent."""
        if v is None or isinstance(v, datetime):
            return v
        if isinstance(v, str):
            value = v.strip()
            if not value:
                return None
            try:
                return datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return None
        return None


class SubscriptionAccessState(BaseModel):
    """Entitlements derived from a subscription snapshot."""

    is_trialing: bool
    is_within_access_window: bool
    has_stripe_subscription: bool
    has_pro_access: bool
    is_canceling: bool
    is_expired_pro_access: bool
    needs_trial: bool
    days_remaining: int
    trial_days_remaining: int
    effective_plan: Literal["pro", "free", ""]


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _is_future(value: datetime | None, now: datetime) -> bool:
    return value is not None and value > now


def _days_remaining(value: datetime | None, now: datetime) -> int:
    if value is None:
        return 0
    seconds = (value - now).total_seconds()
    return max(0, math.ceil(seconds / 86400))


def get_access_state(
    snapshot: SubscriptionSnapshot | None,
    now: datetime | None = None,
) -> SubscriptionAccessState:
    """Compute the access state of a subscription.

    Pro access is granted for a manually activated pro plan, a Stripe
    subscription inside its billing period, a canceled pro plan that has not
    reached its period end yet, or a running trial. Without any record the
    effective plan is empty, meaning "unknown".

    Args:
        snapshot: Subscription record, or None if the account has none.
        now: Reference time. Defaults to the current UTC time.

    Returns:
        The derived SubscriptionAccessState.
    """
    now = _aware(now) or datetime.now(UTC)
    snapshot_or_empty = snapshot or SubscriptionSnapshot()

    plan = (snapshot_or_empty.subscription_plan or "").lower()
    status = snapshot_or_empty.subscription_status or ""
    current_period_end = _aware(snapshot_or_empty.current_period_end)
    trial_end = _aware(snapshot_or_empty.trial_end)

    is_trialing = _is_future(trial_end, now)
    has_stripe_subscription = bool(snapshot_or_empty.stripe_subscription_id)
    is_within_access_window = _is_future(current_period_end, now)

    has_manual_pro_access = plan == "pro" and status == "active"
    has_stripe_timeboxed_access = has_stripe_subscription and is_within_access_window
    has_canceling_pro_access = plan == "pro" and status == "canceled" and is_within_access_window

    has_pro_access = (
        has_manual_pro_access
        or has_stripe_timeboxed_access
        or has_canceling_pro_access
        or is_trialing
    )

    had_paid_access = plan == "pro" or has_stripe_subscription or current_period_end is not None
    is_canceling = status == "canceled" and is_within_access_window
    is_expired_pro_access = status == "canceled" and not is_within_access_window and had_paid_access

    if snapshot is None:
        effective_plan = ""
    else:
        effective_plan = "pro" if has_pro_access else "free"

    return SubscriptionAccessState(
        is_trialing=is_trialing,
        is_within_access_window=is_within_access_window,
        has_stripe_subscription=has_stripe_subscription,
        has_pro_access=has_pro_access,
        is_canceling=is_canceling,
        is_expired_pro_access=is_expired_pro_access,
        needs_trial=not has_stripe_subscription,
        days_remaining=_days_remaining(current_period_end, now),
        trial_days_remaining=_days_remaining(trial_end, now),
        effective_plan=effective_plan,
    )
