"""Subscription entitlements and plan lookup.

Public API:
- SubscriptionResolver: resolves an account's plan from its subscription record
- StaticPlanProvider: fixed plan, for local use and the CLI
- get_access_state: entitlements derived from a SubscriptionSnapshot
"""

from resume_ai.subscription.access import (
    SubscriptionAccessState,
    SubscriptionSnapshot,
    get_access_state,
)
from resume_ai.subscription.service import StaticPlanProvider, SubscriptionResolver

__all__ = [
    "SubscriptionResolver",
    "StaticPlanProvider",
    "SubscriptionSnapshot",
    "SubscriptionAccessState",
    "get_access_state",
]
