"""Per-account request rate limiting."""

from resume_ai.ratelimit.limiter import SqliteRateLimiter

__all__ = ["SqliteRateLimiter"]
