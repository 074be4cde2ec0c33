"""HTTP access to normattiva.it: pacing, retries and crawl sessions."""

from .rate_limiter import MinIntervalRateLimiter
from .session_client import (
    CrawlSession,
    FetchError,
    RateLimitedSessionClient,
    ServerUnreachableError,
    TerminalStatusError,
)

__all__ = [
    "CrawlSession",
    "FetchError",
    "MinIntervalRateLimiter",
    "RateLimitedSessionClient",
    "ServerUnreachableError",
    "TerminalStatusError",
]
