"""Provider-facing HTTP client, request pacing, and retry utilities."""

from .http_client import DEFAULT_API_BASE_URL, ProviderClient
from .rate_limiter import RateLimiter
from .retry import RetryPolicy

__all__ = ["DEFAULT_API_BASE_URL", "ProviderClient", "RateLimiter", "RetryPolicy"]
