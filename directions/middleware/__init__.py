"""Middleware modules for outbound request processing."""

from directions.middleware.rate_limit import RateLimitInfo
from directions.middleware.request_logging import RequestLoggingHooks, setup_logging

__all__ = [
    "RateLimitInfo",
    "RequestLoggingHooks",
    "setup_logging",
]
