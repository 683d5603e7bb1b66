"""Turns failed responses into DirectionsError instances with human-readable reasons."""

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx

from directions.core.exceptions import (
    ApplicationError,
    DirectionsError,
    RateLimitError,
    TransportError,
)
from directions.middleware.rate_limit import RateLimitInfo

logger = logging.getLogger(__name__)

# (HTTP status, API code) -> (failure reason, recovery suggestion)
KNOWN_FAILURES: Dict[Tuple[int, str], Tuple[str, str]] = {
    (200, "NoRoute"): (
        "No route could be found between the specified locations.",
        "Make sure it is possible to travel between these locations with the mode of "
        "transportation implied by the profile identifier. For example, it is impossible "
        "to travel by car from one continent to another without either a land bridge or "
        "a ferry connection.",
    ),
    (200, "NoSegment"): (
        "A specified location could not be associated with a roadway or pathway.",
        "Make sure the locations are close enough to a roadway or pathway. Try setting "
        "the coordinate accuracy of the waypoint to a larger value.",
    ),
    (404, "ProfileNotFound"): (
        "Unrecognized profile identifier.",
        "Make sure the profile identifier is one of the values of ProfileIdentifier.",
    ),
}


def describe_interval(seconds: float) -> str:
    """Human-readable length of a rate-limit window, e.g. '1 minute'."""
    for unit_seconds, unit in ((86400, "day"), (3600, "hour"), (60, "minute")):
        if seconds >= unit_seconds and seconds % unit_seconds == 0:
            count = int(seconds // unit_seconds)
            return f"{count} {unit}" if count == 1 else f"{count} {unit}s"
    count = int(seconds) if float(seconds).is_integer() else seconds
    return f"{count} second" if count == 1 else f"{count} seconds"


def describe_reset(reset_at) -> str:
    return reset_at.strftime("%Y-%m-%d %H:%M:%S UTC")


def _rate_limit_error(
    rate_limit: RateLimitInfo,
    api_code: Optional[str],
    api_message: Optional[str],
    underlying: Optional[BaseException],
) -> RateLimitError:
    failure_reason = None
    if rate_limit.limit is not None and rate_limit.interval_seconds is not None:
        failure_reason = (
            f"More than {rate_limit.limit} requests have been made with this access token "
            f"within a period of {describe_interval(rate_limit.interval_seconds)}."
        )

    recovery_suggestion = None
    if rate_limit.reset_at is not None:
        recovery_suggestion = f"Wait until {describe_reset(rate_limit.reset_at)} before retrying."

    return RateLimitError(
        rate_limit=rate_limit,
        api_code=api_code,
        api_message=api_message,
        failure_reason=failure_reason or api_message or "Too many requests.",
        recovery_suggestion=recovery_suggestion,
        underlying=underlying,
    )


def informative_error(
    payload: Optional[Mapping[str, Any]],
    status_code: Optional[int],
    headers: Optional[Mapping[str, str]] = None,
    underlying: Optional[BaseException] = None,
) -> DirectionsError:
    """
    Build the most informative error for a failed request.

    Args:
        payload: Decoded JSON body, if any
        status_code: HTTP status, or None when no response was received
        headers: Response headers, used for rate-limit metadata
        underlying: Transport exception that caused the failure, if any

    Returns:
        TransportError when there is no HTTP response, RateLimitError for
        HTTP 429, otherwise an ApplicationError.
    """
    if status_code is None:
        detail = str(underlying) if underlying else "The directions service could not be reached"
        return TransportError(detail=detail, underlying=underlying)

    payload = payload or {}
    api_code = payload.get("code") if isinstance(payload.get("code"), str) else None
    api_message = payload.get("message") if isinstance(payload.get("message"), str) else None
    legacy_error = payload.get("error") if isinstance(payload.get("error"), str) else None

    if status_code == 429:
        rate_limit = RateLimitInfo.from_headers(headers or {})
        logger.warning(
            f"Rate limited: limit={rate_limit.limit} interval={rate_limit.interval_seconds} "
            f"reset={rate_limit.reset_at}"
        )
        return _rate_limit_error(rate_limit, api_code, api_message or legacy_error, underlying)

    known = KNOWN_FAILURES.get((status_code, api_code)) if api_code else None
    if known:
        failure_reason, recovery_suggestion = known
    else:
        failure_reason = api_message or legacy_error or httpx.codes.get_reason_phrase(status_code)
        recovery_suggestion = None

    return ApplicationError(
        http_status=status_code,
        api_code=api_code,
        api_message=api_message or legacy_error,
        failure_reason=failure_reason,
        recovery_suggestion=recovery_suggestion,
        underlying=underlying,
    )
