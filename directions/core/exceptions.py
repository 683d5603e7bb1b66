"""Error taxonomy for directions requests."""

from typing import Any, Dict, Optional

from directions.middleware.rate_limit import RateLimitInfo


# =============================================================================
# Custom Exception Classes
# =============================================================================

class DirectionsError(Exception):
    """Base exception for directions failures with safe messages."""

    def __init__(
        self,
        detail: str = "An error occurred",
        error_code: Optional[str] = None,
        internal_message: Optional[str] = None,
        failure_reason: Optional[str] = None,
        recovery_suggestion: Optional[str] = None,
        underlying: Optional[BaseException] = None,
    ):
        self.detail = detail  # Safe message for callers
        self.error_code = error_code or "DIRECTIONS_ERROR"
        self.internal_message = internal_message  # Full message for logs
        self.failure_reason = failure_reason
        self.recovery_suggestion = recovery_suggestion
        self.underlying = underlying
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for logging or serialization."""
        error: Dict[str, Any] = {
            "code": self.error_code,
            "message": self.detail,
        }
        if self.failure_reason:
            error["failure_reason"] = self.failure_reason
        if self.recovery_suggestion:
            error["recovery_suggestion"] = self.recovery_suggestion
        return {"error": error}


class TransportError(DirectionsError):
    """Connectivity, timeout or protocol failure below the API layer."""

    def __init__(self, detail: str = "The directions service could not be reached",
                 underlying: Optional[BaseException] = None):
        super().__init__(
            detail=detail,
            error_code="TRANSPORT_ERROR",
            internal_message=repr(underlying) if underlying else None,
            failure_reason=detail,
            underlying=underlying,
        )


class ApplicationError(DirectionsError):
    """The service executed the request but reported a non-Ok status."""

    def __init__(
        self,
        http_status: Optional[int],
        api_code: Optional[str],
        api_message: Optional[str] = None,
        failure_reason: Optional[str] = None,
        recovery_suggestion: Optional[str] = None,
        underlying: Optional[BaseException] = None,
    ):
        self.http_status = http_status
        self.api_code = api_code
        self.api_message = api_message
        super().__init__(
            detail=failure_reason or api_message or "The directions request failed",
            error_code="APPLICATION_ERROR",
            internal_message=f"HTTP {http_status} code={api_code!r} message={api_message!r}",
            failure_reason=failure_reason,
            recovery_suggestion=recovery_suggestion,
            underlying=underlying,
        )

    def to_dict(self) -> Dict[str, Any]:
        response = super().to_dict()
        response["error"]["http_status"] = self.http_status
        response["error"]["api_code"] = self.api_code
        return response


class RateLimitError(ApplicationError):
    """Too many requests were made with the access token."""

    def __init__(self, rate_limit: RateLimitInfo, api_code: Optional[str] = None, **kwargs):
        self.rate_limit = rate_limit
        super().__init__(http_status=429, api_code=api_code, **kwargs)
        self.error_code = "RATE_LIMIT_EXCEEDED"


class MalformedResponse(DirectionsError):
    """A required field is missing from the payload or has the wrong shape."""

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(
            detail=detail,
            error_code="MALFORMED_RESPONSE",
            failure_reason=detail,
        )
        self.field = field


class SynthesisFailure(DirectionsError):
    """The local engine could not produce a valid route payload."""

    def __init__(self, detail: str = "Unable to synthesize a route from the local engine",
                 internal_message: Optional[str] = None):
        super().__init__(
            detail=detail,
            error_code="SYNTHESIS_FAILURE",
            internal_message=internal_message,
            failure_reason=detail,
        )
