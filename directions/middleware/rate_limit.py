"""Rate limit metadata reported by the directions service."""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidatorFunctionWrapHandler, field_validator


LIMIT_HEADER = "X-Rate-Limit-Limit"
INTERVAL_HEADER = "X-Rate-Limit-Interval"
RESET_HEADER = "X-Rate-Limit-Reset"


class RateLimitInfo(BaseModel):
    """
    Parsed X-Rate-Limit-* headers.

    Each value is None when its header is absent or unparseable.
    """

    model_config = ConfigDict(frozen=True)

    limit: Optional[int] = Field(None, ge=0, description="Requests allowed per interval")
    interval_seconds: Optional[float] = Field(None, ge=0, allow_inf_nan=False, description="Quota period")
    reset_at: Optional[datetime] = Field(None, description="When the quota resets (header is Unix time)")

    @field_validator("limit", "interval_seconds", "reset_at", mode="wrap")
    @classmethod
    def unparseable_is_none(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        if isinstance(value, str):
            value = value.strip()
        try:
            return handler(value)
        except ValidationError:
            return None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RateLimitInfo":
        """Build from response headers. Lookup is case-insensitive."""
        lowered = {k.lower(): v for k, v in headers.items()}
        return cls(
            limit=lowered.get(LIMIT_HEADER.lower()),
            interval_seconds=lowered.get(INTERVAL_HEADER.lower()),
            reset_at=lowered.get(RESET_HEADER.lower()),
        )

    @property
    def present(self) -> bool:
        return any(v is not None for v in (self.limit, self.interval_seconds, self.reset_at))

    def retry_after(self, now: Optional[datetime] = None) -> Optional[int]:
        """Seconds until the quota resets, never negative."""
        if self.reset_at is None:
            return None
        now = now or datetime.now(timezone.utc)
        return max(0, int((self.reset_at - now).total_seconds()) + 1)
