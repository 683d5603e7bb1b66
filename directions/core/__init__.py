"""Core error taxonomy and credential helpers."""

# Security utilities
from directions.core.security import (
    mask_access_token,
    mask_url_token,
)

# Exception handling
from directions.core.exceptions import (
    DirectionsError,
    TransportError,
    ApplicationError,
    RateLimitError,
    MalformedResponse,
    SynthesisFailure,
)

__all__ = [
    # Security
    "mask_access_token",
    "mask_url_token",
    # Exceptions
    "DirectionsError",
    "TransportError",
    "ApplicationError",
    "RateLimitError",
    "MalformedResponse",
    "SynthesisFailure",
]
