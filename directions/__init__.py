"""Directions client: request, classify and normalize turn-by-turn routes."""

__version__ = "0.4.0"

from directions.core.exceptions import (  # noqa: E402
    DirectionsError,
    TransportError,
    ApplicationError,
    RateLimitError,
    MalformedResponse,
    SynthesisFailure,
)
from directions.schemas.options import (  # noqa: E402
    Waypoint,
    ProfileIdentifier,
    RouteOptions,
    MatchOptions,
)
from directions.schemas.routing import (  # noqa: E402
    Route,
    RouteLeg,
    RouteStep,
    Match,
    DirectionsResult,
    MatchResult,
)
from directions.services.routing.client import Directions, DirectionsTask  # noqa: E402

__all__ = [
    "__version__",
    "Directions",
    "DirectionsTask",
    "DirectionsError",
    "TransportError",
    "ApplicationError",
    "RateLimitError",
    "MalformedResponse",
    "SynthesisFailure",
    "Waypoint",
    "ProfileIdentifier",
    "RouteOptions",
    "MatchOptions",
    "Route",
    "RouteLeg",
    "RouteStep",
    "Match",
    "DirectionsResult",
    "MatchResult",
]
