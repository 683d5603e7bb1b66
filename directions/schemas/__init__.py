# Pydantic schemas
from directions.schemas.common import Coordinate, GeoJSONPoint, GeoJSONLineString, normalize_locale
from directions.schemas.options import (
    Waypoint,
    ProfileIdentifier,
    ShapeFormat,
    RouteShapeResolution,
    DirectionsOptions,
    RouteOptions,
    MatchOptions,
)
from directions.schemas.routing import (
    ManeuverType,
    ManeuverDirection,
    Maneuver,
    VoiceInstruction,
    VisualInstruction,
    VisualInstructionComponent,
    BannerInstruction,
    RouteStep,
    RouteLeg,
    Route,
    Match,
    Tracepoint,
    DirectionsResult,
    MatchResult,
)

__all__ = [
    "Coordinate",
    "GeoJSONPoint",
    "GeoJSONLineString",
    "normalize_locale",
    "Waypoint",
    "ProfileIdentifier",
    "ShapeFormat",
    "RouteShapeResolution",
    "DirectionsOptions",
    "RouteOptions",
    "MatchOptions",
    "ManeuverType",
    "ManeuverDirection",
    "Maneuver",
    "VoiceInstruction",
    "VisualInstruction",
    "VisualInstructionComponent",
    "BannerInstruction",
    "RouteStep",
    "RouteLeg",
    "Route",
    "Match",
    "Tracepoint",
    "DirectionsResult",
    "MatchResult",
]
