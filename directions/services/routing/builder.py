"""Route graph builder - turns directions payloads into Route/RouteLeg/RouteStep objects."""

import functools
import logging
import math
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import ValidationError

from directions.core.exceptions import MalformedResponse
from directions.schemas.common import Coordinate, GeoJSONLineString
from directions.schemas.options import DirectionsOptions, MatchOptions, Waypoint
from directions.schemas.routing import (
    BannerInstruction,
    DirectionRoute,
    DirectionsResult,
    Maneuver,
    ManeuverDirection,
    ManeuverType,
    Match,
    MatchResult,
    Route,
    RouteLeg,
    RouteStep,
    Tracepoint,
    VisualInstruction,
    VisualInstructionComponent,
    VoiceInstruction,
)
from directions.services.geometry import (
    coordinate_from_geojson,
    coordinates_from_geojson,
    decode_polyline,
)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class WireFormat(str, Enum):
    """Generation of the API's JSON shape."""

    CURRENT = "current"
    LEGACY = "legacy"

    @classmethod
    def for_api_version(cls, api_version: str) -> "WireFormat":
        return cls.LEGACY if api_version == "v4" else cls.CURRENT

    @property
    def polyline_precision(self) -> int:
        """Decimal digits of encoded geometry: 1e5 current, 1e6 legacy."""
        return 6 if self is WireFormat.LEGACY else 5


# Legacy maneuver types fold the direction into the type string
LEGACY_MANEUVER_MAP: Dict[str, Tuple[ManeuverType, Optional[ManeuverDirection]]] = {
    "continue": (ManeuverType.CONTINUE, ManeuverDirection.STRAIGHT),
    "bear right": (ManeuverType.TURN, ManeuverDirection.SLIGHT_RIGHT),
    "turn right": (ManeuverType.TURN, ManeuverDirection.RIGHT),
    "sharp right": (ManeuverType.TURN, ManeuverDirection.SHARP_RIGHT),
    "u-turn": (ManeuverType.TURN, ManeuverDirection.U_TURN),
    "sharp left": (ManeuverType.TURN, ManeuverDirection.SHARP_LEFT),
    "turn left": (ManeuverType.TURN, ManeuverDirection.LEFT),
    "bear left": (ManeuverType.TURN, ManeuverDirection.SLIGHT_LEFT),
    "waypoint": (ManeuverType.ARRIVE, None),
    "depart": (ManeuverType.DEPART, None),
    "enter roundabout": (ManeuverType.ROUNDABOUT, None),
    "arrive": (ManeuverType.ARRIVE, None),
}


# =============================================================================
# Field access with explicit validation
# =============================================================================

def _require_mapping(value: Any, context: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise MalformedResponse(f"{context} must be a JSON object", field=context)
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _require_number(json: Mapping[str, Any], key: str, context: str) -> float:
    """Return a required non-negative numeric field; booleans are not numbers."""
    value = json.get(key)
    if value is None:
        raise MalformedResponse(
            f"{context} is missing required field '{key}'", field=f"{context}.{key}"
        )
    if not _is_number(value):
        raise MalformedResponse(
            f"{context}.{key} must be a number, got {value!r}",
            field=f"{context}.{key}",
        )
    if value < 0:
        raise MalformedResponse(
            f"{context}.{key} must not be negative, got {value!r}",
            field=f"{context}.{key}",
        )
    return float(value)


def _optional_number(json: Mapping[str, Any], key: str) -> Optional[float]:
    value = json.get(key)
    return float(value) if _is_number(value) else None


def _rejects_invalid(context: str) -> Callable[[F], F]:
    """Report model validation errors raised while building as MalformedResponse."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except ValidationError as e:
                error = e.errors()[0]
                location = ".".join(str(part) for part in error["loc"])
                field = f"{context}.{location}" if location else context
                raise MalformedResponse(f"{field} is invalid: {error['msg']}", field=field) from e

        return wrapper  # type: ignore[return-value]

    return decorator


def _require_list(json: Mapping[str, Any], key: str, context: str) -> List[Any]:
    value = json.get(key)
    if not isinstance(value, list):
        raise MalformedResponse(
            f"{context} is missing required array '{key}'", field=f"{context}.{key}"
        )
    return value


def _optional_list(json: Mapping[str, Any], key: str, context: str) -> List[Any]:
    value = json.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedResponse(f"{context}.{key} must be an array", field=f"{context}.{key}")
    return value


def _optional_str(json: Mapping[str, Any], key: str) -> Optional[str]:
    value = json.get(key)
    return value if isinstance(value, str) else None


def _decode_geometry(value: Any, precision: int, context: str) -> Optional[GeoJSONLineString]:
    """Structured line objects are used as-is, strings are decoded at the given precision."""
    if value is None:
        return None
    try:
        if isinstance(value, Mapping):
            return GeoJSONLineString(coordinates=coordinates_from_geojson(value))
        if isinstance(value, str):
            return GeoJSONLineString(coordinates=decode_polyline(value, precision=precision))
    except ValueError as e:
        raise MalformedResponse(f"{context}.geometry could not be decoded: {e}",
                                field=f"{context}.geometry") from e
    raise MalformedResponse(f"{context}.geometry has unsupported type {type(value).__name__}",
                            field=f"{context}.geometry")


def _decode_location(value: Any, context: str) -> Coordinate:
    try:
        return coordinate_from_geojson(value)
    except (ValueError, TypeError) as e:
        raise MalformedResponse(f"{context}.location is invalid: {e}", field=f"{context}.location") from e


# =============================================================================
# Guidance payloads
# =============================================================================

def _parse_visual_instruction(json: Any, context: str) -> Optional[VisualInstruction]:
    if json is None:
        return None
    json = _require_mapping(json, context)

    components = []
    for c in _optional_list(json, "components", context):
        c = _require_mapping(c, f"{context}.components")
        priority = c.get("abbr_priority")
        components.append(
            VisualInstructionComponent(
                text=_optional_str(c, "text"),
                type=_optional_str(c, "type") or "text",
                abbreviation=_optional_str(c, "abbr"),
                abbreviation_priority=priority if isinstance(priority, int) else None,
            )
        )

    maneuver_type = json.get("type")
    return VisualInstruction(
        text=_optional_str(json, "text"),
        components=components,
        maneuver_type=ManeuverType.parse(maneuver_type) if maneuver_type else None,
        maneuver_direction=ManeuverDirection.parse(json.get("modifier")),
        degrees=_optional_number(json, "degrees"),
    )


def _parse_voice_instructions(json: Mapping[str, Any], context: str) -> List[VoiceInstruction]:
    instructions = []
    for v in _optional_list(json, "voiceInstructions", context):
        v = _require_mapping(v, f"{context}.voiceInstructions")
        announcement = _optional_str(v, "announcement")
        if announcement is None:
            raise MalformedResponse(
                f"{context}.voiceInstructions entry is missing 'announcement'",
                field=f"{context}.voiceInstructions.announcement",
            )
        instructions.append(
            VoiceInstruction(
                distance_along_geometry=_require_number(v, "distanceAlongGeometry",
                                                        f"{context}.voiceInstructions"),
                text=announcement,
                ssml_text=_optional_str(v, "ssmlAnnouncement"),
            )
        )
    return instructions


def _parse_banner_instructions(json: Mapping[str, Any], context: str) -> List[BannerInstruction]:
    instructions = []
    for b in _optional_list(json, "bannerInstructions", context):
        b = _require_mapping(b, f"{context}.bannerInstructions")
        primary = _parse_visual_instruction(b.get("primary"), f"{context}.bannerInstructions.primary")
        if primary is None:
            raise MalformedResponse(
                f"{context}.bannerInstructions entry is missing 'primary'",
                field=f"{context}.bannerInstructions.primary",
            )
        instructions.append(
            BannerInstruction(
                distance_along_geometry=_require_number(b, "distanceAlongGeometry",
                                                        f"{context}.bannerInstructions"),
                primary=primary,
                secondary=_parse_visual_instruction(b.get("secondary"),
                                                    f"{context}.bannerInstructions.secondary"),
            )
        )
    return instructions


# =============================================================================
# Builder
# =============================================================================

class RouteBuilder:
    """Builds route graphs for one wire-format generation.

    Select an instance with builder_for(); behaviour differences between the
    generations are dispatched on self.wire_format:

    - CURRENT: one leg per consecutive waypoint pair, polyline precision 1e5
    - LEGACY: a single leg from the first to the last waypoint, built from the
      route object itself, polyline precision 1e6, no speech locale
    """

    def __init__(self, wire_format: WireFormat):
        self.wire_format = wire_format

    @property
    def precision(self) -> int:
        return self.wire_format.polyline_precision

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    @_rejects_invalid("route")
    def build_route(
        self,
        json: Any,
        waypoints: Sequence[Waypoint],
        profile_identifier: Optional[str],
        model: Type[DirectionRoute] = Route,
        **extra: Any,
    ) -> DirectionRoute:
        """Build a route (or match) from its JSON object and the waypoints it visits."""
        json = _require_mapping(json, "route")
        if len(waypoints) < 2:
            raise ValueError("At least two waypoints are required to build a route")

        distance = _require_number(json, "distance", "route")
        duration = _require_number(json, "duration", "route")
        geometry = _decode_geometry(json.get("geometry"), self.precision, "route")

        if self.wire_format is WireFormat.LEGACY:
            legs_json = json.get("legs")
            leg_json = legs_json[0] if isinstance(legs_json, list) and legs_json else json
            legs = [self.build_leg(leg_json, waypoints[0], waypoints[-1], profile_identifier)]
            speech_locale = None
        else:
            legs_json = _require_list(json, "legs", "route")
            if len(legs_json) != len(waypoints) - 1:
                raise MalformedResponse(
                    f"route has {len(legs_json)} legs for {len(waypoints)} waypoints; "
                    f"expected {len(waypoints) - 1}",
                    field="route.legs",
                )
            # Leg i spans waypoint i -> waypoint i+1
            endpoints = zip(waypoints[:-1], waypoints[1:])
            legs = [
                self.build_leg(leg_json, source, destination, profile_identifier)
                for (source, destination), leg_json in zip(endpoints, legs_json)
            ]
            speech_locale = _optional_str(json, "voiceLocale")

        return model(
            legs=legs,
            distance=distance,
            expected_travel_time=duration,
            geometry=geometry,
            speech_locale=speech_locale,
            profile_identifier=profile_identifier,
            wire_format=self.wire_format.value,
            **extra,
        )

    # ------------------------------------------------------------------
    # Legs and steps
    # ------------------------------------------------------------------

    @_rejects_invalid("leg")
    def build_leg(
        self,
        json: Any,
        source: Waypoint,
        destination: Waypoint,
        profile_identifier: Optional[str],
    ) -> RouteLeg:
        json = _require_mapping(json, "leg")
        steps = [
            self.build_step(step_json, profile_identifier)
            for step_json in _optional_list(json, "steps", "leg")
        ]
        return RouteLeg(
            source=source,
            destination=destination,
            distance=_require_number(json, "distance", "leg"),
            expected_travel_time=_require_number(json, "duration", "leg"),
            steps=steps,
            name=_optional_str(json, "summary"),
            profile_identifier=profile_identifier,
        )

    @_rejects_invalid("step")
    def build_step(self, json: Any, profile_identifier: Optional[str] = None) -> RouteStep:
        json = _require_mapping(json, "step")
        maneuver_json = _require_mapping(json.get("maneuver"), "step.maneuver")

        if self.wire_format is WireFormat.LEGACY:
            maneuver = self._legacy_maneuver(maneuver_json, json)
            name = _optional_str(json, "way_name") or _optional_str(json, "name")
        else:
            maneuver = self._current_maneuver(maneuver_json)
            name = _optional_str(json, "name")

        geometry = _decode_geometry(json.get("geometry"), self.precision, "step")
        return RouteStep(
            geometry=geometry or GeoJSONLineString(),
            distance=_require_number(json, "distance", "step"),
            expected_travel_time=_require_number(json, "duration", "step"),
            maneuver=maneuver,
            name=name,
            code=_optional_str(json, "ref"),
            transport_type=_optional_str(json, "mode"),
            driving_side=_optional_str(json, "driving_side"),
            profile_identifier=profile_identifier,
            voice_instructions=_parse_voice_instructions(json, "step"),
            banner_instructions=_parse_banner_instructions(json, "step"),
        )

    def _current_maneuver(self, json: Mapping[str, Any]) -> Maneuver:
        maneuver_type = _optional_str(json, "type")
        if maneuver_type is None:
            raise MalformedResponse("step.maneuver is missing required field 'type'",
                                    field="step.maneuver.type")
        if "location" not in json:
            raise MalformedResponse("step.maneuver is missing required field 'location'",
                                    field="step.maneuver.location")
        exit_index = json.get("exit")
        return Maneuver(
            type=ManeuverType.parse(maneuver_type),
            modifier=ManeuverDirection.parse(json.get("modifier")),
            location=_decode_location(json["location"], "step.maneuver"),
            bearing_before=_optional_number(json, "bearing_before"),
            bearing_after=_optional_number(json, "bearing_after"),
            instruction=_optional_str(json, "instruction"),
            exit_index=exit_index if isinstance(exit_index, int) else None,
        )

    def _legacy_maneuver(self, json: Mapping[str, Any], step_json: Mapping[str, Any]) -> Maneuver:
        raw_type = _optional_str(json, "type")
        if raw_type is None:
            raise MalformedResponse("step.maneuver is missing required field 'type'",
                                    field="step.maneuver.type")
        if "location" not in json:
            raise MalformedResponse("step.maneuver is missing required field 'location'",
                                    field="step.maneuver.location")
        maneuver_type, modifier = LEGACY_MANEUVER_MAP.get(
            raw_type, (ManeuverType.parse(raw_type), None)
        )
        return Maneuver(
            type=maneuver_type,
            modifier=modifier,
            location=_decode_location(json["location"], "step.maneuver"),
            bearing_after=_optional_number(step_json, "heading"),
            instruction=_optional_str(json, "instruction"),
        )

    # ------------------------------------------------------------------
    # Waypoints
    # ------------------------------------------------------------------

    @_rejects_invalid("waypoint")
    def decode_waypoints(self, json: Mapping[str, Any], requested: Sequence[Waypoint]) -> List[Waypoint]:
        """Conflated waypoints from the payload, falling back to the requested ones."""
        if self.wire_format is WireFormat.LEGACY:
            origin = json.get("origin")
            destination = json.get("destination")
            if not isinstance(origin, Mapping) or not isinstance(destination, Mapping):
                return list(requested)
            features = [origin] + list(json.get("waypoints") or []) + [destination]
            return [self._waypoint_from_feature(f) for f in features]

        raw = json.get("waypoints")
        if not isinstance(raw, list) or len(raw) != len(requested):
            return list(requested)
        return [
            self._conflate(_require_mapping(w, "waypoint"), original)
            for w, original in zip(raw, requested)
        ]

    def _conflate(self, json: Mapping[str, Any], original: Waypoint) -> Waypoint:
        location = json.get("location")
        coordinate = _decode_location(location, "waypoint") if location is not None else original.coordinate
        name = _optional_str(json, "name") or original.name
        return original.model_copy(update={"coordinate": coordinate, "name": name})

    def _waypoint_from_feature(self, feature: Any) -> Waypoint:
        feature = _require_mapping(feature, "waypoint")
        properties = feature.get("properties") or {}
        return Waypoint(
            coordinate=_decode_location(feature.get("geometry"), "waypoint"),
            name=properties.get("name") if isinstance(properties, Mapping) else None,
        )


_BUILDERS = {wire_format: RouteBuilder(wire_format) for wire_format in WireFormat}


def builder_for(wire_format: WireFormat) -> RouteBuilder:
    """Return the builder for the given wire-format generation."""
    return _BUILDERS[wire_format]


def builder_for_options(options: DirectionsOptions) -> RouteBuilder:
    return builder_for(WireFormat.for_api_version(options.api_version))


# =============================================================================
# Response decoding
# =============================================================================

def decode_route_response(json: Any, options: DirectionsOptions) -> DirectionsResult:
    """Decode a successful route response into waypoints and routes."""
    json = _require_mapping(json, "response")
    builder = builder_for_options(options)
    profile = options.profile_identifier.value

    waypoints = builder.decode_waypoints(json, options.waypoints)
    routes = [
        builder.build_route(route_json, waypoints, profile)
        for route_json in _require_list(json, "routes", "response")
    ]
    logger.debug(f"Decoded {len(routes)} {builder.wire_format.value} route(s)")

    return DirectionsResult(
        waypoints=waypoints,
        routes=routes,
        identifier=_optional_str(json, "uuid"),
    )


@_rejects_invalid("tracepoint")
def decode_tracepoint(json: Any) -> Optional[Tracepoint]:
    """Trace points that could not be matched are null in the payload."""
    if json is None:
        return None
    json = _require_mapping(json, "tracepoint")
    matchings_index = json.get("matchings_index")
    waypoint_index = json.get("waypoint_index")
    alternate_count = json.get("alternatives_count")
    return Tracepoint(
        coordinate=_decode_location(json.get("location"), "tracepoint"),
        name=_optional_str(json, "name"),
        alternate_count=alternate_count if isinstance(alternate_count, int) else 0,
        matchings_index=matchings_index if isinstance(matchings_index, int) else None,
        waypoint_index=waypoint_index if isinstance(waypoint_index, int) else None,
    )


def _matching_waypoints(
    index: int, tracepoints: Sequence[Optional[Tracepoint]], options: MatchOptions
) -> List[Waypoint]:
    """Waypoints of matching `index`, ordered by waypoint_index."""
    matched = sorted(
        (
            tp for tp in tracepoints
            if tp is not None and tp.matchings_index == index and tp.waypoint_index is not None
        ),
        key=lambda tp: tp.waypoint_index,
    )
    if len(matched) >= 2:
        return [Waypoint(coordinate=tp.coordinate, name=tp.name) for tp in matched]

    if options.waypoint_indices:
        chosen = [options.waypoints[i] for i in options.waypoint_indices if 0 <= i < len(options.waypoints)]
        if len(chosen) >= 2:
            return chosen
    return list(options.waypoints)


def decode_match_response(json: Any, options: MatchOptions) -> MatchResult:
    """Decode a map matching response into matches and trace points."""
    json = _require_mapping(json, "response")
    builder = builder_for(WireFormat.CURRENT)
    profile = options.profile_identifier.value

    tracepoints = [decode_tracepoint(t) for t in _optional_list(json, "tracepoints", "response")]
    matches = []
    for i, matching in enumerate(_require_list(json, "matchings", "response")):
        matching = _require_mapping(matching, "matching")
        confidence = _optional_number(matching, "confidence") or 0.0
        matches.append(
            builder.build_route(
                matching,
                _matching_waypoints(i, tracepoints, options),
                profile,
                model=Match,
                confidence=confidence,
            )
        )

    return MatchResult(
        matches=matches,
        tracepoints=tracepoints,
        identifier=_optional_str(json, "uuid"),
    )


def decode_routes_matching(json: Any, options: MatchOptions) -> DirectionsResult:
    """Decode a map matching response, presenting each matching as a route."""
    json = _require_mapping(json, "response")
    builder = builder_for(WireFormat.CURRENT)
    profile = options.profile_identifier.value

    tracepoints = [decode_tracepoint(t) for t in _optional_list(json, "tracepoints", "response")]
    routes = []
    waypoints: List[Waypoint] = []
    for i, matching in enumerate(_require_list(json, "matchings", "response")):
        matching_waypoints = _matching_waypoints(i, tracepoints, options)
        waypoints.extend(matching_waypoints)
        routes.append(builder.build_route(matching, matching_waypoints, profile))

    return DirectionsResult(
        waypoints=waypoints or list(options.waypoints),
        routes=routes,
        identifier=_optional_str(json, "uuid"),
    )
