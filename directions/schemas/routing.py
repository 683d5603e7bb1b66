"""Route graph schemas: Route -> RouteLeg -> RouteStep."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from directions.schemas.common import Coordinate, GeoJSONLineString, normalize_locale
from directions.schemas.options import Waypoint


class ManeuverType(str, Enum):
    """Types of navigation maneuvers."""

    DEPART = "depart"
    ARRIVE = "arrive"
    TURN = "turn"
    CONTINUE = "continue"
    NEW_NAME = "new name"
    MERGE = "merge"
    ON_RAMP = "on ramp"
    OFF_RAMP = "off ramp"
    FORK = "fork"
    END_OF_ROAD = "end of road"
    USE_LANE = "use lane"
    ROUNDABOUT = "roundabout"
    ROTARY = "rotary"
    ROUNDABOUT_TURN = "roundabout turn"
    EXIT_ROUNDABOUT = "exit roundabout"
    EXIT_ROTARY = "exit rotary"
    NOTIFICATION = "notification"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ManeuverType":
        """Unknown types are treated as a plain turn."""
        try:
            return cls(value)
        except ValueError:
            return cls.TURN


class ManeuverDirection(str, Enum):
    """Direction modifier of a maneuver."""

    U_TURN = "uturn"
    SHARP_RIGHT = "sharp right"
    RIGHT = "right"
    SLIGHT_RIGHT = "slight right"
    STRAIGHT = "straight"
    SLIGHT_LEFT = "slight left"
    LEFT = "left"
    SHARP_LEFT = "sharp left"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ManeuverDirection"]:
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class Maneuver(BaseModel):
    """Where and how to change course at the start of a step."""

    model_config = ConfigDict(frozen=True)

    type: ManeuverType = Field(..., description="Maneuver type")
    modifier: Optional[ManeuverDirection] = Field(None, description="Direction of the maneuver")
    location: Coordinate = Field(..., description="Location of maneuver")
    bearing_before: Optional[float] = None
    bearing_after: Optional[float] = None
    instruction: Optional[str] = Field(None, description="Human-readable instruction")
    exit_index: Optional[int] = Field(None, description="Roundabout exit number")


class VoiceInstruction(BaseModel):
    """Spoken cue announced at a distance before the end of the step."""

    model_config = ConfigDict(frozen=True)

    distance_along_geometry: float = Field(..., ge=0, description="Distance from the end of the step")
    text: str = Field(..., description="Plain-text announcement")
    ssml_text: Optional[str] = Field(None, description="SSML announcement")


class VisualInstructionComponent(BaseModel):
    """Part of a banner: a road name, shield, delimiter or exit."""

    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    type: str = "text"
    abbreviation: Optional[str] = None
    abbreviation_priority: Optional[int] = None


class VisualInstruction(BaseModel):
    """One line of a banner."""

    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    components: List[VisualInstructionComponent] = Field(default_factory=list)
    maneuver_type: Optional[ManeuverType] = None
    maneuver_direction: Optional[ManeuverDirection] = None
    degrees: Optional[float] = None


class BannerInstruction(BaseModel):
    """Displayable cue shown at a distance before the end of the step."""

    model_config = ConfigDict(frozen=True)

    distance_along_geometry: float = Field(..., ge=0)
    primary: VisualInstruction
    secondary: Optional[VisualInstruction] = None


class RouteStep(BaseModel):
    """A single maneuver and the road travelled after it."""

    model_config = ConfigDict(frozen=True)

    geometry: GeoJSONLineString = Field(default_factory=GeoJSONLineString)
    distance: float = Field(..., ge=0, description="Distance in meters")
    expected_travel_time: float = Field(..., ge=0, description="Duration in seconds")
    maneuver: Maneuver
    name: Optional[str] = Field(None, description="Road or place name")
    code: Optional[str] = Field(None, description="Route number, e.g. I 80")
    transport_type: Optional[str] = None
    driving_side: Optional[str] = None
    profile_identifier: Optional[str] = None
    voice_instructions: List[VoiceInstruction] = Field(default_factory=list)
    banner_instructions: List[BannerInstruction] = Field(default_factory=list)

    @property
    def instruction(self) -> Optional[str]:
        return self.maneuver.instruction


class RouteLeg(BaseModel):
    """Travel between two consecutive waypoints."""

    model_config = ConfigDict(frozen=True)

    source: Waypoint = Field(..., description="Waypoint the leg starts at")
    destination: Waypoint = Field(..., description="Waypoint the leg ends at")
    distance: float = Field(..., ge=0, description="Leg distance in meters")
    expected_travel_time: float = Field(..., ge=0, description="Leg duration in seconds")
    steps: List[RouteStep] = Field(default_factory=list, description="Steps in this leg")
    name: Optional[str] = Field(None, description="Summary of the most significant roads")
    profile_identifier: Optional[str] = None


class DirectionRoute(BaseModel):
    """
    Shared shape of routes and matches.

    The structural fields are frozen. The request metadata (access token,
    endpoint, identifier) is not in the payload; the client attaches it
    exactly once with attach_metadata() before handing the object out.
    """

    legs: List[RouteLeg] = Field(default_factory=list, frozen=True)
    distance: float = Field(..., ge=0, frozen=True, description="Total distance in meters")
    expected_travel_time: float = Field(..., ge=0, frozen=True, description="Total duration in seconds")
    geometry: Optional[GeoJSONLineString] = Field(None, frozen=True)
    speech_locale: Optional[str] = Field(None, frozen=True)
    profile_identifier: Optional[str] = Field(None, frozen=True)
    wire_format: str = Field("current", frozen=True, description="current or legacy")

    access_token: Optional[str] = None
    api_endpoint: Optional[str] = None
    route_identifier: Optional[str] = None

    _metadata_attached: bool = PrivateAttr(default=False)

    @field_validator("speech_locale")
    @classmethod
    def validate_speech_locale(cls, v: Optional[str]) -> Optional[str]:
        return normalize_locale(v)

    @property
    def coordinates(self) -> List[Coordinate]:
        if self.geometry is None:
            return []
        return self.geometry.as_coordinates()

    def attach_metadata(
        self,
        access_token: Optional[str],
        api_endpoint: Optional[str],
        route_identifier: Optional[str],
    ) -> None:
        """Set the request-scoped metadata. Allowed once per object."""
        if self._metadata_attached:
            raise RuntimeError("Route metadata has already been attached")
        self.access_token = access_token
        self.api_endpoint = api_endpoint
        self.route_identifier = route_identifier
        self._metadata_attached = True


class Route(DirectionRoute):
    """A route visiting a series of waypoints in order."""


class Match(DirectionRoute):
    """A route reconstructed from a trace of locations."""

    confidence: float = Field(0.0, ge=0, le=1, frozen=True, description="Confidence of the match")


class Tracepoint(BaseModel):
    """A trace location snapped to the road network."""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    name: Optional[str] = None
    alternate_count: int = 0
    matchings_index: Optional[int] = None
    waypoint_index: Optional[int] = None


class DirectionsResult(BaseModel):
    """Conflated waypoints and the routes that visit them."""

    waypoints: List[Waypoint] = Field(default_factory=list)
    routes: List[Route] = Field(default_factory=list)
    identifier: Optional[str] = Field(None, description="Opaque uuid of the response")

    @property
    def is_empty(self) -> bool:
        return not self.routes


class MatchResult(BaseModel):
    """Matches and the snapped trace points."""

    matches: List[Match] = Field(default_factory=list)
    tracepoints: List[Optional[Tracepoint]] = Field(default_factory=list)
    identifier: Optional[str] = None
