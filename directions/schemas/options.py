"""Request options: profile, waypoints and output detail."""

from enum import Enum
from typing import List, Literal, Optional, Tuple
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, field_validator

from directions.schemas.common import Coordinate


QueryItems = List[Tuple[str, str]]


class ProfileIdentifier(str, Enum):
    """Mode of transportation used to calculate routes."""

    AUTOMOBILE = "mapbox/driving"
    AUTOMOBILE_AVOIDING_TRAFFIC = "mapbox/driving-traffic"
    CYCLING = "mapbox/cycling"
    WALKING = "mapbox/walking"


class ShapeFormat(str, Enum):
    """Geometry encoding requested from the service."""

    GEOJSON = "geojson"
    POLYLINE = "polyline"
    POLYLINE6 = "polyline6"


class RouteShapeResolution(str, Enum):
    """Level of detail of the overview geometry."""

    NONE = "false"
    LOW = "simplified"
    FULL = "full"


class Waypoint(BaseModel):
    """A location the route must visit, in request order."""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate = Field(..., description="Location of the waypoint")
    name: Optional[str] = Field(None, description="Name used in spoken and visual instructions")
    heading: Optional[float] = Field(
        None, ge=0, lt=360, description="Direction of travel when arriving, degrees from north"
    )
    heading_accuracy: Optional[float] = Field(None, ge=0, le=180)
    coordinate_accuracy: Optional[float] = Field(
        None, description="Snapping radius in meters; negative means unlimited"
    )

    @classmethod
    def at(cls, latitude: float, longitude: float, name: Optional[str] = None) -> "Waypoint":
        return cls(coordinate=Coordinate(latitude=latitude, longitude=longitude), name=name)

    def bearing_value(self) -> str:
        if self.heading is None or self.heading_accuracy is None:
            return ""
        return f"{self.heading % 360:g},{self.heading_accuracy % 180:g}"

    def radius_value(self) -> str:
        if self.coordinate_accuracy is None or self.coordinate_accuracy < 0:
            return "unlimited"
        return f"{self.coordinate_accuracy:g}"


class DirectionsOptions(BaseModel):
    """Criteria shared by route and match requests."""

    model_config = ConfigDict(frozen=True)

    waypoints: List[Waypoint] = Field(..., min_length=2, description="Ordered waypoints")
    profile_identifier: ProfileIdentifier = Field(default=ProfileIdentifier.AUTOMOBILE)
    api_version: Literal["v5", "v4"] = Field(
        default="v5", description="Wire-format generation of the API"
    )
    include_steps: bool = True
    shape_format: ShapeFormat = ShapeFormat.POLYLINE
    route_shape_resolution: RouteShapeResolution = RouteShapeResolution.FULL
    locale: Optional[str] = Field(None, description="Language of instructions, e.g. en-US")
    include_spoken_instructions: bool = False
    include_visual_instructions: bool = False

    @field_validator("locale")
    @classmethod
    def validate_locale(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def coordinates_value(self) -> str:
        return ";".join(w.coordinate.query_value() for w in self.waypoints)

    @property
    def path(self) -> str:
        """Request path, relative to the API endpoint."""
        if self.api_version == "v4":
            profile = self.profile_identifier.value.replace("/", ".")
            return f"v4/directions/{profile}/{self.coordinates_value}.json"
        return f"directions/v5/{self.profile_identifier.value}/{self.coordinates_value}.json"

    @property
    def params(self) -> QueryItems:
        """Query parameters derived from the options."""
        if self.api_version == "v4":
            return [
                ("geometry", "geojson" if self.shape_format == ShapeFormat.GEOJSON else "polyline"),
                ("steps", str(self.include_steps).lower()),
                ("instructions", "text"),
            ]

        params: QueryItems = [
            ("geometries", self.shape_format.value),
            ("overview", self.route_shape_resolution.value),
            ("steps", str(self.include_steps).lower()),
        ]
        if self.locale:
            params.append(("language", self.locale))
        if self.include_spoken_instructions:
            params.append(("voice_instructions", "true"))
        if self.include_visual_instructions:
            params.append(("banner_instructions", "true"))

        if any(w.heading is not None and w.heading_accuracy is not None for w in self.waypoints):
            params.append(("bearings", ";".join(w.bearing_value() for w in self.waypoints)))
        if any(w.coordinate_accuracy is not None for w in self.waypoints):
            params.append(("radiuses", ";".join(w.radius_value() for w in self.waypoints)))
        return params

    @property
    def http_method(self) -> str:
        return "GET"

    def encoded_body(self) -> Optional[str]:
        return None


class RouteOptions(DirectionsOptions):
    """Options for a directions (route) request."""

    include_alternative_routes: bool = False
    allows_u_turn_at_waypoint: bool = False

    @property
    def params(self) -> QueryItems:
        params = super().params
        params.append(("alternatives", str(self.include_alternative_routes).lower()))
        if self.api_version == "v5":
            params.append(("continue_straight", str(not self.allows_u_turn_at_waypoint).lower()))
            if any(w.name for w in self.waypoints):
                params.append(("waypoint_names", ";".join(w.name or "" for w in self.waypoints)))
        return params


class MatchOptions(DirectionsOptions):
    """Options for a map matching request, sent as a form-encoded POST body."""

    timestamps: Optional[List[int]] = Field(None, description="Unix time of each trace point")
    resample_trace: bool = False
    waypoint_indices: Optional[List[int]] = Field(
        None, description="Indices of trace points treated as waypoints"
    )

    @field_validator("timestamps")
    @classmethod
    def validate_timestamps(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is not None and any(b < a for a, b in zip(v, v[1:])):
            raise ValueError("timestamps must be in chronological order")
        return v

    @property
    def path(self) -> str:
        return f"matching/v5/{self.profile_identifier.value}"

    @property
    def params(self) -> QueryItems:
        # Everything travels in the body so long traces do not overflow the URL
        return []

    @property
    def body_params(self) -> QueryItems:
        params = [("coordinates", self.coordinates_value)] + super().params
        if self.timestamps:
            params.append(("timestamps", ";".join(str(t) for t in self.timestamps)))
        if self.resample_trace:
            params.append(("tidy", "true"))
        if self.waypoint_indices is not None:
            params.append(("waypoints", ";".join(str(i) for i in self.waypoint_indices)))
        return params

    @property
    def http_method(self) -> str:
        return "POST"

    def encoded_body(self) -> Optional[str]:
        return urlencode(self.body_params, safe=",;")
