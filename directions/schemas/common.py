"""Common schemas used across the package."""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """Geographic coordinate."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")

    @classmethod
    def from_lon_lat(cls, pair: List[float]) -> "Coordinate":
        """Build from a GeoJSON-ordered [longitude, latitude] pair."""
        if len(pair) < 2:
            raise ValueError("Coordinate pair must have at least 2 values")
        return cls(latitude=pair[1], longitude=pair[0])

    def query_value(self) -> str:
        """Format as 'lon,lat' for URL paths."""
        return f"{self.longitude:.6f},{self.latitude:.6f}"


class GeoJSONPoint(BaseModel):
    """GeoJSON Point geometry."""

    type: str = "Point"
    coordinates: List[float] = Field(
        ..., min_length=2, max_length=3, description="[longitude, latitude, elevation?]"
    )


class GeoJSONLineString(BaseModel):
    """GeoJSON LineString geometry."""

    model_config = ConfigDict(frozen=True)

    type: str = "LineString"
    coordinates: List[List[float]] = Field(
        default_factory=list, description="Array of [longitude, latitude] coordinates"
    )

    @property
    def is_empty(self) -> bool:
        return not self.coordinates

    def as_coordinates(self) -> List[Coordinate]:
        return [Coordinate.from_lon_lat(c) for c in self.coordinates]


def normalize_locale(identifier: Optional[str]) -> Optional[str]:
    """
    Normalize a locale identifier to a hyphenated tag.

    'en_US' -> 'en-US', 'EN-us' -> 'en-US', '' -> None
    """
    if not identifier or not identifier.strip():
        return None

    parts = identifier.strip().replace("_", "-").split("-")
    normalized = [parts[0].lower()]
    for part in parts[1:]:
        if len(part) == 2:
            normalized.append(part.upper())
        elif len(part) == 4:
            normalized.append(part.title())
        else:
            normalized.append(part)
    return "-".join(normalized)
