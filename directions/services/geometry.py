"""Geometry decoding for encoded polylines and GeoJSON shapes."""

from typing import Any, List, Mapping, Sequence, Union

from directions.schemas.common import Coordinate, GeoJSONPoint


def decode_polyline(encoded: str, precision: int = 5) -> List[List[float]]:
    """Decode a polyline string into a list of coordinates.

    The current API generation encodes at precision 5 (1e5), the legacy
    generation at precision 6 (1e6). Coordinates are returned in GeoJSON
    order, [lon, lat].
    """
    coordinates = []
    index = 0
    lat = 0
    lng = 0
    factor = 10 ** precision

    def next_value() -> int:
        nonlocal index
        shift = 0
        result = 0
        while True:
            if index >= len(encoded):
                raise ValueError(f"Truncated polyline at offset {index}")
            b = ord(encoded[index]) - 63
            index += 1
            result |= (b & 0x1F) << shift
            shift += 5
            if b < 0x20:
                break
        return ~(result >> 1) if result & 1 else result >> 1

    while index < len(encoded):
        lat += next_value()
        lng += next_value()

        # Add coordinate [lon, lat] for GeoJSON
        coordinates.append([lng / factor, lat / factor])

    return coordinates


def coordinates_from_geojson(geometry: Mapping[str, Any]) -> List[List[float]]:
    """Extract [lon, lat] pairs from a LineString or Point object."""
    geometry_type = geometry.get("type")
    raw = geometry.get("coordinates")

    if geometry_type == "Point":
        return [_lon_lat(raw)]
    if geometry_type == "LineString":
        if not isinstance(raw, list):
            raise ValueError("LineString coordinates must be an array")
        return [_lon_lat(pair) for pair in raw]

    raise ValueError(f"Unsupported geometry type: {geometry_type!r}")


def coordinate_from_geojson(value: Union[Mapping[str, Any], Sequence[float]]) -> Coordinate:
    """Parse a [lon, lat] array or a GeoJSON Point into a Coordinate."""
    if isinstance(value, Mapping):
        if value.get("type") != "Point":
            raise ValueError(f"Expected a Point, got {value.get('type')!r}")
        value = GeoJSONPoint.model_validate(value).coordinates
    return Coordinate.from_lon_lat(_lon_lat(value))


def _lon_lat(pair: Any) -> List[float]:
    if (
        not isinstance(pair, (list, tuple))
        or len(pair) < 2
        or not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in pair[:2])
    ):
        raise ValueError(f"Invalid coordinate pair: {pair!r}")
    return [float(pair[0]), float(pair[1])]
