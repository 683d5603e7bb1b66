"""Shared fixtures: settings isolated from the environment and payload factories."""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import polyline
import pytest

from directions.config import Settings
from directions.schemas.options import Waypoint


TOKEN = "pk.eyJ1IjoidGVzdCJ9.signature"

# (lat, lon)
FERRY_BUILDING = (37.7955, -122.3937)
UNION_SQUARE = (37.7880, -122.4075)
MISSION_DOLORES = (37.7596, -122.4269)
GOLDEN_GATE_PARK = (37.7694, -122.4862)


class PayloadFactory:
    """Builds directions-shaped JSON the way the service returns it."""

    def step(
        self,
        name: str = "Market St",
        maneuver_type: str = "turn",
        modifier: Optional[str] = "left",
        distance: float = 120.0,
        duration: float = 18.0,
        location: Tuple[float, float] = UNION_SQUARE,
        **extra: Any,
    ) -> Dict[str, Any]:
        maneuver = {
            "type": maneuver_type,
            "location": [location[1], location[0]],
            "bearing_before": 0,
            "bearing_after": 90,
        }
        if modifier is not None:
            maneuver["modifier"] = modifier
        step = {
            "distance": distance,
            "duration": duration,
            "name": name,
            "mode": "driving",
            "driving_side": "right",
            "geometry": polyline.encode([location, (location[0] + 0.001, location[1])], 5),
            "maneuver": maneuver,
        }
        step.update(extra)
        return step

    def leg(self, steps: Optional[List[Dict[str, Any]]] = None, distance: float = 500.0,
            duration: float = 90.0, summary: str = "Market St") -> Dict[str, Any]:
        if steps is None:
            steps = [
                self.step(maneuver_type="depart", modifier=None),
                self.step(),
                self.step(maneuver_type="arrive", modifier=None, distance=0.0, duration=0.0),
            ]
        return {"distance": distance, "duration": duration, "summary": summary, "steps": steps}

    def route(self, leg_count: int = 1, points: Sequence[Tuple[float, float]] = (FERRY_BUILDING, UNION_SQUARE),
              precision: int = 5, **extra: Any) -> Dict[str, Any]:
        route = {
            "distance": 500.0 * leg_count,
            "duration": 90.0 * leg_count,
            "geometry": polyline.encode(list(points), precision),
            "weight": 95.5,
            "weight_name": "routability",
            "legs": [self.leg() for _ in range(leg_count)],
        }
        route.update(extra)
        return route

    def waypoints_json(self, points: Sequence[Tuple[float, float]], names: Optional[List[str]] = None):
        names = names or [""] * len(points)
        return [
            {"name": name, "location": [lon, lat]}
            for (lat, lon), name in zip(points, names)
        ]

    def response(self, points: Sequence[Tuple[float, float]] = (FERRY_BUILDING, UNION_SQUARE),
                 route_count: int = 1, uuid: Optional[str] = "cjb7x0ad00000", **extra: Any) -> Dict[str, Any]:
        payload = {
            "code": "Ok",
            "routes": [self.route(leg_count=len(points) - 1, points=points) for _ in range(route_count)],
            "waypoints": self.waypoints_json(points),
        }
        if uuid is not None:
            payload["uuid"] = uuid
        payload.update(extra)
        return payload

    def legacy_response(self, points: Sequence[Tuple[float, float]]) -> Dict[str, Any]:
        """Legacy generation: steps live on the route, endpoints as GeoJSON features."""
        def feature(point, name):
            return {
                "type": "Feature",
                "properties": {"name": name},
                "geometry": {"type": "Point", "coordinates": [point[1], point[0]]},
            }

        steps = [
            {
                "distance": 250.0,
                "duration": 45.0,
                "way_name": "Embarcadero",
                "heading": 180,
                "maneuver": {
                    "type": "depart",
                    "location": {"type": "Point", "coordinates": [points[0][1], points[0][0]]},
                    "instruction": "Head south on Embarcadero",
                },
            },
            {
                "distance": 0.0,
                "duration": 0.0,
                "way_name": "Market St",
                "maneuver": {
                    "type": "turn left",
                    "location": {"type": "Point", "coordinates": [points[-1][1], points[-1][0]]},
                    "instruction": "Turn left onto Market St",
                },
            },
        ]
        return {
            "origin": feature(points[0], "Embarcadero"),
            "destination": feature(points[-1], "Market St"),
            "waypoints": [feature(p, "") for p in points[1:-1]],
            "routes": [
                {
                    "distance": 250.0,
                    "duration": 45.0,
                    "summary": "Embarcadero",
                    "geometry": polyline.encode(list(points), 6),
                    "steps": steps,
                }
            ],
        }


@pytest.fixture
def payloads() -> PayloadFactory:
    return PayloadFactory()


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore .env and the process environment for the fields under test."""
    return Settings(
        _env_file=None,
        mapbox_access_token=TOKEN,
        directions_scheme="https",
        directions_host="api.mapbox.com",
        local_engine_path=None,
        local_engine_suppress_errors=False,
        voice_locale="en-US",
        log_requests=False,
    )


@pytest.fixture
def two_waypoints() -> List[Waypoint]:
    return [
        Waypoint.at(*FERRY_BUILDING, name="Ferry Building"),
        Waypoint.at(*UNION_SQUARE, name="Union Square"),
    ]


@pytest.fixture
def four_points() -> List[Tuple[float, float]]:
    return [FERRY_BUILDING, UNION_SQUARE, MISSION_DOLORES, GOLDEN_GATE_PARK]
