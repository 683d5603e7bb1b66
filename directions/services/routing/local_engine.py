"""
Local routing engine: offline route computation plus guidance synthesis.

The engine is an OSRM instance serving a locally prepared dataset. Its
responses carry no voice or banner instructions, so the adapter synthesizes
them step by step and returns a payload in the shape the route builder
expects for a remote response.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol

import httpx

from directions.core.exceptions import SynthesisFailure
from directions.schemas.common import Coordinate
from directions.services.routing.instructions import InstructionFormatter, synthesize_step

logger = logging.getLogger(__name__)


class LocalRoutingEngine(Protocol):
    """Anything that can route between two coordinates without the network API."""

    def route(self, origin: Coordinate, destination: Coordinate) -> Dict[str, Any]:
        ...

    def nearest(self, location: Coordinate) -> Dict[str, Any]:
        ...


class LocalOSRMEngine:
    """
    Synchronous client for an OSRM server loaded with a local dataset.

    The dataset path identifies which extract the server was started with
    (osrm-routed <dataset_path>); requests go to base_url.
    """

    def __init__(
        self,
        dataset_path: str,
        base_url: str = "http://127.0.0.1:5000",
        profile: str = "driving",
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        self.dataset_path = dataset_path
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self._client = client or httpx.Client(timeout=timeout)
        logger.info(f"Local routing engine for {dataset_path} at {self.base_url} ({profile})")

    def route(self, origin: Coordinate, destination: Coordinate) -> Dict[str, Any]:
        """Full-overview route with steps and encoded polyline geometry."""
        # OSRM expects lon,lat order
        coords = f"{origin.query_value()};{destination.query_value()}"
        url = f"{self.base_url}/route/v1/{self.profile}/{coords}"
        params = {"overview": "full", "geometries": "polyline", "steps": "true"}
        return self._get(url, params)

    def nearest(self, location: Coordinate) -> Dict[str, Any]:
        """Snap a location to the closest segment of the road network."""
        url = f"{self.base_url}/nearest/v1/{self.profile}/{location.query_value()}"
        return self._get(url, {"number": "1"})

    def _get(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        response = self._client.get(url, params=params, headers={"Accept": "application/json"})
        response.raise_for_status()
        return response.json()

    def close(self) -> None:
        self._client.close()


class LocalEngineAdapter:
    """Turns raw local-engine output into a complete, guidance-bearing payload."""

    def __init__(
        self,
        engine: LocalRoutingEngine,
        formatter: Optional[InstructionFormatter] = None,
        voice_locale: str = "en-US",
    ):
        self.engine = engine
        self.formatter = formatter or InstructionFormatter(version="v5")
        self.voice_locale = voice_locale

    def get_json(self, origin: Coordinate, destination: Coordinate) -> Dict[str, Any]:
        """
        Route from origin to destination and synthesize guidance for every step.

        Every route, leg and step is rebuilt as a new dict; fields the
        synthesis does not touch are carried over unchanged. Raises
        SynthesisFailure if the engine fails or any step cannot be
        synthesized. No partial payload is ever returned.
        """
        try:
            raw = self.engine.route(origin, destination)
        except (httpx.HTTPError, ValueError) as e:
            raise SynthesisFailure(
                "The local routing engine did not return a route",
                internal_message=repr(e),
            ) from e

        if not isinstance(raw, Mapping) or not raw:
            raise SynthesisFailure("The local routing engine returned no result")

        code = raw.get("code")
        if code is not None and code != "Ok":
            raise SynthesisFailure(
                f"The local routing engine reported {code}",
                internal_message=raw.get("message"),
            )

        routes = raw.get("routes")
        if not isinstance(routes, list) or not routes:
            raise SynthesisFailure("The local routing engine returned no routes")

        payload = dict(raw)
        payload["routes"] = [self._synthesize_route(route) for route in routes]

        step_count = sum(len(leg["steps"]) for route in payload["routes"] for leg in route["legs"])
        logger.debug(f"Synthesized guidance for {step_count} step(s) in {len(routes)} route(s)")
        return payload

    def _synthesize_route(self, route: Any) -> Dict[str, Any]:
        if not isinstance(route, Mapping):
            raise SynthesisFailure("Local route is not a JSON object")

        legs = route.get("legs")
        if not isinstance(legs, list):
            raise SynthesisFailure("Local route is missing 'legs'")

        rebuilt = dict(route)
        rebuilt["voiceLocale"] = self.voice_locale
        rebuilt["legs"] = [self._synthesize_leg(leg) for leg in legs]
        return rebuilt

    def _synthesize_leg(self, leg: Any) -> Dict[str, Any]:
        if not isinstance(leg, Mapping):
            raise SynthesisFailure("Local leg is not a JSON object")

        steps = leg.get("steps")
        if not isinstance(steps, list):
            raise SynthesisFailure("Local leg is missing 'steps'")

        rebuilt = dict(leg)
        rebuilt["steps"] = [synthesize_step(step, self.formatter).step for step in steps]
        return rebuilt

    def get_json_string(self, payload: Mapping[str, Any]) -> str:
        """Pretty-printed JSON for a synthesized payload."""
        return json.dumps(payload, indent=2, ensure_ascii=False)

    def get_waypoints(self, location: Coordinate) -> List[Dict[str, Any]]:
        """Waypoints of the road segment closest to location."""
        try:
            raw = self.engine.nearest(location)
        except (httpx.HTTPError, ValueError) as e:
            raise SynthesisFailure(
                "The local routing engine could not snap the location",
                internal_message=repr(e),
            ) from e

        waypoints = raw.get("waypoints") if isinstance(raw, Mapping) else None
        if not isinstance(waypoints, list) or raw.get("code", "Ok") != "Ok":
            raise SynthesisFailure("The local routing engine returned no nearby waypoints")
        return [dict(w) for w in waypoints]
