"""
Directions client: builds requests, classifies failures and decodes route graphs.

Usage:

    async with Directions(access_token="pk.xxx") as directions:
        result = await directions.calculate(RouteOptions(waypoints=[a, b]))

When a local engine path is configured, every route call is answered by the
local engine instead of the remote response.
"""

import asyncio
import logging
import platform
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import httpx

from directions import __version__
from directions.config import Settings, get_settings
from directions.core.exceptions import DirectionsError, MalformedResponse, SynthesisFailure
from directions.middleware.request_logging import RequestLoggingHooks
from directions.schemas.options import DirectionsOptions, MatchOptions, RouteOptions, Waypoint
from directions.schemas.routing import DirectionRoute, DirectionsResult, Match, MatchResult, Route
from directions.services.routing.builder import (
    decode_match_response,
    decode_route_response,
    decode_routes_matching,
)
from directions.services.routing.errors import informative_error
from directions.services.routing.instructions import InstructionFormatter
from directions.services.routing.local_engine import (
    LocalEngineAdapter,
    LocalOSRMEngine,
    LocalRoutingEngine,
)

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

RouteCompletionHandler = Callable[[Optional[List[Waypoint]], Optional[List[Route]], Optional[DirectionsError]], None]
MatchCompletionHandler = Callable[[Optional[List[Match]], Optional[DirectionsError]], None]


class FallbackConfiguration:
    """
    Local engine path and synthesis options, each written at most once.

    The first non-empty value supplied wins; later values are ignored.
    Safe to read and write from concurrent callers.
    """

    def __init__(self, local_engine_path: Optional[str] = None):
        self._lock = threading.Lock()
        self._local_engine_path: Optional[str] = None
        self._options: Optional[DirectionsOptions] = None
        if local_engine_path:
            self.configure(local_engine_path=local_engine_path)

    def configure(
        self,
        local_engine_path: Optional[str] = None,
        options: Optional[DirectionsOptions] = None,
    ) -> bool:
        """Record values not yet set. Returns True if the engine path was set by this call."""
        with self._lock:
            if self._options is None and options is not None:
                self._options = options
            if self._local_engine_path is None and local_engine_path:
                self._local_engine_path = local_engine_path
                logger.info(f"Local engine fallback configured with {local_engine_path}")
                return True
            if local_engine_path and local_engine_path != self._local_engine_path:
                logger.debug(f"Ignoring local engine path {local_engine_path}; already configured")
            return False

    @property
    def local_engine_path(self) -> Optional[str]:
        with self._lock:
            return self._local_engine_path

    @property
    def options(self) -> Optional[DirectionsOptions]:
        with self._lock:
            return self._options

    @property
    def is_configured(self) -> bool:
        return self.local_engine_path is not None


class DirectionsTask:
    """Handle to a submitted request. Cancelling it suppresses the completion handler."""

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

    def _start(self, coro) -> "DirectionsTask":
        self._task = asyncio.get_running_loop().create_task(coro)
        return self

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is not None:
            self._task.cancel()

    async def wait(self) -> None:
        """Wait until the request finished or was cancelled."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._cancelled:
                raise


class Directions:
    """
    Client for the directions and map matching APIs.

    Each call issues exactly one request and either returns a decoded result
    or raises a DirectionsError. There are no internal retries.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        host: Optional[str] = None,
        *,
        settings: Optional[Settings] = None,
        local_engine_path: Optional[str] = None,
        local_engine: Optional[LocalRoutingEngine] = None,
        formatter: Optional[InstructionFormatter] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()

        self.access_token = access_token or self.settings.mapbox_access_token
        if not self.access_token:
            raise ValueError("An access token is required (set MAPBOX_ACCESS_TOKEN)")

        if host:
            self.api_endpoint = f"{self.settings.directions_scheme}://{host}"
        else:
            self.api_endpoint = self.settings.api_endpoint()
        self.formatter = formatter or InstructionFormatter(version="v5")
        self.fallback = FallbackConfiguration(local_engine_path or self.settings.local_engine_path)

        self._local_engine = local_engine
        self._owns_local_engine = False
        self._engine_lock = threading.Lock()

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=self.settings.request_timeout_seconds,
            event_hooks=RequestLoggingHooks(enabled=self.settings.log_requests).as_event_hooks(),
        )

        for problem in self.settings.validate_client_settings():
            logger.debug(f"Settings: {problem}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Release the HTTP client and any local engine this object created."""
        if self._owns_client:
            await self._client.aclose()
        if self._owns_local_engine and isinstance(self._local_engine, LocalOSRMEngine):
            self._local_engine.close()

    async def __aenter__(self) -> "Directions":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def user_agent(self) -> str:
        """<app>/<version> directions/<version> <os>/<os-version> (<arch>)"""
        system = platform.system() or "Unknown"
        release = platform.release() or "0"
        machine = platform.machine() or "unknown"
        return (
            f"{self.settings.app_name}/{self.settings.app_version} "
            f"directions/{__version__} {system}/{release} ({machine})"
        )

    def url_for(self, options: DirectionsOptions) -> str:
        """Full request URL including the access token."""
        params = list(options.params) + [("access_token", self.access_token)]
        return f"{self.api_endpoint}/{options.path}?{urlencode(params, safe=',;')}"

    def _headers(self, options: DirectionsOptions) -> Dict[str, str]:
        headers = {"User-Agent": self.user_agent()}
        if options.http_method == "POST":
            headers["Content-Type"] = FORM_CONTENT_TYPE
        return headers

    # ------------------------------------------------------------------
    # Network round trip
    # ------------------------------------------------------------------

    async def _fetch(self, options: DirectionsOptions) -> Tuple[Optional[Dict[str, Any]], Optional[DirectionsError]]:
        """
        Issue one request. Returns (payload, None) on success or (None, error).

        A response is an error when the HTTP status is >= 400, when it has a
        code other than "Ok", or when it has a message but no code.
        """
        try:
            response = await self._client.request(
                options.http_method,
                self.url_for(options),
                headers=self._headers(options),
                content=options.encoded_body(),
            )
        except httpx.HTTPError as e:
            logger.warning(f"Directions request failed: {type(e).__name__}: {e}")
            return None, informative_error(None, None, underlying=e)

        payload, decode_error = self._parse_json(response)

        api_code = payload.get("code") if payload is not None else None
        has_error = (
            response.status_code >= 400
            or (api_code is not None and api_code != "Ok")
            or (api_code is None and payload is not None and "message" in payload)
        )
        if has_error:
            error = informative_error(payload, response.status_code, response.headers)
            logger.warning(f"Directions request rejected: HTTP {response.status_code} code={api_code}")
            return None, error

        if decode_error is not None:
            return None, decode_error
        return payload, None

    def _parse_json(self, response: httpx.Response) -> Tuple[Optional[Dict[str, Any]], Optional[DirectionsError]]:
        """JSON is only parsed when the response declares a JSON content type."""
        content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        if content_type != JSON_CONTENT_TYPE:
            return None, MalformedResponse(
                f"Expected a JSON response, got {content_type or 'no content type'}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            return None, MalformedResponse(f"Response body is not valid JSON: {e}")

        if not isinstance(payload, dict):
            return None, MalformedResponse("Response body is not a JSON object")
        return payload, None

    def _attach_metadata(self, routes: List[DirectionRoute], payload: Dict[str, Any]) -> None:
        identifier = payload.get("uuid") if isinstance(payload.get("uuid"), str) else None
        for route in routes:
            route.attach_metadata(
                access_token=self.access_token,
                api_endpoint=self.api_endpoint,
                route_identifier=identifier,
            )

    # ------------------------------------------------------------------
    # Local engine fallback
    # ------------------------------------------------------------------

    def _local_adapter(self) -> LocalEngineAdapter:
        with self._engine_lock:
            if self._local_engine is None:
                self._local_engine = LocalOSRMEngine(
                    dataset_path=self.fallback.local_engine_path,
                    base_url=self.settings.local_engine_url,
                    profile=self.settings.local_engine_profile,
                    timeout=self.settings.request_timeout_seconds,
                )
                self._owns_local_engine = True
            engine = self._local_engine

        first_options = self.fallback.options
        voice_locale = (first_options.locale if first_options else None) or self.settings.voice_locale
        return LocalEngineAdapter(engine, formatter=self.formatter, voice_locale=voice_locale)

    async def _calculate_locally(self, options: DirectionsOptions) -> DirectionsResult:
        """Route between the first two waypoints of options using the local engine."""
        adapter = self._local_adapter()
        local_options = options.model_copy(update={"waypoints": options.waypoints[:2], "api_version": "v5"})
        origin, destination = (w.coordinate for w in local_options.waypoints)

        try:
            # The engine call blocks; keep it off the event loop
            payload = await asyncio.to_thread(adapter.get_json, origin, destination)
            result = decode_route_response(payload, local_options)
        except (SynthesisFailure, MalformedResponse) as e:
            if self.settings.local_engine_suppress_errors:
                logger.warning(f"Local synthesis failed, returning no routes: {e.detail}")
                return DirectionsResult()
            if isinstance(e, SynthesisFailure):
                raise
            raise SynthesisFailure(
                "The local engine produced a payload that could not be decoded",
                internal_message=e.detail,
            ) from e

        self._attach_metadata(result.routes, payload)
        logger.info(f"Local engine produced {len(result.routes)} route(s)")
        return result

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def calculate(self, options: RouteOptions, local_engine_path: Optional[str] = None) -> DirectionsResult:
        """
        Calculate routes visiting the waypoints of options.

        Args:
            options: Route request options
            local_engine_path: Dataset of a local engine; only the first path
                ever supplied to this object takes effect

        Returns:
            DirectionsResult with conflated waypoints and routes

        Raises:
            TransportError, ApplicationError, MalformedResponse: remote failures,
                only when no local engine is configured
            SynthesisFailure: local engine could not produce routes
        """
        self.fallback.configure(local_engine_path=local_engine_path, options=options)

        payload, error = await self._fetch(options)
        if self.fallback.is_configured:
            if error is not None:
                logger.info(f"Remote failure superseded by local engine: {error.detail}")
            return await self._calculate_locally(options)
        if error is not None:
            raise error from error.underlying

        result = decode_route_response(payload, options)
        self._attach_metadata(result.routes, payload)
        logger.info(f"Received {len(result.routes)} route(s) for {len(options.waypoints)} waypoints")
        return result

    async def calculate_matches(self, options: MatchOptions) -> MatchResult:
        """Match a trace of locations to the road network. Never uses the local engine."""
        payload, error = await self._fetch(options)
        if error is not None:
            raise error from error.underlying

        result = decode_match_response(payload, options)
        self._attach_metadata(result.matches, payload)
        logger.info(f"Received {len(result.matches)} match(es) for {len(options.waypoints)} trace points")
        return result

    async def calculate_routes_matching(
        self, options: MatchOptions, local_engine_path: Optional[str] = None
    ) -> DirectionsResult:
        """Match a trace and return the matchings as routes."""
        self.fallback.configure(local_engine_path=local_engine_path, options=options)

        payload, error = await self._fetch(options)
        if self.fallback.is_configured:
            if error is not None:
                logger.info(f"Remote failure superseded by local engine: {error.detail}")
            return await self._calculate_locally(options)
        if error is not None:
            raise error from error.underlying

        result = decode_routes_matching(payload, options)
        self._attach_metadata(result.routes, payload)
        return result

    # ------------------------------------------------------------------
    # Callback surface
    # ------------------------------------------------------------------

    def submit(
        self,
        options: RouteOptions,
        completion_handler: RouteCompletionHandler,
        local_engine_path: Optional[str] = None,
    ) -> DirectionsTask:
        """
        Start calculate() on the running event loop.

        completion_handler(waypoints, routes, error) is called exactly once on
        the loop, unless the returned task is cancelled first.
        """
        handle = DirectionsTask()

        async def run() -> None:
            try:
                result = await self.calculate(options, local_engine_path=local_engine_path)
            except DirectionsError as e:
                if not handle.cancelled:
                    completion_handler(None, None, e)
                return
            if not handle.cancelled:
                completion_handler(result.waypoints, result.routes, None)

        return handle._start(run())

    def submit_matches(self, options: MatchOptions, completion_handler: MatchCompletionHandler) -> DirectionsTask:
        """Start calculate_matches(); completion_handler(matches, error)."""
        handle = DirectionsTask()

        async def run() -> None:
            try:
                result = await self.calculate_matches(options)
            except DirectionsError as e:
                if not handle.cancelled:
                    completion_handler(None, e)
                return
            if not handle.cancelled:
                completion_handler(result.matches, None)

        return handle._start(run())
