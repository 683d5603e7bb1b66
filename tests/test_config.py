"""Tests for settings, credential masking, request logging and request options."""

import logging
from urllib.parse import parse_qs

import httpx
import pytest
from pydantic import ValidationError

from directions.config import Settings
from directions.core.security import mask_access_token, mask_url_token
from directions.middleware.request_logging import RequestLoggingHooks
from directions.schemas.options import MatchOptions, RouteOptions, Waypoint


# =============================================================================
# Settings
# =============================================================================

class TestSettings:
    """Tests for environment-driven configuration."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("MAPBOX_ACCESS_TOKEN", "pk.fromenv.token")
        monkeypatch.setenv("DIRECTIONS_HOST", "directions.example.com")
        monkeypatch.setenv("LOCAL_ENGINE_PATH", "/data/sf.osrm")

        settings = Settings(_env_file=None)

        assert settings.mapbox_access_token == "pk.fromenv.token"
        assert settings.api_endpoint() == "https://directions.example.com"
        assert settings.local_engine_path == "/data/sf.osrm"

    def test_blank_engine_path_is_unset(self):
        assert Settings(_env_file=None, local_engine_path="  ").local_engine_path is None

    def test_scheme_normalized(self):
        assert Settings(_env_file=None, directions_scheme=" HTTP ").directions_scheme == "http"

    def test_unsupported_scheme(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, directions_scheme="ftp")

    def test_validate_client_settings(self):
        settings = Settings(
            _env_file=None, mapbox_access_token="", directions_scheme="http", request_timeout_seconds=0
        )

        problems = settings.validate_client_settings()

        assert len(problems) == 3
        assert any("MAPBOX_ACCESS_TOKEN" in p for p in problems)

    def test_valid_settings_have_no_problems(self, settings):
        assert settings.validate_client_settings() == []


# =============================================================================
# Credential masking
# =============================================================================

class TestTokenMasking:
    """Access tokens never appear in logs."""

    def test_mask_public_token(self):
        assert mask_access_token("pk.eyJ1IjoidGVzdCJ9.signature") == "pk.eyJ1****"

    def test_mask_plain_token(self):
        assert mask_access_token("abcdefghijklmnop") == "abcdefgh****"

    def test_mask_short_or_missing(self):
        assert mask_access_token("short") == "****"
        assert mask_access_token(None) == "****"

    def test_mask_url_token(self):
        url = "https://api.mapbox.com/directions/v5/mapbox/driving/1,2;3,4.json?steps=true&access_token=pk.eyJ1IjoidGVzdCJ9.sig"

        masked = mask_url_token(url)

        assert "eyJ1IjoidGVzdCJ9.sig" not in masked
        assert parse_qs(masked.split("?", 1)[1])["access_token"] == ["pk.eyJ1****"]
        assert "steps=true" in masked

    def test_url_without_query(self):
        assert mask_url_token("https://api.mapbox.com/") == "https://api.mapbox.com/"


class TestRequestLoggingHooks:
    """Tests for outbound request logging."""

    @pytest.mark.asyncio
    async def test_logs_masked_request_and_status(self, caplog):
        hooks = RequestLoggingHooks(enabled=True)
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(404, json={"code": "ProfileNotFound"})),
            event_hooks=hooks.as_event_hooks(),
        )

        with caplog.at_level(logging.INFO, logger="directions.requests"):
            await client.get("https://api.mapbox.com/directions/v5/x.json?access_token=pk.eyJ1IjoidGVzdCJ9.sig")
        await client.aclose()

        messages = [r.getMessage() for r in caplog.records if r.name == "directions.requests"]
        assert any("--> GET" in m and "pk.eyJ1****" in m for m in messages)
        assert not any("eyJ1IjoidGVzdCJ9.sig" in m for m in messages)
        warning = next(r for r in caplog.records if "<-- 404" in r.getMessage())
        assert warning.levelno == logging.WARNING

    @pytest.mark.asyncio
    async def test_disabled_hooks_log_nothing(self, caplog):
        hooks = RequestLoggingHooks(enabled=False)
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200)),
            event_hooks=hooks.as_event_hooks(),
        )

        with caplog.at_level(logging.INFO, logger="directions.requests"):
            await client.get("https://api.mapbox.com/")
        await client.aclose()

        assert not [r for r in caplog.records if r.name == "directions.requests"]


# =============================================================================
# Request options
# =============================================================================

class TestRouteOptions:
    """Tests for query parameters derived from options."""

    @pytest.fixture
    def waypoints(self):
        return [
            Waypoint(coordinate={"latitude": 37.7955, "longitude": -122.3937}, heading=90, heading_accuracy=45),
            Waypoint(coordinate={"latitude": 37.7880, "longitude": -122.4075}, coordinate_accuracy=25),
        ]

    def test_requires_two_waypoints(self):
        with pytest.raises(ValidationError):
            RouteOptions(waypoints=[Waypoint.at(37.79, -122.39)])

    def test_current_params(self, waypoints):
        options = RouteOptions(
            waypoints=waypoints,
            locale="en-US",
            include_spoken_instructions=True,
            include_visual_instructions=True,
            include_alternative_routes=True,
        )

        params = dict(options.params)

        assert params["geometries"] == "polyline"
        assert params["overview"] == "full"
        assert params["steps"] == "true"
        assert params["language"] == "en-US"
        assert params["voice_instructions"] == "true"
        assert params["banner_instructions"] == "true"
        assert params["alternatives"] == "true"
        assert params["continue_straight"] == "true"
        assert params["bearings"] == "90,45;"
        assert params["radiuses"] == "unlimited;25"

    def test_legacy_params(self, waypoints):
        options = RouteOptions(waypoints=waypoints, api_version="v4")

        params = dict(options.params)

        assert params["geometry"] == "polyline"
        assert params["instructions"] == "text"
        assert "continue_straight" not in params

    def test_blank_locale_dropped(self, waypoints):
        assert RouteOptions(waypoints=waypoints, locale="  ").locale is None


class TestMatchOptions:
    """Tests for match request bodies."""

    def test_timestamps_must_be_chronological(self):
        with pytest.raises(ValidationError, match="chronological"):
            MatchOptions(waypoints=[Waypoint.at(37.79, -122.39), Waypoint.at(37.78, -122.40)],
                         timestamps=[1010, 1000])

    def test_body(self):
        options = MatchOptions(
            waypoints=[Waypoint.at(37.79, -122.39), Waypoint.at(37.78, -122.40), Waypoint.at(37.77, -122.41)],
            resample_trace=True,
            waypoint_indices=[0, 2],
        )

        body = parse_qs(options.encoded_body())

        assert body["coordinates"] == ["-122.390000,37.790000;-122.400000,37.780000;-122.410000,37.770000"]
        assert body["tidy"] == ["true"]
        assert body["waypoints"] == ["0;2"]
        assert options.params == []
        assert options.http_method == "POST"
