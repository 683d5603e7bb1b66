"""Outbound request logging for debugging and audit."""

import logging
import time
import uuid
from typing import Optional

import httpx

from directions.config import settings
from directions.core.security import mask_url_token


# Configure logger
logger = logging.getLogger("directions.requests")


class RequestLoggingHooks:
    """
    Logs every outgoing request and the matching response.

    Installed as httpx event hooks:

        httpx.AsyncClient(event_hooks=RequestLoggingHooks().as_event_hooks())

    Features:
    - Short request ID for correlating the two log lines
    - Request duration tracking
    - Access token masking in logged URLs
    """

    START_KEY = "directions.start_time"
    ID_KEY = "directions.request_id"

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = settings.log_requests if enabled is None else enabled

    def as_event_hooks(self) -> dict:
        return {"request": [self.on_request], "response": [self.on_response]}

    async def on_request(self, request: httpx.Request) -> None:
        if not self.enabled:
            return

        request_id = str(uuid.uuid4())[:8]
        request.extensions[self.ID_KEY] = request_id
        request.extensions[self.START_KEY] = time.time()

        logger.info(f"[{request_id}] --> {request.method} {mask_url_token(str(request.url))}")

    async def on_response(self, response: httpx.Response) -> None:
        if not self.enabled:
            return

        request = response.request
        request_id = request.extensions.get(self.ID_KEY, "--------")
        start_time = request.extensions.get(self.START_KEY)
        duration_ms = (time.time() - start_time) * 1000 if start_time else 0.0

        log_message = (
            f"[{request_id}] <-- {response.status_code} "
            f"{request.method} {request.url.path} "
            f"({duration_ms:.2f}ms)"
        )

        # Choose log level based on status code
        if response.status_code >= 500:
            logger.error(log_message)
        elif response.status_code >= 400:
            logger.warning(log_message)
        else:
            logger.info(log_message)


def setup_logging():
    """Configure logging for the client."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Set specific logger levels
    logging.getLogger("directions.requests").setLevel(log_level)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
