"""Credential helpers for logging outbound requests."""

from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


TOKEN_PARAMS = {"access_token"}


def mask_access_token(access_token: Optional[str]) -> str:
    """
    Mask an access token for logging purposes.

    Example: pk.eyJ1IjoiZXhhbXBsZSJ9.abc -> pk.eyJ1****
    """
    if not access_token or len(access_token) < 12:
        return "****"

    # Show prefix and first 4 chars, mask the rest
    if "." in access_token:
        prefix, token = access_token.split(".", 1)
        return f"{prefix}.{token[:4]}{'*' * 4}"

    return f"{access_token[:8]}{'*' * 4}"


def mask_url_token(url: str) -> str:
    """Return the URL with any access_token query parameter masked."""
    parts = urlsplit(url)
    if not parts.query:
        return url

    query = [
        (key, mask_access_token(value) if key in TOKEN_PARAMS else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="*;,")))
