"""Validation of inbound relay parameters."""

from typing import Protocol

import httpx

from core.exceptions import InvalidUrl, MissingParameter
from core.request_types import ProxyRequest

ALLOWED_SCHEMES = ("http", "https")


class QueryParams(Protocol):
    """Multi-valued query mapping (starlette's ``QueryParams``)."""

    def getlist(self, key: str) -> list[str]: ...


def parse_target_url(raw: str | None) -> str:
    """Return ``raw`` if it is an absolute http(s) URL with a host."""
    if not raw or not isinstance(raw, str):
        raise MissingParameter("Missing or invalid 'url' parameter")

    try:
        url = httpx.URL(raw)
    except (httpx.InvalidURL, ValueError, TypeError) as e:
        raise InvalidUrl(f"Invalid URL format: {e}") from e

    if url.scheme not in ALLOWED_SCHEMES or not url.host:
        raise InvalidUrl("Invalid URL format")
    return raw


def parse_proxy_request(query_params: QueryParams) -> ProxyRequest:
    """Build a ProxyRequest from the ``url`` and ``referer`` query parameters.

    A repeated ``url`` is rejected like a missing one; a repeated or empty
    ``referer`` is ignored.
    """
    urls = query_params.getlist("url")
    if len(urls) != 1:
        raise MissingParameter("Missing or invalid 'url' parameter")
    target_url = parse_target_url(urls[0])

    referers = query_params.getlist("referer")
    referer = referers[0] if len(referers) == 1 and referers[0] else None
    return ProxyRequest(target_url=target_url, referer=referer)
