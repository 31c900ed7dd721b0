"""Relay response construction."""

import json

import httpx
from fastapi import Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from core.exceptions import RelayError, UpstreamHttpError
from core.headers import HeaderBuilder

PLAYLIST_MEDIA_TYPE = "application/vnd.apple.mpegurl"


class ResponseEmitter:
    """Write relay bodies back to the caller with CORS and caching headers."""

    def __init__(self, header_builder: HeaderBuilder) -> None:
        self._headers = header_builder

    def emit_playlist(self, text: str, content_type: str | None) -> Response:
        """Return a rewritten playlist."""
        return Response(
            content=text.encode("utf-8"),
            status_code=200,
            headers=self._headers_with_type(content_type or PLAYLIST_MEDIA_TYPE, playlist=True),
        )

    def emit_bytes(self, body: bytes, content_type: str | None) -> Response:
        """Return an already buffered body unchanged."""
        return Response(
            content=body,
            status_code=200,
            headers=self._headers_with_type(content_type, playlist=False),
        )

    def stream_binary(self, response: httpx.Response) -> StreamingResponse:
        """Relay a binary upstream body chunk by chunk."""
        return StreamingResponse(
            response.aiter_bytes(),
            status_code=200,
            headers=self._headers_with_type(response.headers.get("content-type"), playlist=False),
            background=BackgroundTask(self._cleanup_streaming, response),
        )

    def preflight(self) -> Response:
        """Answer a CORS preflight request."""
        return Response(status_code=204, headers=self._headers.build_cors_headers())

    def error(self, exc: RelayError) -> Response:
        """Return a relay error as JSON."""
        payload: dict[str, object] = {"error": str(exc)}
        if isinstance(exc, UpstreamHttpError):
            payload["status"] = exc.status_code
        return self.error_response(exc.status_code, payload)

    def error_response(self, status_code: int, payload: dict[str, object]) -> Response:
        return Response(
            content=json.dumps(payload),
            status_code=status_code,
            media_type="application/json",
            headers=self._headers.build_cors_headers(),
        )

    def _headers_with_type(self, content_type: str | None, *, playlist: bool) -> dict[str, str]:
        """Response headers carrying the upstream content type verbatim.

        Passed as a header rather than ``media_type`` so starlette does not
        append a charset to ``text/*`` types.
        """
        headers = self._headers.build_response_headers(playlist=playlist)
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    async def _cleanup_streaming(self, response: httpx.Response) -> None:
        """Clean up streaming resources."""
        await response.aclose()
