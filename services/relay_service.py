"""Relay orchestration: fetch, classify, rewrite, emit."""

from fastapi import Response

from core.classifier import ContentClassifier
from core.exceptions import RewriteSkipped
from core.playlist import PlaylistRewriter
from core.protocols import RequestLogger
from core.request_types import ProxyRequest, RewriteContext
from services.emitter import ResponseEmitter
from services.upstream import UpstreamClient


class RelayService:
    """Serve one relay request end to end."""

    def __init__(
        self,
        upstream: UpstreamClient,
        logger: RequestLogger,
        classifier: ContentClassifier,
        rewriter: PlaylistRewriter,
        emitter: ResponseEmitter,
    ) -> None:
        self._upstream = upstream
        self._logger = logger
        self._classifier = classifier
        self._rewriter = rewriter
        self._emitter = emitter

    async def relay(self, request: ProxyRequest) -> Response:
        """Fetch ``request.target_url`` and return it, rewritten if it is a playlist.

        Raises:
            UpstreamHttpError: The origin answered with a non-2xx status.
            UpstreamUnreachable: The origin could not be reached in time.
        """
        self._logger.log_request(request.target_url, request.referer)
        response = await self._upstream.open(request)
        content_type = response.headers.get("content-type")

        try:
            is_playlist = self._classifier.is_playlist(content_type, request.target_url)
        except Exception:
            await response.aclose()
            raise

        if not is_playlist:
            self._logger.log_relay(
                request.target_url, response.status_code, content_type, playlist=False
            )
            return self._emitter.stream_binary(response)

        fetched = await self._upstream.read(response)
        try:
            text = self._rewriter.decode(fetched.body)
        except RewriteSkipped as e:
            self._logger.log_skip(request.target_url, str(e))
            return self._emitter.emit_bytes(fetched.body, fetched.content_type)

        rewritten = self._rewriter.rewrite(text, RewriteContext.from_request(request))
        self._logger.log_relay(
            request.target_url, fetched.status_code, fetched.content_type, playlist=True
        )
        return self._emitter.emit_playlist(rewritten, fetched.content_type)
