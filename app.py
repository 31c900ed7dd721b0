"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from api.handlers import handle_preflight, handle_stream_proxy
from core.classifier import ContentClassifier
from core.config import Config
from core.exceptions import ConfigurationError
from core.headers import HeaderBuilder
from core.playlist import PlaylistRewriter
from core.protocols import RequestLogger
from services.emitter import ResponseEmitter
from services.relay_service import RelayService
from services.upstream import UpstreamClient


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``transport`` replaces the network transport of the upstream client
    (used by tests to stand in for the origin).
    """
    if not config.relay.endpoint.startswith("/"):
        raise ConfigurationError(f"relay.endpoint must start with '/': {config.relay.endpoint!r}")

    header_builder = HeaderBuilder(config)
    emitter = ResponseEmitter(header_builder)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        upstream_settings = config.upstream
        limits = httpx.Limits(
            max_connections=upstream_settings.max_connections,
            max_keepalive_connections=upstream_settings.max_keepalive_connections,
        )
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                upstream_settings.timeout, connect=upstream_settings.connect_timeout
            ),
            limits=limits,
            follow_redirects=True,
            max_redirects=upstream_settings.max_redirects,
            transport=transport,
        )
        app.state.emitter = emitter
        app.state.relay_service = RelayService(
            upstream=UpstreamClient(client, header_builder),
            logger=logger,
            classifier=ContentClassifier(),
            rewriter=PlaylistRewriter(config.relay.endpoint),
            emitter=emitter,
        )
        try:
            yield
        finally:
            await client.aclose()

    app = FastAPI(title="HLS Stream Relay", version="0.1.0", lifespan=lifespan)

    @app.get(config.relay.endpoint)
    async def stream_proxy(request: Request):
        return await handle_stream_proxy(request, logger)

    @app.options(config.relay.endpoint)
    async def stream_proxy_preflight(request: Request):
        return await handle_preflight(request)

    return app
