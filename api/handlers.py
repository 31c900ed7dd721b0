"""FastAPI route handlers."""

from fastapi import Request, Response

from core.exceptions import RelayError
from core.protocols import RequestLogger
from core.validation import parse_proxy_request


async def handle_stream_proxy(request: Request, logger: RequestLogger) -> Response:
    """Handle GET on the relay endpoint."""
    emitter = request.app.state.emitter
    target = request.query_params.get("url") or "-"

    try:
        proxy_request = parse_proxy_request(request.query_params)
        return await request.app.state.relay_service.relay(proxy_request)
    except RelayError as e:
        logger.log_error(target, e.status_code, str(e))
        return emitter.error(e)
    except Exception as e:
        logger.log_error(target, 500, f"{type(e).__name__}: {e}")
        return emitter.error_response(500, {"error": "Internal server error"})


async def handle_preflight(request: Request) -> Response:
    """Handle OPTIONS on the relay endpoint."""
    return request.app.state.emitter.preflight()
