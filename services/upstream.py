"""HTTP fetching of upstream (origin) resources."""

import httpx

from core.exceptions import UpstreamHttpError, UpstreamTimeoutError, UpstreamUnreachable
from core.headers import HeaderBuilder
from core.request_types import ProxyRequest, UpstreamResponse

# Cap on how much of an upstream error body is kept for logging
MAX_ERROR_BODY = 64 * 1024


class UpstreamClient:
    """Fetch origin resources with injected headers, following redirects."""

    def __init__(self, client: httpx.AsyncClient, header_builder: HeaderBuilder) -> None:
        self._client = client
        self._headers = header_builder

    async def open(self, request: ProxyRequest) -> httpx.Response:
        """Send the GET and return the response with its body still unread.

        Raises:
            UpstreamHttpError: The origin answered with a non-2xx status.
            UpstreamUnreachable: The origin could not be reached in time.
        """
        req = self._client.build_request(
            "GET",
            request.target_url,
            headers=self._headers.build_upstream_headers(request.referer),
        )
        try:
            response = await self._client.send(req, stream=True, follow_redirects=True)
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(
                f"Upstream timeout: {_describe(e)}", target_url=request.target_url
            ) from e
        except httpx.RequestError as e:
            raise UpstreamUnreachable(
                f"Upstream connection error: {_describe(e)}",
                target_url=request.target_url,
            ) from e

        if not response.is_success:
            error = await self.read(response)
            raise UpstreamHttpError(
                response.status_code,
                target_url=request.target_url,
                body=error.body[:MAX_ERROR_BODY],
            )

        return response

    async def read(self, response: httpx.Response) -> UpstreamResponse:
        """Read a streaming response to the end and close it."""
        try:
            body = await response.aread()
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(
                f"Upstream timeout: {_describe(e)}", target_url=str(response.url)
            ) from e
        except httpx.RequestError as e:
            raise UpstreamUnreachable(
                f"Upstream read error: {_describe(e)}", target_url=str(response.url)
            ) from e
        finally:
            await response.aclose()

        return UpstreamResponse(
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
            body=body,
        )

    async def fetch(self, request: ProxyRequest) -> UpstreamResponse:
        """Fetch ``request`` and return the fully read response."""
        response = await self.open(request)
        return await self.read(response)


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__
