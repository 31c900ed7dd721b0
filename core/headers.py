"""Header construction for upstream requests and relay responses."""

from core.config import Config

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class HeaderBuilder:
    """Build headers for both sides of the relay."""

    def __init__(self, config: Config):
        self._config = config

    def build_upstream_headers(self, referer: str | None = None) -> dict[str, str]:
        """Browser-like request headers, plus Referer when supplied."""
        headers = {
            "User-Agent": self._config.upstream.user_agent,
            "Accept": "*/*",
        }
        if referer:
            headers["Referer"] = referer
        return headers

    def build_cors_headers(self) -> dict[str, str]:
        """Headers sent on every relay response, errors and preflight included."""
        return dict(CORS_HEADERS)

    def build_response_headers(self, *, playlist: bool) -> dict[str, str]:
        """CORS plus caching headers for a successful relay response."""
        headers = self.build_cors_headers()
        if playlist:
            headers["Cache-Control"] = self._config.response.playlist_cache_control
        else:
            headers["Cache-Control"] = self._config.response.cache_control
        return headers
