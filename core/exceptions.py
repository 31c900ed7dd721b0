"""Custom exception hierarchy for the stream relay."""


class RelayError(Exception):
    """Base exception for all relay errors."""

    status_code: int = 500


class ConfigurationError(RelayError):
    """Raised when configuration is missing or invalid."""


class RequestError(RelayError):
    """Raised when the inbound request cannot be served as given."""

    status_code = 400


class MissingParameter(RequestError):
    """The ``url`` query parameter is absent, empty or repeated."""


class InvalidUrl(RequestError):
    """The ``url`` query parameter is not an absolute http(s) URL."""


class UpstreamError(RelayError):
    """Raised when fetching from the origin fails.

    Attributes:
        message: Error message
        status_code: HTTP status code to answer with
        target_url: URL the relay tried to fetch
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        target_url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.target_url = target_url


class UpstreamHttpError(UpstreamError):
    """Raised when the origin answers with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        target_url: str | None = None,
        body: bytes = b"",
    ) -> None:
        super().__init__(
            f"Upstream responded with {status_code}",
            status_code=status_code,
            target_url=target_url,
        )
        self.body = body


class UpstreamUnreachable(UpstreamError):
    """Raised when the origin cannot be reached (DNS, connect, TLS, read)."""

    def __init__(self, message: str, target_url: str | None = None) -> None:
        super().__init__(message, status_code=500, target_url=target_url)


class UpstreamTimeoutError(UpstreamUnreachable):
    """Raised when an upstream request times out."""


class RewriteSkipped(Exception):
    """Playlist body could not be decoded as text; relay it unchanged."""
