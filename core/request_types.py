"""Shared request data types."""

from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit


@dataclass(frozen=True)
class ProxyRequest:
    """A validated inbound relay request."""

    target_url: str
    referer: str | None = None


@dataclass(frozen=True)
class UpstreamResponse:
    """A fully read upstream response."""

    status_code: int
    content_type: str | None
    body: bytes


@dataclass(frozen=True)
class RewriteContext:
    """Reference frames used to resolve playlist entries."""

    origin: str
    base_url: str
    referer: str | None = None

    @classmethod
    def from_request(cls, request: ProxyRequest) -> "RewriteContext":
        """Derive origin and base directory from the target URL.

        Query string and fragment are dropped before the path is truncated
        to its last ``/``.
        """
        parts = urlsplit(request.target_url)
        path = parts.path or "/"
        base_path = path[: path.rfind("/") + 1]
        return cls(
            origin=f"{parts.scheme}://{parts.netloc}",
            base_url=urlunsplit((parts.scheme, parts.netloc, base_path, "", "")),
            referer=request.referer,
        )
