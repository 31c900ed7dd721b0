"""HLS playlist rewriting.

Every reference inside a playlist (bare segment/variant lines and quoted
``URI="..."`` attributes of directive lines) is resolved against the playlist's
own URL and replaced with a URL pointing back at the relay endpoint. All other
bytes of the playlist are kept as they are.
"""

import re
from urllib.parse import parse_qs, quote, urljoin, urlsplit

from core.exceptions import RewriteSkipped
from core.request_types import RewriteContext

DEFAULT_ENDPOINT = "/api/stream-proxy"

DIRECTIVE_MARKER = "#"
BYTE_ORDER_MARK = "\ufeff"

URI_ATTRIBUTE_PATTERN = re.compile(r'(?<![A-Za-z0-9-])URI="([^"]+)"')
ABSOLUTE_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
# Any other explicit scheme (data:, skd:, ...) cannot be fetched through the relay
OTHER_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


def resolve_reference(reference: str, base_url: str, origin: str) -> str:
    """Resolve a playlist reference to an absolute URL.

    Args:
        reference: Raw reference as written in the playlist.
        base_url: Directory of the playlist URL, query stripped, ending in ``/``.
        origin: ``scheme://host[:port]`` of the playlist URL.

    Returns:
        Absolute URL of the referenced resource.
    """
    if ABSOLUTE_URL_PATTERN.match(reference):
        return reference
    if reference.startswith("//"):
        return f"{urlsplit(origin).scheme}:{reference}"
    if reference.startswith("/"):
        return origin + reference
    return urljoin(base_url, reference)


def build_relay_url(
    resolved_url: str,
    referer: str | None = None,
    *,
    endpoint: str = DEFAULT_ENDPOINT,
) -> str:
    """Wrap an absolute URL in a relay endpoint URL."""
    relay_url = f"{endpoint}?url={quote(resolved_url, safe='')}"
    if referer:
        relay_url += f"&referer={quote(referer, safe='')}"
    return relay_url


def is_relay_url(reference: str, endpoint: str = DEFAULT_ENDPOINT) -> bool:
    """Check whether a reference is a relay URL as emitted by ``build_relay_url``.

    Only host-less references qualify; an absolute URL on any host, even with
    the same path, belongs to someone else and is relayed like any other.
    """
    parts = urlsplit(reference)
    if parts.scheme or parts.netloc:
        return False
    return parts.path == endpoint and "url" in parse_qs(parts.query)


def rewrite_reference(
    reference: str,
    base_url: str,
    origin: str,
    referer: str | None = None,
    *,
    endpoint: str = DEFAULT_ENDPOINT,
) -> str:
    """Return the relay URL for a single reference (or the reference itself)."""
    if is_relay_url(reference, endpoint):
        return reference
    if not ABSOLUTE_URL_PATTERN.match(reference) and OTHER_SCHEME_PATTERN.match(reference):
        return reference
    resolved = resolve_reference(reference, base_url, origin)
    return build_relay_url(resolved, referer, endpoint=endpoint)


def rewrite_playlist(
    playlist_text: str,
    base_url: str,
    origin: str,
    referer: str | None = None,
    *,
    endpoint: str = DEFAULT_ENDPOINT,
) -> str:
    """Rewrite every reference in an HLS playlist to go through the relay.

    Args:
        playlist_text: Decoded playlist body.
        base_url: Directory of the playlist URL, query stripped, ending in ``/``.
        origin: ``scheme://host[:port]`` of the playlist URL.
        referer: Referer to propagate to the follow-up fetches, if any.
        endpoint: Path of the relay endpoint.

    Returns:
        The playlist with references rewritten and every other byte unchanged.
    """
    def rewrite(reference: str) -> str:
        return rewrite_reference(reference, base_url, origin, referer, endpoint=endpoint)

    bom = ""
    if playlist_text.startswith(BYTE_ORDER_MARK):
        bom, playlist_text = BYTE_ORDER_MARK, playlist_text[1:]

    lines = playlist_text.split("\n")
    return bom + "\n".join(_rewrite_line(line, rewrite) for line in lines)


def _rewrite_line(line: str, rewrite) -> str:
    """Rewrite one playlist line; ``\\r`` line endings are preserved."""
    ending = ""
    if line.endswith("\r"):
        line, ending = line[:-1], "\r"

    if not line.strip():
        return line + ending

    if line.lstrip().startswith(DIRECTIVE_MARKER):
        if 'URI="' in line:
            line = URI_ATTRIBUTE_PATTERN.sub(
                lambda match: f'URI="{rewrite(match.group(1))}"', line
            )
        return line + ending

    return rewrite(line.strip()) + ending


class PlaylistRewriter:
    """Rewrite playlists for a fixed relay endpoint."""

    def __init__(self, endpoint: str = DEFAULT_ENDPOINT):
        self.endpoint = endpoint

    def rewrite(self, playlist_text: str, context: RewriteContext) -> str:
        """Rewrite ``playlist_text`` fetched under ``context``."""
        return rewrite_playlist(
            playlist_text,
            context.base_url,
            context.origin,
            context.referer,
            endpoint=self.endpoint,
        )

    def decode(self, body: bytes) -> str:
        """Decode a playlist body, raising RewriteSkipped if it is not UTF-8."""
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RewriteSkipped(str(e)) from e
