"""Playlist vs. binary media classification."""

from urllib.parse import urlsplit

# application/vnd.apple.mpegurl, audio/mpegurl and the x-mpegurl variants
PLAYLIST_MEDIA_TYPES = ("application/vnd.apple.mpegurl", "audio/mpegurl", "x-mpegurl")
PLAYLIST_EXTENSION = ".m3u8"


class ContentClassifier:
    """Decide whether an upstream body is an HLS playlist."""

    def is_playlist(self, content_type: str | None, target_url: str) -> bool:
        """A playlist content type wins; otherwise the URL path suffix decides.

        Origins often omit the content type of a playlist or set it to
        something unrelated (``text/html``, ``video/mp2t``), so any
        non-playlist type still falls back to the ``.m3u8`` suffix.
        """
        media_type = self._media_type(content_type)
        if any(marker in media_type for marker in PLAYLIST_MEDIA_TYPES):
            return True
        return self._has_playlist_extension(target_url)

    @staticmethod
    def _media_type(content_type: str | None) -> str:
        if not content_type:
            return ""
        return content_type.split(";", 1)[0].strip().lower()

    @staticmethod
    def _has_playlist_extension(target_url: str) -> bool:
        return urlsplit(target_url).path.lower().endswith(PLAYLIST_EXTENSION)
