"""Shared protocol definitions."""

from typing import Protocol


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard, ConsoleLogger)."""

    def log_request(self, target_url: str, referer: str | None) -> None: ...
    def log_relay(
        self,
        target_url: str,
        status: int,
        content_type: str | None,
        *,
        playlist: bool,
    ) -> None: ...
    def log_skip(self, target_url: str, reason: str) -> None: ...
    def log_error(self, route: str, status: int, message: str) -> None: ...
