"""Shared logging utilities."""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "relay.log"


def write_cli_log(
    level: str,
    message: str,
    *,
    log_file: Path | None = None,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    log_file = log_file or CLI_LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items() if v is not None)
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with log_file.open("a") as f:
        f.write(line)


def clear_logs(log_file: Path | None = None) -> None:
    """Remove the previous run's log file."""
    log_file = log_file or CLI_LOG_FILE
    log_file.unlink(missing_ok=True)


def mask_referer(referer: str | None) -> str | None:
    """Keep only scheme and host of a referer for log output."""
    if not referer:
        return None
    parts = urlsplit(referer)
    if parts.scheme and parts.netloc:
        return f"{parts.scheme}://{parts.netloc}/..."
    return _mask(referer)


def shorten_url(url: str, limit: int = 80) -> str:
    """Truncate a URL for display, keeping its host and the end of its path."""
    if len(url) <= limit:
        return url
    parts = urlsplit(url)
    head = f"{parts.scheme}://{parts.netloc}" if parts.netloc else ""
    tail_len = max(limit - len(head) - 3, 10)
    return f"{head}...{parts.path[-tail_len:]}"


def _mask(value: str) -> str:
    if len(value) <= 10:
        return "***"
    return value[:6] + "..." + value[-4:]
