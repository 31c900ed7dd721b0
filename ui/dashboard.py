"""Real-time CLI dashboard for relay monitoring."""

from datetime import datetime
from threading import Lock

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from ui.log_utils import mask_referer, shorten_url, write_cli_log

console = Console()


class RelayInfo:
    """Info about a single relayed resource."""

    def __init__(self, kind: str, target_url: str, status: int, timestamp: datetime):
        self.kind = kind
        self.target_url = shorten_url(target_url, 70)
        self.status = status
        self.timestamp = timestamp


class Dashboard:
    """Real-time dashboard showing relayed playlists, media and errors."""

    def __init__(self, config: Config):
        self.config = config
        self._lock = Lock()
        self._recent: list[RelayInfo] = []
        self._max_recent = 10
        self._counts = {"playlist": 0, "media": 0, "skipped": 0, "error": 0}
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_request(self, target_url: str, referer: str | None) -> None:
        write_cli_log("REQUEST", target_url, referer=mask_referer(referer))

    def log_relay(
        self,
        target_url: str,
        status: int,
        content_type: str | None,
        *,
        playlist: bool,
    ) -> None:
        """Log a relayed playlist or media response."""
        kind = "playlist" if playlist else "media"
        with self._lock:
            self._counts[kind] += 1
            self._recent.insert(0, RelayInfo(kind, target_url, status, datetime.now()))
            self._recent = self._recent[: self._max_recent]
            self._refresh()
        write_cli_log(kind.upper(), target_url, status=status, content_type=content_type)

    def log_skip(self, target_url: str, reason: str) -> None:
        """Log a playlist relayed without rewriting."""
        with self._lock:
            self._counts["skipped"] += 1
            self._recent.insert(0, RelayInfo("skipped", target_url, 200, datetime.now()))
            self._recent = self._recent[: self._max_recent]
            self._refresh()
        write_cli_log("SKIPPED", target_url, reason=reason[:200])

    def log_error(self, route: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            self._counts["error"] += 1
            truncated = message[:60] + "..." if len(message) > 60 else message
            self._errors.insert(0, f"{status} {shorten_url(route, 40)}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
        write_cli_log("ERROR", message[:200], route=route, status=status)

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_recent_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("HLS Stream Relay", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Playlists: {self._counts['playlist']}", style="blue")
        stats.append("  |  ")
        stats.append(f"Media: {self._counts['media']}", style="magenta")
        stats.append("  |  ")
        stats.append(f"Errors: {self._counts['error']}", style="red")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.server.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_recent_panel(self) -> Panel:
        """Build the recent requests panel."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Kind", width=9)
            table.add_column("Status", width=6)
            table.add_column("Target", ratio=1)

            styles = {"playlist": "blue", "media": "magenta", "skipped": "yellow"}
            for info in self._recent:
                table.add_row(
                    info.timestamp.strftime("%H:%M:%S"),
                    Text(info.kind, style=styles.get(info.kind, "")),
                    str(info.status),
                    Text(info.target_url),
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(content, title="[blue]Recent[/blue]", border_style="blue")

    def _build_footer(self) -> Panel:
        """Build footer with errors and usage hint."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            content = Text(
                f"Play http://{self.config.server.host}:{self.config.server.port}"
                f"{self.config.relay.endpoint}?url=<playlist URL>",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")


class ConsoleLogger:
    """Line-per-event logger used when the live dashboard is disabled."""

    def __init__(self, output: Console | None = None):
        self._console = output or console

    def log_request(self, target_url: str, referer: str | None) -> None:
        write_cli_log("REQUEST", target_url, referer=mask_referer(referer))

    def log_relay(
        self,
        target_url: str,
        status: int,
        content_type: str | None,
        *,
        playlist: bool,
    ) -> None:
        kind = "playlist" if playlist else "media"
        style = "blue" if playlist else "magenta"
        self._console.print(f"[{style}]{kind:<8}[/{style}] {status} {escape(shorten_url(target_url))}")
        write_cli_log(kind.upper(), target_url, status=status, content_type=content_type)

    def log_skip(self, target_url: str, reason: str) -> None:
        self._console.print(f"[yellow]skipped [/yellow] {escape(shorten_url(target_url))} ({escape(reason[:80])})")
        write_cli_log("SKIPPED", target_url, reason=reason[:200])

    def log_error(self, route: str, status: int, message: str) -> None:
        self._console.print(f"[red]error   [/red] {status} {escape(shorten_url(route))}: {escape(message[:120])}")
        write_cli_log("ERROR", message[:200], route=route, status=status)
