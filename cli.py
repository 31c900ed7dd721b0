"""CLI entry point for hls-stream-relay."""

import asyncio
import sys
from datetime import datetime

import httpx
from rich.console import Console
from rich.markup import escape

from app import create_app
from core.classifier import ContentClassifier
from core.config import CONFIG_FILE, Config, load_config
from core.exceptions import RelayError, RewriteSkipped
from core.headers import HeaderBuilder
from core.playlist import PlaylistRewriter
from core.request_types import ProxyRequest, RewriteContext
from core.validation import parse_target_url
from services.upstream import UpstreamClient
from ui.dashboard import ConsoleLogger, Dashboard
from ui.log_utils import clear_logs, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    config = load_config()

    # Handle CLI arguments
    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg == "--probe":
            if len(sys.argv) < 3:
                console.print("[red][ERROR][/red] Usage: hls-stream-relay --probe URL [REFERER]")
                sys.exit(2)
            referer = sys.argv[3] if len(sys.argv) > 3 else None
            sys.exit(asyncio.run(probe(config, sys.argv[2], referer)))

        if arg == "--config":
            console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
            return

        if arg in ("--help", "-h"):
            _print_help()
            return

    # Clear previous logs and start dashboard
    clear_logs()
    if config.server.dashboard:
        dashboard = Dashboard(config)
        logger = dashboard
    else:
        dashboard = None
        logger = ConsoleLogger(console)

    import uvicorn

    app = create_app(config, logger)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level="warning",
    )
    server = uvicorn.Server(uvicorn_config)

    if dashboard:
        dashboard.start()
    else:
        console.print(
            f"[bold cyan]HLS Stream Relay[/bold cyan] listening on "
            f"http://{config.server.host}:{config.server.port}{config.relay.endpoint}"
        )
    start_time = datetime.now()
    write_cli_log("STARTUP", "Relay started", port=config.server.port)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Relay stopped", duration=str(duration))
        if dashboard:
            dashboard.stop()


async def probe(
    config: Config,
    url: str,
    referer: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Fetch ``url`` once the way the relay would and report what it got."""
    try:
        request = ProxyRequest(target_url=parse_target_url(url), referer=referer)
    except RelayError as e:
        console.print(f"[red][ERROR][/red] {escape(str(e))}")
        return 2

    upstream_settings = config.upstream
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(upstream_settings.timeout, connect=upstream_settings.connect_timeout),
        max_redirects=upstream_settings.max_redirects,
        transport=transport,
    ) as client:
        upstream = UpstreamClient(client, HeaderBuilder(config))
        try:
            fetched = await upstream.fetch(request)
        except RelayError as e:
            console.print(f"[red][ERROR][/red] {escape(str(e))}")
            return 1

    is_playlist = ContentClassifier().is_playlist(fetched.content_type, request.target_url)
    console.print(f"[bold]Status:[/bold] {fetched.status_code}")
    console.print(f"[bold]Content-Type:[/bold] {escape(fetched.content_type or '-')}")
    console.print(f"[bold]Size:[/bold] {len(fetched.body)} bytes")
    console.print(f"[bold]Playlist:[/bold] {'yes' if is_playlist else 'no'}")

    if is_playlist:
        rewriter = PlaylistRewriter(config.relay.endpoint)
        try:
            text = rewriter.decode(fetched.body)
        except RewriteSkipped as e:
            console.print(f"[yellow]Not rewritable:[/yellow] {escape(str(e))}")
            return 0
        console.print()
        console.print(rewriter.rewrite(text, RewriteContext.from_request(request)), markup=False, highlight=False, soft_wrap=True)
    return 0


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]HLS Stream Relay[/bold cyan]

Relays HLS playlists and segments for browsers, rewriting playlists so every
reference goes back through the relay. An optional Referer is sent upstream.

[bold]Usage:[/bold]
    hls-stream-relay                      Start with live dashboard
    hls-stream-relay --probe URL [REF]    Fetch URL once and show the rewrite
    hls-stream-relay --config             Show config location
    hls-stream-relay --help               Show this help

[bold]Endpoint:[/bold]
    GET /api/stream-proxy?url=<encoded URL>&referer=<encoded referer>
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
