"""CLI entry point for pulsewatch."""

import io
import sys
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from pulsewatch import __version__
from pulsewatch.config import (
    DEFAULT_CONFIG, default_config_path, load_config, save_config, validate_config,
)
from pulsewatch.status_page import format_silence


def _get_config(ctx) -> dict:
    """Load config using the path from context (or default)."""
    path = ctx.obj.get("config_path")
    if path:
        path = Path(path)
    return load_config(path)


def _get_console(ctx) -> Console:
    """Create a Rich console respecting --no-color, with UTF-8 forced on Windows."""
    no_color = ctx.obj.get("no_color", False)
    # Force UTF-8 output to avoid Windows cp1252 encoding errors with Rich
    if sys.platform == "win32":
        out = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
        return Console(file=out, no_color=no_color, force_terminal=True)
    return Console(no_color=no_color)


def _server_url(cfg: dict, url) -> str:
    if url:
        return url
    port = cfg.get("server", {}).get("port", 8080)
    return f"http://localhost:{port}"


def _exit_on_invalid(console: Console, cfg: dict) -> None:
    errors = validate_config(cfg)
    if errors:
        console.print("[red]Config validation failed:[/red]")
        for err in errors:
            console.print(f"  [red]\u2718[/red] {err}")
        raise SystemExit(1)


@click.group()
@click.option("--config", "config_path", type=click.Path(), default=None,
              help="Path to config file.")
@click.option("--no-color", is_flag=True, help="Disable colored output.")
@click.pass_context
def cli(ctx, config_path, no_color):
    """pulsewatch - heartbeat liveness watchdog."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["no_color"] = no_color


@cli.command()
def version():
    """Show pulsewatch version."""
    click.echo(f"pulsewatch {__version__}")


def _start_http(app, host: str, port: int, startup_timeout: float = 10.0):
    """Serve *app* with uvicorn on a daemon thread.

    Returns ``(server, thread)`` once uvicorn reports it has started.
    Raises ``RuntimeError`` if the thread dies first (e.g. the port is
    taken) or startup takes longer than *startup_timeout*.
    """
    import uvicorn

    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level="warning"))
    thread = threading.Thread(target=server.run, name="pulsewatch-http", daemon=True)
    thread.start()

    deadline = time.monotonic() + startup_timeout
    while not server.started:
        if not thread.is_alive():
            raise RuntimeError(f"HTTP server failed to start on {host}:{port}")
        if time.monotonic() > deadline:
            server.should_exit = True
            raise RuntimeError(
                f"HTTP server did not start on {host}:{port} within {startup_timeout:g}s")
        time.sleep(0.05)
    return server, thread


def _stop_when_finished(thread: threading.Thread, stop: threading.Event) -> None:
    thread.join()
    stop.set()


@cli.command("serve")
@click.option("--host", default=None, help="Bind address (default from config).")
@click.option("--port", type=int, default=None, help="Bind port (default from config).")
@click.pass_context
def serve_cmd(ctx, host, port):
    """Accept heartbeats and alert on silent programs."""
    from pulsewatch.dispatcher import AlertDispatcher
    from pulsewatch.errors import AlertDeliveryError
    from pulsewatch.ledger import Ledger
    from pulsewatch.logging_setup import setup_logging
    from pulsewatch.server import create_app
    from pulsewatch.sweeper import Sweeper

    console = _get_console(ctx)
    cfg = _get_config(ctx)
    _exit_on_invalid(console, cfg)

    logger = setup_logging(cfg)
    server_cfg = cfg.get("server", {})
    host = host or server_cfg.get("host", "0.0.0.0")
    port = port or server_cfg.get("port", 8080)

    ledger = Ledger()
    sweeper = Sweeper.from_config(ledger, AlertDispatcher.from_config(cfg), cfg)
    try:
        http, http_thread = _start_http(create_app(ledger, cfg), host, port)
    except RuntimeError as e:
        logger.critical("stopping: %s", e)
        console.print(f"[red]\u2718[/red] {e}")
        raise SystemExit(1)
    logger.info("pulsewatch %s listening on %s:%s", __version__, host, port)
    console.print(f"[green]\u2714[/green] Listening on {host}:{port}")

    # the sweep loop ends if the HTTP server goes away
    stop = threading.Event()
    threading.Thread(target=_stop_when_finished, args=(http_thread, stop),
                     name="pulsewatch-http-watch", daemon=True).start()

    try:
        sweeper.run(stop)
    except KeyboardInterrupt:
        logger.info("interrupted")
    except AlertDeliveryError as e:
        logger.critical("stopping: %s", e)
        console.print(f"[red]\u2718[/red] {e}")
        raise SystemExit(1)
    else:
        logger.critical("stopping: HTTP server exited")
        console.print("[red]\u2718[/red] HTTP server exited")
        raise SystemExit(1)
    finally:
        http.should_exit = True


@cli.command("ping")
@click.argument("program_id")
@click.option("--url", default=None, help="Server URL (default http://localhost:<port>).")
@click.pass_context
def ping_cmd(ctx, program_id, url):
    """Send one heartbeat for PROGRAM_ID."""
    from pulsewatch.heartbeat import send_heartbeat

    console = _get_console(ctx)
    target = _server_url(_get_config(ctx), url)
    if send_heartbeat(target, program_id):
        console.print(f"[green]\u2714[/green] Heartbeat sent for {program_id}")
    else:
        console.print(f"[red]\u2718[/red] Heartbeat to {target} failed")
        raise SystemExit(1)


@cli.command("status")
@click.option("--url", default=None, help="Server URL (default http://localhost:<port>).")
@click.pass_context
def status_cmd(ctx, url):
    """Show the programs tracked by a running server."""
    import requests
    from pulsewatch.heartbeat import fetch_status

    console = _get_console(ctx)
    target = _server_url(_get_config(ctx), url)
    try:
        programs = fetch_status(target)
    except requests.RequestException as e:
        console.print(f"[red]\u2718[/red] Could not reach {target}: {e}")
        raise SystemExit(1)

    if not programs:
        console.print("[yellow]No programs tracked yet.[/yellow]")
        return

    now = datetime.now(timezone.utc)
    table = Table(title=f"pulsewatch \u2014 {target}")
    table.add_column("ID", style="cyan")
    table.add_column("Last seen")
    table.add_column("Silent for")
    table.add_column("Alerted")
    for p in programs:
        seen = datetime.fromisoformat(p["last_seen_at"])
        table.add_row(
            p["id"] or "(empty)",
            seen.strftime("%Y-%m-%d %H:%M:%S"),
            format_silence((now - seen).total_seconds()),
            "[red]yes[/red]" if p.get("alerted") else "no",
        )
    console.print(table)


@cli.command("test-alert")
@click.argument("program_id", default="pulsewatch-test")
@click.pass_context
def test_alert_cmd(ctx, program_id):
    """Deliver one alert through the configured channel."""
    from pulsewatch.dispatcher import AlertDispatcher
    from pulsewatch.logging_setup import setup_logging

    console = _get_console(ctx)
    cfg = _get_config(ctx)
    setup_logging(cfg)
    try:
        dispatcher = AlertDispatcher.from_config(cfg)
    except ValueError as e:
        console.print(f"[red]\u2718[/red] {e}")
        raise SystemExit(1)
    dispatcher.fatal_on_failure = False

    if dispatcher.deliver(program_id):
        console.print(f"[green]\u2714[/green] Sent via {dispatcher.notifier.name}")
    else:
        console.print(f"[red]\u2718[/red] Delivery via {dispatcher.notifier.name} failed"
                      " (see log)")
        raise SystemExit(1)


@cli.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
@click.pass_context
def init_cmd(ctx, force):
    """Write a default config file."""
    console = _get_console(ctx)
    config_path = ctx.obj.get("config_path")
    resolved_path = Path(config_path) if config_path else default_config_path()
    if resolved_path.exists() and not force:
        console.print(f"[yellow]Config already exists:[/yellow] {resolved_path}")
        console.print("Use --force to overwrite it.")
        raise SystemExit(1)
    save_config(DEFAULT_CONFIG, resolved_path)
    console.print(f"[green]\u2714[/green] Wrote {resolved_path}")


@cli.command("validate")
@click.pass_context
def validate_cmd(ctx):
    """Validate the config file."""
    console = _get_console(ctx)
    config_path = ctx.obj.get("config_path")
    resolved_path = Path(config_path) if config_path else default_config_path()
    cfg = _get_config(ctx)
    _exit_on_invalid(console, cfg)
    console.print(f"[green]\u2714[/green] Config is valid: {resolved_path}")


@cli.command("summarize")
@click.pass_context
def summarize_cmd(ctx):
    """Show a Rich tree overview of the current configuration."""
    console = _get_console(ctx)
    config_path = ctx.obj.get("config_path")
    resolved_path = Path(config_path) if config_path else default_config_path()
    cfg = _get_config(ctx)
    console.print(f"[bold]Config file:[/bold] {resolved_path}")
    console.print()
    console.print(_build_config_tree(cfg))


_SECRET_KEYS = {"password"}


def _build_config_tree(cfg: dict) -> Tree:
    """Build a Rich Tree of the configuration with secrets masked."""
    server = cfg.get("server", {})
    sweeper = cfg.get("sweeper", {})
    alerts = cfg.get("alerts", {})
    channel = alerts.get("channel", "email")

    tree = Tree("[bold]pulsewatch[/bold]")
    srv = tree.add("[bold]Server[/bold]")
    srv.add(f"listen: {server.get('host')}:{server.get('port')}")
    srv.add(f"status template: {server.get('status_template') or '(bundled)'}")

    sw = tree.add("[bold]Sweeper[/bold]")
    sw.add(f"every {sweeper.get('interval')}s, alert after {sweeper.get('threshold')}s")
    sw.add("dispatch inside ledger lock" if sweeper.get("hold_lock_during_dispatch")
           else "dispatch outside ledger lock")
    evict = sweeper.get("evict_after", 0)
    sw.add(f"evict after {evict}s" if evict else "[dim]no eviction[/dim]")

    al = tree.add(f"[bold]Alerts[/bold] via {channel}")
    al.add("delivery failure is fatal" if alerts.get("fatal_on_failure")
           else "delivery failure retried next sweep")
    for key, value in alerts.get(channel, {}).items():
        shown = "****" if key in _SECRET_KEYS and value else value
        al.add(f"{key}: {shown}")
    return tree
