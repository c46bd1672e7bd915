#!/usr/bin/env python3
"""
SSE Inspector - command line entry point for ``python -m sse_inspector``.
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.text import Text

from . import __version__
from .jsonrpc.json_value import format_json, minify_json
from .jsonrpc.templates import template_names
from .session.inspector import InspectorSession
from .streaming.classifier import EventCategory
from .streaming.controller import ConnectionState
from .streaming.events import StreamEvent
from .utils.config import InspectorConfig, load_config
from .utils.errors import InspectorError, JsonBodyError
from .utils.logging import setup_logging

CATEGORY_STYLES = {
    EventCategory.CONNECTION: "bold blue",
    EventCategory.DATA: "green",
    EventCategory.ERROR: "bold red",
    EventCategory.INFO: "yellow",
}

console = Console()
err_console = Console(stderr=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sse-inspector",
        description="Send an HTTP request and watch the response as a Server-Sent Events stream",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=str, help="Config file path")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    stream = commands.add_parser("stream", help="Open a stream using the saved settings")
    stream.add_argument("--url", help="Endpoint URL")
    stream.add_argument("--method", choices=["GET", "POST"], type=str.upper)
    stream.add_argument(
        "-H", "--header", action="append", default=[], metavar="KEY:VALUE",
        help="Add a request header (repeatable)"
    )
    body = stream.add_mutually_exclusive_group()
    body.add_argument("--body", help="Request body text")
    body.add_argument("--template", choices=template_names(), help="Use a JSON-RPC template as the body")
    stream.add_argument("--no-format", action="store_true", help="Do not parse JSON payloads")
    stream.add_argument("--no-timestamps", action="store_true", help="Hide event times")
    stream.add_argument(
        "--export", nargs="?", const="", metavar="DIR",
        help="Export events when done, to DIR or to the configured export directory"
    )

    commands.add_parser("templates", help="List JSON-RPC templates")

    fmt = commands.add_parser("format", help="Pretty-print a JSON file")
    fmt.add_argument("file", type=Path)
    minify = commands.add_parser("minify", help="Minify a JSON file")
    minify.add_argument("file", type=Path)

    return parser


def render_event(event: StreamEvent, show_timestamps: bool) -> None:
    line = Text()
    if show_timestamps:
        line.append(f"{event.time} ", style="dim")
    line.append(event.category.value, style=CATEGORY_STYLES[event.category])
    if event.is_json and isinstance(event.parsed, (dict, list)):
        console.print(line)
        console.print_json(data=event.parsed)
    else:
        line.append(f" {event.raw}")
        console.print(line, highlight=False)


def apply_overrides(session: InspectorSession, args: argparse.Namespace) -> None:
    if args.url:
        session.set_url(args.url)
    if args.method:
        session.set_method(args.method)
    for header in args.header:
        key, sep, value = header.partition(":")
        if not sep:
            raise InspectorError(f"Header must look like KEY:VALUE, got '{header}'")
        session.add_header(key.strip(), value.strip())
    if args.template:
        session.editor.load_template(args.template)
    elif args.body is not None:
        session.set_body(args.body)
    if args.no_format:
        session.set_options(format_json=False)
    if args.no_timestamps:
        session.set_options(show_timestamps=False)


async def run_stream(session: InspectorSession, export_dir: Optional[Path]) -> int:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, session.stop)
    except NotImplementedError:
        pass

    try:
        task = session.begin()
        if session.editor.json_error:
            err_console.print(f"[yellow]Request body is not valid JSON:[/yellow] {session.editor.json_error}")
        async for event in session.controller.events():
            render_event(event, session.settings.show_timestamps)
        if task is not None:
            await task
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass

    stats = session.controller.log.stats()
    err_console.print(f"{stats['total']} events • {stats['data']} data • {stats['error']} errors")

    if export_dir is not None:
        path = await session.export(export_dir)
        err_console.print(f"Exported to {path}")

    return 1 if session.controller.state == ConnectionState.ERRORED else 0


def export_directory(option: Optional[str], config: InspectorConfig) -> Optional[Path]:
    """``--export DIR`` wins; a bare ``--export`` uses the configured directory."""
    if option is None:
        return None
    return Path(option).expanduser() if option else config.storage.export_directory


def transform_file(path: Path, transform) -> int:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        err_console.print(f"[red]{e}[/red]")
        return 1
    try:
        console.print(transform(text), markup=False, highlight=False)
    except JsonBodyError as e:
        err_console.print(f"[red]Invalid JSON:[/red] {e.detail}")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "templates":
        for name in template_names():
            console.print(name)
        return 0
    if args.command == "format":
        return transform_file(args.file, format_json)
    if args.command == "minify":
        return transform_file(args.file, minify_json)

    try:
        config = load_config([args.config] if args.config else None)
        debug = args.debug or config.debug
        setup_logging(
            app_name=config.app_name,
            log_level="DEBUG" if debug else config.logging.level,
            log_dir=config.logging.directory,
            enable_json=config.logging.format == "json",
            enable_console=debug,
            enable_sentry=config.logging.enable_sentry,
            sentry_dsn=config.logging.sentry_dsn,
        )
        session = InspectorSession.from_config(config)
        apply_overrides(session, args)
        return asyncio.run(run_stream(session, export_directory(args.export, config)))
    except InspectorError as e:
        err_console.print(f"[red]{e.message}[/red]")
        return 2


if __name__ == "__main__":
    sys.exit(main())
