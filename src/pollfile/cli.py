"""Command-line interface for pollfile."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from contextlib import closing
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from pollfile import __version__
from pollfile.comparator import SampledComparator
from pollfile.config import Config, default_state_path, load_config
from pollfile.errors import NoResourceSelectedError, PermissionDeniedError, ResourceError
from pollfile.logging import get_logger, setup_logging
from pollfile.resource import FileHandle
from pollfile.storage import YamlStore
from pollfile.watching import WatchEvent, WatchEventKind, WatchHost

console = Console()
log = get_logger("cli")

_EVENT_STYLES = {
    WatchEventKind.CHANGED_METADATA: "yellow",
    WatchEventKind.CHANGED_CONTENT: "bold yellow",
    WatchEventKind.STOPPED: "cyan",
    WatchEventKind.READ_ERROR: "red",
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pollfile",
        description="Poll a large file for changes by sampling blocks of it",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase verbosity (can be repeated, up to -vvvv)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Extra config file (overrides user and project config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    watch_parser = subparsers.add_parser(
        "watch",
        help="Watch a file until it stays unchanged for --max-delta ms",
    )
    watch_parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        help="File to watch (default: the last watched file)",
    )
    _add_sampling_args(watch_parser)
    watch_parser.add_argument(
        "--interval",
        type=int,
        dest="watch_interval_ms",
        help="Poll interval in ms",
    )
    watch_parser.add_argument(
        "--max-delta",
        type=int,
        dest="max_delta_ms",
        help="Stop watching after this many ms without a change",
    )

    regions_parser = subparsers.add_parser(
        "regions",
        help="Show which byte ranges of a file would be sampled",
    )
    regions_parser.add_argument("path", type=Path, help="File to inspect")
    _add_sampling_args(regions_parser)

    subparsers.add_parser(
        "forget",
        help="Forget the remembered last watched file",
    )

    return parser


def _add_sampling_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--block-size",
        type=int,
        dest="block_size",
        help="Bytes per sample block",
    )
    parser.add_argument(
        "--sample-count",
        type=int,
        dest="sample_count",
        help="Target number of sample blocks",
    )


def _overrides(parsed: argparse.Namespace) -> dict[str, Any]:
    """Turn command-line flags into a config dict."""
    watch = {
        key: getattr(parsed, key)
        for key in ("block_size", "sample_count", "watch_interval_ms", "max_delta_ms")
        if getattr(parsed, key, None) is not None
    }
    overrides: dict[str, Any] = {"watch": watch}
    if parsed.verbose is not None:
        overrides["logging"] = {"verbose": parsed.verbose}
    return overrides


def _state_store(config: Config) -> YamlStore:
    return YamlStore(config.state.file or default_state_path())


def print_event(event: WatchEvent) -> None:
    """Print one notification."""
    style = _EVENT_STYLES.get(event.kind, "")
    message = f"[{style}]{event.kind}[/{style}]" if style else str(event.kind)
    if event.cause is not None:
        message += f": {event.cause}"
    console.print(f"{event.resource}: {message}", highlight=False)


async def run_watch(config: Config, path: Path | None) -> int:
    """Watch ``path`` (or the remembered file) until the session stops."""
    host = WatchHost(_state_store(config), config.watch)

    if path is not None:
        # Only replace the remembered path once the new file proved readable
        host.select(FileHandle(path), remember=False)
    elif host.restore() is None:
        console.print("[red]No file given and none remembered.[/red]")
        return 1

    denied: list[PermissionDeniedError] = []

    def on_event(event: WatchEvent) -> None:
        print_event(event)
        if event.kind == WatchEventKind.READ_ERROR and isinstance(event.cause, PermissionDeniedError):
            denied.append(event.cause)

    host.controller.add_listener(on_event)

    try:
        session = await host.start()
    except NoResourceSelectedError as e:
        console.print(f"[red]{e}[/red]")
        return 1
    except ResourceError as e:
        console.print(f"[red]Cannot watch: {e}[/red]")
        return 2

    host.remember()
    regions = session.comparator.get_regions()
    console.print(
        f"Watching [bold]{session.handle.name}[/bold] "
        f"({len(regions)} samples, {session.comparator.coverage():.1%} coverage). "
        "Press Ctrl-C to stop."
    )

    try:
        await host.controller.wait_stopped()
    finally:
        host.stop()
    return 2 if denied else 0


async def run_regions(config: Config, path: Path) -> int:
    """Print the sample layout ``path`` would get."""
    handle = FileHandle(path)
    try:
        snapshot = await handle.snapshot()
        comparator = SampledComparator(config.watch.block_size, config.watch.sample_count)
        with closing(snapshot):
            await comparator.init(snapshot)
    except ResourceError as e:
        console.print(f"[red]{e}[/red]")
        return 2

    table = Table(title=f"{handle.name} ({snapshot.size} bytes)")
    table.add_column("#", justify="right")
    table.add_column("offset", justify="right")
    table.add_column("length", justify="right")
    table.add_column("end", justify="right")
    for i, region in enumerate(comparator.get_regions()):
        table.add_row(str(i), str(region.offset), str(region.length), str(region.end))

    console.print(table)
    console.print(f"Coverage: {comparator.coverage():.1%}")
    return 0


def run_forget(config: Config) -> int:
    store = _state_store(config)
    host = WatchHost(store, config.watch)
    if host.last_path is None:
        console.print("Nothing remembered.")
    else:
        console.print(f"Forgot {host.last_path}")
    host.clear()
    return 0


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 1

    try:
        config = load_config(config_path=parsed.config, overrides=_overrides(parsed))
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        return 1
    setup_logging(config.logging)
    log.debug("Config: %s", config)

    if parsed.command == "watch":
        try:
            return asyncio.run(run_watch(config, parsed.path))
        except KeyboardInterrupt:
            console.print("Stopped.")
            return 0
    elif parsed.command == "regions":
        return asyncio.run(run_regions(config, parsed.path))
    elif parsed.command == "forget":
        return run_forget(config)
    else:
        parser.print_help()
        return 1
