"""CLI entry point for Lectern."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lectern.config.settings import Settings
    from lectern.core.library import Library


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="lectern",
        description="Lectern — one catalog, section loader and search over many text sources",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Lectern {_get_version()}",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=None, help="Server bind address (overrides config)")
    serve.add_argument("--port", "-p", type=int, default=None, help="Server port (overrides config)")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    catalog = commands.add_parser("catalog", help="Print the merged catalog")
    catalog.add_argument("--audio-only", action="store_true", help="Only entries without text")

    section = commands.add_parser("section", help="Print one section's content")
    section.add_argument("textid")
    section.add_argument("sectionid")

    search = commands.add_parser("search", help="Search the given texts")
    search.add_argument("query")
    search.add_argument("--text", "-t", dest="texts", action="append", required=True, help="Text id (repeatable)")
    search.add_argument("--max-results", type=int, default=None, help="Maximum number of matches")
    search.add_argument("--rank", action="store_true", help="Order matches by hit count")

    args = parser.parse_args(argv)

    settings = _load_settings(args.config)
    if args.log_level:
        settings.observability.log_level = args.log_level
    if args.command != "serve":
        # Keep stdout for command output
        settings.observability.log_level = args.log_level or "warning"

    from lectern.observability.logging import setup_logging

    setup_logging(settings.observability)

    if args.command == "serve":
        _serve(settings, args)
        return

    exit_code = asyncio.run(_run_command(settings, args))
    sys.exit(exit_code)


def _load_settings(config: str | None) -> Settings:
    from lectern.config.settings import Settings

    if config:
        config_path = Path(config)
        if not config_path.exists():
            print(f"Error: Config file not found: {config_path}", file=sys.stderr)
            sys.exit(1)
        return Settings.from_yaml(config_path)
    return Settings()


def _serve(settings: Settings, args: argparse.Namespace) -> None:
    import uvicorn

    from lectern.api.app import create_app

    if args.host:
        settings.server.host = args.host
    if args.port:
        settings.server.port = args.port

    if args.reload:
        # Reload needs an import string; the worker re-reads settings from the environment
        uvicorn.run(
            "lectern.api.app:create_app",
            factory=True,
            host=settings.server.host,
            port=settings.server.port,
            reload=True,
            log_level=settings.observability.log_level.lower(),
        )
        return

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.observability.log_level.lower(),
    )


async def _run_command(settings: Settings, args: argparse.Namespace) -> int:
    from lectern.core.library import Library

    async with Library.from_settings(settings) as library:
        return await _dispatch(library, args)


async def _dispatch(library: Library, args: argparse.Namespace) -> int:
    if args.command == "catalog":
        entries = await library.get_catalog()
        if args.audio_only:
            entries = [entry for entry in entries if not entry.has_text]
        _print_json([entry.model_dump(mode="json") for entry in entries])
        return 0

    if args.command == "section":
        content = await library.load_section(args.textid, args.sectionid)
        if content is None:
            print(f"Section not found: {args.textid}/{args.sectionid}", file=sys.stderr)
            return 1
        print(content)
        return 0

    if args.command == "search":
        options = library.searcher.default_options()
        if args.max_results:
            options.max_results = args.max_results
        options.rank = args.rank
        result = await library.search(args.query, args.texts, options)
        _print_json(result.model_dump(mode="json"))
        return 0

    print(f"Unknown command: {args.command}", file=sys.stderr)
    return 2


def _print_json(data: object) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _get_version() -> str:
    """Get the package version."""
    try:
        from lectern import __version__

        return __version__
    except ImportError:
        return "unknown"


if __name__ == "__main__":
    main()
