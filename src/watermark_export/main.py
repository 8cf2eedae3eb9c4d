"""Main module for the watermark export CLI."""

import argparse
import sys
from typing import List, Optional

import uvicorn

from .api import create_app
from .core.config import Settings
from .core.factories import ServiceContextFactory
from .core.logging_config import configure_service_logging
from .export_collection import main as export_collection_main

VERSION = "0.1.0"


def serve(settings: Settings) -> None:
    configure_service_logging(settings.log_level, settings.log_format)
    app = create_app(ServiceContextFactory.create(settings))
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the unified command-line interface (CLI) of the watermark export service.

    ``serve`` runs the HTTP API, ``export`` runs one offline export page and
    forwards its arguments to ``export_collection``.
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="watermark-export",
        description="Watermark Export - watermark collections and download them as paged ZIP archives",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the API with collections loaded from a data file
  watermark-export serve --data-file collections.json --port 8000

  # Export the second batch of a collection to ./exports
  watermark-export export --data-file collections.json --collection c1 \\
                          --user u1 --page 2 --output-dir exports

  # Show version
  watermark-export version
        """,
    )

    subparsers: argparse._SubParsersAction = parser.add_subparsers(
        dest="command", help="Available commands"
    )

    serve_parser: argparse.ArgumentParser = subparsers.add_parser(
        "serve", help="Run the HTTP API"
    )
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")
    serve_parser.add_argument("--data-file", default=None, help="JSON file to seed the store from")
    serve_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    # Options after "export" are parsed by export_collection
    subparsers.add_parser(
        "export", help="Export one page of a collection to a ZIP file", add_help=False
    )

    subparsers.add_parser("version", help="Show version information")

    args, extra = parser.parse_known_args(argv)
    if extra and args.command != "export":
        parser.error(f"unrecognized arguments: {' '.join(extra)}")

    if args.command == "serve":
        overrides = {
            key: value
            for key, value in (
                ("host", args.host),
                ("port", args.port),
                ("data_file", args.data_file),
            )
            if value is not None
        }
        if args.debug:
            overrides["log_level"] = "DEBUG"
        serve(Settings(**overrides))

    elif args.command == "export":
        export_collection_main(extra)

    elif args.command == "version":
        print("Watermark Export CLI")
        print(f"Version {VERSION}")
        print("Watermarked collection exports in batches and chunks")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
