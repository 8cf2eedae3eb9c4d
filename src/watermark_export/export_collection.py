#!/usr/bin/env python3
"""
Offline collection exporter

Loads collections from a JSON data file → Watermarks one batch or chunk → Writes the ZIP to disk
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .core import ExportArchive, WatermarkExportError, get_logger
from .core.config import Settings
from .core.factories import ServiceContext, ServiceContextFactory


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for the offline exporter.

    Returns:
        An `argparse.Namespace` object containing the parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Export one batch or chunk of a watermarked collection as a ZIP"
    )

    # Required arguments
    parser.add_argument("--data-file", required=True, help="JSON file with collections, watermarks and configs")
    parser.add_argument("--collection", required=True, help="Collection id")
    parser.add_argument("--user", required=True, help="User id owning the watermark config")

    # Optional arguments
    parser.add_argument(
        "--mode",
        type=str,
        default="batch",
        choices=["batch", "chunk"],
        help="Paging mode (default: batch)",
    )
    parser.add_argument(
        "--page",
        type=int,
        default=None,
        help="Batch number (1-based) or chunk index (0-based); defaults to the first page",
    )
    parser.add_argument("--size", type=int, default=None, help="Batch size (batch mode only)")
    parser.add_argument("--total-chunks", type=int, default=None, help="Chunk count to record (chunk mode only)")
    parser.add_argument("--output-dir", default=".", help="Directory the ZIP is written to")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser.parse_args(argv)


async def run_export(context: ServiceContext, args: argparse.Namespace) -> ExportArchive:
    if args.mode == "chunk":
        chunk_index = 0 if args.page is None else args.page
        return await context.exports.export_chunk(
            args.collection, args.user, chunk_index, total_chunks_hint=args.total_chunks
        )
    batch_number = 1 if args.page is None else args.page
    return await context.exports.export_batch(
        args.collection, args.user, batch_number, size=args.size
    )


def write_archive(archive: ExportArchive, output_dir: str) -> Path:
    target_dir = Path(output_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / archive.filename
    path.write_bytes(archive.content)
    return path


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the offline exporter.

    Builds a service context around the data file, runs one export page and
    writes the archive. Exits with status 1 on any export error.
    """
    logger = get_logger("watermark-export")
    try:
        args = parse_args(argv)
        if args.debug:
            logger.setLevel(logging.DEBUG)

        context = ServiceContextFactory.create(Settings(data_file=args.data_file))
        try:
            archive = asyncio.run(run_export(context, args))
        finally:
            context.close()

        path = write_archive(archive, args.output_dir)
        report = archive.report
        logger.info(
            f"Wrote {path} ({report.succeeded}/{report.attempted} photos, {report.failed} failed)"
        )

    except KeyboardInterrupt:
        logger.warning("Export interrupted by user.")
    except WatermarkExportError as e:
        logger.error(f"Export failed: {e.message}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Export failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
