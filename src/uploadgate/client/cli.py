"""
Command-line interface for uploading local files to an UploadGate service.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from uploadgate.client.controller import UploadController
from uploadgate.client.models import PendingFile, Phase, UploaderOptions
from uploadgate.client.transport import HttpUploadTransport

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI.

    Args:
        verbose: Whether to enable debug logging
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="uploadgate-upload",
        description="Upload files to an UploadGate ingest service",
    )
    parser.add_argument("files", nargs="+", type=Path, help="Files to upload")
    parser.add_argument("--url", default="http://localhost:8080", help="Service base URL")
    parser.add_argument("--max-size-mb", type=float, default=20, help="Per-file size limit")
    parser.add_argument("--max-files", type=int, default=10, help="Maximum files per batch")
    parser.add_argument(
        "--accept", default="*/*",
        help="Comma-separated MIME types or patterns to accept (default: all)",
    )
    parser.add_argument("--timeout", type=float, default=300, help="Request timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    """Select, validate and upload the given files.

    Returns:
        Process exit code
    """
    options = UploaderOptions(
        multiple=True,
        accept=args.accept,
        max_size_mb=args.max_size_mb,
        max_files=args.max_files,
    )
    controller = UploadController(
        HttpUploadTransport(args.url, timeout=args.timeout),
        options=options,
        progress_interval=None,
    )

    try:
        pending = [PendingFile.from_path(path) for path in args.files]
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    rejection = controller.select_files(pending)
    if rejection:
        print(f"Error: {rejection}", file=sys.stderr)
        return EXIT_FAILED

    await controller.start_upload()

    if controller.phase == Phase.COMPLETED:
        for record in controller.results:
            print(f"{record.original_name} -> {record.public_url}")
        return EXIT_OK
    if controller.phase == Phase.CANCELLED:
        print(controller.error, file=sys.stderr)
        return EXIT_CANCELLED

    print(f"Error: {controller.error}", file=sys.stderr)
    return EXIT_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("Upload cancelled", file=sys.stderr)
        return EXIT_CANCELLED


if __name__ == "__main__":
    sys.exit(main())
