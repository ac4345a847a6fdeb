"""
Entry point for the metadata_fetcher component.
"""

import argparse
import asyncio
import logging
import sys
from typing import AsyncIterator, List, Optional

from .application.domain import MetadataResult
from .application.exceptions import ConfigurationError, LocatorError
from .application.locator import parse_locators
from .infrastructure.containers import Container
from .infrastructure.output import copy_stream, encode_map, result_members
from .settings import validate_settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PARTIAL_FAILURE = 1
EXIT_USAGE = 2


def setup_logging(level: str):
    """Applies basic logging configuration; logs go to stderr."""
    logging.basicConfig(level=str(level).upper(), stream=sys.stderr)


async def run_application(
    args: argparse.Namespace, sink=None, container: Optional[Container] = None
) -> int:
    """Wires and runs the application using the DI container."""

    container = container or Container()
    container.cli_args.from_dict(vars(args))

    try:
        settings = validate_settings(container.settings())
    except ConfigurationError as e:
        logging.basicConfig(stream=sys.stderr)
        logger.error(f"A configuration error occurred: {e}")
        return EXIT_USAGE
    setup_logging(level=settings.logging.level)

    try:
        locators = parse_locators(args.locators)
    except LocatorError as e:
        logger.error(f"Invalid locator: {e}")
        return EXIT_USAGE

    service = container.metadata_service()
    failed: List[MetadataResult] = []

    async def _track(results: AsyncIterator[MetadataResult]):
        async for result in results:
            if not result.ok:
                failed.append(result)
            yield result

    members = result_members(
        _track(service.run_all(locators)), container.error_policy()
    )
    await copy_stream(encode_map(members), sink or sys.stdout.buffer)

    if failed:
        logger.error(
            f"{len(failed)} of {len(locators)} archives could not be processed."
        )
        return EXIT_PARTIAL_FAILURE
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metadata-fetcher",
        description=(
            "Print the METADATA of wheel archives as one JSON object, "
            "reading remote archives with HTTP range requests."
        ),
    )

    parser.add_argument(
        "locators",
        nargs="+",
        metavar="LOCATOR",
        help="http(s):// or file:// URL, or absolute path, of an archive",
    )

    parser.add_argument(
        "--on-error",
        choices=["marker", "omit"],
        default=None,
        help="Write failed archives as error markers or leave them out.",
    )

    parser.add_argument(
        "--progress",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Show a progress bar on stderr (default from settings).",
    )

    return parser


def main(argv: Optional[List[str]] = None):
    cli_args = build_parser().parse_args(argv)
    sys.exit(asyncio.run(run_application(cli_args)))


if __name__ == "__main__":
    main()
