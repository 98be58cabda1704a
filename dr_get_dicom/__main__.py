"""
Entry point for the dr_get_dicom component.
"""

import argparse
import asyncio
import datetime
import logging
import sys

from .application.exceptions import RetrieverError
from .infrastructure.containers import Container
from .settings import settings

logger = logging.getLogger(__name__)


def setup_logging(level: str):
    """Applies basic logging configuration."""
    logging.basicConfig(level=level, stream=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    """Builds the command-line parser."""
    today = datetime.date.today().strftime("%Y%m%d")

    parser = argparse.ArgumentParser(
        description=(
            "Retrieve one DICOM file per session acquired on a given date "
            "from the Donders Repository."
        )
    )

    parser.add_argument(
        "-t",
        "--date",
        default=today,
        help="The acquisition date in format YYYYmmdd (default: today).",
    )

    parser.add_argument(
        "-d",
        "--dest-dir",
        dest="destination",
        default=None,
        metavar="PATH",
        help="The local path for storing the downloaded raw data.",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print debug messages.",
    )

    return parser


async def run_application(args: argparse.Namespace) -> int:
    """Wires and runs the application using the DI container."""

    container = Container()
    container.cli_args.from_dict(
        {k: v for k, v in vars(args).items() if v is not None}
    )
    setup_logging(level="DEBUG" if args.verbose else settings.logging.level)

    try:
        retriever_service = container.retriever_service()
    except RetrieverError as e:
        logger.error(f"An application error occurred: {e}")
        return 1

    # failures of individual items are logged by the pipeline and never
    # change the exit status
    await retriever_service.run()
    return 0


def main(argv=None) -> int:
    cli_args = build_parser().parse_args(argv)
    return asyncio.run(run_application(cli_args))


if __name__ == "__main__":
    sys.exit(main())
