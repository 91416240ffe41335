# File: src/lotkeeper/main.py
"""
Main application entry point for the Parking Lot Management console
"""

from typing import List, Optional
import argparse
import logging
import os
import sys

from .application.commands import CommandProcessor
from .application.parking_service import ParkingService
from .config import Settings
from .domain.models import InvariantViolation
from .infrastructure.messaging import EventBus
from .presentation.console import ParkingConsole


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> logging.Logger:
    """Setup application logging configuration"""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_dir = log_dir or Settings.LOG_DIR
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(log_dir, 'lotkeeper.log')))

    logging.basicConfig(
        level=(level or Settings.LOG_LEVEL).upper(),
        format=Settings.LOG_FORMAT,
        handlers=handlers,
        force=True
    )
    return logging.getLogger(__name__)


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lotkeeper", description=Settings.APP_NAME)
    parser.add_argument("--cars", type=_non_negative_int, help="number of car slots")
    parser.add_argument("--bikes", type=_non_negative_int, help="number of bike slots")
    parser.add_argument("--trucks", type=_non_negative_int, help="number of truck slots")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="logging level (default: LOTKEEPER_LOG_LEVEL or WARNING)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {Settings.VERSION}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logging(args.log_level)
    logger.info(f"Starting {Settings.APP_NAME} {Settings.VERSION}")

    service = ParkingService(event_bus=EventBus())
    console = ParkingConsole(service, CommandProcessor(service))
    try:
        console.run({"car": args.cars, "bike": args.bikes, "truck": args.trucks})
    except InvariantViolation:
        logger.exception("Internal state inconsistency, aborting")
        return 2
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
