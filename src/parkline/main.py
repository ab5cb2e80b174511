# File: src/parkline/main.py
"""
Main application entry point for the Parkline parking lot

    parkline [--config FILE] [--cars N] [--bikes N] [--trucks N]
             [--allow-duplicate-waitlist] [--log-level LEVEL] [--log-file PATH]

Command-line values override the configuration file. When no slot counts
are configured at all, the console asks for them on start-up.
"""

from typing import List, Optional
import argparse
import logging
import os
import sys

from .application.parking_service import ParkingServiceFactory
from .domain.models import VehicleType
from .infrastructure.config import ConfigurationError, LOG_LEVELS, load_settings
from .presentation.console import ParkingConsole


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Setup application logging configuration"""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )
    return logging.getLogger("parkline")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="parkline",
        description="Parking lot management: typed slots, FIFO waitlists and hourly billing"
    )
    parser.add_argument('--config', help='YAML configuration file')
    parser.add_argument('--cars', type=int, help='Number of car slots')
    parser.add_argument('--bikes', type=int, help='Number of bike slots')
    parser.add_argument('--trucks', type=int, help='Number of truck slots')
    parser.add_argument('--allow-duplicate-waitlist', action='store_true', default=None,
                        help='Let a waiting vehicle join the waitlist again')
    parser.add_argument('--log-level', type=str.upper, choices=LOG_LEVELS, help='Logging level')
    parser.add_argument('--log-file', help='Also write logs to this file')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
        slots = {
            VehicleType.CAR: args.cars,
            VehicleType.BIKE: args.bikes,
            VehicleType.TRUCK: args.trucks,
        }
        settings = settings.with_overrides(
            slots={vt: n for vt, n in slots.items() if n is not None},
            allow_duplicate_waitlist=args.allow_duplicate_waitlist,
            log_level=args.log_level,
            log_file=args.log_file,
        )
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logger = setup_logging(settings.log_level, settings.log_file)
    logger.info("Starting parking management console...")

    service = ParkingServiceFactory.create_from_settings(settings)
    ask_for_layout = sum(settings.slots.values()) == 0
    return ParkingConsole(service).run(ask_for_layout=ask_for_layout)


if __name__ == "__main__":
    sys.exit(main())
