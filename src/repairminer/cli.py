"""Main CLI entry point for RepairMiner using command pattern."""

import sys
import argparse
import asyncio
import logging
from typing import Optional

from .commands import COMMAND_REGISTRY
from .commands.base import CommandContext
from .exceptions import RepairMinerError
from .services.configuration_service import get_config_service
from .utils.logging_setup import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="repairminer",
        description="RepairMiner - Repair pattern mining from JavaScript bug-fixing commits"
    )
    parser.add_argument(
        "--config",
        help="JSON configuration file"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the configured log level"
    )

    # Create subparsers for commands
    subparsers = parser.add_subparsers(
        title="Available commands",
        dest="command",
        required=True
    )

    for name, command_class in COMMAND_REGISTRY.items():
        subparser = subparsers.add_parser(name, help=command_class.help())
        command_class.add_arguments(subparser)

    return parser


async def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = get_config_service(args.config).get_config()
    except RepairMinerError as e:
        setup_logging("WARNING")
        logging.error(f"Invalid configuration: {e}")
        return 1

    level = args.log_level or ("DEBUG" if config.debug_mode else config.log_level)
    setup_logging(level)

    context = CommandContext(config=config, args=args)
    command = COMMAND_REGISTRY[args.command](context)

    try:
        return await command.execute()
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except Exception as e:
        logging.error(f"Unexpected error: {e}")
        if config.debug_mode:
            logging.exception("Traceback")
        return 1


def cli_main():
    """Synchronous CLI entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli_main()
