"""
Logging setup utilities for RepairMiner.
"""
import logging


class ShortNameFormatter(logging.Formatter):
    """Formatter exposing the last component of the logger name as ``short_name``."""

    def format(self, record):
        record.short_name = record.name.rsplit('.', 1)[-1]
        return super().format(record)


def setup_logging(level: str = "WARNING"):
    """Set up logging configuration."""
    handler = logging.StreamHandler()

    # Plain messages for INFO, more detail otherwise
    if level.upper() == "INFO":
        formatter = ShortNameFormatter('%(message)s')
    else:
        formatter = ShortNameFormatter('%(asctime)s - %(short_name)s - %(levelname)s - %(message)s')

    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers = []
    root_logger.addHandler(handler)

    # Suppress verbose logging from external libraries
    if level.upper() in ["INFO", "WARNING"]:
        logging.getLogger('pydriller').setLevel(logging.WARNING)
        logging.getLogger('git').setLevel(logging.WARNING)
