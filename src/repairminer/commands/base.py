"""
Base command interface for RepairMiner CLI commands.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ..services.configuration_service import UnifiedConfig


@dataclass
class CommandContext:
    """Context passed to command handlers."""
    config: UnifiedConfig
    args: Any  # argparse.Namespace


class BaseCommand(ABC):
    """Base class for all CLI commands."""

    def __init__(self, context: CommandContext):
        self.context = context
        self.config = context.config
        self.args = context.args

    @abstractmethod
    async def execute(self) -> int:
        """Execute the command.

        Returns:
            Exit code (0 for success)
        """
        pass

    @classmethod
    @abstractmethod
    def add_arguments(cls, parser):
        """Add command-specific arguments to the parser."""
        pass

    @classmethod
    @abstractmethod
    def help(cls) -> str:
        """Return help text for the command."""
        pass
