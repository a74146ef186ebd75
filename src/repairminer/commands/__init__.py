"""
Command handlers for RepairMiner CLI.
"""
from .base import BaseCommand, CommandContext
from .dataset import DatasetCommand
from .project import ProjectCommand

__all__ = [
    'BaseCommand',
    'CommandContext',
    'DatasetCommand',
    'ProjectCommand',
    'COMMAND_REGISTRY'
]

# Command registry
COMMAND_REGISTRY = {
    'dataset': DatasetCommand,
    'project': ProjectCommand,
}
