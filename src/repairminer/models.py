"""
Shared data models for RepairMiner.
"""

from dataclasses import dataclass, field
from enum import Enum


class ChangeType(Enum):
    """Change label attached to AST nodes, CFG nodes and keywords."""
    UNCHANGED = "UNCHANGED"
    INSERTED = "INSERTED"
    REMOVED = "REMOVED"
    UPDATED = "UPDATED"
    MOVED = "MOVED"
    UNKNOWN = "UNKNOWN"

    @property
    def is_change(self) -> bool:
        """True for labels that describe an edit."""
        return self not in (ChangeType.UNCHANGED, ChangeType.UNKNOWN)


@dataclass(frozen=True)
class AnalysisMetaInformation:
    """Identifies one buggy/repaired file pair.

    The source texts travel with the meta information so that a runner can
    analyze the pair without touching the repository again. They are left
    out of equality so two alerts about the same file compare equal even
    when one was built from a re-read copy of the text.
    """

    project_id: str
    buggy_commit_id: str
    repaired_commit_id: str
    buggy_file: str
    repaired_file: str
    buggy_code: str = field(default="", compare=False, repr=False)
    repaired_code: str = field(default="", compare=False, repr=False)

    @property
    def is_empty(self) -> bool:
        """True if either side of the pair has no source text."""
        return not (self.buggy_code and self.buggy_code.strip()) or \
            not (self.repaired_code and self.repaired_code.strip())

    def describe(self) -> str:
        """Short human readable description used in log messages."""
        return (f"{self.project_id} {self.buggy_commit_id[:8]}..{self.repaired_commit_id[:8]} "
                f"{self.repaired_file or self.buggy_file}")
