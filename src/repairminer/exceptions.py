"""
Exception classes for RepairMiner.
"""


class RepairMinerError(Exception):
    """Base exception for all RepairMiner errors."""
    pass


class RecoverableAnalysisError(RepairMinerError):
    """A file pair cannot be analyzed, but the batch may continue."""
    pass


class EmptyInputError(RecoverableAnalysisError):
    """Exception raised when the buggy or repaired source text is empty."""
    pass


class ASTBuildError(RecoverableAnalysisError):
    """Exception raised when the parser rejects a source file."""
    pass


class InternalError(RepairMinerError):
    """Exception raised for unexpected failures inside the differencer."""
    pass


class InvariantViolation(RepairMinerError):
    """Exception raised when a structural invariant does not hold."""
    pass


class MalformedVectorError(RepairMinerError):
    """Exception raised for persisted feature vectors that cannot be read."""
    pass


class ClustererError(RepairMinerError):
    """Exception raised when the external clusterer fails."""
    pass


class ConfigurationError(RepairMinerError):
    """Exception raised for configuration errors."""
    pass


class GitProjectAnalysisError(RepairMinerError):
    """Exception raised when a repository cannot be opened or cloned."""
    pass
