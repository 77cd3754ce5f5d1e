"""
Error taxonomy for the tuning engine.

Every failure in the core is local and recoverable; these types let callers
tell the cases apart without parsing messages.
"""


class TuningError(Exception):
    """Base class for all tuning engine errors."""


class InvalidConfigurationError(TuningError, ValueError):
    """Optimizer/validator/engine configuration outside sane bounds."""


class ConcurrentOperationError(TuningError):
    """An optimize/validate/train call arrived while another is in flight."""


class BenchmarkFailureError(TuningError):
    """A benchmark pass could not complete."""


class PersistenceFailureError(TuningError):
    """The key-value store could not be read, decoded or written."""


class OperationCancelledError(TuningError):
    """A long-running task observed its cancellation token."""
