"""
Errors - Exception types raised by the vehicle dynamics core.
"""

from typing import Iterable, List


class VDCError(Exception):
    """Base class for all vehicle dynamics errors."""


class ConfigInvalidError(VDCError, ValueError):
    """Configuration rejected at construction.

    Attributes:
        problems: Every problem found, in discovery order
    """

    def __init__(self, problems: Iterable[str]):
        self.problems: List[str] = list(problems)
        lines = "\n".join(f"  - {problem}" for problem in self.problems)
        super().__init__(f"Invalid vehicle configuration:\n{lines}")


class NumericalDegeneracyError(VDCError, ArithmeticError):
    """NaN or Inf found in vehicle state at the end of a step."""


class SnapshotVersionError(VDCError, ValueError):
    """Snapshot written by an unsupported format version."""
