"""
Error taxonomy for chart operations.

- DanglingReference: an id does not resolve (bad input, recoverable)
- CorruptData: persisted chart failed validation (load aborted)
- InvariantViolation: internal bug, never caught inside the package
"""
from typing import Iterable, List


class ChartError(Exception):
    """Base class for all chart errors."""


class DanglingReference(ChartError, LookupError):
    """
    An id given to (or found by) an operation does not exist.

    Attributes:
        category: Registry that was searched ("timepoint", "note", ...)
        id: The id that did not resolve
    """

    def __init__(self, category: str, id: int):
        self.category = category
        self.id = id
        super().__init__(f"No {category} with id {id}")


class CorruptData(ChartError, ValueError):
    """
    Persisted chart data is malformed or violates referential integrity.

    Attributes:
        problems: Every violation found, in detection order
    """

    def __init__(self, problems: Iterable[str]):
        self.problems: List[str] = list(problems)
        if len(self.problems) == 1:
            message = f"Corrupt chart data: {self.problems[0]}"
        else:
            message = f"Corrupt chart data ({len(self.problems)} problems): " + "; ".join(self.problems)
        super().__init__(message)


class InvariantViolation(ChartError, AssertionError):
    """An invariant that earlier mutations should have established does not hold."""
