"""Exceptions raised by summarytab."""

from __future__ import annotations


class SummaryTableError(Exception):
    """Base class for summarytab errors."""


class InvalidInput(SummaryTableError, ValueError):
    """Raised when a statistic receives empty, non-numeric or mis-shaped data."""


class DegenerateStatistic(InvalidInput):
    """Raised when a statistic is undefined for the data (e.g. sd with n < 2)."""


class ShapeMismatch(SummaryTableError, ValueError):
    """Raised when names or tables do not line up with a table's rows/columns."""


class UnresolvedReference(SummaryTableError, KeyError):
    """Raised when an expression references a column absent from the data."""

    def __str__(self) -> str:
        # KeyError quotes its message; keep the message readable
        return str(self.args[0]) if self.args else ""
