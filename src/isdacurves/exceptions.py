"""
Exception hierarchy for curve construction.

All errors raised by the library derive from CurveError so that callers
can catch a single base class. Configuration errors also derive from
ValueError, numerical failures from RuntimeError.
"""

from typing import Optional


class CurveError(Exception):
    """Base class for all curve construction errors."""


class CurveConfigurationError(CurveError, ValueError):
    """Invalid inputs: bad node sets, inconsistent dates, unknown conventions."""


class MissingQuoteError(CurveConfigurationError):
    """A node refers to a quote identifier absent from the market data."""

    def __init__(self, quote_id: str):
        super().__init__(f"No market quote found for '{quote_id}'")
        self.quote_id = quote_id


class RootFindingError(CurveError, RuntimeError):
    """A one-dimensional root search failed to bracket or converge."""


class CalibrationError(CurveError, RuntimeError):
    """
    A node of a curve could not be calibrated.

    Attributes:
        node_index: Position of the failing node in calibration order
        quote_id: Quote identifier of the failing node
    """

    def __init__(self, message: str, node_index: Optional[int] = None, quote_id: Optional[str] = None):
        super().__init__(message)
        self.node_index = node_index
        self.quote_id = quote_id


__all__ = [
    "CurveError",
    "CurveConfigurationError",
    "MissingQuoteError",
    "RootFindingError",
    "CalibrationError",
]
