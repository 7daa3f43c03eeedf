"""
Numerical settings shared by the discount and credit curve calibrators.
"""

from dataclasses import dataclass, fields, asdict
from typing import Any, Dict, Optional

import numpy as np

from .exceptions import CurveConfigurationError


@dataclass(frozen=True)
class CalibrationSettings:
    """
    Root finder and Jacobian settings.

    Attributes:
        root_tolerance: Absolute tolerance on the calibrated zero rate
        relative_tolerance: Relative tolerance on the calibrated zero rate
        max_iterations: Maximum iterations of Brent / Newton searches
        bracket_ratio: Expansion factor applied when bracketing a root
        max_bracket_steps: Maximum number of bracket expansions
        low_value_threshold: Guesses below this magnitude are refined by Newton
            instead of a multiplicative bracket
        compute_jacobian: Attach the quote Jacobian to calibrated curves
    """
    root_tolerance: float = 1e-15
    relative_tolerance: float = 4 * np.finfo(float).eps
    max_iterations: int = 100
    bracket_ratio: float = 1.6
    max_bracket_steps: int = 50
    low_value_threshold: float = 1e-3
    compute_jacobian: bool = True

    def __post_init__(self):
        if self.root_tolerance <= 0:
            raise CurveConfigurationError("root_tolerance must be positive")
        if self.relative_tolerance < 4 * np.finfo(float).eps:
            raise CurveConfigurationError("relative_tolerance must be at least 4 * machine epsilon")
        if self.max_iterations < 1:
            raise CurveConfigurationError("max_iterations must be at least 1")
        if self.bracket_ratio <= 0:
            raise CurveConfigurationError("bracket_ratio must be positive")
        if self.max_bracket_steps < 1:
            raise CurveConfigurationError("max_bracket_steps must be at least 1")
        if self.low_value_threshold < 0:
            raise CurveConfigurationError("low_value_threshold must be non-negative")

    @classmethod
    def default(cls) -> "CalibrationSettings":
        return cls()

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]] = None) -> "CalibrationSettings":
        """
        Build settings from a mapping, e.g. a parsed YAML or JSON document.

        Unknown keys are rejected.
        """
        values = dict(values or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise CurveConfigurationError(f"Unknown calibration settings: {', '.join(unknown)}")
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = ["CalibrationSettings"]
