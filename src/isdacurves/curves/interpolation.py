"""
Interpolation methods for ISDA compliant curves.

Provides:
- ProductLinearInterpolator: linear interpolation of r(t) * t between nodes

The ISDA Standard Model interpolates the product of the zero rate and the
time linearly, which is equivalent to piecewise constant forward rates.
To the left of the first node the zero rate is flat; to the right of the
last node the last segment is extended linearly.
"""

from abc import ABC, abstractmethod
from typing import Optional
import numpy as np

from ..exceptions import CurveConfigurationError


class Interpolator(ABC):
    """Abstract base class for curve interpolation."""

    @abstractmethod
    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit the interpolator to data points.

        Args:
            times: Array of year fractions (must be sorted ascending)
            values: Array of zero rates
        """
        pass

    @abstractmethod
    def interpolate(self, t: float) -> float:
        """
        Interpolate at a single point.

        Args:
            t: Year fraction

        Returns:
            Interpolated value
        """
        pass

    def __call__(self, t: float) -> float:
        """Convenience method to call interpolate."""
        return self.interpolate(t)

    @abstractmethod
    def derivative(self, t: float) -> float:
        """
        Return the first derivative of the interpolated value at point t.
        """
        pass


class ProductLinearInterpolator(Interpolator):
    """
    Product-linear interpolation of zero rates.

    With nodes (t_i, r_i), the quantity rt = r * t is linear between
    consecutive nodes. A single node gives a flat curve.
    """

    def __init__(self):
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None
        self.rt_values: Optional[np.ndarray] = None

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """Fit the interpolator to node times and zero rates."""
        times = np.asarray(times, dtype=np.float64)
        values = np.asarray(values, dtype=np.float64)
        if times.ndim != 1 or times.shape != values.shape:
            raise CurveConfigurationError("Times and values must be 1-d arrays of the same length")
        if len(times) == 0:
            raise CurveConfigurationError("Need at least 1 point for interpolation")
        if len(times) > 1:
            if np.any(np.diff(times) <= 0):
                raise CurveConfigurationError("Node times must be strictly increasing")
            if times[0] <= 0:
                raise CurveConfigurationError("First node time must be positive")

        self.times = times
        self.values = values
        self.rt_values = times * values

    def _check_fitted(self):
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")

    def _segment(self, t: float) -> int:
        """Index i of the segment [t_i, t_{i+1}] used at time t (t > t_0)."""
        idx = int(np.searchsorted(self.times, t, side='left')) - 1
        return max(0, min(idx, len(self.times) - 2))

    def rt(self, t: float) -> float:
        """Interpolated r(t) * t."""
        self._check_fitted()
        if len(self.times) == 1 or t <= self.times[0]:
            return float(self.values[0] * t)

        i = self._segment(t)
        t0, t1 = self.times[i], self.times[i + 1]
        rt0, rt1 = self.rt_values[i], self.rt_values[i + 1]
        return float(rt0 + (rt1 - rt0) * (t - t0) / (t1 - t0))

    def interpolate(self, t: float) -> float:
        """Zero rate at time t; the first rate applies at t = 0."""
        self._check_fitted()
        if t == 0.0:
            return float(self.values[0])
        return self.rt(t) / t

    def forward(self, t: float) -> float:
        """Instantaneous forward rate d(rt)/dt, piecewise constant."""
        self._check_fitted()
        if len(self.times) == 1 or t <= self.times[0]:
            return float(self.values[0])

        i = self._segment(t)
        t0, t1 = self.times[i], self.times[i + 1]
        return float((self.rt_values[i + 1] - self.rt_values[i]) / (t1 - t0))

    def derivative(self, t: float) -> float:
        """Derivative of the zero rate, (f(t) - r(t)) / t."""
        self._check_fitted()
        if t == 0.0:
            return 0.0
        return (self.forward(t) - self.interpolate(t)) / t

    def weights(self, t: float) -> np.ndarray:
        """
        Sensitivity of rt(t) to each node zero rate.

        rt(t) is linear in the node rates, so rt(t) = weights(t) . values.
        The weights depend on the node times only.

        Args:
            t: Year fraction

        Returns:
            Array with one weight per node
        """
        self._check_fitted()
        n = len(self.times)
        w = np.zeros(n)
        if n == 1 or t <= self.times[0]:
            w[0] = t
            return w

        i = self._segment(t)
        t0, t1 = self.times[i], self.times[i + 1]
        dt = t1 - t0
        w[i] = (t1 - t) * t0 / dt
        w[i + 1] = (t - t0) * t1 / dt
        return w


__all__ = [
    "Interpolator",
    "ProductLinearInterpolator",
]
