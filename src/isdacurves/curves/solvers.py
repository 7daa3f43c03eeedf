"""Root-finding utilities for node-by-node calibration (bracketing, Brent, Newton)."""

from dataclasses import dataclass
from typing import Callable, Tuple

import logging
import math

from scipy.optimize import brentq

from ..exceptions import RootFindingError

logger = logging.getLogger(__name__)

Func = Callable[[float], float]
FuncDeriv = Callable[[float], Tuple[float, float]]


@dataclass
class RootResult:
    root: float
    iterations: int
    converged: bool
    method: str


def bracket_root(
    func: Func,
    x1: float,
    x2: float,
    min_x: float = -math.inf,
    max_x: float = math.inf,
    ratio: float = 1.6,
    max_steps: int = 50,
) -> Tuple[float, float]:
    """Expand (x1, x2) until func changes sign across it.

    The end point with the smaller absolute function value is pushed
    outward by ``ratio`` times the current width. End points are clamped
    to [min_x, max_x]; once both limits are hit the search fails.

    Returns:
        (lower, upper) with lower < upper and a sign change in between

    Raises:
        RootFindingError: If the clamped interval is empty or no sign change is found
    """
    if x1 == x2:
        raise RootFindingError(f"Bracketing requires two distinct points, got {x1}")
    if x1 > x2:
        x1, x2 = x2, x1
    x1 = max(x1, min_x)
    x2 = min(x2, max_x)
    if x1 >= x2:
        raise RootFindingError(f"Starting interval lies outside [{min_x}, {max_x}] after clamping")
    f1 = func(x1)
    f2 = func(x2)
    lower_reached = x1 <= min_x
    upper_reached = x2 >= max_x

    for step in range(max_steps):
        if f1 == 0.0:
            return x1, x1
        if f2 == 0.0:
            return x2, x2
        if f1 * f2 < 0:
            return x1, x2
        if lower_reached and upper_reached:
            break
        if (abs(f1) < abs(f2) and not lower_reached) or upper_reached:
            x1 += ratio * (x1 - x2)
            if x1 <= min_x:
                x1 = min_x
                lower_reached = True
            f1 = func(x1)
        else:
            x2 += ratio * (x2 - x1)
            if x2 >= max_x:
                x2 = max_x
                upper_reached = True
            f2 = func(x2)
        logger.debug("Bracket step %s: [%s, %s] -> [%s, %s]", step, x1, x2, f1, f2)

    logger.debug("Bracketing failed after expansion to [%s, %s]", x1, x2)
    raise RootFindingError(f"Failed to bracket a root; last interval [{x1}, {x2}] with values [{f1}, {f2}]")


def brent_root(
    func: Func,
    lower: float,
    upper: float,
    xtol: float = 1e-15,
    rtol: float = 4 * 2.220446049250313e-16,
    max_iter: int = 100,
) -> RootResult:
    """Brent's method on a bracketing interval (scipy.optimize.brentq)."""
    if lower == upper:
        return RootResult(lower, 0, True, "brent")
    if lower > upper:
        lower, upper = upper, lower
    try:
        root, info = brentq(func, lower, upper, xtol=xtol, rtol=rtol, maxiter=max_iter,
                            full_output=True, disp=False)
    except ValueError as exc:
        raise RootFindingError(f"Brent search on [{lower}, {upper}] failed: {exc}") from exc
    if not info.converged:
        raise RootFindingError(
            f"Brent search on [{lower}, {upper}] did not converge in {info.iterations} iterations"
        )
    return RootResult(float(root), info.iterations, True, "brent")


def newton_root(
    func_and_deriv: FuncDeriv,
    initial_guess: float,
    xtol: float = 1e-15,
    rtol: float = 4 * 2.220446049250313e-16,
    max_iter: int = 100,
) -> RootResult:
    """Newton-Raphson iteration with an analytic derivative.

    Used when the root is close to zero, where a multiplicative bracket
    around the guess collapses. Converged when the step is below
    ``xtol + rtol * |x|``.
    """
    x = float(initial_guess)
    for iteration in range(1, max_iter + 1):
        value, deriv = func_and_deriv(x)
        if value == 0.0:
            return RootResult(x, iteration, True, "newton")
        if deriv == 0.0 or not math.isfinite(deriv):
            raise RootFindingError(f"Newton iteration hit a zero or non-finite derivative at x={x}")
        step = value / deriv
        x -= step
        logger.debug("Newton iter %s: x=%s value=%s deriv=%s", iteration, x, value, deriv)
        if not math.isfinite(x):
            raise RootFindingError("Newton iteration diverged")
        if abs(step) <= xtol + rtol * abs(x):
            return RootResult(x, iteration, True, "newton")
    raise RootFindingError(f"Newton iteration did not converge in {max_iter} iterations (last x={x})")


__all__ = [
    "RootResult",
    "bracket_root",
    "brent_root",
    "newton_root",
]
