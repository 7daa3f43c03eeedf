"""
Analytic Jacobian of bootstrapped curves.

Node i of a bootstrapped curve solves F_i(x_0, ..., x_i; q_i) = 0, where x
are the node values and q_i the quote of node i. Differentiating implicitly,

    A @ J = -diag(dF_i/dq_i),    A[i, k] = dF_i/dx_k  (lower triangular)

so J = dx/dq follows from one triangular solve. The same pricing functions
that drive the bootstrap supply A and the quote derivatives.
"""

from typing import Sequence

import numpy as np
from scipy.linalg import solve_triangular

from ..exceptions import CalibrationError


def bootstrap_jacobian(node_derivatives: np.ndarray, quote_derivatives: np.ndarray) -> np.ndarray:
    """
    Solve the implicit-function system of a sequential bootstrap.

    Args:
        node_derivatives: Matrix dF_i/dx_k, lower triangular (n x n)
        quote_derivatives: Vector dF_i/dq_i (n)

    Returns:
        Matrix dx_i/dq_j in calibration order (n x n)

    Raises:
        CalibrationError: If a node equation does not depend on its own node
    """
    a = np.asarray(node_derivatives, dtype=np.float64)
    q = np.asarray(quote_derivatives, dtype=np.float64)
    n = len(q)
    if a.shape != (n, n):
        raise CalibrationError(f"Node derivative matrix has shape {a.shape}, expected {(n, n)}")

    diagonal = np.diag(a)
    singular = np.flatnonzero(diagonal == 0.0)
    if singular.size:
        i = int(singular[0])
        raise CalibrationError(f"Pricing equation of node {i} is insensitive to its own value", node_index=i)

    return solve_triangular(np.tril(a), -np.diag(q), lower=True)


def reorder_columns(jacobian: np.ndarray, order: Sequence[int]) -> np.ndarray:
    """
    Map Jacobian columns from calibration order back to input order.

    Args:
        jacobian: Matrix whose column k belongs to input quote order[k]
        order: Calibration order as indices into the input list

    Returns:
        Matrix whose column j belongs to input quote j
    """
    jacobian = np.asarray(jacobian, dtype=np.float64)
    result = np.empty_like(jacobian)
    result[:, list(order)] = jacobian
    return result


__all__ = [
    "bootstrap_jacobian",
    "reorder_columns",
]
