"""
Curve node ordering and validation.

Checks a set of resolved nodes before any numerical work and returns the
canonical calibration order. Discount nodes are ordered by pillar time
from their common spot date, with all term deposits ahead of the swaps;
CDS nodes are ordered by protection end date.
"""

from datetime import date
from typing import List, Optional, Sequence

import numpy as np

from ..conventions import DayCount, year_fraction
from ..exceptions import CurveConfigurationError
from .instruments import NodeKind


class CurveNodeValidator:
    """
    Validates and orders calibration nodes.

    Attributes:
        day_count: Day count used to measure pillar times
    """

    def __init__(self, day_count: DayCount = DayCount.ACT_365F):
        self.day_count = day_count

    def order_discount_nodes(self, resolved: Sequence, day_count: Optional[DayCount] = None) -> List[int]:
        """
        Order resolved deposits and swaps by pillar time.

        Args:
            resolved: Resolved discount nodes (ResolvedDeposit / ResolvedSwap)
            day_count: Day count of the pillar times (default: the validator's own)

        Returns:
            Indices into resolved in calibration order

        Raises:
            CurveConfigurationError: empty list, differing spot dates,
                non-positive or duplicate pillar times, or a deposit
                maturing after a swap
        """
        if len(resolved) == 0:
            raise CurveConfigurationError("At least one curve node is required")

        spot = resolved[0].start_date
        for node in resolved:
            if node.start_date != spot:
                raise CurveConfigurationError(
                    f"Node '{node.quote_id}' starts on {node.start_date}, expected common spot date {spot}"
                )

        day_count = day_count or self.day_count
        times = np.array([year_fraction(spot, node.pillar_date, day_count) for node in resolved])
        for node, t in zip(resolved, times):
            if t <= 0:
                raise CurveConfigurationError(
                    f"Node '{node.quote_id}' has non-positive time {t} (pillar {node.pillar_date})"
                )

        order = [int(i) for i in np.argsort(times, kind="stable")]
        for prev, curr in zip(order[:-1], order[1:]):
            if resolved[prev].pillar_date == resolved[curr].pillar_date:
                raise CurveConfigurationError(
                    f"Nodes '{resolved[prev].quote_id}' and '{resolved[curr].quote_id}' "
                    f"share pillar date {resolved[curr].pillar_date}"
                )
            if resolved[prev].kind == NodeKind.FIXED_SWAP and resolved[curr].kind == NodeKind.TERM_DEPOSIT:
                raise CurveConfigurationError(
                    f"Term deposit '{resolved[curr].quote_id}' matures after swap '{resolved[prev].quote_id}'"
                )
        return order

    def order_credit_nodes(self, resolved: Sequence, valuation_date: date) -> List[int]:
        """
        Order resolved CDS by protection end date.

        Args:
            resolved: Resolved CDS
            valuation_date: Valuation date of the credit curve

        Returns:
            Indices into resolved in calibration order

        Raises:
            CurveConfigurationError: empty list, expired CDS, or duplicate
                protection end dates
        """
        if len(resolved) == 0:
            raise CurveConfigurationError("At least one CDS node is required")

        for i, cds in enumerate(resolved):
            if cds.protection_end_date <= valuation_date:
                raise CurveConfigurationError(
                    f"CDS node {i} protection ended on {cds.protection_end_date}, "
                    f"not after valuation date {valuation_date}"
                )

        order = sorted(range(len(resolved)), key=lambda i: resolved[i].protection_end_date)
        for prev, curr in zip(order[:-1], order[1:]):
            if resolved[prev].protection_end_date == resolved[curr].protection_end_date:
                raise CurveConfigurationError(
                    f"CDS nodes {prev} and {curr} share protection end date {resolved[curr].protection_end_date}"
                )
        return order


__all__ = ["CurveNodeValidator"]
