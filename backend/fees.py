"""
Split total fees across display categories.

The event source reports a single fee figure per fill, so the split uses fixed
weights.  It is an estimate for charting, not a measured breakdown.
"""
from __future__ import annotations

from typing import List, Mapping, Optional, Sequence

from config import DEFAULT_FEE_WEIGHTS
from models import FeeBreakdown, Trade

_RESIDUAL_TOLERANCE = 1e-9


def summarize_fees(
    trades: Sequence[Trade],
    weights: Optional[Mapping[str, float]] = None,
) -> List[FeeBreakdown]:
    """
    Allocate the trades' total fees over named categories by percentage weight.

    The first category takes whatever is left after the others, so the amounts
    always add back up to the total; a residual within 1e-9 of the total is
    snapped to zero.  Categories that come out at zero are dropped, and so is
    everything when there are no fees at all.
    """
    weights = DEFAULT_FEE_WEIGHTS if weights is None else weights
    if not weights:
        return []
    if any(w < 0 for w in weights.values()):
        raise ValueError("fee weights must be non-negative")

    total = sum(t.fees for t in trades)
    if total == 0:
        return []

    names = list(weights)
    amounts = {name: total * weights[name] / 100 for name in names[1:]}
    residual = total - sum(amounts.values())
    # Float noise left over when the first weight is zero.
    if abs(residual) <= _RESIDUAL_TOLERANCE * abs(total):
        residual = 0.0
    amounts[names[0]] = residual

    return [
        FeeBreakdown(type=name, amount=amounts[name], percentage=weights[name])
        for name in names
        if amounts[name] > 0
    ]
