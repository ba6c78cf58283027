"""
Grid Analysis
=============
Derived display scores for a record. Pure functions: no state, no I/O.

The load used is the ledger-verified cleartext when available, otherwise the
caller's provisional value, otherwise the public capacity as a placeholder.
GridAnalysis.confirmed tells which case applied.
"""

from dataclasses import dataclass, asdict
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class GridAnalysis:
    balance: int
    efficiency: int
    stability: int
    risk: int
    optimization: int
    load: int
    capacity: int
    confirmed: bool

    def to_dict(self) -> dict:
        return asdict(self)


def _score(value: float) -> int:
    # halves round up (0.5 -> 1), not to even
    return int(np.clip(np.floor(value + 0.5), 0, 100))


def compute_scores(load: int, capacity: int) -> dict:
    """Five bounded scores in [0, 100]; zero capacity scores 0 across the board"""
    if capacity <= 0:
        return {'balance': 0, 'efficiency': 0, 'stability': 0, 'risk': 0, 'optimization': 0}

    ratio = load / capacity

    if load > capacity * 0.9:
        risk = 85
    elif load > capacity * 0.7:
        risk = 60
    else:
        risk = 30

    return {
        'balance': _score(min(100, ratio * 100)),
        'efficiency': _score(min(95, load * 100 / capacity)),
        'stability': _score(max(60, 100 - abs(load - capacity / 2) / capacity * 100)),
        'risk': risk,
        'optimization': _score(min(90, (capacity - load) / capacity * 100)),
    }


def analyze_grid(record, provisional_load: Optional[int] = None) -> GridAnalysis:
    """
    Args:
        record: Record with capacity, verified and clear_load attributes
        provisional_load: Locally decrypted, not yet confirmed load
    """
    capacity = record.capacity
    if record.verified and record.clear_load is not None:
        load, confirmed = record.clear_load, True
    elif provisional_load is not None:
        load, confirmed = provisional_load, False
    else:
        load, confirmed = capacity, False

    return GridAnalysis(load=load, capacity=capacity, confirmed=confirmed,
                        **compute_scores(load, capacity))
