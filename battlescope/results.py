"""
Result aggregation and the trial budget
Workers finish a trial by asking the budget for admission and, if admitted,
recording the decision. The two steps take separate locks, so a reader can
briefly see the counter ahead of the tally; the tally itself never goes past
the cap.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from battlescope.moves import label

logger = logging.getLogger(__name__)


class TrialBudget:
    """Shared counter of admitted trials with an optional cap"""

    def __init__(self, cap: Optional[int] = None):
        if cap is not None and cap < 0:
            raise ValueError(f"Trial cap must be non-negative, got {cap}")
        self.cap = cap
        self._admitted = 0
        self._lock = threading.Lock()

    def try_admit(self) -> bool:
        """Count one more trial; False (and no count) once the cap is reached"""
        with self._lock:
            self._admitted += 1
            if self.cap is not None and self._admitted > self.cap:
                self._admitted -= 1
                return False
            return True

    @property
    def admitted(self) -> int:
        with self._lock:
            return self._admitted

    @property
    def exhausted(self) -> bool:
        with self._lock:
            return self.cap is not None and self._admitted >= self.cap


class ResultAggregator:
    """Thread-safe tally of decision code -> occurrences"""

    def __init__(self):
        self._counts: Dict[int, int] = {}
        self._lock = threading.Lock()

    def record(self, code: int) -> None:
        with self._lock:
            self._counts[code] = self._counts.get(code, 0) + 1

    def results(self) -> Dict[int, int]:
        """Point-in-time copy of the tally"""
        with self._lock:
            return dict(self._counts)

    def total(self) -> int:
        with self._lock:
            return sum(self._counts.values())


@dataclass
class MoveShare:
    """One row of a results summary"""
    code: int
    name: str
    count: int
    share: float
    stderr: float

    def to_dict(self) -> Dict:
        return {
            'code': self.code,
            'name': self.name,
            'count': self.count,
            'share': self.share,
            'stderr': self.stderr,
        }


def summarize(results: Dict[int, int]) -> List[MoveShare]:
    """
    Turn raw counts into per-move shares

    Args:
        results: decision code -> count

    Returns:
        Rows sorted by decision code, each with its share of all trials and
        the binomial standard error of that share
    """
    if not results:
        return []

    codes = np.array(sorted(results), dtype=np.int64)
    counts = np.array([results[int(code)] for code in codes], dtype=np.float64)
    total = counts.sum()
    if total <= 0:
        return []

    shares = counts / total
    stderrs = np.sqrt(shares * (1.0 - shares) / total)

    return [
        MoveShare(
            code=int(code),
            name=label(int(code)),
            count=int(count),
            share=float(share),
            stderr=float(stderr),
        )
        for code, count, share, stderr in zip(codes, counts, shares, stderrs)
    ]
