"""Small numeric helpers shared by the flagging policy and dashboard read models."""
from __future__ import annotations

import math
from typing import Iterable, Optional

RATING_SCALE_MAX = 5


def round_half_up(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


def average(values: Iterable[float]) -> Optional[float]:
    items = [float(v) for v in values]
    if not items:
        return None
    return sum(items) / len(items)


def normalized_percentage(scores: Iterable[int]) -> Optional[int]:
    """Average 1-5 rating expressed as a 0-100 percentage."""
    avg = average(scores)
    if avg is None:
        return None
    return round_half_up(avg / RATING_SCALE_MAX * 100)
