import math
from datetime import datetime
from typing import Optional

BASE_POINTS = {'easy': 100, 'medium': 200, 'hard': 300}
DEFAULT_BASE_POINTS = 200
TIME_BONUS_WEIGHT = 0.5
TIP_PENALTY_PER_TIP = 0.2
MIN_POINTS = 10
SOLUTION_TIP = 3


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def elapsed_seconds(time_started: Optional[datetime], time_answered: datetime) -> float:
    """Seconds between start and answer, clamped at 0 against clock skew."""
    if time_started is None:
        return 0.0
    return max(0.0, (time_answered - time_started).total_seconds())


def calculate_points(difficulty: str, time_limit_seconds: Optional[int], elapsed: float, used_tip: int) -> int:
    """Points for a correct answer.

    Base points by difficulty, up to +50% for unused time, -20% per tip
    used, never below 10 unless the solution tip was revealed, in which case
    the answer is worth nothing.
    """
    if (used_tip or 0) >= SOLUTION_TIP:
        return 0

    base = BASE_POINTS.get(difficulty, DEFAULT_BASE_POINTS)
    elapsed = max(0.0, float(elapsed or 0))
    if time_limit_seconds and time_limit_seconds > 0:
        time_bonus = max(0.0, time_limit_seconds - elapsed) / time_limit_seconds
    else:
        time_bonus = 0.0
    tip_penalty = (used_tip or 0) * TIP_PENALTY_PER_TIP

    points = _round_half_up(base * (1 + time_bonus * TIME_BONUS_WEIGHT) * (1 - tip_penalty))
    return max(points, MIN_POINTS)
