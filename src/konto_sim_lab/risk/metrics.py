from __future__ import annotations
import numpy as np


def cagr_from_multiplier(multiplier: float, years: int) -> float | None:
    """Annual rate that turns 1 into `multiplier` over `years`. None when undefined."""
    if years <= 0 or not multiplier > 0:
        return None
    return float(multiplier ** (1.0 / years) - 1.0)


def describe(values) -> dict:
    """min / median / max of a non-empty sample."""
    v = np.asarray(values, dtype=float)
    if v.size == 0:
        raise ValueError("describe() needs at least one value")
    return {
        "min": float(np.min(v)),
        "median": float(np.median(v)),
        "max": float(np.max(v)),
    }


def win_rate(a, b) -> float:
    """Share of paired outcomes where a > b."""
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape or a.size == 0:
        raise ValueError("win_rate() needs two non-empty samples of equal length")
    return float(np.mean(a > b))
