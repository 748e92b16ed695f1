"""
Numeric safety helpers shared by the biomechanics pipeline.

Every value leaving the engine passes through ``sanitize`` so that NaN or
Infinity produced by degenerate geometry never reaches the caller.
"""

import numpy as np


def sanitize(value, default: float = 0.0) -> float:
    """Return ``value`` as a float, or ``default`` when it is NaN/Inf/None."""
    if value is None:
        return default
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    if not np.isfinite(v):
        return default
    return v


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp to ``[lo, hi]``; non-finite input clamps from 0.0."""
    return float(min(max(sanitize(value), lo), hi))


def safe_divide(numerator: float, denominator: float, default: float = 0.0,
                eps: float = 1e-9) -> float:
    """Divide, returning ``default`` for near-zero or non-finite denominators."""
    if not np.isfinite(denominator) or abs(denominator) < eps:
        return default
    return sanitize(numerator / denominator, default)


def to_percent(score: float) -> float:
    """Map a 0..1 score to the 0..100 output scale, rounded to one decimal."""
    return round(clamp(sanitize(score), 0.0, 1.0) * 100.0, 1)


def effective_dt(dt, default: float, max_dt: float) -> float:
    """Replace non-positive, non-finite or over-long frame intervals with ``default``."""
    v = sanitize(dt, default)
    if v <= 0.0 or v > max_dt:
        return default
    return v
