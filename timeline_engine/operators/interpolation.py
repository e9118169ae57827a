"""
Keyframe interpolation and easing.

``evaluate`` returns a parameter's value at an effect-relative time. Between
two keyframes the curve of the *earlier* keyframe is applied. Only number
parameters blend; every other kind holds the most recent keyframe's value.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from typing import Any, Callable

from timeline_engine.models.timeline_models import Easing, EffectParameter
from timeline_engine.operators.parameter_values import clamp, is_interpolatable

_BEZIER_EPSILON = 1e-7
_NEWTON_ITERATIONS = 8
_BISECTION_ITERATIONS = 60


def linear(t: float) -> float:
    return t


def ease_in(t: float) -> float:
    return t * t


def ease_out(t: float) -> float:
    return 1 - (1 - t) * (1 - t)


def ease_in_out(t: float) -> float:
    if t < 0.5:
        return 2 * t * t
    return 1 - ((-2 * t + 2) ** 2) / 2


def cubic_bezier(x1: float, y1: float, x2: float, y2: float, t: float) -> float:
    """
    Remap progress ``t`` through the curve (0,0) (x1,y1) (x2,y2) (1,1).

    The curve is parametric, so first solve x(s) == t for s and then return
    y(s). x is monotonic because x1 and x2 lie in [0, 1].
    """
    if t <= 0.0:
        return 0.0
    if t >= 1.0:
        return 1.0
    if x1 == y1 and x2 == y2:
        return t

    cx = 3.0 * x1
    bx = 3.0 * (x2 - x1) - cx
    ax = 1.0 - cx - bx
    cy = 3.0 * y1
    by = 3.0 * (y2 - y1) - cy
    ay = 1.0 - cy - by

    def sample_x(s: float) -> float:
        return ((ax * s + bx) * s + cx) * s

    def sample_y(s: float) -> float:
        return ((ay * s + by) * s + cy) * s

    def slope_x(s: float) -> float:
        return (3.0 * ax * s + 2.0 * bx) * s + cx

    s = t
    for _ in range(_NEWTON_ITERATIONS):
        error = sample_x(s) - t
        if abs(error) < _BEZIER_EPSILON:
            return sample_y(s)
        slope = slope_x(s)
        if abs(slope) < 1e-6:
            break
        s -= error / slope

    lo, hi = 0.0, 1.0
    s = t
    for _ in range(_BISECTION_ITERATIONS):
        x = sample_x(s)
        if abs(x - t) < _BEZIER_EPSILON:
            break
        if x < t:
            lo = s
        else:
            hi = s
        s = (lo + hi) / 2.0
    return sample_y(s)


EASING_FUNCTIONS: dict[Easing, Callable[[float], float]] = {
    Easing.LINEAR: linear,
    Easing.EASE_IN: ease_in,
    Easing.EASE_OUT: ease_out,
    Easing.EASE_IN_OUT: ease_in_out,
}


def resolve_easing(
    easing: Easing | str | None,
    bezier_points: tuple[float, float, float, float] | None = None,
) -> Callable[[float], float]:
    if not easing:
        return linear
    easing = Easing(easing)
    if easing is Easing.BEZIER:
        # no control points stored: nothing to remap with
        if bezier_points is None:
            return linear
        x1, y1, x2, y2 = bezier_points
        return lambda t: cubic_bezier(x1, y1, x2, y2, t)
    return EASING_FUNCTIONS[easing]


def apply_easing(
    easing: Easing | str | None,
    t: float,
    bezier_points: tuple[float, float, float, float] | None = None,
) -> float:
    return resolve_easing(easing, bezier_points)(clamp(t, 0.0, 1.0))


def interpolate(
    start: float,
    end: float,
    t: float,
    easing: Easing | str | None = None,
    bezier_points: tuple[float, float, float, float] | None = None,
) -> float:
    return start + (end - start) * apply_easing(easing, t, bezier_points)


def evaluate(parameter: EffectParameter, at_time: float) -> Any:
    """
    Value of ``parameter`` at effect-relative ``at_time``.

    - no keyframes: the static value
    - before the first / after the last keyframe: that keyframe's value
    - exactly on a keyframe time: the earliest-inserted keyframe at that time
    - otherwise: the bracketing pair k1.time <= at_time < k2.time, blended
      with k1's easing (number parameters) or held at k1 (other kinds)
    """
    keyframes = parameter.keyframes
    if not keyframes:
        return parameter.value

    if at_time < keyframes[0].time:
        return keyframes[0].value
    if at_time > keyframes[-1].time:
        return keyframes[-1].value

    # keyframes are kept sorted by time, equal times in insertion order
    hit = bisect_left(keyframes, at_time, key=lambda k: k.time)
    if hit < len(keyframes) and keyframes[hit].time == at_time:
        return keyframes[hit].value

    idx = bisect_right(keyframes, at_time, key=lambda k: k.time)
    k1 = keyframes[idx - 1]
    k2 = keyframes[idx]

    if not is_interpolatable(parameter.kind):
        return k1.value

    t = (at_time - k1.time) / (k2.time - k1.time)
    return interpolate(k1.value, k2.value, t, k1.easing, k1.bezier_points)


def sample_curve(
    parameter: EffectParameter,
    start: float,
    end: float,
    steps: int = 50,
) -> list[tuple[float, Any]]:
    """Evenly sample ``parameter`` over [start, end], endpoints included."""
    if steps < 1:
        raise ValueError("steps must be >= 1")
    span = end - start
    return [
        (start + span * i / steps, evaluate(parameter, start + span * i / steps))
        for i in range(steps + 1)
    ]
