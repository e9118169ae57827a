"""
Parameter value checking.

An effect parameter's ``kind`` tags its value. Every write (static value,
keyframe value, default) passes through ``coerce_value`` which either returns
the normalized value or raises InvalidValueError.

Normalized shapes:
    number          -> float (clamped to [min, max] when both bounds are set)
    string          -> str
    boolean         -> bool
    color           -> str, "#rgb" / "#rrggbb" / "#rrggbbaa"
    select          -> one of the parameter's option values
    vector2/vector3 -> list[float] of length 2 / 3
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from typing import Any

from timeline_engine.models.timeline_models import (
    EffectParameter,
    ParameterKind,
    ParameterSpec,
    SelectOption,
    new_id,
)
from timeline_engine.operators.errors import InvalidValueError


_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")

_VECTOR_SIZES = {
    ParameterKind.VECTOR2: 2,
    ParameterKind.VECTOR3: 3,
}

_VECTOR_KEYS = ("x", "y", "z")


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid number here
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def clamp(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def _coerce_number(value: Any, minimum: float | None, maximum: float | None) -> float:
    if not _is_number(value):
        raise InvalidValueError(f"Expected a number, got {type(value).__name__}", value)
    number = float(value)
    if not math.isfinite(number):
        raise InvalidValueError("Number must be finite", value)
    if minimum is not None and maximum is not None:
        number = clamp(number, minimum, maximum)
    return number


def _coerce_vector(value: Any, size: int) -> list[float]:
    if isinstance(value, Mapping):
        keys = _VECTOR_KEYS[:size]
        if not all(k in value for k in keys):
            raise InvalidValueError(f"Vector mapping needs keys {', '.join(keys)}", value)
        value = [value[k] for k in keys]
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise InvalidValueError(f"Expected a sequence of {size} numbers", value)
    if len(value) != size:
        raise InvalidValueError(f"Expected {size} components, got {len(value)}", value)
    components = []
    for component in value:
        if not _is_number(component) or not math.isfinite(float(component)):
            raise InvalidValueError("Vector components must be finite numbers", value)
        components.append(float(component))
    return components


def coerce_value(
    kind: ParameterKind,
    value: Any,
    *,
    minimum: float | None = None,
    maximum: float | None = None,
    options: Sequence[Any] | None = None,
) -> Any:
    """Check ``value`` against ``kind`` and return its normalized form."""
    kind = ParameterKind(kind)

    if kind is ParameterKind.NUMBER:
        return _coerce_number(value, minimum, maximum)

    if kind is ParameterKind.STRING:
        if not isinstance(value, str):
            raise InvalidValueError(f"Expected a string, got {type(value).__name__}", value)
        return value

    if kind is ParameterKind.BOOLEAN:
        if not isinstance(value, bool):
            raise InvalidValueError(f"Expected a boolean, got {type(value).__name__}", value)
        return value

    if kind is ParameterKind.COLOR:
        if not isinstance(value, str) or not _COLOR_RE.match(value):
            raise InvalidValueError(f"Expected a hex color such as '#00ff00', got {value!r}", value)
        return value

    if kind is ParameterKind.SELECT:
        allowed = [o.value if isinstance(o, SelectOption) else o for o in (options or [])]
        if allowed:
            if value not in allowed:
                raise InvalidValueError(f"{value!r} is not one of {allowed}", value)
            return value
        if not isinstance(value, str):
            raise InvalidValueError("Select value must be a string", value)
        return value

    return _coerce_vector(value, _VECTOR_SIZES[kind])


def coerce_parameter_value(parameter: EffectParameter, value: Any) -> Any:
    """Check a value written to an existing parameter."""
    return coerce_value(
        parameter.kind,
        value,
        minimum=parameter.min,
        maximum=parameter.max,
        options=parameter.options,
    )


def default_for_kind(kind: ParameterKind, options: Sequence[Any] | None = None) -> Any:
    kind = ParameterKind(kind)
    if kind is ParameterKind.NUMBER:
        return 0.0
    if kind is ParameterKind.BOOLEAN:
        return False
    if kind is ParameterKind.COLOR:
        return "#000000"
    if kind is ParameterKind.SELECT:
        if options:
            first = options[0]
            return first.value if isinstance(first, SelectOption) else first
        return ""
    if kind in _VECTOR_SIZES:
        return [0.0] * _VECTOR_SIZES[kind]
    return ""


def build_parameter(spec: ParameterSpec) -> EffectParameter:
    """
    Build a checked EffectParameter from a spec.

    A missing default falls back to the kind's zero value; a missing value
    falls back to the default.

    Raises:
        InvalidValueError: On inverted bounds or values that do not fit the kind
    """
    if spec.min is not None and spec.max is not None and spec.min > spec.max:
        raise InvalidValueError(
            f"Parameter '{spec.name}' has min {spec.min} greater than max {spec.max}"
        )

    def check(raw: Any) -> Any:
        return coerce_value(
            spec.kind, raw, minimum=spec.min, maximum=spec.max, options=spec.options
        )

    raw_default = spec.default if spec.default is not None else default_for_kind(spec.kind, spec.options)
    default = check(raw_default)
    value = check(spec.value) if spec.value is not None else default

    return EffectParameter(
        id=spec.id or new_id("param"),
        name=spec.name,
        kind=spec.kind,
        value=value,
        default=default,
        min=spec.min,
        max=spec.max,
        options=spec.options,
    )


def is_interpolatable(kind: ParameterKind) -> bool:
    """Only number parameters blend between keyframes; the rest step."""
    return ParameterKind(kind) is ParameterKind.NUMBER
