import pytest

from timeline_engine.models.timeline_models import EffectParameter, Keyframe, ParameterKind
from timeline_engine.operators import interpolation


def _parameter(kind=ParameterKind.NUMBER, value=0.0, keyframes=()):
    return EffectParameter(id="p", name="p", kind=kind, value=value, keyframes=list(keyframes))


@pytest.mark.parametrize(
    "easing, t, expected",
    [
        ("linear", 0.25, 0.25),
        ("easeIn", 0.5, 0.25),
        ("easeOut", 0.5, 0.75),
        ("easeInOut", 0.25, 0.125),
        ("easeInOut", 0.75, 0.875),
    ],
)
def test_easing_curves(easing, t, expected):
    assert interpolation.apply_easing(easing, t) == pytest.approx(expected)


@pytest.mark.parametrize("easing", ["linear", "easeIn", "easeOut", "easeInOut"])
def test_easing_endpoints(easing):
    assert interpolation.apply_easing(easing, 0.0) == pytest.approx(0.0)
    assert interpolation.apply_easing(easing, 1.0) == pytest.approx(1.0)


def test_bezier_endpoints_and_monotonic():
    points = (0.42, 0.0, 0.58, 1.0)
    samples = [interpolation.apply_easing("bezier", i / 20, points) for i in range(21)]

    assert samples[0] == 0.0
    assert samples[-1] == 1.0
    assert samples == sorted(samples)
    assert samples[10] == pytest.approx(0.5, abs=1e-4)


def test_bezier_linear_control_points():
    assert interpolation.cubic_bezier(0.25, 0.25, 0.75, 0.75, 0.3) == pytest.approx(0.3)


def test_bezier_ease_in_is_slow_at_start():
    assert interpolation.cubic_bezier(0.42, 0.0, 1.0, 1.0, 0.25) < 0.25


def test_bezier_without_points_is_linear():
    assert interpolation.apply_easing("bezier", 0.3) == pytest.approx(0.3)


def test_interpolate_applies_easing():
    assert interpolation.interpolate(10.0, 20.0, 0.5, "easeIn") == pytest.approx(12.5)


def test_evaluate_no_keyframes_returns_static_value():
    assert interpolation.evaluate(_parameter(value=3.0), 1.0) == 3.0


def test_evaluate_outside_range_holds_ends():
    parameter = _parameter(keyframes=[Keyframe(time=1.0, value=2.0), Keyframe(time=3.0, value=6.0)])

    assert interpolation.evaluate(parameter, 0.0) == 2.0
    assert interpolation.evaluate(parameter, 5.0) == 6.0
    assert interpolation.evaluate(parameter, 2.0) == pytest.approx(4.0)


def test_evaluate_uses_earlier_keyframe_easing():
    parameter = _parameter(
        keyframes=[
            Keyframe(time=0.0, value=0.0, easing="easeOut"),
            Keyframe(time=2.0, value=10.0, easing="easeIn"),
        ]
    )

    assert interpolation.evaluate(parameter, 1.0) == pytest.approx(7.5)


def test_evaluate_duplicate_times():
    first = Keyframe(time=2.0, value=1.0)
    second = Keyframe(time=2.0, value=5.0)
    parameter = _parameter(
        keyframes=[Keyframe(time=0.0, value=0.0), first, second, Keyframe(time=4.0, value=9.0)]
    )

    # exact hit: earliest inserted; just after: blend from the later duplicate
    assert interpolation.evaluate(parameter, 2.0) == 1.0
    assert interpolation.evaluate(parameter, 3.0) == pytest.approx(7.0)


def test_non_numeric_parameters_step():
    parameter = _parameter(
        kind=ParameterKind.COLOR,
        value="#000000",
        keyframes=[Keyframe(time=0.0, value="#ff0000"), Keyframe(time=2.0, value="#0000ff")],
    )

    assert interpolation.evaluate(parameter, 1.9) == "#ff0000"
    assert interpolation.evaluate(parameter, 2.0) == "#0000ff"


def test_vectors_step():
    parameter = _parameter(
        kind=ParameterKind.VECTOR2,
        value=[0.0, 0.0],
        keyframes=[Keyframe(time=0.0, value=[0.0, 0.0]), Keyframe(time=1.0, value=[1.0, 1.0])],
    )

    assert interpolation.evaluate(parameter, 0.5) == [0.0, 0.0]


def test_sample_curve():
    parameter = _parameter(keyframes=[Keyframe(time=0.0, value=0.0), Keyframe(time=1.0, value=1.0)])

    samples = interpolation.sample_curve(parameter, 0.0, 1.0, steps=4)

    assert [t for t, _ in samples] == [0.0, 0.25, 0.5, 0.75, 1.0]
    assert [v for _, v in samples] == pytest.approx([0.0, 0.25, 0.5, 0.75, 1.0])
    with pytest.raises(ValueError):
        interpolation.sample_curve(parameter, 0.0, 1.0, steps=0)
