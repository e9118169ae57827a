import pytest

from timeline_engine.models.timeline_models import ParameterKind, ParameterSpec, SelectOption
from timeline_engine.operators.errors import InvalidValueError
from timeline_engine.operators.parameter_values import (
    build_parameter,
    coerce_value,
    default_for_kind,
    is_interpolatable,
)


class TestCoerceValue:
    def test_number_clamped_only_with_both_bounds(self):
        assert coerce_value("number", 15, minimum=0.0, maximum=10.0) == 10.0
        assert coerce_value("number", -5, minimum=0.0, maximum=10.0) == 0.0
        assert coerce_value("number", 15, minimum=0.0) == 15.0

    def test_number_rejects_bool_and_nan(self):
        with pytest.raises(InvalidValueError):
            coerce_value("number", True)
        with pytest.raises(InvalidValueError):
            coerce_value("number", float("nan"))
        with pytest.raises(InvalidValueError):
            coerce_value("number", "1")

    def test_boolean_and_string(self):
        assert coerce_value("boolean", False) is False
        assert coerce_value("string", "hi") == "hi"
        with pytest.raises(InvalidValueError):
            coerce_value("boolean", 1)
        with pytest.raises(InvalidValueError):
            coerce_value("string", 3)

    @pytest.mark.parametrize("color", ["#fff", "#00ff00", "#00FF0080"])
    def test_valid_colors(self, color):
        assert coerce_value("color", color) == color

    @pytest.mark.parametrize("color", ["00ff00", "#12345", "green", 0x00FF00])
    def test_invalid_colors(self, color):
        with pytest.raises(InvalidValueError):
            coerce_value("color", color)

    def test_select(self):
        options = ["left", SelectOption(label="Center", value="center")]
        assert coerce_value("select", "center", options=options) == "center"
        with pytest.raises(InvalidValueError):
            coerce_value("select", "right", options=options)

    def test_vectors(self):
        assert coerce_value("vector2", (1, 2)) == [1.0, 2.0]
        assert coerce_value("vector3", {"x": 1, "y": 2, "z": 3}) == [1.0, 2.0, 3.0]
        with pytest.raises(InvalidValueError):
            coerce_value("vector2", [1.0, 2.0, 3.0])
        with pytest.raises(InvalidValueError):
            coerce_value("vector2", "1,2")
        with pytest.raises(InvalidValueError):
            coerce_value("vector3", {"x": 1, "y": 2})


class TestBuildParameter:
    def test_value_falls_back_to_default(self):
        parameter = build_parameter(
            ParameterSpec(id="r", name="radius", kind="number", default=3.0, min=0.0, max=10.0)
        )
        assert parameter.id == "r"
        assert parameter.value == 3.0
        assert parameter.default == 3.0

    def test_kind_default_is_clamped_into_range(self):
        parameter = build_parameter(ParameterSpec(name="scale", kind="number", min=1.0, max=4.0))
        assert parameter.default == 1.0

    def test_inverted_bounds(self):
        with pytest.raises(InvalidValueError):
            build_parameter(ParameterSpec(name="x", kind="number", min=5.0, max=1.0))

    def test_select_defaults_to_first_option(self):
        parameter = build_parameter(
            ParameterSpec(name="mode", kind="select", options=["add", "multiply"])
        )
        assert parameter.value == "add"


def test_default_for_kind():
    assert default_for_kind(ParameterKind.VECTOR3) == [0.0, 0.0, 0.0]
    assert default_for_kind(ParameterKind.COLOR) == "#000000"
    assert default_for_kind(ParameterKind.BOOLEAN) is False


def test_only_numbers_interpolate():
    assert is_interpolatable("number")
    assert not is_interpolatable("vector2")
    assert not is_interpolatable("color")
