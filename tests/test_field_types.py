"""
Tests for field validation, coercion and display helpers
"""

import pytest

from comfyui_workflow_fields.field_types import (
    category_label,
    coerce_value,
    display_name,
    format_value_for_display,
    parse_integer,
    parse_number,
    validate_value,
)
from comfyui_workflow_fields.workflow_model import Category, ShapeKind, TypeShape

INTEGER = TypeShape(ShapeKind.INTEGER)
NUMBER = TypeShape(ShapeKind.NUMBER)
BOOLEAN = TypeShape(ShapeKind.BOOLEAN)
TEXT = TypeShape(ShapeKind.TEXT)
DROPDOWN = TypeShape(ShapeKind.STATIC_DROPDOWN, options=("euler", "ddim"))


class TestValidateValue:
    def test_integer(self):
        """Test integer validation"""
        assert validate_value(INTEGER, 42) == []
        assert validate_value(INTEGER, "42") == []
        assert validate_value(INTEGER, 3.0) == []
        assert validate_value(INTEGER, "abc") == ["Must be a valid integer"]
        assert validate_value(INTEGER, 1.5) == ["Must be a valid integer"]
        assert validate_value(INTEGER, True) == ["Must be a valid integer"]
        assert validate_value(INTEGER, -1) == ["Must be non-negative"]

    def test_number(self):
        """Test number validation"""
        assert validate_value(NUMBER, 7.5) == []
        assert validate_value(NUMBER, "7.5") == []
        assert validate_value(NUMBER, "abc") == ["Must be a valid number"]
        assert validate_value(NUMBER, "nan") == ["Must be a valid number"]
        assert validate_value(NUMBER, float("inf")) == ["Must be a valid number"]

    def test_boolean_always_valid(self):
        """Test any value passes boolean validation"""
        for value in (True, False, "yes", 0, None):
            assert validate_value(BOOLEAN, value) == []

    def test_text_requires_string(self):
        """Test text rejects non-strings"""
        assert validate_value(TEXT, "hello") == []
        assert validate_value(TEXT, "") == []
        assert validate_value(TEXT, 5) == ["Must be text"]

    def test_dropdown_is_permissive_by_default(self):
        """Test unlisted dropdown values accepted by default"""
        assert validate_value(DROPDOWN, "not-listed") == []
        assert validate_value(DROPDOWN, 512) == []
        assert validate_value(DROPDOWN, ["a", "b", "c"]) == ["Must be a single option"]

    def test_dropdown_strict_membership(self):
        """Test strict dropdown membership"""
        options = ["euler", "ddim"]
        assert validate_value(DROPDOWN, "euler", options=options, strict_options=True) == []
        assert validate_value(DROPDOWN, "heun", options=options, strict_options=True) == [
            "Not one of the available options"
        ]
        # Unknown option list: nothing to check against
        assert validate_value(DROPDOWN, "heun", options=None, strict_options=True) == []
        assert validate_value(DROPDOWN, "heun", options=[], strict_options=True) == []

    def test_connection_reference_never_valid(self):
        """Test link values are rejected"""
        for shape in (INTEGER, NUMBER, BOOLEAN, TEXT, DROPDOWN):
            assert validate_value(shape, ["4", 0]) == ["Connection references cannot be edited"]

    def test_no_shape(self):
        """Test validation without a shape"""
        assert validate_value(TypeShape(ShapeKind.NONE), "x") == ["Field is not editable"]


class TestCoerceValue:
    def test_integer(self):
        """Test integer coercion from strings"""
        assert coerce_value(INTEGER, "42") == 42
        assert coerce_value(INTEGER, 7.0) == 7

    def test_number_keeps_integers(self):
        """Test whole numbers stay ints"""
        assert coerce_value(NUMBER, "30") == 30
        assert isinstance(coerce_value(NUMBER, "30"), int)
        assert coerce_value(NUMBER, "7.5") == 7.5
        assert coerce_value(NUMBER, 8) == 8

    def test_boolean(self):
        """Test boolean coercion"""
        assert coerce_value(BOOLEAN, "yes") is True
        assert coerce_value(BOOLEAN, "off") is False
        assert coerce_value(BOOLEAN, 1) is True

    def test_text(self):
        """Test text coercion"""
        assert coerce_value(TEXT, None) == ""
        assert coerce_value(TEXT, 5) == "5"

    def test_dropdown_keeps_numeric_options(self):
        """Test numeric dropdown options keep their type"""
        assert coerce_value(DROPDOWN, 512) == 512
        assert coerce_value(DROPDOWN, None) == ""


class TestParsing:
    @pytest.mark.parametrize("value,expected", [(5, 5), ("  12 ", 12), (4.0, 4), (4.5, None), ("x", None), (None, None)])
    def test_parse_integer(self, value, expected):
        """Test integer parsing"""
        assert parse_integer(value) == expected

    def test_parse_number(self):
        """Test number parsing"""
        assert parse_number("1e3") == 1000.0
        assert parse_number(False) is None
        assert parse_number("-inf") is None


class TestDisplay:
    def test_known_display_names(self):
        """Test display names for known fields"""
        assert display_name("cfg") == "CFG Scale"
        assert display_name("ckpt_name") == "Checkpoint"

    def test_unknown_names_are_title_cased(self):
        """Test fallback display names"""
        assert display_name("my_custom_field") == "My Custom Field"

    def test_format_value_for_display(self):
        """Test display truncation"""
        assert format_value_for_display(None) == ""
        assert format_value_for_display(True) == "true"
        assert format_value_for_display(8.5) == "8.5"
        long_text = "x" * 150
        shown = format_value_for_display(long_text)
        assert len(shown) == 103
        assert shown.endswith("...")

    def test_category_label(self):
        """Test category labels"""
        assert category_label(Category.SEED) == "Seeds"
        assert category_label(Category.BOOLEAN) == "Toggles"
