"""Tests for typed field value coercion and bounds."""

import pytest

from mosaic.db.models import ContentTypeField, FieldType
from mosaic.lib.exceptions import ValidationError
from mosaic.lib.values import coerce, validate


def make_field(field_type: FieldType, **bounds) -> ContentTypeField:
    return ContentTypeField(name="value", display_name="Value", type=field_type.value, **bounds)


class TestCoerce:
    """Narrowing raw values to field types."""

    def test_none_passes_through(self):
        assert coerce(make_field(FieldType.NUMBER), None) is None

    def test_number_accepts_integral_floats(self):
        """Test that 3.0 is a whole number but 3.5 is not."""
        field = make_field(FieldType.NUMBER)
        assert coerce(field, 3.0) == 3
        with pytest.raises(ValidationError):
            coerce(field, 3.5)

    def test_booleans_are_not_numbers(self):
        with pytest.raises(ValidationError):
            coerce(make_field(FieldType.DECIMAL), True)

    def test_strings_only_in_lenient_mode(self):
        """Test that query-string spellings need lenient coercion."""
        field = make_field(FieldType.DECIMAL)
        with pytest.raises(ValidationError):
            coerce(field, "49.90")
        assert coerce(field, "49.90", lenient=True) == pytest.approx(49.90)

    @pytest.mark.parametrize("raw,expected", [("true", True), ("0", False), ("Yes", True)])
    def test_lenient_booleans(self, raw, expected):
        assert coerce(make_field(FieldType.BOOLEAN), raw, lenient=True) is expected

    def test_date_normalizes_to_iso(self):
        field = make_field(FieldType.DATE)
        assert coerce(field, "2024-05-01T10:00:00") == "2024-05-01"
        with pytest.raises(ValidationError):
            coerce(field, "01/05/2024")

    def test_email_and_slug_formats(self):
        """Test format checks on email and slug fields."""
        with pytest.raises(ValidationError):
            coerce(make_field(FieldType.EMAIL), "not-an-email")
        assert coerce(make_field(FieldType.EMAIL), "info@clinic.pt") == "info@clinic.pt"
        with pytest.raises(ValidationError):
            coerce(make_field(FieldType.SLUG), "Two Words")

    def test_text_rejects_numbers(self):
        with pytest.raises(ValidationError) as exc_info:
            coerce(make_field(FieldType.TEXT), 12)
        assert exc_info.value.field == "value"


class TestBounds:
    """Inclusive bounds on writes."""

    def test_value_bounds_inclusive(self):
        """Test values at the bounds pass and one unit beyond fails."""
        field = make_field(FieldType.NUMBER, min_value=1, max_value=10)
        assert validate(field, 1) == 1
        assert validate(field, 10) == 10
        with pytest.raises(ValidationError):
            validate(field, 0)
        with pytest.raises(ValidationError):
            validate(field, 11)

    def test_length_bounds_inclusive(self):
        field = make_field(FieldType.TEXT, min_length=2, max_length=4)
        assert validate(field, "ab") == "ab"
        assert validate(field, "abcd") == "abcd"
        with pytest.raises(ValidationError):
            validate(field, "a")
        with pytest.raises(ValidationError) as exc_info:
            validate(field, "abcde")
        assert "at most 4 characters" in exc_info.value.message
