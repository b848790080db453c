"""Unit tests for attribute value coercion."""

from datetime import date, datetime

import pytest

from attic_import.plugins.base import DataType
from attic_import.plugins.errors import CoercionError
from attic_import.plugins.values import coerce_value


@pytest.mark.unit
class TestStringCoercion:
    """Tests for string and text values."""

    @pytest.mark.parametrize("data_type", [DataType.STRING, DataType.TEXT])
    def test_string_passthrough(self, data_type):
        assert coerce_value(data_type, "Frank Herbert") == "Frank Herbert"

    def test_numbers_rendered_as_text(self):
        assert coerce_value(DataType.STRING, 412) == "412"
        assert coerce_value(DataType.STRING, 412.0) == "412"
        assert coerce_value(DataType.STRING, 7.5) == "7.5"

    def test_bool_rendered_as_text(self):
        assert coerce_value(DataType.STRING, True) == "true"

    def test_non_finite_rejected(self):
        with pytest.raises(CoercionError):
            coerce_value(DataType.STRING, float("nan"))

    def test_container_rejected(self):
        with pytest.raises(CoercionError):
            coerce_value(DataType.STRING, ["a", "b"])


@pytest.mark.unit
class TestNumberCoercion:
    """Tests for number values."""

    def test_int_and_float(self):
        assert coerce_value(DataType.NUMBER, 412) == 412
        assert coerce_value(DataType.NUMBER, 7.5) == 7.5

    def test_numeric_strings(self):
        assert coerce_value(DataType.NUMBER, " 1965 ") == 1965
        assert coerce_value(DataType.NUMBER, "7.81") == 7.81
        assert coerce_value(DataType.NUMBER, "-3") == -3
        assert coerce_value(DataType.NUMBER, ".5") == 0.5
        assert coerce_value(DataType.NUMBER, "1e3") == 1000.0

    @pytest.mark.parametrize("raw", ["1_000", "+5", "0x1A", "1 000", "1e999", "\u0661\u0662"])
    def test_non_plain_numeric_strings_rejected(self, raw):
        with pytest.raises(CoercionError):
            coerce_value(DataType.NUMBER, raw)

    @pytest.mark.parametrize("raw", ["many", True, float("inf"), "nan", {}])
    def test_invalid_rejected(self, raw):
        with pytest.raises(CoercionError):
            coerce_value(DataType.NUMBER, raw)


@pytest.mark.unit
class TestBooleanCoercion:
    """Tests for boolean values."""

    @pytest.mark.parametrize("raw", [True, 1, "true", "YES", "on"])
    def test_truthy(self, raw):
        assert coerce_value(DataType.BOOLEAN, raw) is True

    @pytest.mark.parametrize("raw", [False, 0, "false", "No", "off"])
    def test_falsy(self, raw):
        assert coerce_value(DataType.BOOLEAN, raw) is False

    @pytest.mark.parametrize("raw", [2, "maybe", 0.5])
    def test_invalid_rejected(self, raw):
        with pytest.raises(CoercionError):
            coerce_value(DataType.BOOLEAN, raw)


@pytest.mark.unit
class TestDateCoercion:
    """Tests for date values."""

    def test_iso_string(self):
        assert coerce_value(DataType.DATE, "2021-10-22") == "2021-10-22"

    def test_datetime_string_truncated(self):
        assert coerce_value(DataType.DATE, "2021-10-22T08:00:00Z") == "2021-10-22"

    def test_date_objects(self):
        assert coerce_value(DataType.DATE, date(1965, 8, 1)) == "1965-08-01"
        assert coerce_value(DataType.DATE, datetime(1965, 8, 1, 12, 30)) == "1965-08-01"

    @pytest.mark.parametrize("raw", ["1965", "", "someday", 1965])
    def test_invalid_rejected(self, raw):
        with pytest.raises(CoercionError):
            coerce_value(DataType.DATE, raw)


@pytest.mark.unit
def test_none_rejected():
    with pytest.raises(CoercionError, match="missing"):
        coerce_value(DataType.STRING, None)


@pytest.mark.unit
def test_plain_string_data_type_accepted():
    assert coerce_value("number", "3") == 3
