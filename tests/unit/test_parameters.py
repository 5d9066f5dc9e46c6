"""Tests for the parameter table and option validation."""

import pytest

from src.tesseract_handle.exceptions import ArgumentError
from src.tesseract_handle.parameters import (
    Parameter,
    ParameterTable,
    apply_options,
    validate_options,
)


@pytest.fixture
def table(parameter_listing):
    return ParameterTable.parse(parameter_listing)


class TestParameterTable:
    """Tests for parsing and querying the parameter table."""

    def test_parse(self, table):
        assert len(table) == 5
        assert "tessedit_pageseg_mode" in table
        assert "Tesseract parameters:" not in table

    def test_parse_keeps_empty_values(self, table):
        assert table.get("tessedit_char_whitelist") == Parameter(
            "tessedit_char_whitelist", "", "Whitelist of chars to recognize"
        )

    def test_parse_skips_junk_and_crlf(self):
        table = ParameterTable.parse("junk line\r\n\r\nlog_level\t0\tLogging level\r\n")

        assert [p.name for p in table] == ["log_level"]
        assert table.get("log_level").description == "Logging level"

    def test_search(self, table):
        names = [p.name for p in table.search("TESSEDIT")]

        assert names == ["tessedit_char_whitelist", "tessedit_pageseg_mode"]

    def test_search_empty_pattern_lists_all(self, table):
        assert len(table.search()) == len(table)


class TestValidateOptions:
    """Tests for validate_options."""

    def test_one_result_per_pair(self, table):
        result = validate_options(
            ["tessedit_pageseg_mode", "unknown_var_xyz", "log_level"],
            ["6", "1", "0"],
            table,
        )

        assert result == [True, False, True]

    def test_values_are_not_rejected(self, table):
        assert validate_options(["tessedit_pageseg_mode"], ["not a number"], table) == [True]

    def test_empty_input(self, table):
        assert validate_options([], [], table) == []

    def test_mismatched_lengths(self, table):
        with pytest.raises(ArgumentError):
            validate_options(["log_level", "tessedit_pageseg_mode"], ["1"], table)

    def test_string_arguments_rejected(self, table):
        with pytest.raises(ArgumentError):
            validate_options("log_level", "1", table)

    def test_argument_error_is_value_error(self, table):
        with pytest.raises(ValueError):
            validate_options(["a"], [], table)

    def test_validation_is_pure(self, table):
        before = {p.name: p.default for p in table}

        validate_options(["tessedit_pageseg_mode"], ["11"], table)
        validate_options(["tessedit_pageseg_mode"], ["11"], table)

        assert {p.name: p.default for p in table} == before


class TestApplyOptions:
    """Tests for apply_options."""

    def test_applies_in_order(self, fake_backend):
        rejected = apply_options(
            fake_backend,
            [("log_level", "1"), ("tessedit_pageseg_mode", "3"), ("log_level", "2")],
        )

        assert rejected is None
        assert fake_backend.calls == [
            "set_variable:log_level=1",
            "set_variable:tessedit_pageseg_mode=3",
            "set_variable:log_level=2",
        ]
        assert fake_backend.variables["log_level"] == "2"

    def test_stops_at_first_rejection(self, fake_backend):
        rejected = apply_options(
            fake_backend, [("bogus", "1"), ("log_level", "1")]
        )

        assert rejected == ("bogus", "1")
        assert fake_backend.calls == ["set_variable:bogus=1"]
