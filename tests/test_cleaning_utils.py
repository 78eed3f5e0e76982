"""Tests for the cleaning primitives shared by every row builder."""

import pytest

from delivery_core.ingest.cleaning_utils import (
    clean_store_number,
    get_column_value,
    normalize_col_name,
    strip_invisibles,
    to_date,
    to_money,
    to_percent,
)


class TestToMoney:
    """Money parsing must never raise on a malformed cell."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("$1,234.56", 1234.56),
            ("(12.00)", -12.0),
            ("-4.10", -4.1),
            ("\u22125.00", -5.0),
            ("3.5x", 3.5),
            ("12.5%", 12.5),
            (" 7 ", 7.0),
            (42, 42.0),
        ],
    )
    def test_parses_common_layouts(self, raw, expected) -> None:
        """Currency symbols, separators and parentheses are handled."""
        assert to_money(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["", "n/a", "--", None, float("nan"), float("inf")])
    def test_unparsable_defaults_to_zero(self, raw) -> None:
        """Anything unparsable resolves to 0.0."""
        assert to_money(raw) == 0.0


def test_to_percent_converts_to_fraction() -> None:
    """Percent strings become fractions."""
    assert to_percent("12.5%") == pytest.approx(0.125)


class TestColumnLookup:
    """Tolerant header lookup across export revisions."""

    def test_normalized_match(self) -> None:
        """Punctuation and case differences do not matter."""
        row = {"Sales (excl. tax)": "10.00"}
        assert get_column_value(row, "sales_excl_tax") == "10.00"

    def test_exact_key_wins_over_normalized(self) -> None:
        """An exact header is preferred to a normalized lookalike."""
        row = {"Tax": "1.00", "tax": "2.00"}
        assert get_column_value(row, "tax") == "2.00"

    def test_first_spelling_wins(self) -> None:
        """Spellings are tried in order."""
        row = {"Net payout": "5", "Net total": "6"}
        assert get_column_value(row, "Net total", "Net payout") == "6"

    def test_bom_prefixed_header(self) -> None:
        """A byte-order mark on the first header is ignored."""
        row = {"\ufeffStore Name": "Henderson"}
        assert get_column_value(row, "Store Name") == "Henderson"

    def test_missing_column_is_empty(self) -> None:
        assert get_column_value({"A": "1"}, "B") == ""

    def test_normalize_col_name(self) -> None:
        assert normalize_col_name("Tax (subtotal)") == "taxsubtotal"


def test_strip_invisibles() -> None:
    """Zero-width and non-breaking spaces are removed or collapsed."""
    assert strip_invisibles("\u200bStore\u00a0 12 ") == "Store 12"
    assert strip_invisibles(None) == ""


class TestToDate:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2025-10-06", "2025-10-06"),
            ("10/6/2025", "2025-10-06"),
            ("2025-10-06 18:42:11", "2025-10-06"),
        ],
    )
    def test_formats(self, raw, expected) -> None:
        """ISO dates, US dates and timestamps all normalize to ISO dates."""
        assert to_date(raw) == expected

    @pytest.mark.parametrize("raw", ["", "soon", None])
    def test_unparsable_is_empty(self, raw) -> None:
        assert to_date(raw) == ""


@pytest.mark.parametrize(
    "raw, expected",
    [('="0012"', "0012"), ("'45", "45"), (" 7 ", "7"), ("", "")],
)
def test_clean_store_number(raw, expected) -> None:
    """Spreadsheet quoting is removed and leading zeros kept."""
    assert clean_store_number(raw) == expected
