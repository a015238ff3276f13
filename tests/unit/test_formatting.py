"""Tests for number formatting."""

import numpy as np
import pytest

from summarytab.config import FormatConfig
from summarytab.formatting import (
    escape_latex,
    escape_markdown,
    format_mean_ci,
    format_number,
    format_percent,
    format_pvalue,
    plus_minus,
)


@pytest.mark.parametrize(
    "value, digits, expected",
    [
        (20.875, 2, "20.88"),
        (0.125, 2, "0.12"),
        (0.375, 2, "0.38"),
        (2.5, 0, "2"),
        (3.5, 0, "4"),
        (1.0, 3, "1.000"),
        (-1.005, 2, "-1.00"),
    ],
)
def test_format_number_round_half_even(value, digits, expected):
    """Test round-half-to-even on the decimal value."""
    assert format_number(value, digits) == expected


@pytest.mark.parametrize(
    "value, digits, expected",
    [
        (1e27, 2, "1" + "0" * 27 + ".00"),
        (-2.5e30, 0, "-25" + "0" * 29),
        (0.5, 30, "0.5" + "0" * 29),
        (1.5e-40, 45, "0." + "0" * 39 + "150000"),
    ],
)
def test_format_number_beyond_default_decimal_precision(value, digits, expected):
    """Test very large magnitudes and many decimals format without error."""
    assert format_number(value, digits) == expected


def test_format_number_integers():
    """Test that integers print without decimals."""
    assert format_number(5) == "5"
    assert format_number(np.int64(7)) == "7"
    assert format_number(5.0) == "5.00"


def test_format_number_negative_zero():
    """Test that negative zero and values rounding to zero have no sign."""
    assert format_number(-0.0) == "0.00"
    assert format_number(-0.001, 2) == "0.00"


def test_format_number_show_sign():
    """Test explicit plus sign."""
    assert format_number(1.234, 2, show_sign=True) == "+1.23"
    assert format_number(-1.234, 2, show_sign=True) == "-1.23"
    assert format_number(0.0, 2, show_sign=True) == "0.00"


def test_format_number_missing():
    """Test NA placeholder."""
    assert format_number(float("nan")) == "NA"
    assert format_number(None) == "NA"
    assert format_number(np.nan, config=FormatConfig(na_string="--")) == "--"


def test_format_number_rejects_text():
    """Test that non-numeric values are refused."""
    with pytest.raises(TypeError, match="non-numeric"):
        format_number("abc")


def test_format_percent():
    """Test percent formatting per markup."""
    assert format_percent(75.0, 1) == "75.0%"
    assert format_percent(75.0, 1, show_symbol=False) == "75.0"
    assert format_percent(75.0, 1, config=FormatConfig(markup="latex")) == r"75.0\%"
    assert format_percent(float("nan")) == "NA"


def test_plus_minus_per_markup():
    """Test the plus-minus symbol per markup."""
    assert plus_minus(FormatConfig(markup="markdown")) == "±"
    assert plus_minus(FormatConfig(markup="latex")) == r"$\pm$"


def test_format_mean_ci_styles():
    """Test the three CI layouts."""
    assert format_mean_ci(1, 0.5, 1.5, digits=1) == "1.0 (0.5, 1.5)"
    assert format_mean_ci(1, 0.5, 1.5, digits=1, style="to") == "1.0 (0.5 to 1.5)"
    assert format_mean_ci(1, 0.5, 1.5, digits=1, style="level") == "1.0 (95% CI: 0.5, 1.5)"
    assert (
        format_mean_ci(1, 0.5, 1.5, digits=1, style="level", level=0.9) == "1.0 (90% CI: 0.5, 1.5)"
    )
    assert (
        format_mean_ci(1, 0.5, 1.5, digits=1, style="level", level=0.975)
        == "1.0 (97.5% CI: 0.5, 1.5)"
    )


def test_format_mean_ci_latex_level():
    """Test that the level's percent sign is escaped in LaTeX."""
    cfg = FormatConfig(markup="latex", ci_style="level")
    assert format_mean_ci(2, 1, 3, digits=0, config=cfg) == r"2 (95\% CI: 1, 3)"


def test_format_pvalue_threshold():
    """Test p-values below the display threshold."""
    assert format_pvalue(0.0004, digits=3) == "P < 0.001"
    assert format_pvalue(0.0004, digits=3, config=FormatConfig(markup="markdown")) == "*P* < 0.001"
    assert format_pvalue(0.0004, digits=3, config=FormatConfig(markup="latex")) == "$P < 0.001$"


def test_format_pvalue_styles():
    """Test plain, APA and NEJM styles."""
    assert format_pvalue(0.0432, digits=3) == "P = 0.043"
    assert format_pvalue(0.0432, digits=3, style="apa") == "P = .043"
    assert format_pvalue(0.372, style="nejm") == "P = 0.37"
    assert format_pvalue(0.05, style="nejm") == "P = 0.050"
    assert format_pvalue(0.0002, style="nejm") == "P < 0.001"


def test_format_pvalue_out_of_range():
    """Test that impossible p-values are rejected."""
    with pytest.raises(ValueError, match="p-value"):
        format_pvalue(1.5)


def test_escape_latex():
    """Test escaping of LaTeX specials."""
    assert escape_latex("a_b & 50%") == r"a\_b \& 50\%"
    assert escape_latex("#1 {x}") == r"\#1 \{x\}"


def test_escape_markdown():
    """Test escaping of pipe characters."""
    assert escape_markdown("a|b") == r"a\|b"
