"""Tests for summary spec inference and construction."""

import numpy as np
import pandas as pd
import pytest

from summarytab.errors import InvalidInput
from summarytab.expressions import Expression, bind, stat
from summarytab.statistics import mean_sd, n_perc
from summarytab.summary import SummarySpec, infer_summary, qsummary, spec_from_mapping


def test_infer_summary_numeric(cars):
    """Test the four numeric rows in fixed order."""
    rows = infer_summary(cars["mpg"])

    assert list(rows) == ["minimum", "median (IQR)", "mean (sd)", "maximum"]
    assert [e.kind for e in rows.values()] == ["min", "median_iqr", "mean_sd", "max"]
    assert all(e.column == "mpg" for e in rows.values())


def test_infer_summary_reevaluates_on_subsets(cars):
    """Test inferred expressions are not tied to the data they came from."""
    rows = infer_summary(cars["mpg"])
    six = cars[cars["cyl"] == 6]

    assert rows["mean (sd)"].evaluate(six).text == mean_sd(six["mpg"]).text


def test_infer_summary_categorical_order():
    """Test category order, including unobserved categories."""
    col = pd.Series(pd.Categorical(["b", "a", "b"], categories=["b", "a", "c"]), name="grade")
    rows = infer_summary(col)

    assert list(rows) == ["b", "a", "c"]
    assert rows["c"] == Expression("n_perc", "grade", {"level": "c"})


def test_infer_summary_strings_sorted(cars):
    """Test plain string levels are sorted."""
    col = pd.Series(["z", "x", "y", "x"], name="code")
    assert list(infer_summary(col)) == ["x", "y", "z"]


def test_infer_summary_boolean(cars):
    """Test TRUE/FALSE rows for logical columns."""
    rows = infer_summary(cars["am"])

    assert list(rows) == ["TRUE", "FALSE"]
    assert rows["TRUE"].evaluate(cars).text == n_perc(cars["am"]).text
    assert rows["FALSE"].evaluate(cars).text == "5 (62.50%)"


def test_infer_summary_zero_one_columns():
    """Test numeric 0/1 columns are summarized as logical."""
    data = pd.DataFrame({"vs": [0, 1, 1, 0, 1], "wt": [0.0, 1.0, np.nan, 1.0, 1.0]})

    rows = infer_summary(data["vs"])
    assert list(rows) == ["TRUE", "FALSE"]
    assert rows["FALSE"].kwargs == {"level": 0}
    assert rows["TRUE"].evaluate(data).text == "3 (60.00%)"
    assert rows["FALSE"].evaluate(data).text == "2 (40.00%)"

    assert list(infer_summary(data["wt"])) == ["TRUE", "FALSE"]
    assert list(infer_summary(pd.Series([0, 1, 2], name="n"))) == [
        "minimum",
        "median (IQR)",
        "mean (sd)",
        "maximum",
    ]


def test_infer_summary_options(cars):
    """Test digits and count options are carried into the expressions."""
    rows = infer_summary(cars["gear"], digits=1, n_perc_kwargs={"show_symbol": False})
    assert rows["four"].kwargs == {"digits": 1, "show_symbol": False, "level": "four"}

    numeric = infer_summary(cars["mpg"], show_sign=False)
    assert numeric["mean (sd)"].evaluate(cars).text == mean_sd(cars["mpg"], show_sign=False).text


def test_infer_summary_integer_levels_are_plain():
    """Test numpy scalars are stored as Python values."""
    col = pd.Series(pd.Categorical([4, 6, 4]), name="cyl")
    rows = infer_summary(col)
    assert list(rows) == ["4", "6"]
    assert type(rows["4"].kwargs["level"]) is int


def test_infer_summary_errors():
    """Test unnamed, all-missing and unsupported columns."""
    with pytest.raises(InvalidInput, match="named"):
        infer_summary(pd.Series([1.0, 2.0]))
    with pytest.raises(InvalidInput, match="no non-missing"):
        infer_summary(pd.Series([np.nan, np.nan], name="x"))
    with pytest.raises(InvalidInput, match="dtype"):
        infer_summary(pd.Series(pd.to_datetime(["2024-01-01"]), name="when"))


def test_qsummary(cars):
    """Test one row group per column in data order."""
    spec = qsummary(cars)
    assert list(spec) == ["mpg", "cyl", "am", "gear"]
    assert list(spec["gear"]) == ["four", "three"]

    subset = qsummary(cars, columns=["gear", "mpg"])
    assert list(subset) == ["gear", "mpg"]

    with pytest.raises(KeyError, match="hp"):
        qsummary(cars, columns=["hp"])


def test_summary_spec_order_and_rows():
    """Test insertion order is preserved in flattened rows."""
    spec = SummarySpec(
        {
            "Fuel": {"mean (sd)": stat("mean_sd", "mpg"), "max": "max(mpg)"},
            "Gears": {"four": stat("n_perc", "gear", level="four")},
        }
    )

    assert spec.structure() == [("Fuel", "mean (sd)"), ("Fuel", "max"), ("Gears", "four")]
    assert spec.columns == ["mpg", "gear"]
    assert spec["Fuel"]["max"] == Expression("max", "mpg")


def test_summary_spec_validation():
    """Test duplicate, empty and non-string labels are rejected."""
    spec = SummarySpec({"Fuel": {"max": "max(mpg)"}})
    with pytest.raises(InvalidInput, match="Duplicate row group"):
        spec.add("Fuel", {"min": "min(mpg)"})
    with pytest.raises(InvalidInput, match="no rows"):
        SummarySpec({"Empty": {}})
    with pytest.raises(InvalidInput, match="strings"):
        SummarySpec({"Fuel": {1: "max(mpg)"}})
    with pytest.raises(InvalidInput, match="Duplicate row labels"):
        SummarySpec.from_items([("Fuel", [("max", "max(mpg)"), ("max", "min(mpg)")])])


def test_summary_spec_select_and_rename(cars):
    """Test subsetting and renaming row groups."""
    spec = qsummary(cars)

    selected = spec.select(["gear", "mpg"])
    assert list(selected) == ["gear", "mpg"]

    renamed = selected.rename({"mpg": "Miles per gallon"})
    assert list(renamed) == ["gear", "Miles per gallon"]

    with pytest.raises(KeyError):
        spec.select(["hp"])


def test_summary_spec_rename_collision():
    """Test that renaming onto an existing label raises instead of dropping rows."""
    spec = SummarySpec({"A": {"x": "max(mpg)"}, "B": {"y": "min(mpg)"}})

    with pytest.raises(InvalidInput, match="Duplicate row group 'A'"):
        spec.rename({"B": "A"})
    with pytest.raises(InvalidInput, match="Duplicate row group"):
        spec.select(["A", "A"])

    swapped = spec.rename({"A": "B", "B": "A"})
    assert swapped.structure() == [("B", "x"), ("A", "y")]


def test_summary_spec_to_dict_rejects_unserializable_rows(cars):
    """Test that bound and callable rows cannot be written as text."""
    bound = SummarySpec({"Fuel": {"mean (sd)": bind(cars, "mpg", "mean_sd")}})
    custom = SummarySpec({"Fuel": {"top": lambda d: d["mpg"].max()}})

    for spec in (bound, custom):
        with pytest.raises(InvalidInput, match="cannot be written"):
            spec.to_dict()
        assert "Fuel" in repr(spec)


def test_spec_from_mapping():
    """Test building a spec from plain nested data."""
    spec = spec_from_mapping(
        {
            "Fuel": {"mean (sd)": "mean_sd(mpg, digits=1)"},
            "Transmission": {"manual": {"stat": "n_perc", "column": "am", "level": True}},
        }
    )

    assert spec["Fuel"]["mean (sd)"] == Expression("mean_sd", "mpg", {"digits": 1})
    assert spec["Transmission"]["manual"] == Expression("n_perc", "am", {"level": True})
    assert spec.to_dict()["Fuel"] == {"mean (sd)": "mean_sd(mpg, digits=1)"}


def test_spec_from_mapping_invalid():
    """Test malformed payloads."""
    with pytest.raises(InvalidInput):
        spec_from_mapping({})
    with pytest.raises(InvalidInput, match="must map"):
        spec_from_mapping({"Fuel": ["mean_sd(mpg)"]})
