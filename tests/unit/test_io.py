"""Tests for table and spec loading."""

import pandas as pd
import pytest

from summarytab.errors import InvalidInput
from summarytab.expressions import Expression
from summarytab.io import dump_spec, load_spec, load_table
from summarytab.summary import qsummary


def test_load_table_csv(cars_csv, cars):
    """Test CSV loading."""
    df = load_table(cars_csv)
    assert list(df.columns) == list(cars.columns)
    assert len(df) == 8


def test_load_table_tsv(tmp_path, cars):
    """Test tab-separated loading with a column subset."""
    path = tmp_path / "cars.tsv"
    cars.to_csv(path, sep="\t", index=False)

    df = load_table(path, columns=["mpg", "gear"])
    assert list(df.columns) == ["mpg", "gear"]


def test_load_table_parquet(tmp_path, cars):
    """Test Parquet loading."""
    pytest.importorskip("pyarrow")
    path = tmp_path / "cars.parquet"
    cars.to_parquet(path, index=False)

    df = load_table(path)
    pd.testing.assert_frame_equal(df, cars)


def test_load_table_errors(tmp_path):
    """Test missing files and unsupported formats."""
    with pytest.raises(FileNotFoundError):
        load_table(tmp_path / "missing.csv")

    path = tmp_path / "data.xlsx"
    path.write_text("x")
    with pytest.raises(ValueError, match="Unsupported"):
        load_table(path)


def test_load_spec(tmp_path):
    """Test YAML spec files."""
    path = tmp_path / "spec.yaml"
    path.write_text(
        "Miles per gallon:\n"
        "  mean (sd): mean_sd(mpg)\n"
        "  median (IQR): median_iqr(mpg, digits=1)\n"
        "Transmission:\n"
        "  manual:\n"
        "    stat: n_perc\n"
        "    column: am\n"
        "    level: true\n",
        encoding="utf-8",
    )

    spec = load_spec(path)

    assert list(spec) == ["Miles per gallon", "Transmission"]
    assert spec["Miles per gallon"]["median (IQR)"] == Expression("median_iqr", "mpg", {"digits": 1})
    assert spec["Transmission"]["manual"] == Expression("n_perc", "am", {"level": True})


def test_load_spec_rejects_lists(tmp_path):
    """Test a YAML file that is not a mapping."""
    path = tmp_path / "spec.yaml"
    path.write_text("- mean_sd(mpg)\n", encoding="utf-8")
    with pytest.raises(InvalidInput, match="mapping"):
        load_spec(path)


def test_dump_spec_is_loadable(tmp_path, cars):
    """Test an inferred spec written to YAML reads back the same."""
    spec = qsummary(cars)
    path = tmp_path / "out" / "spec.yaml"

    dump_spec(spec, path)

    assert load_spec(path).to_dict() == spec.to_dict()


def test_dump_spec_rejects_bound_rows(tmp_path, cars):
    """Test a spec with a bound expression is refused instead of written."""
    from summarytab.expressions import bind
    from summarytab.summary import SummarySpec

    spec = SummarySpec({"Fuel": {"mean (sd)": bind(cars, "mpg", "mean_sd")}})
    path = tmp_path / "spec.yaml"

    with pytest.raises(InvalidInput, match="cannot be written"):
        dump_spec(spec, path)
