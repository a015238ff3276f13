"""Pytest configuration and fixtures."""

import pytest
import pandas as pd

from summarytab.config import reset_config


@pytest.fixture(autouse=True)
def default_config():
    """Start every test from the package defaults."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def cars():
    """Small mtcars-like dataset with numeric, boolean and string columns."""
    return pd.DataFrame(
        {
            "mpg": [21.0, 22.8, 21.0, 18.7, 18.1, 14.3, 24.4, 22.8],
            "cyl": [6, 4, 6, 8, 6, 8, 4, 4],
            "am": [True, True, True, False, False, False, False, False],
            "gear": ["four", "four", "four", "three", "three", "three", "four", "four"],
        }
    )


@pytest.fixture
def cars_csv(tmp_path, cars):
    """Write the cars dataset to CSV."""
    path = tmp_path / "cars.csv"
    cars.to_csv(path, index=False)
    return path
