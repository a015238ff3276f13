"""Loading data tables and summary spec files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd
import yaml

from summarytab.errors import InvalidInput
from summarytab.summary import SummarySpec, spec_from_mapping

logger = logging.getLogger(__name__)


def load_table(path: Path, columns: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Load a table from a CSV or Parquet file.

    Parameters
    ----------
    path : Path
        Path to a .csv, .tsv or .parquet file
    columns : List[str], optional
        Subset of columns to load

    Returns
    -------
    pd.DataFrame
        Loaded data

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    ValueError
        If the suffix is not supported
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    suffix = path.suffix.lower()
    logger.info(f"Loading table from {path}")

    if suffix == ".csv":
        df = pd.read_csv(path, usecols=columns)
    elif suffix == ".tsv":
        df = pd.read_csv(path, sep="\t", usecols=columns)
    elif suffix in (".parquet", ".pq"):
        df = pd.read_parquet(path, columns=columns)
    else:
        raise ValueError(f"Unsupported data format '{suffix}' (expected .csv, .tsv or .parquet)")

    logger.info(f"Loaded {len(df)} rows, {len(df.columns)} columns")
    return df


def load_spec(path: Path) -> SummarySpec:
    """Load a summary spec from YAML.

    Example file::

        Miles per gallon:
          mean (sd): mean_sd(mpg)
          median (IQR): median_iqr(mpg, digits=1)
        Transmission:
          manual:
            stat: n_perc
            column: am
            level: 1
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Spec file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}

    if not isinstance(payload, dict):
        raise InvalidInput(f"Spec file {path} must contain a mapping of row groups")

    spec = spec_from_mapping(payload)
    logger.info(f"Loaded summary spec with {len(spec)} row groups from {path}")
    return spec


def dump_spec(spec: SummarySpec, path: Path) -> None:
    """Write a spec to YAML in the format ``load_spec`` reads."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(spec.to_dict(), handle, sort_keys=False, default_flow_style=False, width=120)
