"""
summarytab: publication-style summary statistics tables.

This package provides:
- Formatted descriptive statistics (mean ± sd, median (IQR), n (%), mean with CI)
- Summary specs inferred from column types or written by hand
- Grouped summary tables with one column per group
- Markdown and LaTeX rendering
- A small CLI for CSV/Parquet files
"""

__version__ = "0.1.0"

from summarytab.config import FormatConfig, config_context, get_config, set_config, reset_config
from summarytab.errors import (
    SummaryTableError,
    InvalidInput,
    DegenerateStatistic,
    ShapeMismatch,
    UnresolvedReference,
)
from summarytab.formatting import (
    format_number,
    format_percent,
    format_mean_ci,
    format_pvalue,
)
from summarytab.statistics import (
    StatisticResult,
    mean_sd,
    mean_se,
    gmean_sd,
    median_iqr,
    n_perc,
    n_perc0,
    perc_n,
    mean_ci,
)
from summarytab.expressions import Expression, CallableExpression, BoundExpression, stat, bind
from summarytab.summary import SummarySpec, infer_summary, qsummary, spec_from_mapping
from summarytab.table import TableGrid, build_table, concat_tables
from summarytab.render import render

__all__ = [
    "__version__",
    "FormatConfig",
    "config_context",
    "get_config",
    "set_config",
    "reset_config",
    "SummaryTableError",
    "InvalidInput",
    "DegenerateStatistic",
    "ShapeMismatch",
    "UnresolvedReference",
    "format_number",
    "format_percent",
    "format_mean_ci",
    "format_pvalue",
    "StatisticResult",
    "mean_sd",
    "mean_se",
    "gmean_sd",
    "median_iqr",
    "n_perc",
    "n_perc0",
    "perc_n",
    "mean_ci",
    "Expression",
    "CallableExpression",
    "BoundExpression",
    "stat",
    "bind",
    "SummarySpec",
    "infer_summary",
    "qsummary",
    "spec_from_mapping",
    "TableGrid",
    "build_table",
    "concat_tables",
    "render",
]
