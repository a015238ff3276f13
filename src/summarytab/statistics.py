"""Descriptive statistics with publication-style display strings.

Each function returns a ``StatisticResult`` holding the raw numeric
components alongside the formatted string, e.g.

    >>> res = mean_sd([21, 22.8, 21, 18.7])
    >>> res["mean"], str(res)
    (20.875, '20.88 ± 1.68')
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from numbers import Number
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats as sp_stats

from summarytab.config import FormatConfig, resolve
from summarytab.errors import DegenerateStatistic, InvalidInput
from summarytab.formatting import (
    format_mean_ci,
    format_number,
    format_percent,
    is_missing,
    plus_minus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatisticResult:
    """Numeric components of a statistic plus its display string.

    Attributes:
        name: Statistic name (e.g. "mean_sd")
        values: Ordered, read-only mapping of component name -> value
        text: Formatted display string
    """

    name: str
    values: Mapping[str, Any]
    text: str

    def __post_init__(self):
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def __getitem__(self, key: str) -> Any:
        return self.values[key]

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class MeanCIResult(StatisticResult):
    """Result of ``mean_ci``; can be re-rendered in another CI style."""

    config: FormatConfig = field(default=None, compare=False, repr=False)

    def formatted(
        self,
        style: Optional[str] = None,
        digits: Optional[int] = None,
        config: Optional[FormatConfig] = None,
    ) -> str:
        """Render the interval with a different style, e.g. ``style="level"``."""
        cfg = resolve(config if config is not None else self.config, ci_style=style, digits=digits)
        if is_missing(self.values["mean"]):
            return cfg.na_string
        return format_mean_ci(
            self.values["mean"],
            self.values["lower"],
            self.values["upper"],
            level=self.values["level"],
            config=cfg,
        )


def _as_series(x) -> pd.Series:
    if isinstance(x, pd.Series):
        s = x
    elif isinstance(x, (str, bytes)) or np.ndim(x) == 0:
        raise InvalidInput(f"Expected a sequence of values, got {type(x).__name__}")
    else:
        s = pd.Series(list(x) if not isinstance(x, np.ndarray) else x)
    if np.ndim(s.values) != 1:
        raise InvalidInput("Expected one-dimensional data")
    if len(s) == 0:
        raise InvalidInput("Cannot compute a statistic on empty input")
    return s


def _numeric_values(x, cfg: FormatConfig) -> Tuple[pd.Series, int]:
    """Validate numeric input and split off missing values.

    Returns:
        Tuple of (non-missing values, number of missing values). When
        ``na_rm`` is disabled and values are missing, the returned series is
        empty so callers produce an all-NA result.
    """
    s = _as_series(x)

    if isinstance(s.dtype, pd.CategoricalDtype):
        raise InvalidInput("Expected numeric data, got a categorical column")
    if pd.api.types.is_bool_dtype(s.dtype):
        s = s.astype(int)
    elif not pd.api.types.is_numeric_dtype(s.dtype):
        present = [v for v in s if not is_missing(v)]
        if any(isinstance(v, (bool, np.bool_)) or not isinstance(v, Number) for v in present):
            raise InvalidInput(f"Expected numeric data, got values of dtype {s.dtype}")
        s = pd.to_numeric(s)

    valid = s.dropna()
    n_missing = len(s) - len(valid)
    if n_missing and not cfg.na_rm:
        return valid.iloc[0:0], n_missing
    return valid, n_missing


def _require(values: pd.Series, n_min: int, stat: str, cfg: FormatConfig, n_missing: int) -> bool:
    """Check there are enough values; returns False when NA output is allowed."""
    if n_missing and not cfg.na_rm:
        return False
    if len(values) == 0:
        if cfg.allow_degenerate:
            logger.debug("%s: no non-missing values, returning NA", stat)
            return False
        raise InvalidInput(f"{stat}: all values are missing")
    if len(values) < n_min:
        if cfg.allow_degenerate:
            logger.debug("%s: %d value(s) below minimum of %d, returning NA", stat, len(values), n_min)
            return False
        raise DegenerateStatistic(
            f"{stat}: needs at least {n_min} non-missing values, got {len(values)}"
        )
    return True


def _mean(values: pd.Series) -> float:
    arr = values.to_numpy(dtype=float)
    return math.fsum(arr) / len(arr)


def _sd(values: pd.Series) -> float:
    return float(np.std(values.to_numpy(dtype=float), ddof=1))


def _center_spread(center, spread, show_sign: bool, cfg: FormatConfig) -> str:
    c = format_number(center, config=cfg)
    s = format_number(spread, config=cfg)
    if show_sign:
        return f"{c} {plus_minus(cfg)} {s}"
    return f"{c} ({s})"


def mean_sd(
    x,
    digits: Optional[int] = None,
    show_sign: bool = True,
    na_rm: Optional[bool] = None,
    config: Optional[FormatConfig] = None,
) -> StatisticResult:
    """Mean and sample standard deviation.

    Args:
        x: Numeric values
        digits: Decimal places
        show_sign: True renders "mean ± sd", False renders "mean (sd)"
        na_rm: Drop missing values (default from config)
        config: Explicit configuration

    Returns:
        StatisticResult with components n, mean, sd

    Raises:
        InvalidInput: Empty or non-numeric input
        DegenerateStatistic: Fewer than 2 values and degenerate output not allowed
    """
    cfg = resolve(config, digits=digits, na_rm=na_rm)
    values, n_missing = _numeric_values(x, cfg)

    if _require(values, 2, "mean_sd", cfg, n_missing):
        m, sd = _mean(values), _sd(values)
    else:
        # a single value keeps its mean, sd prints as NA
        m = _mean(values) if len(values) else float("nan")
        sd = float("nan")

    text = cfg.na_string if is_missing(m) else _center_spread(m, sd, show_sign, cfg)
    return StatisticResult("mean_sd", {"n": len(values), "mean": m, "sd": sd}, text)


def mean_se(
    x,
    digits: Optional[int] = None,
    show_sign: bool = True,
    na_rm: Optional[bool] = None,
    config: Optional[FormatConfig] = None,
) -> StatisticResult:
    """Mean and standard error of the mean ("mean ± se")."""
    cfg = resolve(config, digits=digits, na_rm=na_rm)
    values, n_missing = _numeric_values(x, cfg)

    if _require(values, 2, "mean_se", cfg, n_missing):
        m = _mean(values)
        se = _sd(values) / math.sqrt(len(values))
    else:
        m = _mean(values) if len(values) else float("nan")
        se = float("nan")

    text = cfg.na_string if is_missing(m) else _center_spread(m, se, show_sign, cfg)
    return StatisticResult("mean_se", {"n": len(values), "mean": m, "se": se}, text)


def gmean_sd(
    x,
    digits: Optional[int] = None,
    show_sign: bool = True,
    na_rm: Optional[bool] = None,
    config: Optional[FormatConfig] = None,
) -> StatisticResult:
    """Geometric mean and geometric standard deviation of positive data."""
    cfg = resolve(config, digits=digits, na_rm=na_rm)
    values, n_missing = _numeric_values(x, cfg)

    if (values <= 0).any():
        raise InvalidInput("gmean_sd: all values must be strictly positive")

    arr = values.to_numpy(dtype=float)
    if _require(values, 2, "gmean_sd", cfg, n_missing):
        gm = float(sp_stats.gmean(arr))
        gsd = float(sp_stats.gstd(arr))
    else:
        gm = float(sp_stats.gmean(arr)) if len(arr) else float("nan")
        gsd = float("nan")

    text = cfg.na_string if is_missing(gm) else _center_spread(gm, gsd, show_sign, cfg)
    return StatisticResult("gmean_sd", {"n": len(arr), "gmean": gm, "gsd": gsd}, text)


def median_iqr(
    x,
    digits: Optional[int] = None,
    na_rm: Optional[bool] = None,
    config: Optional[FormatConfig] = None,
) -> StatisticResult:
    """Median with first and third quartiles, "median (Q1, Q3)".

    Quartiles use linear interpolation between order statistics (Hyndman &
    Fan type 7, numpy's default).
    """
    cfg = resolve(config, digits=digits, na_rm=na_rm)
    values, n_missing = _numeric_values(x, cfg)

    if _require(values, 1, "median_iqr", cfg, n_missing):
        q1, med, q3 = (float(q) for q in np.percentile(values.to_numpy(dtype=float), [25, 50, 75]))
        text = (
            f"{format_number(med, config=cfg)} "
            f"({format_number(q1, config=cfg)}, {format_number(q3, config=cfg)})"
        )
    else:
        q1 = med = q3 = float("nan")
        text = cfg.na_string

    return StatisticResult(
        "median_iqr",
        {"n": len(values), "median": med, "q1": q1, "q3": q3, "iqr": q3 - q1},
        text,
    )


def _extreme(x, which: str, digits, na_rm, config) -> StatisticResult:
    cfg = resolve(config, digits=digits, na_rm=na_rm)
    values, n_missing = _numeric_values(x, cfg)
    if _require(values, 1, which, cfg, n_missing):
        value = values.min() if which == "min" else values.max()
        value = int(value) if pd.api.types.is_integer_dtype(values.dtype) else float(value)
    else:
        value = float("nan")
    return StatisticResult(which, {"n": len(values), which: value}, format_number(value, config=cfg))


def minimum(x, digits: Optional[int] = None, na_rm: Optional[bool] = None, config=None):
    """Smallest value; integer columns print without decimals."""
    return _extreme(x, "min", digits, na_rm, config)


def maximum(x, digits: Optional[int] = None, na_rm: Optional[bool] = None, config=None):
    """Largest value; integer columns print without decimals."""
    return _extreme(x, "max", digits, na_rm, config)


def _match_counts(x, level, cfg: FormatConfig) -> Tuple[int, int, int]:
    """Count matches, the denominator and the number of missing values."""
    s = _as_series(x)
    missing = s.isna()
    n_missing = int(missing.sum())
    present = s[~missing]

    if level is None:
        if not _is_logical(present):
            raise InvalidInput(
                "n_perc: a level is required for non-logical data "
                f"(dtype {s.dtype}, values {list(pd.unique(present))[:5]})"
            )
        n = int((present.astype(int) == 1).sum())
    else:
        n = int((present == level).sum())

    total = len(present) if cfg.na_rm else len(s)
    return n, total, n_missing


def _is_logical(present: pd.Series) -> bool:
    if pd.api.types.is_bool_dtype(present.dtype):
        return True
    if isinstance(present.dtype, pd.CategoricalDtype):
        return False
    values = set(pd.unique(present))
    if not values:
        return True
    if all(isinstance(v, (bool, np.bool_)) for v in values):
        return True
    return pd.api.types.is_numeric_dtype(present.dtype) and values <= {0, 1}


def _count_text(n: int, total: int, n_missing: int, cfg: FormatConfig) -> str:
    if cfg.show_denom == "always" or (cfg.show_denom == "ifNA" and n_missing > 0):
        return f"{n}/{total}"
    return str(n)


def n_perc(
    x,
    level=None,
    digits: Optional[int] = None,
    show_symbol: bool = True,
    show_denom: Optional[str] = None,
    na_rm: Optional[bool] = None,
    config: Optional[FormatConfig] = None,
) -> StatisticResult:
    """Count and percentage of values that are TRUE (or equal ``level``).

    The denominator is the number of non-missing values. With ``na_rm``
    disabled the denominator is the full length, so missing values count as
    non-matching.

    Args:
        x: Logical data, or any data together with ``level``
        level: Value to count; required for non-logical data
        digits: Decimal places for the percentage
        show_symbol: Append "%" to the percentage
        show_denom: Print "n/N" never, ifNA (only when values were missing)
            or always
        na_rm: Drop missing values from the denominator
        config: Explicit configuration

    Returns:
        StatisticResult with components n, N, percent, n_missing
    """
    cfg = resolve(config, digits=digits, show_denom=show_denom, na_rm=na_rm)
    n, total, n_missing = _match_counts(x, level, cfg)
    percent = 100.0 * n / total if total else float("nan")
    text = f"{_count_text(n, total, n_missing, cfg)} ({format_percent(percent, show_symbol=show_symbol, config=cfg)})"
    return StatisticResult(
        "n_perc", {"n": n, "N": total, "percent": percent, "n_missing": n_missing}, text
    )


def n_perc0(
    x,
    level=None,
    digits: Optional[int] = None,
    show_symbol: bool = False,
    show_denom: Optional[str] = None,
    na_rm: Optional[bool] = None,
    config: Optional[FormatConfig] = None,
) -> StatisticResult:
    """``n_perc`` without the percent symbol, "n (pct)"."""
    return n_perc(
        x,
        level=level,
        digits=digits,
        show_symbol=show_symbol,
        show_denom=show_denom,
        na_rm=na_rm,
        config=config,
    )


def perc_n(
    x,
    level=None,
    digits: Optional[int] = None,
    show_symbol: bool = True,
    show_denom: Optional[str] = None,
    na_rm: Optional[bool] = None,
    config: Optional[FormatConfig] = None,
) -> StatisticResult:
    """Percentage first, "pct% (n)"."""
    res = n_perc(x, level, digits, show_symbol, show_denom, na_rm, config)
    cfg = resolve(config, digits=digits, show_denom=show_denom, na_rm=na_rm)
    pct = format_percent(res["percent"], show_symbol=show_symbol, config=cfg)
    text = f"{pct} ({_count_text(res['n'], res['N'], res['n_missing'], cfg)})"
    return StatisticResult("perc_n", res.values, text)


def mean_ci(
    x,
    level: Optional[float] = None,
    digits: Optional[int] = None,
    style: Optional[str] = None,
    na_rm: Optional[bool] = None,
    config: Optional[FormatConfig] = None,
) -> MeanCIResult:
    """Sample mean with a two-sided t-distribution confidence interval.

    The interval is ``mean ± t(1 - (1 - level) / 2, n - 1) * sd / sqrt(n)``.

    Args:
        x: Numeric values
        level: Confidence level (default from config, 0.95)
        digits: Decimal places
        style: CI layout (parens, to, level)
        na_rm: Drop missing values
        config: Explicit configuration

    Returns:
        MeanCIResult with components n, mean, lower, upper, level
    """
    cfg = resolve(config, level=level, digits=digits, ci_style=style, na_rm=na_rm)
    values, n_missing = _numeric_values(x, cfg)

    if _require(values, 2, "mean_ci", cfg, n_missing):
        n = len(values)
        m = _mean(values)
        half = sp_stats.t.ppf(1 - (1 - cfg.level) / 2, df=n - 1) * _sd(values) / math.sqrt(n)
        lower, upper = m - float(half), m + float(half)
        text = format_mean_ci(m, lower, upper, config=cfg)
    else:
        m = lower = upper = float("nan")
        text = cfg.na_string

    return MeanCIResult(
        "mean_ci",
        {"n": len(values), "mean": m, "lower": lower, "upper": upper, "level": cfg.level},
        text,
        config=cfg,
    )
