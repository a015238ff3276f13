"""Deferred statistic expressions.

An ``Expression`` records *what* to compute (a statistic kind and a column
name) and is resolved against whatever subset of rows it is evaluated on.
This is what lets one summary spec be reused for every group of a table.

``BoundExpression`` is the exception: it carries its own values and ignores
the rows it is evaluated against. It is only correct when the table is built
from the exact data it was bound to; under grouping every column shows the
statistic of the full, unsubsetted data.
"""

from __future__ import annotations

import ast
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd
import yaml

from summarytab import statistics as st
from summarytab.config import FormatConfig, resolve
from summarytab.errors import InvalidInput, UnresolvedReference
from summarytab.formatting import format_number, is_missing


def _scalar(fn: Callable[[pd.Series], Any], numeric: bool = True) -> Callable[..., Any]:
    def apply(x: pd.Series, na_rm: Optional[bool] = None, config=None, **_ignored):
        cfg = resolve(config, na_rm=na_rm)
        if numeric and not (
            pd.api.types.is_numeric_dtype(x.dtype) and not isinstance(x.dtype, pd.CategoricalDtype)
        ):
            raise InvalidInput(f"Expected numeric data, got values of dtype {x.dtype}")
        if numeric and x.isna().any() and not cfg.na_rm:
            return float("nan")
        return fn(x.dropna())

    return apply


STATISTICS: Dict[str, Callable[..., Any]] = {
    "min": st.minimum,
    "max": st.maximum,
    "mean_sd": st.mean_sd,
    "mean_se": st.mean_se,
    "gmean_sd": st.gmean_sd,
    "median_iqr": st.median_iqr,
    "n_perc": st.n_perc,
    "n_perc0": st.n_perc0,
    "perc_n": st.perc_n,
    "mean_ci": st.mean_ci,
}

# raw scalars, formatted with format_number at table time
SCALARS: Dict[str, Callable[..., Any]] = {
    "n": _scalar(lambda x: int(len(x)), numeric=False),
    "mean": _scalar(lambda x: float(np.mean(x)) if len(x) else float("nan")),
    "median": _scalar(lambda x: float(np.median(x)) if len(x) else float("nan")),
    "sd": _scalar(lambda x: float(np.std(x, ddof=1)) if len(x) > 1 else float("nan")),
}

KINDS = tuple(STATISTICS) + tuple(SCALARS)


def _apply(kind: str, values: pd.Series, kwargs: Mapping[str, Any], config) -> Any:
    if kind in STATISTICS:
        return STATISTICS[kind](values, config=config, **kwargs)
    return SCALARS[kind](values, config=config, **kwargs)


def _check_kind(kind: str) -> None:
    if kind not in KINDS:
        raise InvalidInput(f"Unknown statistic '{kind}'. Choose from: {', '.join(KINDS)}")


@dataclass(frozen=True)
class Expression:
    """A statistic over one column, resolved against the data at evaluation.

    Attributes:
        kind: Statistic name, one of ``KINDS``
        column: Column the statistic reads
        kwargs: Extra keyword arguments for the statistic (digits, level, ...)
    """

    kind: str
    column: str
    kwargs: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        _check_kind(self.kind)
        object.__setattr__(self, "kwargs", MappingProxyType(dict(self.kwargs)))

    @property
    def columns(self) -> Tuple[str, ...]:
        return (self.column,)

    def evaluate(self, data: pd.DataFrame, config: Optional[FormatConfig] = None) -> Any:
        if self.column not in data.columns:
            raise UnresolvedReference(
                f"Column '{self.column}' referenced by {self!r} not found in data"
            )
        return _apply(self.kind, data[self.column], self.kwargs, config)

    def __repr__(self) -> str:
        column = self.column if re.fullmatch(r"[\w.]+", self.column) else repr(self.column)
        args = [column] + [f"{k}={v!r}" for k, v in self.kwargs.items()]
        return f"{self.kind}({', '.join(args)})"


@dataclass(frozen=True)
class CallableExpression:
    """A user function of the row subset, e.g. ``lambda d: d["mpg"].max()``.

    ``columns`` lists the columns the function reads so missing columns are
    reported as ``UnresolvedReference`` before the function is called. The
    function may return a ``StatisticResult``, a number or a string.
    """

    func: Callable[[pd.DataFrame], Any]
    columns: Tuple[str, ...] = ()
    name: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.columns, str):
            object.__setattr__(self, "columns", (self.columns,))
        else:
            object.__setattr__(self, "columns", tuple(self.columns))

    def evaluate(self, data: pd.DataFrame, config: Optional[FormatConfig] = None) -> Any:
        missing = [c for c in self.columns if c not in data.columns]
        if missing:
            raise UnresolvedReference(f"Columns {missing} referenced by {self!r} not found in data")
        return self.func(data)

    def __repr__(self) -> str:
        name = self.name or getattr(self.func, "__name__", "function")
        return f"{name}({', '.join(self.columns)})"


@dataclass(frozen=True)
class BoundExpression:
    """A statistic bound to one concrete set of values.

    Evaluation ignores the data passed in and always reads ``values``. Under
    grouping this yields the same (full-data) result in every column.
    """

    values: pd.Series = field(compare=False)
    kind: str = "mean_sd"
    kwargs: Mapping[str, Any] = field(default_factory=dict)
    source: Optional[str] = None

    def __post_init__(self):
        _check_kind(self.kind)
        if not isinstance(self.values, pd.Series):
            object.__setattr__(self, "values", pd.Series(self.values, name=self.source))
        object.__setattr__(self, "kwargs", MappingProxyType(dict(self.kwargs)))

    @property
    def columns(self) -> Tuple[str, ...]:
        return ()

    def evaluate(self, data: Optional[pd.DataFrame] = None, config: Optional[FormatConfig] = None) -> Any:
        return _apply(self.kind, self.values, self.kwargs, config)

    def __repr__(self) -> str:
        return f"bound {self.kind}({self.source or self.values.name or '<values>'})"


AnyExpression = Union[Expression, CallableExpression, BoundExpression]


def stat(kind: str, column: str, **kwargs: Any) -> Expression:
    """Build an expression, e.g. ``stat("mean_sd", "mpg", digits=1)``."""
    return Expression(kind, column, kwargs)


def bind(data: pd.DataFrame, column: str, kind: str, **kwargs: Any) -> BoundExpression:
    """Bind a statistic to ``data[column]`` as it is now.

    The result ignores later subsetting: building a grouped table from it
    reports the full-data statistic in every group column.
    """
    if column not in data.columns:
        raise UnresolvedReference(f"Column '{column}' not found in data")
    return BoundExpression(data[column], kind, kwargs, source=column)


_CALL = re.compile(r"^\s*(\w+)\s*\(\s*(.*?)\s*\)\s*$")


def _split_args(text: str) -> list:
    parts, depth, quote, escaped, current = [], 0, None, False, ""
    for ch in text:
        if quote:
            current += ch
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch in "'\"":
            quote = ch
        elif ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
            continue
        current += ch
    if current.strip():
        parts.append(current.strip())
    return parts


def _unquote(arg: str) -> str:
    # quoted names are Python string literals, as written by Expression.__repr__
    if len(arg) >= 2 and arg[0] in "'\"" and arg[-1] == arg[0]:
        try:
            value = ast.literal_eval(arg)
        except (SyntaxError, ValueError) as exc:
            raise InvalidInput(f"Cannot read quoted column name {arg}") from exc
        if isinstance(value, str):
            return value
    return arg


def parse_expression(text: str) -> Expression:
    """Parse ``"mean_sd(mpg, digits=1)"`` into an Expression.

    Column names may be quoted; keyword values are read as YAML scalars, so
    ``level=0.9`` is a float and ``show_symbol=false`` a bool.
    """
    match = _CALL.match(text)
    if not match:
        raise InvalidInput(f"Cannot parse expression '{text}'; expected e.g. mean_sd(mpg)")
    kind, args = match.group(1), _split_args(match.group(2))
    if not args or re.match(r"^\w+\s*=", args[0]):
        raise InvalidInput(f"Expression '{text}' must name a column as its first argument")

    column = _unquote(args[0])
    kwargs = {}
    for arg in args[1:]:
        key, sep, value = arg.partition("=")
        if not sep:
            raise InvalidInput(f"Expected keyword argument in '{text}', got '{arg}'")
        kwargs[key.strip()] = yaml.safe_load(value.strip())
    return Expression(kind, column, kwargs)


def as_expression(obj: Any) -> AnyExpression:
    """Coerce a spec leaf into an expression.

    Accepts expressions, expression strings, ``{"stat": ..., "column": ...}``
    mappings and plain callables of the data.
    """
    if isinstance(obj, (Expression, CallableExpression, BoundExpression)):
        return obj
    if isinstance(obj, str):
        return parse_expression(obj)
    if isinstance(obj, Mapping):
        payload = dict(obj)
        try:
            kind = payload.pop("stat")
            column = payload.pop("column")
        except KeyError as exc:
            raise InvalidInput(f"Expression mapping {obj!r} needs 'stat' and 'column' keys") from exc
        return Expression(kind, column, payload)
    if callable(obj):
        return CallableExpression(obj)
    raise InvalidInput(f"Cannot use {obj!r} as a summary expression")


def evaluate_cell(
    expression: AnyExpression, data: pd.DataFrame, config: Optional[FormatConfig] = None
) -> str:
    """Evaluate an expression and return its display string."""
    cfg = resolve(config, digits=getattr(expression, "kwargs", {}).get("digits"))
    result = expression.evaluate(data, config=cfg)
    if isinstance(result, st.StatisticResult):
        return result.text
    if isinstance(result, str):
        return result
    if is_missing(result):
        return cfg.na_string
    return format_number(result, config=cfg)
