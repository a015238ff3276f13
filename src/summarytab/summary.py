"""Summary specifications: which statistics go in which table rows.

A ``SummarySpec`` is an ordered two-level mapping::

    {
        "Miles per gallon": {
            "median (IQR)": stat("median_iqr", "mpg"),
            "mean (sd)": stat("mean_sd", "mpg"),
        },
        "Transmission": {
            "automatic": stat("n_perc", "am", level=0),
            "manual": stat("n_perc", "am", level=1),
        },
    }

Insertion order is row order in the rendered table.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from summarytab.errors import InvalidInput
from summarytab.expressions import AnyExpression, Expression, as_expression

logger = logging.getLogger(__name__)


class SummarySpec:
    """Ordered mapping of row-group label -> (row label -> expression)."""

    def __init__(self, groups: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self._groups: Dict[str, Dict[str, AnyExpression]] = {}
        for label, rows in (groups or {}).items():
            self.add(label, rows)

    @classmethod
    def from_items(cls, items: Iterable[Tuple[str, Iterable[Tuple[str, Any]]]]) -> "SummarySpec":
        """Build from ``(row_group, [(row, expression), ...])`` pairs.

        Unlike a dict literal, duplicate labels are reported instead of
        silently overwritten.
        """
        spec = cls()
        for label, rows in items:
            rows = list(rows)
            seen = [r for r, _ in rows]
            dupes = sorted({r for r in seen if seen.count(r) > 1})
            if dupes:
                raise InvalidInput(f"Duplicate row labels {dupes} in row group '{label}'")
            spec.add(label, dict(rows))
        return spec

    def add(self, row_group: str, rows: Mapping[str, Any]) -> "SummarySpec":
        if not isinstance(row_group, str):
            raise InvalidInput(f"Row-group labels must be strings, got {row_group!r}")
        if row_group in self._groups:
            raise InvalidInput(f"Duplicate row group '{row_group}'")
        if not rows:
            raise InvalidInput(f"Row group '{row_group}' has no rows")

        converted: Dict[str, AnyExpression] = {}
        for label, expression in rows.items():
            if not isinstance(label, str):
                raise InvalidInput(f"Row labels must be strings, got {label!r} in '{row_group}'")
            converted[label] = as_expression(expression)
        self._groups[row_group] = converted
        return self

    def __getitem__(self, row_group: str) -> Dict[str, AnyExpression]:
        return dict(self._groups[row_group])

    def __contains__(self, row_group: object) -> bool:
        return row_group in self._groups

    def __iter__(self) -> Iterator[str]:
        return iter(self._groups)

    def __len__(self) -> int:
        return len(self._groups)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SummarySpec):
            return NotImplemented
        return self.structure() == other.structure()

    def __repr__(self) -> str:
        groups = {g: {label: repr(e) for label, e in rows.items()} for g, rows in self._groups.items()}
        return f"SummarySpec({groups!r})"

    def items(self):
        return ((label, dict(rows)) for label, rows in self._groups.items())

    def rows(self) -> List[Tuple[str, str, AnyExpression]]:
        """Flatten to ``(row_group, row_label, expression)`` in table order."""
        return [
            (group, label, expression)
            for group, rows in self._groups.items()
            for label, expression in rows.items()
        ]

    def structure(self) -> List[Tuple[str, str]]:
        return [(group, label) for group, label, _ in self.rows()]

    @property
    def columns(self) -> List[str]:
        """Data columns referenced by the expressions, in first-use order."""
        seen: Dict[str, None] = {}
        for _, _, expression in self.rows():
            for column in expression.columns:
                seen.setdefault(column, None)
        return list(seen)

    def select(self, row_groups: Sequence[str]) -> "SummarySpec":
        """Subset and reorder row groups."""
        missing = [g for g in row_groups if g not in self._groups]
        if missing:
            raise KeyError(f"Row groups not in spec: {missing}")
        return SummarySpec.from_items((g, self._groups[g].items()) for g in row_groups)

    def rename(self, names: Mapping[str, str]) -> "SummarySpec":
        """Rename row groups; labels not in ``names`` are kept.

        Raises:
            InvalidInput: If two row groups end up with the same label
        """
        return SummarySpec.from_items(
            (names.get(g, g), rows.items()) for g, rows in self._groups.items()
        )

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        """Plain nested dict with expressions rendered as strings.

        Raises:
            InvalidInput: If a row holds a bound or callable expression, which
                has no string form that ``parse_expression`` can read back
        """
        out: Dict[str, Dict[str, str]] = {}
        for group, rows in self._groups.items():
            for label, expression in rows.items():
                if not isinstance(expression, Expression):
                    raise InvalidInput(
                        f"Row '{label}' in '{group}' holds {expression!r}, which cannot be "
                        "written as text; only column statistics can be serialized"
                    )
            out[group] = {label: repr(expression) for label, expression in rows.items()}
        return out


def _plain(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


def _is_boolean(column: pd.Series) -> bool:
    """Bool dtype, object columns of bools, or numeric columns of 0/1."""
    if pd.api.types.is_bool_dtype(column.dtype):
        return True
    if isinstance(column.dtype, pd.CategoricalDtype):
        return False
    present = column.dropna()
    if present.empty:
        return False
    if pd.api.types.is_numeric_dtype(column.dtype):
        return set(pd.unique(present)) <= {0, 1}
    if column.dtype != object:
        return False
    return all(isinstance(v, (bool, np.bool_)) for v in present)


def _levels(column: pd.Series) -> List[Any]:
    if isinstance(column.dtype, pd.CategoricalDtype):
        return list(column.cat.categories)
    present = pd.unique(column.dropna())
    try:
        return sorted(present)
    except TypeError:
        # mixed types: fall back to string order
        return sorted(present, key=str)


def infer_summary(
    column: pd.Series,
    name: Optional[str] = None,
    digits: Optional[int] = None,
    show_sign: bool = True,
    n_perc_kwargs: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Expression]:
    """Choose summary rows for a column based on its type.

    Numeric columns get minimum, median (IQR), mean (sd) and maximum rows.
    Categorical and string columns get one count/percentage row per level,
    in category order (or sorted order for plain strings). Boolean columns,
    and numeric columns holding only 0 and 1, get TRUE and FALSE rows.

    The returned expressions refer to the column by name only, so they can
    be evaluated on any subset of the data that has that column.

    Args:
        column: The data column
        name: Column name to reference (default: ``column.name``)
        digits: Decimal places passed to every statistic
        show_sign: Render "mean ± sd" (True) or "mean (sd)" (False)
        n_perc_kwargs: Extra arguments for the count rows (e.g. show_denom)

    Returns:
        Ordered dict of row label -> Expression

    Raises:
        InvalidInput: Unnamed column, all values missing, or unsupported dtype
    """
    name = name if name is not None else column.name
    if name is None:
        raise InvalidInput("infer_summary needs a named column (or name=...)")
    name = str(name)

    if column.dropna().empty:
        raise InvalidInput(f"Column '{name}' has no non-missing values to summarize")

    common = {"digits": digits} if digits is not None else {}
    counts = dict(common, **(n_perc_kwargs or {}))

    if _is_boolean(column):
        # 0/1 columns count their zeros, bool columns their False values
        zero_one = pd.api.types.is_numeric_dtype(column.dtype) and not pd.api.types.is_bool_dtype(
            column.dtype
        )
        false_level = 0 if zero_one else False
        return {
            "TRUE": Expression("n_perc", name, counts),
            "FALSE": Expression("n_perc", name, dict(counts, level=false_level)),
        }

    if pd.api.types.is_numeric_dtype(column.dtype) and not isinstance(
        column.dtype, pd.CategoricalDtype
    ):
        return {
            "minimum": Expression("min", name, common),
            "median (IQR)": Expression("median_iqr", name, common),
            "mean (sd)": Expression("mean_sd", name, dict(common, show_sign=show_sign)),
            "maximum": Expression("max", name, common),
        }

    if isinstance(column.dtype, pd.CategoricalDtype) or pd.api.types.is_object_dtype(
        column.dtype
    ) or pd.api.types.is_string_dtype(column.dtype):
        return {
            str(level): Expression("n_perc", name, dict(counts, level=_plain(level)))
            for level in _levels(column)
        }

    raise InvalidInput(f"Cannot summarize column '{name}' of dtype {column.dtype}")


def qsummary(
    data: pd.DataFrame,
    columns: Optional[Sequence[str]] = None,
    digits: Optional[int] = None,
    show_sign: bool = True,
    n_perc_kwargs: Optional[Mapping[str, Any]] = None,
) -> SummarySpec:
    """Infer a full spec with one row group per column.

    Args:
        data: Data to inspect (only used to decide column types and levels)
        columns: Columns to include (default: all, in data order)
        digits, show_sign, n_perc_kwargs: Passed to ``infer_summary``
    """
    columns = list(data.columns) if columns is None else list(columns)
    missing = [c for c in columns if c not in data.columns]
    if missing:
        raise KeyError(f"Columns not found in data: {missing}")

    spec = SummarySpec()
    for col in columns:
        spec.add(
            str(col),
            infer_summary(
                data[col], name=col, digits=digits, show_sign=show_sign, n_perc_kwargs=n_perc_kwargs
            ),
        )
    logger.debug(f"Inferred summary spec for {len(columns)} columns")
    return spec


def spec_from_mapping(payload: Mapping[str, Any]) -> SummarySpec:
    """Build a spec from plain data (e.g. a parsed YAML file).

    Leaves are expression strings such as ``"mean_sd(mpg, digits=1)"`` or
    mappings like ``{"stat": "n_perc", "column": "am", "level": 1}``.
    """
    if not isinstance(payload, Mapping) or not payload:
        raise InvalidInput("Summary spec must be a non-empty mapping of row groups")
    for group, rows in payload.items():
        if not isinstance(rows, Mapping):
            raise InvalidInput(
                f"Row group '{group}' must map row labels to expressions, got {type(rows).__name__}"
            )
    return SummarySpec({str(g): {str(k): v for k, v in rows.items()} for g, rows in payload.items()})
