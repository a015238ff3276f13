"""Assemble summary tables from a dataset, optional grouping and a spec."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from summarytab.config import FormatConfig, resolve
from summarytab.errors import InvalidInput, ShapeMismatch, SummaryTableError, UnresolvedReference
from summarytab.expressions import BoundExpression, evaluate_cell
from summarytab.summary import SummarySpec, qsummary

logger = logging.getLogger(__name__)

OVERALL = "Overall"


@dataclass(frozen=True)
class TableRow:
    """One rendered row: its row group, label and one cell per column."""

    row_group: str
    label: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class TableGrid:
    """Formatted summary table.

    Attributes:
        columns: Column labels, one per group
        rows: Rows in spec order
        n: Number of data rows behind each column
        caption: Optional caption carried to the renderer
    """

    columns: Tuple[str, ...]
    rows: Tuple[TableRow, ...]
    n: Tuple[int, ...] = ()
    caption: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "rows", tuple(self.rows))
        object.__setattr__(self, "n", tuple(self.n))
        for row in self.rows:
            if len(row.values) != len(self.columns):
                raise ShapeMismatch(
                    f"Row '{row.label}' has {len(row.values)} values for {len(self.columns)} columns"
                )
        if self.n and len(self.n) != len(self.columns):
            raise ShapeMismatch(f"Got {len(self.n)} group sizes for {len(self.columns)} columns")

    @property
    def shape(self) -> Tuple[int, int]:
        return len(self.rows), len(self.columns)

    @property
    def row_groups(self) -> List[str]:
        return list(dict.fromkeys(row.row_group for row in self.rows))

    def structure(self) -> List[Tuple[str, str]]:
        return [(row.row_group, row.label) for row in self.rows]

    def cell(self, row_group: str, label: str, column: Union[int, str] = 0) -> str:
        idx = column if isinstance(column, int) else self.columns.index(column)
        for row in self.rows:
            if row.row_group == row_group and row.label == label:
                return row.values[idx]
        raise KeyError(f"No row '{label}' in row group '{row_group}'")

    def with_column_names(self, names: Sequence[str]) -> "TableGrid":
        """Replace column labels; the count must match exactly."""
        names = [str(n) for n in names]
        if len(names) != len(self.columns):
            raise ShapeMismatch(
                f"Got {len(names)} column names for a table with {len(self.columns)} columns"
            )
        return replace(self, columns=tuple(names))

    def with_row_group_names(self, names: Union[Sequence[str], Mapping[str, str]]) -> "TableGrid":
        """Rename row groups, by position (sequence) or by label (mapping)."""
        current = self.row_groups
        if isinstance(names, Mapping):
            mapping = {g: str(names.get(g, g)) for g in current}
        else:
            names = list(names)
            if len(names) != len(current):
                raise ShapeMismatch(
                    f"Got {len(names)} row-group names for a table with {len(current)} row groups"
                )
            mapping = dict(zip(current, (str(n) for n in names)))
        rows = [replace(row, row_group=mapping[row.row_group]) for row in self.rows]
        return replace(self, rows=tuple(rows))

    def with_caption(self, caption: Optional[str]) -> "TableGrid":
        return replace(self, caption=caption)

    def concat(self, *others: "TableGrid") -> "TableGrid":
        return concat_tables(self, *others)

    def to_frame(self) -> pd.DataFrame:
        """DataFrame indexed by (row_group, row) with one column per group."""
        index = pd.MultiIndex.from_tuples(self.structure(), names=["row_group", "row"])
        return pd.DataFrame([list(r.values) for r in self.rows], index=index, columns=list(self.columns))


def concat_tables(*grids: TableGrid) -> TableGrid:
    """Join tables side by side (e.g. an overall column next to grouped ones).

    Raises:
        ShapeMismatch: If the tables differ in row groups, row labels or order
    """
    if not grids:
        raise ShapeMismatch("Need at least one table to concatenate")

    first = grids[0]
    reference = first.structure()
    for i, grid in enumerate(grids[1:], start=1):
        other = grid.structure()
        if other != reference:
            where = next(
                (k for k, (a, b) in enumerate(zip(reference, other)) if a != b),
                min(len(reference), len(other)),
            )
            raise ShapeMismatch(
                f"Table {i} does not match table 0 at row {where}: "
                f"{reference[where] if where < len(reference) else None} vs "
                f"{other[where] if where < len(other) else None}"
            )

    columns: List[str] = []
    sizes: List[int] = []
    keep_n = all(g.n for g in grids)
    for grid in grids:
        columns.extend(grid.columns)
        sizes.extend(grid.n)

    rows = [
        TableRow(row.row_group, row.label, tuple(v for g in grids for v in g.rows[k].values))
        for k, row in enumerate(first.rows)
    ]
    caption = next((g.caption for g in grids if g.caption), None)
    return TableGrid(tuple(columns), tuple(rows), tuple(sizes) if keep_n else (), caption)


def _as_list(by: Union[str, Sequence[str], None]) -> List[str]:
    if by is None:
        return []
    if isinstance(by, str):
        return [by]
    return list(by)


def group_data(
    data: pd.DataFrame, by: Union[str, Sequence[str], None] = None, overall_label: str = OVERALL
) -> List[Tuple[str, pd.DataFrame]]:
    """Split data into labelled groups.

    Groups are the observed combinations of the ``by`` columns. Categorical
    columns follow their category order, other columns sort their values.
    Multi-column labels are joined with " / ". Rows with a missing value in
    any grouping column are dropped. Without ``by`` there is a single group
    holding all rows.
    """
    keys = _as_list(by)
    if not keys:
        return [(overall_label, data)]

    missing = [k for k in keys if k not in data.columns]
    if missing:
        raise UnresolvedReference(f"Grouping columns not found in data: {missing}")

    n_dropped = int(data[keys].isna().any(axis=1).sum())
    if n_dropped:
        logger.warning(f"Dropping {n_dropped} rows with missing values in grouping columns {keys}")

    groups = []
    for key, subset in data.groupby(keys, sort=True, observed=True, dropna=True):
        key = key if isinstance(key, tuple) else (key,)
        groups.append((" / ".join(str(k) for k in key), subset))
    return groups


def build_table(
    data: pd.DataFrame,
    by: Union[str, Sequence[str], None] = None,
    spec: Union[SummarySpec, Mapping[str, Mapping[str, Any]], None] = None,
    config: Optional[FormatConfig] = None,
    caption: Optional[str] = None,
    overall_label: str = OVERALL,
) -> TableGrid:
    """Evaluate a summary spec on every group of a dataset.

    Args:
        data: Input dataframe (not modified)
        by: Grouping column(s); None gives a single overall column
        spec: Summary spec; None infers one from every non-grouping column
        config: Explicit formatting configuration
        caption: Caption stored on the table
        overall_label: Column label used when ``by`` is None

    Returns:
        TableGrid with one column per group and one row per spec entry

    Raises:
        UnresolvedReference: An expression or grouping column is not in data
        InvalidInput: A statistic cannot be computed for some group
    """
    if not isinstance(data, pd.DataFrame):
        raise InvalidInput(f"Expected a pandas DataFrame, got {type(data).__name__}")

    cfg = resolve(config)
    keys = _as_list(by)

    if spec is None:
        spec = qsummary(data.drop(columns=[k for k in keys if k in data.columns]))
    elif not isinstance(spec, SummarySpec):
        spec = SummarySpec(spec)

    entries = spec.rows()
    if keys and any(isinstance(e, BoundExpression) for _, _, e in entries):
        logger.warning(
            "Summary spec contains bound expressions; they ignore grouping and "
            "report the full data in every column"
        )

    groups = group_data(data, keys, overall_label=overall_label)
    logger.info(f"Building summary table: {len(entries)} rows x {len(groups)} columns")

    cells: List[List[str]] = []
    for label, subset in groups:
        logger.debug(f"Evaluating group '{label}' ({len(subset)} rows)")
        column = []
        for row_group, row_label, expression in entries:
            try:
                column.append(evaluate_cell(expression, subset, config=cfg))
            except SummaryTableError as exc:
                raise type(exc)(
                    f"row group '{row_group}', row '{row_label}', column '{label}': {exc}"
                ) from exc
        cells.append(column)

    rows = tuple(
        TableRow(row_group, row_label, tuple(column[k] for column in cells))
        for k, (row_group, row_label, _) in enumerate(entries)
    )
    return TableGrid(
        columns=tuple(label for label, _ in groups),
        rows=rows,
        n=tuple(len(subset) for _, subset in groups),
        caption=caption,
    )
