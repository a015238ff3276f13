"""Render a TableGrid as a markdown pipe table or a LaTeX tabular."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from summarytab.config import FormatConfig, resolve
from summarytab.errors import ShapeMismatch
from summarytab.formatting import escape_latex, escape_markdown
from summarytab.table import TableGrid

ROW_GROUP_MODES = ("separator", "column")

MD_INDENT = "&nbsp;&nbsp;"
TEX_INDENT = r"\quad "

_TEX_UNESCAPED = re.compile(r"(?<!\\)([%&#_])")


def _latex_cell(text: str) -> str:
    # cells may have been formatted for another markup
    text = text.replace("±", r"$\pm$")
    return _TEX_UNESCAPED.sub(r"\\\1", text)


def _markdown_cell(text: str) -> str:
    text = text.replace(r"$\pm$", "±").replace(r"\%", "%")
    return escape_markdown(text)


def _headers(grid: TableGrid, column_names: Optional[Sequence[str]], show_n: bool) -> List[str]:
    names = list(grid.columns) if column_names is None else [str(n) for n in column_names]
    if len(names) != len(grid.columns):
        raise ShapeMismatch(
            f"Got {len(names)} column names for a table with {len(grid.columns)} columns"
        )
    if show_n and grid.n:
        names = [f"{name} (N = {n})" for name, n in zip(names, grid.n)]
    return names


def render_markdown(
    grid: TableGrid,
    caption: Optional[str] = None,
    column_names: Optional[Sequence[str]] = None,
    row_group_header: str = "",
    row_groups: str = "separator",
    show_n: bool = True,
) -> str:
    """Markdown pipe table.

    In separator mode each row group is a bold row with the member rows
    indented below it; in column mode the row group gets its own first
    column, filled on the first row of each group.
    """
    headers = [escape_markdown(h) for h in _headers(grid, column_names, show_n)]
    k = len(headers)
    lines = []

    if row_groups == "column":
        lines.append("| " + " | ".join([escape_markdown(row_group_header), ""] + headers) + " |")
        lines.append("|" + "|".join([":---", ":---"] + [":---"] * k) + "|")
        previous = None
        for row in grid.rows:
            group = f"**{escape_markdown(row.row_group)}**" if row.row_group != previous else ""
            previous = row.row_group
            cells = [group, escape_markdown(row.label)] + [_markdown_cell(v) for v in row.values]
            lines.append("| " + " | ".join(cells) + " |")
    else:
        lines.append("| " + " | ".join([escape_markdown(row_group_header)] + headers) + " |")
        lines.append("|" + "|".join([":---"] + [":---"] * k) + "|")
        previous = None
        for row in grid.rows:
            if row.row_group != previous:
                previous = row.row_group
                lines.append(
                    "| " + " | ".join([f"**{escape_markdown(row.row_group)}**"] + [""] * k) + " |"
                )
            cells = [f"{MD_INDENT} {escape_markdown(row.label)}"] + [
                _markdown_cell(v) for v in row.values
            ]
            lines.append("| " + " | ".join(cells) + " |")

    caption = caption if caption is not None else grid.caption
    if caption:
        lines.extend(["", f"Table: {caption}"])
    return "\n".join(lines) + "\n"


def render_latex(
    grid: TableGrid,
    caption: Optional[str] = None,
    column_names: Optional[Sequence[str]] = None,
    row_group_header: str = "",
    row_groups: str = "separator",
    show_n: bool = True,
    label: Optional[str] = None,
) -> str:
    """LaTeX tabular with booktabs rules.

    The tabular is wrapped in a ``table`` float when a caption or label is
    given. Row-group labels are escaped; cells keep any LaTeX they were
    formatted with.
    """
    headers = [escape_latex(h) for h in _headers(grid, column_names, show_n)]
    k = len(headers)
    label_cols = 2 if row_groups == "column" else 1
    caption = caption if caption is not None else grid.caption

    lines = []
    floating = bool(caption or label)
    if floating:
        lines.extend([r"\begin{table}[htbp]", r"\centering"])
        if caption:
            lines.append(rf"\caption{{{escape_latex(caption)}}}")
        if label:
            lines.append(rf"\label{{{label}}}")

    lines.append(r"\begin{tabular}{" + "l" * label_cols + "l" * k + "}")
    lines.append(r"\toprule")
    lead = [escape_latex(row_group_header)] + ([""] if row_groups == "column" else [])
    lines.append(" & ".join(lead + headers) + r" \\")
    lines.append(r"\midrule")

    previous = None
    for row in grid.rows:
        values = [_latex_cell(v) for v in row.values]
        if row_groups == "column":
            first = row.row_group != previous
            if first and previous is not None:
                lines.append(r"\midrule")
            group = rf"\textbf{{{escape_latex(row.row_group)}}}" if first else ""
            lines.append(" & ".join([group, escape_latex(row.label)] + values) + r" \\")
        else:
            if row.row_group != previous:
                lines.append(
                    rf"\multicolumn{{{k + 1}}}{{l}}{{\textbf{{{escape_latex(row.row_group)}}}}} \\"
                )
            lines.append(" & ".join([TEX_INDENT + escape_latex(row.label)] + values) + r" \\")
        previous = row.row_group

    lines.extend([r"\bottomrule", r"\end{tabular}"])
    if floating:
        lines.append(r"\end{table}")
    return "\n".join(lines) + "\n"


def render(
    grid: TableGrid,
    markup: Optional[str] = None,
    caption: Optional[str] = None,
    column_names: Optional[Sequence[str]] = None,
    row_group_header: str = "",
    row_groups: str = "separator",
    show_n: bool = True,
    label: Optional[str] = None,
    config: Optional[FormatConfig] = None,
) -> str:
    """Render a table in the requested (or configured) markup.

    Args:
        grid: Table from ``build_table``
        markup: markdown, latex or plain (plain uses the markdown layout);
            defaults to the configured markup
        caption: Caption; defaults to the table's own caption
        column_names: Replacement column labels (must match the column count)
        row_group_header: Header for the label / row-group column
        row_groups: "separator" rows or a separate "column"
        show_n: Append "(N = n)" to column headers
        label: LaTeX ``\\label`` key
        config: Explicit configuration

    Returns:
        Table markup as text
    """
    cfg = resolve(config, markup=markup)
    if row_groups not in ROW_GROUP_MODES:
        raise ValueError(f"row_groups must be one of {list(ROW_GROUP_MODES)}, got {row_groups}")

    if cfg.markup == "latex":
        return render_latex(grid, caption, column_names, row_group_header, row_groups, show_n, label)
    return render_markdown(grid, caption, column_names, row_group_header, row_groups, show_n)
