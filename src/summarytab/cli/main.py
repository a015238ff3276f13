"""Main CLI entrypoint using Typer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from summarytab import __version__

app = typer.Typer(
    name="summarytab",
    help="Publication-style summary statistics tables.",
    add_completion=False,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"summarytab {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """summarytab: summary statistics tables in markdown or LaTeX."""
    pass


@app.command("table")
def table_cmd(
    data: Path = typer.Argument(..., help="Data file (.csv, .tsv, .parquet)"),
    by: Optional[List[str]] = typer.Option(None, "--by", help="Grouping column (repeatable)"),
    spec: Optional[Path] = typer.Option(None, "--spec", help="YAML summary spec (default: infer)"),
    markup: str = typer.Option("markdown", "--markup", help="markdown or latex"),
    digits: int = typer.Option(2, "--digits", help="Decimal places"),
    caption: Optional[str] = typer.Option(None, "--caption", help="Table caption"),
    overall: bool = typer.Option(
        False, "--overall", help="Add an overall column before the grouped columns"
    ),
    row_groups: str = typer.Option("separator", "--row-groups", help="separator or column"),
    show_n: bool = typer.Option(True, "--show-n/--no-show-n", help="Show (N = n) in headers"),
    out: Optional[Path] = typer.Option(None, "--out", help="Write to file instead of stdout"),
):
    """
    Build a summary table and print it as markdown or LaTeX.

    Examples:
        # Inferred summaries of every column, grouped by cyl
        summarytab table mtcars.csv --by cyl

        # Hand-written spec, LaTeX output with an overall column
        summarytab table mtcars.csv --by am --spec spec.yaml --markup latex --overall
    """
    from summarytab.config import FormatConfig
    from summarytab.io import load_spec, load_table
    from summarytab.render import render
    from summarytab.summary import qsummary
    from summarytab.table import build_table, concat_tables

    try:
        config = FormatConfig(digits=digits, markup=markup)
        df = load_table(data)
        by = list(by) if by else None

        if spec is not None:
            summary_spec = load_spec(spec)
        else:
            summary_spec = qsummary(df.drop(columns=by or []))

        grid = build_table(df, by=by, spec=summary_spec, config=config, caption=caption)
        if overall and by:
            grid = concat_tables(build_table(df, spec=summary_spec, config=config), grid)

        text = render(grid, row_groups=row_groups, show_n=show_n, config=config)
    except Exception as e:
        typer.secho(f"✗ Table failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text, encoding="utf-8")
        typer.secho(f"✓ Table written to {out}", fg=typer.colors.GREEN)
    else:
        typer.echo(text, nl=False)


@app.command("spec")
def spec_cmd(
    data: Path = typer.Argument(..., help="Data file (.csv, .tsv, .parquet)"),
    out: Path = typer.Option(..., "--out", help="Output YAML path"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", help="Columns to leave out"),
):
    """Infer a summary spec from a data file and write it as editable YAML."""
    from summarytab.io import dump_spec, load_table
    from summarytab.summary import qsummary

    try:
        df = load_table(data)
        summary_spec = qsummary(df.drop(columns=list(exclude or [])))
        dump_spec(summary_spec, out)
    except Exception as e:
        typer.secho(f"✗ Spec inference failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"✓ Spec with {len(summary_spec)} row groups written to {out}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
