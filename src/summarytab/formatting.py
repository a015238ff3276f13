"""Number formatting for summary tables.

Every function accepts an optional ``FormatConfig`` and explicit keyword
overrides; when neither is given the active configuration is used
(see ``summarytab.config``). The returned strings are plain text.

Rounding is round-half-to-even applied to the shortest decimal
representation of the float, so ``format_number(20.875, 2)`` is ``"20.88"``
and ``format_number(0.125, 2)`` is ``"0.12"``.
"""

from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_EVEN, localcontext
from numbers import Number
from typing import Optional

import numpy as np

from summarytab.config import FormatConfig, resolve

LATEX_SPECIALS = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}


def is_missing(value) -> bool:
    """True for None, NaN and pandas NA/NaT."""
    if value is None:
        return True
    try:
        return bool(value != value)
    except TypeError:
        # pd.NA refuses bool()
        return True


def _round_half_even(value: float, digits: int) -> Decimal:
    exact = Decimal(repr(float(value)))
    with localcontext() as ctx:
        # room for every integer digit plus the requested decimals
        ctx.prec = max(ctx.prec, exact.adjusted() + digits + 2)
        return exact.quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_EVEN)


def format_number(
    value,
    digits: Optional[int] = None,
    show_sign: bool = False,
    config: Optional[FormatConfig] = None,
) -> str:
    """Format a single number.

    Args:
        value: Number to format (int, float or numpy scalar)
        digits: Decimal places; defaults to the configured digits
        show_sign: Prefix positive values with "+"
        config: Explicit configuration

    Returns:
        Formatted string, or the configured NA placeholder for missing values

    Notes:
        Integers (and integer dtypes) print without decimals. Negative zero
        and values that round to zero print without a sign.
    """
    cfg = resolve(config, digits=digits)

    if is_missing(value):
        return cfg.na_string

    if isinstance(value, (bool, np.bool_)):
        value = int(value)

    if isinstance(value, (int, np.integer)):
        text = str(int(value))
        if show_sign and value > 0:
            text = "+" + text
        return text

    if not isinstance(value, Number):
        raise TypeError(f"Cannot format non-numeric value {value!r}")

    if math.isinf(value):
        text = "Inf" if value > 0 else "-Inf"
        if cfg.markup == "latex":
            text = r"$\infty$" if value > 0 else r"$-\infty$"
        return text

    rounded = _round_half_even(value, cfg.digits)
    if rounded.is_zero():
        rounded = abs(rounded)
    text = f"{rounded:.{cfg.digits}f}"
    if show_sign and rounded > 0:
        text = "+" + text
    return text


def percent_sign(config: Optional[FormatConfig] = None) -> str:
    cfg = resolve(config)
    return r"\%" if cfg.markup == "latex" else "%"


def plus_minus(config: Optional[FormatConfig] = None) -> str:
    cfg = resolve(config)
    return r"$\pm$" if cfg.markup == "latex" else "±"


def format_percent(
    value,
    digits: Optional[int] = None,
    show_symbol: bool = True,
    config: Optional[FormatConfig] = None,
) -> str:
    """Format a percentage (already scaled to 0-100)."""
    cfg = resolve(config, digits=digits)
    if is_missing(value):
        return cfg.na_string
    text = format_number(float(value), config=cfg)
    if show_symbol:
        text += percent_sign(cfg)
    return text


def format_mean_ci(
    mean,
    lower,
    upper,
    digits: Optional[int] = None,
    style: Optional[str] = None,
    level: Optional[float] = None,
    config: Optional[FormatConfig] = None,
) -> str:
    """Format a point estimate with its confidence interval.

    Styles:
        parens: "mean (lower, upper)"
        to: "mean (lower to upper)"
        level: "mean (95% CI: lower, upper)"
    """
    cfg = resolve(config, digits=digits, ci_style=style, level=level)
    m = format_number(float(mean), config=cfg)
    lo = format_number(float(lower), config=cfg)
    hi = format_number(float(upper), config=cfg)

    if cfg.ci_style == "to":
        return f"{m} ({lo} to {hi})"
    if cfg.ci_style == "level":
        pct = format_number(100 * cfg.level, digits=_level_digits(cfg.level), config=cfg)
        return f"{m} ({pct}{percent_sign(cfg)} CI: {lo}, {hi})"
    return f"{m} ({lo}, {hi})"


def _level_digits(level: float) -> int:
    # 0.95 -> 0, 0.975 -> 1
    pct = round(100 * level, 6)
    if pct == int(pct):
        return 0
    return len(repr(pct).split(".")[1])


def format_pvalue(
    p,
    digits: Optional[int] = None,
    style: Optional[str] = None,
    config: Optional[FormatConfig] = None,
) -> str:
    """Format a p-value.

    Values below ``10 ** -digits`` print as "< 0.001" (for three digits).
    The "apa" style drops the leading zero. The "nejm" style ignores
    ``digits``: two decimals above 0.2, three otherwise, floor 0.001.
    In markdown the symbol is italicised (``*P*``), in LaTeX it is set in
    math mode.
    """
    cfg = resolve(config, digits=digits, pvalue_style=style)
    if is_missing(p):
        return cfg.na_string
    p = float(p)
    if p < 0 or p > 1:
        raise ValueError(f"p-value must be in [0, 1], got {p}")

    if cfg.pvalue_style == "nejm":
        threshold = 0.001
        cfg = resolve(cfg, digits=2 if p > 0.2 else 3)
    else:
        threshold = 10.0 ** -cfg.digits

    if p < threshold:
        body = format_number(threshold, config=cfg)
        op = "<"
    else:
        op = "="
        body = format_number(p, config=cfg)

    if cfg.pvalue_style == "apa" and body.startswith("0."):
        body = body[1:]

    if cfg.markup == "latex":
        return f"$P {op} {body}$"
    if cfg.markup == "markdown":
        return f"*P* {op} {body}"
    return f"P {op} {body}"


def escape_latex(text: str) -> str:
    """Escape LaTeX special characters in a label."""
    return "".join(LATEX_SPECIALS.get(ch, ch) for ch in str(text))


def escape_markdown(text: str) -> str:
    """Escape characters that break a markdown pipe table."""
    return str(text).replace("|", r"\|").replace("\n", " ")
