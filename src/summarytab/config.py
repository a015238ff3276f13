"""Formatting configuration for summary statistics and tables."""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass, replace, asdict
from typing import Any, Dict, Iterator, Optional

MARKUPS = ("plain", "markdown", "latex")
CI_STYLES = ("parens", "to", "level")
PVALUE_STYLES = ("plain", "apa", "nejm")
SHOW_DENOM = ("never", "ifNA", "always")


@dataclass(frozen=True)
class FormatConfig:
    """Options read by every formatter and statistic function.

    Attributes:
        digits: Number of decimal places (default: 2)
        markup: Target markup, one of plain, markdown, latex
        na_string: Placeholder printed for missing values (default: "NA")
        ci_style: Confidence interval layout
            Options: parens -> "m (l, u)", to -> "m (l to u)",
            level -> "m (95% CI: l, u)"
        level: Default confidence level for mean_ci (default: 0.95)
        na_rm: Drop missing values before computing statistics
        allow_degenerate: Return NA components instead of raising when a
            statistic is undefined (e.g. sd of a single value)
        pvalue_style: Layout for format_pvalue (plain, apa, nejm)
        show_denom: When n_perc prints the denominator (never, ifNA, always)
    """

    digits: int = 2
    markup: str = "plain"
    na_string: str = "NA"
    ci_style: str = "parens"
    level: float = 0.95
    na_rm: bool = True
    allow_degenerate: bool = False
    pvalue_style: str = "plain"
    show_denom: str = "never"

    def __post_init__(self):
        """Validate configuration."""
        if isinstance(self.digits, bool) or not isinstance(self.digits, int):
            raise ValueError(f"digits must be an integer, got {self.digits!r}")
        if self.digits < 0:
            raise ValueError(f"digits must be >= 0, got {self.digits}")

        if self.markup not in MARKUPS:
            raise ValueError(f"markup must be one of {list(MARKUPS)}, got {self.markup}")

        if self.ci_style not in CI_STYLES:
            raise ValueError(f"ci_style must be one of {list(CI_STYLES)}, got {self.ci_style}")

        if self.level <= 0 or self.level >= 1:
            raise ValueError(f"level must be in (0, 1), got {self.level}")

        if self.pvalue_style not in PVALUE_STYLES:
            raise ValueError(
                f"pvalue_style must be one of {list(PVALUE_STYLES)}, got {self.pvalue_style}"
            )

        if self.show_denom not in SHOW_DENOM:
            raise ValueError(f"show_denom must be one of {list(SHOW_DENOM)}, got {self.show_denom}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_DEFAULT = FormatConfig()
_active: contextvars.ContextVar[FormatConfig] = contextvars.ContextVar(
    "summarytab_format_config", default=_DEFAULT
)


def get_config() -> FormatConfig:
    """Return the configuration active in the current context."""
    return _active.get()


def set_config(**overrides: Any) -> FormatConfig:
    """Replace the active configuration for the current context.

    Unspecified options keep their current values. Strings that were already
    formatted are plain text and are not affected.
    """
    config = replace(get_config(), **overrides)
    _active.set(config)
    return config


def reset_config() -> FormatConfig:
    """Restore the package defaults for the current context."""
    _active.set(_DEFAULT)
    return _DEFAULT


@contextmanager
def config_context(**overrides: Any) -> Iterator[FormatConfig]:
    """Temporarily override formatting options.

    Example:
        >>> with config_context(digits=1, markup="latex"):
        ...     table = build_table(df, by="cyl")
    """
    config = replace(get_config(), **overrides)
    token = _active.set(config)
    try:
        yield config
    finally:
        _active.reset(token)


def resolve(config: Optional[FormatConfig] = None, **overrides: Any) -> FormatConfig:
    """Merge an explicit config and keyword overrides over the active config.

    Overrides equal to None are ignored so callers can pass their optional
    arguments straight through.
    """
    base = config if config is not None else get_config()
    changes = {k: v for k, v in overrides.items() if v is not None}
    if not changes:
        return base
    return replace(base, **changes)
