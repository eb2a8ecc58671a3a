"""Constraint primitives for field rules.

Each constraint answers one question about a present (non-null, non-empty)
text value, and answers it twice: once as a plain Python predicate used for
single-row checks, and once as a Polars expression used by the batch
validator. Both forms are defined side by side so that the two evaluators
cannot drift apart.

Constraints never see absent values; absence is handled by FieldRule.

Polars regular expressions use the Rust regex dialect. The patterns used
here stay inside the common subset of both dialects; the only translation
needed is the end anchor, because Python's ``$`` also matches before a
trailing newline.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol

import polars as pl

from bulkingest.core.exceptions import RuleError
from bulkingest.core.schema import DATE_FORMAT


class Constraint(Protocol):
    """Protocol for a single check over a present text value."""

    def holds(self, value: str, today: date) -> bool:
        """Return True when the value satisfies the constraint."""
        ...

    def expr(self, col: pl.Expr, today: date) -> pl.Expr:
        """Return a boolean expression that is True where the constraint holds.

        The expression must never evaluate to null for a non-null input.
        """
        ...

    def describe(self) -> str:
        """Return a short human-readable description."""
        ...


def _python_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a pattern for Python with Rust end-anchor semantics."""
    if pattern.endswith("$") and not pattern.endswith(r"\$"):
        pattern = pattern[:-1] + r"\Z"
    return re.compile(pattern)


ISO_DATE_PATTERN = r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$"
_ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def parse_iso_date(value: str) -> date | None:
    """Parse a zero-padded ``YYYY-MM-DD`` date, returning None when invalid.

    Unpadded fields, signs and surrounding blanks are invalid even where
    strptime would accept them.
    """
    if not _ISO_DATE.fullmatch(value):
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return None


def _date_expr(col: pl.Expr) -> pl.Expr:
    # same shape gate as parse_iso_date; year 0 parses in Polars only
    parsed = col.str.strptime(pl.Date, DATE_FORMAT, strict=False)
    return pl.when(col.str.contains(ISO_DATE_PATTERN) & (parsed.dt.year() >= 1)).then(parsed)


def _check_limit(constraint: str, parameter: str, value: int) -> None:
    if value < 0:
        raise RuleError(
            f"{parameter} must be non-negative, got: {value}",
            constraint=constraint,
            parameter=parameter,
            value=value,
        )


@dataclass(frozen=True)
class ExactLength:
    length: int

    def __post_init__(self) -> None:
        _check_limit("ExactLength", "length", self.length)

    def holds(self, value: str, today: date) -> bool:
        return len(value) == self.length

    def expr(self, col: pl.Expr, today: date) -> pl.Expr:
        return col.str.len_chars() == self.length

    def describe(self) -> str:
        return f"length == {self.length}"


@dataclass(frozen=True)
class MinLength:
    length: int

    def __post_init__(self) -> None:
        _check_limit("MinLength", "length", self.length)

    def holds(self, value: str, today: date) -> bool:
        return len(value) >= self.length

    def expr(self, col: pl.Expr, today: date) -> pl.Expr:
        return col.str.len_chars() >= self.length

    def describe(self) -> str:
        return f"length >= {self.length}"


@dataclass(frozen=True)
class MaxLength:
    length: int

    def __post_init__(self) -> None:
        _check_limit("MaxLength", "length", self.length)

    def holds(self, value: str, today: date) -> bool:
        return len(value) <= self.length

    def expr(self, col: pl.Expr, today: date) -> pl.Expr:
        return col.str.len_chars() <= self.length

    def describe(self) -> str:
        return f"length <= {self.length}"


@dataclass(frozen=True)
class LengthBetween:
    """Inclusive length range."""

    minimum: int
    maximum: int

    def __post_init__(self) -> None:
        _check_limit("LengthBetween", "minimum", self.minimum)
        _check_limit("LengthBetween", "maximum", self.maximum)
        if self.minimum > self.maximum:
            raise RuleError(
                f"minimum ({self.minimum}) must be <= maximum ({self.maximum})",
                constraint="LengthBetween",
                parameter="minimum",
                value=self.minimum,
            )

    def holds(self, value: str, today: date) -> bool:
        return self.minimum <= len(value) <= self.maximum

    def expr(self, col: pl.Expr, today: date) -> pl.Expr:
        length = col.str.len_chars()
        return (length >= self.minimum) & (length <= self.maximum)

    def describe(self) -> str:
        return f"{self.minimum} <= length <= {self.maximum}"


@dataclass(frozen=True)
class StartsWith:
    prefix: str

    def holds(self, value: str, today: date) -> bool:
        return value.startswith(self.prefix)

    def expr(self, col: pl.Expr, today: date) -> pl.Expr:
        return col.str.starts_with(self.prefix)

    def describe(self) -> str:
        return f"starts with {self.prefix!r}"


@dataclass(frozen=True)
class Matches:
    """The pattern must be found somewhere in the value (search semantics).

    Anchor with ``^`` / ``$`` to require a full match.
    """

    pattern: str
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "_compiled", _python_pattern(self.pattern))
        except re.error as e:
            raise RuleError(
                f"Invalid pattern {self.pattern!r}: {e}",
                constraint="Matches",
                parameter="pattern",
                value=self.pattern,
            ) from e

    def holds(self, value: str, today: date) -> bool:
        return self._compiled.search(value) is not None

    def expr(self, col: pl.Expr, today: date) -> pl.Expr:
        return col.str.contains(self.pattern)

    def describe(self) -> str:
        return f"matches {self.pattern!r}"


@dataclass(frozen=True)
class NotMatches:
    """The pattern must not be found anywhere in the value."""

    pattern: str
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "_compiled", _python_pattern(self.pattern))
        except re.error as e:
            raise RuleError(
                f"Invalid pattern {self.pattern!r}: {e}",
                constraint="NotMatches",
                parameter="pattern",
                value=self.pattern,
            ) from e

    def holds(self, value: str, today: date) -> bool:
        return self._compiled.search(value) is None

    def expr(self, col: pl.Expr, today: date) -> pl.Expr:
        return col.str.contains(self.pattern).not_()

    def describe(self) -> str:
        return f"does not match {self.pattern!r}"


@dataclass(frozen=True)
class OneOf:
    """Case-sensitive membership in a fixed set of values."""

    values: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.values:
            raise RuleError(
                "values must contain at least one entry",
                constraint="OneOf",
                parameter="values",
            )

    def holds(self, value: str, today: date) -> bool:
        return value in self.values

    def expr(self, col: pl.Expr, today: date) -> pl.Expr:
        return col.is_in(list(self.values))

    def describe(self) -> str:
        return "one of " + ", ".join(self.values)


@dataclass(frozen=True)
class IsoDate:
    """The value parses as a ``YYYY-MM-DD`` calendar date."""

    def holds(self, value: str, today: date) -> bool:
        return parse_iso_date(value) is not None

    def expr(self, col: pl.Expr, today: date) -> pl.Expr:
        return _date_expr(col).is_not_null()

    def describe(self) -> str:
        return "ISO date (YYYY-MM-DD)"


@dataclass(frozen=True)
class NotInFuture:
    """The date is on or before the reference date. Unparseable dates fail."""

    def holds(self, value: str, today: date) -> bool:
        parsed = parse_iso_date(value)
        return parsed is not None and parsed <= today

    def expr(self, col: pl.Expr, today: date) -> pl.Expr:
        return (_date_expr(col) <= pl.lit(today)).fill_null(False)

    def describe(self) -> str:
        return "not in the future"


@dataclass(frozen=True)
class MinimumAge:
    """Whole-year age of at least ``years``.

    Age is the difference of calendar years only; month and day are ignored,
    so someone born on 31 December counts a full year older on 1 January.
    """

    years: int

    def __post_init__(self) -> None:
        _check_limit("MinimumAge", "years", self.years)

    def holds(self, value: str, today: date) -> bool:
        parsed = parse_iso_date(value)
        return parsed is not None and today.year - parsed.year >= self.years

    def expr(self, col: pl.Expr, today: date) -> pl.Expr:
        birth_year = _date_expr(col).dt.year().cast(pl.Int32)
        return ((pl.lit(today.year, dtype=pl.Int32) - birth_year) >= self.years).fill_null(False)

    def describe(self) -> str:
        return f"age >= {self.years} years"
