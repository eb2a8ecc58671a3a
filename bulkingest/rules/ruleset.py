"""The employee rule table.

EMPLOYEE_RULES is the single authoritative definition of what a valid row
looks like. The batch validator turns each FieldRule into a Polars
expression; check_row evaluates the same rules in process for one row.

Absence policy: None and the empty string are both treated as "absent".
An absent optional field never violates its rule; an absent required field
always does. Present values are checked literally, without trimming, so a
whitespace-only value is present.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import polars as pl

from bulkingest.core.result import Violation
from bulkingest.core.schema import ROW_ID
from bulkingest.rules.constraints import (
    Constraint,
    ExactLength,
    IsoDate,
    LengthBetween,
    Matches,
    MaxLength,
    MinimumAge,
    MinLength,
    NotInFuture,
    NotMatches,
    OneOf,
    StartsWith,
)

ALPHANUMERIC_ONLY = NotMatches("[^a-zA-Z0-9]")
DIGITS_ONLY = NotMatches("[^0-9]")

VALID_GENDERS = ("Male", "Female", "Other")


def is_absent(value: Any) -> bool:
    """Return True for values treated as missing (None or empty string)."""
    return value is None or value == ""


@dataclass(frozen=True)
class FieldRule:
    """Validation rule for one source field.

    A rule is violated when the field is required and absent, or when the
    field is present and any of its constraints does not hold. A rule yields
    at most one violation per row regardless of how many constraints fail.

    Attributes:
        field: Source column name
        message: Fixed violation message reported for this rule
        required: Whether an absent value is a violation
        constraints: Checks applied to present values

    Example:
        >>> rule = FieldRule(
        ...     field="phone",
        ...     message="Invalid Phone.",
        ...     constraints=(NotMatches("[^0-9]"), LengthBetween(7, 15)),
        ... )
        >>> rule.violates("555", date(2026, 1, 1))
        True
        >>> rule.violates(None, date(2026, 1, 1))
        False
    """

    field: str
    message: str
    required: bool = False
    constraints: tuple[Constraint, ...] = ()

    def violates(self, value: str | date | None, today: date) -> bool:
        """Evaluate the rule against a single value in process.

        Args:
            value: Cell value; dates are accepted and checked in ISO form
            today: Reference date for date constraints

        Returns:
            True if the value violates this rule
        """
        if isinstance(value, datetime):
            value = value.date()
        if isinstance(value, date):
            value = value.isoformat()

        if is_absent(value):
            return self.required

        return not all(c.holds(value, today) for c in self.constraints)

    def violation_expr(self, today: date) -> pl.Expr:
        """Build the set-oriented equivalent of violates().

        Returns:
            Boolean expression, True on rows violating this rule, never null
        """
        col = pl.col(self.field)
        absent = col.is_null() | (col == "")

        if self.constraints:
            holds = self.constraints[0].expr(col, today)
            for constraint in self.constraints[1:]:
                holds = holds & constraint.expr(col, today)
            failed = absent.not_() & holds.not_()
        else:
            failed = pl.lit(False)

        if self.required:
            return (absent | failed).fill_null(True)
        return failed.fill_null(False)

    def describe(self) -> str:
        """Describe the rule as a single line."""
        checks = "; ".join(c.describe() for c in self.constraints) or "no checks"
        kind = "required" if self.required else "optional"
        return f"{self.field} ({kind}): {checks}"


EMPLOYEE_RULES: tuple[FieldRule, ...] = (
    FieldRule(
        field="employee_id",
        message="EmployeeId must start with 'EMP' and be exactly 6 characters.",
        required=True,
        constraints=(ExactLength(6), StartsWith("EMP"), Matches("^EMP[0-9]+$")),
    ),
    FieldRule(
        field="first_name",
        message="Invalid FirstName.",
        required=True,
        constraints=(
            MinLength(3),
            NotMatches(r"\s"),
            ALPHANUMERIC_ONLY,
            Matches("^[A-Z]"),
            NotMatches("[0-9]$"),
        ),
    ),
    FieldRule(
        field="middle_name",
        message="Invalid MiddleName.",
        constraints=(MaxLength(20), NotMatches("[0-9]")),
    ),
    FieldRule(
        field="last_name",
        message="Invalid LastName.",
        required=True,
        constraints=(MinLength(2), ALPHANUMERIC_ONLY),
    ),
    FieldRule(
        field="email",
        message="Invalid Email.",
        constraints=(MaxLength(50), Matches(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")),
    ),
    FieldRule(
        field="phone",
        message="Invalid Phone.",
        constraints=(DIGITS_ONLY, LengthBetween(7, 15)),
    ),
    FieldRule(
        field="date_of_birth",
        message="Invalid DateOfBirth. Must be at least 18 years old.",
        constraints=(IsoDate(), NotInFuture(), MinimumAge(18)),
    ),
    FieldRule(
        field="gender",
        message="Invalid Gender.",
        constraints=(OneOf(VALID_GENDERS),),
    ),
    FieldRule(
        field="national_id",
        message="Invalid NationalId.",
        constraints=(MaxLength(20), ALPHANUMERIC_ONLY),
    ),
    # Country names are not checked against a reference list
    FieldRule(field="country", message="Invalid Country.", constraints=(MaxLength(50),)),
    FieldRule(field="state", message="Invalid State.", constraints=(MaxLength(50),)),
    FieldRule(field="city", message="Invalid City.", constraints=(MaxLength(50),)),
    FieldRule(
        field="address_line",
        message="Invalid AddressLine.",
        constraints=(MaxLength(100),),
    ),
    FieldRule(
        field="zip_code",
        message="Invalid ZipCode.",
        constraints=(DIGITS_ONLY, MaxLength(10)),
    ),
)


def get_rule(field_name: str, rules: Sequence[FieldRule] = EMPLOYEE_RULES) -> FieldRule:
    """Look up the rule for a field.

    Raises:
        KeyError: If no rule is defined for the field, listing available fields
    """
    for rule in rules:
        if rule.field == field_name:
            return rule
    available = ", ".join(r.field for r in rules)
    raise KeyError(f"No rule for field '{field_name}'. Available: {available}")


def check_row(
    row: Mapping[str, Any],
    today: date | None = None,
    rules: Sequence[FieldRule] = EMPLOYEE_RULES,
) -> list[Violation]:
    """Validate one row in process.

    Every rule is evaluated; a row violating k rules yields k violations in
    rule table order. Missing keys are treated as absent values.

    Args:
        row: Mapping of column name to value, typically including SN
        today: Reference date (defaults to date.today())
        rules: Rule table to apply

    Returns:
        List of violations, empty if the row is valid

    Example:
        >>> check_row({"SN": "1", "employee_id": "EMPX12",
        ...            "first_name": "Alice", "last_name": "Smith"})
        [Violation(row_id='1', message="EmployeeId must start ...", field='employee_id')]
    """
    today = today or date.today()
    row_id = row.get(ROW_ID)
    row_id = None if row_id is None else str(row_id)

    return [
        Violation(row_id=row_id, message=rule.message, field=rule.field)
        for rule in rules
        if rule.violates(row.get(rule.field), today)
    ]


def list_rules(rules: Sequence[FieldRule] = EMPLOYEE_RULES) -> list[str]:
    """Return one description line per rule, in table order."""
    return [rule.describe() for rule in rules]
