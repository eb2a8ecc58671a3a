"""Row rule set shared by the in-process and batch evaluators.

Each field rule pairs a violation message with a list of constraints. A rule
can be evaluated against one Python value or compiled into a Polars
expression, so both evaluators derive from the same table.
"""

# Constraint vocabulary
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
    parse_iso_date,
)

# Rule table and in-process evaluation
from bulkingest.rules.ruleset import (
    EMPLOYEE_RULES,
    FieldRule,
    check_row,
    get_rule,
    is_absent,
    list_rules,
)

__all__ = [
    "Constraint",
    "ExactLength",
    "IsoDate",
    "LengthBetween",
    "Matches",
    "MaxLength",
    "MinimumAge",
    "MinLength",
    "NotInFuture",
    "NotMatches",
    "OneOf",
    "StartsWith",
    "parse_iso_date",
    "EMPLOYEE_RULES",
    "FieldRule",
    "check_row",
    "get_rule",
    "is_absent",
    "list_rules",
]
