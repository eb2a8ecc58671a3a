"""Set-oriented batch validation.

The batch validator evaluates every rule of the rule table against every row
of the source in a single Polars query. Each rule contributes one filtered
projection of the source; the projections are concatenated and collected
once, letting the engine share the scan and parallelize across rules and
row ranges.

Evaluation never short-circuits: a row violating three rules yields three
violations. Output order is deterministic: grouped by rule (rule table
order), then by source row order.
"""

import logging
import time
from collections.abc import Sequence
from datetime import date
from pathlib import Path

import polars as pl

from bulkingest.core.exceptions import SourceError
from bulkingest.core.result import Violation
from bulkingest.core.schema import ROW_ID, check_source_columns
from bulkingest.io.readers import open_source
from bulkingest.rules.ruleset import EMPLOYEE_RULES, FieldRule

logger = logging.getLogger(__name__)

_RULE_NR = "_rule_nr"
_ROW_NR = "_row_nr"


class BatchValidator:
    """Validates a whole source against the rule table in one pass.

    Attributes:
        rules: Rule table to evaluate
        today: Fixed reference date for date rules; None means date.today()
               at each validate() call

    Example:
        >>> validator = BatchValidator()
        >>> violations = validator.validate(Path("employees.csv"))
        >>> for v in violations:
        ...     print(v)
        4 : Invalid Gender.
    """

    def __init__(
        self,
        rules: Sequence[FieldRule] = EMPLOYEE_RULES,
        today: date | None = None,
    ) -> None:
        self.rules = tuple(rules)
        self.today = today

    def build_query(self, lf: pl.LazyFrame, today: date) -> pl.LazyFrame:
        """Build the lazy violation query over a source frame.

        The query yields one row per violation with columns
        ``_rule_nr, _row_nr, row_id, message, field``.
        """
        indexed = lf.with_row_index(_ROW_NR)

        per_rule = [
            indexed.filter(rule.violation_expr(today)).select(
                pl.lit(rule_nr, dtype=pl.UInt32).alias(_RULE_NR),
                pl.col(_ROW_NR),
                pl.col(ROW_ID).cast(pl.Utf8).alias("row_id"),
                pl.lit(rule.message, dtype=pl.Utf8).alias("message"),
                pl.lit(rule.field, dtype=pl.Utf8).alias("field"),
            )
            for rule_nr, rule in enumerate(self.rules)
        ]

        if not per_rule:
            return pl.LazyFrame(
                schema={
                    _RULE_NR: pl.UInt32,
                    _ROW_NR: pl.UInt32,
                    "row_id": pl.Utf8,
                    "message": pl.Utf8,
                    "field": pl.Utf8,
                }
            )

        return pl.concat(per_rule, how="vertical").sort([_RULE_NR, _ROW_NR])

    def validate(self, source: Path | str | pl.LazyFrame) -> list[Violation]:
        """Evaluate every rule against every row.

        Args:
            source: Path to a source file, or an already opened LazyFrame
                   carrying the source columns

        Returns:
            All violations; an empty list means the dataset is fully valid

        Raises:
            SourceError: If the source cannot be opened, lacks required
                        columns, or cannot be evaluated by the engine
        """
        if isinstance(source, pl.LazyFrame):
            lf = source
            try:
                check_source_columns(lf.collect_schema().names())
            except pl.exceptions.PolarsError as e:
                raise SourceError(f"Cannot read source header: {e}", reason=str(e)) from e
        else:
            lf = open_source(Path(source))

        today = self.today or date.today()
        started = time.perf_counter()

        try:
            found = self.build_query(lf, today).collect()
        except (OSError, pl.exceptions.PolarsError) as e:
            raise SourceError(
                f"Failed to evaluate rules against source: {e}",
                reason=str(e),
            ) from e

        violations = [
            Violation(row_id=row["row_id"], message=row["message"], field=row["field"])
            for row in found.iter_rows(named=True)
        ]

        logger.info(
            "Validated source against %d rules: %d violations in %.1f ms",
            len(self.rules),
            len(violations),
            (time.perf_counter() - started) * 1000,
        )
        return violations
