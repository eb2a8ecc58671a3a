"""Violation report aggregation.

This module summarizes a flat violation list into per-field counts for
console output and JSON export.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from bulkingest.core.result import Violation


@dataclass
class ViolationReport:
    """Aggregated view over the violations of one validation run.

    Attributes:
        violations: Violations in validator order
        timestamp: When the report was created
        rows_with_violations: Number of distinct row identifiers involved
        counts_by_field: Violation count per source field

    Example:
        >>> report = summarize([Violation("1", "Invalid Gender.", "gender")])
        >>> report.summary()
        'Validation Summary: 1 violations across 1 rows'
    """

    violations: list[Violation]
    timestamp: datetime
    rows_with_violations: int
    counts_by_field: dict[str, int] = field(default_factory=dict)

    def is_valid(self) -> bool:
        return not self.violations

    def summary(self) -> str:
        if self.is_valid():
            return "Validation Summary: no violations"
        return (
            f"Validation Summary: {len(self.violations)} violations across "
            f"{self.rows_with_violations} rows"
        )

    def format(self, limit: int | None = None) -> str:
        """Format the report as human-readable text.

        Args:
            limit: Maximum number of individual violations to list, None for all

        Returns:
            Header, summary, per-field counts and the violation lines
        """
        lines = [
            f"Validation Report ({self.timestamp.strftime('%Y-%m-%d %H:%M:%S')})",
            "=" * 60,
            self.summary(),
        ]

        if self.counts_by_field:
            lines.append("")
            lines.append("By field:")
            for name, count in self.counts_by_field.items():
                lines.append(f"  {name}: {count}")

        if self.violations:
            lines.append("")
            lines.append("Violations:")
            shown = self.violations if limit is None else self.violations[:limit]
            lines.extend(f"  - {v}" for v in shown)
            hidden = len(self.violations) - len(shown)
            if hidden > 0:
                lines.append(f"  ... and {hidden} more")

        return "\n".join(lines)

    def to_json(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "summary": {
                "violation_count": len(self.violations),
                "rows_with_violations": self.rows_with_violations,
                "is_valid": self.is_valid(),
                "counts_by_field": self.counts_by_field,
            },
            "violations": [v.to_json() for v in self.violations],
        }


def summarize(violations: list[Violation]) -> ViolationReport:
    """Create a ViolationReport from a violation list.

    Field counts keep the order in which fields first appear, which for
    batch validator output is rule table order.
    """
    counts = Counter(v.field for v in violations)
    return ViolationReport(
        violations=list(violations),
        timestamp=datetime.now(timezone.utc),
        rows_with_violations=len({v.row_id for v in violations}),
        counts_by_field=dict(counts),
    )
