"""
Draft Review Checks

DESIGN DECISION: Review checks run in two stages, like any edit-then-confirm
flow:

STAGE 1 - LINE CHECKS:
- Blank names (the line will be dropped at commit)
- Totals that differ from quantity x unit price (hand overrides)
- Absurd line amounts

STAGE 2 - DRAFT CHECKS:
- Zero-total drafts
- ICE drafts without bag counts
- Possible duplicate of a record already in the ledger

IMPORTANT: These checks NEVER fix anything and NEVER block a commit.
Hard rejections (negative numbers, SALE category on intake) happen at the
edit boundary in the session itself.
"""

from decimal import Decimal
from typing import Iterable, Optional

from shopkeeper.config import get_settings
from shopkeeper.models.catalog import to_money
from shopkeeper.models.records import (
    RecordCategory,
    TransactionRecord,
    ValidationIssue,
    ValidationResult,
)
from shopkeeper.sessions.intake import IntakeDraft


class DraftValidator:
    """
    Reviews an intake draft before the user confirms it.

    Stage 1: per-line checks
    Stage 2: whole-draft checks (duplicate check needs recent records)
    """

    def __init__(
        self,
        max_line_amount: Optional[float] = None,
        recent_records: Optional[Iterable[TransactionRecord]] = None,
    ):
        """
        Args:
            max_line_amount: Line totals above this are flagged.
                             Defaults to AppSettings.max_line_amount.
            recent_records: Ledger records to check for duplicates.
                            If None, duplicate checking is skipped.
        """
        if max_line_amount is None:
            max_line_amount = get_settings().app.max_line_amount
        self._max_line_amount = to_money(max_line_amount)
        self._recent_records = list(recent_records) if recent_records is not None else None

    def _check_lines(self, draft: IntakeDraft) -> list[ValidationIssue]:
        issues = []

        for index, item in enumerate(draft.items):
            if not item.has_name:
                issues.append(ValidationIssue(
                    field="name",
                    issue_type="blank_name",
                    message=f"Line {index + 1} has no name and will not be saved",
                    severity="warning",
                    item_index=index,
                    suggested_fix="Type a name or remove the line",
                ))
                continue

            expected = to_money(item.unit_price * item.quantity)
            if item.total_price != expected:
                issues.append(ValidationIssue(
                    field="total_price",
                    issue_type="total_override",
                    message=(
                        f"{item.name}: total {item.total_price:,.2f} differs from "
                        f"{item.quantity} x {item.unit_price:,.2f} = {expected:,.2f}"
                    ),
                    severity="warning",
                    item_index=index,
                    suggested_fix="Keep it if the receipt shows a discount",
                ))

            if item.total_price > self._max_line_amount:
                issues.append(ValidationIssue(
                    field="total_price",
                    issue_type="suspicious_value",
                    message=f"{item.name}: amount {item.total_price:,.2f} seems unusually high",
                    severity="warning",
                    item_index=index,
                    suggested_fix="Check for a misplaced decimal point",
                ))

        return issues

    def _check_draft(self, draft: IntakeDraft) -> list[ValidationIssue]:
        issues = []
        named = [item for item in draft.items if item.has_name]

        if not named:
            issues.append(ValidationIssue(
                field="items",
                issue_type="empty",
                message="No named items; an empty record will be saved",
                severity="warning",
                suggested_fix="Add at least one item",
            ))
        elif sum((item.total_price for item in named), Decimal("0.00")) == 0:
            issues.append(ValidationIssue(
                field="total_cost",
                issue_type="zero_total",
                message="The total of this record is 0",
                severity="warning",
                suggested_fix="Enter the prices from the receipt",
            ))

        if draft.category == RecordCategory.ICE and draft.ice_metrics.is_empty:
            issues.append(ValidationIssue(
                field="ice_metrics",
                issue_type="missing",
                message="Ice delivery without bag counts",
                severity="warning",
                suggested_fix="Enter bags delivered and returned",
            ))

        return issues

    def _check_duplicates(self, draft: IntakeDraft) -> list[ValidationIssue]:
        """
        Flag a draft matching a stored record with the same category,
        total and item names.
        """
        if not self._recent_records:
            return []

        total = sum(
            (item.total_price for item in draft.items if item.has_name),
            Decimal("0.00"),
        )
        if total == 0:
            return []
        names = sorted(item.name.lower() for item in draft.items if item.has_name)

        for record in self._recent_records:
            if record.is_sale or record.category != draft.category:
                continue
            if record.total_cost != total:
                continue
            if sorted(item.name.lower() for item in record.items) != names:
                continue
            return [ValidationIssue(
                field="duplicate",
                issue_type="potential_duplicate",
                message=(
                    f"A {record.category.value} record of {total:,.2f} from "
                    f"{record.timestamp:%Y-%m-%d %H:%M} looks the same"
                ),
                severity="warning",
                suggested_fix="Make sure this receipt was not scanned twice",
            )]
        return []

    def validate(self, draft: IntakeDraft) -> ValidationResult:
        """Run both stages and collect every issue."""
        issues = self._check_lines(draft)
        issues.extend(self._check_draft(draft))
        issues.extend(self._check_duplicates(draft))
        return ValidationResult(issues=issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """One short block of text for the review screen."""
        notable = [issue for issue in result.issues if issue.severity != "info"]
        if not notable:
            return "All checks passed. Please review the items below."

        lines = ["Please check before saving:"]
        for issue in notable:
            line = f"  - {issue.message}"
            if issue.suggested_fix:
                line += f" ({issue.suggested_fix})"
            lines.append(line)
        return "\n".join(lines)
