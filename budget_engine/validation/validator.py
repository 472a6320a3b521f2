"""
Two-Stage Snapshot Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - REFERENCE VALIDATION:
- Budget items, balances and savings goals point at known accounts
- Budget items point at known categories (when a category graph is given)
- This catches stale ids left behind by deleted accounts or categories

STAGE 2 - CHRONOLOGY VALIDATION:
- The month history has no holes
- Every locked month is either the first month with data or follows a
  locked month
- This catches histories that were edited outside the ledger

Both stages always run; a reference problem says nothing about chronology.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can repair the snapshot through the ledger.
"""

from typing import Optional

from budget_engine.audit import get_logger
from budget_engine.ledger.balances import first_month_with_data
from budget_engine.models.budget import CategoryGraph, LedgerSnapshot
from budget_engine.models.month import next_month_key, previous_month_key
from budget_engine.models.validation import ValidationIssue, ValidationResult


class SnapshotValidator:
    """
    Validates a ledger snapshot through a two-stage pipeline.

    Stage 1: Reference validation
    Stage 2: Chronology validation
    """

    def __init__(self, categories: Optional[CategoryGraph] = None):
        """
        Initialize validator.

        Args:
            categories: Category graph for budget item checks.
                        If None, category references are not checked.
        """
        self._categories = categories
        self._logger = get_logger("budget_engine.validation")

    def _validate_references(self, snapshot: LedgerSnapshot) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Reference validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        known_accounts = set(snapshot.account_ids())

        for month_key in snapshot.month_keys():
            record = snapshot.months[month_key]

            for field_name, items in (("cost_items", record.cost_items), ("savings_items", record.savings_items)):
                for item in items:
                    if item.account_id is not None and item.account_id not in known_accounts:
                        issues.append(ValidationIssue(
                            field=f"months.{month_key}.{field_name}",
                            issue_type="unknown_account",
                            message=f"Budget item {item.id} references unknown account {item.account_id}",
                            severity="warning",
                            month_key=month_key,
                            suggested_fix="Move the item to an existing account",
                        ))
                    issues.extend(self._category_issues(month_key, field_name, item))

            for account_id in record.balances:
                if account_id not in known_accounts:
                    issues.append(ValidationIssue(
                        field=f"months.{month_key}.balances",
                        issue_type="unknown_account",
                        message=f"Balance stored for unknown account {account_id}",
                        severity="warning",
                        month_key=month_key,
                        suggested_fix="Remove the account through the ledger to drop its balances",
                    ))

        for goal in snapshot.savings_goals:
            if goal.account_id not in known_accounts:
                issues.append(ValidationIssue(
                    field="savings_goals",
                    issue_type="unknown_account",
                    message=f"Savings goal {goal.id} references unknown account {goal.account_id}",
                    severity="warning",
                    suggested_fix="Point the goal at an existing account",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _category_issues(self, month_key: str, field_name: str, item) -> list[ValidationIssue]:
        if self._categories is None:
            return []

        issues = []
        if item.main_category_id is not None and not self._categories.has_category(item.main_category_id):
            issues.append(ValidationIssue(
                field=f"months.{month_key}.{field_name}",
                issue_type="unknown_category",
                message=f"Budget item {item.id} references unknown category {item.main_category_id}",
                severity="warning",
                month_key=month_key,
            ))
        if item.sub_category_id is not None and not self._categories.has_subcategory(item.sub_category_id):
            issues.append(ValidationIssue(
                field=f"months.{month_key}.{field_name}",
                issue_type="unknown_subcategory",
                message=f"Budget item {item.id} references unknown subcategory {item.sub_category_id}",
                severity="warning",
                month_key=month_key,
            ))
        return issues

    def _validate_chronology(self, snapshot: LedgerSnapshot) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Chronology validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        keys = snapshot.month_keys()

        for current, following in zip(keys, keys[1:]):
            expected = next_month_key(current)
            if following != expected:
                issues.append(ValidationIssue(
                    field="months",
                    issue_type="gap",
                    message=f"Month history jumps from {current} to {following}",
                    severity="error",
                    month_key=expected,
                    suggested_fix=f"Create the missing months starting at {expected}",
                ))

        first = first_month_with_data(snapshot)
        for month_key in keys:
            record = snapshot.months[month_key]
            if not record.locked or month_key == first:
                continue
            previous = snapshot.get_month(previous_month_key(month_key))
            if previous is None or not previous.locked:
                issues.append(ValidationIssue(
                    field=f"months.{month_key}.locked",
                    issue_type="lock_chain",
                    message=f"{month_key} is locked but {previous_month_key(month_key)} is not",
                    severity="error",
                    month_key=month_key,
                    suggested_fix=f"Unlock {month_key} and every later month",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(self, snapshot: LedgerSnapshot) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Returns:
            ValidationResult with all issues found
        """
        references_valid, reference_issues = self._validate_references(snapshot)
        chronology_valid, chronology_issues = self._validate_chronology(snapshot)
        issues = reference_issues + chronology_issues

        result = ValidationResult(
            references_valid=references_valid,
            chronology_valid=chronology_valid,
            is_valid=references_valid and chronology_valid,
            issues=issues,
        )

        if issues:
            self._logger.warning(
                "snapshot_validation_issues",
                errors=result.error_count,
                warnings=result.warning_count,
            )
        return result

    def get_summary(self, result: ValidationResult) -> str:
        """Plain-text summary of validation results."""
        if not result.issues:
            return "All checks passed."

        lines = []
        errors = [issue for issue in result.issues if issue.severity == "error"]
        warnings = [issue for issue in result.issues if issue.severity == "warning"]

        if errors:
            lines.append("Errors:")
            for issue in errors:
                lines.append(f"  - {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"    fix: {issue.suggested_fix}")

        if warnings:
            if lines:
                lines.append("")
            lines.append("Warnings:")
            for issue in warnings:
                lines.append(f"  - {issue.message}")

        return "\n".join(lines)
