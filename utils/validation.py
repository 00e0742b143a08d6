"""Data validation utilities for the budget flow tools.

Provides reusable pieces for:
- Collecting validation issues with a severity
- Running a registry of dataset checks
- Simple value checks used by the tree parser
"""

import math
from typing import Any, Callable, Dict, List, Optional


class ValidationIssue:
    """Represents a single validation issue found during checks."""

    def __init__(self, check_name: str, severity: str, detail: str,
                 sample: Optional[Any] = None, count: int = 1):
        """Initialize a validation issue.

        Args:
            check_name: Name of the check that found this issue
            severity: Issue severity ('error', 'warning', 'info')
            detail: Human-readable description of the issue
            sample: Example value that triggered the issue
            count: Number of affected records
        """
        self.check_name = check_name
        self.severity = severity
        self.detail = detail
        self.sample = sample
        self.count = count

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "check": self.check_name,
            "severity": self.severity,
            "detail": self.detail,
            "sample": str(self.sample) if self.sample else None,
            "count": self.count,
        }

    def __repr__(self) -> str:
        return (f"ValidationIssue(check={self.check_name}, severity={self.severity}, "
                f"count={self.count})")


class ValidationResult:
    """Collects and reports on validation check results."""

    def __init__(self):
        self.issues: List[ValidationIssue] = []
        self.passed_checks: List[str] = []
        self.failed_checks: List[str] = []

    def add_issue(self, check_name: str, severity: str, detail: str,
                  sample: Optional[Any] = None, count: int = 1) -> None:
        """Add a validation issue."""
        self.issues.append(ValidationIssue(check_name, severity, detail, sample, count))

    def mark_check_passed(self, check_name: str) -> None:
        self.passed_checks.append(check_name)

    def mark_check_failed(self, check_name: str) -> None:
        self.failed_checks.append(check_name)

    def get_issues_by_severity(self, severity: str) -> List[ValidationIssue]:
        """Get all issues of a specific severity ('error', 'warning' or 'info')."""
        return [i for i in self.issues if i.severity == severity]

    def error_count(self) -> int:
        return len(self.get_issues_by_severity("error"))

    def warning_count(self) -> int:
        return len(self.get_issues_by_severity("warning"))

    def info_count(self) -> int:
        return len(self.get_issues_by_severity("info"))

    def is_valid(self) -> bool:
        """Check if validation passed (no errors)."""
        return self.error_count() == 0

    def summary_text(self) -> str:
        """Generate human-readable validation summary."""
        lines = []
        lines.append("Validation Summary:")
        lines.append(f"  Passed Checks: {len(self.passed_checks)}")
        lines.append(f"  Failed Checks: {len(self.failed_checks)}")
        lines.append(f"  Issues: {len(self.issues)}")
        lines.append(f"    - Errors: {self.error_count()}")
        lines.append(f"    - Warnings: {self.warning_count()}")
        lines.append(f"    - Info: {self.info_count()}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "passed_checks": self.passed_checks,
            "failed_checks": self.failed_checks,
            "issues": [i.to_dict() for i in self.issues],
            "summary": {
                "total_checks": len(self.passed_checks) + len(self.failed_checks),
                "passed": len(self.passed_checks),
                "failed": len(self.failed_checks),
                "issues": len(self.issues),
                "errors": self.error_count(),
                "warnings": self.warning_count(),
                "info": self.info_count(),
            }
        }


class ValidationRegistry:
    """Manages a collection of validation check functions.

    A check takes the subject being validated and returns a list of
    ValidationIssue objects (empty when the check passes).
    """

    def __init__(self):
        self.checks: Dict[str, Callable[[Any], List[ValidationIssue]]] = {}

    def register(self, name: str, check_fn: Callable[[Any], List[ValidationIssue]]) -> None:
        """Register a validation check function."""
        self.checks[name] = check_fn

    def run_all(self, subject: Any,
                skip_checks: Optional[List[str]] = None,
                result: Optional[ValidationResult] = None) -> ValidationResult:
        """Run all registered checks against *subject*.

        Args:
            subject: Object handed to every check
            skip_checks: List of check names to skip
            result: Existing result to accumulate into (default: a new one)

        Returns:
            ValidationResult with all issues found
        """
        skip = skip_checks or []
        result = result if result is not None else ValidationResult()

        for check_name, check_fn in self.checks.items():
            if check_name in skip:
                continue

            try:
                issues = check_fn(subject)
                if issues:
                    for issue in issues:
                        result.add_issue(issue.check_name, issue.severity,
                                         issue.detail, issue.sample, issue.count)
                    result.mark_check_failed(check_name)
                else:
                    result.mark_check_passed(check_name)
            except Exception as e:
                result.add_issue(
                    check_name, "error",
                    f"Check raised exception: {str(e)[:100]}"
                )
                result.mark_check_failed(check_name)

        return result


def is_valid_amount(value: Any, allow_negative: bool = False) -> bool:
    """Check if value is a usable currency amount.

    Args:
        value: Amount to validate
        allow_negative: Accept negative values (revenue adjustments)

    Returns:
        True if valid amount, False otherwise
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        if not math.isfinite(value):  # NaN or +-inf
            return False
    except OverflowError:  # int too large for a float
        return False
    return allow_negative or value >= 0
