"""Validation issue store — errors and warnings keyed by schema path and code.

Queries and non-exact clears match by path prefix on segment boundaries:
``item.statements`` covers ``item.statements[0].value`` and
``item.statements.x`` but not ``item.statementsX``.
"""

from typing import Optional

from schemamapper.core.models import (
    FieldValidationState,
    IssueCode,
    Severity,
    ValidationIssue,
    ValidationResult,
)


_SEGMENT_SEPARATORS = (".", "[")


def path_matches(path: str, prefix: str) -> bool:
    """Segment-aware prefix test used by every prefix query in this store."""
    if not prefix or path == prefix:
        return True
    if not path.startswith(prefix):
        return False
    if prefix.endswith(_SEGMENT_SEPARATORS):
        return True
    return path[len(prefix)] in _SEGMENT_SEPARATORS


class ValidationIssueStore:
    """Holds at most one issue per (path, code) in each severity list."""

    def __init__(self):
        self._errors: list[ValidationIssue] = []
        self._warnings: list[ValidationIssue] = []

    @property
    def errors(self) -> list[ValidationIssue]:
        return list(self._errors)

    @property
    def warnings(self) -> list[ValidationIssue]:
        return list(self._warnings)

    # --- mutations ---

    @staticmethod
    def _insert(bucket: list[ValidationIssue], issue: ValidationIssue) -> bool:
        if any(i.path == issue.path and i.code == issue.code for i in bucket):
            return False
        bucket.append(issue)
        return True

    def add_error(self, issue: ValidationIssue) -> None:
        if issue.severity != Severity.ERROR:
            issue = issue.model_copy(update={"severity": Severity.ERROR})
        self._insert(self._errors, issue)

    def add_warning(self, issue: ValidationIssue) -> None:
        if issue.severity != Severity.WARNING:
            issue = issue.model_copy(update={"severity": Severity.WARNING})
        self._insert(self._warnings, issue)

    def add(self, issue: ValidationIssue) -> None:
        """Route an issue to the list matching its severity."""
        if issue.severity == Severity.ERROR:
            self.add_error(issue)
        else:
            self.add_warning(issue)

    def clear_error(self, issue: ValidationIssue) -> None:
        """Remove the exact (path, code, message) match from both lists."""
        for bucket in (self._errors, self._warnings):
            for index, existing in enumerate(bucket):
                if (
                    existing.path == issue.path
                    and existing.code == issue.code
                    and existing.message == issue.message
                ):
                    del bucket[index]
                    break

    def clear_errors_for_path(self, path: str, exact_match: bool = False) -> None:
        if exact_match:
            self._errors = [e for e in self._errors if e.path != path]
            self._warnings = [w for w in self._warnings if w.path != path]
        else:
            self._errors = [e for e in self._errors if not path_matches(e.path, path)]
            self._warnings = [w for w in self._warnings if not path_matches(w.path, path)]

    def clear_errors_by_code(self, code: IssueCode) -> None:
        self._errors = [e for e in self._errors if e.code != code]
        self._warnings = [w for w in self._warnings if w.code != code]

    def reset(self) -> None:
        self._errors = []
        self._warnings = []

    # --- queries ---

    def get_errors_for_path(self, path: str) -> list[ValidationIssue]:
        return [e for e in self._errors if path_matches(e.path, path)]

    def get_warnings_for_path(self, path: str) -> list[ValidationIssue]:
        return [w for w in self._warnings if path_matches(w.path, path)]

    def has_errors_for_path(self, path: str) -> bool:
        return any(path_matches(e.path, path) for e in self._errors)

    def has_warnings_for_path(self, path: str) -> bool:
        return any(path_matches(w.path, path) for w in self._warnings)

    @property
    def error_count(self) -> int:
        return len(self._errors)

    @property
    def warning_count(self) -> int:
        return len(self._warnings)

    @property
    def total_issue_count(self) -> int:
        return self.error_count + self.warning_count

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self._warnings)

    @property
    def has_any_issues(self) -> bool:
        return self.has_errors or self.has_warnings

    def get_validation_result(self) -> ValidationResult:
        return ValidationResult(
            is_valid=not self._errors,
            errors=list(self._errors),
            warnings=list(self._warnings),
        )

    # --- UI projections ---

    def severity_for_path(self, path: str) -> Optional[Severity]:
        """Highest severity recorded anywhere under ``path``."""
        if self.has_errors_for_path(path):
            return Severity.ERROR
        if self.has_warnings_for_path(path):
            return Severity.WARNING
        return None

    def field_state(self, path: str) -> FieldValidationState:
        errors = self.get_errors_for_path(path)
        warnings = self.get_warnings_for_path(path)
        return FieldValidationState(
            has_error=bool(errors),
            has_warning=bool(warnings),
            error_message=errors[0].formatted_message() if errors else "",
            warning_message=warnings[0].formatted_message() if warnings else "",
            severity=self.severity_for_path(path),
            is_valid=not errors and not warnings,
        )
