"""Tests for the validation issue store."""

from typing import Optional

import pytest

from schemamapper.core.issue_store import ValidationIssueStore, path_matches
from schemamapper.core.models import IssueCode, IssueContext, Severity, ValidationIssue


def make_issue(
    path: str = "item.terms.labels.en",
    code: IssueCode = IssueCode.INCOMPATIBLE_DATA_TYPE,
    severity: Severity = Severity.ERROR,
    message: Optional[str] = None,
) -> ValidationIssue:
    return ValidationIssue.create(code, path, severity=severity, message=message)


class TestPathMatches:
    """Test segment-aware prefix matching."""

    @pytest.mark.parametrize("path", ["a.b", "a.b.c", "a.b[0]", "a.b[0].value"])
    def test_matches_segments(self, path):
        assert path_matches(path, "a.b")

    @pytest.mark.parametrize("path", ["a.bc", "a", "x.a.b"])
    def test_rejects_partial_segments(self, path):
        assert not path_matches(path, "a.b")

    def test_empty_prefix_matches_all(self):
        assert path_matches("anything", "")

    def test_prefix_ending_with_separator(self):
        assert path_matches("item.statements[3].value", "item.statements[")


class TestAddIssues:
    """Test idempotent insertion."""

    def test_add_error_is_idempotent_on_path_and_code(self):
        store = ValidationIssueStore()
        store.add_error(make_issue(message="first"))
        store.add_error(make_issue(message="second"))
        assert store.error_count == 1
        assert store.errors[0].message == "first"

    def test_different_codes_coexist(self):
        store = ValidationIssueStore()
        store.add_error(make_issue())
        store.add_error(make_issue(code=IssueCode.LENGTH_CONSTRAINT))
        assert store.error_count == 2

    def test_same_key_in_both_lists(self):
        store = ValidationIssueStore()
        store.add_error(make_issue())
        store.add_warning(make_issue())
        assert store.error_count == 1
        assert store.warning_count == 1
        assert store.total_issue_count == 2

    def test_add_warning_coerces_severity(self):
        store = ValidationIssueStore()
        store.add_warning(make_issue(severity=Severity.ERROR))
        assert store.warnings[0].severity == Severity.WARNING
        assert not store.has_errors

    def test_add_routes_by_severity(self):
        store = ValidationIssueStore()
        store.add(make_issue(severity=Severity.WARNING))
        store.add(make_issue(path="schema.name"))
        assert store.warning_count == 1
        assert store.error_count == 1

    def test_stock_message_used_by_default(self):
        issue = make_issue(code=IssueCode.DUPLICATE_ALIAS)
        assert issue.message == "This alias already exists"

    def test_returned_lists_are_copies(self):
        store = ValidationIssueStore()
        store.errors.append(make_issue())
        assert store.error_count == 0


class TestClearIssues:
    """Test the clear operations."""

    def test_clear_error_needs_exact_message(self):
        store = ValidationIssueStore()
        store.add_error(make_issue(message="too long"))
        store.clear_error(make_issue(message="something else"))
        assert store.error_count == 1
        store.clear_error(make_issue(message="too long"))
        assert store.error_count == 0

    def test_clear_error_removes_from_both_lists(self):
        store = ValidationIssueStore()
        store.add_error(make_issue(message="m"))
        store.add_warning(make_issue(message="m"))
        store.clear_error(make_issue(message="m"))
        assert not store.has_any_issues

    def test_prefix_clear_is_segment_aware(self):
        store = ValidationIssueStore()
        store.add_error(make_issue(path="a.b"))
        store.add_error(make_issue(path="a.b.c"))
        store.add_error(make_issue(path="a.b[0]"))
        store.add_error(make_issue(path="a.bc"))
        store.add_warning(make_issue(path="a.b.d"))

        store.clear_errors_for_path("a.b")

        assert [e.path for e in store.errors] == ["a.bc"]
        assert store.warning_count == 0

    def test_exact_clear(self):
        store = ValidationIssueStore()
        store.add_error(make_issue(path="a.b"))
        store.add_error(make_issue(path="a.b.c"))
        store.clear_errors_for_path("a.b", exact_match=True)
        assert [e.path for e in store.errors] == ["a.b.c"]

    def test_clear_by_code(self):
        store = ValidationIssueStore()
        store.add_error(make_issue(code=IssueCode.MISSING_REQUIRED_MAPPING))
        store.add_warning(make_issue(path="x", code=IssueCode.MISSING_REQUIRED_MAPPING))
        store.add_error(make_issue(code=IssueCode.LENGTH_CONSTRAINT))
        store.clear_errors_by_code(IssueCode.MISSING_REQUIRED_MAPPING)
        assert [e.code for e in store.errors] == [IssueCode.LENGTH_CONSTRAINT]
        assert store.warning_count == 0

    def test_reset(self):
        store = ValidationIssueStore()
        store.add_error(make_issue())
        store.add_warning(make_issue(path="x"))
        store.reset()
        assert store.total_issue_count == 0
        assert store.get_validation_result().is_valid


class TestQueries:
    """Test path queries and UI projections."""

    def test_path_queries_use_prefix(self):
        store = ValidationIssueStore()
        store.add_error(make_issue(path="item.statements[0].value"))
        store.add_warning(make_issue(path="item.statements[1].value"))
        assert store.has_errors_for_path("item.statements")
        assert store.has_warnings_for_path("item.statements")
        assert not store.has_errors_for_path("item.statements[1]")
        assert len(store.get_errors_for_path("item.statements[0]")) == 1

    def test_validation_result(self):
        store = ValidationIssueStore()
        store.add_warning(make_issue())
        result = store.get_validation_result()
        assert result.is_valid is True
        assert len(result.warnings) == 1
        store.add_error(make_issue())
        assert store.get_validation_result().is_valid is False

    def test_severity_for_path(self):
        store = ValidationIssueStore()
        store.add_warning(make_issue(path="schema.name"))
        assert store.severity_for_path("schema.name") == Severity.WARNING
        store.add_error(make_issue(path="schema.name"))
        assert store.severity_for_path("schema.name") == Severity.ERROR
        assert store.severity_for_path("schema.other") is None

    def test_field_state(self):
        store = ValidationIssueStore()
        store.add_error(make_issue(path="schema.name", message="Name is required"))
        state = store.field_state("schema.name")
        assert state.has_error is True
        assert state.has_warning is False
        assert state.error_message == "Name is required"
        assert state.is_valid is False

    def test_field_state_appends_context(self):
        store = ValidationIssueStore()
        store.add_error(ValidationIssue.create(
            IssueCode.INCOMPATIBLE_DATA_TYPE,
            "item.terms.labels.en",
            context=IssueContext(column_name="population", language_code="en"),
            message="Wrong type",
        ))
        state = store.field_state("item.terms.labels")
        assert state.error_message == "Wrong type (Column: population) (Language: en)"

    def test_field_state_clean(self):
        state = ValidationIssueStore().field_state("schema.name")
        assert state.is_valid is True
        assert state.severity is None
