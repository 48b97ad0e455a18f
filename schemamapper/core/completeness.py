"""Schema completeness validation.

Combines the session's configurable rules with fixed statement-shape checks
to list required fields that are still missing. Nothing is reported for a
document without any content, so a blank schema does not open covered in
errors.
"""

from typing import Any

from schemamapper.core.issue_store import ValidationIssueStore
from schemamapper.core.models import (
    ColumnValue,
    CompletenessResult,
    ConstantValue,
    ExpressionValue,
    IssueCode,
    IssueContext,
    RequiredFieldHighlight,
    Severity,
    StatementMapping,
    ValidationIssue,
)
from schemamapper.core.rule_registry import ValidationRule, ValidationRuleRegistry
from schemamapper.core.schema_document import SchemaDocument

FIELD_SCHEMA_NAME = "schema.name"
FIELD_KNOWLEDGE_BASE = "schema.knowledge_base"
FIELD_LABELS = "item.terms.labels"
FIELD_DESCRIPTIONS = "item.terms.descriptions"
FIELD_ALIASES = "item.terms.aliases"
FIELD_STATEMENTS = "item.statements"


def _statement_gaps(index: int, statement: StatementMapping) -> list[str]:
    """Paths of the missing parts of one statement."""
    base = f"{FIELD_STATEMENTS}[{index}]"
    gaps = []
    if not statement.property.id.strip():
        gaps.append(f"{base}.property.id")

    value = statement.value
    if isinstance(value, ColumnValue):
        if not value.source.column_name.strip():
            gaps.append(f"{base}.value.source.column_name")
    elif isinstance(value, (ConstantValue, ExpressionValue)):
        if not value.source.strip():
            gaps.append(f"{base}.value.source")
    else:
        raise TypeError(f"Unsupported value mapping: {type(value).__name__}")
    return gaps


def statement_field_message(field_path: str) -> str:
    if field_path.endswith("property.id"):
        return "Statement property ID is required"
    if field_path.endswith("value.source.column_name"):
        return "Statement value column mapping is required"
    if field_path.endswith("value.source"):
        return "Statement value is required"
    return "Statement configuration is incomplete"


class SchemaCompletenessValidator:
    """Reports required fields that a schema document does not satisfy yet."""

    def __init__(self, document: SchemaDocument, registry: ValidationRuleRegistry):
        self.document = document
        self.registry = registry

    def get_field_value(self, field_path: str) -> Any:
        doc = self.document
        values = {
            FIELD_SCHEMA_NAME: doc.name,
            FIELD_KNOWLEDGE_BASE: doc.knowledge_base,
            FIELD_LABELS: doc.labels,
            FIELD_DESCRIPTIONS: doc.descriptions,
            FIELD_ALIASES: doc.aliases,
            FIELD_STATEMENTS: doc.statements,
        }
        return values.get(field_path)

    def _rule_passes(self, rule: ValidationRule) -> bool:
        value = self.get_field_value(rule.field_path)
        return rule.predicate(value, {"schema_document": self.document})

    def is_field_satisfied(self, field_path: str) -> bool:
        return all(self._rule_passes(r) for r in self.registry.get_rules_by_field_path(field_path))

    def _failing_rules(self) -> list[ValidationRule]:
        return [r for r in self.registry.enabled_rules if not self._rule_passes(r)]

    def get_missing_required_fields(self) -> list[str]:
        missing: list[str] = []
        for rule in self._failing_rules():
            if rule.field_path not in missing:
                missing.append(rule.field_path)

        for index, statement in enumerate(self.document.statements):
            missing.extend(_statement_gaps(index, statement))
        return missing

    def is_complete(self) -> bool:
        return not self.get_missing_required_fields()

    def has_schema_content(self) -> bool:
        doc = self.document
        return bool(
            doc.name.strip()
            or doc.knowledge_base.strip()
            or doc.labels
            or doc.descriptions
            or doc.aliases
            or doc.statements
        )

    def get_required_field_highlights(self) -> list[RequiredFieldHighlight]:
        if not self.has_schema_content():
            return []

        highlights = []
        reported: set[str] = set()
        for rule in self._failing_rules():
            if rule.field_path in reported:
                continue
            reported.add(rule.field_path)
            highlights.append(RequiredFieldHighlight(
                path=rule.field_path,
                message=rule.message,
                severity=rule.severity,
            ))

        for index, statement in enumerate(self.document.statements):
            for path in _statement_gaps(index, statement):
                highlights.append(RequiredFieldHighlight(
                    path=path,
                    message=statement_field_message(path),
                    severity=Severity.ERROR,
                ))
        return highlights

    def validate(self) -> CompletenessResult:
        missing = self.get_missing_required_fields()
        return CompletenessResult(
            is_complete=not missing,
            missing_required_fields=missing,
            required_field_highlights=self.get_required_field_highlights(),
        )

    def sync_issues(self, store: ValidationIssueStore) -> list[RequiredFieldHighlight]:
        """Replace the store's missing-mapping issues with the current highlights."""
        store.clear_errors_by_code(IssueCode.MISSING_REQUIRED_MAPPING)
        highlights = self.get_required_field_highlights()
        for highlight in highlights:
            store.add(ValidationIssue.create(
                IssueCode.MISSING_REQUIRED_MAPPING,
                highlight.path,
                severity=highlight.severity,
                context=IssueContext(schema_path=highlight.path),
                message=highlight.message,
            ))
        return highlights
