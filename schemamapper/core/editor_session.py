"""Editor Session — one schema-mapping editor with its collaborators wired together.

An EditorSession owns the schema document, the issue store, the completeness
rules, the drag session and the columns of the dataset being mapped. Drops
and saves are async only because persistence is: the caller injects a
coroutine that receives the document snapshot.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Optional

from schemamapper.core.completeness import SchemaCompletenessValidator
from schemamapper.core.drag_drop import DragDropSession
from schemamapper.core.id_gen import SCHEMA_PREFIX, SESSION_PREFIX, generate_id
from schemamapper.core.issue_store import ValidationIssueStore
from schemamapper.core.mapping_validation import MappingValidator, audit_document, verdict_to_issue
from schemamapper.core.models import (
    ColumnInfo,
    ColumnMapping,
    ColumnValue,
    CompletenessResult,
    DragState,
    DropFeedback,
    DropTarget,
    FeedbackType,
    IssueCode,
    IssueContext,
    PropertyConstraintViolation,
    PropertyReference,
    PropertyValueMap,
    ReferenceMapping,
    SchemaSnapshot,
    Severity,
    StatementMapping,
    TargetKind,
    ValidationIssue,
)
from schemamapper.core.rule_registry import (
    ValidationRule,
    ValidationRuleRegistry,
    load_default_rules,
)
from schemamapper.core.schema_document import SchemaDocument, build_reference
from schemamapper.core.target_paths import StatementAddress, parse_statement_address
from schemamapper.core.type_compatibility import preferred_value_type

logger = logging.getLogger(__name__)

PersistCallback = Callable[[SchemaSnapshot], Awaitable[Any]]

TARGET_NOUNS = {
    TargetKind.LABEL: "label",
    TargetKind.DESCRIPTION: "description",
    TargetKind.ALIAS: "alias",
    TargetKind.STATEMENT: "statement value",
    TargetKind.QUALIFIER: "qualifier",
    TargetKind.REFERENCE: "reference",
}


@dataclass
class DropOutcome:
    """Result of committing a drop."""
    success: bool
    feedback: DropFeedback
    statement_id: Optional[str] = None


class EditorSession:
    """Schema-mapping editor state for one user and one dataset."""

    def __init__(
        self,
        document: Optional[SchemaDocument] = None,
        issues: Optional[ValidationIssueStore] = None,
        rules: Optional[ValidationRuleRegistry] = None,
        validator: Optional[MappingValidator] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or generate_id(SESSION_PREFIX)
        self.document = document if document is not None else SchemaDocument()
        self.issues = issues if issues is not None else ValidationIssueStore()
        self.rules = rules if rules is not None else ValidationRuleRegistry(load_default_rules())
        self.validator = validator or MappingValidator()
        self.drag = DragDropSession(self.document, self.validator)
        self.completeness = SchemaCompletenessValidator(self.document, self.rules)
        self.columns: dict[str, ColumnInfo] = {}
        self.last_feedback: Optional[DropFeedback] = None
        self._auto_validation = False
        self._audit_issues: list[ValidationIssue] = []

    # --- columns and targets ---

    def register_columns(self, columns: Iterable[ColumnInfo]) -> None:
        """Replace the dataset columns offered for dragging."""
        self.columns = {c.name: c for c in columns}

    def get_column(self, column_name: str) -> Optional[ColumnInfo]:
        return self.columns.get(column_name)

    def set_targets(self, targets: Iterable[DropTarget]) -> None:
        self.drag.set_available_targets(targets)

    # --- drag lifecycle ---

    def start_drag(self, column_name: str) -> int:
        """Start dragging a registered column.

        Raises:
            KeyError: the column is not registered.
        """
        column = self.get_column(column_name)
        if column is None:
            raise KeyError(f"Unknown column '{column_name}'")
        self.last_feedback = None
        return self.drag.start_drag(column)

    def enter_drop_zone(self, path: str) -> bool:
        """Hover a target; returns whether dropping there would be accepted."""
        self.drag.set_hovered_target(path)
        return self.drag.is_current_hover_valid

    def leave_drop_zone(self) -> None:
        self.drag.set_hovered_target(None)

    def end_drag(self) -> None:
        self.drag.end_drag()

    async def perform_drop(
        self,
        column: ColumnInfo,
        target: DropTarget,
        persist: Optional[PersistCallback] = None,
    ) -> DropOutcome:
        """Validate and commit a drop of ``column`` onto ``target``.

        A rejected drop stores an issue at the target path and leaves the
        document untouched. An accepted drop mutates the document, clears the
        issues at the target path and, when ``persist`` is given, awaits it
        with the new snapshot. A persistence failure is reported as feedback;
        the mutation stays in place.
        """
        generation = self.drag.generation
        self.drag.set_drag_state(DragState.DROPPING)
        try:
            existing_aliases = None
            if target.target_kind == TargetKind.ALIAS:
                existing_aliases = self.document.get_aliases(target.language)

            verdict = self.validator.validate_for_drop(column, target, existing_aliases)
            if not verdict.valid:
                issue = verdict_to_issue(verdict, column, target)
                if issue is not None:
                    self.issues.add(issue)
                logger.warning(
                    f"Rejected drop of column '{column.name}' on {target.path}: "
                    f"{verdict.reason_code.value if verdict.reason_code else 'invalid'}"
                )
                return self._finish(DropOutcome(
                    success=False,
                    feedback=DropFeedback(type=FeedbackType.ERROR, message=verdict.message or ""),
                ))

            address = parse_statement_address(target.path)
            if target.target_kind in (TargetKind.QUALIFIER, TargetKind.REFERENCE):
                if self._statement_at(address) is None:
                    return self._finish(DropOutcome(
                        success=False,
                        feedback=DropFeedback(
                            type=FeedbackType.ERROR,
                            message=f"No statement exists at {target.path}",
                        ),
                    ))

            replaced = self._replaced_term_column(column, target)
            statement_id = self._apply_drop(column, target, address)
            self.issues.clear_errors_for_path(target.path)
            if replaced is not None:
                self.issues.add(ValidationIssue.create(
                    IssueCode.DUPLICATE_LANGUAGE_MAPPING,
                    target.path,
                    severity=Severity.WARNING,
                    context=IssueContext(column_name=column.name, language_code=target.language),
                    message=f"Replaced the {TARGET_NOUNS[target.target_kind]} mapping "
                            f"from column '{replaced}' for language '{target.language}'",
                ))
            outcome = DropOutcome(
                success=True,
                feedback=DropFeedback(
                    type=FeedbackType.SUCCESS,
                    message=f"Mapped column '{column.name}' to {TARGET_NOUNS[target.target_kind]}",
                ),
                statement_id=statement_id,
            )

            if persist is not None:
                try:
                    await persist(self.document.snapshot())
                except Exception as e:
                    logger.warning(f"Persisting drop on {target.path} failed: {e}")
                    outcome = DropOutcome(
                        success=False,
                        feedback=DropFeedback(
                            type=FeedbackType.ERROR,
                            message=f"Mapping applied but could not be saved: {e}",
                        ),
                        statement_id=statement_id,
                    )
            return self._finish(outcome)
        finally:
            self.drag.end_drag(generation)

    def _finish(self, outcome: DropOutcome) -> DropOutcome:
        self.last_feedback = outcome.feedback
        return outcome

    # --- drop mutations ---

    def _replaced_term_column(self, column: ColumnInfo, target: DropTarget) -> Optional[str]:
        """Name of the other column a label or description drop is about to overwrite."""
        if target.target_kind == TargetKind.LABEL:
            existing = self.document.labels.get(target.language)
        elif target.target_kind == TargetKind.DESCRIPTION:
            existing = self.document.descriptions.get(target.language)
        else:
            return None
        if existing is None or existing.column_name == column.name:
            return None
        return existing.column_name

    def _statement_at(self, address: Optional[StatementAddress]) -> Optional[StatementMapping]:
        if address is None or address.statement_index is None:
            return None
        if address.statement_index < len(self.document.statements):
            return self.document.statements[address.statement_index]
        return None

    def _apply_drop(
        self,
        column: ColumnInfo,
        target: DropTarget,
        address: Optional[StatementAddress],
    ) -> Optional[str]:
        """Mutate the document for an accepted drop; returns the statement id touched."""
        mapping = ColumnMapping.from_column(column)
        kind = target.target_kind
        if kind == TargetKind.LABEL:
            self.document.add_label_mapping(target.language, mapping)
            return None
        if kind == TargetKind.DESCRIPTION:
            self.document.add_description_mapping(target.language, mapping)
            return None
        if kind == TargetKind.ALIAS:
            self.document.add_alias_mapping(target.language, mapping)
            return None

        data_type = preferred_value_type(column.storage_type, target.accepted_types)
        value = ColumnValue(source=mapping, data_type=data_type)
        snak = PropertyValueMap(
            property=PropertyReference(id=target.property_id or "", data_type=data_type.value),
            value=value,
        )
        statement = self._statement_at(address)

        if kind == TargetKind.STATEMENT:
            if statement is None:
                return self.document.add_statement(snak.property, value)
            if not statement.property.id:
                statement.property = snak.property
            self.document.update_statement_value(statement.id, value)
            return statement.id

        if kind == TargetKind.QUALIFIER:
            index = address.qualifier_index
            if index is not None and index < len(statement.qualifiers):
                qualifiers = list(statement.qualifiers)
                qualifiers[index] = snak
                self.document.update_statement_qualifiers(statement.id, qualifiers)
            else:
                self.document.add_qualifier_to_statement(statement.id, snak)
            return statement.id

        index = address.reference_index
        if index is None or index >= len(statement.references):
            self.document.add_reference_to_statement(statement.id, build_reference([snak]))
            return statement.id

        reference = statement.references[index]
        snak_index = address.snak_index
        if snak_index is not None and snak_index < len(reference.snaks):
            snaks = list(reference.snaks)
            snaks[snak_index] = snak
            references = list(statement.references)
            references[index] = ReferenceMapping(id=reference.id, snaks=snaks)
            self.document.update_statement(
                statement.id,
                statement.property,
                statement.value,
                statement.rank,
                statement.qualifiers,
                references,
            )
        else:
            self.document.add_snak_to_reference(statement.id, reference.id, snak)
        return statement.id

    # --- validation ---

    def refresh_validation(self) -> CompletenessResult:
        """Re-run completeness and the document audit, mirroring both into the issue store."""
        self.completeness.sync_issues(self.issues)
        self._sync_audit_issues()
        return self.completeness.validate()

    def _sync_audit_issues(self) -> None:
        for issue in self._audit_issues:
            self.issues.clear_error(issue)
        self._audit_issues = audit_document(self.document)
        for issue in self._audit_issues:
            self.issues.add(issue)

    def _on_document_change(self, document: SchemaDocument) -> None:
        self.refresh_validation()

    def enable_auto_validation(self) -> None:
        if self._auto_validation:
            return
        self._auto_validation = True
        self.document.subscribe(self._on_document_change)
        self.refresh_validation()

    def disable_auto_validation(self) -> None:
        self._auto_validation = False
        self.document.unsubscribe(self._on_document_change)

    @property
    def auto_validation_enabled(self) -> bool:
        return self._auto_validation

    def merge_constraint_violations(
        self, path: str, violations: Iterable[PropertyConstraintViolation]
    ) -> None:
        """Replace the constraint issues at ``path`` with the knowledge base's latest results.

        The store keeps one record per (path, code) and severity, so messages
        of the same severity are joined.
        """
        for issue in self.issues.errors + self.issues.warnings:
            if issue.path == path and issue.code == IssueCode.CONSTRAINT_VIOLATION:
                self.issues.clear_error(issue)

        by_severity: dict[Severity, list[PropertyConstraintViolation]] = {}
        for violation in violations:
            by_severity.setdefault(violation.severity, []).append(violation)

        for severity, grouped in by_severity.items():
            self.issues.add(ValidationIssue.create(
                IssueCode.CONSTRAINT_VIOLATION,
                path,
                severity=severity,
                context=IssueContext(
                    property_id=grouped[0].property_id,
                    schema_path=path,
                ),
                message="; ".join(v.message for v in grouped),
            ))

    # --- persistence ---

    @property
    def can_save(self) -> bool:
        return self.document.can_save

    async def save(self, persist: Optional[PersistCallback] = None) -> bool:
        """Save the document; returns False when there is nothing that may be saved.

        Raises whatever ``persist`` raises; the document then stays dirty.
        """
        if not self.document.can_save:
            return False

        doc = self.document
        if doc.schema_id is None:
            doc.schema_id = generate_id(SCHEMA_PREFIX)
        if doc.created_at is None:
            doc.created_at = datetime.now(timezone.utc)

        doc.set_saving(True)
        try:
            if persist is not None:
                await persist(doc.snapshot())
            doc.mark_as_saved()
            logger.info(f"Saved schema {doc.schema_id} for session {self.session_id}")
            return True
        except Exception as e:
            logger.error(f"Saving schema {doc.schema_id} failed: {e}")
            raise
        finally:
            doc.set_saving(False)

    def reset(self) -> None:
        """Blank the document and issues, keeping columns, targets and project."""
        project_id = self.document.project_id
        self.drag.end_drag()
        self.issues.reset()
        self._audit_issues = []
        self.document.reset()
        self.document.project_id = project_id
        self.last_feedback = None


class SessionRegistry:
    """In-memory registry of live editor sessions."""

    def __init__(self, rules_file: Optional[str] = None):
        self._sessions: dict[str, EditorSession] = {}
        self._rules_file = rules_file
        self._default_rules: Optional[list[ValidationRule]] = None

    def _rules(self) -> ValidationRuleRegistry:
        if self._default_rules is None:
            self._default_rules = load_default_rules(self._rules_file)
        # Each session toggles its own copies
        return ValidationRuleRegistry([replace(r) for r in self._default_rules])

    def create(
        self,
        project_id: Optional[str] = None,
        name: str = "",
        knowledge_base: str = "",
        columns: Iterable[ColumnInfo] = (),
    ) -> EditorSession:
        session = EditorSession(
            document=SchemaDocument(project_id=project_id, name=name, knowledge_base=knowledge_base),
            rules=self._rules(),
        )
        session.register_columns(columns)
        self._sessions[session.session_id] = session
        logger.info(
            f"Created editor session {session.session_id} "
            f"(project={project_id}, columns={len(session.columns)})"
        )
        return session

    def get(self, session_id: str) -> Optional[EditorSession]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.disable_auto_validation()
        logger.info(f"Closed editor session {session_id}")
        return True

    def list_sessions(self) -> list[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)
