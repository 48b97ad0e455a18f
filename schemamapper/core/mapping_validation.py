"""Column -> drop target validation.

Checks run in a fixed order and the first failure wins:

1. Data type: the column's storage type must convert to a type the target accepts
2. Nullability: a required target cannot be fed by a nullable column
3. Length: label and alias sample values must fit the length ceiling
4. Property: statement, qualifier and reference targets need a property id

``validate`` is used while hovering (drop zone styling); ``validate_for_drop``
additionally rejects an alias that is already mapped for the language.
Neither raises: a rejected mapping is a verdict, not an error.

``audit_document`` re-checks the mappings already in a document (statement
value data types, language codes, repeated properties) and returns issues
for the store.
"""

import re
from typing import Iterable, Optional

from schemamapper.core.config import settings
from schemamapper.core.models import (
    ColumnInfo,
    ColumnMapping,
    ColumnValue,
    DropTarget,
    IssueCode,
    IssueContext,
    PropertyReference,
    ReasonCode,
    Severity,
    TargetKind,
    ValidationIssue,
    ValueMapping,
    Verdict,
)
from schemamapper.core.schema_document import SchemaDocument
from schemamapper.core.type_compatibility import COMPATIBILITY_TABLE, is_compatible

VALID = Verdict(valid=True)

REASON_TO_ISSUE_CODE: dict[ReasonCode, IssueCode] = {
    ReasonCode.INCOMPATIBLE_DATA_TYPE: IssueCode.INCOMPATIBLE_DATA_TYPE,
    ReasonCode.NULLABLE_REQUIRED_FIELD: IssueCode.NULLABLE_REQUIRED_FIELD,
    ReasonCode.LENGTH_CONSTRAINT: IssueCode.LENGTH_CONSTRAINT,
    ReasonCode.MISSING_PROPERTY_ID: IssueCode.INVALID_PROPERTY_ID,
    ReasonCode.DUPLICATE_ALIAS: IssueCode.DUPLICATE_ALIAS,
}


class MappingValidator:
    """Decides whether a column may be mapped onto a drop target."""

    def __init__(
        self,
        label_max_length: Optional[int] = None,
        alias_max_length: Optional[int] = None,
    ):
        if label_max_length is None:
            label_max_length = settings.label_max_length
        if alias_max_length is None:
            alias_max_length = settings.alias_max_length
        self.label_max_length = label_max_length
        self.alias_max_length = alias_max_length

    def _length_ceiling(self, kind: TargetKind) -> Optional[int]:
        if kind == TargetKind.LABEL:
            return self.label_max_length
        if kind == TargetKind.ALIAS:
            return self.alias_max_length
        return None

    def validate(self, column: ColumnInfo, target: DropTarget) -> Verdict:
        """Validate a column against a target without duplicate checks."""
        if not is_compatible(column.storage_type, target.accepted_types):
            accepted = ", ".join(sorted(t.value for t in target.accepted_types))
            return Verdict(
                valid=False,
                reason_code=ReasonCode.INCOMPATIBLE_DATA_TYPE,
                message=f"Column type '{column.storage_type}' is not compatible "
                        f"with target types: {accepted}",
            )

        if target.is_required and column.nullable:
            return Verdict(
                valid=False,
                reason_code=ReasonCode.NULLABLE_REQUIRED_FIELD,
                message="Required field cannot accept nullable column",
            )

        ceiling = self._length_ceiling(target.target_kind)
        if ceiling is not None and any(len(v) > ceiling for v in column.sample_values):
            return Verdict(
                valid=False,
                reason_code=ReasonCode.LENGTH_CONSTRAINT,
                message=f"{target.target_kind.value} values should be shorter "
                        f"than {ceiling} characters",
            )

        if target.is_property_target and not target.property_id:
            return Verdict(
                valid=False,
                reason_code=ReasonCode.MISSING_PROPERTY_ID,
                message=f"{target.target_kind.value} target must have a property ID",
            )

        return VALID

    def validate_for_drop(
        self,
        column: ColumnInfo,
        target: DropTarget,
        existing_aliases: Optional[Iterable[ColumnMapping]] = None,
    ) -> Verdict:
        """Validate a drop commit; alias targets also reject duplicates."""
        verdict = self.validate(column, target)
        if not verdict.valid:
            return verdict

        if (
            target.target_kind == TargetKind.ALIAS
            and existing_aliases is not None
            and is_alias_duplicate(column, existing_aliases)
        ):
            return Verdict(
                valid=False,
                reason_code=ReasonCode.DUPLICATE_ALIAS,
                message="This alias already exists",
            )

        return VALID


def is_alias_duplicate(column: ColumnInfo, existing_aliases: Iterable[ColumnMapping]) -> bool:
    key = (column.name, column.storage_type)
    return any(alias.key() == key for alias in existing_aliases)


def verdict_to_issue(
    verdict: Verdict,
    column: ColumnInfo,
    target: DropTarget,
) -> Optional[ValidationIssue]:
    """Turn a rejected verdict into a storable error; None for a valid verdict."""
    if verdict.valid or verdict.reason_code is None:
        return None
    return ValidationIssue.create(
        REASON_TO_ISSUE_CODE[verdict.reason_code],
        target.path,
        severity=Severity.ERROR,
        context=IssueContext(
            column_name=column.name,
            data_type=column.storage_type,
            target_type=target.target_kind.value,
            language_code=target.language,
            property_id=target.property_id,
        ),
        message=verdict.message,
    )


LANGUAGE_CODE_RE = re.compile(r"^[a-z]{2,3}(-[a-z0-9]{1,8})*$")

# Compatible types past this position in the table order still convert, but poorly
_OPTIMAL_TYPE_COUNT = 2


def validate_statement_data_type(
    value: ValueMapping,
    prop: Optional[PropertyReference],
    path: str,
) -> list[ValidationIssue]:
    """Check that a mapped column's storage type converts to the value's data type.

    Only column values are checked; constants and expressions carry no
    storage type.
    """
    if prop is None or not prop.id.strip():
        return [ValidationIssue.create(
            IssueCode.INVALID_PROPERTY_ID, path, context=IssueContext(schema_path=path)
        )]
    if not isinstance(value, ColumnValue):
        return []

    source = value.source
    if not source.column_name.strip():
        return [ValidationIssue.create(
            IssueCode.MISSING_STATEMENT_VALUE,
            path,
            context=IssueContext(property_id=prop.id, schema_path=path),
        )]

    if not is_compatible(source.storage_type, [value.data_type]):
        return [ValidationIssue.create(
            IssueCode.INCOMPATIBLE_DATA_TYPE,
            path,
            context=IssueContext(
                column_name=source.column_name,
                data_type=source.storage_type,
                target_type=value.data_type.value,
                property_id=prop.id,
                schema_path=path,
            ),
            message=f"Column type {source.storage_type} is not compatible "
                    f"with {value.data_type.value}",
        )]
    return []


def statement_compatibility_warnings(
    value: ValueMapping,
    prop: Optional[PropertyReference],
    path: str,
) -> list[ValidationIssue]:
    """Warn about column values mapped to a convertible but poorly suited type."""
    if not isinstance(value, ColumnValue) or prop is None:
        return []
    source = value.source
    if not source.column_name.strip():
        return []

    ordered = COMPATIBILITY_TABLE.get(source.storage_type.strip().upper(), ())
    if value.data_type not in ordered or ordered.index(value.data_type) < _OPTIMAL_TYPE_COUNT:
        return []
    return [ValidationIssue.create(
        IssueCode.INCOMPATIBLE_DATA_TYPE,
        path,
        severity=Severity.WARNING,
        context=IssueContext(
            column_name=source.column_name,
            data_type=source.storage_type,
            target_type=value.data_type.value,
            property_id=prop.id,
            schema_path=path,
        ),
        message=f"Data type {value.data_type.value} may not be optimal "
                f"for column type {source.storage_type}",
    )]


def _check_value(value: ValueMapping, prop: PropertyReference, path: str) -> list[ValidationIssue]:
    return (
        validate_statement_data_type(value, prop, path)
        + statement_compatibility_warnings(value, prop, path)
    )


def _duplicate_property(
    prop: PropertyReference, path: str, seen: set[str]
) -> list[ValidationIssue]:
    property_id = prop.id.strip()
    if not property_id:
        return []
    if property_id not in seen:
        seen.add(property_id)
        return []
    return [ValidationIssue.create(
        IssueCode.DUPLICATE_PROPERTY_MAPPING,
        path,
        severity=Severity.WARNING,
        context=IssueContext(property_id=property_id, schema_path=path),
    )]


def audit_document(document: SchemaDocument) -> list[ValidationIssue]:
    """Whole-document checks that a single drop cannot see.

    - term languages must look like language codes
    - statement, qualifier and reference values must convert from their column
    - a property repeated across statements, or within one statement's
      qualifiers, is reported as a warning
    """
    issues: list[ValidationIssue] = []
    for field, languages in (
        ("labels", document.labels),
        ("descriptions", document.descriptions),
        ("aliases", document.aliases),
    ):
        for language in languages:
            if not LANGUAGE_CODE_RE.match(language):
                path = f"item.terms.{field}.{language}"
                issues.append(ValidationIssue.create(
                    IssueCode.INVALID_LANGUAGE_CODE,
                    path,
                    context=IssueContext(language_code=language, schema_path=path),
                ))

    statement_properties: set[str] = set()
    for s_index, statement in enumerate(document.statements):
        base = f"item.statements[{s_index}]"
        issues.extend(_check_value(statement.value, statement.property, f"{base}.value"))
        issues.extend(
            _duplicate_property(statement.property, f"{base}.property", statement_properties)
        )

        qualifier_properties: set[str] = set()
        for q_index, qualifier in enumerate(statement.qualifiers):
            path = f"{base}.qualifiers[{q_index}]"
            issues.extend(_check_value(qualifier.value, qualifier.property, f"{path}.value"))
            issues.extend(
                _duplicate_property(qualifier.property, f"{path}.property", qualifier_properties)
            )

        for r_index, reference in enumerate(statement.references):
            for n_index, snak in enumerate(reference.snaks):
                path = f"{base}.references[{r_index}].snaks[{n_index}].value"
                issues.extend(_check_value(snak.value, snak.property, path))
    return issues
