"""Pydantic models for columns, drop targets, schema mappings and validation records."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SchemaValueType(str, Enum):
    STRING = "string"
    WIKIBASE_ITEM = "wikibase-item"
    WIKIBASE_PROPERTY = "wikibase-property"
    QUANTITY = "quantity"
    TIME = "time"
    GLOBE_COORDINATE = "globe-coordinate"
    URL = "url"
    EXTERNAL_ID = "external-id"
    MONOLINGUAL_TEXT = "monolingualtext"
    COMMONS_MEDIA = "commonsMedia"


class TargetKind(str, Enum):
    LABEL = "label"
    DESCRIPTION = "description"
    ALIAS = "alias"
    STATEMENT = "statement"
    QUALIFIER = "qualifier"
    REFERENCE = "reference"


TERM_KINDS = frozenset({TargetKind.LABEL, TargetKind.DESCRIPTION, TargetKind.ALIAS})
PROPERTY_KINDS = frozenset({TargetKind.STATEMENT, TargetKind.QUALIFIER, TargetKind.REFERENCE})


class StatementRank(str, Enum):
    PREFERRED = "preferred"
    NORMAL = "normal"
    DEPRECATED = "deprecated"


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    DROPPING = "dropping"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ReasonCode(str, Enum):
    """Why a column cannot be dropped on a target."""
    INCOMPATIBLE_DATA_TYPE = "incompatible_data_type"
    NULLABLE_REQUIRED_FIELD = "nullable_required_field"
    LENGTH_CONSTRAINT = "length_constraint"
    MISSING_PROPERTY_ID = "missing_property_id"
    DUPLICATE_ALIAS = "duplicate_alias"


class IssueCode(str, Enum):
    MISSING_REQUIRED_MAPPING = "MISSING_REQUIRED_MAPPING"
    INCOMPATIBLE_DATA_TYPE = "INCOMPATIBLE_DATA_TYPE"
    NULLABLE_REQUIRED_FIELD = "NULLABLE_REQUIRED_FIELD"
    LENGTH_CONSTRAINT = "LENGTH_CONSTRAINT"
    INVALID_PROPERTY_ID = "INVALID_PROPERTY_ID"
    DUPLICATE_ALIAS = "DUPLICATE_ALIAS"
    DUPLICATE_LANGUAGE_MAPPING = "DUPLICATE_LANGUAGE_MAPPING"
    MISSING_STATEMENT_VALUE = "MISSING_STATEMENT_VALUE"
    INVALID_LANGUAGE_CODE = "INVALID_LANGUAGE_CODE"
    MISSING_ITEM_CONFIGURATION = "MISSING_ITEM_CONFIGURATION"
    DUPLICATE_PROPERTY_MAPPING = "DUPLICATE_PROPERTY_MAPPING"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"


ISSUE_MESSAGES: dict[IssueCode, str] = {
    IssueCode.MISSING_REQUIRED_MAPPING: "Required mapping is missing",
    IssueCode.INCOMPATIBLE_DATA_TYPE: "Column data type is incompatible with target",
    IssueCode.NULLABLE_REQUIRED_FIELD: "Required field cannot accept nullable column",
    IssueCode.LENGTH_CONSTRAINT: "Column values are too long for this target",
    IssueCode.INVALID_PROPERTY_ID: "Invalid or non-existent property ID",
    IssueCode.DUPLICATE_ALIAS: "This alias already exists",
    IssueCode.DUPLICATE_LANGUAGE_MAPPING: "Multiple mappings exist for the same language",
    IssueCode.MISSING_STATEMENT_VALUE: "Statement is missing a required value mapping",
    IssueCode.INVALID_LANGUAGE_CODE: "Invalid language code format",
    IssueCode.MISSING_ITEM_CONFIGURATION: "Item configuration is required",
    IssueCode.DUPLICATE_PROPERTY_MAPPING: "Property is already mapped in this context",
    IssueCode.CONSTRAINT_VIOLATION: "Value violates a property constraint",
}


class FeedbackType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


class TargetVisualState(str, Enum):
    NEUTRAL = "neutral"
    VALID = "valid"
    VALID_HOVER = "valid-hover"
    INVALID = "invalid"
    INVALID_HOVER = "invalid-hover"


def normalize_language(code: Optional[str]) -> Optional[str]:
    """Lowercase and strip a language code; empty codes become None."""
    if code is None:
        return None
    code = code.strip().lower()
    return code or None


# --- Dataset and drop target inputs ---


class ColumnInfo(BaseModel):
    """Snapshot of one dataset column as reported by the data layer."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    storage_type: str
    nullable: bool = False
    sample_values: tuple[str, ...] = ()
    unique_count: Optional[int] = Field(None, ge=0)


class DropTarget(BaseModel):
    """A schema slot that can receive a column mapping."""
    model_config = ConfigDict(frozen=True)

    target_kind: TargetKind
    path: str = Field(..., min_length=1)
    accepted_types: frozenset[SchemaValueType]
    language: Optional[str] = None
    property_id: Optional[str] = None
    is_required: bool = False

    @field_validator("accepted_types")
    @classmethod
    def _non_empty_types(cls, value: frozenset) -> frozenset:
        if not value:
            raise ValueError("accepted_types must not be empty")
        return value

    @field_validator("language")
    @classmethod
    def _lower_language(cls, value: Optional[str]) -> Optional[str]:
        return normalize_language(value)

    @field_validator("property_id")
    @classmethod
    def _strip_property(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def _kind_fields(self) -> "DropTarget":
        if self.target_kind in TERM_KINDS:
            if self.language is None:
                raise ValueError(f"{self.target_kind.value} target requires a language")
            if self.property_id is not None:
                raise ValueError(f"{self.target_kind.value} target cannot carry a property_id")
        elif self.language is not None:
            raise ValueError(f"{self.target_kind.value} target cannot carry a language")
        return self

    @property
    def is_term_target(self) -> bool:
        return self.target_kind in TERM_KINDS

    @property
    def is_property_target(self) -> bool:
        return self.target_kind in PROPERTY_KINDS


# --- Schema mapping document parts ---


class Transformation(BaseModel):
    type: Literal["constant", "expression", "lookup"]
    value: str
    parameters: Optional[dict[str, Any]] = None


class ColumnMapping(BaseModel):
    column_name: str
    storage_type: str
    transformation: Optional[Transformation] = None

    @classmethod
    def from_column(cls, column: ColumnInfo) -> "ColumnMapping":
        return cls(column_name=column.name, storage_type=column.storage_type)

    def key(self) -> tuple[str, str]:
        """Identity used for alias de-duplication."""
        return (self.column_name, self.storage_type)


class ColumnValue(BaseModel):
    type: Literal["column"] = "column"
    source: ColumnMapping
    data_type: SchemaValueType


class ConstantValue(BaseModel):
    type: Literal["constant"] = "constant"
    source: str
    data_type: SchemaValueType


class ExpressionValue(BaseModel):
    type: Literal["expression"] = "expression"
    source: str
    data_type: SchemaValueType


ValueMapping = Annotated[
    Union[ColumnValue, ConstantValue, ExpressionValue],
    Field(discriminator="type"),
]


class PropertyReference(BaseModel):
    id: str = ""  # empty while the user has not picked a property yet
    label: Optional[str] = None
    data_type: str = SchemaValueType.STRING.value


class PropertyValueMap(BaseModel):
    property: PropertyReference
    value: ValueMapping


class ReferenceMapping(BaseModel):
    id: str
    snaks: list[PropertyValueMap] = []


class StatementMapping(BaseModel):
    id: str
    property: PropertyReference
    value: ValueMapping
    rank: StatementRank = StatementRank.NORMAL
    qualifiers: list[PropertyValueMap] = []
    references: list[ReferenceMapping] = []


class TermsSnapshot(BaseModel):
    labels: dict[str, ColumnMapping] = {}
    descriptions: dict[str, ColumnMapping] = {}
    aliases: dict[str, list[ColumnMapping]] = {}


class ItemSnapshot(BaseModel):
    id: Optional[str] = None
    terms: TermsSnapshot = Field(default_factory=TermsSnapshot)
    statements: list[StatementMapping] = []


class SchemaSnapshot(BaseModel):
    """Plain structural copy of a schema document, handed to the persistence layer."""
    schema_id: Optional[str] = None
    project_id: Optional[str] = None
    name: str = ""
    knowledge_base: str = ""
    item: ItemSnapshot = Field(default_factory=ItemSnapshot)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# --- Validation records ---


class Verdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    reason_code: Optional[ReasonCode] = None
    message: Optional[str] = None


class IssueContext(BaseModel):
    column_name: Optional[str] = None
    property_id: Optional[str] = None
    language_code: Optional[str] = None
    data_type: Optional[str] = None
    target_type: Optional[str] = None
    schema_path: Optional[str] = None


class ValidationIssue(BaseModel):
    severity: Severity
    code: IssueCode
    path: str
    message: str
    context: Optional[IssueContext] = None

    @classmethod
    def create(
        cls,
        code: IssueCode,
        path: str,
        severity: Severity = Severity.ERROR,
        context: Optional[IssueContext] = None,
        message: Optional[str] = None,
    ) -> "ValidationIssue":
        """Build an issue, falling back to the stock message for its code."""
        return cls(
            severity=severity,
            code=code,
            path=path,
            message=message or ISSUE_MESSAGES[code],
            context=context,
        )

    def formatted_message(self) -> str:
        """Message with its issue context appended."""
        message = self.message
        if self.context:
            if self.context.column_name:
                message += f" (Column: {self.context.column_name})"
            if self.context.property_id:
                message += f" (Property: {self.context.property_id})"
            if self.context.language_code:
                message += f" (Language: {self.context.language_code})"
        return message


class ValidationResult(BaseModel):
    is_valid: bool
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []


class FieldValidationState(BaseModel):
    has_error: bool = False
    has_warning: bool = False
    error_message: str = ""
    warning_message: str = ""
    severity: Optional[Severity] = None
    is_valid: bool = True


class RequiredFieldHighlight(BaseModel):
    path: str
    message: str
    severity: Severity


class CompletenessResult(BaseModel):
    is_complete: bool
    missing_required_fields: list[str] = []
    required_field_highlights: list[RequiredFieldHighlight] = []


class DropFeedback(BaseModel):
    type: FeedbackType
    message: str


class PropertyConstraintViolation(BaseModel):
    """A constraint check result reported by the knowledge-base client."""
    constraint_type: str
    message: str
    severity: Severity = Severity.WARNING
    property_id: Optional[str] = None


# --- API request/response models ---


class SessionCreate(BaseModel):
    project_id: Optional[str] = None
    name: str = ""
    knowledge_base: Optional[str] = None
    columns: list[ColumnInfo] = []


class SessionResponse(BaseModel):
    session_id: str
    project_id: Optional[str] = None
    schema_id: Optional[str] = None
    name: str = ""
    knowledge_base: str = ""
    column_names: list[str] = []
    target_paths: list[str] = []
    is_dirty: bool = False
    can_save: bool = False


class TargetSpec(BaseModel):
    """Drop target as sent by the editor; kind and language may be inferred from the path."""
    path: str = Field(..., min_length=1)
    accepted_types: list[SchemaValueType] = Field(..., min_length=1)
    target_kind: Optional[TargetKind] = None
    language: Optional[str] = None
    property_id: Optional[str] = None
    is_required: bool = False


class DragStartRequest(BaseModel):
    column_name: str = Field(..., min_length=1)


class HoverRequest(BaseModel):
    path: Optional[str] = None


class DropRequest(BaseModel):
    target_path: str = Field(..., min_length=1)
    column_name: Optional[str] = Field(
        None, description="Column to drop; defaults to the column being dragged"
    )


class DragStateResponse(BaseModel):
    drag_state: DragState
    dragged_column: Optional[str] = None
    valid_target_paths: list[str] = []
    hovered_target_path: Optional[str] = None
    is_current_hover_valid: bool = False
    feedback: Optional[DropFeedback] = None


class DropResponse(BaseModel):
    success: bool
    feedback: DropFeedback
    statement_id: Optional[str] = None


class NameUpdate(BaseModel):
    name: str = Field(..., max_length=255)


class KnowledgeBaseUpdate(BaseModel):
    knowledge_base: str
    item_id: Optional[str] = None


class StatementCreate(BaseModel):
    property: PropertyReference
    value: ValueMapping
    rank: StatementRank = StatementRank.NORMAL
    qualifiers: list[PropertyValueMap] = []
    references: list[ReferenceMapping] = []


class StatementCreateResponse(BaseModel):
    statement_id: str


class RankUpdate(BaseModel):
    rank: StatementRank


class ConstraintViolationsRequest(BaseModel):
    path: str
    violations: list[PropertyConstraintViolation]


class ColumnProfileRequest(BaseModel):
    """Tabular preview (header row + data rows) to derive column snapshots from."""
    headers: list[Optional[str]] = Field(..., min_length=1)
    rows: list[list[Any]] = []


class TargetFeedbackResponse(BaseModel):
    path: str
    state: TargetVisualState


class AutoValidationUpdate(BaseModel):
    enabled: bool


class RuleResponse(BaseModel):
    id: str
    name: str
    field_path: str
    message: str
    severity: Severity
    enabled: bool


class RuleToggle(BaseModel):
    enabled: bool
