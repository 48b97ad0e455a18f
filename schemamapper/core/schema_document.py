"""Schema Document — the in-memory entity mapping being edited.

Holds terms (labels, descriptions, aliases per language) and statements
(property/value pairs with rank, qualifiers and references). Every mutation
marks the document dirty and notifies subscribers. Mutations addressed to a
statement id or language that does not exist are no-ops: UI events can race
(e.g. removing a statement twice), so they are expected rather than errors.

Policies:
- labels and descriptions are single-valued per language (last write wins)
- aliases are a set per language keyed by (column_name, storage_type); a
  repeated insert is ignored and a language with no aliases left is removed
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from schemamapper.core.id_gen import (
    REFERENCE_PREFIX,
    STATEMENT_PREFIX,
    generate_id,
)
from schemamapper.core.models import (
    ColumnMapping,
    ItemSnapshot,
    PropertyReference,
    PropertyValueMap,
    ReferenceMapping,
    SchemaSnapshot,
    StatementMapping,
    StatementRank,
    TermsSnapshot,
    ValueMapping,
    normalize_language,
)

logger = logging.getLogger(__name__)

DocumentListener = Callable[["SchemaDocument"], None]


def build_statement(
    property: PropertyReference,
    value: ValueMapping,
    rank: StatementRank = StatementRank.NORMAL,
    qualifiers: Optional[list[PropertyValueMap]] = None,
    references: Optional[list[ReferenceMapping]] = None,
) -> StatementMapping:
    """Create a statement with a freshly allocated id."""
    return StatementMapping(
        id=generate_id(STATEMENT_PREFIX),
        property=property,
        value=value,
        rank=rank,
        qualifiers=list(qualifiers or []),
        references=list(references or []),
    )


def build_reference(snaks: Optional[list[PropertyValueMap]] = None) -> ReferenceMapping:
    return ReferenceMapping(id=generate_id(REFERENCE_PREFIX), snaks=list(snaks or []))


class SchemaDocument:
    """Mutable schema mapping with dirty tracking and change notification."""

    def __init__(
        self,
        project_id: Optional[str] = None,
        name: str = "",
        knowledge_base: str = "",
        schema_id: Optional[str] = None,
    ):
        self._listeners: list[DocumentListener] = []
        self._clear()
        self.project_id = project_id
        self.name = name
        self.knowledge_base = knowledge_base
        self.schema_id = schema_id

    def _clear(self) -> None:
        self.schema_id: Optional[str] = None
        self.project_id: Optional[str] = None
        self.name = ""
        self.knowledge_base = ""
        self.item_id: Optional[str] = None
        self.labels: dict[str, ColumnMapping] = {}
        self.descriptions: dict[str, ColumnMapping] = {}
        self.aliases: dict[str, list[ColumnMapping]] = {}
        self.statements: list[StatementMapping] = []
        self.created_at: Optional[datetime] = None
        self.updated_at: Optional[datetime] = None
        self.is_dirty = False
        self.is_saving = False
        self.last_saved: Optional[datetime] = None

    # --- observers ---

    def subscribe(self, listener: DocumentListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: DocumentListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _touch(self) -> None:
        self.is_dirty = True
        self._notify()

    # --- schema metadata ---

    def update_schema_name(self, name: str) -> None:
        self.name = name
        self._touch()

    def set_knowledge_base(self, knowledge_base: str) -> None:
        self.knowledge_base = knowledge_base
        self._touch()

    def set_item_id(self, item_id: Optional[str]) -> None:
        self.item_id = item_id or None
        self._touch()

    # --- terms ---

    def add_label_mapping(self, language: str, mapping: ColumnMapping) -> None:
        lang = normalize_language(language)
        if lang is None:
            return
        self.labels[lang] = mapping.model_copy()
        self._touch()

    def add_description_mapping(self, language: str, mapping: ColumnMapping) -> None:
        lang = normalize_language(language)
        if lang is None:
            return
        self.descriptions[lang] = mapping.model_copy()
        self._touch()

    def add_alias_mapping(self, language: str, mapping: ColumnMapping) -> None:
        lang = normalize_language(language)
        if lang is None:
            return
        existing = self.aliases.get(lang, [])
        if any(alias.key() == mapping.key() for alias in existing):
            return
        self.aliases[lang] = existing + [mapping.model_copy()]
        self._touch()

    def remove_label_mapping(self, language: str) -> None:
        lang = normalize_language(language)
        if lang in self.labels:
            del self.labels[lang]
            self._touch()

    def remove_description_mapping(self, language: str) -> None:
        lang = normalize_language(language)
        if lang in self.descriptions:
            del self.descriptions[lang]
            self._touch()

    def remove_alias_mapping(self, language: str, mapping: ColumnMapping) -> None:
        lang = normalize_language(language)
        existing = self.aliases.get(lang)
        if not existing:
            return
        for index, alias in enumerate(existing):
            if alias.key() == mapping.key():
                del existing[index]
                break
        else:
            return

        if not existing:
            del self.aliases[lang]
        self._touch()

    def get_aliases(self, language: str) -> list[ColumnMapping]:
        return list(self.aliases.get(normalize_language(language), []))

    # --- statements ---

    def _find_statement(self, statement_id: str) -> Optional[int]:
        for index, statement in enumerate(self.statements):
            if statement.id == statement_id:
                return index
        return None

    def get_statement(self, statement_id: str) -> Optional[StatementMapping]:
        index = self._find_statement(statement_id)
        return None if index is None else self.statements[index]

    def add_statement(
        self,
        property: PropertyReference,
        value: ValueMapping,
        rank: StatementRank = StatementRank.NORMAL,
        qualifiers: Optional[list[PropertyValueMap]] = None,
        references: Optional[list[ReferenceMapping]] = None,
    ) -> str:
        """Append a new statement and return its id."""
        statement = build_statement(property, value, rank, qualifiers, references)
        self.statements.append(statement)
        self._touch()
        return statement.id

    def remove_statement(self, statement_id: str) -> None:
        index = self._find_statement(statement_id)
        if index is None:
            return
        del self.statements[index]
        self._touch()

    def update_statement_rank(self, statement_id: str, rank: StatementRank) -> None:
        statement = self.get_statement(statement_id)
        if statement is None:
            return
        statement.rank = rank
        self._touch()

    def update_statement_value(self, statement_id: str, value: ValueMapping) -> None:
        statement = self.get_statement(statement_id)
        if statement is None:
            return
        statement.value = value
        self._touch()

    def update_statement_qualifiers(
        self, statement_id: str, qualifiers: list[PropertyValueMap]
    ) -> None:
        statement = self.get_statement(statement_id)
        if statement is None:
            return
        statement.qualifiers = list(qualifiers)
        self._touch()

    def add_qualifier_to_statement(self, statement_id: str, qualifier: PropertyValueMap) -> None:
        statement = self.get_statement(statement_id)
        if statement is None:
            return
        statement.qualifiers.append(qualifier)
        self._touch()

    def remove_qualifier_from_statement(self, statement_id: str, qualifier_index: int) -> None:
        statement = self.get_statement(statement_id)
        if statement is None or not 0 <= qualifier_index < len(statement.qualifiers):
            return
        del statement.qualifiers[qualifier_index]
        self._touch()

    def add_reference_to_statement(self, statement_id: str, reference: ReferenceMapping) -> None:
        statement = self.get_statement(statement_id)
        if statement is None:
            return
        statement.references.append(reference)
        self._touch()

    def remove_reference_from_statement(self, statement_id: str, reference_id: str) -> None:
        statement = self.get_statement(statement_id)
        if statement is None:
            return
        remaining = [r for r in statement.references if r.id != reference_id]
        if len(remaining) == len(statement.references):
            return
        statement.references = remaining
        self._touch()

    def add_snak_to_reference(
        self, statement_id: str, reference_id: str, snak: PropertyValueMap
    ) -> None:
        statement = self.get_statement(statement_id)
        if statement is None:
            return
        for reference in statement.references:
            if reference.id == reference_id:
                reference.snaks.append(snak)
                self._touch()
                return

    def update_statement(
        self,
        statement_id: str,
        property: PropertyReference,
        value: ValueMapping,
        rank: StatementRank,
        qualifiers: Optional[list[PropertyValueMap]] = None,
        references: Optional[list[ReferenceMapping]] = None,
    ) -> None:
        """Replace a statement's content, keeping its id and position."""
        index = self._find_statement(statement_id)
        if index is None:
            return
        self.statements[index] = StatementMapping(
            id=statement_id,
            property=property,
            value=value,
            rank=rank,
            qualifiers=list(qualifiers or []),
            references=list(references or []),
        )
        self._touch()

    @property
    def has_statements(self) -> bool:
        return bool(self.statements)

    @property
    def statement_count(self) -> int:
        return len(self.statements)

    # --- save lifecycle ---

    def has_mappings(self) -> bool:
        return bool(self.labels or self.descriptions or self.aliases or self.statements)

    @property
    def can_save(self) -> bool:
        return (
            self.project_id is not None
            and self.is_dirty
            and not self.is_saving
            and self.has_mappings()
        )

    def set_saving(self, saving: bool) -> None:
        self.is_saving = saving

    def mark_as_saved(self) -> None:
        now = datetime.now(timezone.utc)
        self.is_dirty = False
        self.last_saved = now
        self.updated_at = now

    def reset(self) -> None:
        """Discard everything and return to a blank, clean document."""
        self._clear()
        self._notify()

    # --- snapshots ---

    def snapshot(self) -> SchemaSnapshot:
        """Plain structural copy for the persistence layer."""
        return SchemaSnapshot(
            schema_id=self.schema_id,
            project_id=self.project_id,
            name=self.name,
            knowledge_base=self.knowledge_base,
            item=ItemSnapshot(
                id=self.item_id,
                terms=TermsSnapshot(
                    labels={k: v.model_copy() for k, v in self.labels.items()},
                    descriptions={k: v.model_copy() for k, v in self.descriptions.items()},
                    aliases={k: [a.model_copy() for a in v] for k, v in self.aliases.items()},
                ),
                statements=[s.model_copy(deep=True) for s in self.statements],
            ),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def load(self, snapshot: SchemaSnapshot) -> None:
        """Replace the document with a persisted snapshot; the result is clean."""
        self._clear()
        self.schema_id = snapshot.schema_id
        self.project_id = snapshot.project_id
        self.name = snapshot.name
        self.knowledge_base = snapshot.knowledge_base
        self.item_id = snapshot.item.id
        self.created_at = snapshot.created_at
        self.updated_at = snapshot.updated_at
        self.last_saved = snapshot.updated_at

        terms = snapshot.item.terms
        for lang, mapping in terms.labels.items():
            key = normalize_language(lang)
            if key:
                self.labels[key] = mapping.model_copy()
        for lang, mapping in terms.descriptions.items():
            key = normalize_language(lang)
            if key:
                self.descriptions[key] = mapping.model_copy()
        for lang, mappings in terms.aliases.items():
            key = normalize_language(lang)
            if not key:
                continue
            for mapping in mappings:
                if not any(a.key() == mapping.key() for a in self.aliases.get(key, [])):
                    self.aliases.setdefault(key, []).append(mapping.model_copy())

        seen: set[str] = set()
        for statement in snapshot.item.statements:
            statement = statement.model_copy(deep=True)
            if statement.id in seen:
                new_id = generate_id(STATEMENT_PREFIX)
                logger.warning(
                    f"Duplicate statement id '{statement.id}' in loaded schema, "
                    f"reassigned to '{new_id}'"
                )
                statement.id = new_id
            seen.add(statement.id)
            self.statements.append(statement)

        self.is_dirty = False
        self._notify()
