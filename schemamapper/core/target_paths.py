"""Structural addresses of drop targets in the schema tree.

Path shapes:
    item.terms.labels.<lang>
    item.terms.descriptions.<lang>
    item.terms.aliases.<lang>
    item.statements[<i>].value
    item.statements[<i>].qualifiers[<j>].value
    item.statements[<i>].references[<j>].snaks[<k>].value
    item.statements.new              (slot for a statement not created yet)
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from schemamapper.core.models import DropTarget, SchemaValueType, TargetKind

_TERM_RE = re.compile(r"^item\.terms\.(labels|descriptions|aliases)\.([A-Za-z0-9-]+)")
_STATEMENT_RE = re.compile(r"^item\.statements\[(\d+)\]")
_QUALIFIER_RE = re.compile(r"\.qualifiers\[(\d+)\]")
_REFERENCE_RE = re.compile(r"\.references\[(\d+)\](?:\.snaks\[(\d+)\])?")

_TERM_KIND_BY_SECTION = {
    "labels": TargetKind.LABEL,
    "descriptions": TargetKind.DESCRIPTION,
    "aliases": TargetKind.ALIAS,
}


@dataclass(frozen=True)
class StatementAddress:
    """Indices addressed by a statement/qualifier/reference path."""
    statement_index: Optional[int]
    qualifier_index: Optional[int] = None
    reference_index: Optional[int] = None
    snak_index: Optional[int] = None


def label_path(language: str) -> str:
    return f"item.terms.labels.{language.lower()}"


def description_path(language: str) -> str:
    return f"item.terms.descriptions.{language.lower()}"


def alias_path(language: str) -> str:
    return f"item.terms.aliases.{language.lower()}"


def statement_path(index: int) -> str:
    return f"item.statements[{index}].value"


def qualifier_path(statement_index: int, qualifier_index: int) -> str:
    return f"item.statements[{statement_index}].qualifiers[{qualifier_index}].value"


def reference_path(statement_index: int, reference_index: int, snak_index: int = 0) -> str:
    return (
        f"item.statements[{statement_index}].references[{reference_index}]"
        f".snaks[{snak_index}].value"
    )


NEW_STATEMENT_PATH = "item.statements.new"


def infer_target_kind(path: str) -> Optional[TargetKind]:
    term = _TERM_RE.match(path)
    if term:
        return _TERM_KIND_BY_SECTION[term.group(1)]
    if path.startswith("item.statements"):
        if _QUALIFIER_RE.search(path):
            return TargetKind.QUALIFIER
        if _REFERENCE_RE.search(path):
            return TargetKind.REFERENCE
        return TargetKind.STATEMENT
    return None


def extract_language(path: str) -> Optional[str]:
    term = _TERM_RE.match(path)
    return term.group(2).lower() if term else None


def parse_statement_address(path: str) -> Optional[StatementAddress]:
    """Indices for statement-family paths; None for term paths."""
    if not path.startswith("item.statements"):
        return None
    statement = _STATEMENT_RE.match(path)
    if statement is None:
        return StatementAddress(statement_index=None)

    qualifier = _QUALIFIER_RE.search(path)
    reference = _REFERENCE_RE.search(path)
    return StatementAddress(
        statement_index=int(statement.group(1)),
        qualifier_index=int(qualifier.group(1)) if qualifier else None,
        reference_index=int(reference.group(1)) if reference else None,
        snak_index=int(reference.group(2)) if reference and reference.group(2) else None,
    )


def target_from_path(
    path: str,
    accepted_types: Iterable[SchemaValueType],
    target_kind: Optional[TargetKind] = None,
    language: Optional[str] = None,
    property_id: Optional[str] = None,
    is_required: bool = False,
) -> DropTarget:
    """Build a DropTarget, inferring kind and language from the path when omitted.

    Raises:
        ValueError: the kind cannot be inferred, or the fields do not fit the kind.
    """
    kind = target_kind or infer_target_kind(path)
    if kind is None:
        raise ValueError(f"Cannot infer target kind from path '{path}'")
    if language is None and kind in _TERM_KIND_BY_SECTION.values():
        language = extract_language(path)
    return DropTarget(
        target_kind=kind,
        path=path,
        accepted_types=frozenset(accepted_types),
        language=language,
        property_id=property_id,
        is_required=is_required,
    )
