"""Shared test fixtures for SchemaMapper test suite."""

from typing import Iterable, Optional

import pytest

from schemamapper.core.models import (
    ColumnInfo,
    ColumnMapping,
    ColumnValue,
    DropTarget,
    PropertyReference,
    SchemaValueType,
    TargetKind,
)

TEXT_TYPES = frozenset({SchemaValueType.STRING, SchemaValueType.MONOLINGUAL_TEXT})


def make_column(
    name: str = "name",
    storage_type: str = "VARCHAR",
    nullable: bool = False,
    sample_values: Iterable[str] = ("Alice", "Bob"),
    unique_count: Optional[int] = None,
) -> ColumnInfo:
    """Helper to create dataset columns for testing."""
    return ColumnInfo(
        name=name,
        storage_type=storage_type,
        nullable=nullable,
        sample_values=tuple(sample_values),
        unique_count=unique_count,
    )


def make_target(
    target_kind: TargetKind = TargetKind.LABEL,
    path: Optional[str] = None,
    accepted_types: Iterable[SchemaValueType] = TEXT_TYPES,
    language: Optional[str] = "en",
    property_id: Optional[str] = None,
    is_required: bool = False,
) -> DropTarget:
    """Helper to create drop targets; term targets default to English."""
    if target_kind not in (TargetKind.LABEL, TargetKind.DESCRIPTION, TargetKind.ALIAS):
        language = None
    if path is None:
        if target_kind == TargetKind.LABEL:
            path = f"item.terms.labels.{language}"
        elif target_kind == TargetKind.DESCRIPTION:
            path = f"item.terms.descriptions.{language}"
        elif target_kind == TargetKind.ALIAS:
            path = f"item.terms.aliases.{language}"
        elif target_kind == TargetKind.STATEMENT:
            path = "item.statements[0].value"
        elif target_kind == TargetKind.QUALIFIER:
            path = "item.statements[0].qualifiers[0].value"
        else:
            path = "item.statements[0].references[0].snaks[0].value"
    return DropTarget(
        target_kind=target_kind,
        path=path,
        accepted_types=frozenset(accepted_types),
        language=language,
        property_id=property_id,
        is_required=is_required,
    )


def make_mapping(column_name: str = "name", storage_type: str = "VARCHAR") -> ColumnMapping:
    return ColumnMapping(column_name=column_name, storage_type=storage_type)


def make_value(
    column_name: str = "name",
    storage_type: str = "VARCHAR",
    data_type: SchemaValueType = SchemaValueType.STRING,
) -> ColumnValue:
    return ColumnValue(source=make_mapping(column_name, storage_type), data_type=data_type)


def make_property(property_id: str = "P31") -> PropertyReference:
    return PropertyReference(id=property_id, label="instance of", data_type="wikibase-item")


@pytest.fixture
def client():
    """API test client with a fresh app lifespan (and session registry) per test."""
    from fastapi.testclient import TestClient

    from schemamapper.main import app

    with TestClient(app) as test_client:
        yield test_client
