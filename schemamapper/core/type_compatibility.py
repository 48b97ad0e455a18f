"""Storage type -> schema value type compatibility.

The data layer reports column types as database type names (VARCHAR,
INTEGER, ...). A column can only feed a schema slot whose accepted value
types intersect the types its storage type converts to. Unknown storage
types are compatible with nothing.
"""

from typing import Iterable, Optional

from schemamapper.core.models import ColumnInfo, SchemaValueType

_TEXT_TYPES = (
    SchemaValueType.STRING,
    SchemaValueType.URL,
    SchemaValueType.EXTERNAL_ID,
    SchemaValueType.MONOLINGUAL_TEXT,
)
_LONG_TEXT_TYPES = (SchemaValueType.STRING, SchemaValueType.MONOLINGUAL_TEXT)
_NUMERIC_TYPES = (SchemaValueType.QUANTITY,)
_TEMPORAL_TYPES = (SchemaValueType.TIME,)

# Ordered: the first entry is the preferred value type for a drop.
COMPATIBILITY_TABLE: dict[str, tuple[SchemaValueType, ...]] = {
    "VARCHAR": _TEXT_TYPES,
    "STRING": _TEXT_TYPES,
    "CHAR": _TEXT_TYPES,
    "TEXT": _LONG_TEXT_TYPES,
    "INTEGER": _NUMERIC_TYPES,
    "DECIMAL": _NUMERIC_TYPES,
    "NUMERIC": _NUMERIC_TYPES,
    "FLOAT": _NUMERIC_TYPES,
    "DOUBLE": _NUMERIC_TYPES,
    "DATE": _TEMPORAL_TYPES,
    "DATETIME": _TEMPORAL_TYPES,
    "TIMESTAMP": _TEMPORAL_TYPES,
    "BOOLEAN": (),  # must be transformed upstream before mapping
    "JSON": (SchemaValueType.STRING,),
    "ARRAY": (SchemaValueType.STRING,),
}

TEXT_STORAGE_TYPES = frozenset({"VARCHAR", "TEXT", "STRING", "CHAR"})


def _normalize(storage_type: Optional[str]) -> str:
    return (storage_type or "").strip().upper()


def compatible_types(storage_type: Optional[str]) -> frozenset[SchemaValueType]:
    """Schema value types a column of ``storage_type`` may be mapped to."""
    return frozenset(COMPATIBILITY_TABLE.get(_normalize(storage_type), ()))


def is_compatible(
    storage_type: Optional[str],
    accepted_types: Iterable[SchemaValueType],
) -> bool:
    return not compatible_types(storage_type).isdisjoint(accepted_types)


def preferred_value_type(
    storage_type: Optional[str],
    accepted_types: Iterable[SchemaValueType],
) -> Optional[SchemaValueType]:
    """First compatible type, in table order, that the target accepts."""
    accepted = set(accepted_types)
    for value_type in COMPATIBILITY_TABLE.get(_normalize(storage_type), ()):
        if value_type in accepted:
            return value_type
    return None


def is_text_column(column: Optional[ColumnInfo]) -> bool:
    """True when the column can feed labels, descriptions and aliases as-is."""
    if column is None:
        return False
    return _normalize(column.storage_type) in TEXT_STORAGE_TYPES
