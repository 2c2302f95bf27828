"""
Field access for sharding keys and result conversion.

Callers' logical field names, physical column names and external (wire)
names frequently diverge, so every record type gets a declared ``FieldMap``
built once and cached. Declarations come from:

- dataclasses: ``field(metadata={"column": "user_id", "json": "userId"})``
- pydantic models: ``Field(alias="userId", json_schema_extra={"column": "user_id"})``
- any class: ``register_fields(cls, columns={...}, external_names={...})`` or a
  ``__shard_columns__`` class attribute mapping attribute -> column.

A lookup resolves, in order: the exact attribute name, a declared column, a
declared external name, then a case-insensitive match against the snake_case
form of the attribute (``UserID`` matches ``user_id``).
"""

from __future__ import annotations

import dataclasses
import re
import threading
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from pydantic import BaseModel, ValidationError

from tableshard.errors import FieldNotFound, RecordConversionError

_CAMEL_WORD = re.compile(r"(.)([A-Z][a-z]+)")
_CAMEL_TAIL = re.compile(r"([a-z0-9])([A-Z])")

_registry_lock = threading.Lock()
_declared_columns: Dict[type, Dict[str, str]] = {}
_declared_external: Dict[type, Dict[str, str]] = {}


def to_snake_case(name: str) -> str:
    """Convert ``UserID``/``createdAt`` style names to ``user_id``/``created_at``."""
    partial = _CAMEL_WORD.sub(r"\1_\2", name)
    return _CAMEL_TAIL.sub(r"\1_\2", partial).lower()


def _fold(name: str) -> str:
    return to_snake_case(name).lower()


@dataclass(frozen=True)
class FieldMap:
    """
    Declared name table for one record type.

    ``columns`` and ``external_names`` map a declared name to the attribute
    holding the value; ``init_names`` maps an attribute to the keyword used
    when constructing an instance (the alias for pydantic models).
    """

    record_type: type
    attributes: Tuple[str, ...]
    columns: Dict[str, str] = field(default_factory=dict)
    external_names: Dict[str, str] = field(default_factory=dict)
    init_names: Dict[str, str] = field(default_factory=dict)

    def resolve(self, field_name: str) -> Optional[str]:
        if field_name in self.attributes:
            return field_name
        if field_name in self.columns:
            return self.columns[field_name]
        if field_name in self.external_names:
            return self.external_names[field_name]
        return _fold_match(field_name, self.attributes)

    def column_for(self, attribute: str) -> str:
        for column, attr in self.columns.items():
            if attr == attribute:
                return column
        return to_snake_case(attribute)

    def external_for(self, attribute: str) -> Optional[str]:
        for name, attr in self.external_names.items():
            if attr == attribute:
                return name
        return None


def _fold_match(field_name: str, candidates: Sequence[str]) -> Optional[str]:
    wanted_lower = field_name.lower()
    wanted_folded = _fold(field_name)
    for candidate in candidates:
        if candidate.lower() == wanted_lower or _fold(candidate) in (wanted_lower, wanted_folded):
            return candidate
    return None


def register_fields(
    record_type: type,
    columns: Optional[Mapping[str, str]] = None,
    external_names: Optional[Mapping[str, str]] = None,
) -> None:
    """
    Declare column and external names for ``record_type``.

    Both mappings are keyed by attribute name. Explicit declarations override
    whatever is derived from dataclass metadata or pydantic field info.
    """
    with _registry_lock:
        if columns:
            _declared_columns.setdefault(record_type, {}).update(columns)
        if external_names:
            _declared_external.setdefault(record_type, {}).update(external_names)
        field_map_for.cache_clear()


def _annotated_attributes(record_type: type) -> List[str]:
    names: List[str] = []
    for klass in reversed(record_type.__mro__):
        for name in getattr(klass, "__annotations__", {}):
            if not name.startswith("_") and name not in names:
                names.append(name)
    return names


@lru_cache(maxsize=256)
def field_map_for(record_type: type) -> FieldMap:
    """Build (once per type) the declared field map for ``record_type``."""
    attributes: List[str] = []
    columns: Dict[str, str] = {}
    external: Dict[str, str] = {}
    init_names: Dict[str, str] = {}

    if isinstance(record_type, type) and issubclass(record_type, BaseModel):
        for name, info in record_type.model_fields.items():
            attributes.append(name)
            init_names[name] = info.alias or name
            if info.alias:
                external[info.alias] = name
            extra = info.json_schema_extra
            if isinstance(extra, dict) and extra.get("column"):
                columns[str(extra["column"])] = name
    elif dataclasses.is_dataclass(record_type):
        for dc_field in dataclasses.fields(record_type):
            attributes.append(dc_field.name)
            if dc_field.init:
                init_names[dc_field.name] = dc_field.name
            if dc_field.metadata.get("column"):
                columns[dc_field.metadata["column"]] = dc_field.name
            if dc_field.metadata.get("json"):
                external[dc_field.metadata["json"]] = dc_field.name
    else:
        attributes = _annotated_attributes(record_type)
        init_names = {name: name for name in attributes}

    for attr, column in getattr(record_type, "__shard_columns__", {}).items():
        columns[column] = attr
    with _registry_lock:
        for klass in reversed(record_type.__mro__):
            for attr, column in _declared_columns.get(klass, {}).items():
                columns[column] = attr
            for attr, name in _declared_external.get(klass, {}).items():
                external[name] = attr

    for attr in list(columns.values()) + list(external.values()):
        if attr not in attributes:
            attributes.append(attr)
            init_names.setdefault(attr, attr)

    return FieldMap(
        record_type=record_type,
        attributes=tuple(attributes),
        columns=columns,
        external_names=external,
        init_names=init_names,
    )


def extract_value(record: Any, field_name: str) -> Any:
    """
    Return the value of logical field ``field_name`` on ``record``.

    Raises
    ------
    FieldNotFound
        If no layer of the resolution order matches.
    """
    if record is None:
        raise FieldNotFound(field_name)

    if isinstance(record, Mapping):
        if field_name in record:
            return record[field_name]
        key = _fold_match(field_name, [k for k in record.keys() if isinstance(k, str)])
        if key is None:
            raise FieldNotFound(field_name, "mapping")
        return record[key]

    fmap = field_map_for(type(record))
    attribute = fmap.resolve(field_name)
    if attribute is None:
        # Undeclared instance attributes on plain objects.
        instance_attrs = list(getattr(record, "__dict__", {}).keys())
        if field_name in instance_attrs:
            attribute = field_name
        else:
            attribute = _fold_match(field_name, instance_attrs)
    if attribute is None or not hasattr(record, attribute):
        raise FieldNotFound(field_name, type(record).__name__)
    return getattr(record, attribute)


def record_to_row(record: Any) -> Dict[str, Any]:
    """Build the column-keyed row used to insert ``record`` into a shard table."""
    if isinstance(record, Mapping):
        return dict(record)
    fmap = field_map_for(type(record))
    attributes = list(fmap.attributes)
    if not attributes:
        attributes = [k for k in vars(record) if not k.startswith("_")]
    return {fmap.column_for(attr): getattr(record, attr) for attr in attributes if hasattr(record, attr)}


def _row_value(row: Mapping[str, Any], lowered: Mapping[str, str], fmap: FieldMap, attribute: str) -> Tuple[bool, Any]:
    candidates = [fmap.column_for(attribute), attribute, fmap.external_for(attribute), to_snake_case(attribute)]
    for candidate in candidates:
        if candidate is None:
            continue
        if candidate in row:
            return True, row[candidate]
        if candidate.lower() in lowered:
            return True, row[lowered[candidate.lower()]]
    return False, None


def convert_records(rows: Sequence[Mapping[str, Any]], record_type: Optional[Type[Any]] = None) -> List[Any]:
    """
    Convert ResultRecords into ``record_type`` instances.

    ``None`` or a ``dict`` type keeps plain dicts. Pydantic models and
    dataclasses (or registered classes) are built through their field map,
    matching row columns by declared column, attribute, external name and
    snake_case form.
    """
    if record_type is None or (isinstance(record_type, type) and issubclass(record_type, dict)):
        return [dict(row) for row in rows]

    fmap = field_map_for(record_type)
    converted: List[Any] = []
    for row in rows:
        lowered = {key.lower(): key for key in row.keys()}
        kwargs: Dict[str, Any] = {}
        for attribute, init_name in fmap.init_names.items():
            found, value = _row_value(row, lowered, fmap, attribute)
            if found:
                kwargs[init_name] = value
        try:
            if issubclass(record_type, BaseModel):
                converted.append(record_type.model_validate(kwargs))
            else:
                converted.append(record_type(**kwargs))
        except (ValidationError, TypeError) as exc:
            raise RecordConversionError(
                f"cannot convert row to {record_type.__name__}: {exc}"
            ) from exc
    return converted


__all__ = [
    "FieldMap",
    "convert_records",
    "extract_value",
    "field_map_for",
    "record_to_row",
    "register_fields",
    "to_snake_case",
]
