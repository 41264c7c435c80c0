"""
Field descriptors - the declared type and structure of every column a
drill-down table exposes.

Descriptors are loaded once from the stored table schema and never change
while queries are served.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from drilldown.core.enums import FieldType
from drilldown.core.errors import SchemaError


@dataclass(frozen=True)
class FieldDescriptor:
    """Declared type and structural flags of a single field."""
    type: FieldType
    is_list: bool = False
    is_hierarchy: bool = False
    delimiter: str = ";"
    allowed_values: Tuple[str, ...] = ()
    hidden: bool = False
    other_params: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldDescriptor":
        """Build a descriptor from its stored schema form."""
        if "type" not in data:
            raise SchemaError(f"Field description has no type: {data!r}")
        known = {"type", "isList", "delimiter", "hierarchy", "allowedValues", "hidden"}
        is_list = bool(data.get("isList", False))
        return cls(
            type=FieldType.parse(data["type"]),
            is_list=is_list,
            is_hierarchy=bool(data.get("hierarchy", False)),
            delimiter=data.get("delimiter") or ";",
            allowed_values=tuple(data.get("allowedValues") or ()),
            hidden=bool(data.get("hidden", False)),
            other_params={k: v for k, v in data.items() if k not in known},
        )

    @property
    def is_filterable(self) -> bool:
        return not self.hidden and self.type.is_filterable


@dataclass(frozen=True)
class TableSchema:
    """All field descriptors declared for one drill-down table."""
    table_name: str
    fields: Dict[str, FieldDescriptor] = field(default_factory=dict, hash=False)

    @classmethod
    def from_json(cls, table_name: str, text: str) -> "TableSchema":
        try:
            raw = json.loads(text)
        except (TypeError, ValueError) as exc:
            raise SchemaError(f"Unreadable schema for table {table_name!r}") from exc
        if not isinstance(raw, dict):
            raise SchemaError(f"Schema for table {table_name!r} must be an object")
        return cls(
            table_name=table_name,
            fields={name: FieldDescriptor.from_dict(desc) for name, desc in raw.items()},
        )

    def get_field(self, name: str) -> FieldDescriptor:
        try:
            return self.fields[name]
        except KeyError:
            raise SchemaError(f"Table {self.table_name!r} has no field {name!r}") from None

    def has_file_fields(self) -> bool:
        return any(d.type == FieldType.file for d in self.fields.values())
