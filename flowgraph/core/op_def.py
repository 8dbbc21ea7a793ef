# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Operation Definitions

In-memory model of the operation schema document: one OpDef per operation
type with its input/output arguments and attribute definitions.

Document format (JSON):
    {"op": [{"name": "Add",
             "input_arg": [{"name": "x", "type_attr": "T"}, ...],
             "output_arg": [{"name": "z", "type_attr": "T"}],
             "attr": [{"name": "T", "type": "type",
                       "allowed_values": ["float", "double", "int32"]}]}]}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from ..errors import SchemaError
from .attr import AttrConversionError, decode_value
from .types import AttrKind, AttrValue, DataType, Shape, dtype


@dataclass(frozen=True)
class ArgDef:
    """An input or output argument of an operation."""

    name: str
    description: str = ""
    type: Optional[DataType] = None
    type_attr: str = ""
    number_attr: str = ""
    type_list_attr: str = ""
    is_ref: bool = False

    @property
    def is_list(self) -> bool:
        """True for variadic arguments (attached with add_input_list)."""
        return bool(self.number_attr or self.type_list_attr)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "type": self.type.short_name if self.type else None,
            "type_attr": self.type_attr,
            "number_attr": self.number_attr,
            "type_list_attr": self.type_list_attr,
            "is_ref": self.is_ref,
        }


@dataclass(frozen=True)
class AttrDef:
    """An attribute definition: kind, default and validity constraints."""

    name: str
    type: AttrKind
    description: str = ""
    default_value: Optional[AttrValue] = None
    has_minimum: bool = False
    minimum: int = 0
    allowed_values: tuple = ()

    def to_dict(self) -> dict[str, Any]:
        default = None
        if self.default_value is not None:
            default = self.default_value.value
            if isinstance(default, DataType):
                default = default.short_name
            elif isinstance(default, Shape):
                default = default.dims
        return {
            "name": self.name,
            "type": self.type.value,
            "description": self.description,
            "default_value": default,
            "has_minimum": self.has_minimum,
            "minimum": self.minimum,
            "allowed_values": [
                v.short_name if isinstance(v, DataType) else v
                for v in self.allowed_values
            ],
        }


@dataclass(frozen=True)
class OpDef:
    """Definition of one operation type."""

    name: str
    input_args: tuple[ArgDef, ...] = ()
    output_args: tuple[ArgDef, ...] = ()
    attrs: tuple[AttrDef, ...] = ()
    summary: str = ""
    description: str = ""
    is_stateful: bool = False
    _attr_index: dict = field(default_factory=dict, init=False, compare=False, repr=False)

    def __post_init__(self):
        self._attr_index.update({a.name: a for a in self.attrs})

    def get_attr(self, name: str) -> Optional[AttrDef]:
        return self._attr_index.get(name)

    @property
    def inferred_attrs(self) -> set[str]:
        """Attributes set from the inputs (type and count attributes)."""
        names = set()
        for arg in self.input_args:
            for attr_name in (arg.type_attr, arg.number_attr, arg.type_list_attr):
                if attr_name:
                    names.add(attr_name)
        return names

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "summary": self.summary,
            "description": self.description,
            "attributes": [a.to_dict() for a in self.attrs],
            "inputs": [a.to_dict() for a in self.input_args],
            "outputs": [a.to_dict() for a in self.output_args],
        }


def _parse_arg(data: dict, op_name: str) -> ArgDef:
    try:
        arg_type = dtype(data["type"]) if data.get("type") else None
        return ArgDef(
            name=data["name"],
            description=data.get("description", ""),
            type=arg_type,
            type_attr=data.get("type_attr", ""),
            number_attr=data.get("number_attr", ""),
            type_list_attr=data.get("type_list_attr", ""),
            is_ref=bool(data.get("is_ref", False)),
        )
    except KeyError as exc:
        raise SchemaError(f"bad argument in op '{op_name}': {exc}") from exc


def _parse_attr(data: dict, op_name: str) -> AttrDef:
    try:
        kind = AttrKind(data["type"])
        default = None
        if "default_value" in data:
            default = decode_value(kind, data["default_value"])
        allowed = tuple(data.get("allowed_values", ()))
        if kind == AttrKind.TYPE:
            allowed = tuple(dtype(v) for v in allowed)
        return AttrDef(
            name=data["name"],
            type=kind,
            description=data.get("description", ""),
            default_value=default,
            has_minimum="minimum" in data,
            minimum=int(data.get("minimum", 0)),
            allowed_values=allowed,
        )
    except (KeyError, ValueError, TypeError, AttrConversionError) as exc:
        raise SchemaError(f"bad attribute in op '{op_name}': {exc}") from exc


def parse_op_def(data: dict) -> OpDef:
    """Parse one entry of the op list."""
    if "name" not in data:
        raise SchemaError("op entry without a name")
    name = data["name"]
    return OpDef(
        name=name,
        input_args=tuple(_parse_arg(a, name) for a in data.get("input_arg", [])),
        output_args=tuple(_parse_arg(a, name) for a in data.get("output_arg", [])),
        attrs=tuple(_parse_attr(a, name) for a in data.get("attr", [])),
        summary=data.get("summary", ""),
        description=data.get("description", ""),
        is_stateful=bool(data.get("is_stateful", False)),
    )


def parse_op_list(text: str, path: Optional[str] = None) -> list[OpDef]:
    """
    Parse a JSON operation schema document.

    Raises:
        SchemaError: If the document is not valid JSON or an entry is malformed.
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"invalid JSON: {exc}", path=path) from exc

    if not isinstance(document, dict) or not isinstance(document.get("op"), list):
        raise SchemaError("document must be an object with an 'op' list", path=path)

    op_defs = [parse_op_def(entry) for entry in document["op"]]

    seen = set()
    for op_def in op_defs:
        if op_def.name in seen:
            raise SchemaError(f"op '{op_def.name}' is defined twice", path=path)
        seen.add(op_def.name)

    return op_defs
