# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Graph (engine graph store)

Append-only computation graph: operations are added through an
OperationBuilder, are immutable once built, and are looked up by their
fully qualified name.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Union

from ..errors import (
    DuplicateNameError,
    GraphConstructionError,
    InvalidAttributeError,
    ReleasedResourceError,
    UnknownOperationError,
)
from .attr import AttrConversionError, attr_value, decode_attr, encode_attr
from .op_def import ArgDef, OpDef
from .types import AttrKind, AttrValue, DataType, Shape, dtype_to_string

GRAPH_DEF_VERSION = 1

_VALID_OP_NAME = re.compile(r"^[A-Za-z0-9.][A-Za-z0-9_.\-/]*$")


@dataclass(frozen=True)
class Output:
    """
    Symbolic handle to one output of an operation.

    Used as the input of other operations, and as a fetch or feed key.
    """

    op: "Operation"
    index: int = 0

    @property
    def dtype(self) -> DataType:
        return self.op._output_types[self.index]

    @property
    def shape(self) -> Shape:
        return self.op._output_shapes[self.index]

    @property
    def is_ref(self) -> bool:
        return self.op._output_refs[self.index]

    @property
    def name(self) -> str:
        return f"{self.op.name}:{self.index}"

    def __repr__(self) -> str:
        return (
            f"Output('{self.name}', op='{self.op.type}', "
            f"dtype={dtype_to_string(self.dtype)})"
        )


class Operation:
    """
    A named, typed node of the graph.

    Operations are created by OperationBuilder.build() and never change
    afterwards.
    """

    __slots__ = (
        "_graph",
        "_name",
        "_type",
        "_inputs",
        "_attrs",
        "_device",
        "_output_types",
        "_output_shapes",
        "_output_refs",
    )

    def __init__(
        self,
        graph: "Graph",
        name: str,
        op_type: str,
        inputs: tuple,
        attrs: dict[str, AttrValue],
        device: str,
        output_types: tuple,
        output_shapes: tuple,
        output_refs: tuple,
    ):
        self._graph = graph
        self._name = name
        self._type = op_type
        self._inputs = inputs
        self._attrs = MappingProxyType(dict(attrs))
        self._device = device
        self._output_types = output_types
        self._output_shapes = output_shapes
        self._output_refs = output_refs

    @property
    def graph(self) -> "Graph":
        return self._graph

    @property
    def name(self) -> str:
        return self._name

    @property
    def type(self) -> str:
        return self._type

    @property
    def device(self) -> str:
        return self._device

    @property
    def inputs(self) -> tuple:
        """Input groups in argument order: an Output, or a tuple of Outputs for list arguments."""
        return self._inputs

    def flat_inputs(self) -> list[Output]:
        """All input edges in order, with list arguments expanded."""
        flat = []
        for entry in self._inputs:
            if isinstance(entry, tuple):
                flat.extend(entry)
            else:
                flat.append(entry)
        return flat

    @property
    def attrs(self) -> Mapping[str, AttrValue]:
        return self._attrs

    def get_attr(self, name: str, default: Any = None) -> Any:
        """Get the raw value of an attribute."""
        if name not in self._attrs:
            return default
        return self._attrs[name].value

    def has_attr(self, name: str) -> bool:
        return name in self._attrs

    def num_outputs(self) -> int:
        return len(self._output_types)

    def output(self, index: int = 0) -> Output:
        if not 0 <= index < len(self._output_types):
            raise IndexError(
                f"Operation '{self._name}' has {len(self._output_types)} outputs, "
                f"index {index} is out of range"
            )
        return Output(self, index)

    def outputs(self) -> list[Output]:
        return [Output(self, i) for i in range(len(self._output_types))]

    def is_op(self, op_type: str) -> bool:
        return self._type == op_type

    def __repr__(self) -> str:
        return f"Operation(name='{self._name}', type='{self._type}')"


InputLike = Union[Output, Operation]


def _as_output(value: Any, op_name: str) -> Output:
    if isinstance(value, Output):
        return value
    if isinstance(value, Operation):
        return value.output(0)
    raise GraphConstructionError(
        f"inputs must be Output or Operation objects, got {type(value).__name__}",
        op_name=op_name,
    )


class OperationBuilder:
    """
    Builds one operation: attach inputs, set attributes and device, then build().

    Obtain builders from Graph.op_builder(). Unknown operation types fail
    immediately; all other checks happen in build().

    Example:
        x = graph.op_builder("Placeholder", "x").set_attr("dtype", DataType.Float32).build()
        z = (graph.op_builder("Add", "z")
             .add_input(x.output(0))
             .add_input(y.output(0))
             .build())
    """

    def __init__(self, graph: "Graph", op_type: str, name: str):
        self._graph = graph
        self._op_def = graph.get_op_def(op_type)
        self._name = name
        self._inputs: list = []
        self._attrs: dict[str, AttrValue] = {}
        self._device = ""
        self._built = False

    @property
    def op_def(self) -> OpDef:
        return self._op_def

    def add_input(self, value: InputLike) -> "OperationBuilder":
        self._inputs.append(_as_output(value, self._name))
        return self

    def add_input_list(self, values: Sequence[InputLike]) -> "OperationBuilder":
        self._inputs.append(tuple(_as_output(v, self._name) for v in values))
        return self

    def set_attr(self, name: str, value: Any) -> "OperationBuilder":
        """
        Set an attribute.

        The value is converted to the kind the schema declares for `name`
        (a str given for a `type` attribute is looked up as a data type name).
        """
        attr_def = self._op_def.get_attr(name)
        if attr_def is None:
            raise InvalidAttributeError(
                name,
                "not defined for this operation",
                op_name=self._name,
                op_type=self._op_def.name,
            )
        try:
            self._attrs[name] = attr_value(value, attr_def.type)
        except AttrConversionError as exc:
            raise InvalidAttributeError(
                name, str(exc), op_name=self._name, op_type=self._op_def.name
            ) from exc
        return self

    def set_device(self, device: str) -> "OperationBuilder":
        self._device = device or ""
        return self

    def build(self) -> Operation:
        """Validate and add the operation to the graph."""
        if self._built:
            raise GraphConstructionError(
                "builder was already used", op_name=self._name
            )
        graph = self._graph
        graph._check_open()

        if not _VALID_OP_NAME.match(self._name):
            raise GraphConstructionError(
                f"invalid operation name '{self._name}'",
                op_name=self._name,
                op_type=self._op_def.name,
                suggestions=["Names use letters, digits, '.', '_', '-' and '/'"],
            )
        if graph.operation(self._name) is not None:
            raise DuplicateNameError(self._name, self._op_def.name)

        attrs = dict(self._attrs)
        self._check_inputs(attrs)
        self._fill_defaults(attrs)
        self._check_constraints(attrs)
        output_types, output_shapes, output_refs = self._resolve_outputs(attrs)

        op = Operation(
            graph=graph,
            name=self._name,
            op_type=self._op_def.name,
            inputs=tuple(self._inputs),
            attrs=attrs,
            device=self._device,
            output_types=output_types,
            output_shapes=output_shapes,
            output_refs=output_refs,
        )
        graph._add_operation(op)
        self._built = True
        return op

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _fail(self, message: str) -> GraphConstructionError:
        return GraphConstructionError(
            message, op_name=self._name, op_type=self._op_def.name
        )

    def _infer_attr(self, attrs: dict, name: str, value: AttrValue) -> None:
        current = attrs.get(name)
        if current is not None and current.value != value.value:
            raise InvalidAttributeError(
                name,
                f"set to {current.value!r} but the inputs imply {value.value!r}",
                op_name=self._name,
                op_type=self._op_def.name,
            )
        attrs[name] = value

    def _check_inputs(self, attrs: dict) -> None:
        args = self._op_def.input_args
        if len(self._inputs) != len(args):
            raise self._fail(
                f"expected {len(args)} input(s) {[a.name for a in args]}, "
                f"got {len(self._inputs)}"
            )

        for arg, entry in zip(args, self._inputs):
            if arg.is_list != isinstance(entry, tuple):
                kind = "a list of inputs" if arg.is_list else "a single input"
                raise self._fail(f"argument '{arg.name}' takes {kind}")

            outputs = entry if isinstance(entry, tuple) else (entry,)
            for out in outputs:
                if out.op.graph is not self._graph:
                    raise self._fail(
                        f"input '{out.name}' of argument '{arg.name}' belongs to another graph"
                    )
                if arg.is_ref and not out.is_ref:
                    raise self._fail(
                        f"argument '{arg.name}' requires a reference input (e.g. a variable), "
                        f"got '{out.name}'"
                    )

            if arg.number_attr:
                self._infer_attr(
                    attrs, arg.number_attr, AttrValue(AttrKind.INT, len(outputs))
                )
            if arg.type_list_attr:
                self._infer_attr(
                    attrs,
                    arg.type_list_attr,
                    AttrValue(AttrKind.LIST_TYPE, [o.dtype for o in outputs]),
                )
            self._check_input_types(arg, outputs, attrs)

    def _check_input_types(self, arg: ArgDef, outputs: tuple, attrs: dict) -> None:
        if arg.type is not None:
            expected = arg.type
        elif arg.type_attr:
            if not outputs:
                return
            expected = outputs[0].dtype
            self._infer_attr(attrs, arg.type_attr, AttrValue(AttrKind.TYPE, expected))
        else:
            return

        for out in outputs:
            if out.dtype != expected:
                raise self._fail(
                    f"input '{out.name}' of argument '{arg.name}' has type "
                    f"{dtype_to_string(out.dtype)}, expected {dtype_to_string(expected)}"
                )

    def _fill_defaults(self, attrs: dict) -> None:
        for attr_def in self._op_def.attrs:
            if attr_def.name in attrs:
                continue
            if attr_def.default_value is None:
                raise InvalidAttributeError(
                    attr_def.name,
                    "required attribute is not set",
                    op_name=self._name,
                    op_type=self._op_def.name,
                )
            attrs[attr_def.name] = attr_def.default_value

    def _check_constraints(self, attrs: dict) -> None:
        for attr_def in self._op_def.attrs:
            value = attrs[attr_def.name]
            values = value.value if value.kind.is_list else [value.value]
            if attr_def.allowed_values:
                for item in values:
                    if item not in attr_def.allowed_values:
                        allowed = [
                            v.short_name if isinstance(v, DataType) else v
                            for v in attr_def.allowed_values
                        ]
                        shown = item.short_name if isinstance(item, DataType) else item
                        raise InvalidAttributeError(
                            attr_def.name,
                            f"value {shown!r} is not in {allowed}",
                            op_name=self._name,
                            op_type=self._op_def.name,
                        )
            if attr_def.has_minimum:
                measured = len(value.value) if value.kind.is_list else value.value
                if measured < attr_def.minimum:
                    raise InvalidAttributeError(
                        attr_def.name,
                        f"value {measured} is below the minimum {attr_def.minimum}",
                        op_name=self._name,
                        op_type=self._op_def.name,
                    )

        value, declared = attrs.get("value"), attrs.get("dtype")
        if (
            value is not None
            and declared is not None
            and value.kind == AttrKind.TENSOR
            and value.value.dtype != declared.value
        ):
            raise InvalidAttributeError(
                "dtype",
                f"{dtype_to_string(declared.value)} does not match the value tensor "
                f"({dtype_to_string(value.value.dtype)})",
                op_name=self._name,
                op_type=self._op_def.name,
            )

    def _resolve_outputs(self, attrs: dict) -> tuple:
        types: list[DataType] = []
        refs: list[bool] = []
        for arg in self._op_def.output_args:
            if arg.type_list_attr:
                arg_types = list(attrs[arg.type_list_attr].value)
            else:
                single = arg.type if arg.type is not None else attrs[arg.type_attr].value
                count = attrs[arg.number_attr].value if arg.number_attr else 1
                arg_types = [single] * count
            types.extend(arg_types)
            refs.extend([arg.is_ref] * len(arg_types))

        shapes = [Shape.unknown() for _ in types]
        if len(types) == 1:
            if "shape" in attrs and attrs["shape"].kind == AttrKind.SHAPE:
                shapes[0] = attrs["shape"].value
            elif "value" in attrs and attrs["value"].kind == AttrKind.TENSOR:
                shapes[0] = attrs["value"].value.shape
        return tuple(types), tuple(shapes), tuple(refs)


class Graph:
    """
    Append-only computation graph.

    Operation names are unique; adding a second operation with an existing
    name raises DuplicateNameError. Graphs are released with close() or a
    `with` block.

    Example:
        with Graph() as g:
            c = g.op_builder("Const", "c").set_attr("value", t).set_attr("dtype", t.dtype).build()
    """

    def __init__(self, name: str = "", op_defs: Optional[Mapping[str, OpDef]] = None):
        self.name = name
        self._op_defs = op_defs
        self._ops: dict[str, Operation] = {}
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the graph. Closing twice is a no-op."""
        self._closed = True
        self._ops.clear()

    def __enter__(self) -> "Graph":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise ReleasedResourceError("Graph")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @property
    def op_defs(self) -> Mapping[str, OpDef]:
        if self._op_defs is None:
            from ..ops.registry import get_op_def_map

            self._op_defs = get_op_def_map()
        return self._op_defs

    def get_op_def(self, op_type: str) -> OpDef:
        op_def = self.op_defs.get(op_type)
        if op_def is None:
            raise UnknownOperationError(op_type, sorted(self.op_defs))
        return op_def

    def op_builder(self, op_type: str, name: str) -> OperationBuilder:
        """Start building an operation of `op_type` named `name` (fully qualified)."""
        self._check_open()
        return OperationBuilder(self, op_type, name)

    def _add_operation(self, op: Operation) -> None:
        if op.name in self._ops:
            raise DuplicateNameError(op.name, op.type)
        self._ops[op.name] = op

    def operation(self, name: str) -> Optional[Operation]:
        """Get an operation by fully qualified name, or None."""
        self._check_open()
        return self._ops.get(name)

    def operations(self) -> list[Operation]:
        """All operations in insertion order."""
        self._check_open()
        return list(self._ops.values())

    def num_operations(self) -> int:
        return len(self._ops)

    def count_ops(self) -> dict[str, int]:
        """Count operations by type."""
        counts: dict[str, int] = {}
        for op in self._ops.values():
            counts[op.type] = counts.get(op.type, 0) + 1
        return counts

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_graph_def(self) -> bytes:
        """Serialize the graph to JSON bytes."""
        self._check_open()
        nodes = []
        for op in self._ops.values():
            inputs = []
            for entry in op.inputs:
                if isinstance(entry, tuple):
                    inputs.append([o.name for o in entry])
                else:
                    inputs.append(entry.name)
            nodes.append(
                {
                    "name": op.name,
                    "op": op.type,
                    "input": inputs,
                    "attr": {k: encode_attr(v) for k, v in op.attrs.items()},
                    "device": op.device,
                }
            )
        document = {"version": GRAPH_DEF_VERSION, "node": nodes}
        return json.dumps(document).encode("utf-8")

    def import_graph_def(self, data: Union[bytes, str], prefix: str = "") -> list[Operation]:
        """
        Add the operations of a serialized graph, optionally under a name prefix.

        Returns:
            The imported operations in document order.
        """
        self._check_open()
        try:
            document = json.loads(data)
            nodes = document["node"]
        except (ValueError, KeyError, TypeError) as exc:
            raise GraphConstructionError(f"malformed graph definition: {exc}") from exc

        prefix = prefix.strip("/")

        def qualify(name: str) -> str:
            return f"{prefix}/{name}" if prefix else name

        def resolve(ref: str) -> Output:
            op_name, _, index = ref.rpartition(":")
            op = self._ops.get(qualify(op_name))
            if op is None:
                raise GraphConstructionError(
                    f"graph definition references unknown input '{ref}'"
                )
            return op.output(int(index))

        imported = []
        try:
            for node in nodes:
                try:
                    builder = self.op_builder(node["op"], qualify(node["name"]))
                    for entry in node.get("input", []):
                        if isinstance(entry, list):
                            builder.add_input_list([resolve(r) for r in entry])
                        else:
                            builder.add_input(resolve(entry))
                    for attr_name, encoded in node.get("attr", {}).items():
                        builder.set_attr(attr_name, decode_attr(encoded))
                except (KeyError, IndexError, ValueError, TypeError) as exc:
                    raise GraphConstructionError(
                        f"malformed graph definition node: {exc}"
                    ) from exc
                builder.set_device(node.get("device", ""))
                imported.append(builder.build())
        except BaseException:
            # A failed import leaves the graph as it was.
            for op in imported:
                del self._ops[op.name]
            raise
        return imported

    def __len__(self) -> int:
        return len(self._ops)

    def __contains__(self, name: str) -> bool:
        return name in self._ops

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"operations={len(self._ops)}"
        return f"Graph(name='{self.name}', {state})"
