# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Operation Builder

One call to add an operation to a graph: resolves the graph and the
scoped name, attaches inputs in schema order, converts attributes to the
kinds the schema declares, and returns the new operation's output.

Example:
    from flowgraph.builder import build_op
    from flowgraph.core import DataType

    x = build_op("Placeholder", "x", attrs={"dtype": DataType.Float32})
    y = build_op("Placeholder", "y", attrs={"dtype": "float"})
    z = build_op("Add", "z", inputs=[x, y])
"""

import threading
import weakref
from collections.abc import Mapping, Sequence
from typing import Any, Optional, Union

from .core.graph import Graph, Operation, OperationBuilder, Output
from .errors import GraphConstructionError
from .graph_context import resolve_graph
from .observability import Verbosity, get_logger
from .scope import make_scoped_op_name, resolve_op_name

_name_counters: "weakref.WeakKeyDictionary[Graph, dict[str, int]]" = (
    weakref.WeakKeyDictionary()
)
_name_lock = threading.Lock()


def unique_op_name(graph: Graph, op_type: str) -> str:
    """
    Generate an unused short name "<OpType>_<n>" for the current scope.

    The returned name is not yet scoped; pass it to make_scoped_op_name().
    """
    with _name_lock:
        counters = _name_counters.setdefault(graph, {})
        n = counters.get(op_type, 0)
        while True:
            candidate = f"{op_type}_{n}"
            n += 1
            if make_scoped_op_name(candidate) not in graph:
                counters[op_type] = n
                return candidate


def get_op_builder(graph: Optional[Graph], op_type: str, name: str) -> OperationBuilder:
    """Get a low-level builder for an operation named `name` in the current scope."""
    return resolve_graph(graph).op_builder(op_type, make_scoped_op_name(name))


def get_op_by_name(name: str, graph: Optional[Graph] = None) -> Optional[Operation]:
    """Look up an operation by its short name in the current scope (None if absent)."""
    return resolve_graph(graph).operation(resolve_op_name(name))


def has_node(name: str, graph: Optional[Graph] = None) -> bool:
    """Check whether an operation with this short name exists in the current scope."""
    return get_op_by_name(name, graph) is not None


def _attach_inputs(builder: OperationBuilder, inputs: Sequence[Any]) -> None:
    args = builder.op_def.input_args
    if len(inputs) != len(args):
        raise GraphConstructionError(
            f"'{builder.op_def.name}' takes {len(args)} input(s) "
            f"{[a.name for a in args]}, got {len(inputs)}",
            op_type=builder.op_def.name,
        )
    for arg, value in zip(args, inputs):
        if arg.is_list:
            if isinstance(value, (Output, Operation)) or not isinstance(value, Sequence):
                raise GraphConstructionError(
                    f"argument '{arg.name}' of '{builder.op_def.name}' takes a list of inputs",
                    op_type=builder.op_def.name,
                )
            builder.add_input_list(list(value))
        else:
            builder.add_input(value)


def build_op(
    op_type: str,
    name: Optional[str] = None,
    inputs: Sequence[Any] = (),
    attrs: Optional[Mapping[str, Any]] = None,
    device: Optional[str] = None,
    graph: Optional[Graph] = None,
    all_outputs: bool = False,
) -> Union[Output, Operation, list[Output]]:
    """
    Add an operation to a graph.

    Args:
        op_type: Operation type, as named in the operation schema.
        name: Short name, qualified with the current scope. A unique
            "<OpType>_<n>" name is generated when None.
        inputs: One entry per input argument; list arguments take a list.
        attrs: Attribute values. None values are left unset (schema defaults
            apply). A str given for a type attribute names a data type.
        device: Optional device hint, e.g. "/cpu:0".
        graph: Destination graph (default: the current graph).
        all_outputs: Return every output instead of the first one.

    Returns:
        Output 0 of the new operation; the Operation itself when it has no
        outputs; the list of all outputs when all_outputs is set.

    Raises:
        NoDefaultGraphError: If no graph is given and none is current.
        UnknownOperationError: If op_type is not in the schema.
        DuplicateNameError: If the scoped name is already used.
        InvalidAttributeError: If an attribute is missing or malformed.
    """
    graph = resolve_graph(graph)
    if name is None:
        name = unique_op_name(graph, op_type)

    builder = get_op_builder(graph, op_type, name)
    _attach_inputs(builder, inputs)
    for attr_name, value in (attrs or {}).items():
        if value is not None:
            builder.set_attr(attr_name, value)
    if device:
        builder.set_device(device)

    op = builder.build()
    logger = get_logger()
    if logger.enabled_for(Verbosity.DEBUG):
        logger.debug(
            f"Built {op_type} '{op.name}'",
            component="builder",
            graph=graph.name or None,
            operation=op.name,
        )

    if all_outputs:
        return op.outputs()
    if op.num_outputs() == 0:
        return op
    return op.output(0)
