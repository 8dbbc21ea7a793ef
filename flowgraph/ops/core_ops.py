# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Core Operations

Short forms for the most used operations. Each returns output 0 of the
new operation and builds into the current graph unless `graph` is given.
A name of None generates a unique "<OpType>_<n>" name.

Example:
    from flowgraph.graph_context import with_new_graph
    from flowgraph.ops import core_ops as ops

    with with_new_graph():
        x = ops.placeholder("x", "float")
        y = ops.placeholder("y", "float")
        ops.add(x, y, name="z")
"""

from typing import Any, Optional, Sequence

from ..builder import build_op
from ..coercion import tensorize, with_tensor
from ..core.graph import Graph, Output
from ..core.tensor import Tensor
from ..core.types import DataType, Shape


def make_binary_op(
    op_type: str,
    name: Optional[str],
    x: Output,
    y: Output,
    graph: Optional[Graph] = None,
) -> Output:
    """Build an operation with two inputs and no attributes to set."""
    return build_op(op_type, name, inputs=[x, y], graph=graph)


def const_tensor(tensor: Tensor, name: Optional[str] = None, graph: Optional[Graph] = None) -> Output:
    """Constant holding a copy of `tensor`; the caller still owns `tensor`."""
    return build_op(
        "Const", name, attrs={"dtype": tensor.dtype, "value": tensor}, graph=graph
    )


def constant(
    value: Any,
    name: Optional[str] = None,
    dtype: Optional[DataType] = None,
    graph: Optional[Graph] = None,
) -> Output:
    """
    Constant from a Python or numpy value.

    The value is converted with tensorize() (floats become Float32, ints
    Int32); pass `dtype` to choose another type.
    """
    if isinstance(value, Tensor):
        return const_tensor(value, name, graph)
    # Sequences become one tensor here, not one tensor per element.
    if dtype is not None or isinstance(value, (list, tuple, dict)):
        tensor = Tensor.create(value, dtype)
    else:
        tensor = tensorize(value)
    with with_tensor(tensor):
        return const_tensor(tensor, name, graph)


def placeholder(
    name: Optional[str],
    dtype: Any,
    shape: Any = None,
    graph: Optional[Graph] = None,
) -> Output:
    """Placeholder that must be fed when a run depends on it."""
    return build_op(
        "Placeholder", name, attrs={"dtype": dtype, "shape": shape}, graph=graph
    )


def variable(
    name: Optional[str],
    dtype: Any,
    shape: Any = None,
    graph: Optional[Graph] = None,
) -> Output:
    """Variable with the given data type and shape (scalar when shape is None)."""
    if shape is None:
        shape = Shape.scalar()
    return build_op(
        "VariableV2", name, attrs={"dtype": dtype, "shape": shape}, graph=graph
    )


def assign(ref: Output, value: Output, name: Optional[str] = None, graph: Optional[Graph] = None) -> Output:
    """Assign a (first or new) value to a variable."""
    return make_binary_op("Assign", name, ref, value, graph)


def assign_add(ref: Output, value: Output, name: Optional[str] = None, graph: Optional[Graph] = None) -> Output:
    """Add a value to the current state of a variable."""
    return make_binary_op("AssignAdd", name, ref, value, graph)


def assign_sub(ref: Output, value: Output, name: Optional[str] = None, graph: Optional[Graph] = None) -> Output:
    """Subtract a value from the current state of a variable."""
    return make_binary_op("AssignSub", name, ref, value, graph)


def add(x: Output, y: Output, name: Optional[str] = None, graph: Optional[Graph] = None) -> Output:
    return make_binary_op("Add", name, x, y, graph)


def sub(x: Output, y: Output, name: Optional[str] = None, graph: Optional[Graph] = None) -> Output:
    return make_binary_op("Sub", name, x, y, graph)


def mul(x: Output, y: Output, name: Optional[str] = None, graph: Optional[Graph] = None) -> Output:
    return make_binary_op("Mul", name, x, y, graph)


def div(x: Output, y: Output, name: Optional[str] = None, graph: Optional[Graph] = None) -> Output:
    return make_binary_op("Div", name, x, y, graph)


def add_n(inputs: Sequence[Output], name: Optional[str] = None, graph: Optional[Graph] = None) -> Output:
    """Add all input tensors element-wise."""
    return build_op("AddN", name, inputs=[list(inputs)], graph=graph)


def cast(x: Output, dtype: Any, name: Optional[str] = None, graph: Optional[Graph] = None) -> Output:
    return build_op("Cast", name, inputs=[x], attrs={"DstT": dtype}, graph=graph)


def expand_dims(x: Output, dim: Output, name: Optional[str] = None, graph: Optional[Graph] = None) -> Output:
    return make_binary_op("ExpandDims", name, x, dim, graph)


def identity(x: Output, name: Optional[str] = None, graph: Optional[Graph] = None) -> Output:
    return build_op("Identity", name, inputs=[x], graph=graph)


def string_join(
    inputs: Sequence[Output],
    separator: str = "",
    name: Optional[str] = None,
    device: Optional[str] = None,
    graph: Optional[Graph] = None,
) -> Output:
    """Join string tensors element-wise with `separator`."""
    return build_op(
        "StringJoin",
        name,
        inputs=[list(inputs)],
        attrs={"separator": separator},
        device=device,
        graph=graph,
    )
