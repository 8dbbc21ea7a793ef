# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Mathematical Operators

Implements math operators:
- Add, Sub, Mul, Div: Element-wise binary ops with broadcasting
- AddN: Sum of a list of tensors
- Neg, Square: Element-wise unary ops
- MatMul: Matrix multiplication
- Sum: Reduction over axes
- ArgMax: Index of the largest value along an axis
"""

from __future__ import annotations

from typing import Any, Dict, List, TYPE_CHECKING
import numpy as np

from ...errors import ExecutionError
from ..registry import KernelRegistry

if TYPE_CHECKING:
    from ..context import ExecutionContext


def _binary_inputs(ctx: "ExecutionContext", inputs: List[str], op_type: str):
    x = np.asarray(ctx.get_tensor(inputs[0]))
    y = np.asarray(ctx.get_tensor(inputs[1]))
    try:
        np.broadcast_shapes(x.shape, y.shape)
    except ValueError as exc:
        raise ExecutionError(
            f"incompatible shapes {list(x.shape)} and {list(y.shape)}",
            op_type=op_type,
            input_shapes=[list(x.shape), list(y.shape)],
        ) from exc
    return x, y


@KernelRegistry.register("Add")
def execute_add(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    """
    Element-wise addition with broadcasting.

    String tensors are concatenated element-wise.
    """
    x, y = _binary_inputs(ctx, inputs, "Add")
    result = np.add(x, y)
    if x.dtype == object:
        # Scalar object adds come back as bare bytes.
        result = np.asarray(result, dtype=object)
    ctx.set_tensor(outputs[0], result)


@KernelRegistry.register("Sub")
def execute_sub(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    x, y = _binary_inputs(ctx, inputs, "Sub")
    ctx.set_tensor(outputs[0], np.subtract(x, y))


@KernelRegistry.register("Mul")
def execute_mul(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    x, y = _binary_inputs(ctx, inputs, "Mul")
    ctx.set_tensor(outputs[0], np.multiply(x, y))


@KernelRegistry.register("Div")
def execute_div(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    """
    Element-wise division.

    Integer division truncates toward zero; integer division by zero fails.
    """
    x, y = _binary_inputs(ctx, inputs, "Div")
    if np.issubdtype(x.dtype, np.integer):
        if np.any(y == 0):
            raise ExecutionError("integer division by zero", op_type="Div")
        quotient = np.abs(x) // np.abs(y)
        result = (quotient * np.sign(x) * np.sign(y)).astype(x.dtype)
    else:
        with np.errstate(divide="ignore", invalid="ignore"):
            result = np.true_divide(x, y).astype(x.dtype)
    ctx.set_tensor(outputs[0], result)


@KernelRegistry.register("AddN")
def execute_add_n(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    """Sum of all inputs; every input has the same shape."""
    values = [np.asarray(ctx.get_tensor(name)) for name in inputs]
    shapes = {v.shape for v in values}
    if len(shapes) > 1:
        raise ExecutionError(
            "all inputs must have the same shape",
            op_type="AddN",
            input_shapes=[list(v.shape) for v in values],
        )
    result = values[0].copy()
    for value in values[1:]:
        result = result + value
    ctx.set_tensor(outputs[0], result)


@KernelRegistry.register("Neg")
def execute_neg(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    ctx.set_tensor(outputs[0], np.negative(ctx.get_tensor(inputs[0])))


@KernelRegistry.register("Square")
def execute_square(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    ctx.set_tensor(outputs[0], np.square(ctx.get_tensor(inputs[0])))


@KernelRegistry.register("MatMul")
def execute_matmul(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    """
    Matrix multiplication operator.

    C = MatMul(A, B) for rank-2 A and B, optionally transposing either
    operand first (transpose_a / transpose_b attributes).
    """
    a = np.asarray(ctx.get_tensor(inputs[0]))
    b = np.asarray(ctx.get_tensor(inputs[1]))
    if a.ndim != 2 or b.ndim != 2:
        raise ExecutionError(
            "MatMul requires rank-2 inputs",
            op_type="MatMul",
            input_shapes=[list(a.shape), list(b.shape)],
        )
    if attrs.get("transpose_a", False):
        a = a.T
    if attrs.get("transpose_b", False):
        b = b.T
    if a.shape[1] != b.shape[0]:
        raise ExecutionError(
            f"inner dimensions do not match: {a.shape[1]} vs {b.shape[0]}",
            op_type="MatMul",
            input_shapes=[list(a.shape), list(b.shape)],
        )
    ctx.set_tensor(outputs[0], np.matmul(a, b))


@KernelRegistry.register("Sum")
def execute_sum(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    """
    Sum reduction.

    Reduces `input` over the axes in `reduction_indices` (scalar or vector);
    keep_dims retains reduced dimensions with size 1.
    """
    x = np.asarray(ctx.get_tensor(inputs[0]))
    axes = [int(a) for a in np.asarray(ctx.get_tensor(inputs[1])).reshape(-1)]
    for axis in axes:
        if not -x.ndim <= axis < max(x.ndim, 1):
            raise ExecutionError(
                f"reduction axis {axis} is out of range for rank {x.ndim}",
                op_type="Sum",
                input_shapes=[list(x.shape)],
            )
    axis = tuple(a % x.ndim for a in axes) if x.ndim else None
    result = np.sum(x, axis=axis, keepdims=bool(attrs.get("keep_dims", False)))
    ctx.set_tensor(outputs[0], np.asarray(result, dtype=x.dtype))


@KernelRegistry.register("ArgMax")
def execute_argmax(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    x = np.asarray(ctx.get_tensor(inputs[0]))
    if x.ndim == 0:
        raise ExecutionError("ArgMax requires an input of rank >= 1", op_type="ArgMax")
    axis = int(np.asarray(ctx.get_tensor(inputs[1])).reshape(-1)[0])
    if not -x.ndim <= axis < x.ndim:
        raise ExecutionError(
            f"axis {axis} is out of range for rank {x.ndim}",
            op_type="ArgMax",
            input_shapes=[list(x.shape)],
        )
    result = np.argmax(x, axis=axis)
    ctx.set_tensor(
        outputs[0], np.asarray(result, dtype=attrs["output_type"].numpy_dtype)
    )
