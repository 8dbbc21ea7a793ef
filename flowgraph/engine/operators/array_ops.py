# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Array Operators

Implements source and shape operators:
- Const: Emit the tensor stored in the "value" attribute
- Placeholder: Emit the fed value (always fed; checked before the run)
- PlaceholderWithDefault: Emit the input unless the output is fed
- Identity / NoOp: Pass-through and no-op
- Cast: Convert element type
- ExpandDims, Reshape, Shape, Fill: Shape manipulation
"""

from __future__ import annotations

from typing import Any, Dict, List, TYPE_CHECKING
import numpy as np

from ...errors import ExecutionError
from ..registry import KernelRegistry

if TYPE_CHECKING:
    from ..context import ExecutionContext


def _axis(value: np.ndarray, rank: int, op_type: str) -> int:
    """Normalize a scalar axis tensor against a rank (negative axes count from the end)."""
    axis = int(np.asarray(value).reshape(-1)[0])
    if not -rank <= axis < rank:
        raise ExecutionError(
            f"axis {axis} is out of range for rank {rank}", op_type=op_type
        )
    return axis % rank if rank else 0


@KernelRegistry.register("Const")
def execute_const(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    ctx.set_tensor(outputs[0], attrs["value"].numpy())


@KernelRegistry.register("Placeholder")
def execute_placeholder(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    # Fed outputs are never executed; reaching this kernel means no feed.
    raise ExecutionError(
        f"placeholder '{outputs[0]}' must be fed", op_type="Placeholder"
    )


@KernelRegistry.register("PlaceholderWithDefault")
@KernelRegistry.register("Identity")
def execute_identity(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    ctx.set_tensor(outputs[0], ctx.get_tensor(inputs[0]))


@KernelRegistry.register("NoOp")
def execute_noop(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    """Does nothing; used as a target to group dependencies."""


@KernelRegistry.register("Cast")
def execute_cast(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    """
    Cast operator.

    y = Cast(x) with the element type given by the DstT attribute.
    Float to integer casts truncate toward zero.
    """
    x = ctx.get_tensor(inputs[0])
    dst = attrs["DstT"].numpy_dtype
    ctx.set_tensor(outputs[0], np.asarray(x).astype(dst))


@KernelRegistry.register("ExpandDims")
def execute_expand_dims(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    """
    ExpandDims operator.

    Inserts a dimension of size 1 at index `dim`; -1 appends at the end.
    """
    x = np.asarray(ctx.get_tensor(inputs[0]))
    dim = _axis(ctx.get_tensor(inputs[1]), x.ndim + 1, "ExpandDims")
    ctx.set_tensor(outputs[0], np.expand_dims(x, dim))


@KernelRegistry.register("Reshape")
def execute_reshape(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    x = np.asarray(ctx.get_tensor(inputs[0]))
    shape = tuple(int(d) for d in np.asarray(ctx.get_tensor(inputs[1])).reshape(-1))
    ctx.set_tensor(outputs[0], x.reshape(shape))


@KernelRegistry.register("Shape")
def execute_shape(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    x = np.asarray(ctx.get_tensor(inputs[0]))
    ctx.set_tensor(
        outputs[0], np.array(x.shape, dtype=attrs["out_type"].numpy_dtype)
    )


@KernelRegistry.register("Fill")
def execute_fill(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    """
    Fill operator.

    Creates a tensor of shape `dims` filled with the scalar `value`.
    """
    dims = tuple(int(d) for d in np.asarray(ctx.get_tensor(inputs[0])).reshape(-1))
    value = np.asarray(ctx.get_tensor(inputs[1]))
    if value.ndim != 0:
        raise ExecutionError(
            f"value must be a scalar, got shape {list(value.shape)}", op_type="Fill"
        )
    ctx.set_tensor(outputs[0], np.full(dims, value, dtype=value.dtype))
