# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
State Operators

Implements variable operators:
- VariableV2: Emit a reference to a session variable
- Assign: Store a new value in a variable
- AssignAdd / AssignSub: Update a variable in place

Writes go through the execution context and are committed to the session
only when the whole run succeeds.
"""

from __future__ import annotations

from typing import Any, Dict, List, TYPE_CHECKING
import numpy as np

from ...errors import ExecutionError
from ..context import VariableRef
from ..registry import KernelRegistry

if TYPE_CHECKING:
    from ..context import ExecutionContext


def _var_name(outputs: List[str], attrs: Dict[str, Any]) -> str:
    return attrs.get("shared_name") or outputs[0].rpartition(":")[0]


@KernelRegistry.register("VariableV2", stateful=True)
def execute_variable(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    ctx.set_tensor(outputs[0], VariableRef(_var_name(outputs, attrs)))


@KernelRegistry.register("Assign", stateful=True)
def execute_assign(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    """
    Assign operator.

    ref = Assign(ref, value). With validate_shape, a variable that already
    holds a value only accepts values of the same shape.
    """
    ref = ctx.get_ref(inputs[0])
    value = np.asarray(ctx.get_tensor(inputs[1]))
    if attrs.get("validate_shape", True):
        current = (
            ctx.read_variable(ref.var_name) if ctx.has_variable(ref.var_name) else None
        )
        if current is not None and current.shape != value.shape:
            raise ExecutionError(
                f"cannot assign a value of shape {list(value.shape)} to "
                f"variable '{ref.var_name}' of shape {list(current.shape)}",
                op_type="Assign",
                input_shapes=[list(current.shape), list(value.shape)],
            )
    ctx.write_variable(ref.var_name, value)
    ctx.set_tensor(outputs[0], ref)


def _update(ctx: "ExecutionContext", inputs: List[str], outputs: List[str], op_type: str, ufunc) -> None:
    ref = ctx.get_ref(inputs[0])
    current = ctx.read_variable(ref.var_name)
    delta = np.asarray(ctx.get_tensor(inputs[1]))
    if current.shape != delta.shape and delta.ndim != 0:
        raise ExecutionError(
            f"update of shape {list(delta.shape)} does not match variable "
            f"'{ref.var_name}' of shape {list(current.shape)}",
            op_type=op_type,
            input_shapes=[list(current.shape), list(delta.shape)],
        )
    ctx.write_variable(ref.var_name, ufunc(current, delta).astype(current.dtype))
    ctx.set_tensor(outputs[0], ref)


@KernelRegistry.register("AssignAdd", stateful=True)
def execute_assign_add(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    _update(ctx, inputs, outputs, "AssignAdd", np.add)


@KernelRegistry.register("AssignSub", stateful=True)
def execute_assign_sub(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    _update(ctx, inputs, outputs, "AssignSub", np.subtract)
