# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
String Operators

Implements:
- StringJoin: Element-wise join of string tensors with a separator
"""

from __future__ import annotations

from typing import Any, Dict, List, TYPE_CHECKING
import numpy as np

from ...errors import ExecutionError
from ..registry import KernelRegistry

if TYPE_CHECKING:
    from ..context import ExecutionContext


@KernelRegistry.register("StringJoin")
def execute_string_join(
    ctx: "ExecutionContext",
    inputs: List[str],
    outputs: List[str],
    attrs: Dict[str, Any],
) -> None:
    """
    StringJoin operator.

    Joins the inputs element-wise with `separator`. Scalar inputs are
    broadcast against the others; non-scalar inputs must share one shape.
    """
    values = [np.asarray(ctx.get_tensor(name), dtype=object) for name in inputs]
    shapes = {v.shape for v in values if v.ndim > 0}
    if len(shapes) > 1:
        raise ExecutionError(
            "non-scalar inputs must have the same shape",
            op_type="StringJoin",
            input_shapes=[list(v.shape) for v in values],
        )
    shape = shapes.pop() if shapes else ()
    separator = attrs.get("separator", "").encode("utf-8")

    columns = [np.broadcast_to(v, shape).reshape(-1) for v in values]
    size = int(np.prod(shape)) if shape else 1
    result = np.empty(size, dtype=object)
    for i in range(size):
        result[i] = separator.join(bytes(column[i]) for column in columns)
    ctx.set_tensor(outputs[0], result.reshape(shape))
