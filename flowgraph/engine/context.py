# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Execution Context

Holds tensor buffers and staged variable state during one session run.
Variable writes are staged here and committed by the session only when
the whole run succeeds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import numpy as np

from ..errors import ExecutionError


@dataclass(frozen=True)
class VariableRef:
    """Reference to a session variable, produced by variable and assign kernels."""

    var_name: str


class ExecutionContext:
    """
    Manages tensor buffers during graph execution.

    The ExecutionContext is responsible for:
    - Storing fed values and intermediate kernel outputs by tensor key
    - Dereferencing variable references when a kernel reads a value
    - Staging variable writes until the run commits

    Example:
        ctx = ExecutionContext(variables={})
        ctx.set_tensor("x:0", np.float32(11))
        x = ctx.get_tensor("x:0")
    """

    def __init__(self, variables: Dict[str, np.ndarray]):
        """
        Initialize execution context.

        Args:
            variables: Committed session variables (read-only for this run).
        """
        self._tensors: Dict[str, Any] = {}
        self._variables = variables
        self._staged: Dict[str, np.ndarray] = {}

    def set_tensor(self, name: str, value: Any) -> None:
        """
        Store a tensor value (numpy array or VariableRef).

        Args:
            name: Tensor key ("op_name:index").
            value: Tensor value.
        """
        self._tensors[name] = value

    def get_tensor(self, name: str) -> np.ndarray:
        """
        Retrieve a tensor value, reading variables through references.

        Raises:
            KeyError: If tensor not found.
        """
        if name not in self._tensors:
            raise KeyError(f"Tensor '{name}' not found in execution context")

        value = self._tensors[name]
        if isinstance(value, VariableRef):
            return self.read_variable(value.var_name)
        return value

    def get_ref(self, name: str) -> VariableRef:
        """Retrieve the variable reference stored under a tensor key."""
        value = self._tensors.get(name)
        if not isinstance(value, VariableRef):
            raise ExecutionError(f"'{name}' is not a variable reference")
        return value

    def has_tensor(self, name: str) -> bool:
        """Check if tensor exists in context."""
        return name in self._tensors

    def has_variable(self, var_name: str) -> bool:
        return var_name in self._staged or var_name in self._variables

    def read_variable(self, var_name: str) -> np.ndarray:
        if var_name in self._staged:
            return self._staged[var_name]
        if var_name in self._variables:
            return self._variables[var_name]
        raise ExecutionError(
            f"attempting to use uninitialized value '{var_name}'",
            op_name=var_name,
            op_type="VariableV2",
        )

    def write_variable(self, var_name: str, value: np.ndarray) -> None:
        arr = np.array(value)
        arr.setflags(write=False)
        self._staged[var_name] = arr

    @property
    def staged_variables(self) -> Dict[str, np.ndarray]:
        """Variable writes made during this run."""
        return dict(self._staged)

    def clear(self) -> None:
        """Clear tensors and staged writes."""
        self._tensors.clear()
        self._staged.clear()

    def get_tensor_names(self) -> list:
        """Get all tensor keys in context."""
        return list(self._tensors.keys())

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(tensors={len(self._tensors)}, "
            f"staged_variables={len(self._staged)})"
        )
