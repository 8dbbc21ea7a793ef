# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Kernel Implementations

This package contains the numpy kernels the engine runs for each
operation type.

Kernels are organized by category:
- array_ops: Const, Placeholder, PlaceholderWithDefault, Identity, NoOp,
  Cast, ExpandDims, Reshape, Shape, Fill
- math_ops: Add, Sub, Mul, Div, AddN, Neg, Square, MatMul, Sum, ArgMax
- state_ops: VariableV2, Assign, AssignAdd, AssignSub
- string_ops: StringJoin
"""

# Import all kernel modules to register them
from . import array_ops
from . import math_ops
from . import state_ops
from . import string_ops

__all__ = [
    "array_ops",
    "math_ops",
    "state_ops",
    "string_ops",
]
