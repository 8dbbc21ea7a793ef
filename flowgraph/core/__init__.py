# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""FlowGraph Core Module (graph store, tensors, types)"""

from .types import (
    AttrKind,
    AttrValue,
    DataType,
    Shape,
    dtype,
    dtype_size,
    dtype_to_string,
)
from .tensor import Tensor
from .attr import attr_value
from .op_def import ArgDef, AttrDef, OpDef, parse_op_list
from .graph import Graph, Operation, OperationBuilder, Output

__all__ = [
    "AttrKind",
    "AttrValue",
    "DataType",
    "Shape",
    "dtype",
    "dtype_size",
    "dtype_to_string",
    "Tensor",
    "attr_value",
    "ArgDef",
    "AttrDef",
    "OpDef",
    "parse_op_list",
    "Graph",
    "Operation",
    "OperationBuilder",
    "Output",
]
