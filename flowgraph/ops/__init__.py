# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
FlowGraph Operations

- registry: the operation schema document (ops.json) and lookups
- generated: one builder function per schema entry (add_op, cast_op, ...),
  created when flowgraph.ops.generated is first imported
- core_ops: hand-written short forms (constant, placeholder, variable, ...)
"""

from . import core_ops
from .registry import (
    clear_cache,
    get_all_op_defs,
    get_all_op_names,
    get_op_def,
    get_op_def_map,
    op_def_to_dict,
)

__all__ = [
    "core_ops",
    "clear_cache",
    "get_all_op_defs",
    "get_all_op_names",
    "get_op_def",
    "get_op_def_map",
    "op_def_to_dict",
]
