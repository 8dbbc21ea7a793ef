# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
FlowGraph: Dataflow Graph Builder and Runner

Build computation graphs with scoped operation names and an ambient
current graph, then run them atomically in sessions.

Example:
    import flowgraph as fg
    from flowgraph.ops import core_ops as ops

    with fg.with_new_graph():
        x = ops.placeholder("x", "float")
        y = ops.placeholder("y", "float")
        ops.add(x, y, name="z")
        with fg.run(feed_dict={"x": 11.0, "y": 22.0}, fetch="z") as result:
            print(result.float_value())  # 33.0
"""

__version__ = "0.1.0"
__author__ = "Wahyu Ardiansyah"

# Core types
from .core import (
    DataType,
    Graph,
    Operation,
    Output,
    Shape,
    Tensor,
    dtype,
    dtype_size,
    dtype_to_string,
)

# Engine
from .engine import RunMetadata, RunResult, Runner, Session

# Name scopes
from .scope import (
    extract_op_name,
    extract_scope_name,
    get_name_scope,
    get_scope_parts,
    make_scoped_op_name,
    name_scope,
    resolve_op_name,
    root_scope,
    without_name_scope,
)

# Tensor coercion
from .coercion import (
    new_tensor,
    tensorize,
    to_bool,
    to_bytes,
    to_double,
    to_float,
    to_floats,
    to_int,
    to_long,
    to_string,
    with_tensor,
)

# Graph context
from .graph_context import (
    as_default,
    export_to_graph_def,
    get_default_graph,
    get_graph,
    import_from_graph_def,
    new_graph,
    with_graph,
    with_new_graph,
)

# Building and running
from .builder import build_op, get_op_builder, get_op_by_name, has_node
from .runner import first, make_runner, run, run_session, run_with_metadata

# Operation schema
from .ops import core_ops, get_all_op_names, get_op_def, op_def_to_dict

# Utilities
from .utils import get_arg_max, read_all_bytes, read_all_lines

# Configuration and observability
from .config import Config, get_config, set_config
from .observability import Verbosity, get_logger, set_verbosity

# Errors
from .errors import (
    FlowGraphError,
    GraphConstructionError,
    DuplicateNameError,
    UnknownOperationError,
    InvalidAttributeError,
    TensorConstructionError,
    NoDefaultGraphError,
    RunError,
    NotFoundError,
    FeedTypeError,
    GraphDependencyError,
    UnsupportedOperationError,
    ExecutionError,
    ReleasedResourceError,
    SchemaError,
    ValidationError,
    ConfigurationError,
)


def make_session(graph=None) -> Session:
    """Create a session bound to `graph` (default: the current graph)."""
    return Session(get_default_graph() if graph is None else graph)


__all__ = [
    # Core types
    "DataType",
    "Graph",
    "Operation",
    "Output",
    "Shape",
    "Tensor",
    "dtype",
    "dtype_size",
    "dtype_to_string",
    # Engine
    "RunMetadata",
    "RunResult",
    "Runner",
    "Session",
    "make_session",
    # Name scopes
    "extract_op_name",
    "extract_scope_name",
    "get_name_scope",
    "get_scope_parts",
    "make_scoped_op_name",
    "name_scope",
    "resolve_op_name",
    "root_scope",
    "without_name_scope",
    # Tensor coercion
    "new_tensor",
    "tensorize",
    "to_bool",
    "to_bytes",
    "to_double",
    "to_float",
    "to_floats",
    "to_int",
    "to_long",
    "to_string",
    "with_tensor",
    # Graph context
    "as_default",
    "export_to_graph_def",
    "get_default_graph",
    "get_graph",
    "import_from_graph_def",
    "new_graph",
    "with_graph",
    "with_new_graph",
    # Building and running
    "build_op",
    "get_op_builder",
    "get_op_by_name",
    "has_node",
    "first",
    "make_runner",
    "run",
    "run_session",
    "run_with_metadata",
    # Operation schema
    "core_ops",
    "get_all_op_names",
    "get_op_def",
    "op_def_to_dict",
    # Utilities
    "get_arg_max",
    "read_all_bytes",
    "read_all_lines",
    # Configuration and observability
    "Config",
    "get_config",
    "set_config",
    "Verbosity",
    "get_logger",
    "set_verbosity",
    # Errors
    "FlowGraphError",
    "GraphConstructionError",
    "DuplicateNameError",
    "UnknownOperationError",
    "InvalidAttributeError",
    "TensorConstructionError",
    "NoDefaultGraphError",
    "RunError",
    "NotFoundError",
    "FeedTypeError",
    "GraphDependencyError",
    "UnsupportedOperationError",
    "ExecutionError",
    "ReleasedResourceError",
    "SchemaError",
    "ValidationError",
    "ConfigurationError",
    # Version
    "__version__",
    "__author__",
]
