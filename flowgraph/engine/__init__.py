# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
FlowGraph Execution Engine

Runs graphs with numpy kernels registered per operation type.

Example:
    from flowgraph.engine import Session

    with Session(graph) as sess:
        outputs = sess.runner().fetch("z").run()
"""

from .context import ExecutionContext, VariableRef
from .interpreter import ExecutionResult, GraphInterpreter
from .registry import KernelRegistry
from .session import RunMetadata, RunResult, Runner, Session, split_output_name

__all__ = [
    "ExecutionContext",
    "VariableRef",
    "ExecutionResult",
    "GraphInterpreter",
    "KernelRegistry",
    "RunMetadata",
    "RunResult",
    "Runner",
    "Session",
    "split_output_name",
]
