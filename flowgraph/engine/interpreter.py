# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Graph Interpreter

Executes the part of a graph needed to compute a set of fetches and
targets, given a set of fed values.

The interpreter follows a classic dataflow runtime design:
1. Validate feeds, fetches and targets against the graph
2. Prune to the operations the fetches and targets depend on (fed
   outputs cut the dependency walk)
3. Topologically sort the pruned operations
4. Check every operation can run (kernels exist, placeholders are fed)
5. Execute each operation in order using its registered kernel

Steps 1-4 finish before any kernel runs, so a request that cannot be
satisfied fails without side effects.
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence

import numpy as np

from ..core.graph import Graph, Operation, Output
from ..core.tensor import Tensor
from ..core.types import DataType, dtype_to_string
from ..errors import (
    ExecutionError,
    FeedTypeError,
    FlowGraphError,
    GraphDependencyError,
    NotFoundError,
    RunError,
    UnsupportedOperationError,
)
from .context import ExecutionContext
from .registry import KernelRegistry


@dataclass
class ExecutionResult:
    """Values computed by one interpreter run."""

    values: List[np.ndarray]
    variables: Dict[str, np.ndarray]
    execution_order: List[str] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)


class GraphInterpreter:
    """
    Executes graphs using the registered numpy kernels.

    Example:
        interpreter = GraphInterpreter(graph)
        result = interpreter.run(
            fetches=[z.output(0)],
            feeds={x.output(0): Tensor.create(11.0)},
        )
        print(result.values[0])
    """

    def __init__(self, graph: Graph):
        # Import kernels to populate registry
        from . import operators  # noqa: F401

        self.graph = graph

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def _check_member(self, output: Output) -> None:
        op = output.op
        if op.graph is not self.graph or self.graph.operation(op.name) is not op:
            raise NotFoundError(output.name)

    def _check_feeds(self, feeds: Mapping[Output, Tensor]) -> None:
        for output, tensor in feeds.items():
            self._check_member(output)
            if output.is_ref:
                raise RunError(
                    f"cannot feed reference output '{output.name}'",
                    op_name=output.op.name,
                )
            if tensor.dtype != output.dtype:
                raise FeedTypeError(
                    output.name,
                    expected=dtype_to_string(output.dtype),
                    received=dtype_to_string(tensor.dtype),
                )
            shape = output.shape
            dims = tuple(tensor.numpy().shape)
            if not shape.is_compatible_with(dims):
                raise RunError(
                    f"feed for '{output.name}' has shape {list(dims)}, "
                    f"expected {shape.dims}",
                    op_name=output.op.name,
                )

    def prune(
        self,
        fetches: Sequence[Output],
        feeds: Mapping[Output, Tensor],
        targets: Sequence[Operation],
    ) -> List[Operation]:
        """
        Find the operations needed to compute fetches and run targets.

        Raises:
            GraphDependencyError: If a feed does not contribute to any fetch
                or target.
        """
        used_feeds = set()
        stack: List[Operation] = []
        for output in fetches:
            if output in feeds:
                used_feeds.add(output)
            else:
                stack.append(output.op)
        stack.extend(targets)

        needed: Dict[str, Operation] = {}
        while stack:
            op = stack.pop()
            if op.name in needed:
                continue
            needed[op.name] = op
            for inp in op.flat_inputs():
                if inp in feeds:
                    used_feeds.add(inp)
                else:
                    stack.append(inp.op)

        unused = [o.name for o in feeds if o not in used_feeds]
        if unused:
            raise GraphDependencyError(
                f"fed value(s) {unused} are not used by any fetch or target",
                op_name=unused[0],
                suggestions=["Only feed outputs the requested fetches depend on"],
            )
        return list(needed.values())

    def _sort(self, ops: List[Operation], feeds: Mapping[Output, Tensor]) -> List[Operation]:
        """
        Topologically sort operations for correct execution order.

        Uses Kahn's algorithm; ties keep graph insertion order.
        """
        position = {op.name: i for i, op in enumerate(self.graph.operations())}
        ops = sorted(ops, key=lambda op: position[op.name])
        members = {op.name for op in ops}

        in_degree: Dict[str, int] = {op.name: 0 for op in ops}
        adjacency: Dict[str, List[Operation]] = defaultdict(list)
        for op in ops:
            for inp in op.flat_inputs():
                if inp not in feeds and inp.op.name in members:
                    adjacency[inp.op.name].append(op)
                    in_degree[op.name] += 1

        queue = [op for op in ops if in_degree[op.name] == 0]
        sorted_ops = []
        while queue:
            op = queue.pop(0)
            sorted_ops.append(op)
            for dependent in adjacency[op.name]:
                in_degree[dependent.name] -= 1
                if in_degree[dependent.name] == 0:
                    queue.append(dependent)

        if len(sorted_ops) != len(ops):
            stuck = sorted(name for name, degree in in_degree.items() if degree > 0)
            raise GraphDependencyError(
                f"dependency cycle between operations {stuck}", op_name=stuck[0]
            )
        return sorted_ops

    def _check_runnable(self, order: List[Operation]) -> None:
        unsupported = KernelRegistry.get_unsupported_ops([op.type for op in order])
        if unsupported:
            raise UnsupportedOperationError(
                unsupported[0], KernelRegistry.list_operators()
            )

        for op in order:
            if op.type == "Placeholder":
                raise GraphDependencyError(
                    f"placeholder '{op.name}' requires a fed value",
                    op_name=op.name,
                    suggestions=[f"Feed '{op.name}' with a tensor of type "
                                 f"{dtype_to_string(op.output(0).dtype)}"],
                )

    def plan(
        self,
        fetches: Sequence[Output],
        feeds: Mapping[Output, Tensor],
        targets: Sequence[Operation] = (),
    ) -> List[Operation]:
        """
        Validate a request and return the operations to execute, in order.

        Raises:
            NotFoundError: If a fetch, feed or target is not in the graph.
            FeedTypeError: If a fed tensor has the wrong data type.
            GraphDependencyError: If the request cannot be computed.
            UnsupportedOperationError: If an operation has no kernel.
        """
        for output in fetches:
            self._check_member(output)
        for op in targets:
            if op.graph is not self.graph or self.graph.operation(op.name) is not op:
                raise NotFoundError(op.name)
        self._check_feeds(feeds)

        order = self._sort(self.prune(fetches, feeds, targets), feeds)
        self._check_runnable(order)
        return order

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(
        self,
        fetches: Sequence[Output],
        feeds: Mapping[Output, Tensor],
        targets: Sequence[Operation] = (),
        variables: Mapping[str, np.ndarray] = None,
    ) -> ExecutionResult:
        """
        Execute the graph for one request.

        Variables are read from `variables` and never modified; writes are
        returned in the result for the caller to commit.

        Returns:
            ExecutionResult with one array per fetch, in fetch order.
        """
        order = self.plan(fetches, feeds, targets)

        ctx = ExecutionContext(dict(variables or {}))
        for output, tensor in feeds.items():
            ctx.set_tensor(output.name, tensor.numpy())

        timings: Dict[str, float] = {}
        for op in order:
            start = time.perf_counter()
            self._execute_op(ctx, op)
            timings[op.name] = (time.perf_counter() - start) * 1000  # ms

        values = [np.array(ctx.get_tensor(output.name)) for output in fetches]
        return ExecutionResult(
            values=values,
            variables=ctx.staged_variables,
            execution_order=[op.name for op in order],
            timings=timings,
        )

    def _execute_op(self, ctx: ExecutionContext, op: Operation) -> None:
        """Execute a single operation using the registered kernel."""
        kernel = KernelRegistry.get_kernel(op.type)
        input_names = [inp.name for inp in op.flat_inputs()]
        output_names = [out.name for out in op.outputs()]
        attrs = {name: value.value for name, value in op.attrs.items()}

        try:
            kernel(ctx, input_names, output_names, attrs)
            for output in op.outputs():
                self._conform(ctx, output)
        except ExecutionError as exc:
            raise ExecutionError(
                exc.detail, op_name=op.name, op_type=op.type, input_shapes=exc.input_shapes
            ) from exc
        except FlowGraphError:
            raise
        except (ValueError, TypeError, ArithmeticError, KeyError, IndexError) as exc:
            raise ExecutionError(
                str(exc),
                op_name=op.name,
                op_type=op.type,
                input_shapes=[_shape_of(ctx, name) for name in input_names],
            ) from exc

    @staticmethod
    def _conform(ctx: ExecutionContext, output: Output) -> None:
        """Store a kernel result with the data type the graph declares for it."""
        if not ctx.has_tensor(output.name):
            raise ExecutionError(f"kernel produced no value for '{output.name}'")
        if output.is_ref:
            return
        arr = np.asarray(ctx.get_tensor(output.name))
        expected = output.dtype.numpy_dtype
        if output.dtype == DataType.String:
            if arr.dtype != object:
                raise ExecutionError(
                    f"kernel produced {arr.dtype} for string output '{output.name}'"
                )
        elif arr.dtype != expected:
            arr = arr.astype(expected)
        ctx.set_tensor(output.name, arr)

    def __repr__(self) -> str:
        return (
            f"GraphInterpreter(graph='{self.graph.name}', "
            f"operations={self.graph.num_operations()})"
        )


def _shape_of(ctx: ExecutionContext, name: str) -> list:
    if not ctx.has_tensor(name):
        return []
    try:
        return list(np.shape(ctx.get_tensor(name)))
    except ExecutionError:
        return []
