# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Session and Runner

A Session executes requests against one graph and owns the graph's
variable state. A Runner collects one request (fetches, feeds, targets,
options) and runs it.

Runs are atomic: either every fetch is returned or an error is raised and
no result tensors exist. Variable writes are committed only when the run
succeeds.

Example:
    with Session(graph) as sess:
        result = sess.runner().feed("x", Tensor.create(11.0)).fetch("z").run()
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from ..core.graph import Graph, Operation, Output
from ..core.tensor import Tensor
from ..errors import NotFoundError, ReleasedResourceError, ValidationError
from ..observability import get_logger
from .interpreter import GraphInterpreter

OutputRef = Union[str, Output, Operation]


@dataclass
class RunMetadata:
    """
    Metadata about one run.

    Attributes:
        execution_order: Names of the operations executed, in order.
        step_timings: Milliseconds spent in each executed operation.
        total_ms: Wall time of the kernel phase.
        options: Options the run was made with.
    """

    execution_order: List[str] = field(default_factory=list)
    step_timings: Dict[str, float] = field(default_factory=dict)
    total_ms: float = 0.0
    options: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "execution_order": list(self.execution_order),
            "step_timings": dict(self.step_timings),
            "total_ms": self.total_ms,
            "options": dict(self.options),
        }


@dataclass
class RunResult:
    """Outputs of a run (one tensor per fetch, in fetch order) plus metadata."""

    outputs: List[Tensor]
    metadata: RunMetadata

    def close(self) -> None:
        for tensor in self.outputs:
            tensor.close()


def split_output_name(name: str) -> Tuple[str, int]:
    """Split "op_name:index" into its parts; a bare name means index 0."""
    op_name, sep, index = name.rpartition(":")
    if sep and index.isdigit():
        return op_name, int(index)
    return name, 0


class Session:
    """
    Executes operations of a graph.

    The session keeps the values of the graph's variables between runs.
    Close it with close() or a `with` block; closing the session does not
    close its graph.
    """

    def __init__(self, graph: Graph):
        graph._check_open()
        self._graph = graph
        self._interpreter = GraphInterpreter(graph)
        self._variables: Dict[str, np.ndarray] = {}
        self._lock = threading.Lock()
        self._closed = False

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the session and its variable state. Closing twice is a no-op."""
        self._closed = True
        self._variables.clear()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise ReleasedResourceError("Session")
        self._graph._check_open()

    def runner(self) -> "Runner":
        """Create a Runner for one request."""
        self._check_open()
        return Runner(self)

    def variable_names(self) -> List[str]:
        """Names of the variables that currently hold a value."""
        return sorted(self._variables)

    def resolve_output(self, ref: OutputRef, index: Optional[int] = None) -> Output:
        """
        Resolve an operation name ("name" or "name:index"), Operation or Output.

        Raises:
            NotFoundError: If the name does not denote an output of this graph.
        """
        self._check_open()
        if isinstance(ref, Output):
            return ref
        if isinstance(ref, Operation):
            op, idx = ref, 0 if index is None else index
        elif isinstance(ref, str):
            op_name, idx = split_output_name(ref)
            if index is not None:
                idx = index
            op = self._graph.operation(op_name)
            if op is None:
                raise NotFoundError(ref)
        else:
            raise ValidationError(
                f"expected an operation name, Operation or Output, got {type(ref).__name__}",
                parameter="name",
            )
        if not 0 <= idx < op.num_outputs():
            raise NotFoundError(
                f"{op.name}:{idx}",
                f"operation '{op.name}' has {op.num_outputs()} output(s), "
                f"index {idx} is out of range",
            )
        return Output(op, idx)

    def resolve_operation(self, ref: Union[str, Operation]) -> Operation:
        self._check_open()
        if isinstance(ref, Operation):
            return ref
        op = self._graph.operation(ref)
        if op is None:
            raise NotFoundError(ref)
        return op

    def _execute(
        self,
        fetches: List[Output],
        feeds: Mapping[Output, Tensor],
        targets: List[Operation],
        options: Mapping[str, Any],
    ) -> RunResult:
        self._check_open()
        logger = get_logger()
        with self._lock:
            result = self._interpreter.run(
                fetches, feeds, targets, variables=self._variables
            )
            self._variables.update(result.variables)

        outputs = [
            Tensor(value, output.dtype) for value, output in zip(result.values, fetches)
        ]
        metadata = RunMetadata(
            execution_order=result.execution_order,
            step_timings=result.timings,
            total_ms=sum(result.timings.values()),
            options=dict(options),
        )
        logger.debug(
            f"run: {len(fetches)} fetch(es), {len(feeds)} feed(s), "
            f"{len(targets)} target(s), {len(result.execution_order)} op(s) executed",
            component="session",
            graph=self._graph.name or None,
            duration_ms=metadata.total_ms,
        )
        return RunResult(outputs=outputs, metadata=metadata)

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"variables={len(self._variables)}"
        return f"Session(graph={self._graph!r}, {state})"


class Runner:
    """
    Collects fetches, feeds and targets for one run.

    Fetch results come back in the order fetches were added. A feed given
    twice for the same output keeps the last value.

    Example:
        outputs = (sess.runner()
                   .feed("x", Tensor.create(11.0))
                   .fetch("z")
                   .run())
    """

    def __init__(self, session: Session):
        self._session = session
        self._fetches: List[Output] = []
        self._feeds: Dict[Output, Tensor] = {}
        self._targets: List[Operation] = []
        self._options: Dict[str, Any] = {}

    def fetch(self, ref: OutputRef, index: Optional[int] = None) -> "Runner":
        """Return the value of an output ("name", "name:index", Operation or Output)."""
        self._fetches.append(self._session.resolve_output(ref, index))
        return self

    def feed(self, ref: OutputRef, tensor: Tensor, index: Optional[int] = None) -> "Runner":
        """Use `tensor` as the value of an output instead of computing it."""
        if not isinstance(tensor, Tensor):
            raise ValidationError(
                f"feed values must be Tensor objects, got {type(tensor).__name__}",
                parameter="tensor",
                expected="Tensor",
                received=type(tensor).__name__,
            )
        self._feeds[self._session.resolve_output(ref, index)] = tensor
        return self

    def add_target(self, ref: Union[str, Operation]) -> "Runner":
        """Run an operation for its side effects without returning a value."""
        self._targets.append(self._session.resolve_operation(ref))
        return self

    def set_options(self, options: Optional[Mapping[str, Any]]) -> "Runner":
        """Attach run options; they are reported back in the run metadata."""
        self._options = dict(options or {})
        return self

    @property
    def fetches(self) -> List[Output]:
        return list(self._fetches)

    @property
    def feeds(self) -> Dict[Output, Tensor]:
        return dict(self._feeds)

    @property
    def targets(self) -> List[Operation]:
        return list(self._targets)

    def run(self) -> List[Tensor]:
        """Execute the request and return one tensor per fetch."""
        return self.run_and_fetch_metadata().outputs

    def run_and_fetch_metadata(self) -> RunResult:
        """Execute the request and return the outputs with run metadata."""
        return self._session._execute(
            self._fetches, self._feeds, self._targets, self._options
        )
