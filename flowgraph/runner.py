# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Session Runner

Assembles fetch, feed and target requests into one engine run, resolving
short names through the current name scope.

Request keywords (all optional):
    fetch:         one fetch
    fetches:       list of fetches
    fetch_outputs: list of Output objects
    feed:          one (key, value) pair
    feed_dict:     {key: value}
    feed_outputs:  {Output: value}
    targets:       list of operation names or Operation objects
    target_ops:    list of Operation objects
    options:       run options, reported back in the run metadata

Fetch and feed keys are short names (output 0), "name:index" strings,
(name, index) pairs or Output objects. Feed values that are not Tensors
are tensorized and released after the run.

Example:
    from flowgraph import run

    result = run(feed_dict={"x": 11.0, "y": 22.0}, fetch="z")
    result.float_value()  # 33.0
"""

from collections.abc import Iterable, Mapping
from typing import Any, Callable, Optional

from .coercion import release, tensorize
from .core.graph import Graph, Operation, Output
from .core.tensor import Tensor
from .engine.session import RunResult, Runner, Session
from .errors import ValidationError
from .graph_context import resolve_graph
from .scope import resolve_op_name


class RequestRunner(Runner):
    """
    Runner that owns the tensors it created from plain feed values.

    Owned tensors are closed when the run finishes, whether it succeeds
    or fails.
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self._owned: list[Tensor] = []

    def feed_value(self, key: Any, value: Any) -> "RequestRunner":
        """Feed a Tensor, or a plain value converted with tensorize()."""
        if isinstance(value, Tensor):
            tensor = value
        else:
            tensor = tensorize(value)
            if not isinstance(tensor, Tensor):
                release(tensor)
                raise ValidationError(
                    f"feed value for {key!r} converts to {len(tensor)} tensors, expected one",
                    parameter="feed",
                    expected="one tensor",
                    received=type(value).__name__,
                )
            self._owned.append(tensor)
        output_ref, index = _resolve_key(key)
        return self.feed(output_ref, tensor, index)

    def release(self) -> None:
        """Close the tensors this runner created."""
        for tensor in self._owned:
            tensor.close()
        self._owned.clear()

    def run_and_fetch_metadata(self) -> RunResult:
        try:
            return super().run_and_fetch_metadata()
        finally:
            self.release()


def _resolve_key(key: Any) -> tuple:
    """Turn a fetch/feed key into an (Output | Operation | scoped name, index) pair."""
    if isinstance(key, (Output, Operation)):
        return key, None
    if isinstance(key, tuple):
        if len(key) != 2 or not isinstance(key[1], int):
            raise ValidationError(
                f"expected a (name, index) pair, got {key!r}",
                parameter="key",
                expected="(name, index)",
                received=repr(key),
            )
        name, index = key
        return resolve_op_name(name), index
    if isinstance(key, str):
        return resolve_op_name(key), None
    raise ValidationError(
        f"cannot use {type(key).__name__} as a fetch or feed key",
        parameter="key",
        expected="str, (str, int), Output or Operation",
        received=type(key).__name__,
    )


def _resolve_target(target: Any):
    if isinstance(target, Operation):
        return target
    if isinstance(target, Output):
        return target.op
    if isinstance(target, str):
        return resolve_op_name(target)
    raise ValidationError(
        f"cannot use {type(target).__name__} as a target",
        parameter="targets",
        expected="str or Operation",
        received=type(target).__name__,
    )


def _items(mapping: Optional[Mapping]) -> Iterable:
    return mapping.items() if mapping else ()


def make_runner(
    session: Session,
    fetch: Any = None,
    fetches: Iterable[Any] = (),
    fetch_outputs: Iterable[Output] = (),
    feed: Optional[tuple] = None,
    feed_dict: Optional[Mapping[Any, Any]] = None,
    feed_outputs: Optional[Mapping[Output, Any]] = None,
    targets: Iterable[Any] = (),
    target_ops: Iterable[Operation] = (),
    options: Optional[Mapping[str, Any]] = None,
) -> RequestRunner:
    """
    Assemble a runner for one request.

    Fetch results come back in this order: `fetch`, then `fetches`, then
    `fetch_outputs`.

    Raises:
        NotFoundError: If a name does not resolve to an operation output.
        ValidationError: If a key or value has an unusable type.
    """
    runner = RequestRunner(session)
    try:
        if fetch is not None:
            runner.fetch(*_resolve_key(fetch))
        for key in fetches:
            runner.fetch(*_resolve_key(key))
        for output in fetch_outputs:
            if not isinstance(output, Output):
                raise ValidationError(
                    "fetch_outputs entries must be Output objects",
                    parameter="fetch_outputs",
                    expected="Output",
                    received=type(output).__name__,
                )
            runner.fetch(output)

        if feed is not None:
            key, value = feed
            runner.feed_value(key, value)
        for key, value in _items(feed_dict):
            runner.feed_value(key, value)
        for output, value in _items(feed_outputs):
            if not isinstance(output, Output):
                raise ValidationError(
                    "feed_outputs keys must be Output objects",
                    parameter="feed_outputs",
                    expected="Output",
                    received=type(output).__name__,
                )
            runner.feed_value(output, value)

        for target in targets:
            runner.add_target(_resolve_target(target))
        for op in target_ops:
            runner.add_target(_resolve_target(op))

        if options:
            runner.set_options(options)
    except BaseException:
        runner.release()
        raise
    return runner


def run_session(session: Session, **request) -> list[Tensor]:
    """Execute one request in an existing session; returns one tensor per fetch."""
    return make_runner(session, **request).run()


def run_with_metadata(
    graph: Optional[Graph] = None,
    *,
    session: Optional[Session] = None,
    **request,
) -> RunResult:
    """Like run(), but returns all outputs together with the run metadata."""
    if session is not None:
        return make_runner(session, **request).run_and_fetch_metadata()
    with Session(resolve_graph(graph)) as new_session:
        return make_runner(new_session, **request).run_and_fetch_metadata()


def first(outputs: list[Tensor]) -> Optional[Tensor]:
    """Return the first tensor and close the others."""
    for tensor in outputs[1:]:
        tensor.close()
    return outputs[0] if outputs else None


def run(
    graph: Optional[Graph] = None,
    *,
    session: Optional[Session] = None,
    proc: Optional[Callable[[list[Tensor]], Any]] = first,
    **request,
) -> Any:
    """
    Run a request and post-process the result.

    Without `session`, the request runs in a new session bound to `graph`
    (default: the current graph), which is closed afterwards. Variable
    values therefore only last for that one run.

    Args:
        graph: Graph to run (default: the current graph).
        session: Existing session to run in (left open).
        proc: Applied to the list of result tensors. The default returns
            the first tensor; None returns the whole list.
        **request: Fetch, feed, target and option keywords (see module doc).
    """
    outputs = run_with_metadata(graph, session=session, **request).outputs
    if proc is None:
        return outputs
    return proc(outputs)
