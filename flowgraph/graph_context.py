# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Graph Context

Tracks the current graph of each thread, so operations can be built
without passing the graph to every call.

Example:
    from flowgraph.graph_context import with_new_graph
    from flowgraph.ops.core_ops import constant

    with with_new_graph() as g:
        constant("Hello")          # built in g
    # g is closed here, the previous current graph is back
"""

import threading
from collections.abc import Generator
from contextlib import contextmanager
from typing import Optional, Union

from .core.graph import Graph, Operation
from .errors import NoDefaultGraphError, ValidationError
from .observability import get_logger
from .scope import get_name_scope, normalize_segment

_local = threading.local()


def new_graph(name: str = "") -> Graph:
    """Build an empty new graph (not installed as current)."""
    return Graph(name)


def get_graph() -> Optional[Graph]:
    """Get the current graph of this thread, or None."""
    return getattr(_local, "graph", None)


def get_default_graph() -> Graph:
    """
    Get the current graph of this thread.

    Raises:
        NoDefaultGraphError: If no graph is installed.
    """
    graph = get_graph()
    if graph is None:
        raise NoDefaultGraphError()
    return graph


def resolve_graph(graph: Optional[Graph] = None) -> Graph:
    """Return `graph`, or the current graph when it is None."""
    if graph is None:
        return get_default_graph()
    if not isinstance(graph, Graph):
        raise ValidationError(
            f"expected a Graph, got {type(graph).__name__}",
            parameter="graph",
            expected="Graph",
            received=type(graph).__name__,
        )
    return graph


def as_default(graph: Optional[Graph]) -> Optional[Graph]:
    """
    Install a graph as the current graph of this thread.

    Returns:
        The previously installed graph (None when there was none)
    """
    previous = get_graph()
    _local.graph = graph
    return previous


@contextmanager
def with_graph(graph: Graph) -> Generator[Graph, None, None]:
    """
    Make `graph` the current graph for the duration of a block.

    The previous current graph is restored on exit. The graph is not closed.
    """
    graph = resolve_graph(graph)
    previous = as_default(graph)
    try:
        yield graph
    finally:
        _local.graph = previous


@contextmanager
def with_new_graph(name: str = "") -> Generator[Graph, None, None]:
    """
    Create a graph, make it current for a block, then close it.

    The previous current graph is restored on every exit path.
    """
    graph = new_graph(name)
    previous = as_default(graph)
    try:
        yield graph
    finally:
        _local.graph = previous
        graph.close()


def import_from_graph_def(
    graph: Graph,
    graph_def: Union[bytes, str],
    prefix: Optional[str] = None,
) -> list[Operation]:
    """
    Import a serialized graph definition into `graph`.

    Args:
        graph: Destination graph
        graph_def: Output of export_to_graph_def()
        prefix: Name prefix for imported operations; defaults to the
            current name scope

    Returns:
        The imported operations
    """
    if prefix is None:
        prefix = get_name_scope()
    ops = resolve_graph(graph).import_graph_def(graph_def, normalize_segment(prefix))
    get_logger().debug(
        f"Imported {len(ops)} operations under prefix '{prefix}'",
        component="graph",
        graph=graph.name or None,
    )
    return ops


def export_to_graph_def(graph: Optional[Graph] = None) -> bytes:
    """Serialize a graph (default: the current graph)."""
    return resolve_graph(graph).to_graph_def()
