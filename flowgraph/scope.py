# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Name Scopes for FlowGraph

Resolves short operation names into fully qualified, "/"-separated names
using an ambient, thread-local scope.

The scope is made of a root segment (configured by FLOWGRAPH_ROOT_SCOPE,
empty by default) followed by the segments pushed with name_scope().
None, "" and segments made only of "/" all mean "no segment", so there is
exactly one empty scope: "".

Example:
    from flowgraph import scope

    with scope.name_scope("outer"):
        with scope.name_scope("inner"):
            scope.make_scoped_op_name("x")   # "outer/inner/x"

    with scope.without_name_scope():
        scope.make_scoped_op_name("x")       # "x"
"""

import threading
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional

from .config import get_config
from .errors import ValidationError


@dataclass
class ScopeState:
    """
    Scope of the current thread.

    Attributes:
        root: Root segment; None means "use the configured root scope"
        segments: Segments pushed with name_scope(), outermost first
    """

    root: Optional[str] = None
    segments: list[str] = field(default_factory=list)


_local = threading.local()


def _state() -> ScopeState:
    """Get or create the thread-local scope state."""
    state = getattr(_local, "scope", None)
    if state is None:
        state = ScopeState()
        _local.scope = state
    return state


def normalize_segment(segment: Optional[str]) -> str:
    """Strip surrounding "/" from a segment; None becomes ""."""
    if segment is None:
        return ""
    if not isinstance(segment, str):
        raise ValidationError(
            f"scope segments must be strings, got {type(segment).__name__}",
            parameter="segment",
            expected="str",
            received=type(segment).__name__,
        )
    return segment.strip("/")


def get_name_scope() -> str:
    """Get the current name scope ("" when there is none)."""
    state = _state()
    root = get_config().root_scope if state.root is None else state.root
    parts = [normalize_segment(root)] + state.segments
    return "/".join(part for part in parts if part)


def make_scoped_op_name(name: str) -> str:
    """
    Qualify an operation name with the current scope.

    Example:
        with name_scope("a"):
            make_scoped_op_name("x")  # "a/x"
    """
    if not isinstance(name, str) or not name:
        raise ValidationError(
            "operation names must be non-empty strings",
            parameter="name",
            expected="non-empty str",
            received=repr(name),
        )
    if "/" in name:
        raise ValidationError(
            f"operation name '{name}' contains '/'",
            parameter="name",
            expected="a name without '/' (use name_scope() for nesting)",
            received=repr(name),
        )
    current = get_name_scope()
    return f"{current}/{name}" if current else name


def resolve_op_name(name: str) -> str:
    """
    Qualify a lookup name with the current scope.

    Unlike make_scoped_op_name(), the name may itself be a path
    ("imported/x"), which is appended to the scope as is.
    """
    if not isinstance(name, str) or not name.strip("/"):
        raise ValidationError(
            "operation names must be non-empty strings",
            parameter="name",
            expected="non-empty str",
            received=repr(name),
        )
    path = name.strip("/")
    current = get_name_scope()
    return f"{current}/{path}" if current else path


@contextmanager
def name_scope(segment: Optional[str]) -> Generator[str, None, None]:
    """
    Push a scope segment for the duration of a block.

    Yields:
        The composed scope inside the block
    """
    state = _state()
    old_segments = state.segments
    normalized = normalize_segment(segment)
    state.segments = old_segments + [normalized] if normalized else list(old_segments)
    try:
        yield get_name_scope()
    finally:
        state.segments = old_segments


@contextmanager
def root_scope(name: Optional[str]) -> Generator[str, None, None]:
    """Replace the root segment for the duration of a block."""
    state = _state()
    old_root = state.root
    state.root = normalize_segment(name)
    try:
        yield get_name_scope()
    finally:
        state.root = old_root


@contextmanager
def without_name_scope() -> Generator[None, None, None]:
    """Build with unqualified names for the duration of a block."""
    state = _state()
    old_root, old_segments = state.root, state.segments
    state.root, state.segments = "", []
    try:
        yield
    finally:
        state.root, state.segments = old_root, old_segments


def extract_op_name(full_name: str) -> str:
    """Last segment of a qualified name ("a/b/x" -> "x")."""
    return full_name.rpartition("/")[2]


def extract_scope_name(full_name: str) -> str:
    """Scope part of a qualified name ("a/b/x" -> "a/b", "x" -> "")."""
    return full_name.rpartition("/")[0]


def get_scope_parts(full_name: str) -> list[str]:
    """All non-empty segments of a qualified name."""
    return [part for part in full_name.split("/") if part]
