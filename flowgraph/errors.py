# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
FlowGraph Error Hierarchy

Provides error types for graph construction and session execution with:
- Clear error categorization
- Helpful error messages with suggestions
- Context information for debugging

Error Categories:
- FlowGraphError: Base class for all flowgraph errors
- GraphConstructionError: Errors raised while adding operations to a graph
- RunError: Errors raised by a session run (no partial results)
- ReleasedResourceError: Use of a closed graph, session or tensor
- SchemaError: Unreadable or malformed operation schema document
- ValidationError: Input validation errors
- ConfigurationError: Configuration/setup errors
"""

from typing import Optional


class FlowGraphError(Exception):
    """
    Base class for all flowgraph errors.

    Provides consistent error formatting and context tracking.

    Attributes:
        message: Human-readable error message
        suggestions: List of suggestions to fix the error
        context: Optional context dictionary for debugging
    """

    def __init__(
        self,
        message: str,
        suggestions: Optional[list[str]] = None,
        context: Optional[dict] = None,
    ):
        self.message = message
        self.suggestions = suggestions or []
        self.context = context or {}

        full_message = self._format_message()
        super().__init__(full_message)

    def _format_message(self) -> str:
        """Format the error message with suggestions."""
        lines = [self.message]

        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"  {i}. {suggestion}")

        if self.context:
            lines.append("")
            lines.append("Context:")
            for key, value in self.context.items():
                lines.append(f"  {key}: {value}")

        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Construction errors
# ---------------------------------------------------------------------------


class GraphConstructionError(FlowGraphError):
    """
    Error while adding an operation to a graph.

    Raised immediately at build time, never deferred to a run.
    """

    def __init__(
        self,
        message: str,
        op_name: Optional[str] = None,
        op_type: Optional[str] = None,
        suggestions: Optional[list[str]] = None,
    ):
        self.op_name = op_name
        self.op_type = op_type

        context = {}
        if op_name:
            context["operation"] = op_name
        if op_type:
            context["op_type"] = op_type

        super().__init__(
            message=f"Graph construction failed: {message}",
            suggestions=suggestions,
            context=context,
        )


class DuplicateNameError(GraphConstructionError):
    """An operation with the same fully qualified name already exists."""

    def __init__(self, op_name: str, op_type: Optional[str] = None):
        super().__init__(
            f"operation name '{op_name}' is already used in this graph",
            op_name=op_name,
            op_type=op_type,
            suggestions=[
                "Pass a distinct name",
                "Build the operation inside a different name_scope()",
                "Leave name=None to get a generated unique name",
            ],
        )


class UnknownOperationError(GraphConstructionError):
    """The operation type is not defined in the operation schema."""

    def __init__(self, op_type: str, known_ops: Optional[list[str]] = None):
        suggestions = ["Check the spelling of the operation type"]
        if known_ops:
            similar = _find_similar(op_type, known_ops)
            if similar:
                suggestions.insert(0, f"Try using: {', '.join(similar)}")

        super().__init__(
            f"unknown operation type '{op_type}'",
            op_type=op_type,
            suggestions=suggestions,
        )


class InvalidAttributeError(GraphConstructionError):
    """An attribute is missing, has the wrong kind, or violates a constraint."""

    def __init__(
        self,
        attr_name: str,
        message: str,
        op_name: Optional[str] = None,
        op_type: Optional[str] = None,
    ):
        self.attr_name = attr_name
        super().__init__(
            f"attribute '{attr_name}': {message}",
            op_name=op_name,
            op_type=op_type,
            suggestions=[
                "Check the attribute definition with `flowgraph ops show`",
            ],
        )


class TensorConstructionError(GraphConstructionError):
    """A value could not be converted into a tensor."""

    def __init__(self, value_type: str, message: str = ""):
        self.value_type = value_type
        detail = f": {message}" if message else ""
        super().__init__(
            f"cannot create a tensor from a value of type '{value_type}'{detail}",
            suggestions=[
                "Pass a number, bool, str, bytes, numpy array or a nested list",
            ],
        )


class NoDefaultGraphError(FlowGraphError):
    """No graph was passed and no current graph is installed."""

    def __init__(self):
        super().__init__(
            message="No graph given and no current graph is installed",
            suggestions=[
                "Wrap the code in `with with_new_graph():`",
                "Pass graph=... explicitly",
                "Install a graph with as_default(graph)",
            ],
        )


# ---------------------------------------------------------------------------
# Run errors
# ---------------------------------------------------------------------------


class RunError(FlowGraphError):
    """
    Error during a session run.

    A run either completes or fails as a whole; no result tensors are
    produced when a RunError is raised.
    """

    def __init__(
        self,
        message: str,
        op_name: Optional[str] = None,
        suggestions: Optional[list[str]] = None,
    ):
        self.op_name = op_name

        context = {}
        if op_name:
            context["operation"] = op_name

        super().__init__(
            message=f"Session run failed: {message}",
            suggestions=suggestions,
            context=context,
        )


class NotFoundError(RunError):
    """A fetch, feed or target does not name an operation output in the graph."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(
            message or f"'{name}' was not found in the graph",
            op_name=name,
            suggestions=[
                "Check that the name is resolved in the same name_scope() it was built in",
                "Use the Output returned by the builder instead of its name",
            ],
        )


class FeedTypeError(RunError):
    """A fed tensor's data type does not match the destination's data type."""

    def __init__(self, name: str, expected: str, received: str):
        self.expected = expected
        self.received = received
        super().__init__(
            f"feed for '{name}' has dtype {received}, expected {expected}",
            op_name=name,
            suggestions=[f"Create the feed tensor with dtype {expected}"],
        )


class GraphDependencyError(RunError):
    """The requested fetches cannot be computed from the graph and the feeds."""


class UnsupportedOperationError(RunError):
    """
    Operation type has no kernel registered with the engine.
    """

    def __init__(
        self,
        op_type: str,
        supported_ops: Optional[list[str]] = None,
    ):
        self.op_type = op_type
        self.supported_ops = supported_ops or []

        suggestions = [
            "Consider decomposing the operation into supported primitives",
        ]

        if supported_ops:
            similar = _find_similar(op_type, supported_ops)
            if similar:
                suggestions.insert(0, f"Try using: {', '.join(similar)}")

        super().__init__(
            f"operation '{op_type}' has no kernel",
            suggestions=suggestions,
        )


class ExecutionError(RunError):
    """
    Error during kernel execution.

    Raised when:
    - A kernel raises while computing its outputs
    - A variable is read before it was assigned
    """

    def __init__(
        self,
        message: str,
        op_name: Optional[str] = None,
        op_type: Optional[str] = None,
        input_shapes: Optional[list] = None,
    ):
        self.detail = message
        self.op_type = op_type
        self.input_shapes = input_shapes

        suggestions = [
            "Check that input shapes are valid for this operation",
            "Check that variables are assigned before they are read",
        ]
        if op_type:
            suggestions.append(f"Inspect the '{op_type}' definition with `flowgraph ops show`")

        super().__init__(
            f"kernel execution failed: {message}",
            op_name=op_name,
            suggestions=suggestions,
        )
        if input_shapes:
            self.context["input_shapes"] = str(input_shapes)


# ---------------------------------------------------------------------------
# Resource, schema, config and validation errors
# ---------------------------------------------------------------------------


class ReleasedResourceError(FlowGraphError):
    """A graph, session or tensor was used after it was closed."""

    def __init__(self, resource: str):
        super().__init__(
            message=f"{resource} has already been closed",
            suggestions=[
                "Keep the object inside the `with` block that created it",
            ],
            context={"resource": resource},
        )


class SchemaError(FlowGraphError):
    """The operation schema document is unreadable or malformed."""

    def __init__(self, message: str, path: Optional[str] = None):
        context = {}
        if path:
            context["path"] = path

        super().__init__(
            message=f"Operation schema error: {message}",
            suggestions=[
                "Check FLOWGRAPH_OPS_SCHEMA points at a valid JSON op list",
            ],
            context=context,
        )


class ValidationError(FlowGraphError):
    """
    Input validation error.

    Raised when:
    - Invalid operation names
    - Invalid data types
    - Malformed fetch/feed/target requests
    """

    def __init__(
        self,
        message: str,
        parameter: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
    ):
        context = {}
        if parameter:
            context["parameter"] = parameter
        if expected:
            context["expected"] = expected
        if received:
            context["received"] = received

        suggestions = [
            "Check the parameter value and type",
            "Review the API documentation",
        ]

        super().__init__(
            message=f"Validation failed: {message}",
            suggestions=suggestions,
            context=context,
        )


class ConfigurationError(FlowGraphError):
    """
    Configuration or setup error.

    Raised when an environment variable or config field holds an invalid value.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[str] = None,
    ):
        context = {}
        if config_key:
            context["config_key"] = config_key
        if config_value:
            context["config_value"] = str(config_value)

        suggestions = [
            "Check configuration parameters",
            "Review the FLOWGRAPH_* environment variables",
        ]

        super().__init__(
            message=f"Configuration error: {message}",
            suggestions=suggestions,
            context=context,
        )


def _find_similar(name: str, candidates: list[str]) -> list[str]:
    """Find similar names (substring match, case-insensitive)."""
    lower = name.lower()
    similar = []
    for candidate in candidates:
        if lower in candidate.lower() or candidate.lower() in lower:
            similar.append(candidate)
    return similar[:3]


def format_dtype_mismatch(
    expected_dtype: str,
    actual_dtype: str,
    tensor_name: Optional[str] = None,
) -> ValidationError:
    """Create a ValidationError for dtype mismatch."""
    msg = f"Dtype mismatch: expected {expected_dtype}, got {actual_dtype}"
    return ValidationError(
        message=msg,
        parameter=tensor_name or "tensor",
        expected=expected_dtype,
        received=actual_dtype,
    )
