# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Tests for FlowGraph Error Handling

Validates:
- Error hierarchy
- Error message formatting
- Suggestions in error messages
- Context information
"""

import pytest

from flowgraph.errors import (
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
    format_dtype_mismatch,
)


class TestFlowGraphError:
    """Tests for FlowGraphError base class."""

    def test_basic_error(self):
        error = FlowGraphError("Test error")
        assert "Test error" in str(error)

    def test_error_with_suggestions(self):
        error = FlowGraphError("Test error", suggestions=["Fix A", "Fix B"])
        msg = str(error)
        assert "Suggestions:" in msg
        assert "1. Fix A" in msg
        assert "2. Fix B" in msg

    def test_error_with_context(self):
        error = FlowGraphError("Test error", context={"key1": "value1"})
        msg = str(error)
        assert "Context:" in msg
        assert "key1: value1" in msg

    def test_error_attributes(self):
        error = FlowGraphError("Test error", suggestions=["Fix A"], context={"k": "v"})
        assert error.message == "Test error"
        assert error.suggestions == ["Fix A"]
        assert error.context == {"k": "v"}


class TestConstructionErrors:
    """Tests for graph construction errors."""

    def test_construction_error_prefix(self):
        error = GraphConstructionError("bad input", op_name="a/z", op_type="Add")
        msg = str(error)
        assert "Graph construction failed: bad input" in msg
        assert "operation: a/z" in msg
        assert "op_type: Add" in msg

    def test_duplicate_name(self):
        error = DuplicateNameError("outer/x", "Const")
        assert isinstance(error, GraphConstructionError)
        assert error.op_name == "outer/x"
        assert "already used" in str(error)

    def test_unknown_operation_suggests_similar(self):
        error = UnknownOperationError("Join", ["StringJoin", "Add"])
        assert "Try using: StringJoin" in str(error)
        assert error.op_type == "Join"

    def test_invalid_attribute(self):
        error = InvalidAttributeError("dtype", "required attribute is not set", op_type="Const")
        assert error.attr_name == "dtype"
        assert "attribute 'dtype'" in str(error)

    def test_tensor_construction(self):
        error = TensorConstructionError("object", "unsupported")
        assert error.value_type == "object"
        assert isinstance(error, GraphConstructionError)

    def test_no_default_graph(self):
        error = NoDefaultGraphError()
        assert "with_new_graph" in str(error)
        assert not isinstance(error, GraphConstructionError)


class TestRunErrors:
    """Tests for session run errors."""

    @pytest.mark.parametrize(
        "error",
        [
            NotFoundError("z"),
            FeedTypeError("x:0", "float", "int32"),
            GraphDependencyError("cycle"),
            UnsupportedOperationError("Conv2D"),
            ExecutionError("boom"),
        ],
    )
    def test_run_error_hierarchy(self, error):
        assert isinstance(error, RunError)
        assert isinstance(error, FlowGraphError)
        assert "Session run failed:" in str(error)

    def test_feed_type_error_fields(self):
        error = FeedTypeError("x:0", expected="float", received="int32")
        assert error.expected == "float"
        assert error.received == "int32"
        assert "expected float" in str(error)

    def test_execution_error_keeps_detail(self):
        error = ExecutionError("division by zero", op_name="d", op_type="Div", input_shapes=[[], []])
        assert error.detail == "division by zero"
        assert error.op_name == "d"
        assert error.op_type == "Div"
        assert "input_shapes" in error.context

    def test_unsupported_similar_ops(self):
        error = UnsupportedOperationError("AddV2", ["Add", "AddN", "Sub"])
        assert "Try using:" in str(error)


class TestOtherErrors:
    """Tests for resource, schema, validation and configuration errors."""

    def test_released_resource(self):
        error = ReleasedResourceError("Tensor")
        assert "Tensor has already been closed" in str(error)

    def test_schema_error_path(self):
        error = SchemaError("invalid JSON", path="/tmp/ops.json")
        assert "path: /tmp/ops.json" in str(error)

    def test_validation_error(self):
        error = ValidationError("bad key", parameter="key", expected="str", received="float")
        msg = str(error)
        assert "Validation failed: bad key" in msg
        assert "expected: str" in msg

    def test_configuration_error(self):
        error = ConfigurationError("bad value", config_key="verbosity", config_value="9")
        assert "config_key: verbosity" in str(error)

    def test_format_dtype_mismatch(self):
        error = format_dtype_mismatch("float", "int32", "x")
        assert isinstance(error, ValidationError)
        assert "expected float, got int32" in str(error)
