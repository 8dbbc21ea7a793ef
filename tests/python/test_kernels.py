# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Tests for Kernel Implementations

Validates the numpy kernels through graph runs and directly against an
ExecutionContext.
"""

import numpy as np
import pytest

from flowgraph.builder import build_op
from flowgraph.core import DataType
from flowgraph.engine import ExecutionContext, KernelRegistry, VariableRef
from flowgraph.engine import operators  # noqa: F401
from flowgraph.errors import ExecutionError
from flowgraph.ops import core_ops as ops
from flowgraph import make_session
from flowgraph.runner import run, run_session


def _value(output, **request):
    with run(fetch_outputs=[output], **request) as result:
        return result.numpy().copy(), result.dtype


class TestKernelRegistry:
    """Tests for the kernel registry."""

    def test_every_kernel_registered(self):
        for op_type in ("Add", "AssignAdd", "Const", "StringJoin", "VariableV2", "NoOp"):
            assert KernelRegistry.is_supported(op_type)

    def test_stateful_kernels(self):
        assert KernelRegistry.is_stateful("Assign")
        assert KernelRegistry.is_stateful("VariableV2")
        assert not KernelRegistry.is_stateful("Add")

    def test_unknown_kernel(self):
        with pytest.raises(KeyError):
            KernelRegistry.get_kernel("Conv2D")
        assert KernelRegistry.get_unsupported_ops(["Add", "Conv2D", "Conv2D"]) == ["Conv2D"]

    def test_register_alias(self, monkeypatch):
        monkeypatch.setattr(KernelRegistry, "_registry", dict(KernelRegistry._registry))
        monkeypatch.setattr(KernelRegistry, "_metadata", dict(KernelRegistry._metadata))

        @KernelRegistry.register("Twice", aliases=["Double"])
        def execute_twice(ctx, inputs, outputs, attrs):
            ctx.set_tensor(outputs[0], ctx.get_tensor(inputs[0]) * 2)

        assert KernelRegistry.get_kernel("Double") is execute_twice
        ctx = ExecutionContext({})
        ctx.set_tensor("x:0", np.array(3))
        execute_twice(ctx, ["x:0"], ["y:0"], {})
        assert ctx.get_tensor("y:0") == 6


class TestExecutionContext:
    """Tests for ExecutionContext."""

    def test_tensors(self):
        ctx = ExecutionContext({})
        ctx.set_tensor("a:0", np.array(1.0))
        assert ctx.has_tensor("a:0")
        assert ctx.get_tensor_names() == ["a:0"]
        with pytest.raises(KeyError):
            ctx.get_tensor("b:0")

    def test_variable_reads_prefer_staged(self):
        ctx = ExecutionContext({"v": np.array(1.0)})
        ctx.set_tensor("v:0", VariableRef("v"))
        assert ctx.get_tensor("v:0") == 1.0
        ctx.write_variable("v", np.array(2.0))
        assert ctx.get_tensor("v:0") == 2.0
        assert list(ctx.staged_variables) == ["v"]

    def test_uninitialized_variable(self):
        ctx = ExecutionContext({})
        with pytest.raises(ExecutionError):
            ctx.read_variable("v")

    def test_get_ref_requires_reference(self):
        ctx = ExecutionContext({})
        ctx.set_tensor("c:0", np.array(1.0))
        with pytest.raises(ExecutionError):
            ctx.get_ref("c:0")

    def test_clear(self):
        ctx = ExecutionContext({})
        ctx.set_tensor("a:0", np.array(1.0))
        ctx.write_variable("v", np.array(1.0))
        ctx.clear()
        assert ctx.get_tensor_names() == []
        assert ctx.staged_variables == {}


class TestMathKernels:
    """Tests for math kernels."""

    def test_broadcasting_add(self, graph):
        z = ops.add(ops.constant([[1.0], [2.0]]), ops.constant([10.0, 20.0]))
        value, dtype = _value(z)
        assert dtype == DataType.Float32
        assert value.tolist() == [[11.0, 21.0], [12.0, 22.0]]

    def test_incompatible_shapes(self, graph):
        z = ops.add(ops.constant([1.0, 2.0]), ops.constant([1.0, 2.0, 3.0]))
        with pytest.raises(ExecutionError) as exc_info:
            _value(z)
        assert exc_info.value.op_type == "Add"

    def test_string_add(self, graph):
        z = ops.add(ops.constant("ab"), ops.constant("cd"))
        value, dtype = _value(z)
        assert dtype == DataType.String
        assert value.item() == b"abcd"

    def test_sub_mul(self, graph):
        a, b = ops.constant(7), ops.constant(3)
        assert _value(ops.sub(a, b))[0] == 4
        assert _value(ops.mul(a, b))[0] == 21

    def test_integer_div_truncates_toward_zero(self, graph):
        z = ops.div(ops.constant([7, -7, 7, -7]), ops.constant([2, 2, -2, -2]))
        value, dtype = _value(z)
        assert dtype == DataType.Int32
        assert value.tolist() == [3, -3, -3, 3]

    def test_float_div(self, graph):
        z = ops.div(ops.constant(1.0), ops.constant(4.0))
        assert _value(z)[0] == pytest.approx(0.25)

    def test_float_div_by_zero_is_inf(self, graph):
        z = ops.div(ops.constant(1.0), ops.constant(0.0))
        assert np.isinf(_value(z)[0])

    def test_add_n(self, graph):
        total = ops.add_n([ops.constant([1, 2]), ops.constant([3, 4]), ops.constant([5, 6])])
        assert _value(total)[0].tolist() == [9, 12]

    def test_add_n_shape_mismatch(self, graph):
        total = ops.add_n([ops.constant([1, 2]), ops.constant([3])])
        with pytest.raises(ExecutionError):
            _value(total)

    def test_unary(self, graph):
        x = ops.constant([-2.0, 3.0])
        assert _value(build_op("Neg", inputs=[x]))[0].tolist() == [2.0, -3.0]
        assert _value(build_op("Square", inputs=[x]))[0].tolist() == [4.0, 9.0]

    def test_matmul_transpose(self, graph):
        a = ops.constant([[1.0, 2.0], [3.0, 4.0]])
        product = build_op("MatMul", inputs=[a, a], attrs={"transpose_a": True})
        assert _value(product)[0].tolist() == [[10.0, 14.0], [14.0, 20.0]]

    def test_matmul_inner_dimension(self, graph):
        a = ops.constant([[1.0, 2.0, 3.0]])
        product = build_op("MatMul", inputs=[a, a])
        with pytest.raises(ExecutionError):
            _value(product)

    def test_sum(self, graph):
        x = ops.constant([[1, 2, 3], [4, 5, 6]])
        assert _value(build_op("Sum", inputs=[x, ops.constant(1)]))[0].tolist() == [6, 15]
        kept = build_op("Sum", inputs=[x, ops.constant([0, 1])], attrs={"keep_dims": True})
        assert _value(kept)[0].tolist() == [[21]]

    def test_sum_axis_out_of_range(self, graph):
        x = ops.constant([1, 2])
        with pytest.raises(ExecutionError):
            _value(build_op("Sum", inputs=[x, ops.constant(3)]))

    def test_arg_max(self, graph):
        x = ops.constant([[0.1, 0.9], [0.8, 0.2]])
        value, dtype = _value(build_op("ArgMax", inputs=[x, ops.constant(1)]))
        assert dtype == DataType.Int64
        assert value.tolist() == [1, 0]


class TestArrayKernels:
    """Tests for array kernels."""

    def test_identity(self, graph):
        assert _value(ops.identity(ops.constant([1, 2])))[0].tolist() == [1, 2]

    def test_placeholder_with_default(self, graph):
        default = ops.constant(5.0)
        p = build_op("PlaceholderWithDefault", "p", inputs=[default], attrs={"dtype": "float"})
        assert _value(p)[0] == 5.0
        assert _value(p, feed_outputs={p: 9.0})[0] == 9.0

    def test_cast(self, graph):
        value, dtype = _value(ops.cast(ops.constant([1.7, -1.7]), "int32"))
        assert dtype == DataType.Int32
        assert value.tolist() == [1, -1]

    def test_cast_to_bool(self, graph):
        value, dtype = _value(ops.cast(ops.constant([0, 2]), DataType.Bool))
        assert dtype == DataType.Bool
        assert value.tolist() == [False, True]

    def test_expand_dims(self, graph):
        x = ops.constant([1, 2])
        assert _value(ops.expand_dims(x, ops.constant(0)))[0].shape == (1, 2)
        assert _value(ops.expand_dims(x, ops.constant(-1)))[0].shape == (2, 1)

    def test_expand_dims_out_of_range(self, graph):
        with pytest.raises(ExecutionError):
            _value(ops.expand_dims(ops.constant([1, 2]), ops.constant(5)))

    def test_reshape_and_shape(self, graph):
        x = ops.constant([1, 2, 3, 4, 5, 6])
        reshaped = build_op("Reshape", inputs=[x, ops.constant([2, -1])])
        assert _value(reshaped)[0].shape == (2, 3)
        shape = build_op("Shape", inputs=[reshaped])
        value, dtype = _value(shape)
        assert dtype == DataType.Int32
        assert value.tolist() == [2, 3]

    def test_reshape_size_mismatch(self, graph):
        x = ops.constant([1, 2, 3])
        with pytest.raises(ExecutionError):
            _value(build_op("Reshape", inputs=[x, ops.constant([2, 2])]))

    def test_fill(self, graph):
        filled = build_op("Fill", inputs=[ops.constant([2, 2]), ops.constant(7.0)])
        value, dtype = _value(filled)
        assert dtype == DataType.Float32
        assert value.tolist() == [[7.0, 7.0], [7.0, 7.0]]

    def test_noop_target(self, graph):
        noop = build_op("NoOp", "noop")
        assert run(target_ops=[noop], proc=None) == []


class TestStateKernels:
    """Tests for variable kernels."""

    def test_shared_name(self, graph):
        v = build_op("VariableV2", "v", attrs={"dtype": "float", "shape": [], "shared_name": "shared"})
        w = build_op("VariableV2", "w", attrs={"dtype": "float", "shape": [], "shared_name": "shared"})
        assign = ops.assign(v, ops.constant(3.0))
        read = ops.identity(w)
        with make_session(graph) as sess:
            run_session(sess, target_ops=[assign.op])
            assert run_session(sess, fetch_outputs=[read])[0].float_value() == 3.0

    def test_assign_validates_shape(self, graph):
        v = ops.variable("v", "float", shape=[2])
        init = ops.assign(v, ops.constant([1.0, 2.0]), name="init")
        bad = ops.assign(init, ops.constant([1.0, 2.0, 3.0]), name="bad")
        with pytest.raises(ExecutionError) as exc_info:
            run(fetch_outputs=[bad])
        assert exc_info.value.op_name == "bad"

    def test_assign_without_shape_validation(self, graph):
        v = ops.variable("v", "float", shape=[2])
        init = ops.assign(v, ops.constant([1.0, 2.0]))
        grow = build_op(
            "Assign", "grow", inputs=[init, ops.constant([1.0, 2.0, 3.0])],
            attrs={"validate_shape": False},
        )
        assert _value(grow)[0].tolist() == [1.0, 2.0, 3.0]

    def test_assign_add_scalar_delta(self, graph):
        v = ops.variable("v", "int32", shape=[3])
        init = ops.assign(v, ops.constant([1, 2, 3]))
        inc = ops.assign_add(init, ops.constant(10))
        assert _value(inc)[0].tolist() == [11, 12, 13]

    def test_assign_sub_shape_mismatch(self, graph):
        v = ops.variable("v", "int32", shape=[3])
        init = ops.assign(v, ops.constant([1, 2, 3]))
        dec = ops.assign_sub(init, ops.constant([1, 2]))
        with pytest.raises(ExecutionError):
            _value(dec)


class TestStringKernels:
    """Tests for StringJoin."""

    def test_broadcast_scalars(self, graph):
        joined = ops.string_join([ops.constant(["a", "b"]), ops.constant("x")], separator="-")
        value, dtype = _value(joined)
        assert dtype == DataType.String
        assert value.tolist() == [b"a-x", b"b-x"]

    def test_default_separator(self, graph):
        joined = ops.string_join([ops.constant("a"), ops.constant("b")])
        assert _value(joined)[0].item() == b"ab"

    def test_utf8(self, graph):
        joined = ops.string_join([ops.constant("é"), ops.constant("ü")], separator="·")
        assert _value(joined)[0].item().decode("utf-8") == "é·ü"

    def test_shape_mismatch(self, graph):
        joined = ops.string_join([ops.constant(["a", "b"]), ops.constant(["a", "b", "c"])])
        with pytest.raises(ExecutionError):
            _value(joined)

    def test_numeric_inputs_rejected_at_build_time(self, graph):
        from flowgraph.errors import GraphConstructionError

        with pytest.raises(GraphConstructionError):
            ops.string_join([ops.constant(1.0)])
