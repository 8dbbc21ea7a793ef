# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Tests for the Operation Schema and Generated Operations

Validates:
- Loading and caching of the schema document
- Operation definition lookups and descriptions
- One generated builder function per schema entry
- Attribute inspection of generated functions
"""

import inspect
import json

import pytest

from flowgraph.config import Config, set_config
from flowgraph.core import AttrKind, DataType, OpDef, parse_op_list
from flowgraph.engine import KernelRegistry
from flowgraph.engine import operators  # noqa: F401
from flowgraph.errors import (
    InvalidAttributeError,
    SchemaError,
    UnknownOperationError,
    ValidationError,
)
from flowgraph.ops import registry
from flowgraph.ops.generated import (
    get_op_function,
    inspect_op_attr,
    make_op_function,
    to_snake_case,
)
from flowgraph.ops import generated
from flowgraph.runner import run


class TestSchemaDocument:
    """Tests for parsing and loading the schema."""

    def test_bundled_schema_loads(self):
        names = registry.get_all_op_names()
        for name in ("Add", "Assign", "AssignAdd", "AssignSub", "Const", "Placeholder", "StringJoin", "VariableV2"):
            assert name in names

    def test_every_schema_op_has_a_kernel(self):
        assert KernelRegistry.get_unsupported_ops(registry.get_all_op_names()) == []

    def test_schema_is_cached(self):
        assert registry.get_op_def_map() is registry.get_op_def_map()
        registry.clear_cache()
        assert registry.get_op_def("Add").name == "Add"

    def test_unknown_op(self):
        with pytest.raises(UnknownOperationError):
            registry.get_op_def("Conv2D")

    def test_configured_schema_path(self, tmp_path):
        path = tmp_path / "ops.json"
        path.write_text(json.dumps({"op": [{"name": "NoOp"}]}), encoding="utf-8")
        set_config(Config(ops_schema_path=str(path)))
        assert registry.get_all_op_names() == ["NoOp"]

    def test_missing_document(self, tmp_path):
        with pytest.raises(SchemaError):
            registry.get_op_def_map(str(tmp_path / "missing.json"))

    def test_invalid_json(self):
        with pytest.raises(SchemaError):
            parse_op_list("{not json")

    def test_document_without_op_list(self):
        with pytest.raises(SchemaError):
            parse_op_list('{"ops": []}')

    def test_duplicate_op(self):
        with pytest.raises(SchemaError):
            parse_op_list('{"op": [{"name": "A"}, {"name": "A"}]}')

    def test_bad_attribute_kind(self):
        with pytest.raises(SchemaError):
            parse_op_list('{"op": [{"name": "A", "attr": [{"name": "x", "type": "blob"}]}]}')


class TestOpDefs:
    """Tests for operation definitions."""

    def test_string_join_definition(self):
        op_def = registry.get_op_def("StringJoin")
        assert [a.name for a in op_def.input_args] == ["inputs"]
        assert op_def.input_args[0].is_list
        assert op_def.input_args[0].type == DataType.String
        separator = op_def.get_attr("separator")
        assert separator.type == AttrKind.STRING
        assert separator.default_value.value == ""
        assert op_def.inferred_attrs == {"N"}

    def test_variable_is_stateful(self):
        op_def = registry.get_op_def("VariableV2")
        assert op_def.is_stateful
        assert op_def.output_args[0].is_ref

    def test_op_def_to_dict(self):
        info = registry.op_def_to_dict("Cast")
        assert info["name"] == "Cast"
        assert [a["name"] for a in info["inputs"]] == ["x"]
        assert [a["name"] for a in info["outputs"]] == ["y"]
        dst = next(a for a in info["attributes"] if a["name"] == "DstT")
        assert "float" in dst["allowed_values"]
        truncate = next(a for a in info["attributes"] if a["name"] == "Truncate")
        assert truncate["default_value"] is False

    def test_op_def_to_dict_accepts_op_def(self):
        op_def = registry.get_op_def("Placeholder")
        info = registry.op_def_to_dict(op_def)
        shape = next(a for a in info["attributes"] if a["name"] == "shape")
        assert shape["type"] == "shape"
        assert shape["default_value"] is None
        json.dumps(info)


class TestGeneratedFunctions:
    """Tests for the generated builder functions."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("StringJoin", "string_join"),
            ("DstT", "dst_t"),
            ("VariableV2", "variable_v2"),
            ("AddN", "add_n"),
            ("ArgMax", "arg_max"),
            ("T", "t"),
        ],
    )
    def test_to_snake_case(self, name, expected):
        assert to_snake_case(name) == expected

    def test_one_function_per_op(self):
        for name in registry.get_all_op_names():
            function = get_op_function(name)
            assert function.op_def.name == name
            assert hasattr(generated, function.__name__)
            assert function.__name__ in generated.__all__

    def test_signature(self):
        signature = inspect.signature(generated.cast_op)
        params = signature.parameters
        assert list(params)[:1] == ["x"]
        assert params["x"].kind == inspect.Parameter.POSITIONAL_OR_KEYWORD
        for keyword in ("src_t", "dst_t", "truncate", "name", "device", "graph"):
            assert params[keyword].kind == inspect.Parameter.KEYWORD_ONLY
            assert params[keyword].default is None

    def test_docstring_mentions_attributes(self):
        doc = generated.string_join_op.__doc__
        assert "separator" in doc
        assert "list of outputs" in doc

    def test_unknown_function(self):
        with pytest.raises(UnknownOperationError):
            get_op_function("Conv2D")

    def test_placeholder_add(self, graph):
        x = generated.placeholder_op(dtype="float", name="x")
        y = generated.placeholder_op(dtype="float", name="y")
        generated.add_op(x, y, name="z")
        with run(feed_dict={"x": 11.0, "y": 22.0}, fetch="z") as result:
            assert result.float_value() == 33.0

    def test_string_join_with_device(self, graph):
        parts = [generated.const_op(value=t, dtype="string") for t in _strings("Part1", "Part2", "Part3")]
        step = generated.string_join_op(parts, separator=", ", name="step", device="/cpu:0")
        assert step.op.device == "/cpu:0"
        with run(fetch="step") as result:
            assert result.string_value() == "Part1, Part2, Part3"

    def test_cast_attribute_keyword(self, graph):
        from flowgraph.ops.core_ops import constant

        y = generated.cast_op(constant([1.5, 2.5]), dst_t="int64")
        assert y.dtype == DataType.Int64

    def test_missing_input(self, graph):
        with pytest.raises(TypeError):
            generated.add_op(name="z")

    def test_attrs_are_keyword_only(self, graph):
        from flowgraph.ops.core_ops import constant

        with pytest.raises(TypeError):
            generated.cast_op(constant(1.0), "int32")

    def test_keyword_collision(self):
        op_def = parse_op_list(
            '{"op": [{"name": "Odd", "input_arg": [{"name": "name", "type": "float"}],'
            ' "attr": [{"name": "lambda", "type": "float", "default_value": 1.0}]}]}'
        )[0]
        function = make_op_function(op_def)
        params = list(inspect.signature(function).parameters)
        assert params[:2] == ["name_attr", "lambda_attr"]
        assert function.attr_params == {"lambda_attr": "lambda"}


class TestInspectOpAttr:
    """Tests for inspect_op_attr()."""

    def test_by_keyword_name(self):
        attr_def = inspect_op_attr(generated.cast_op, "dst_t")
        assert attr_def.name == "DstT"
        assert attr_def.type == AttrKind.TYPE

    def test_by_schema_name(self):
        attr_def = inspect_op_attr(generated.string_join_op, "separator")
        assert attr_def.default_value.value == ""

    def test_unknown_attribute(self):
        with pytest.raises(InvalidAttributeError):
            inspect_op_attr(generated.add_op, "colour")

    def test_not_a_generated_function(self):
        with pytest.raises(ValidationError):
            inspect_op_attr(len, "x")


def _strings(*values):
    from flowgraph.core import Tensor

    return [Tensor.create(v) for v in values]


def test_op_def_type():
    assert isinstance(registry.get_op_def("Add"), OpDef)
