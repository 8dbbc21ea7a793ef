# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Generated Operation Functions

One builder function per operation in the schema document, created when
this module is imported: "Add" becomes add_op(x, y, *, t=None, name=None,
device=None, graph=None).

Inputs are positional parameters in schema order (list arguments take a
list). Attributes are keyword parameters named in snake_case ("DstT"
becomes dst_t); attributes left as None use the schema default or are
inferred from the inputs.

Example:
    from flowgraph.ops.generated import add_op, placeholder_op

    x = placeholder_op(dtype="float", name="x")
    y = placeholder_op(dtype="float", name="y")
    z = add_op(x, y, name="z")
"""

import inspect
import keyword
import re
from typing import Any, Callable

from ..builder import build_op
from ..core.op_def import AttrDef, OpDef
from ..errors import InvalidAttributeError, UnknownOperationError, ValidationError
from .registry import get_all_op_defs

_RESERVED = frozenset({"name", "device", "graph"})

_FIRST_CAP = re.compile(r"(.)([A-Z][a-z]+)")
_ALL_CAP = re.compile(r"([a-z0-9])([A-Z])")


def to_snake_case(name: str) -> str:
    """Convert a schema name to snake_case ("StringJoin" -> "string_join", "DstT" -> "dst_t")."""
    return _ALL_CAP.sub(r"\1_\2", _FIRST_CAP.sub(r"\1_\2", name)).lower()


def _param_name(raw: str, taken: set) -> str:
    param = to_snake_case(raw)
    if keyword.iskeyword(param) or param in taken:
        param = f"{param}_attr"
    taken.add(param)
    return param


def _docstring(op_def: OpDef, input_params: dict, attr_params: dict) -> str:
    lines = [op_def.summary or op_def.name]
    if op_def.description:
        lines.extend(["", op_def.description])

    lines.extend(["", "Args:"])
    for param, arg in input_params.items():
        kind = "list of outputs" if arg.is_list else "output"
        detail = f" {arg.description}" if arg.description else ""
        lines.append(f"    {param}: Input '{arg.name}' ({kind}).{detail}")
    for param, attr_def in attr_params.items():
        detail = f" {attr_def.description}" if attr_def.description else ""
        lines.append(f"    {param}: Attribute '{attr_def.name}' ({attr_def.type.value}).{detail}")
    lines.append("    name: Short operation name (default: a generated unique name).")
    lines.append("    device: Optional device hint.")
    lines.append("    graph: Destination graph (default: the current graph).")
    lines.extend(["", f"Returns:\n    Output 0 of the new '{op_def.name}' operation."])
    return "\n".join(lines)


def make_op_function(op_def: OpDef) -> Callable[..., Any]:
    """
    Create the builder function for one operation definition.

    The function's signature lists the operation's inputs as positional
    parameters and its attributes, name, device and graph as keywords.
    """
    taken = set(_RESERVED)
    input_params = {_param_name(arg.name, taken): arg for arg in op_def.input_args}
    attr_params = {_param_name(a.name, taken): a for a in op_def.attrs}

    parameters = [
        inspect.Parameter(param, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        for param in input_params
    ]
    parameters.extend(
        inspect.Parameter(param, inspect.Parameter.KEYWORD_ONLY, default=None)
        for param in list(attr_params) + ["name", "device", "graph"]
    )
    signature = inspect.Signature(parameters)
    op_type = op_def.name

    def op_function(*args, **kwargs):
        bound = signature.bind(*args, **kwargs)
        bound.apply_defaults()
        values = bound.arguments
        return build_op(
            op_type,
            name=values["name"],
            inputs=[values[param] for param in input_params],
            attrs={attr_def.name: values[param] for param, attr_def in attr_params.items()},
            device=values["device"],
            graph=values["graph"],
        )

    function_name = f"{to_snake_case(op_type)}_op"
    op_function.__name__ = function_name
    op_function.__qualname__ = function_name
    op_function.__module__ = __name__
    op_function.__doc__ = _docstring(op_def, input_params, attr_params)
    op_function.__signature__ = signature
    op_function.op_def = op_def
    op_function.attr_params = {param: a.name for param, a in attr_params.items()}
    return op_function


def inspect_op_attr(func: Callable[..., Any], attr: str) -> AttrDef:
    """
    Get the attribute definition behind a generated function's keyword.

    Args:
        func: A generated function (e.g. cast_op).
        attr: Keyword name ("dst_t") or schema name ("DstT").

    Raises:
        ValidationError: If func is not a generated operation function.
        InvalidAttributeError: If the operation has no such attribute.
    """
    op_def = getattr(func, "op_def", None)
    if not isinstance(op_def, OpDef):
        raise ValidationError(
            f"{getattr(func, '__name__', func)!r} is not a generated operation function",
            parameter="func",
        )
    attr_name = func.attr_params.get(attr, attr)
    attr_def = op_def.get_attr(attr_name)
    if attr_def is None:
        raise InvalidAttributeError(
            attr, "not defined for this operation", op_type=op_def.name
        )
    return attr_def


_OP_FUNCTIONS: dict[str, Callable[..., Any]] = {}


def get_op_function(op_type: str) -> Callable[..., Any]:
    """
    Get the generated function for an operation type.

    Raises:
        UnknownOperationError: If the schema has no such operation.
    """
    if op_type not in _OP_FUNCTIONS:
        raise UnknownOperationError(op_type, sorted(_OP_FUNCTIONS))
    return _OP_FUNCTIONS[op_type]


def _populate() -> list[str]:
    names = []
    for op_def in get_all_op_defs():
        function = make_op_function(op_def)
        _OP_FUNCTIONS[op_def.name] = function
        globals()[function.__name__] = function
        names.append(function.__name__)
    return names


__all__ = _populate() + [
    "get_op_function",
    "inspect_op_attr",
    "make_op_function",
    "to_snake_case",
]
