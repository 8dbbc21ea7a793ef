# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Attribute Values

Converts caller-supplied values into tagged AttrValue instances and
encodes/decodes them for serialized graph definitions. Every AttrKind has
exactly one converter, one encoder and one decoder.
"""

from __future__ import annotations

import base64
from typing import Any, Callable, Optional

import numpy as np

from .tensor import Tensor
from .types import AttrKind, AttrValue, DataType, Shape, dtype


class AttrConversionError(ValueError):
    """A value does not fit the requested attribute kind."""


def _to_type(value: Any) -> DataType:
    if isinstance(value, DataType):
        return value
    if isinstance(value, str):
        try:
            return dtype(value)
        except KeyError as exc:
            raise AttrConversionError(str(exc)) from exc
    raise AttrConversionError(f"expected a DataType, got {type(value).__name__}")


def _to_shape(value: Any) -> Shape:
    if isinstance(value, Shape):
        return value
    if value is None:
        return Shape.unknown()
    if isinstance(value, (list, tuple)) and all(d is None or _is_int(d) for d in value):
        # None marks an unknown dimension.
        return Shape([-1 if d is None else int(d) for d in value])
    raise AttrConversionError(f"expected a Shape, got {type(value).__name__}")


def _to_tensor(value: Any) -> Tensor:
    # The graph keeps its own copy; callers may close their tensor after building.
    if isinstance(value, Tensor):
        return Tensor(np.array(value.numpy()), value.dtype)
    raise AttrConversionError(f"expected a Tensor, got {type(value).__name__}")


def _is_int(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_))


def _to_int(value: Any) -> int:
    if _is_int(value):
        return int(value)
    raise AttrConversionError(f"expected an int, got {type(value).__name__}")


def _to_float(value: Any) -> float:
    if isinstance(value, (float, np.floating)) or _is_int(value):
        return float(value)
    raise AttrConversionError(f"expected a float, got {type(value).__name__}")


def _to_bool(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    raise AttrConversionError(f"expected a bool, got {type(value).__name__}")


def _to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8")
    raise AttrConversionError(f"expected a string, got {type(value).__name__}")


_CONVERTERS: dict[AttrKind, Callable[[Any], Any]] = {
    AttrKind.TYPE: _to_type,
    AttrKind.SHAPE: _to_shape,
    AttrKind.TENSOR: _to_tensor,
    AttrKind.INT: _to_int,
    AttrKind.FLOAT: _to_float,
    AttrKind.BOOL: _to_bool,
    AttrKind.STRING: _to_string,
}


def infer_kind(value: Any) -> AttrKind:
    """Pick the attribute kind for a raw value when no schema kind is known."""
    if isinstance(value, AttrValue):
        return value.kind
    if isinstance(value, DataType):
        return AttrKind.TYPE
    if isinstance(value, Shape):
        return AttrKind.SHAPE
    if isinstance(value, Tensor):
        return AttrKind.TENSOR
    if isinstance(value, (bool, np.bool_)):
        return AttrKind.BOOL
    if _is_int(value):
        return AttrKind.INT
    if isinstance(value, (float, np.floating)):
        return AttrKind.FLOAT
    if isinstance(value, (str, bytes)):
        return AttrKind.STRING
    if isinstance(value, (list, tuple)) and value:
        return infer_kind(value[0]).list_of()
    raise AttrConversionError(
        f"cannot infer an attribute kind for {type(value).__name__}"
    )


def attr_value(value: Any, kind: Optional[AttrKind] = None) -> AttrValue:
    """
    Convert a raw value to a tagged AttrValue.

    Args:
        value: Raw value (DataType, Shape, Tensor, number, bool, str or list).
        kind: Kind declared by the schema; inferred from the value when None.

    Raises:
        AttrConversionError: If the value does not fit the kind.
    """
    if isinstance(value, AttrValue):
        if kind is not None and value.kind != kind:
            raise AttrConversionError(
                f"expected kind {kind.value}, got {value.kind.value}"
            )
        return value

    if kind is None:
        kind = infer_kind(value)

    if kind.is_list:
        if not isinstance(value, (list, tuple)):
            raise AttrConversionError(f"expected a list, got {type(value).__name__}")
        convert = _CONVERTERS[kind.element_kind]
        return AttrValue(kind, [convert(item) for item in value])

    return AttrValue(kind, _CONVERTERS[kind](value))


# ---------------------------------------------------------------------------
# JSON encoding for graph definitions and schema defaults
# ---------------------------------------------------------------------------


def encode_tensor(tensor: Tensor) -> dict:
    data = tensor.numpy()
    if tensor.dtype == DataType.String:
        values = [base64.b64encode(item).decode("ascii") for item in data.flat]
    else:
        values = data.ravel().tolist()
    return {
        "dtype": tensor.dtype.short_name,
        "shape": list(data.shape),
        "values": values,
    }


def decode_tensor(data: dict) -> Tensor:
    data_type = dtype(data["dtype"])
    shape = tuple(data["shape"])
    if data_type == DataType.String:
        flat = np.empty(len(data["values"]), dtype=object)
        for i, item in enumerate(data["values"]):
            flat[i] = base64.b64decode(item)
        return Tensor(flat.reshape(shape), data_type)
    arr = np.array(data["values"], dtype=data_type.numpy_dtype).reshape(shape)
    return Tensor(arr, data_type)


_ENCODERS: dict[AttrKind, Callable[[Any], Any]] = {
    AttrKind.TYPE: lambda v: v.short_name,
    AttrKind.SHAPE: lambda v: v.dims,
    AttrKind.TENSOR: encode_tensor,
    AttrKind.INT: int,
    AttrKind.FLOAT: float,
    AttrKind.BOOL: bool,
    AttrKind.STRING: str,
}

_DECODERS: dict[AttrKind, Callable[[Any], Any]] = {
    AttrKind.TYPE: dtype,
    AttrKind.SHAPE: lambda v: Shape(None if v is None else list(v)),
    AttrKind.TENSOR: decode_tensor,
    AttrKind.INT: int,
    AttrKind.FLOAT: float,
    AttrKind.BOOL: bool,
    AttrKind.STRING: str,
}


def encode_attr(value: AttrValue) -> dict:
    """Encode an AttrValue as a JSON-compatible dict."""
    encode = _ENCODERS[value.kind.element_kind]
    if value.kind.is_list:
        payload = [encode(item) for item in value.value]
    else:
        payload = encode(value.value)
    return {"kind": value.kind.value, "value": payload}


def decode_attr(data: dict) -> AttrValue:
    """Decode the output of encode_attr()."""
    kind = AttrKind(data["kind"])
    return decode_value(kind, data["value"])


def decode_value(kind: AttrKind, payload: Any) -> AttrValue:
    """Decode a JSON payload of a known kind."""
    decode = _DECODERS[kind.element_kind]
    if kind.is_list:
        return AttrValue(kind, [decode(item) for item in payload])
    return AttrValue(kind, decode(payload))
