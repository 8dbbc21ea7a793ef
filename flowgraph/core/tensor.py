# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Tensor

Immutable, typed, shaped block of data backed by a read-only numpy array.
Tensors are released explicitly (close() or a `with` block).
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from ..errors import (
    ReleasedResourceError,
    TensorConstructionError,
    ValidationError,
    format_dtype_mismatch,
)
from .types import DataType, Shape, dtype_to_string

_INT32_MIN = np.iinfo(np.int32).min
_INT32_MAX = np.iinfo(np.int32).max


def _encode_strings(arr: np.ndarray) -> np.ndarray:
    """Convert an array of str/bytes elements into an object array of bytes."""
    out = np.empty(arr.shape, dtype=object)
    for idx, item in np.ndenumerate(arr):
        if isinstance(item, str):
            out[idx] = item.encode("utf-8")
        elif isinstance(item, (bytes, bytearray, np.bytes_)):
            out[idx] = bytes(item)
        else:
            raise TensorConstructionError(
                type(item).__name__, "string tensors hold only str or bytes elements"
            )
    return out


def _infer_from_python(value: Any) -> np.ndarray:
    """Build an array from Python scalars or nested lists, narrowing defaults."""
    if isinstance(value, (str, bytes, bytearray)):
        return _encode_strings(np.array(value, dtype=object))

    try:
        arr = np.array(value)
    except ValueError as exc:
        raise TensorConstructionError(type(value).__name__, str(exc)) from exc

    if arr.dtype.kind in ("U", "S", "O"):
        return _encode_strings(np.array(value, dtype=object))
    if arr.dtype == np.float64:
        return arr.astype(np.float32)
    if arr.dtype.kind == "i":
        if arr.size == 0 or (arr.min() >= _INT32_MIN and arr.max() <= _INT32_MAX):
            return arr.astype(np.int32)
        return arr.astype(np.int64)
    return arr


class Tensor:
    """
    Typed, shaped, immutable data block.

    Create tensors with Tensor.create() (or flowgraph.tensorize); sessions
    return them from runs. The caller owns every tensor it creates or receives
    and releases it with close() or a `with` block.

    Example:
        with Tensor.create(11.0) as t:
            assert t.dtype == DataType.Float32
            print(t.float_value())
    """

    __slots__ = ("_data", "_dtype")

    def __init__(self, data: np.ndarray, data_type: DataType):
        data.setflags(write=False)
        self._data: Optional[np.ndarray] = data
        self._dtype = data_type

    @classmethod
    def create(cls, value: Any, data_type: Optional[DataType] = None) -> "Tensor":
        """
        Create a tensor from a Python or numpy value.

        Python floats become Float32 and Python ints Int32 (Int64 when out of
        range); numpy arrays and scalars keep their dtype; str is encoded as
        UTF-8 bytes.

        Args:
            value: Scalar, str, bytes, nested list/tuple or numpy array.
            data_type: Optional target data type to cast to.

        Raises:
            TensorConstructionError: If the value cannot be represented.
        """
        if isinstance(value, Tensor):
            raise TensorConstructionError("Tensor", "value is already a tensor")

        if isinstance(value, (np.ndarray, np.generic)):
            arr = np.array(value)
            if arr.dtype.kind in ("U", "S", "O"):
                arr = _encode_strings(arr)
        elif isinstance(value, (bool, int, float, str, bytes, bytearray, list, tuple)):
            arr = _infer_from_python(value)
        else:
            raise TensorConstructionError(type(value).__name__)

        if data_type is not None:
            arr = cls._cast(arr, data_type)
            return cls(arr, data_type)

        try:
            inferred = DataType.from_numpy(arr.dtype)
        except KeyError as exc:
            raise TensorConstructionError(str(arr.dtype), str(exc)) from exc
        return cls(np.array(arr, dtype=inferred.numpy_dtype), inferred)

    @classmethod
    def from_numpy(cls, arr: np.ndarray) -> "Tensor":
        """Create a tensor holding a copy of a numpy array."""
        return cls.create(np.asarray(arr))

    @staticmethod
    def _cast(arr: np.ndarray, data_type: DataType) -> np.ndarray:
        if data_type == DataType.String:
            if arr.dtype != object:
                raise TensorConstructionError(
                    str(arr.dtype), "cannot cast numeric values to string"
                )
            return arr
        if arr.dtype == object:
            raise TensorConstructionError(
                "string", f"cannot cast strings to {dtype_to_string(data_type)}"
            )
        return arr.astype(data_type.numpy_dtype)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._data is None

    def close(self) -> None:
        """Release the tensor's data. Closing twice is a no-op."""
        self._data = None

    def __enter__(self) -> "Tensor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _checked(self) -> np.ndarray:
        if self._data is None:
            raise ReleasedResourceError("Tensor")
        return self._data

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def dtype(self) -> DataType:
        return self._dtype

    @property
    def shape(self) -> Shape:
        return Shape(list(self._checked().shape))

    @property
    def rank(self) -> int:
        return self._checked().ndim

    def num_dimensions(self) -> int:
        return self.rank

    def num_elements(self) -> int:
        return int(self._checked().size)

    def num_bytes(self) -> int:
        """Size of the data in bytes (sum of element lengths for strings)."""
        data = self._checked()
        if self._dtype == DataType.String:
            return sum(len(item) for item in data.flat)
        return int(data.nbytes)

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------

    def numpy(self) -> np.ndarray:
        """Read-only view of the tensor data."""
        return self._checked()

    def to_list(self) -> Any:
        """Tensor data as (nested) Python values."""
        return self._checked().tolist()

    def _scalar(self, expected: DataType) -> Any:
        data = self._checked()
        if self._dtype != expected:
            raise format_dtype_mismatch(
                dtype_to_string(expected), dtype_to_string(self._dtype)
            )
        if data.ndim != 0:
            raise ValidationError(
                "tensor is not a scalar",
                parameter="tensor",
                expected="rank 0",
                received=f"rank {data.ndim}",
            )
        return data.item()

    def float_value(self) -> float:
        return float(self._scalar(DataType.Float32))

    def double_value(self) -> float:
        return float(self._scalar(DataType.Float64))

    def int_value(self) -> int:
        return int(self._scalar(DataType.Int32))

    def long_value(self) -> int:
        return int(self._scalar(DataType.Int64))

    def bool_value(self) -> bool:
        return bool(self._scalar(DataType.Bool))

    def bytes_value(self) -> bytes:
        return bytes(self._scalar(DataType.String))

    def string_value(self) -> str:
        return self.bytes_value().decode("utf-8")

    def __repr__(self) -> str:
        if self._data is None:
            return f"Tensor(dtype={dtype_to_string(self._dtype)}, closed)"
        return (
            f"Tensor(dtype={dtype_to_string(self._dtype)}, "
            f"shape={list(self._data.shape)})"
        )
