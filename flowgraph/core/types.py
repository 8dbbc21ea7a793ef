# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
FlowGraph Core Types

Data types, shapes and attribute kinds shared by the graph store,
the tensor type and the interpreter.
"""

from enum import Enum, auto
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import numpy as np


class DataType(Enum):
    """Supported data types for tensors."""

    Float32 = auto()
    Float64 = auto()
    Int32 = auto()
    Int64 = auto()
    UInt8 = auto()
    String = auto()
    Bool = auto()

    @property
    def short_name(self) -> str:
        """Schema-level name of the data type ("float", "int32", ...)."""
        return _SHORT_NAMES[self]

    @property
    def numpy_dtype(self) -> np.dtype:
        """numpy dtype used to store tensors of this type."""
        return _NUMPY_DTYPES[self]

    @classmethod
    def from_numpy(cls, np_dtype: Any) -> "DataType":
        """Map a numpy dtype to a DataType."""
        np_dtype = np.dtype(np_dtype)
        if np_dtype.kind in ("S", "U", "O"):
            return cls.String
        for data_type, candidate in _NUMPY_DTYPES.items():
            if candidate == np_dtype:
                return data_type
        raise KeyError(f"No DataType for numpy dtype '{np_dtype}'")


_SHORT_NAMES = {
    DataType.Float32: "float",
    DataType.Float64: "double",
    DataType.Int32: "int32",
    DataType.Int64: "int64",
    DataType.UInt8: "uint8",
    DataType.String: "string",
    DataType.Bool: "bool",
}

_NUMPY_DTYPES = {
    DataType.Float32: np.dtype(np.float32),
    DataType.Float64: np.dtype(np.float64),
    DataType.Int32: np.dtype(np.int32),
    DataType.Int64: np.dtype(np.int64),
    DataType.UInt8: np.dtype(np.uint8),
    DataType.String: np.dtype(object),
    DataType.Bool: np.dtype(np.bool_),
}

_BY_SHORT_NAME = {name: data_type for data_type, name in _SHORT_NAMES.items()}
_BY_SHORT_NAME.update({"float32": DataType.Float32, "float64": DataType.Float64})


def dtype(key: Union[str, DataType]) -> DataType:
    """
    Look up a data type by its short name.

    Example:
        dtype("float")   # DataType.Float32
        dtype("double")  # DataType.Float64
    """
    if isinstance(key, DataType):
        return key
    name = str(key).lower()
    if name not in _BY_SHORT_NAME:
        raise KeyError(
            f"Unknown data type '{key}'. Known types: {sorted(_BY_SHORT_NAME)}"
        )
    return _BY_SHORT_NAME[name]


def dtype_size(data_type: DataType) -> int:
    """Get the size in bytes for a data type (0 for variable-length strings)."""
    if data_type == DataType.String:
        return 0
    return data_type.numpy_dtype.itemsize


def dtype_to_string(data_type: DataType) -> str:
    """Get string representation of data type."""
    return data_type.short_name


@dataclass
class Shape:
    """
    Represents tensor dimensions.

    `dims` is None when even the rank is unknown; -1 marks an unknown dimension.
    """

    dims: Optional[list[int]] = field(default_factory=list)

    @classmethod
    def scalar(cls) -> "Shape":
        return cls([])

    @classmethod
    def unknown(cls) -> "Shape":
        return cls(None)

    @classmethod
    def make(cls, *dims: int) -> "Shape":
        return cls([int(d) for d in dims])

    def is_unknown(self) -> bool:
        """Check if the rank is unknown."""
        return self.dims is None

    def rank(self) -> int:
        """Get number of dimensions (-1 when unknown)."""
        if self.dims is None:
            return -1
        return len(self.dims)

    def numel(self) -> int:
        """Get total number of elements (-1 when not fully known)."""
        if self.dims is None:
            return -1
        result = 1
        for d in self.dims:
            if d < 0:
                return -1
            result *= d
        return result

    def is_dynamic(self) -> bool:
        """Check if shape has unknown dimensions."""
        return self.dims is None or any(d < 0 for d in self.dims)

    def is_compatible_with(self, dims: tuple) -> bool:
        """Check whether concrete dims fit this (possibly partial) shape."""
        if self.dims is None:
            return True
        if len(self.dims) != len(dims):
            return False
        return all(expected < 0 or expected == actual for expected, actual in zip(self.dims, dims))

    def __getitem__(self, idx: int) -> int:
        if self.dims is None:
            raise IndexError("Shape has unknown rank")
        return self.dims[idx]

    def __len__(self) -> int:
        return max(self.rank(), 0)

    def __iter__(self):
        return iter(self.dims or [])

    def __repr__(self) -> str:
        if self.dims is None:
            return "Shape(<unknown>)"
        return f"Shape({self.dims})"


class AttrKind(Enum):
    """Kinds of operation attribute values."""

    TYPE = "type"
    SHAPE = "shape"
    TENSOR = "tensor"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"
    LIST_TYPE = "list(type)"
    LIST_SHAPE = "list(shape)"
    LIST_INT = "list(int)"
    LIST_FLOAT = "list(float)"
    LIST_BOOL = "list(bool)"
    LIST_STRING = "list(string)"

    @property
    def is_list(self) -> bool:
        return self.value.startswith("list(")

    @property
    def element_kind(self) -> "AttrKind":
        """Kind of one element of a list kind (the kind itself otherwise)."""
        if not self.is_list:
            return self
        return AttrKind(self.value[len("list("):-1])

    def list_of(self) -> "AttrKind":
        return AttrKind(f"list({self.value})")


@dataclass(frozen=True)
class AttrValue:
    """Tagged attribute value: the kind decides how the engine stores it."""

    kind: AttrKind
    value: Any

    def __repr__(self) -> str:
        return f"AttrValue({self.kind.value}, {self.value!r})"
