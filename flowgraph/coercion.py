# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Tensor Coercion

Normalizes caller values into Tensors and reads Tensors back as Python
values.

Example:
    from flowgraph.coercion import new_tensor, to_float

    with new_tensor(11.0) as t:
        to_float(t)  # 11.0
"""

from collections.abc import Generator, Mapping
from contextlib import contextmanager
from typing import Any, Union

import numpy as np

from .core.tensor import Tensor
from .errors import TensorConstructionError

TensorLike = Union[Tensor, list]


def tensorize(value: Any) -> TensorLike:
    """
    Make a tensor, or a list of tensors, from a value.

    - None becomes a Float32 scalar zero
    - A Tensor is returned unchanged
    - str is encoded as a UTF-8 String scalar; bytes become a String scalar
    - list and tuple become a list with one tensor per element (recursively)
    - Mappings become a list of their tensorized values
    - numpy arrays and scalars, bool, int and float become one tensor

    Raises:
        TensorConstructionError: If a value cannot be represented.
    """
    if value is None:
        return Tensor.create(np.float32(0.0))
    if isinstance(value, Tensor):
        return value
    if isinstance(value, (list, tuple)):
        return [tensorize(item) for item in value]
    if isinstance(value, Mapping):
        return [tensorize(item) for item in value.values()]
    if isinstance(value, (str, bytes, bool, int, float, np.ndarray, np.generic)):
        return Tensor.create(value)
    raise TensorConstructionError(type(value).__name__)


def release(value: TensorLike) -> None:
    """Close a tensor, or every tensor of a (nested) list."""
    if isinstance(value, Tensor):
        value.close()
    elif isinstance(value, list):
        for item in value:
            release(item)


@contextmanager
def new_tensor(value: Any) -> Generator[TensorLike, None, None]:
    """
    Tensorize a value for the duration of a block.

    The tensors are closed when the block exits, whichever way it exits.
    A Tensor passed in is yielded as is and closed as well.
    """
    tensors = tensorize(value)
    try:
        yield tensors
    finally:
        release(tensors)


@contextmanager
def with_tensor(tensor: Tensor) -> Generator[Tensor, None, None]:
    """Use a tensor for the duration of a block, then close it."""
    try:
        yield tensor
    finally:
        tensor.close()


def to_float(tensor: Tensor) -> float:
    return tensor.float_value()


def to_double(tensor: Tensor) -> float:
    return tensor.double_value()


def to_int(tensor: Tensor) -> int:
    return tensor.int_value()


def to_long(tensor: Tensor) -> int:
    return tensor.long_value()


def to_bool(tensor: Tensor) -> bool:
    return tensor.bool_value()


def to_bytes(tensor: Tensor) -> bytes:
    return tensor.bytes_value()


def to_string(tensor: Tensor, encoding: str = "utf-8") -> str:
    """Read a String scalar as text."""
    return tensor.bytes_value().decode(encoding)


def to_floats(tensor: Tensor) -> Any:
    """Read a float tensor of any rank as nested Python lists (a float for rank 0)."""
    return np.asarray(tensor.numpy(), dtype=np.float64).tolist()


def get_shape(tensor: Tensor) -> list[int]:
    return list(tensor.numpy().shape)


def get_dtype(tensor: Tensor):
    return tensor.dtype


def get_rank(tensor: Tensor) -> int:
    return tensor.rank


def get_num_elements(tensor: Tensor) -> int:
    return tensor.num_elements()


def get_num_bytes(tensor: Tensor) -> int:
    return tensor.num_bytes()
