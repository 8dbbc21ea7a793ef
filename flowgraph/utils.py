# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Utility functions for FlowGraph: whole-file readers for model and label
files, and small helpers for working with run results.
"""

from pathlib import Path
from typing import Sequence, Union

import numpy as np

from .errors import ValidationError

PathLike = Union[str, Path]


def read_all_bytes(path: PathLike) -> bytes:
    """Read a whole file as bytes (e.g. a serialized graph definition)."""
    return Path(path).read_bytes()


def read_all_lines(path: PathLike, encoding: str = "utf-8") -> list[str]:
    """Read a whole text file as a list of lines without line endings."""
    return Path(path).read_text(encoding=encoding).splitlines()


def get_arg_max(values: Union[Sequence[float], np.ndarray]) -> int:
    """
    Index of the largest value; the first one wins on ties.

    Raises:
        ValidationError: If values is empty.
    """
    arr = np.asarray(values).reshape(-1)
    if arr.size == 0:
        raise ValidationError(
            "cannot take the arg max of an empty sequence",
            parameter="values",
            expected="at least one value",
            received="empty",
        )
    return int(np.argmax(arr))


def array_as_list(values: np.ndarray) -> list:
    """Flatten an array into a Python list."""
    return np.asarray(values).reshape(-1).tolist()
