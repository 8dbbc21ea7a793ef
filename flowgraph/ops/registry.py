# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Operation Schema Registry

Loads the operation schema document once per path and answers lookups
against it. The document path comes from the process configuration
(FLOWGRAPH_OPS_SCHEMA, default: the bundled ops.json).
"""

from __future__ import annotations

import time
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from ..config import get_config
from ..core.op_def import OpDef, parse_op_list
from ..errors import SchemaError, UnknownOperationError
from ..observability import get_logger


@lru_cache(maxsize=None)
def _load_op_defs(path: str) -> Mapping[str, OpDef]:
    start = time.perf_counter()
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise SchemaError(f"cannot read schema document: {exc}", path=path) from exc

    op_defs = parse_op_list(text, path=path)
    get_logger().debug(
        f"Loaded {len(op_defs)} operation definitions from {path}",
        component="schema",
        duration_ms=(time.perf_counter() - start) * 1000,
    )
    return MappingProxyType({op_def.name: op_def for op_def in op_defs})


def get_op_def_map(path: Optional[str] = None) -> Mapping[str, OpDef]:
    """
    Get all operation definitions keyed by operation type.

    Args:
        path: Schema document; defaults to the configured ops_schema_path.

    Raises:
        SchemaError: If the document is unreadable or malformed.
    """
    return _load_op_defs(path or get_config().ops_schema_path)


def get_all_op_defs(path: Optional[str] = None) -> List[OpDef]:
    """All operation definitions, in document order."""
    return list(get_op_def_map(path).values())


def get_all_op_names(path: Optional[str] = None) -> List[str]:
    """All operation type names, in document order."""
    return list(get_op_def_map(path).keys())


def get_op_def(name: str, path: Optional[str] = None) -> OpDef:
    """
    Get one operation definition.

    Raises:
        UnknownOperationError: If the schema has no such operation.
    """
    op_defs = get_op_def_map(path)
    if name not in op_defs:
        raise UnknownOperationError(name, list(op_defs))
    return op_defs[name]


def op_def_to_dict(op: Any) -> Dict[str, Any]:
    """
    Describe an operation definition as a plain dict.

    Args:
        op: Operation type name or OpDef.

    Returns:
        Dict with name, summary, description, attributes, inputs and outputs.
    """
    op_def = op if isinstance(op, OpDef) else get_op_def(op)
    return op_def.to_dict()


def clear_cache() -> None:
    """Forget loaded schema documents (the next lookup reloads them)."""
    _load_op_defs.cache_clear()
