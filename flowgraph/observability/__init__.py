# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
FlowGraph Observability Module

Structured logging for graph construction and session runs.
"""

from .logger import (
    Verbosity,
    LogEntry,
    FlowGraphLogger,
    get_logger,
    set_verbosity,
)

__all__ = [
    "Verbosity",
    "LogEntry",
    "FlowGraphLogger",
    "get_logger",
    "set_verbosity",
]
