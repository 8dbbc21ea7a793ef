# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Pytest configuration for FlowGraph Python tests.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to sys.path so we can import flowgraph
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from flowgraph.config import reset_config  # noqa: E402
from flowgraph.graph_context import as_default, with_new_graph  # noqa: E402
from flowgraph.observability import FlowGraphLogger  # noqa: E402
from flowgraph.ops.registry import clear_cache  # noqa: E402

# Skip test modules that require optional dependencies not installed
collect_ignore = []

# Check for hypothesis
try:
    import hypothesis  # noqa: F401
except ImportError:
    collect_ignore.append("test_property_based.py")


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Give every test the default configuration, a fresh logger and no current graph."""
    for key in (
        "FLOWGRAPH_ROOT_SCOPE",
        "FLOWGRAPH_OPS_SCHEMA",
        "FLOWGRAPH_VERBOSITY",
        "FLOWGRAPH_JSON_LOGS",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_config()
    FlowGraphLogger.reset()
    previous = as_default(None)
    yield
    as_default(previous)
    reset_config()
    FlowGraphLogger.reset()
    clear_cache()


@pytest.fixture
def graph():
    """A fresh graph installed as the current graph."""
    with with_new_graph("test") as g:
        yield g
