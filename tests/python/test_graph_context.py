# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Tests for the Graph Context

Validates:
- Current graph installation and restoration
- Thread isolation of the current graph
- Graph definition export and import under a prefix
"""

import json
import threading

import pytest

from flowgraph.core import Graph
from flowgraph.errors import GraphConstructionError, NoDefaultGraphError, ReleasedResourceError
from flowgraph.graph_context import (
    as_default,
    export_to_graph_def,
    get_default_graph,
    get_graph,
    import_from_graph_def,
    new_graph,
    with_graph,
    with_new_graph,
)
from flowgraph.ops import core_ops as ops
from flowgraph.runner import run
from flowgraph.scope import name_scope


class TestCurrentGraph:
    """Tests for the ambient current graph."""

    def test_no_graph_installed(self):
        assert get_graph() is None
        with pytest.raises(NoDefaultGraphError):
            get_default_graph()

    def test_with_new_graph(self):
        with with_new_graph("g") as g:
            assert get_default_graph() is g
            assert g.name == "g"
        assert get_graph() is None
        assert g.closed

    def test_nested_graphs_restore(self):
        with with_new_graph() as outer:
            with with_new_graph() as inner:
                assert get_default_graph() is inner
            assert get_default_graph() is outer
            assert not outer.closed

    def test_restored_after_exception(self):
        with with_new_graph() as outer:
            with pytest.raises(RuntimeError):
                with with_new_graph():
                    raise RuntimeError("boom")
            assert get_default_graph() is outer

    def test_with_graph_does_not_close(self):
        g = new_graph()
        with with_graph(g) as installed:
            assert installed is g
            ops.constant(1.0, name="c")
        assert not g.closed
        assert "c" in g
        assert get_graph() is None
        g.close()

    def test_as_default_returns_previous(self):
        g1, g2 = Graph(), Graph()
        assert as_default(g1) is None
        assert as_default(g2) is g1
        assert as_default(None) is g2

    def test_closed_graph(self):
        with with_new_graph() as g:
            pass
        with pytest.raises(ReleasedResourceError):
            g.operations()

    def test_current_graph_is_thread_local(self):
        seen = {}

        def worker():
            seen["before"] = get_graph()
            with with_new_graph() as worker_graph:
                ops.constant(1.0, name="w")
                seen["worker_ops"] = [op.name for op in worker_graph.operations()]

        with with_new_graph() as main_graph:
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join(timeout=5)
            assert get_default_graph() is main_graph
            assert main_graph.num_operations() == 0

        assert seen == {"before": None, "worker_ops": ["w"]}


def _build_adder():
    x = ops.placeholder("x", "float")
    y = ops.placeholder("y", "float")
    ops.add(x, y, name="z")


class TestGraphDef:
    """Tests for export_to_graph_def() and import_from_graph_def()."""

    def test_round_trip_under_prefix(self):
        with with_new_graph():
            _build_adder()
            graph_def = export_to_graph_def()

        with with_new_graph() as g:
            imported = import_from_graph_def(g, graph_def, prefix="imported")
            assert [op.name for op in imported] == ["imported/x", "imported/y", "imported/z"]
            result = run(feed_dict={"imported/x": 11.0, "imported/y": 22.0}, fetch="imported/z")
            with result:
                assert result.float_value() == 33.0

    def test_prefix_defaults_to_current_scope(self):
        with with_new_graph():
            _build_adder()
            graph_def = export_to_graph_def()

        with with_new_graph() as g:
            with name_scope("outer"):
                import_from_graph_def(g, graph_def)
                result = run(feed_dict={"x": 1.0, "y": 2.0}, fetch="z")
            with result:
                assert result.float_value() == 3.0
            assert "outer/z" in g

    def test_constants_and_lists_survive(self):
        with with_new_graph():
            ops.string_join(
                [ops.constant("Part1"), ops.constant("Part2")],
                separator=", ",
                name="join",
                device="/cpu:0",
            )
            graph_def = export_to_graph_def()

        with with_new_graph() as g:
            import_from_graph_def(g, graph_def, prefix="")
            assert g.operation("join").device == "/cpu:0"
            with run(fetch="join") as result:
                assert result.string_value() == "Part1, Part2"

    def test_import_twice_under_same_prefix(self):
        with with_new_graph():
            _build_adder()
            graph_def = export_to_graph_def()

        with with_new_graph() as g:
            import_from_graph_def(g, graph_def, prefix="a")
            with pytest.raises(GraphConstructionError):
                import_from_graph_def(g, graph_def, prefix="a")

    def test_malformed_document(self):
        with with_new_graph() as g:
            with pytest.raises(GraphConstructionError):
                import_from_graph_def(g, b"not json")
            with pytest.raises(GraphConstructionError):
                import_from_graph_def(g, b'{"node": [{"name": "z", "op": "Add", "input": ["x:0", "y:0"]}]}')

    def test_failed_import_leaves_graph_unchanged(self):
        with with_new_graph():
            _build_adder()
            document = json.loads(export_to_graph_def())
        document["node"].append(
            {"name": "bad", "op": "Identity", "input": ["missing:0"], "attr": {}, "device": ""}
        )

        with with_new_graph() as g:
            ops.constant(1.0, name="keep")
            with pytest.raises(GraphConstructionError):
                import_from_graph_def(g, json.dumps(document).encode("utf-8"), prefix="imp")
            assert [op.name for op in g.operations()] == ["keep"]
            # The same names can be imported once the document is fixed.
            document["node"].pop()
            imported = import_from_graph_def(g, json.dumps(document).encode("utf-8"), prefix="imp")
            assert len(imported) == 3
