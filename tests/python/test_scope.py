# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Tests for Name Scopes

Validates:
- Scoped name composition and nesting
- Canonical empty scope
- Root scope from configuration
- Restoration on exit and thread isolation
"""

import threading

import pytest

from flowgraph.config import Config, set_config
from flowgraph.errors import ValidationError
from flowgraph.scope import (
    extract_op_name,
    extract_scope_name,
    get_name_scope,
    get_scope_parts,
    make_scoped_op_name,
    name_scope,
    normalize_segment,
    resolve_op_name,
    root_scope,
    without_name_scope,
)


class TestScopedNames:
    """Tests for composing scoped names."""

    def test_no_scope(self):
        assert get_name_scope() == ""
        assert make_scoped_op_name("x") == "x"

    def test_nested_scopes(self):
        with name_scope("outer") as outer:
            assert outer == "outer"
            with name_scope("inner") as inner:
                assert inner == "outer/inner"
                assert make_scoped_op_name("x") == "outer/inner/x"
            assert make_scoped_op_name("x") == "outer/x"
        assert make_scoped_op_name("x") == "x"

    @pytest.mark.parametrize("segment", [None, "", "/", "//"])
    def test_empty_segments_add_nothing(self, segment):
        with name_scope(segment) as current:
            assert current == ""
            assert make_scoped_op_name("x") == "x"

    def test_segment_slashes_are_stripped(self):
        with name_scope("/a/"):
            assert make_scoped_op_name("x") == "a/x"

    def test_scope_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with name_scope("a"):
                raise RuntimeError("boom")
        assert get_name_scope() == ""

    def test_invalid_names(self):
        with pytest.raises(ValidationError):
            make_scoped_op_name("")
        with pytest.raises(ValidationError):
            make_scoped_op_name(None)
        with pytest.raises(ValidationError):
            normalize_segment(3)


class TestRootScope:
    """Tests for the root segment."""

    def test_configured_root_scope(self):
        set_config(Config(root_scope="model"))
        assert get_name_scope() == "model"
        with name_scope("layer"):
            assert make_scoped_op_name("w") == "model/layer/w"

    def test_root_scope_block(self):
        with root_scope("net"):
            with name_scope("a"):
                assert make_scoped_op_name("x") == "net/a/x"
        assert get_name_scope() == ""

    def test_without_name_scope(self):
        set_config(Config(root_scope="model"))
        with name_scope("a"):
            with without_name_scope():
                assert make_scoped_op_name("x") == "x"
                with name_scope("b"):
                    assert make_scoped_op_name("x") == "b/x"
            assert make_scoped_op_name("x") == "model/a/x"


class TestNameParts:
    """Tests for splitting qualified names."""

    def test_short_name_round_trips(self):
        with name_scope("outer"):
            full = make_scoped_op_name("x")
        assert extract_op_name(full) == "x"
        assert extract_scope_name(full) == "outer"

    @pytest.mark.parametrize("name", ["a/b", "/x", "x/"])
    def test_short_name_with_slash_is_rejected(self, name):
        with name_scope("outer"):
            with pytest.raises(ValidationError):
                make_scoped_op_name(name)

    def test_resolve_op_name_accepts_paths(self):
        assert resolve_op_name("a/b") == "a/b"
        with name_scope("outer"):
            assert resolve_op_name("a/b") == "outer/a/b"
            assert resolve_op_name("/x/") == "outer/x"
            assert resolve_op_name("z:1") == "outer/z:1"
        with pytest.raises(ValidationError):
            resolve_op_name("/")

    def test_extract(self):
        assert extract_op_name("a/b/x") == "x"
        assert extract_scope_name("a/b/x") == "a/b"
        assert extract_scope_name("x") == ""
        assert get_scope_parts("a/b/x") == ["a", "b", "x"]


class TestThreadIsolation:
    """Scopes belong to the thread that pushed them."""

    def test_scope_is_thread_local(self):
        seen = {}
        entered = threading.Event()
        release = threading.Event()

        def worker():
            seen["worker_before"] = get_name_scope()
            with name_scope("worker"):
                entered.set()
                release.wait(timeout=5)
                seen["worker_inside"] = make_scoped_op_name("x")

        with name_scope("main"):
            thread = threading.Thread(target=worker)
            thread.start()
            entered.wait(timeout=5)
            seen["main"] = make_scoped_op_name("x")
            release.set()
            thread.join(timeout=5)

        assert seen == {
            "worker_before": "",
            "worker_inside": "worker/x",
            "main": "main/x",
        }
