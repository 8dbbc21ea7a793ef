# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
FlowGraph Command Line Interface

Browse the operation schema and inspect serialized graphs.
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .errors import FlowGraphError


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for FlowGraph CLI."""
    parser = argparse.ArgumentParser(
        prog="flowgraph",
        description="FlowGraph - dataflow graph builder and runner",
    )

    parser.add_argument(
        "--version",
        "-v",
        action="store_true",
        help="Show version information",
    )

    parser.add_argument(
        "--info",
        action="store_true",
        help="Show system information",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Ops command
    ops_parser = subparsers.add_parser(
        "ops",
        help="Browse the operation schema",
    )
    ops_subparsers = ops_parser.add_subparsers(dest="ops_command")
    ops_subparsers.add_parser("list", help="List all operation types")
    show_parser = ops_subparsers.add_parser("show", help="Show one operation definition")
    show_parser.add_argument("name", help="Operation type, e.g. StringJoin")

    # Graph command
    graph_parser = subparsers.add_parser(
        "graph",
        help="Inspect a serialized graph definition",
    )
    graph_parser.add_argument("path", help="File written by export_to_graph_def()")

    args = parser.parse_args(argv)
    console = Console()

    if args.version:
        from flowgraph import __version__

        console.print(f"FlowGraph v{__version__}")
        return 0

    try:
        if args.info:
            _show_info(console)
            return 0

        if args.command == "ops":
            if args.ops_command == "list":
                return _list_ops(console)
            if args.ops_command == "show":
                return _show_op(console, args.name)
            ops_parser.print_help()
            return 0

        if args.command == "graph":
            return _show_graph(console, args.path)
    except FlowGraphError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        return 1

    # Default: show help
    parser.print_help()
    return 0


def _list_ops(console: Console) -> int:
    """Print a table of every operation in the schema."""
    from flowgraph.engine import KernelRegistry
    from flowgraph.engine import operators  # noqa: F401
    from flowgraph.ops.registry import get_all_op_defs

    table = Table(title="Operations")
    table.add_column("Name", style="cyan")
    table.add_column("Inputs", justify="right")
    table.add_column("Outputs", justify="right")
    table.add_column("Kernel")
    table.add_column("Summary")

    for op_def in get_all_op_defs():
        table.add_row(
            op_def.name,
            str(len(op_def.input_args)),
            str(len(op_def.output_args)),
            "yes" if KernelRegistry.is_supported(op_def.name) else "no",
            op_def.summary,
        )
    console.print(table)
    return 0


def _show_op(console: Console, name: str) -> int:
    """Print one operation definition."""
    from flowgraph.ops.registry import op_def_to_dict

    info = op_def_to_dict(name)
    console.print(f"[bold]{info['name']}[/bold]: {info['summary']}")
    if info["description"]:
        console.print(info["description"])

    args_table = Table(title="Arguments")
    args_table.add_column("Direction")
    args_table.add_column("Name", style="cyan")
    args_table.add_column("Type")
    args_table.add_column("Description")
    for direction in ("inputs", "outputs"):
        for arg in info[direction]:
            arg_type = arg["type"] or arg["type_attr"] or arg["type_list_attr"]
            if arg["number_attr"]:
                arg_type = f"{arg['number_attr']} * {arg_type}"
            if arg["is_ref"]:
                arg_type = f"ref({arg_type})"
            args_table.add_row(direction[:-1], arg["name"], arg_type, arg["description"])
    console.print(args_table)

    attrs_table = Table(title="Attributes")
    attrs_table.add_column("Name", style="cyan")
    attrs_table.add_column("Kind")
    attrs_table.add_column("Default")
    attrs_table.add_column("Allowed")
    for attr in info["attributes"]:
        attrs_table.add_row(
            attr["name"],
            attr["type"],
            "" if attr["default_value"] is None else escape(repr(attr["default_value"])),
            ", ".join(str(v) for v in attr["allowed_values"]),
        )
    console.print(attrs_table)
    return 0


def _show_graph(console: Console, path: str) -> int:
    """Print the operations of a serialized graph."""
    from flowgraph.graph_context import import_from_graph_def, with_new_graph
    from flowgraph.utils import read_all_bytes

    try:
        data = read_all_bytes(path)
    except OSError as e:
        console.print(f"[red]Error:[/red] cannot read {escape(path)}: {escape(str(e))}")
        return 1

    with with_new_graph(path) as graph:
        ops = import_from_graph_def(graph, data, prefix="")
        table = Table(title=f"{path} ({len(ops)} operations)")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Inputs")
        table.add_column("Device")
        for op in ops:
            table.add_row(
                op.name,
                op.type,
                ", ".join(inp.name for inp in op.flat_inputs()),
                op.device,
            )
        console.print(table)
        counts = graph.count_ops()
        console.print(
            "Types: " + ", ".join(f"{t}={n}" for t, n in sorted(counts.items()))
        )
    return 0


def _show_info(console: Console) -> None:
    """Show system and FlowGraph information."""
    import platform

    import numpy as np

    from flowgraph import __version__
    from flowgraph.config import get_config
    from flowgraph.engine import KernelRegistry
    from flowgraph.engine import operators  # noqa: F401
    from flowgraph.ops.registry import get_all_op_names

    config = get_config()
    table = Table(title="FlowGraph System Information", show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("FlowGraph Version", __version__)
    table.add_row("Python Version", platform.python_version())
    table.add_row("NumPy Version", np.__version__)
    table.add_row("Platform", platform.platform())
    table.add_row("Operation Schema", config.ops_schema_path)
    table.add_row("Operations", str(len(get_all_op_names())))
    table.add_row("Kernels", str(KernelRegistry.count()))
    table.add_row("Root Scope", config.root_scope or "<none>")
    console.print(table)


if __name__ == "__main__":
    sys.exit(main())
