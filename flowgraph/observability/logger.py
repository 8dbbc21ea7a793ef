# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Structured Logger for FlowGraph

Provides structured logging with an optional JSON output format.

Example:
    from flowgraph.observability import FlowGraphLogger, Verbosity

    logger = FlowGraphLogger.get()
    logger.set_verbosity(Verbosity.DEBUG)
    logger.debug("Operation built", component="builder", operation="outer/add")
"""

import json
import sys
from dataclasses import dataclass, asdict, field
from datetime import datetime
from enum import IntEnum
from typing import Callable, Optional, TextIO


class Verbosity(IntEnum):
    """
    Logging verbosity levels.

    Uses IntEnum for numeric comparison (e.g., if verbosity >= INFO).
    """

    SILENT = 0
    ERROR = 1
    WARNING = 2
    INFO = 3
    DEBUG = 4


@dataclass
class LogEntry:
    """
    Structured log entry.

    Attributes:
        level: Log level (ERROR, WARNING, INFO, DEBUG)
        message: Log message
        timestamp: ISO format timestamp
        component: Source component (builder, graph, session, schema)
        graph: Optional graph identifier
        operation: Optional operation name
        duration_ms: Optional duration in milliseconds
        extra: Additional context fields
    """

    level: str
    message: str
    timestamp: str
    component: str = "flowgraph"
    graph: Optional[str] = None
    operation: Optional[str] = None
    duration_ms: Optional[float] = None
    extra: dict = field(default_factory=dict)

    def to_json(self) -> str:
        """Convert to JSON string."""
        data = {k: v for k, v in asdict(self).items() if v is not None}
        if not data.get("extra"):
            data.pop("extra", None)
        return json.dumps(data, default=str)

    def to_text(self) -> str:
        """Convert to human-readable text format."""
        parts = [
            f"[{self.level}]",
            f"[{self.component}]",
            self.message,
        ]
        if self.graph is not None:
            parts.append(f"graph={self.graph}")
        if self.operation is not None:
            parts.append(f"op={self.operation}")
        if self.duration_ms is not None:
            parts.append(f"({self.duration_ms:.2f}ms)")
        return " ".join(parts)


class FlowGraphLogger:
    """
    Structured logger for FlowGraph.

    Singleton pattern ensures consistent logging configuration across the package.
    Initial verbosity and format come from flowgraph.config (FLOWGRAPH_VERBOSITY,
    FLOWGRAPH_JSON_LOGS).

    Example:
        logger = FlowGraphLogger.get()
        logger.set_verbosity(Verbosity.DEBUG)
        logger.info("Schema loaded", component="schema", num_ops=25)
    """

    _instance: Optional["FlowGraphLogger"] = None

    def __init__(self):
        """Initialize logger from the process configuration."""
        from ..config import get_config

        config = get_config()
        self._verbosity = Verbosity(config.verbosity)
        self._output: TextIO = sys.stderr
        self._json_format = config.json_logs
        self._handlers: list[Callable[[LogEntry], None]] = []

    @classmethod
    def get(cls) -> "FlowGraphLogger":
        """Get the singleton logger instance."""
        if cls._instance is None:
            cls._instance = FlowGraphLogger()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (for testing)."""
        cls._instance = None

    def set_verbosity(self, level: int) -> None:
        """
        Set verbosity level.

        Args:
            level: Verbosity level (0-4 or Verbosity enum)
        """
        if isinstance(level, Verbosity):
            self._verbosity = level
        else:
            self._verbosity = Verbosity(max(0, min(4, level)))

    def get_verbosity(self) -> Verbosity:
        """Get current verbosity level."""
        return self._verbosity

    def set_json_format(self, enabled: bool) -> None:
        """Enable or disable JSON output format."""
        self._json_format = enabled

    def set_output(self, output: TextIO) -> None:
        """Set output stream."""
        self._output = output

    def add_handler(self, handler: Callable[[LogEntry], None]) -> None:
        """Add a custom log handler."""
        self._handlers.append(handler)

    def remove_handler(self, handler: Callable[[LogEntry], None]) -> None:
        """Remove a previously added handler."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    def enabled_for(self, level: Verbosity) -> bool:
        """Check whether messages at `level` are emitted."""
        return self._verbosity >= level

    def _log(self, level: Verbosity, message: str, context: dict) -> None:
        if not self.enabled_for(level):
            return
        entry = LogEntry(
            level=level.name,
            message=message,
            timestamp=datetime.now().isoformat(),
            component=context.pop("component", "flowgraph"),
            graph=context.pop("graph", None),
            operation=context.pop("operation", None),
            duration_ms=context.pop("duration_ms", None),
            extra=context,
        )
        line = entry.to_json() if self._json_format else entry.to_text()
        self._output.write(line + "\n")
        self._output.flush()
        for handler in list(self._handlers):
            handler(entry)

    def debug(self, message: str, **context) -> None:
        """Log debug message."""
        self._log(Verbosity.DEBUG, message, context)

    def info(self, message: str, **context) -> None:
        """Log info message."""
        self._log(Verbosity.INFO, message, context)

    def warning(self, message: str, **context) -> None:
        """Log warning message."""
        self._log(Verbosity.WARNING, message, context)

    def error(self, message: str, **context) -> None:
        """Log error message."""
        self._log(Verbosity.ERROR, message, context)


def get_logger() -> FlowGraphLogger:
    """Get the global FlowGraph logger."""
    return FlowGraphLogger.get()


def set_verbosity(level: int) -> None:
    """
    Set global verbosity level.

    Args:
        level: Verbosity level (0=SILENT, 1=ERROR, 2=WARNING, 3=INFO, 4=DEBUG)
    """
    FlowGraphLogger.get().set_verbosity(level)
