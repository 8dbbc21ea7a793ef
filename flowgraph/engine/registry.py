# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Kernel Registry

Maps operation types to their kernel implementations.
Uses a decorator-based registration pattern for extensibility.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .context import ExecutionContext


# Type alias for kernel function signature
# Signature: (context: ExecutionContext, inputs: List[str],
#             outputs: List[str], attrs: Dict) -> None
KernelFunc = Callable[["ExecutionContext", List[str], List[str], Dict], None]


class KernelRegistry:
    """
    Registry of kernel implementations.

    Maps operation type strings to their kernel execution functions.
    Inputs and outputs are passed as tensor keys ("op_name:index"); the
    kernel reads inputs from the context and stores its outputs there.

    Example:
        @KernelRegistry.register("Add")
        def execute_add(ctx, inputs, outputs, attrs):
            x = ctx.get_tensor(inputs[0])
            y = ctx.get_tensor(inputs[1])
            ctx.set_tensor(outputs[0], np.add(x, y))

        # Later, execute the kernel
        kernel = KernelRegistry.get_kernel("Add")
        kernel(ctx, ["x:0", "y:0"], ["z:0"], {})
    """

    _registry: Dict[str, KernelFunc] = {}
    _metadata: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def register(
        cls,
        op_type: str,
        aliases: Optional[List[str]] = None,
        stateful: bool = False,
    ) -> Callable[[KernelFunc], KernelFunc]:
        """
        Decorator to register a kernel implementation.

        Args:
            op_type: Operation type (e.g., "Add", "MatMul").
            aliases: Alternative names for the operation.
            stateful: Whether the kernel reads or writes session state.

        Returns:
            Decorator function.
        """

        def decorator(func: KernelFunc) -> KernelFunc:
            cls._registry[op_type] = func
            cls._metadata[op_type] = {
                "stateful": stateful,
                "func_name": func.__name__,
            }

            if aliases:
                for alias in aliases:
                    cls._registry[alias] = func
                    cls._metadata[alias] = cls._metadata[op_type]

            return func

        return decorator

    @classmethod
    def get_kernel(cls, op_type: str) -> KernelFunc:
        """
        Get the kernel function for an operation type.

        Raises:
            KeyError: If no kernel is registered.
        """
        if op_type not in cls._registry:
            raise KeyError(
                f"Operation '{op_type}' has no kernel. "
                f"Supported operations: {cls.list_operators()}"
            )
        return cls._registry[op_type]

    @classmethod
    def is_supported(cls, op_type: str) -> bool:
        """Check if an operation type has a kernel."""
        return op_type in cls._registry

    @classmethod
    def is_stateful(cls, op_type: str) -> bool:
        return cls._metadata.get(op_type, {}).get("stateful", False)

    @classmethod
    def list_operators(cls) -> List[str]:
        """List all operation types with kernels."""
        return sorted(cls._registry.keys())

    @classmethod
    def count(cls) -> int:
        """Get number of registered kernels."""
        return len(cls._registry)

    @classmethod
    def get_unsupported_ops(cls, op_types: List[str]) -> List[str]:
        """
        Get the operation types that have no kernel.

        Args:
            op_types: Operation types to check.

        Returns:
            Sorted list of unsupported operation types.
        """
        return sorted({op for op in op_types if not cls.is_supported(op)})
