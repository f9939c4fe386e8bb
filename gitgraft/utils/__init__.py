"""Utilities package for gitgraft."""

from .async_bridge import (
    run_async,
    wait_for_value,
)

__all__ = [
    'run_async',
    'wait_for_value',
]
