"""Deferred values: literals or callables resolved when an operation executes."""

import dataclasses
from typing import Any, Awaitable, Callable, TypeVar, Union

from ..utils.async_bridge import wait_for_value

T = TypeVar('T')

# A literal value, or a callable returning the value (or an awaitable of it).
Deferred = Union[T, Callable[..., T], Callable[..., Awaitable[T]]]


def is_deferred_callable(value: Any) -> bool:
    """Check if a value must be called to produce its resolved form."""
    return callable(value) and not isinstance(value, type)


def resolve(deferred: 'Deferred[T]', *args: Any) -> T:
    """Resolve a deferred value.

    Literals are returned unchanged. Callables are invoked once with args;
    if the call returns an awaitable, it is awaited. Exceptions raised by the
    callable propagate unchanged.

    Args:
        deferred: Literal or callable
        *args: Arguments passed to the callable (typically the result history)

    Returns:
        The resolved value
    """
    if is_deferred_callable(deferred):
        return wait_for_value(deferred(*args))
    return deferred


def resolve_fields(obj: T, *args: Any) -> T:
    """Resolve every deferred field of a dataclass instance.

    Args:
        obj: Dataclass instance whose fields may hold deferred values
        *args: Arguments passed to each callable field

    Returns:
        A new instance of the same dataclass with every field resolved
    """
    if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
        raise TypeError(f"Expected a dataclass instance, got {type(obj).__name__}")

    changes = {}
    for f in dataclasses.fields(obj):
        value = getattr(obj, f.name)
        if is_deferred_callable(value):
            changes[f.name] = resolve(value, *args)
    return dataclasses.replace(obj, **changes) if changes else obj
