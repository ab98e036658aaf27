"""
Invocation context management.
Use ContextVar to share the current invocation across nested function calls.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional


# Context variable for the invocation ID (UUID).
_invocation_id_var: ContextVar[Optional[str]] = ContextVar("invocation_id", default=None)
# Context variable for the function definition being invoked.
_function_var: ContextVar[Optional[str]] = ContextVar("function", default=None)


def get_invocation_id() -> Optional[str]:
    """Get the current invocation ID."""
    return _invocation_id_var.get()


def get_function_definition() -> Optional[str]:
    """Get the function definition of the current invocation."""
    return _function_var.get()


def start_invocation(definition: str, invocation_id: Optional[str] = None) -> str:
    """
    Mark the start of a function invocation in the current context.

    A nested invocation (e.g. a routed or composed function) keeps the
    outer invocation ID so that its log lines can be correlated.

    Args:
        definition: function definition being invoked
        invocation_id: explicit ID to use (generated when missing)

    Returns:
        The invocation ID in effect
    """
    new_id = invocation_id or _invocation_id_var.get() or str(uuid.uuid4())
    _invocation_id_var.set(new_id)
    _function_var.set(definition)
    return new_id


def clear_invocation() -> None:
    """Clear the invocation context."""
    _invocation_id_var.set(None)
    _function_var.set(None)


@contextmanager
def invocation_scope(definition: str) -> Iterator[str]:
    """
    Run a block as an invocation of ``definition``.

    The previous context is restored on exit, so nested scopes report the
    inner function while keeping the outer invocation ID.
    """
    id_token = _invocation_id_var.set(_invocation_id_var.get())
    function_token = _function_var.set(_function_var.get())
    try:
        yield start_invocation(definition)
    finally:
        _function_var.reset(function_token)
        _invocation_id_var.reset(id_token)
