from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import Iterator

operation_var: contextvars.ContextVar[str] = contextvars.ContextVar("operation", default="-")


@contextmanager
def operation_scope(name: str) -> Iterator[str]:
    """Name the accessor operation in flight; nested calls keep the outer name."""
    current = operation_var.get()
    if current != "-":
        yield current
        return

    token = operation_var.set(name)
    try:
        yield name
    finally:
        operation_var.reset(token)
