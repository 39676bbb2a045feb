"""CLI commands."""

from . import (
    drain,
    enqueue,
    init,
    list_queue,
    remove,
    retry,
    status,
)

__all__ = [
    "drain",
    "enqueue",
    "init",
    "list_queue",
    "remove",
    "retry",
    "status",
]
