"""Output formatting utilities."""

from .formatters import format_error, format_success, format_table, format_warning
from .json_output import json_output

__all__ = [
    "format_error",
    "format_success",
    "format_table",
    "format_warning",
    "json_output",
]
