"""Repositories."""
from src.state.repositories.kv import KeyValueRepository
__all__ = [
    "KeyValueRepository",
]
