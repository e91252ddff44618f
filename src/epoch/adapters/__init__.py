"""Adapters - I/O implementations of ports."""

from .json_store import JsonStateStore
from .pypi import PyPIUpdateChecker

__all__ = [
    "JsonStateStore",
    "PyPIUpdateChecker",
]
