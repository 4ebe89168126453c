"""Whole-file binary I/O helpers."""

from .files import file_size, read_binary, write_binary

__all__ = ["file_size", "read_binary", "write_binary"]
