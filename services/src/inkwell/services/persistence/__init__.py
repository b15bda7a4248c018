"""Filesystem persistence helpers."""

from .atomic import locked_path, read_text_exact, write_text_atomic

__all__ = ["locked_path", "read_text_exact", "write_text_atomic"]
