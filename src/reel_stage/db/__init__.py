# src/reel_stage/db/__init__.py
"""Persistence primitives: atomic snapshot writes and the write queue."""

from .coalescer import WriteCoalescer
from .writer import AtomicFileWriter, StorageError

__all__ = ["AtomicFileWriter", "StorageError", "WriteCoalescer"]
