"""Crash-safe replacement of the backing file.

A snapshot is written to a temporary file in the same directory and then
renamed over the canonical path, so readers and crashes only ever observe
either the previous complete file or the new complete file.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when a snapshot cannot be made durable.

    Mutations already applied in memory can no longer be guaranteed to reach
    disk, so callers should treat this as fatal.
    """


class AtomicFileWriter:
    """Write complete snapshots to ``path`` via temp file + rename."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def write(self, payload: str) -> None:
        """Durably replace the canonical file with ``payload``.

        Args:
            payload: Complete serialized snapshot

        Raises:
            StorageError: If the temp file cannot be written or renamed. The
                canonical file is left untouched in either case.
        """
        tmp_path: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                suffix=".tmp",
                prefix=self.path.stem + "_",
                dir=self.path.parent,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)  # Atomic on POSIX
        except OSError as e:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
            logger.error("Failed to write snapshot to %s: %s", self.path, e)
            raise StorageError(f"Failed to write snapshot to {self.path}: {e}") from e

        logger.debug("Wrote %d bytes to %s", len(payload), self.path)

    def read(self) -> str | None:
        """Return the current file contents, or ``None`` if the file does not exist."""
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
