"""Process-wide entity store.

The store owns the in-memory :class:`~reel_stage.models.Snapshot`, the lock
that serializes access to it, per-kind id allocation, and the path from a
committed mutation to disk. Services receive a store by reference; nothing in
the engine keeps ambient global state.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from types import TracebackType

from reel_stage.core.settings import Settings
from reel_stage.core.settings import settings as default_settings
from reel_stage.models import ENTITY_KINDS, Category, Snapshot
from reel_stage.models.taxonomy import CATEGORY_SEED

from .coalescer import WriteCoalescer
from .migrations import SchemaMigrator, hydrate_counters, parse_document
from .writer import AtomicFileWriter

logger = logging.getLogger(__name__)


class Store:
    """In-memory collections plus monotonic id counters, persisted as whole snapshots.

    Reads and writes both run under :attr:`lock` so compound updates appear
    atomic. Call :meth:`commit` after a successful mutation; the snapshot is
    serialized immediately and written to disk by the flush thread.
    """

    def __init__(self, path: Path | None = None, settings: Settings | None = None) -> None:
        """Initialize an empty, unloaded store.

        Args:
            path: Backing file; defaults to ``settings.database_path``.
            settings: Engine settings; defaults to the module-level settings.
        """
        self.settings = settings or default_settings
        self.path = Path(path) if path is not None else self.settings.database_path
        self.state = Snapshot()
        self.lock = threading.RLock()
        self.writer = AtomicFileWriter(self.path)
        self.coalescer = WriteCoalescer(self.writer)

    @classmethod
    def open(cls, path: Path | None = None, settings: Settings | None = None) -> "Store":
        """Create a store and run the startup load/migrate sequence."""
        store = cls(path, settings)
        store.load()
        return store

    def load(self) -> None:
        """Load, migrate and re-persist the backing file.

        A missing file starts empty; an unreadable or non-JSON file is replaced
        by empty state. Default categories are seeded only when none remain.
        """
        with self.lock:
            try:
                text = self.writer.read()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not read %s (%s); starting from empty state", self.path, e)
                text = None

            if text is None:
                logger.info("No backing file at %s; initializing empty state", self.path)
            raw = parse_document(text)
            self.state = SchemaMigrator().migrate(raw or {})
            if self.settings.seed_categories and not self.state.categories:
                self._seed_categories()
            hydrate_counters(self.state)
            logger.info(
                "Loaded %s: %d users, %d posts, %d comments",
                self.path,
                len(self.state.users),
                len(self.state.posts),
                len(self.state.comments),
            )
            self.commit()

    def _seed_categories(self) -> None:
        for sort_order, (name, slug, description) in enumerate(CATEGORY_SEED, start=1):
            self.state.categories.append(
                Category(
                    id=self.next_id("categories"),
                    name=name,
                    slug=slug,
                    description=description,
                    sort_order=sort_order,
                )
            )
        logger.info("Seeded %d default categories", len(CATEGORY_SEED))

    def next_id(self, kind: str) -> int:
        """Allocate the next identifier for ``kind``; ids are never reused."""
        if kind not in ENTITY_KINDS:
            raise KeyError(f"Unknown entity kind: {kind}")
        with self.lock:
            value = getattr(self.state.counters, kind) + 1
            setattr(self.state.counters, kind, value)
            return value

    def commit(self) -> None:
        """Serialize the current state and queue it for writing.

        Raises:
            StorageError: If an earlier snapshot could not be written.
        """
        with self.lock:
            payload = self.state.serialize()
            self.coalescer.enqueue(payload)

    def flush(self) -> None:
        """Block until every committed snapshot has reached disk."""
        self.coalescer.wait()

    def close(self) -> None:
        """Write out pending snapshots and stop the flush thread."""
        self.coalescer.stop(timeout=self.settings.flush_timeout_seconds)

    def __enter__(self) -> "Store":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
