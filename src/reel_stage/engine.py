"""Engine facade: one store plus the services that operate on it."""
from __future__ import annotations

import logging
from pathlib import Path
from types import TracebackType

from reel_stage.core.settings import Settings
from reel_stage.db.store import Store
from reel_stage.services import (
    CommentService,
    FeedService,
    ModerationService,
    PostService,
    TaxonomyService,
    UserService,
)

logger = logging.getLogger(__name__)


class Engine:
    """Owns the store lifecycle and wires the domain services together.

    Use :meth:`open` to load and migrate the backing file, and :meth:`close`
    (or a ``with`` block) to flush pending writes at shutdown.
    """

    def __init__(self, store: Store) -> None:
        self.store = store
        self.users = UserService(store)
        self.taxonomy = TaxonomyService(store)
        self.comments = CommentService(store, self.users)
        self.posts = PostService(store, self.users, self.taxonomy, self.comments)
        self.moderation = ModerationService(store, self.users, self.posts, self.comments)
        self.feed = FeedService(store, self.users, self.taxonomy, self.posts)

    @classmethod
    def open(cls, path: Path | str | None = None, settings: Settings | None = None) -> "Engine":
        """Load (and migrate) the backing file and return a ready engine."""
        store = Store.open(Path(path) if path is not None else None, settings)
        logger.debug("Engine ready on %s", store.path)
        return cls(store)

    @property
    def settings(self) -> Settings:
        return self.store.settings

    def flush(self) -> None:
        """Block until every committed change is on disk."""
        self.store.flush()

    def close(self) -> None:
        self.store.close()
        logger.debug("Engine closed for %s", self.store.path)

    def __enter__(self) -> "Engine":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
