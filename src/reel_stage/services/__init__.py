# src/reel_stage/services/__init__.py
"""Domain services operating on a shared :class:`~reel_stage.db.store.Store`."""

from .comments import CommentService
from .feed import FeedService
from .moderation import ModerationService
from .posts import PostService
from .taxonomy import TaxonomyService
from .users import UserService

__all__ = [
    "CommentService",
    "FeedService",
    "ModerationService",
    "PostService",
    "TaxonomyService",
    "UserService",
]
