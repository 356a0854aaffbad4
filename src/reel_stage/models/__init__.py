"""Record models for the Reel Stage engine."""

from .comment import REACTIONS, Comment, CommentReaction
from .moderation import ModerationAction, Report
from .post import Bookmark, Like, Post
from .snapshot import ENTITY_KINDS, SCHEMA_VERSION, Counters, SearchIndexMeta, Snapshot
from .taxonomy import Category, PostTag, Tag
from .user import User

__all__ = [
    "Bookmark", "Like", "Post",
    "Category", "PostTag", "Tag",
    "Comment", "CommentReaction", "REACTIONS",
    "ModerationAction", "Report",
    "Counters", "SearchIndexMeta", "Snapshot", "ENTITY_KINDS", "SCHEMA_VERSION",
    "User",
]
