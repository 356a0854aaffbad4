"""
Pydantic read models returned by the engine's query operations.

These views carry viewer-relative fields computed at read time.
"""

from .comment import CommentView
from .common import Page, TagRef, TagUsage
from .moderation import AuditEntry, ReportView
from .post import PostView, TrendingPost
from .user import AdminUserRow, CreatorStats, PublicUser

__all__ = [
    "CommentView",
    "Page", "TagRef", "TagUsage",
    "AuditEntry", "ReportView",
    "PostView", "TrendingPost",
    "AdminUserRow", "CreatorStats", "PublicUser",
]
