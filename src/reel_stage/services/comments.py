"""Comment tree management.

Comments are flat records arranged into a per-post tree by materialized path:
each path is the parent's path plus this comment's zero-padded id, so sorting
by path yields a depth-first walk with siblings in creation order. Hiding a
comment only flips its flag; path and depth never change, so the tree shape
survives moderation.
"""
from __future__ import annotations

from reel_stage.db.store import Store
from reel_stage.db.time import now_iso, parse_timestamp
from reel_stage.models import REACTIONS, Comment, CommentReaction
from reel_stage.schemas import CommentView
from reel_stage.utils.text import pad_id

from .users import UserService
from .visibility import can_view_hidden

__all__ = ["CommentService", "build_comment_path"]


def build_comment_path(parent: Comment | None, comment_id: int) -> str:
    """Return the materialized path for a new comment under ``parent``."""
    if parent is None:
        return pad_id(comment_id)
    return f"{parent.path}.{pad_id(comment_id)}"


class CommentService:
    """Create, read and react to comments."""

    def __init__(self, store: Store, users: UserService) -> None:
        self.store = store
        self.users = users

    def get_comment(self, comment_id: int | None) -> Comment | None:
        """Return a comment regardless of visibility."""
        if not comment_id:
            return None
        with self.store.lock:
            return next((c for c in self.store.state.comments if c.id == comment_id), None)

    def add_comment(
        self,
        user_id: int,
        post_id: int,
        body: str,
        parent_comment_id: int | None = None,
    ) -> Comment | None:
        """Add a root comment or a reply.

        Returns:
            The new comment, or ``None`` when the post does not exist or the
            parent is missing or belongs to another post.
        """
        with self.store.lock:
            state = self.store.state
            if not any(p.id == post_id for p in state.posts):
                return None
            parent = None
            if parent_comment_id is not None:
                parent = self.get_comment(parent_comment_id)
                if parent is None or parent.post_id != post_id:
                    return None
            comment_id = self.store.next_id("comments")
            comment = Comment(
                id=comment_id,
                user_id=user_id,
                post_id=post_id,
                parent_comment_id=parent.id if parent else None,
                depth=parent.depth + 1 if parent else 0,
                path=build_comment_path(parent, comment_id),
                body=body,
                created_at=now_iso(),
            )
            state.comments.append(comment)
            self.store.commit()
            return comment

    def visible_comments(self, post_id: int, viewer_id: int | None = None) -> list[Comment]:
        """Comments of a post in tree order, with hidden subtrees pruned for this viewer.

        A hidden comment stays visible to its author and to moderators. When
        a hidden comment is not visible, its whole subtree is skipped by path
        prefix without inspecting the descendants.
        """
        with self.store.lock:
            viewer = self.users.get(viewer_id)
            comments = sorted(
                (c for c in self.store.state.comments if c.post_id == post_id),
                key=lambda c: (c.path, parse_timestamp(c.created_at)),
            )
            visible: list[Comment] = []
            pruned_prefix: str | None = None
            for comment in comments:
                # Pre-order: a pruned subtree is a contiguous run after its root.
                if pruned_prefix is not None and comment.path.startswith(pruned_prefix):
                    continue
                pruned_prefix = None
                if comment.is_hidden and not can_view_hidden(viewer, comment.user_id):
                    pruned_prefix = f"{comment.path}."
                    continue
                visible.append(comment)
            return visible

    def reaction_counts(self, comment_id: int) -> dict[str, int]:
        with self.store.lock:
            counts = dict.fromkeys(REACTIONS, 0)
            for reaction in self.store.state.comment_reactions:
                if reaction.comment_id == comment_id and reaction.reaction_type in counts:
                    counts[reaction.reaction_type] += 1
            return counts

    def viewer_reactions(self, comment_id: int, viewer_id: int | None) -> list[str]:
        if not viewer_id:
            return []
        with self.store.lock:
            return [
                r.reaction_type
                for r in self.store.state.comment_reactions
                if r.comment_id == comment_id and r.user_id == viewer_id
            ]

    def post_comments(self, post_id: int, viewer_id: int | None = None) -> list[CommentView]:
        """Visible comments of a post decorated for the viewer."""
        with self.store.lock:
            views = []
            for comment in self.visible_comments(post_id, viewer_id):
                author = self.users.get(comment.user_id)
                views.append(
                    CommentView(
                        id=comment.id,
                        body=comment.body,
                        created_at=comment.created_at,
                        post_id=comment.post_id,
                        parent_comment_id=comment.parent_comment_id,
                        depth=comment.depth,
                        path=comment.path,
                        is_hidden=comment.is_hidden,
                        hidden_reason=comment.hidden_reason,
                        author_id=author.id if author else None,
                        author_username=author.username if author else "deleted",
                        author_avatar_url=author.avatar_url if author else "",
                        reactions=self.reaction_counts(comment.id),
                        viewer_reactions=self.viewer_reactions(comment.id, viewer_id),
                    )
                )
            return views

    def toggle_reaction(self, user_id: int, comment_id: int, reaction_type: str) -> bool | None:
        """Add or remove one reaction type from a user on a comment.

        A user may hold several distinct reaction types on the same comment.

        Returns:
            True when the reaction now exists, False when it was removed,
            ``None`` for an unknown reaction type, user or comment.
        """
        if reaction_type not in REACTIONS:
            return None
        with self.store.lock:
            if self.users.get(user_id) is None or self.get_comment(comment_id) is None:
                return None
            state = self.store.state
            existing = next(
                (
                    r
                    for r in state.comment_reactions
                    if r.comment_id == comment_id
                    and r.user_id == user_id
                    and r.reaction_type == reaction_type
                ),
                None,
            )
            if existing is not None:
                state.comment_reactions = [
                    r for r in state.comment_reactions if r.id != existing.id
                ]
                self.store.commit()
                return False
            state.comment_reactions.append(
                CommentReaction(
                    id=self.store.next_id("comment_reactions"),
                    comment_id=comment_id,
                    user_id=user_id,
                    reaction_type=reaction_type,
                    created_at=now_iso(),
                )
            )
            self.store.commit()
            return True
