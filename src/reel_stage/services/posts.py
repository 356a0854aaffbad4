"""Service-level helpers for creating, reading and reacting to posts."""
from __future__ import annotations

from collections.abc import Iterable

from reel_stage.db.store import Store
from reel_stage.db.time import now_iso, parse_timestamp
from reel_stage.models import Bookmark, Like, Post
from reel_stage.models.post import MEDIA_NONE
from reel_stage.schemas import Page, PostView
from reel_stage.utils.pagination import paginate

from .comments import CommentService
from .taxonomy import TaxonomyService
from .users import UserService
from .visibility import is_visible

__all__ = ["PostService"]

DELETED_AUTHOR = "deleted"
UNKNOWN_CATEGORY_NAME = "Unknown"
UNKNOWN_CATEGORY_SLUG = "unknown"


class PostService:
    """Post constructor, viewer-aware reads, and like/bookmark toggles."""

    def __init__(
        self,
        store: Store,
        users: UserService,
        taxonomy: TaxonomyService,
        comments: CommentService,
    ) -> None:
        self.store = store
        self.users = users
        self.taxonomy = taxonomy
        self.comments = comments

    def create_post(
        self,
        *,
        user_id: int,
        category_id: int,
        title: str,
        markdown_body: str,
        rendered_html: str = "",
        excerpt: str | None = None,
        reading_time_minutes: int | None = None,
        media_url: str = "",
        media_type: str = MEDIA_NONE,
        tag_names: Iterable[str] = (),
    ) -> Post | None:
        """Create a post and its tag relations as one unit.

        Args:
            user_id: Author; must exist.
            category_id: Category; must exist.
            title: Already-validated title.
            markdown_body: Markdown source.
            rendered_html: Sanitized HTML rendered by the caller.
            excerpt: Optional summary; derived from the body when omitted.
            reading_time_minutes: Optional estimate; derived when omitted.
            media_url: Optional media reference.
            media_type: One of ``none``, ``image``, ``video``; anything else becomes ``none``.
            tag_names: Up to five tag names; extras are ignored.

        Returns:
            The stored post, or ``None`` when the author or category is missing.
        """
        with self.store.lock:
            if self.users.get(user_id) is None or self.taxonomy.get_category(category_id) is None:
                return None
            state = self.store.state
            post = Post(
                id=self.store.next_id("posts"),
                user_id=user_id,
                category_id=category_id,
                title=title,
                markdown_body=markdown_body,
                rendered_html=rendered_html,
                excerpt=excerpt or "",
                reading_time_minutes=reading_time_minutes or 0,
                media_url=media_url,
                media_type=media_type,
                created_at=now_iso(),
            )
            state.posts.append(post)
            self.taxonomy.replace_post_tags(post.id, tag_names)
            state.search_index_meta.last_rebuild_at = now_iso()
            self.store.commit()
            return post

    def get_post_raw(self, post_id: int) -> Post | None:
        """Return a post regardless of visibility."""
        with self.store.lock:
            return next((p for p in self.store.state.posts if p.id == post_id), None)

    def get_post(self, post_id: int, viewer_id: int | None = None) -> PostView | None:
        """Return a decorated post, or ``None`` when missing or hidden from the viewer."""
        with self.store.lock:
            post = self.get_post_raw(post_id)
            if post is None:
                return None
            if not is_visible(post.is_hidden, post.user_id, self.users.get(viewer_id)):
                return None
            return self.decorate(post, viewer_id)

    def decorate(self, post: Post, viewer_id: int | None = None) -> PostView:
        """Annotate ``post`` with author, category, counts and viewer-relative flags."""
        with self.store.lock:
            state = self.store.state
            viewer = self.users.get(viewer_id)
            author = self.users.get(post.user_id)
            category = self.taxonomy.get_category(post.category_id)
            return PostView(
                id=post.id,
                title=post.title,
                markdown_body=post.markdown_body,
                rendered_html=post.rendered_html,
                excerpt=post.excerpt,
                reading_time_minutes=post.reading_time_minutes,
                media_url=post.media_url,
                media_type=post.media_type,
                created_at=post.created_at,
                is_hidden=post.is_hidden,
                hidden_reason=post.hidden_reason,
                author_id=author.id if author else None,
                author_username=author.username if author else DELETED_AUTHOR,
                author_avatar_url=author.avatar_url if author else "",
                author_status=author.status if author else "active",
                category_name=category.name if category else UNKNOWN_CATEGORY_NAME,
                category_slug=category.slug if category else UNKNOWN_CATEGORY_SLUG,
                like_count=self.count_likes(post.id),
                comment_count=len(self.comments.visible_comments(post.id, viewer_id)),
                bookmark_count=sum(1 for b in state.bookmarks if b.post_id == post.id),
                liked_by_me=viewer is not None and self.has_like(viewer.id, post.id),
                bookmarked_by_me=viewer is not None and self.has_bookmark(viewer.id, post.id),
                tags=self.taxonomy.tags_for_post(post.id),
            )

    def count_likes(self, post_id: int) -> int:
        with self.store.lock:
            return sum(1 for like in self.store.state.likes if like.post_id == post_id)

    def has_like(self, user_id: int, post_id: int) -> bool:
        with self.store.lock:
            return any(
                like.user_id == user_id and like.post_id == post_id
                for like in self.store.state.likes
            )

    def has_bookmark(self, user_id: int, post_id: int) -> bool:
        with self.store.lock:
            return any(
                b.user_id == user_id and b.post_id == post_id for b in self.store.state.bookmarks
            )

    def toggle_like(self, user_id: int, post_id: int) -> bool | None:
        """Add or remove the user's like.

        Returns:
            True when the like now exists, False when it was removed, ``None``
            when the user or post does not exist.
        """
        with self.store.lock:
            if self.users.get(user_id) is None or self.get_post_raw(post_id) is None:
                return None
            state = self.store.state
            existing = next(
                (
                    like
                    for like in state.likes
                    if like.user_id == user_id and like.post_id == post_id
                ),
                None,
            )
            if existing is not None:
                state.likes = [like for like in state.likes if like.id != existing.id]
                self.store.commit()
                return False
            state.likes.append(
                Like(
                    id=self.store.next_id("likes"),
                    user_id=user_id,
                    post_id=post_id,
                    created_at=now_iso(),
                )
            )
            self.store.commit()
            return True

    def toggle_bookmark(self, user_id: int, post_id: int) -> bool | None:
        """Add or remove the user's bookmark; same contract as :meth:`toggle_like`."""
        with self.store.lock:
            if self.users.get(user_id) is None or self.get_post_raw(post_id) is None:
                return None
            state = self.store.state
            existing = next(
                (b for b in state.bookmarks if b.user_id == user_id and b.post_id == post_id),
                None,
            )
            if existing is not None:
                state.bookmarks = [b for b in state.bookmarks if b.id != existing.id]
                self.store.commit()
                return False
            state.bookmarks.append(
                Bookmark(
                    id=self.store.next_id("bookmarks"),
                    user_id=user_id,
                    post_id=post_id,
                    created_at=now_iso(),
                )
            )
            self.store.commit()
            return True

    def bookmark_count_for_user(self, user_id: int) -> int:
        with self.store.lock:
            return sum(1 for b in self.store.state.bookmarks if b.user_id == user_id)

    def user_posts(self, user_id: int, viewer_id: int | None = None) -> list[PostView]:
        """Posts written by ``user_id`` that the viewer may see, newest first."""
        with self.store.lock:
            viewer = self.users.get(viewer_id)
            posts = [
                p
                for p in self.store.state.posts
                if p.user_id == user_id and is_visible(p.is_hidden, p.user_id, viewer)
            ]
            posts.sort(key=lambda p: parse_timestamp(p.created_at), reverse=True)
            return [self.decorate(p, viewer_id) for p in posts]

    def user_bookmarks(
        self, user_id: int, page: int | None = 1, page_size: int | None = None
    ) -> Page[PostView]:
        """Page through a user's bookmarked posts, most recently bookmarked first."""
        settings = self.store.settings
        with self.store.lock:
            viewer = self.users.get(user_id)
            bookmarks = sorted(
                (b for b in self.store.state.bookmarks if b.user_id == user_id),
                key=lambda b: parse_timestamp(b.created_at),
                reverse=True,
            )
            posts = [
                post
                for post in (self.get_post_raw(b.post_id) for b in bookmarks)
                if post is not None and is_visible(post.is_hidden, post.user_id, viewer)
            ]
            result = paginate(
                posts,
                page,
                settings.default_page_size if page_size is None else page_size,
                max_page_size=settings.max_page_size,
            )
            return Page(
                items=[self.decorate(p, user_id) for p in result.items],
                total=result.total,
                pages=result.pages,
                page=result.page,
                page_size=result.page_size,
            )
