"""Feed, search and leaderboard queries.

All queries are full scans over the in-memory collections. Text search is a
case-insensitive substring match against a blob of title, body, author name,
category name and tag names.
"""
from __future__ import annotations

from collections import Counter

from reel_stage.db.store import Store
from reel_stage.db.time import parse_timestamp
from reel_stage.models import Post
from reel_stage.schemas import CreatorStats, Page, PostView, TagUsage, TrendingPost
from reel_stage.utils.pagination import paginate
from reel_stage.utils.text import normalize_text

from .posts import DELETED_AUTHOR, PostService
from .taxonomy import TaxonomyService
from .users import UserService
from .visibility import is_visible

__all__ = ["FeedService"]


class FeedService:
    """Viewer-aware post listings and aggregate views."""

    def __init__(
        self,
        store: Store,
        users: UserService,
        taxonomy: TaxonomyService,
        posts: PostService,
    ) -> None:
        self.store = store
        self.users = users
        self.taxonomy = taxonomy
        self.posts = posts

    def search_text(self, post: Post) -> str:
        """Return the normalized blob a text query is matched against."""
        author = self.users.get(post.user_id)
        category = self.taxonomy.get_category(post.category_id)
        parts = [
            post.title,
            post.markdown_body,
            author.username if author else "",
            category.name if category else "",
            *(tag.name for tag in self.taxonomy.tags_for_post(post.id)),
        ]
        return normalize_text(" ".join(parts))

    def filter_posts(
        self,
        viewer_id: int | None = None,
        category_slug: str | None = None,
        tag_slug: str | None = None,
        query: str | None = None,
    ) -> list[Post]:
        """Posts visible to the viewer matching every given filter, newest first.

        Filters apply in order: visibility, category, tag, text query. A slug
        that names no category or tag does not restrict the result. Posts with
        equal timestamps keep insertion order.
        """
        with self.store.lock:
            state = self.store.state
            viewer = self.users.get(viewer_id)
            category = self.taxonomy.get_category_by_slug(category_slug)
            tag = self.taxonomy.get_tag_by_slug(tag_slug)
            tagged = {r.post_id for r in state.post_tags if tag and r.tag_id == tag.id}
            needle = normalize_text(query)

            matches = []
            for post in state.posts:
                if not is_visible(post.is_hidden, post.user_id, viewer):
                    continue
                if category and post.category_id != category.id:
                    continue
                if tag and post.id not in tagged:
                    continue
                if needle and needle not in self.search_text(post):
                    continue
                matches.append(post)
            matches.sort(key=lambda p: parse_timestamp(p.created_at), reverse=True)
            return matches

    def feed(
        self,
        viewer_id: int | None = None,
        category_slug: str | None = None,
        tag_slug: str | None = None,
        query: str | None = None,
        page: int | None = 1,
        page_size: int | None = None,
    ) -> Page[PostView]:
        """One decorated page of :meth:`filter_posts`."""
        settings = self.store.settings
        with self.store.lock:
            filtered = self.filter_posts(viewer_id, category_slug, tag_slug, query)
            result = paginate(
                filtered,
                page,
                settings.default_page_size if page_size is None else page_size,
                max_page_size=settings.max_page_size,
            )
            return Page(
                items=[self.posts.decorate(post, viewer_id) for post in result.items],
                total=result.total,
                pages=result.pages,
                page=result.page,
                page_size=result.page_size,
            )

    def search(
        self,
        query: str,
        viewer_id: int | None = None,
        page: int | None = 1,
        page_size: int | None = None,
    ) -> Page[PostView]:
        return self.feed(viewer_id=viewer_id, query=query, page=page, page_size=page_size)

    def trending(self, limit: int = 5) -> list[TrendingPost]:
        """Unhidden posts by like count, newest first among ties."""
        with self.store.lock:
            likes = Counter(like.post_id for like in self.store.state.likes)
            posts = [p for p in self.store.state.posts if not p.is_hidden]
            posts.sort(key=lambda p: (likes[p.id], parse_timestamp(p.created_at)), reverse=True)
            entries = []
            for post in posts[: max(limit, 0)]:
                author = self.users.get(post.user_id)
                entries.append(
                    TrendingPost(
                        id=post.id,
                        title=post.title,
                        author_username=author.username if author else DELETED_AUTHOR,
                        like_count=likes[post.id],
                    )
                )
            return entries

    def top_creators(self, limit: int = 5) -> list[CreatorStats]:
        """Users ranked by likes received, then post count, then newest account."""
        with self.store.lock:
            state = self.store.state
            likes = Counter(like.post_id for like in state.likes)
            ranked = []
            for user in state.users:
                posts = [p for p in state.posts if p.user_id == user.id and not p.is_hidden]
                received = sum(likes[p.id] for p in posts)
                ranked.append((received, len(posts), parse_timestamp(user.created_at), user))
            ranked.sort(key=lambda row: row[:3], reverse=True)
            return [
                CreatorStats(
                    username=user.username,
                    avatar_url=user.avatar_url,
                    post_count=post_count,
                    received_likes=received,
                    role=user.role,
                )
                for received, post_count, _, user in ranked[: max(limit, 0)]
            ]

    def popular_tags(self, limit: int = 20) -> list[TagUsage]:
        """Tags by number of posts using them, then alphabetically."""
        with self.store.lock:
            usage = Counter(r.tag_id for r in self.store.state.post_tags)
            tags = sorted(self.store.state.tags, key=lambda t: (-usage[t.id], t.name))
            return [
                TagUsage(id=t.id, name=t.name, slug=t.slug, usage_count=usage[t.id])
                for t in tags[: max(limit, 0)]
            ]
