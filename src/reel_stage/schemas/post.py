"""Post read models annotated for a specific viewer."""

from pydantic import BaseModel

from .common import TagRef


class PostView(BaseModel):
    """Post decorated with author, category, counts and viewer-relative flags.

    ``liked_by_me`` and ``bookmarked_by_me`` are computed per request and never
    persisted.
    """

    id: int
    title: str
    markdown_body: str
    rendered_html: str
    excerpt: str
    reading_time_minutes: int
    media_url: str
    media_type: str
    created_at: str
    is_hidden: bool
    hidden_reason: str
    author_id: int | None
    author_username: str
    author_avatar_url: str
    author_status: str
    category_name: str
    category_slug: str
    like_count: int
    comment_count: int
    bookmark_count: int
    liked_by_me: bool
    bookmarked_by_me: bool
    tags: list[TagRef]


class TrendingPost(BaseModel):
    """Compact entry of the trending list."""

    id: int
    title: str
    author_username: str
    like_count: int
