"""Comment read models."""

from pydantic import BaseModel


class CommentView(BaseModel):
    """Comment decorated with author, reaction counts and the viewer's own reactions."""

    id: int
    body: str
    created_at: str
    post_id: int
    parent_comment_id: int | None
    depth: int
    path: str
    is_hidden: bool
    hidden_reason: str
    author_id: int | None
    author_username: str
    author_avatar_url: str
    reactions: dict[str, int]
    viewer_reactions: list[str]
