"""User-facing projections of account records."""

from pydantic import BaseModel, ConfigDict


class PublicUser(BaseModel):
    """Account fields safe to hand to the presentation layer (no hashes or tokens)."""

    id: int
    username: str
    email: str
    bio: str = ""
    avatar_url: str = ""
    created_at: str
    role: str
    status: str
    email_verified: bool

    model_config = ConfigDict(from_attributes=True)


class AdminUserRow(PublicUser):
    """Row of the admin user list."""

    post_count: int
    report_count: int


class CreatorStats(BaseModel):
    """Leaderboard entry for top creators."""

    username: str
    avatar_url: str
    post_count: int
    received_likes: int
    role: str
