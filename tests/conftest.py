# tests/conftest.py
from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from itertools import count
from pathlib import Path
from typing import Any

import pytest

from reel_stage.core.settings import Settings
from reel_stage.engine import Engine
from reel_stage.models import Category, Post, User

_USER_COUNTER = count(1)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a per-test data directory, without default categories."""
    return Settings(data_dir=tmp_path / "data", seed_categories=False)


@pytest.fixture()
def db_path(settings: Settings) -> Path:
    return settings.database_path


@pytest.fixture()
def engine(settings: Settings) -> Iterator[Engine]:
    eng = Engine.open(settings=settings)
    try:
        yield eng
    finally:
        eng.close()


@pytest.fixture()
def write_backing_file(db_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a raw document to the backing file before an engine opens it."""

    def _write(document: dict[str, Any]) -> Path:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        db_path.write_text(json.dumps(document), encoding="utf-8")
        return db_path

    return _write


@pytest.fixture()
def make_user(engine: Engine) -> Callable[..., User]:
    def _make_user(username: str | None = None, role: str | None = None) -> User:
        n = next(_USER_COUNTER)
        name = username or f"user{n}"
        user = engine.users.create_user(name, f"{name.lower()}@example.com", f"hash-{n}")
        assert user is not None
        if role is not None:
            actor = next(u for u in engine.store.state.users if u.role == "admin")
            assert engine.moderation.change_role(user.id, role, actor.id) is not None
        return user

    return _make_user


@pytest.fixture()
def category(engine: Engine) -> Category:
    created = engine.taxonomy.create_category("Videography", "videography", "Shooting and editing")
    assert created is not None
    return created


@pytest.fixture()
def make_post(engine: Engine, category: Category) -> Callable[..., Post]:
    def _make_post(
        author: User,
        title: str = "A post",
        body: str = "Some markdown body",
        tags: tuple[str, ...] = (),
        category_id: int | None = None,
    ) -> Post:
        post = engine.posts.create_post(
            user_id=author.id,
            category_id=category_id or category.id,
            title=title,
            markdown_body=body,
            rendered_html=f"<p>{body}</p>",
            tag_names=tags,
        )
        assert post is not None
        return post

    return _make_post


@pytest.fixture()
def admin(make_user: Callable[..., User]) -> User:
    """First user created in an engine; promoted to admin automatically."""
    return make_user("alice")


@pytest.fixture()
def member(admin: User, make_user: Callable[..., User]) -> User:
    return make_user("bob")
