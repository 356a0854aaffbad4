# tests/test_migrations.py
from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from reel_stage.core.settings import Settings
from reel_stage.db.migrations import SchemaMigrator, parse_document
from reel_stage.db.store import Store
from reel_stage.models import SCHEMA_VERSION
from reel_stage.utils.text import pad_id


def _legacy_document() -> dict[str, Any]:
    return {
        "schema_version": 1,
        "counters": {"users": 1, "posts": "bogus"},
        "users": [
            {"id": 1, "username": "Alice", "email": " ALICE@Example.com ", "role": "owner"},
            {"id": 2, "username": "bob", "email": "bob@example.com", "status": "frozen",
             "email_verified": False},
        ],
        "categories": [
            {"id": 1, "name": "Gear Talk"},
            {"id": 2, "name": "Gear talk", "slug": "gear-talk"},
            {"id": 3, "name": "", "slug": ""},
        ],
        "posts": [
            {"id": 1, "user_id": 2, "category_id": 1, "title": " Hello ", "body": "Legacy body text",
             "media_type": "gif"},
        ],
        "comments": [
            {"id": 1, "post_id": 1, "user_id": 2, "body": "root"},
            {"id": 2, "post_id": 1, "user_id": 1, "parent_comment_id": 1, "body": "reply"},
            {"id": 3, "post_id": 1, "user_id": 1, "parent_comment_id": 99, "depth": 4,
             "path": "0000000099.0000000003", "body": "orphan"},
        ],
        "tags": [
            {"id": 1, "slug": "drone", "name": "drone"},
            {"id": 2, "slug": "drone", "name": "Drone"},
            {"id": 0, "slug": "lens", "name": "lens"},
        ],
        "post_tags": [{"post_id": 1, "tag_id": 1}, {"post_id": 1, "tag_id": 1}],
        "likes": [
            {"id": 1, "user_id": 1, "post_id": 1},
            {"id": 2, "user_id": 1, "post_id": 1},
            {"id": 3, "user_id": 0, "post_id": 1},
        ],
        "bookmarks": "not-a-list",
        "comment_reactions": [
            {"id": 1, "comment_id": 1, "user_id": 1, "reaction_type": "fire"},
            {"id": 2, "comment_id": 1, "user_id": 1, "reaction_type": "clap"},
            {"id": 3, "comment_id": -1, "user_id": 1, "reaction_type": "clap"},
        ],
        "reports": [
            {"id": 1, "reporter_user_id": 2, "target_type": "post", "target_id": 1},
            {"id": 2, "reporter_user_id": 2, "target_type": "post", "target_id": 0},
        ],
        "moderation_actions": [
            {"id": 1, "actor_user_id": 1, "action_type": "post.hide", "target_type": "post",
             "target_id": 1},
            {"id": 2, "actor_user_id": None, "action_type": "post.hide", "target_id": 1},
        ],
    }


def test_coerces_users_and_backfills_admin() -> None:
    snapshot = SchemaMigrator().migrate(_legacy_document())
    alice, bob = snapshot.users

    assert alice.role == "admin"
    assert alice.email == "alice@example.com"
    assert alice.email_verified is True
    assert bob.role == "user"
    assert bob.status == "active"
    assert bob.email_verified is False


def test_existing_admin_is_not_replaced() -> None:
    snapshot = SchemaMigrator().migrate(
        {"users": [{"id": 1, "username": "a"}, {"id": 2, "username": "b", "role": "admin"}]}
    )
    assert [u.role for u in snapshot.users] == ["user", "admin"]


def test_categories_and_tags_deduplicated_by_slug() -> None:
    """First occurrence of a slug wins; a blank slug is re-derived from the name."""
    snapshot = SchemaMigrator().migrate(_legacy_document())

    assert [(c.id, c.slug) for c in snapshot.categories] == [(1, "gear-talk"), (3, "category-3")]
    assert snapshot.categories[1].name == "Category 3"
    assert [(t.id, t.slug) for t in snapshot.tags] == [(1, "drone")]


def test_legacy_post_body_upgraded() -> None:
    snapshot = SchemaMigrator().migrate(_legacy_document())
    post = snapshot.posts[0]

    assert snapshot.schema_version == SCHEMA_VERSION
    assert post.markdown_body == "Legacy body text"
    assert post.title == "Hello"
    assert post.media_type == "none"
    assert post.excerpt == "Legacy body text"
    assert post.reading_time_minutes == 1


def test_dangling_parent_demoted_to_root() -> None:
    snapshot = SchemaMigrator().migrate(_legacy_document())
    by_id = {c.id: c for c in snapshot.comments}

    assert by_id[3].parent_comment_id is None
    assert by_id[3].depth == 0
    assert by_id[3].path == pad_id(3)


def test_missing_paths_rebuilt_from_parent_chain() -> None:
    snapshot = SchemaMigrator().migrate(_legacy_document())
    by_id = {c.id: c for c in snapshot.comments}

    assert by_id[1].path == pad_id(1)
    assert by_id[2].path == f"{pad_id(1)}.{pad_id(2)}"
    assert by_id[2].depth == 1


def test_cross_post_parent_and_cycles_become_roots() -> None:
    snapshot = SchemaMigrator().migrate(
        {
            "comments": [
                {"id": 1, "post_id": 1, "parent_comment_id": 2},
                {"id": 2, "post_id": 1, "parent_comment_id": 1},
                {"id": 3, "post_id": 2, "parent_comment_id": 1},
                {"id": 4, "post_id": 1, "parent_comment_id": 4},
            ]
        }
    )
    by_id = {c.id: c for c in snapshot.comments}

    assert by_id[3].parent_comment_id is None and by_id[3].depth == 0
    assert by_id[4].parent_comment_id is None and by_id[4].path == pad_id(4)
    roots = [c for c in (by_id[1], by_id[2]) if c.parent_comment_id is None]
    assert len(roots) == 1
    child = by_id[1] if roots[0] is by_id[2] else by_id[2]
    assert child.depth == 1
    assert child.path == f"{roots[0].path}.{pad_id(child.id)}"


def test_unresolved_and_duplicate_relations_dropped() -> None:
    snapshot = SchemaMigrator().migrate(_legacy_document())

    assert [like.id for like in snapshot.likes] == [1]
    assert len(snapshot.post_tags) == 1
    assert snapshot.bookmarks == []
    assert [r.reaction_type for r in snapshot.comment_reactions] == ["fire", "clap"]
    assert [r.id for r in snapshot.reports] == [1]
    assert [a.id for a in snapshot.moderation_actions] == [1]


def test_counters_raised_to_highest_id() -> None:
    snapshot = SchemaMigrator().migrate(_legacy_document())

    assert snapshot.counters.users == 2
    assert snapshot.counters.posts == 1
    assert snapshot.counters.comments == 3
    assert snapshot.counters.reports == 1


def test_counters_never_lowered() -> None:
    snapshot = SchemaMigrator().migrate({"counters": {"posts": 40}, "posts": [{"id": 3}]})
    assert snapshot.counters.posts == 40


def test_migration_is_a_fixed_point() -> None:
    """Migrating already-current data yields a byte-identical document."""
    first = SchemaMigrator().migrate(_legacy_document()).serialize()
    second = SchemaMigrator().migrate(json.loads(first)).serialize()
    assert second == first


def test_report_counts_repairs() -> None:
    migrator = SchemaMigrator()
    migrator.migrate(_legacy_document())

    assert migrator.report["admin_backfilled"] == 1
    assert migrator.report["comment_parents_dropped"] == 1
    assert migrator.report["likes_duplicates_dropped"] == 1


def test_parse_document_rejects_non_objects() -> None:
    assert parse_document(None) is None
    assert parse_document("{not json") is None
    assert parse_document("[1, 2]") is None
    assert parse_document('{"users": []}') == {"users": []}


def test_negative_counters_and_ids_never_yield_non_positive_id() -> None:
    snapshot = SchemaMigrator().migrate({"counters": {"posts": -2}, "posts": [{"id": -1}]})
    assert snapshot.counters.posts == 0


def test_negative_counter_clamped_on_load(
    settings: Settings, write_backing_file: Callable[[dict[str, Any]], Path]
) -> None:
    write_backing_file({"counters": {"posts": -5, "users": -1}, "posts": [{"id": -3}]})
    with Store.open(settings=settings) as store:
        assert store.next_id("posts") == 1
        assert store.next_id("users") == 1
