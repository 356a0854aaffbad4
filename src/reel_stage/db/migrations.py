"""Schema migration and repair for loaded snapshots.

The migrator runs once per process start against whatever the writer last
produced. Version-specific upgrade steps run first, then an unconditional
repair pass coerces every record to its current shape. The whole procedure is
idempotent: migrating an already-current snapshot returns an identical one.

Malformed rows never abort a load. They are coerced to typed defaults,
repaired, or dropped, and the counts are logged.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from pydantic import BaseModel

from reel_stage.models import (
    ENTITY_KINDS,
    SCHEMA_VERSION,
    Bookmark,
    Category,
    Comment,
    CommentReaction,
    Counters,
    Like,
    ModerationAction,
    Post,
    PostTag,
    Report,
    SearchIndexMeta,
    Snapshot,
    Tag,
    User,
)
from reel_stage.models.user import ROLE_ADMIN
from reel_stage.utils.text import pad_id

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

LIST_FIELDS = (
    "users",
    "categories",
    "posts",
    "likes",
    "comments",
    "tags",
    "post_tags",
    "bookmarks",
    "comment_reactions",
    "reports",
    "moderation_actions",
)


def parse_document(text: str | None) -> dict[str, Any] | None:
    """Decode the backing file, returning ``None`` when it is not a JSON object."""
    if text is None:
        return None
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("Backing file is not valid JSON (%s); starting from empty state", e)
        return None
    if not isinstance(data, dict):
        logger.warning("Backing file root is %s, not an object; starting from empty state",
                       type(data).__name__)
        return None
    return data


def sanitize_document(raw: object) -> dict[str, Any]:
    """Return a shallow copy of ``raw`` where every collection is a list of dicts."""
    source = raw if isinstance(raw, dict) else {}
    document: dict[str, Any] = {
        "schema_version": _to_version(source.get("schema_version")),
        "counters": source.get("counters") if isinstance(source.get("counters"), dict) else {},
        "search_index_meta": (
            source.get("search_index_meta")
            if isinstance(source.get("search_index_meta"), dict)
            else {}
        ),
    }
    for name in LIST_FIELDS:
        rows = source.get(name)
        document[name] = [dict(row) for row in rows if isinstance(row, dict)] if isinstance(
            rows, list
        ) else []
    return document


def _to_version(value: object) -> int:
    try:
        version = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return 1
    return version if version > 0 else 1


def _upgrade_v1_to_v2(document: dict[str, Any]) -> None:
    # Version 1 stored post markdown under "body".
    for post in document["posts"]:
        if not post.get("markdown_body") and post.get("body"):
            post["markdown_body"] = post["body"]
        post.pop("body", None)


# Keyed by the version a step upgrades *from*.
UPGRADE_STEPS: dict[int, Callable[[dict[str, Any]], None]] = {
    1: _upgrade_v1_to_v2,
}


def hydrate_counters(snapshot: Snapshot) -> None:
    """Raise every counter to at least the largest id present for its kind, and never below 0."""
    for kind in ENTITY_KINDS:
        rows = getattr(snapshot, kind)
        highest = max((row.id for row in rows), default=0)
        current = getattr(snapshot.counters, kind)
        setattr(snapshot.counters, kind, max(current, highest, 0))


class SchemaMigrator:
    """Upgrades a stored document of any prior version into a current :class:`Snapshot`."""

    def __init__(self, target_version: int = SCHEMA_VERSION) -> None:
        self.target_version = target_version
        self.report: dict[str, int] = {}

    def migrate(self, raw: object) -> Snapshot:
        """Run upgrade steps and the repair pass over ``raw``.

        Args:
            raw: Decoded backing file contents (any shape)

        Returns:
            A repaired snapshot stamped with the target schema version
        """
        self.report = {}
        document = sanitize_document(raw)
        stored_version = document["schema_version"]
        for from_version in sorted(UPGRADE_STEPS):
            if stored_version <= from_version < self.target_version:
                UPGRADE_STEPS[from_version](document)
                logger.info("Upgraded snapshot schema v%d -> v%d", from_version, from_version + 1)

        snapshot = Snapshot(
            counters=Counters.model_validate(document["counters"]),
            users=self._repair_users(document["users"]),
            categories=self._repair_categories(document["categories"]),
            posts=[Post.model_validate(row) for row in document["posts"]],
            likes=self._keep_unique(
                self._keep_resolved(Like, document["likes"], ("id", "user_id", "post_id")),
                ("user_id", "post_id"),
                "likes",
            ),
            comments=self._repair_comments(document["comments"]),
            tags=self._repair_tags(document["tags"]),
            post_tags=self._keep_unique(
                self._keep_resolved(PostTag, document["post_tags"], ("post_id", "tag_id")),
                ("post_id", "tag_id"),
                "post_tags",
            ),
            bookmarks=self._keep_unique(
                self._keep_resolved(Bookmark, document["bookmarks"], ("id", "user_id", "post_id")),
                ("user_id", "post_id"),
                "bookmarks",
            ),
            comment_reactions=self._keep_unique(
                self._keep_resolved(
                    CommentReaction,
                    document["comment_reactions"],
                    ("id", "comment_id", "user_id"),
                ),
                ("user_id", "comment_id", "reaction_type"),
                "comment_reactions",
            ),
            reports=self._keep_resolved(
                Report, document["reports"], ("id", "reporter_user_id", "target_id")
            ),
            moderation_actions=self._keep_resolved(
                ModerationAction,
                document["moderation_actions"],
                ("id", "actor_user_id", "target_id"),
            ),
            search_index_meta=SearchIndexMeta.model_validate(document["search_index_meta"]),
        )
        hydrate_counters(snapshot)
        snapshot.schema_version = self.target_version

        changed = {name: count for name, count in self.report.items() if count}
        if changed:
            logger.info("Snapshot repair summary: %s", changed)
        return snapshot

    def _count(self, key: str, amount: int = 1) -> None:
        self.report[key] = self.report.get(key, 0) + amount

    def _repair_users(self, rows: list[dict[str, Any]]) -> list[User]:
        users = [User.model_validate(row) for row in rows]
        if users and not any(user.role == ROLE_ADMIN for user in users):
            # Bootstrap admin: the earliest stored account.
            users[0].role = ROLE_ADMIN
            self._count("admin_backfilled")
        return users

    def _repair_categories(self, rows: list[dict[str, Any]]) -> list[Category]:
        categories: list[Category] = []
        seen: set[str] = set()
        for index, row in enumerate(rows):
            row["name"] = row.get("name") or f"Category {index + 1}"
            row["sort_order"] = row.get("sort_order") or index + 1
            category = Category.model_validate(row)
            if not category.slug or category.slug in seen:
                self._count("categories_dropped")
                continue
            seen.add(category.slug)
            categories.append(category)
        return categories

    def _repair_tags(self, rows: list[dict[str, Any]]) -> list[Tag]:
        tags: list[Tag] = []
        seen: set[str] = set()
        for row in rows:
            tag = Tag.model_validate(row)
            if tag.id <= 0 or not tag.slug or tag.slug in seen:
                self._count("tags_dropped")
                continue
            seen.add(tag.slug)
            tags.append(tag)
        return tags

    def _repair_comments(self, rows: list[dict[str, Any]]) -> list[Comment]:
        comments = [Comment.model_validate(row) for row in rows]
        by_id: dict[int, Comment] = {}
        for comment in comments:
            by_id.setdefault(comment.id, comment)

        for comment in comments:
            parent_id = comment.parent_comment_id
            if parent_id is None:
                continue
            parent = by_id.get(parent_id)
            if parent is None or parent is comment or parent.post_id != comment.post_id:
                comment.parent_comment_id = None
                comment.depth = 0
                self._count("comment_parents_dropped")

        # Re-derive path and depth from the (repaired) parent chain.
        done: set[int] = set()
        for comment in comments:
            chain: list[Comment] = []
            on_chain: set[int] = set()
            node = comment
            while id(node) not in done:
                chain.append(node)
                on_chain.add(id(node))
                if node.parent_comment_id is None:
                    break
                parent = by_id[node.parent_comment_id]
                if id(parent) in on_chain:
                    node.parent_comment_id = None
                    self._count("comment_cycles_broken")
                    break
                node = parent
            for node in reversed(chain):
                if node.parent_comment_id is None:
                    path, depth = pad_id(node.id), 0
                else:
                    parent = by_id[node.parent_comment_id]
                    path, depth = f"{parent.path}.{pad_id(node.id)}", parent.depth + 1
                if node.path != path or node.depth != depth:
                    node.path, node.depth = path, depth
                    self._count("comment_paths_rebuilt")
                done.add(id(node))
        return comments

    def _keep_resolved(
        self,
        model: type[RecordT],
        rows: list[dict[str, Any]],
        keys: Iterable[str],
    ) -> list[RecordT]:
        keys = tuple(keys)
        kept: list[RecordT] = []
        for row in rows:
            record = model.model_validate(row)
            if all(getattr(record, key) > 0 for key in keys):
                kept.append(record)
            else:
                self._count(f"{model.__name__}_dropped")
        return kept

    def _keep_unique(
        self,
        records: list[RecordT],
        keys: Iterable[str],
        label: str,
    ) -> list[RecordT]:
        keys = tuple(keys)
        seen: set[tuple[Any, ...]] = set()
        kept: list[RecordT] = []
        for record in records:
            marker = tuple(getattr(record, key) for key in keys)
            if marker in seen:
                self._count(f"{label}_duplicates_dropped")
                continue
            seen.add(marker)
            kept.append(record)
        return kept
