"""Categories and tags, including the post-to-tag relation table."""
from __future__ import annotations

from collections.abc import Iterable

from reel_stage.db.store import Store
from reel_stage.db.time import now_iso
from reel_stage.models import Category, PostTag, Tag
from reel_stage.schemas import TagRef
from reel_stage.utils.text import normalize_text, slugify

__all__ = ["TaxonomyService"]


class TaxonomyService:
    """Lookups and writes for categories and tags."""

    def __init__(self, store: Store) -> None:
        self.store = store

    # Categories

    def list_categories(self) -> list[Category]:
        """Return categories ordered by ``sort_order``, then name."""
        with self.store.lock:
            return sorted(self.store.state.categories, key=lambda c: (c.sort_order, c.name))

    def get_category(self, category_id: int | None) -> Category | None:
        with self.store.lock:
            return next((c for c in self.store.state.categories if c.id == category_id), None)

    def get_category_by_slug(self, slug: str | None) -> Category | None:
        if not slug:
            return None
        with self.store.lock:
            return next((c for c in self.store.state.categories if c.slug == slug), None)

    def create_category(
        self,
        name: str,
        slug: str | None = None,
        description: str = "",
        sort_order: int | None = None,
    ) -> Category | None:
        """Create a category; refuses an empty or already-used slug."""
        slug_value = slugify(slug or name)
        if not slug_value:
            return None
        with self.store.lock:
            state = self.store.state
            if self.get_category_by_slug(slug_value):
                return None
            if sort_order is None:
                sort_order = max((c.sort_order for c in state.categories), default=0) + 1
            category = Category(
                id=self.store.next_id("categories"),
                name=str(name or "").strip() or slug_value,
                slug=slug_value,
                description=description,
                sort_order=sort_order,
            )
            state.categories.append(category)
            self.store.commit()
            return category

    # Tags

    def get_tag(self, tag_id: int) -> Tag | None:
        with self.store.lock:
            return next((t for t in self.store.state.tags if t.id == tag_id), None)

    def get_tag_by_slug(self, slug: str | None) -> Tag | None:
        if not slug:
            return None
        with self.store.lock:
            return next((t for t in self.store.state.tags if t.slug == slug), None)

    def tags_for_post(self, post_id: int) -> list[TagRef]:
        """Tags attached to a post, sorted by name."""
        with self.store.lock:
            tag_ids = [r.tag_id for r in self.store.state.post_tags if r.post_id == post_id]
            tags = [tag for tag in (self.get_tag(tag_id) for tag_id in tag_ids) if tag]
            return sorted(
                (TagRef(id=t.id, name=t.name, slug=t.slug) for t in tags),
                key=lambda t: t.name,
            )

    def get_or_create_tag(self, name: str) -> Tag | None:
        """Return the tag named ``name``, creating it on first use.

        When a different tag already owns the derived slug, a numeric suffix
        (``-2``, ``-3``...) is appended. Does not commit.
        """
        name = str(name or "").strip()
        base = slugify(name)
        if not base:
            return None
        with self.store.lock:
            state = self.store.state
            wanted = normalize_text(name)
            existing = next((t for t in state.tags if normalize_text(t.name) == wanted), None)
            if existing:
                return existing
            taken = {t.slug for t in state.tags}
            slug = base
            index = 1
            while slug in taken:
                index += 1
                slug = f"{base}-{index}"
            tag = Tag(id=self.store.next_id("tags"), slug=slug, name=name, created_at=now_iso())
            state.tags.append(tag)
            return tag

    def replace_post_tags(self, post_id: int, tag_names: Iterable[str]) -> list[TagRef]:
        """Replace every tag relation of ``post_id`` with ``tag_names``.

        Names are trimmed, lower-cased and de-duplicated; at most
        ``max_tags_per_post`` survive. Existing relations are removed first,
        then the new set is inserted. Does not commit.
        """
        limit = self.store.settings.max_tags_per_post
        names: list[str] = []
        for raw in tag_names or ():
            normalized = normalize_text(raw)
            if not normalized or normalized in names:
                continue
            names.append(normalized)
            if len(names) >= limit:
                break

        with self.store.lock:
            state = self.store.state
            state.post_tags = [r for r in state.post_tags if r.post_id != post_id]
            for name in names:
                tag = self.get_or_create_tag(name)
                if tag is None:
                    continue
                state.post_tags.append(PostTag(post_id=post_id, tag_id=tag.id))
            return self.tags_for_post(post_id)

    def set_post_tags(self, post_id: int, tag_names: Iterable[str]) -> list[TagRef] | None:
        """Replace a post's tags and persist; ``None`` when the post does not exist."""
        with self.store.lock:
            if not any(p.id == post_id for p in self.store.state.posts):
                return None
            tags = self.replace_post_tags(post_id, tag_names)
            self.store.commit()
            return tags
