# tests/test_moderation.py
from __future__ import annotations

from collections.abc import Callable

from reel_stage.engine import Engine
from reel_stage.models import Post, User


def test_report_lifecycle(
    engine: Engine, admin: User, member: User, make_post: Callable[..., Post]
) -> None:
    post = make_post(member)
    report = engine.moderation.create_report(admin.id, "post", post.id, "spam", "buy now")
    assert report.status == "open"
    assert report.assigned_to_user_id is None

    assigned = engine.moderation.assign_report(report.id, admin.id)
    assert assigned.status == "in_review"
    assert assigned.assigned_to_user_id == admin.id

    resolved = engine.moderation.resolve_report(report.id, "dismissed", admin.id, "not spam")
    assert resolved.status == "dismissed"
    assert resolved.resolved_at is not None

    actions = [a.action_type for a in engine.moderation.actions_for_target("report", report.id)]
    assert sorted(actions) == ["report.assign", "report.dismissed"]


def test_invalid_resolution_status_leaves_report_untouched(
    engine: Engine, admin: User, member: User, make_post: Callable[..., Post]
) -> None:
    post = make_post(member)
    report = engine.moderation.create_report(member.id, "post", post.id)
    audit_before = len(engine.store.state.moderation_actions)

    assert engine.moderation.resolve_report(report.id, "in_review", admin.id) is None
    assert engine.moderation.resolve_report(report.id, "closed", admin.id) is None
    assert report.status == "open"
    assert report.resolved_at is None
    assert len(engine.store.state.moderation_actions) == audit_before


def test_create_report_validates_target(
    engine: Engine, admin: User, member: User, make_post: Callable[..., Post]
) -> None:
    post = make_post(member)

    assert engine.moderation.create_report(member.id, "video", post.id) is None
    assert engine.moderation.create_report(member.id, "post", 999) is None
    assert engine.moderation.create_report(999, "post", post.id) is None
    assert engine.moderation.create_report(member.id, "user", admin.id) is not None
    assert len(engine.store.state.reports) == 1


def test_non_moderators_cannot_act(
    engine: Engine, admin: User, member: User, make_post: Callable[..., Post]
) -> None:
    post = make_post(member)
    report = engine.moderation.create_report(member.id, "post", post.id)

    assert engine.moderation.assign_report(report.id, member.id) is None
    assert engine.moderation.hide_post(post.id, member.id) is None
    assert engine.moderation.suspend_user(admin.id, member.id) is None
    assert engine.moderation.change_role(member.id, "admin", member.id) is None
    assert engine.store.state.moderation_actions == []


def test_report_queue_filters_and_decorates(
    engine: Engine, admin: User, member: User, make_post: Callable[..., Post]
) -> None:
    post = make_post(member)
    first = engine.moderation.create_report(member.id, "post", post.id)
    second = engine.moderation.create_report(member.id, "user", admin.id)
    engine.moderation.assign_report(first.id, admin.id)

    open_queue = engine.moderation.report_queue("open")
    assert [r.id for r in open_queue.items] == [second.id]
    assert open_queue.items[0].reporter_username == "bob"

    everything = engine.moderation.report_queue("all")
    assert everything.total == 2
    in_review = engine.moderation.report_queue("in_review").items
    assert [(r.id, r.assignee_username) for r in in_review] == [(first.id, "alice")]


def test_hide_post_audited_and_gated(
    engine: Engine,
    admin: User,
    member: User,
    make_user: Callable[..., User],
    make_post: Callable[..., Post],
) -> None:
    stranger = make_user("erin")
    post = make_post(member)

    engine.moderation.hide_post(post.id, admin.id, "off topic")

    assert engine.posts.get_post(post.id) is None
    assert engine.posts.get_post(post.id, stranger.id) is None
    assert engine.posts.get_post(post.id, member.id).hidden_reason == "off topic"
    assert engine.posts.get_post(post.id, admin.id).is_hidden is True

    engine.moderation.unhide_post(post.id, admin.id)
    assert engine.posts.get_post(post.id) is not None
    entries = engine.moderation.actions_for_target("post", post.id)
    assert {e.action_type for e in entries} == {"post.hide", "post.unhide"}
    assert all(e.actor_username == "alice" for e in entries)


def test_moderator_cannot_sanction_admin(
    engine: Engine, admin: User, member: User, make_user: Callable[..., User]
) -> None:
    mod = make_user("mia", role="moderator")

    assert engine.moderation.ban_user(admin.id, mod.id) is None
    assert admin.status == "active"

    assert engine.moderation.suspend_user(member.id, mod.id).status == "suspended"
    assert engine.moderation.ban_user(member.id, mod.id).status == "banned"
    # No transition lattice: a banned account can be reactivated.
    assert engine.moderation.set_user_status(member.id, "active", mod.id).status == "active"

    actions = [e.action_type for e in engine.moderation.actions_for_target("user", member.id)]
    assert sorted(actions) == ["user.ban", "user.reactivate", "user.suspend"]


def test_change_role_requires_admin_and_known_role(
    engine: Engine, admin: User, member: User, make_user: Callable[..., User]
) -> None:
    mod = make_user("max", role="moderator")

    assert engine.moderation.change_role(member.id, "superuser", admin.id) is None
    assert engine.moderation.change_role(member.id, "moderator", mod.id) is None
    assert engine.moderation.change_role(member.id, "moderator", admin.id).role == "moderator"

    (entry,) = engine.moderation.actions_for_target("user", member.id)
    assert entry.action_type == "user.role.update"
    assert entry.notes == "Role set to moderator"


def test_audit_feed_is_capped(
    engine: Engine, admin: User, member: User, make_post: Callable[..., Post]
) -> None:
    post = make_post(member)
    for _ in range(4):
        engine.moderation.hide_post(post.id, admin.id)
        engine.moderation.unhide_post(post.id, admin.id)

    assert len(engine.moderation.actions_for_target("post", post.id)) == 8
    assert len(engine.moderation.actions_for_target("post", post.id, limit=3)) == 3


def test_closed_report_cannot_be_reopened_or_reassigned(
    engine: Engine,
    admin: User,
    member: User,
    make_user: Callable[..., User],
    make_post: Callable[..., Post],
) -> None:
    mod = make_user("nina", role="moderator")
    post = make_post(member)
    report = engine.moderation.create_report(member.id, "post", post.id)
    engine.moderation.resolve_report(report.id, "resolved", admin.id)
    stamped = report.resolved_at
    audit_before = len(engine.store.state.moderation_actions)

    assert engine.moderation.resolve_report(report.id, "dismissed", admin.id) is None
    assert engine.moderation.assign_report(report.id, mod.id) is None
    assert (report.status, report.resolved_at) == ("resolved", stamped)
    assert report.assigned_to_user_id is None
    assert len(engine.store.state.moderation_actions) == audit_before


def test_audit_ties_newest_first(
    engine: Engine, admin: User, member: User, make_post: Callable[..., Post]
) -> None:
    post = make_post(member)
    engine.moderation.hide_post(post.id, admin.id)
    engine.moderation.unhide_post(post.id, admin.id)
    engine.moderation.hide_post(post.id, admin.id)
    for action in engine.store.state.moderation_actions:
        action.created_at = "2024-03-01T00:00:00+00:00"

    entries = engine.moderation.actions_for_target("post", post.id)
    assert [e.action_type for e in entries] == ["post.hide", "post.unhide", "post.hide"]
    assert [e.id for e in entries] == sorted((e.id for e in entries), reverse=True)
