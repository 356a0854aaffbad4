# src/reel_stage/services/moderation.py
"""Moderation services: reports, hide/unhide, account sanctions and the audit log."""

from __future__ import annotations

from reel_stage.db.store import Store
from reel_stage.db.time import now_iso, parse_timestamp
from reel_stage.models import Comment, ModerationAction, Post, Report, User
from reel_stage.models.moderation import (
    REPORT_STATUS_IN_REVIEW,
    REPORT_STATUS_OPEN,
    REPORT_TARGETS,
    REPORT_TERMINAL_STATUSES,
    TARGET_COMMENT,
    TARGET_POST,
    TARGET_USER,
)
from reel_stage.models.user import ROLES, STATUS_ACTIVE, STATUS_BANNED, STATUS_SUSPENDED
from reel_stage.schemas import AuditEntry, Page, ReportView
from reel_stage.utils.pagination import paginate

from .comments import CommentService
from .posts import PostService
from .users import UserService
from .visibility import can_admin, can_moderate, is_admin_role

__all__ = ["ModerationService"]

TARGET_REPORT = "report"
AUDIT_LIMIT = 30

# Audit action recorded for each user status a moderator can set.
STATUS_ACTIONS = {
    STATUS_SUSPENDED: "user.suspend",
    STATUS_BANNED: "user.ban",
    STATUS_ACTIVE: "user.reactivate",
}


class ModerationService:
    """Service handling report lifecycle and moderator actions.

    Every mutation here also appends an audit entry inside the same locked
    region, so readers never see one without the other. Actors must hold
    moderator capability (admin for role changes); otherwise the call is
    refused with ``None``.
    """

    def __init__(
        self,
        store: Store,
        users: UserService,
        posts: PostService,
        comments: CommentService,
    ) -> None:
        self.store = store
        self.users = users
        self.posts = posts
        self.comments = comments

    # Audit log

    def add_action(
        self,
        actor_user_id: int,
        action_type: str,
        target_type: str,
        target_id: int,
        notes: str = "",
        *,
        commit: bool = True,
    ) -> ModerationAction:
        """Append an entry to the audit log."""
        with self.store.lock:
            action = ModerationAction(
                id=self.store.next_id("moderation_actions"),
                actor_user_id=actor_user_id,
                action_type=action_type,
                target_type=target_type,
                target_id=target_id,
                notes=notes,
                created_at=now_iso(),
            )
            self.store.state.moderation_actions.append(action)
            if commit:
                self.store.commit()
            return action

    def actions_for_target(
        self, target_type: str, target_id: int, limit: int = AUDIT_LIMIT
    ) -> list[AuditEntry]:
        """Audit entries for one target, newest first, capped at ``limit``."""
        with self.store.lock:
            actions = [
                a
                for a in self.store.state.moderation_actions
                if a.target_type == target_type and a.target_id == target_id
            ]
            actions.sort(key=lambda a: (parse_timestamp(a.created_at), a.id), reverse=True)
            entries = []
            for action in actions[: max(limit, 0)]:
                actor = self.users.get(action.actor_user_id)
                entries.append(
                    AuditEntry(
                        **action.model_dump(),
                        actor_username=actor.username if actor else "deleted",
                    )
                )
            return entries

    # Reports

    def get_report(self, report_id: int) -> Report | None:
        with self.store.lock:
            return next((r for r in self.store.state.reports if r.id == report_id), None)

    def _target_exists(self, target_type: str, target_id: int) -> bool:
        if target_type == TARGET_POST:
            return self.posts.get_post_raw(target_id) is not None
        if target_type == TARGET_COMMENT:
            return self.comments.get_comment(target_id) is not None
        if target_type == TARGET_USER:
            return self.users.get(target_id) is not None
        return False

    def create_report(
        self,
        reporter_user_id: int,
        target_type: str,
        target_id: int,
        reason_code: str = "other",
        reason_text: str = "",
    ) -> Report | None:
        """File a report in the ``open`` state.

        Returns ``None`` for an unknown target type, a missing target or a
        missing reporter.
        """
        if target_type not in REPORT_TARGETS:
            return None
        with self.store.lock:
            if self.users.get(reporter_user_id) is None:
                return None
            if not self._target_exists(target_type, target_id):
                return None
            report = Report(
                id=self.store.next_id("reports"),
                reporter_user_id=reporter_user_id,
                target_type=target_type,
                target_id=target_id,
                reason_code=reason_code,
                reason_text=reason_text,
                status=REPORT_STATUS_OPEN,
                created_at=now_iso(),
            )
            self.store.state.reports.append(report)
            self.store.commit()
            return report

    def report_queue(
        self,
        status: str = REPORT_STATUS_OPEN,
        page: int | None = 1,
        page_size: int | None = 20,
    ) -> Page[ReportView]:
        """Reports with ``status`` (or ``"all"``), newest first, one page at a time."""
        with self.store.lock:
            reports = [
                r for r in self.store.state.reports if status == "all" or r.status == status
            ]
            reports.sort(key=lambda r: parse_timestamp(r.created_at), reverse=True)
            result = paginate(
                reports, page, page_size, max_page_size=self.store.settings.max_page_size
            )
            items = []
            for report in result.items:
                reporter = self.users.get(report.reporter_user_id)
                assignee = self.users.get(report.assigned_to_user_id)
                items.append(
                    ReportView(
                        **report.model_dump(),
                        reporter_username=reporter.username if reporter else "deleted",
                        assignee_username=assignee.username if assignee else "",
                    )
                )
            return Page(
                items=items,
                total=result.total,
                pages=result.pages,
                page=result.page,
                page_size=result.page_size,
            )

    def assign_report(self, report_id: int, moderator_id: int) -> Report | None:
        """Assign a report to a moderator; an ``open`` report moves to ``in_review``.

        Closed reports cannot be reassigned.
        """
        with self.store.lock:
            moderator = self._moderator(moderator_id)
            report = self.get_report(report_id)
            if moderator is None or report is None:
                return None
            if report.status in REPORT_TERMINAL_STATUSES:
                return None
            report.assigned_to_user_id = moderator.id
            if report.status == REPORT_STATUS_OPEN:
                report.status = REPORT_STATUS_IN_REVIEW
            self.add_action(
                moderator.id,
                "report.assign",
                TARGET_REPORT,
                report.id,
                "Assigned to moderator",
                commit=False,
            )
            self.store.commit()
            return report

    def resolve_report(
        self, report_id: int, status: str, actor_id: int, notes: str = ""
    ) -> Report | None:
        """Close a report as ``resolved`` or ``dismissed`` and stamp ``resolved_at``.

        Any other status, or a report that is already closed, is refused
        without changing state.
        """
        if status not in REPORT_TERMINAL_STATUSES:
            return None
        with self.store.lock:
            actor = self._moderator(actor_id)
            report = self.get_report(report_id)
            if actor is None or report is None:
                return None
            if report.status in REPORT_TERMINAL_STATUSES:
                return None
            report.status = status
            report.resolved_at = now_iso()
            self.add_action(
                actor.id, f"report.{status}", TARGET_REPORT, report.id, notes, commit=False
            )
            self.store.commit()
            return report

    # Content

    def hide_post(self, post_id: int, actor_id: int, reason: str = "") -> Post | None:
        return self._set_post_hidden(post_id, actor_id, True, reason)

    def unhide_post(self, post_id: int, actor_id: int) -> Post | None:
        return self._set_post_hidden(post_id, actor_id, False, "")

    def _set_post_hidden(
        self, post_id: int, actor_id: int, hidden: bool, reason: str
    ) -> Post | None:
        with self.store.lock:
            actor = self._moderator(actor_id)
            post = self.posts.get_post_raw(post_id)
            if actor is None or post is None:
                return None
            post.is_hidden = hidden
            post.hidden_reason = str(reason or "") if hidden else ""
            action_type = "post.hide" if hidden else "post.unhide"
            self.add_action(actor.id, action_type, TARGET_POST, post.id, post.hidden_reason,
                            commit=False)
            self.store.commit()
            return post

    def hide_comment(self, comment_id: int, actor_id: int, reason: str = "") -> Comment | None:
        return self._set_comment_hidden(comment_id, actor_id, True, reason)

    def unhide_comment(self, comment_id: int, actor_id: int) -> Comment | None:
        return self._set_comment_hidden(comment_id, actor_id, False, "")

    def _set_comment_hidden(
        self, comment_id: int, actor_id: int, hidden: bool, reason: str
    ) -> Comment | None:
        with self.store.lock:
            actor = self._moderator(actor_id)
            comment = self.comments.get_comment(comment_id)
            if actor is None or comment is None:
                return None
            # Only the flag changes; path and depth stay put.
            comment.is_hidden = hidden
            comment.hidden_reason = str(reason or "") if hidden else ""
            action_type = "comment.hide" if hidden else "comment.unhide"
            self.add_action(actor.id, action_type, TARGET_COMMENT, comment.id,
                            comment.hidden_reason, commit=False)
            self.store.commit()
            return comment

    # Accounts

    def suspend_user(self, user_id: int, actor_id: int) -> User | None:
        return self.set_user_status(user_id, STATUS_SUSPENDED, actor_id)

    def ban_user(self, user_id: int, actor_id: int) -> User | None:
        return self.set_user_status(user_id, STATUS_BANNED, actor_id)

    def set_user_status(self, user_id: int, status: str, actor_id: int) -> User | None:
        """Set an account's status on behalf of a moderator.

        Only admins may change the status of another admin. There is no
        transition lattice; a banned account may be set back to active.
        """
        if status not in STATUS_ACTIONS:
            return None
        with self.store.lock:
            actor = self._moderator(actor_id)
            target = self.users.get(user_id)
            if actor is None or target is None:
                return None
            if is_admin_role(target.role) and not can_admin(actor):
                return None
            target.status = status
            self.add_action(actor.id, STATUS_ACTIONS[status], TARGET_USER, target.id,
                            commit=False)
            self.store.commit()
            return target

    def change_role(self, user_id: int, role: str, actor_id: int) -> User | None:
        """Grant ``role`` to a user; admin only, unknown roles are refused."""
        if role not in ROLES:
            return None
        with self.store.lock:
            actor = self.users.get(actor_id)
            target = self.users.get(user_id)
            if not can_admin(actor) or target is None:
                return None
            target.role = role
            self.add_action(actor.id, "user.role.update", TARGET_USER, target.id,
                            f"Role set to {role}", commit=False)
            self.store.commit()
            return target

    def _moderator(self, user_id: int | None) -> User | None:
        user = self.users.get(user_id)
        return user if can_moderate(user) else None
