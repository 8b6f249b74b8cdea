"""Notification factory tests: event validation, messages, self-suppression."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from snipstream.exceptions import InvalidEventError
from snipstream.notifications.factory import (
    DomainEvent,
    NotificationKind,
    build_message,
    build_notification,
    parse_kind,
)

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


class TestParseKind:
    def test_known_kinds(self):
        for kind in ("follow", "like", "comment", "mention", "achievement"):
            assert parse_kind(kind) == kind

    def test_unknown_kind_raises(self):
        with pytest.raises(InvalidEventError, match="share"):
            parse_kind("share")


class TestDomainEventCreate:
    def test_requires_recipient(self):
        with pytest.raises(InvalidEventError):
            DomainEvent.create("like", "alice", "")

    def test_unknown_kind(self):
        with pytest.raises(InvalidEventError):
            DomainEvent.create("poke", "alice", "bob")

    def test_self_action_detected(self):
        assert DomainEvent.create("like", "alice", "alice").is_self_action is True
        assert DomainEvent.create("like", "alice", "bob").is_self_action is False

    def test_system_event_is_never_self_action(self):
        assert DomainEvent.create("achievement", None, "alice").is_self_action is False

    def test_metadata_is_copied(self):
        metadata = {"snippetTitle": "Quick Sort"}
        event = DomainEvent.create("like", "alice", "bob", "s1", metadata)
        metadata["snippetTitle"] = "changed"
        assert event.metadata == {"snippetTitle": "Quick Sort"}


class TestBuildMessage:
    def test_like_with_title(self):
        assert build_message(NotificationKind.LIKE, {"snippetTitle": "Quick Sort"}) == 'liked your snippet "Quick Sort"'

    def test_like_without_title(self):
        assert build_message(NotificationKind.LIKE, {}) == "liked your snippet"

    def test_follow(self):
        assert build_message(NotificationKind.FOLLOW, {}) == "started following you"

    def test_comment(self):
        assert build_message(NotificationKind.COMMENT, {"snippetTitle": "X"}) == 'commented on your snippet "X"'

    def test_mention(self):
        assert build_message(NotificationKind.MENTION, {}) == "mentioned you in a snippet"

    def test_achievement(self):
        message = build_message(NotificationKind.ACHIEVEMENT, {"achievementTitle": "Code Master"})
        assert message == 'earned a new achievement: "Code Master"'


class TestBuildNotification:
    def test_self_like_suppressed(self):
        event = DomainEvent.create("like", "alice", "alice", "s1")
        assert build_notification(event, now=NOW) is None

    def test_fields(self):
        event = DomainEvent.create("like", "alice", "bob", "s1", {"snippetTitle": "Quick Sort"})
        notification = build_notification(event, now=NOW)
        assert notification.user_id == "bob"
        assert notification.actor_id == "alice"
        assert notification.type == "like"
        assert notification.target_id == "s1"
        assert notification.read is False
        assert notification.created_at == NOW
        assert notification.notification_metadata == {"snippetTitle": "Quick Sort"}

    def test_comment_excerpt_truncated(self):
        event = DomainEvent.create("comment", "alice", "bob", "s1", {"commentContent": "x" * 400})
        notification = build_notification(event, now=NOW, excerpt_length=150)
        assert "commentContent" not in notification.notification_metadata
        assert notification.notification_metadata["commentExcerpt"] == "x" * 150

    def test_short_comment_kept_whole(self):
        event = DomainEvent.create("comment", "alice", "bob", "s1", {"commentExcerpt": "nice!"})
        notification = build_notification(event, now=NOW, excerpt_length=150)
        assert notification.notification_metadata["commentExcerpt"] == "nice!"

    def test_achievement_has_no_actor(self):
        event = DomainEvent.create("achievement", None, "bob", "code-master", {"achievementTitle": "Code Master"})
        notification = build_notification(event, now=NOW)
        assert notification.actor_id is None
        assert notification.message == 'earned a new achievement: "Code Master"'
