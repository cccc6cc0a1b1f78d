"""Tests for notifications, navbar badge counts and change feeds."""

from datetime import timedelta

import pytest
from django.contrib.auth.models import AnonymousUser
from django.db import DatabaseError
from django.test import RequestFactory
from django.utils import timezone

from social import changes, context_processors, entanglements, feed, notifications
from social.exceptions import ValidationFailed
from social.models import Notification

pytestmark = pytest.mark.django_db


class TestNotifications:
    """Tests for the notification helpers."""

    def test_read_state(self, alice, bob, carol):
        """Test marking single and all notifications read."""
        post = feed.create_post(alice, "Hi")
        feed.toggle_like(bob, post)
        feed.toggle_like(carol, post)
        assert notifications.unread_count(alice) == 2

        first = Notification.objects.filter(user=alice).first()
        assert notifications.mark_read(alice, first.pk) == 1
        assert notifications.mark_read(bob, first.pk) == 0
        assert notifications.unread_count(alice) == 1
        assert notifications.mark_all_read(alice) == 1
        assert notifications.unread_count(alice) == 0

    def test_delete_and_clear(self, alice, bob):
        """Test deleting one and clearing all."""
        post = feed.create_post(alice, "Hi")
        feed.toggle_like(bob, post)
        feed.add_comment(bob, post, "nice")
        one = Notification.objects.filter(user=alice).first()
        assert notifications.delete(bob, one.pk) == 0
        assert notifications.delete(alice, one.pk) == 1
        assert notifications.clear_all(alice) == 1
        assert notifications.latest(alice) == []

    def test_latest_limit(self, alice, bob, settings):
        """Test the listing is capped by the configured limit."""
        settings.Q5_NOTIFICATIONS_LIMIT = 1
        post = feed.create_post(alice, "Hi")
        feed.toggle_like(bob, post)
        feed.add_comment(bob, post, "nice")
        assert len(notifications.latest(alice)) == 1

    def test_badge_counts(self, alice, bob, carol):
        """Test the navbar counts add pending requests to unread notifications."""
        entanglements.entangle(bob, alice)
        post = feed.create_post(alice, "Hi")
        feed.toggle_like(carol, post)
        counts = notifications.badge_counts(alice)
        assert counts['pending_requests_count'] == 1
        # the request itself plus the like
        assert counts['unread_notifications_count'] == 2
        assert counts['nav_notifications_count'] == 3
        assert counts['unread_messages_count'] == 0


class TestContextProcessor:
    """Tests for the badge counts context processor."""

    def test_anonymous_gets_zeros(self):
        """Test visitors see no badges."""
        request = RequestFactory().get("/")
        request.user = AnonymousUser()
        assert context_processors.unread_counts(request)['nav_notifications_count'] == 0

    def test_database_error_is_swallowed(self, alice, monkeypatch):
        """Test a failing count query does not break page rendering."""
        def boom(user):
            raise DatabaseError("down")

        monkeypatch.setattr(notifications, "unread_count", boom)
        request = RequestFactory().get("/")
        request.user = alice
        assert context_processors.unread_counts(request)['unread_messages_count'] == 0


class TestNotificationViews:
    """Tests for the notification endpoints."""

    def test_page_and_actions(self, alice_client, alice, bob):
        """Test the page renders and the actions answer JSON."""
        entanglements.entangle(bob, alice)
        response = alice_client.get("/notifications")
        assert response.status_code == 200
        assert b"Bob Photon" in response.content

        note = Notification.objects.get(user=alice)
        assert alice_client.post(f"/notifications/{note.pk}/read").json() == {"success": True}
        assert alice_client.post("/notifications/999999/read").status_code == 404
        assert alice_client.post("/notifications/clear").json()["success"] is True
        assert not Notification.objects.filter(user=alice).exists()


class TestChangeFeeds:
    """Tests for the polling endpoints."""

    def test_parse_since(self):
        """Test accepted and rejected timestamps."""
        value = changes.parse_since("2026-01-02T03:04:05 00:00")
        assert value.year == 2026 and value.utcoffset() == timedelta(0)
        naive = changes.parse_since("2026-01-02T03:04:05")
        assert naive.tzinfo is not None
        with pytest.raises(ValidationFailed, match="Missing"):
            changes.parse_since("")
        with pytest.raises(ValidationFailed, match="Invalid"):
            changes.parse_since("yesterday")

    def test_user_changes(self, alice, bob):
        """Test new notification ids and counts since a timestamp."""
        since = timezone.now() - timedelta(seconds=1)
        entanglements.entangle(bob, alice)
        payload = changes.user_changes(alice, since)
        assert len(payload['notification_ids']) == 1
        assert payload['pending_requests_count'] == 1
        assert payload['server_time']

        later = changes.user_changes(alice, timezone.now() + timedelta(seconds=1))
        assert later['notification_ids'] == []

    def test_user_changes_endpoint(self, alice_client):
        """Test a bad timestamp is a 400 with a message."""
        response = alice_client.get("/api/changes/", {"since": "not-a-date"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid 'since' timestamp."}
        response = alice_client.get("/api/changes/")
        assert response.json() == {"error": "Missing 'since' timestamp."}

    def test_org_changes_endpoint(self, client, alice, company):
        """Test new posts under an organization show up in its feed."""
        since = (timezone.now() - timedelta(seconds=1)).isoformat()
        post = feed.create_post(alice, "Announcement", org=company)
        feed.create_post(alice, "Personal")
        data = client.get(f"/api/orgs/{company.slug}/changes/", {"since": since}).json()
        assert data['org'] == company.slug
        assert data['post_ids'] == [post.pk]
        assert data['job_ids'] == []
        assert client.get("/api/orgs/missing/changes/", {"since": since}).status_code == 404
