"""Tests for template filters and the timezone middleware."""

import pytest
from django.contrib.auth.models import AnonymousUser
from django.http import HttpResponse
from django.test import RequestFactory
from django.utils import timezone

from social.middleware import TimezoneMiddleware
from social.templatetags.social_filters import get_item, linkify, role_label


class TestLinkify:
    """Tests for the linkify filter."""

    def test_escapes_html(self):
        """Test markup in posts is escaped."""
        assert "&lt;script&gt;" in linkify("<script>alert(1)</script>")

    def test_links_urls(self):
        """Test bare domains get https and full URLs are kept."""
        html = linkify("See qiskit.org and http://arxiv.org/abs/1")
        assert '<a href="https://qiskit.org"' in html
        assert '<a href="http://arxiv.org/abs/1"' in html

    def test_mentions(self):
        """Test @mentions link to profiles but emails do not."""
        html = linkify("thanks @alice, mail bob@example.com")
        assert '<a href="/u/alice">@alice</a>' in html
        assert "/u/example" not in html

    def test_mention_inside_url(self):
        """Test an @name in a query string stays part of the link."""
        html = linkify("see https://example.com/?ref=@bob now, cc @carol")
        assert '<a href="https://example.com/?ref=@bob" target="_blank"' in html
        assert "/u/bob" not in html
        assert '<a href="/u/carol">@carol</a>' in html
        assert html.count("<a ") == 2

    def test_newlines(self):
        """Test line breaks become <br>."""
        assert linkify("a\nb") == "a<br>b"
        assert linkify("") == ""


class TestSmallFilters:
    """Tests for get_item and role_label."""

    def test_get_item(self):
        """Test int and string keys."""
        assert get_item({1: "accepted"}, 1) == "accepted"
        assert get_item({"2": "pending"}, 2) == "pending"
        assert get_item({}, 3) is False
        assert get_item(None, 3) is False

    def test_role_label(self):
        """Test role codes map to labels."""
        assert role_label("co_owner") == "Co-owner"
        assert role_label("unknown") == "unknown"


@pytest.mark.django_db
class TestTimezoneMiddleware:
    """Tests for per-member timezone activation."""

    def _run(self, user):
        seen = {}

        def view(request):
            seen['tz'] = str(timezone.get_current_timezone())
            return HttpResponse("ok")

        request = RequestFactory().get("/")
        request.user = user
        try:
            TimezoneMiddleware(view)(request)
        finally:
            timezone.deactivate()
        return seen['tz']

    def test_member_timezone(self, alice):
        """Test the member's timezone is active during the request."""
        alice.timezone = "Asia/Tokyo"
        assert self._run(alice) == "Asia/Tokyo"

    def test_bad_timezone_falls_back(self, alice):
        """Test an unknown timezone falls back to UTC."""
        alice.timezone = "Nowhere/Special"
        assert self._run(alice) == "UTC"

    def test_anonymous(self):
        """Test visitors get UTC."""
        assert self._run(AnonymousUser()) == "UTC"
