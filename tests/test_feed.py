"""Tests for posts, likes, comments and the feed API."""

from datetime import timedelta

import pytest
from django.utils import timezone

from social import feed, orgs
from social.exceptions import NotAllowed, ValidationFailed
from social.feed import format_relative_time
from social.models import Notification, OrgMember, Post

pytestmark = pytest.mark.django_db


class TestPosts:
    """Tests for creating and deleting posts."""

    def test_create_post(self, alice):
        """Test a plain text post."""
        post = feed.create_post(alice, "  Hello, qubits!  ")
        assert post.body == "Hello, qubits!"
        assert post.org is None

    def test_empty_post_rejected(self, alice):
        """Test a post needs text or an image."""
        with pytest.raises(ValidationFailed):
            feed.create_post(alice, "   ")

    def test_post_as_org_needs_manage_role(self, alice, bob, company):
        """Test only owners and admins post on behalf of an organization."""
        with pytest.raises(NotAllowed):
            feed.create_post(bob, "Hi", org=company)

        orgs.add_member(alice, company, bob, role=OrgMember.ROLE_ADMIN)
        post = feed.create_post(bob, "We are hiring", org=company)
        assert post.org == company

    def test_only_author_deletes(self, alice, bob):
        """Test delete permissions."""
        post = feed.create_post(alice, "Mine")
        with pytest.raises(NotAllowed):
            feed.delete_post(bob, post)
        feed.delete_post(alice, post)
        assert not Post.objects.exists()


class TestLikesAndComments:
    """Tests for likes and comments."""

    def test_toggle_like(self, alice, bob):
        """Test liking twice removes the like and only notifies once."""
        post = feed.create_post(alice, "Entangled photons")
        assert feed.toggle_like(bob, post) == (True, 1)
        assert feed.toggle_like(bob, post) == (False, 0)
        assert Notification.objects.filter(user=alice, kind=Notification.KIND_POST_LIKE).count() == 1

    def test_self_like_does_not_notify(self, alice):
        """Test authors are not notified about their own likes."""
        post = feed.create_post(alice, "Self love")
        feed.toggle_like(alice, post)
        assert not Notification.objects.exists()

    def test_comments(self, alice, bob, carol):
        """Test adding, listing and deleting comments."""
        post = feed.create_post(alice, "Thoughts?")
        with pytest.raises(ValidationFailed):
            feed.add_comment(bob, post, "  ")

        comment = feed.add_comment(bob, post, "Great point")
        assert list(feed.list_comments(post)) == [comment]
        assert Notification.objects.filter(user=alice, kind=Notification.KIND_POST_COMMENT).exists()

        with pytest.raises(NotAllowed):
            feed.delete_comment(carol, comment)
        # the post author may remove comments on their post
        feed.delete_comment(alice, comment)
        assert not post.comments.exists()

    def test_feed_annotations(self, alice, bob):
        """Test counts and liked_by_me are computed per viewer."""
        post = feed.create_post(alice, "Counting")
        feed.toggle_like(bob, post)
        feed.add_comment(bob, post, "one")
        feed.add_comment(alice, post, "two")

        [item] = feed.build_feed(viewer=bob)
        assert item.like_count == 1
        assert item.comment_count == 2
        assert item.liked_by_me
        [item] = feed.build_feed(viewer=alice)
        assert not item.liked_by_me

    def test_feed_filters(self, alice, bob, company):
        """Test filtering by author and organization."""
        feed.create_post(alice, "personal")
        org_post = feed.create_post(alice, "official", org=company)
        feed.create_post(bob, "bob's")
        assert len(feed.build_feed(user=alice)) == 2
        assert feed.build_feed(org=company) == [org_post]


class TestRelativeTime:
    """Tests for format_relative_time."""

    @pytest.mark.parametrize("delta, expected", [
        (timedelta(seconds=2), "just now"),
        (timedelta(seconds=30), "30 seconds ago"),
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(minutes=5), "5 minutes ago"),
        (timedelta(hours=3), "3 hours ago"),
        (timedelta(days=1), "1 day ago"),
        (timedelta(days=14), "2 weeks ago"),
        (timedelta(days=90), "3 months ago"),
    ])
    def test_buckets(self, delta, expected):
        """Test each time bucket."""
        now = timezone.now()
        assert format_relative_time(now - delta, now=now) == expected

    def test_missing_value(self):
        """Test empty output for None."""
        assert format_relative_time(None) == ""


class TestFeedViews:
    """Tests for the feed endpoints."""

    def test_new_post_endpoint(self, alice_client):
        """Test posting through the composer endpoint."""
        response = alice_client.post("/posts/new", {"body": "From the browser"})
        assert response.status_code == 201
        assert Post.objects.get(pk=response.json()["post_id"]).body == "From the browser"

    def test_new_post_empty(self, alice_client):
        """Test an empty post is a 400 with a message."""
        response = alice_client.post("/posts/new", {"body": ""})
        assert response.status_code == 400
        assert response.json()["error"] == "Write something before posting."

    def test_feed_api(self, client, alice, bob):
        """Test the public feed JSON."""
        post = feed.create_post(alice, "Public")
        feed.toggle_like(bob, post)
        data = client.get("/api/feed/").json()
        assert data["posts"][0]["id"] == post.pk
        assert data["posts"][0]["like_count"] == 1
        assert data["posts"][0]["liked_by_me"] is False
        assert data["posts"][0]["author"]["display_name"] == "Alice Qubit"

    def test_anonymous_comment_is_401(self, client, alice):
        """Test comments need a signed-in member."""
        post = feed.create_post(alice, "Hi")
        response = client.post(f"/posts/{post.pk}/comments", {"body": "anon"})
        assert response.status_code == 401

    def test_comment_endpoint(self, alice_client, alice):
        """Test adding then listing comments."""
        post = feed.create_post(alice, "Hi")
        response = alice_client.post(f"/posts/{post.pk}/comments", {"body": "first"})
        assert response.status_code == 201
        comments = alice_client.get(f"/posts/{post.pk}/comments").json()["comments"]
        assert [c["body"] for c in comments] == ["first"]

    def test_index_renders(self, client, alice):
        """Test the home page lists posts for visitors."""
        feed.create_post(alice, "Visible to everyone")
        response = client.get("/")
        assert response.status_code == 200
        assert b"Visible to everyone" in response.content
