"""Tests for direct messages."""

import pytest

from social import entanglements, messaging
from social.exceptions import NotAllowed, ValidationFailed
from social.models import Connection, DMThread, Notification

pytestmark = pytest.mark.django_db


class TestThreads:
    """Tests for opening threads."""

    def test_requires_entanglement(self, alice, bob):
        """Test strangers cannot message each other."""
        with pytest.raises(NotAllowed, match="entangled"):
            messaging.open_thread(alice, bob)

    def test_cannot_message_self(self, alice):
        """Test self messaging is refused."""
        with pytest.raises(NotAllowed):
            messaging.open_thread(alice, alice)

    def test_one_thread_per_pair(self, alice, bob, entangled):
        """Test both sides reach the same ordered thread."""
        first = messaging.open_thread(bob, alice)
        second = messaging.open_thread(alice, bob)
        assert first.pk == second.pk
        assert DMThread.objects.count() == 1
        assert first.user1_id < first.user2_id

    def test_outsider_cannot_read(self, alice, bob, carol, entangled):
        """Test a third member cannot open the thread."""
        thread = messaging.open_thread(alice, bob)
        with pytest.raises(NotAllowed):
            messaging.get_thread_for(carol, thread.pk)


class TestMessages:
    """Tests for sending and reading messages."""

    def test_send_and_read(self, alice, bob, entangled):
        """Test unread counts, inbox and read marking."""
        thread = messaging.open_thread(alice, bob)
        with pytest.raises(ValidationFailed):
            messaging.send_message(alice, thread, "   ")

        messaging.send_message(alice, thread, "Did the qubit decohere?")
        messaging.send_message(alice, thread, "Asking for a friend")
        assert messaging.unread_message_count(bob) == 2
        assert messaging.unread_message_count(alice) == 0
        assert Notification.objects.filter(user=bob, kind=Notification.KIND_MESSAGE).count() == 2

        [item] = messaging.inbox(bob)
        assert item['other_user'] == alice
        assert item['unread_count'] == 2
        assert item['last_message'].body == "Asking for a friend"

        assert messaging.mark_thread_read(bob, thread) == 2
        assert messaging.unread_message_count(bob) == 0

    def test_no_sending_after_disentangle(self, alice, bob, entangled):
        """Test an old thread stays readable but closed once the pair splits."""
        thread = messaging.open_thread(alice, bob)
        messaging.send_message(alice, thread, "See you at QIP")
        entanglements.remove(bob, alice)

        with pytest.raises(NotAllowed, match="entangled"):
            messaging.send_message(alice, thread, "Still there?")
        assert messaging.get_thread_for(bob, thread.pk) == thread
        assert [m.body for m in messaging.thread_messages(thread)] == ["See you at QIP"]

    def test_inbox_order(self, alice, bob, carol, entangled):
        """Test the most recent conversation comes first."""
        Connection.objects.create(user=alice, target_user=carol, status=Connection.STATUS_ACCEPTED)
        with_bob = messaging.open_thread(alice, bob)
        with_carol = messaging.open_thread(alice, carol)
        messaging.send_message(bob, with_bob, "old")
        messaging.send_message(carol, with_carol, "new")
        assert [item['thread'] for item in messaging.inbox(alice)] == [with_carol, with_bob]


class TestMessageViews:
    """Tests for the inbox and thread pages."""

    def test_start_thread_and_send(self, alice_client, alice, bob, entangled):
        """Test opening a conversation and posting to it."""
        response = alice_client.get(f"/messages/with/{bob.username}")
        thread = DMThread.objects.get()
        assert response.url == f"/messages/{thread.pk}"

        alice_client.post(f"/messages/{thread.pk}", {"body": "Hello Bob"})
        page = alice_client.get(f"/messages/{thread.pk}")
        assert b"Hello Bob" in page.content

    def test_start_thread_with_stranger(self, alice_client, carol):
        """Test strangers are bounced back to the inbox."""
        response = alice_client.get(f"/messages/with/{carol.username}")
        assert response.url == "/messages"
        assert not DMThread.objects.exists()

    def test_inbox_renders(self, alice_client, bob, entangled):
        """Test the inbox lists entangled members to write to."""
        response = alice_client.get("/messages")
        assert response.status_code == 200
        assert b"Bob Photon" in response.content
