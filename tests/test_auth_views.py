"""Tests for sign-up, activation, sign-in and profile pages."""

import pytest
from django.core import mail

from social import feed
from social.models import User

pytestmark = pytest.mark.django_db


def signup(client, **extra):
    data = {
        "full_name": "Dana Boson",
        "username": "dana",
        "email": "Dana@Example.com",
        "password": "superposition",
        "confirmation": "superposition",
    }
    data.update(extra)
    return client.post("/register", data)


class TestRegistration:
    """Tests for account creation and email activation."""

    def test_register_sends_activation(self, client):
        """Test a new account is inactive until the link is opened."""
        response = signup(client)
        assert response.status_code == 302
        assert response.url == "/auth?verify=1&email=dana%40example.com"

        user = User.objects.get(username="dana")
        assert not user.is_active
        assert user.email == "dana@example.com"
        assert len(mail.outbox) == 1
        assert f"/activate/{user.activation_token}/" in mail.outbox[0].body

    def test_verify_box(self, client):
        """Test the check-your-inbox notice."""
        response = client.get("/auth", {"verify": "1", "email": "dana@example.com"})
        assert b"Check your inbox" in response.content
        assert b"dana@example.com" in response.content

    def test_validation_errors(self, client, alice):
        """Test mismatched passwords and taken usernames."""
        response = signup(client, confirmation="other")
        assert b"Passwords do not match." in response.content
        response = signup(client, username="alice")
        assert b"Username already taken." in response.content
        assert not User.objects.filter(username="dana").exists()

    def test_failed_email_removes_account(self, client, monkeypatch):
        """Test the account is rolled back when the email cannot be sent."""
        def broken_send(self, fail_silently=False):
            raise ConnectionError("smtp down")

        monkeypatch.setattr("django.core.mail.EmailMultiAlternatives.send", broken_send)
        response = signup(client)
        assert b"Failed to send activation email. Please try again later." in response.content
        assert not User.objects.filter(username="dana").exists()

    def test_activate(self, client):
        """Test the activation link signs the member in."""
        signup(client)
        token = User.objects.get(username="dana").activation_token
        response = client.get(f"/activate/{token}/")
        assert response.status_code == 302
        assert response.url == "/dashboard"
        assert User.objects.get(username="dana").is_active
        assert client.get("/dashboard").status_code == 200

    def test_bad_token(self, client, db):
        """Test unknown tokens are a 400."""
        response = client.get("/activate/nope/")
        assert response.status_code == 400
        assert b"Invalid or expired activation link." in response.content


class TestSignIn:
    """Tests for signing in."""

    def test_sign_in_with_email(self, client, alice):
        """Test the identifier may be an email address."""
        response = client.post("/auth", {"identifier": "ALICE@example.com", "password": "qubits-and-gates"})
        assert response.status_code == 302
        assert response.url == "/dashboard"

    def test_redirect_target(self, client, alice):
        """Test a local redirect is honored and an external one is not."""
        response = client.post("/auth", {
            "identifier": "alice", "password": "qubits-and-gates", "redirect": "/jobs",
        })
        assert response.url == "/jobs"
        client.logout()
        response = client.post("/auth", {
            "identifier": "alice", "password": "qubits-and-gates", "redirect": "https://evil.example/",
        })
        assert response.url == "/dashboard"

    def test_wrong_password(self, client, alice):
        """Test a bad password re-renders the form."""
        response = client.post("/auth", {"identifier": "alice", "password": "nope"})
        assert response.status_code == 200
        assert b"Invalid password." in response.content

    def test_inactive_account(self, client, alice):
        """Test inactive members are told to activate."""
        alice.is_active = False
        alice.save()
        response = client.post("/auth", {"identifier": "alice", "password": "qubits-and-gates"})
        assert b"Account is inactive." in response.content

    def test_protected_page_redirects(self, client, db):
        """Test member pages send visitors to /auth."""
        response = client.get("/dashboard")
        assert response.url == "/auth?redirect=/dashboard"


class TestProfiles:
    """Tests for profile pages."""

    def test_public_profile(self, client, alice):
        """Test profiles are public."""
        response = client.get("/u/alice")
        assert response.status_code == 200
        assert b"Alice Qubit" in response.content

    def test_edit_profile(self, alice_client, alice):
        """Test editing the profile and timezone."""
        response = alice_client.post("/profile/edit", {
            "full_name": "Alice Q. Bit",
            "city": "Delft",
            "country": "Netherlands",
            "timezone": "Europe/Amsterdam",
            "highest_education": "PhD",
        })
        assert response.url == "/u/alice"
        alice.refresh_from_db()
        assert alice.display_name == "Alice Q. Bit"
        assert alice.location == "Delft, Netherlands"
        assert alice.timezone == "Europe/Amsterdam"

    @pytest.mark.parametrize("username, message", [
        ("al/ice", b"Username can only contain letters, numbers, and underscores."),
        ("a b!", b"Username can only contain letters, numbers, and underscores."),
        ("al", b"Username must be at least 3 characters."),
        ("q" * 31, b"Username cannot exceed 30 characters."),
    ])
    def test_rename_follows_signup_rules(self, alice_client, alice, username, message):
        """Test a rename to a name sign-up would refuse is rejected and pages keep working."""
        feed.create_post(alice, "Superposition is fun")
        response = alice_client.post("/profile/edit", {"username": username, "full_name": "Alice"})
        assert response.status_code == 200
        assert message in response.content
        alice.refresh_from_db()
        assert alice.username == "alice"
        assert alice_client.get("/").status_code == 200

    def test_rename(self, alice_client, alice):
        """Test a valid new username moves the profile."""
        response = alice_client.post("/profile/edit", {"username": "alice_q", "full_name": "Alice"})
        assert response.url == "/u/alice_q"
        alice.refresh_from_db()
        assert alice.username == "alice_q"

    def test_unknown_timezone_falls_back(self, alice_client, alice):
        """Test an unknown timezone is stored as UTC."""
        alice_client.post("/profile/edit", {"full_name": "Alice", "timezone": "Mars/Olympus"})
        alice.refresh_from_db()
        assert alice.timezone == "UTC"

    def test_display_helpers(self, db):
        """Test display name and initials fallbacks."""
        user = User(username="", full_name="")
        assert user.display_name == "Quantum member"
        assert user.initials == "Q5"
        assert User(username="x", full_name="ada lovelace king").initials == "AL"


class TestPasswordChange:
    """Tests for changing the password from the security page."""

    def change(self, client, old="qubits-and-gates", new="entangled-photons-42", confirm=None):
        return client.post("/settings/security", {
            "old_password": old,
            "new_password1": new,
            "new_password2": new if confirm is None else confirm,
        })

    def test_change_password(self, alice_client, alice):
        """Test a successful change keeps the member signed in."""
        response = self.change(alice_client)
        assert response.url == "/settings/security/done"
        page = alice_client.get(response.url)
        assert b"Password updated successfully." in page.content
        alice.refresh_from_db()
        assert alice.check_password("entangled-photons-42")
        assert alice_client.get("/dashboard").status_code == 200

    def test_wrong_current_password(self, alice_client, alice):
        """Test the current password is verified."""
        response = self.change(alice_client, old="not-my-password")
        assert response.status_code == 200
        assert b"Current password is incorrect." in response.content
        alice.refresh_from_db()
        assert alice.check_password("qubits-and-gates")

    def test_mismatch_and_short(self, alice_client, alice):
        """Test confirmation and minimum length."""
        response = self.change(alice_client, confirm="entangled-photons-43")
        assert b"New passwords do not match." in response.content
        response = self.change(alice_client, new="q5q5q5")
        assert b"at least 8 characters" in response.content
        alice.refresh_from_db()
        assert alice.check_password("qubits-and-gates")

    def test_signed_out_redirects_to_auth(self, client, db):
        """Test the security page needs a signed-in member."""
        response = client.get("/settings/security")
        assert response.url == "/auth?redirect=/settings/security"
