"""Pytest configuration and fixtures."""
import pytest

from social import orgs
from social.models import Connection, Organization, User


@pytest.fixture(autouse=True)
def plain_http(settings):
    """Serve tests over plain HTTP without the static manifest or Cloudinary."""
    settings.SECURE_SSL_REDIRECT = False
    settings.USE_CLOUDINARY = False
    settings.STORAGES = {
        **settings.STORAGES,
        'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
    }


def make_user(username, full_name="", **extra):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="qubits-and-gates",
        full_name=full_name,
        **extra,
    )


@pytest.fixture
def alice(db):
    return make_user("alice", "Alice Qubit", role="PhD student", affiliation="QLab")


@pytest.fixture
def bob(db):
    return make_user("bob", "Bob Photon")


@pytest.fixture
def carol(db):
    return make_user("carol", "Carol Ion")


@pytest.fixture
def entangled(alice, bob):
    """Alice and Bob share an accepted entanglement."""
    return Connection.objects.create(user=alice, target_user=bob, status=Connection.STATUS_ACCEPTED)


@pytest.fixture
def company(alice):
    """Active company page owned by Alice."""
    return orgs.create_organization(
        alice,
        Organization.KIND_COMPANY,
        {"name": "Qubit Labs", "industry": "Quantum hardware", "country": "Denmark"},
    )


@pytest.fixture
def alice_client(client, alice):
    client.force_login(alice)
    return client
