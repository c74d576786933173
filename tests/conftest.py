"""Shared fixtures for the authorization server tests."""
import pytest
from fastapi.testclient import TestClient

from main import create_app
from models import OAuthConfig
from token_codec import TokenCodec

SECRET = "test-secret-that-is-at-least-32-characters-long"
CLIENT_ID = "c1"
REDIRECT_URI = "https://cb.example/cb"


class FakeSessionProvider:
    """Session provider returning a fixed subject (or nobody)."""

    def __init__(self, subject="user-123"):
        self.subject = subject

    async def get_subject(self, request):
        return self.subject


def make_config(**overrides):
    values = {"jwt_secret": SECRET, "base_url": "https://auth.example"}
    values.update(overrides)
    return OAuthConfig(**values)


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def codec(config):
    return TokenCodec.from_config(config)


@pytest.fixture
def session():
    return FakeSessionProvider()


@pytest.fixture
def app(config, session):
    return create_app(config, session_provider=session)


@pytest.fixture
def client(app):
    return TestClient(app)
