from __future__ import annotations

from unittest.mock import MagicMock

import fakeredis
import pytest

from promptnotes import create_app
from promptnotes.config import Config
from promptnotes.services.container import build_services
from promptnotes.services.kv import KeyValueStore
from promptnotes.services.media import ImageStore

TEST_SECRET = "test-secret"


@pytest.fixture()
def store():
    return KeyValueStore(fakeredis.FakeRedis(decode_responses=True))


@pytest.fixture()
def s3_client():
    return MagicMock()


@pytest.fixture()
def services(store, s3_client):
    media = ImageStore(
        bucket="test-bucket",
        region="us-east-1",
        public_base_url="https://cdn.example.com",
        client=s3_client,
    )
    return build_services(store, jwt_secret=TEST_SECRET, media=media, bcrypt_rounds=4)


@pytest.fixture()
def app(services):
    app = create_app(testing=True, services=services)
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def login(client, services):
    """Put a valid session cookie for ``user_id`` on the test client."""

    def _login(user_id: str = "user-a"):
        client.set_cookie(Config.SESSION_COOKIE_NAME, services.tokens.issue(user_id))
        return user_id

    return _login
