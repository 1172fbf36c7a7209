from __future__ import annotations

import base64
import time

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt
from starlette.testclient import TestClient

from activity_log.core.auth import jwks_cache
from activity_log.core.dependencies import (
    get_activity_service,
    get_current_user,
    get_employee_service,
    get_feedback_service,
)
from activity_log.main import app
from activity_log.models.auth import UserInfo
from activity_log.services.activity_service import ActivityService
from activity_log.services.employee_collections import CollectionResolver
from activity_log.services.employee_service import EmployeeService
from activity_log.services.feedback_service import FeedbackService
from tests.fakes import FakeIdentityProvider, InMemoryDocumentStore

TEST_TENANT_ID = "test-tenant-00000000-0000-0000-0000-000000000000"
TEST_CLIENT_ID = "test-client-00000000-0000-0000-0000-000000000000"
TEST_KID = "test-kid-1"


def _int_to_base64url(value: int) -> str:
    byte_length = (value.bit_length() + 7) // 8
    return base64.urlsafe_b64encode(value.to_bytes(byte_length, byteorder="big")).rstrip(b"=").decode("ascii")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _auth_settings():
    from activity_log.core.config import settings

    original_tenant = settings.AZURE_AD_TENANT_ID
    original_client = settings.AZURE_AD_CLIENT_ID
    settings.AZURE_AD_TENANT_ID = TEST_TENANT_ID
    settings.AZURE_AD_CLIENT_ID = TEST_CLIENT_ID
    jwks_cache.clear()
    yield
    settings.AZURE_AD_TENANT_ID = original_tenant
    settings.AZURE_AD_CLIENT_ID = original_client
    jwks_cache.clear()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def rsa_test_keys():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("utf-8")

    pub = private_key.public_key().public_numbers()
    jwk_dict = {
        "kty": "RSA",
        "kid": TEST_KID,
        "use": "sig",
        "alg": "RS256",
        "n": _int_to_base64url(pub.n),
        "e": _int_to_base64url(pub.e),
    }
    jwks_response = {"keys": [jwk_dict]}
    return private_pem, jwks_response


def _make_token(
    private_pem: str,
    *,
    oid: str = "test-oid-123",
    name: str = "Test User",
    email: str = "fiscal@example.com",
    expired: bool = False,
) -> str:
    now = int(time.time())
    claims = {
        "oid": oid,
        "name": name,
        "preferred_username": email,
        "iss": f"https://login.microsoftonline.com/{TEST_TENANT_ID}/v2.0",
        "aud": TEST_CLIENT_ID,
        "exp": now - 3600 if expired else now + 3600,
        "iat": now - 60,
        "nbf": now - 60,
    }
    return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": TEST_KID})


@pytest.fixture
def mock_user():
    return UserInfo(id="user-1", name="Maria Souza", email="maria@example.com")


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def employee_service(store, identity_provider):
    return EmployeeService(store, identity_provider, CollectionResolver())


@pytest.fixture
def authenticated_client(mock_user, store, employee_service):
    app.dependency_overrides[get_current_user] = lambda: mock_user
    app.dependency_overrides[get_employee_service] = lambda: employee_service
    app.dependency_overrides[get_activity_service] = lambda: ActivityService(store)
    app.dependency_overrides[get_feedback_service] = lambda: FeedbackService(store)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
