"""
Test configuration and fixtures.

RSA key pairs are generated once per session: one for the caller's token
issuer (verified by the gateway), one for the gateway's own outbound tokens,
and a rogue pair nothing trusts.
"""
import hashlib
import os
import uuid
from collections import Counter
from typing import AsyncGenerator, BinaryIO, Callable, Dict, List, Optional

# Set test environment before any imports
os.environ["ENVIRONMENT"] = "test"

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from gateway.auth.gate import AuthorizationGate
from gateway.auth.outcomes import VerificationOutcome, VerificationSuccess
from gateway.auth.tokens import sign_claims
from gateway.config import (
    AuthorizedIdentity,
    GatewayConfig,
    ServiceIdentity,
    StorageConfig,
)
from gateway.schemas.multipart import UploadedPart
from gateway.schemas.order import Claims, MayAct, OrderMetadata, OrderStatus
from gateway.services.multipart import MultipartUploadOrchestrator
from gateway.services.objects import ObjectService
from gateway.storage.base import ObjectStore, ObjectStoreError, StoredObject


ALGORITHM = "RS512"
COOKIE_NAME = "jwt"


class KeyPair:
    def __init__(self):
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.private_pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode()
        self.public_pem = key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()


class FakeStore(ObjectStore):
    """In-memory store that behaves like R2 for the calls the gateway makes."""

    NO_SUCH_UPLOAD = "The specified multipart upload does not exist."

    def __init__(self):
        self.objects: Dict[str, dict] = {}
        self.uploads: Dict[str, dict] = {}
        self.calls = Counter()
        self.fail_with: Dict[str, str] = {}

    def _maybe_fail(self, operation: str):
        self.calls[operation] += 1
        if operation in self.fail_with:
            raise ObjectStoreError(self.fail_with[operation])

    def _open_upload(self, key: str, upload_id: str) -> dict:
        upload = self.uploads.get(upload_id)
        if upload is None or upload["key"] != key:
            raise ObjectStoreError(self.NO_SUCH_UPLOAD, "NoSuchUpload")
        return upload

    def create_multipart_upload(self, key: str) -> str:
        self._maybe_fail("create_multipart_upload")
        upload_id = uuid.uuid4().hex
        self.uploads[upload_id] = {"key": key, "parts": {}}
        return upload_id

    def upload_part(self, key: str, upload_id: str, part_number: int, body: BinaryIO, content_length: int) -> str:
        self._maybe_fail("upload_part")
        upload = self._open_upload(key, upload_id)
        data = body.read()
        assert len(data) == content_length
        etag = f'"{hashlib.md5(data).hexdigest()}"'
        upload["parts"][part_number] = (etag, data)
        return etag

    def complete_multipart_upload(self, key: str, upload_id: str, parts: List[UploadedPart]) -> str:
        self._maybe_fail("complete_multipart_upload")
        upload = self._open_upload(key, upload_id)
        numbers = [part.part_number for part in parts]
        if numbers != sorted(set(numbers)):
            raise ObjectStoreError("The list of parts was not in ascending order.", "InvalidPartOrder")
        for part in parts:
            stored = upload["parts"].get(part.part_number)
            if stored is None or stored[0] != part.etag:
                raise ObjectStoreError("One or more of the specified parts could not be found.", "InvalidPart")
        data = b"".join(upload["parts"][n][1] for n in numbers)
        etag = f'"{hashlib.md5(data).hexdigest()}-{len(numbers)}"'
        self.objects[key] = {"data": data, "etag": etag, "content_type": "application/octet-stream"}
        del self.uploads[upload_id]
        return etag

    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        self._maybe_fail("abort_multipart_upload")
        self._open_upload(key, upload_id)
        del self.uploads[upload_id]

    def get_object(self, key: str) -> Optional[StoredObject]:
        self._maybe_fail("get_object")
        stored = self.objects.get(key)
        if stored is None:
            return None
        return StoredObject(
            body=iter([stored["data"]]),
            etag=stored["etag"],
            content_type=stored["content_type"],
            content_length=len(stored["data"]),
            http_metadata={"cache-control": "max-age=60"},
        )

    def delete_object(self, key: str) -> None:
        self._maybe_fail("delete_object")
        self.objects.pop(key, None)


class FakeVerifier:
    """Stands in for RemoteVerificationClient; records every call."""

    def __init__(self, outcome: Optional[VerificationOutcome] = None):
        self.outcome = outcome or VerificationSuccess({"message": "OK"})
        self.calls: List[OrderMetadata] = []

    async def verify(self, metadata: OrderMetadata) -> VerificationOutcome:
        self.calls.append(metadata)
        return self.outcome


@pytest.fixture(scope="session")
def caller_keys() -> KeyPair:
    """Key pair of the token issuer the gateway trusts."""
    return KeyPair()


@pytest.fixture(scope="session")
def gateway_keys() -> KeyPair:
    """Key pair the gateway signs its outbound tokens with."""
    return KeyPair()


@pytest.fixture(scope="session")
def rogue_keys() -> KeyPair:
    """Key pair nobody trusts."""
    return KeyPair()


@pytest.fixture
def gateway_config(caller_keys: KeyPair, gateway_keys: KeyPair) -> GatewayConfig:
    return GatewayConfig(
        cookie_name=COOKIE_NAME,
        authorized_identity=AuthorizedIdentity(
            subject="storefront",
            realm="orders",
            audience="object-gateway",
            client_id="storefront-web",
        ),
        service_identity=ServiceIdentity(
            subject="object-gateway",
            realm="orders",
            audience="conveyor",
            client_id="object-gateway-worker",
        ),
        inbound_verification_key=caller_keys.public_pem,
        outbound_signing_key=gateway_keys.private_pem,
        signing_algorithm=ALGORITHM,
        verification_base_url="https://conveyor.test",
        verification_api_version="v1",
        verification_cookie_name="jwt",
        verification_timeout=5.0,
        storage=StorageConfig(
            endpoint=None,
            bucket="orders-test",
            access_key=None,
            secret_key=None,
            region="auto",
        ),
    )


@pytest.fixture
def order_metadata() -> OrderMetadata:
    return OrderMetadata(
        order_id="ord_123",
        order_cart_id="cart_456",
        order_song_ids=["song_1", "song_2"],
        order_status=OrderStatus.WORK_STARTED,
    )


@pytest.fixture
def caller_claims(gateway_config: GatewayConfig, order_metadata: OrderMetadata) -> Claims:
    """Claims that match the authorized identity exactly."""
    identity = gateway_config.authorized_identity
    return Claims(
        realm=identity.realm,
        sub=identity.subject,
        may_act=MayAct(client_id=identity.client_id),
        nbf=1700000000,
        iat=1700000000,
        addl=order_metadata,
        aud=identity.audience,
    )


@pytest.fixture
def make_token(caller_keys: KeyPair, caller_claims: Claims) -> Callable[..., str]:
    """Sign caller claims, optionally overriding fields or the signing key."""

    def _make_token(private_key: Optional[str] = None, **overrides) -> str:
        claims = caller_claims.model_copy(update=overrides)
        return sign_claims(claims, private_key or caller_keys.private_pem, ALGORITHM)

    return _make_token


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fake_verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def orchestrator(fake_store: FakeStore) -> MultipartUploadOrchestrator:
    return MultipartUploadOrchestrator(fake_store)


def get_test_app(
    gateway_config: GatewayConfig,
    fake_store: FakeStore,
    fake_verifier: FakeVerifier
) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    from gateway.main import app
    from gateway.api.dependencies import get_gate, get_orchestrator, get_object_service

    gate = AuthorizationGate(gateway_config, fake_verifier)
    orchestrator = MultipartUploadOrchestrator(fake_store)
    objects = ObjectService(fake_store)

    app.dependency_overrides[get_gate] = lambda: gate
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_object_service] = lambda: objects

    return app


@pytest.fixture(scope="function")
async def anonymous_client(
    gateway_config: GatewayConfig,
    fake_store: FakeStore,
    fake_verifier: FakeVerifier
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that sends no credential cookie."""
    app = get_test_app(gateway_config, fake_store, fake_verifier)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(
    gateway_config: GatewayConfig,
    fake_store: FakeStore,
    fake_verifier: FakeVerifier,
    make_token: Callable[..., str]
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client carrying a valid capability token cookie."""
    app = get_test_app(gateway_config, fake_store, fake_verifier)

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        cookies={COOKIE_NAME: make_token()},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
