"""GoogleIdentityProvider tests.

Learn: No network. A locally generated RSA key plays Google's signing
key; httpx.MockTransport serves its JWKS and a scripted userinfo
endpoint, so the real PyJWT verification path runs end to end.
"""

import json
import time

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from ticketdesk.auth.google import (
    DEFAULT_CERTS_URL,
    DEFAULT_USERINFO_URL,
    GoogleIdentityProvider,
    IdentityTokenError,
)
from ticketdesk.errors import DependencyError

AUDIENCE = "client-123.apps.googleusercontent.com"


def _rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _jwk(private_key, kid: str) -> dict:
    jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
    jwk.update({"kid": kid, "alg": "RS256", "use": "sig"})
    return jwk


def _id_token(private_key, kid: str = "key-1", **overrides) -> str:
    now = int(time.time())
    claims = {
        "iss": "https://accounts.google.com",
        "aud": AUDIENCE,
        "sub": "g-1",
        "email": "b@x.com",
        "email_verified": True,
        "name": "Bea",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    return jwt.encode(claims, private_key, algorithm="RS256", headers={"kid": kid})


class GoogleStub:
    """Serves the certs and userinfo endpoints; counts requests per URL."""

    def __init__(self, jwks: list[dict], userinfo: httpx.Response | None = None):
        self.jwks = jwks
        self.userinfo = userinfo or httpx.Response(401, json={"error": "invalid_token"})
        self.hits: dict[str, int] = {}
        self.auth_headers: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.hits[url] = self.hits.get(url, 0) + 1
        if url == DEFAULT_CERTS_URL:
            return httpx.Response(200, json={"keys": self.jwks})
        if url == DEFAULT_USERINFO_URL:
            self.auth_headers.append(request.headers.get("Authorization", ""))
            return self.userinfo
        return httpx.Response(404)


@pytest.fixture(scope="module")
def signing_key():
    return _rsa_key()


def _provider(stub) -> GoogleIdentityProvider:
    return GoogleIdentityProvider(httpx.AsyncClient(transport=httpx.MockTransport(stub)))


# ═══════════════════════════════════════════════════════════
# ID tokens
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_valid_id_token(signing_key):
    provider = _provider(GoogleStub([_jwk(signing_key, "key-1")]))
    identity = await provider.verify_structured_token(_id_token(signing_key), AUDIENCE)
    assert identity.subject == "g-1"
    assert identity.email == "b@x.com"
    assert identity.name == "Bea"


@pytest.mark.asyncio
async def test_jwks_is_cached(signing_key):
    stub = GoogleStub([_jwk(signing_key, "key-1")])
    provider = _provider(stub)
    await provider.verify_structured_token(_id_token(signing_key), AUDIENCE)
    await provider.verify_structured_token(_id_token(signing_key, sub="g-2"), AUDIENCE)
    assert stub.hits[DEFAULT_CERTS_URL] == 1


@pytest.mark.asyncio
async def test_unknown_kid_refetches_keys_once(signing_key):
    rotated = _rsa_key()
    stub = GoogleStub([_jwk(signing_key, "key-1")])
    provider = _provider(stub)
    await provider.verify_structured_token(_id_token(signing_key), AUDIENCE)

    stub.jwks = [_jwk(signing_key, "key-1"), _jwk(rotated, "key-2")]
    identity = await provider.verify_structured_token(
        _id_token(rotated, kid="key-2"), AUDIENCE
    )
    assert identity.subject == "g-1"
    assert stub.hits[DEFAULT_CERTS_URL] == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"aud": "someone-else.apps.googleusercontent.com"},
        {"iss": "https://evil.example.com"},
        {"exp": int(time.time()) - 60},
        {"email_verified": False},
        {"email": None},
    ],
)
async def test_id_token_rejected(signing_key, overrides):
    provider = _provider(GoogleStub([_jwk(signing_key, "key-1")]))
    with pytest.raises(IdentityTokenError):
        await provider.verify_structured_token(_id_token(signing_key, **overrides), AUDIENCE)


@pytest.mark.asyncio
async def test_id_token_signed_by_wrong_key(signing_key):
    impostor = _rsa_key()
    provider = _provider(GoogleStub([_jwk(signing_key, "key-1")]))
    with pytest.raises(IdentityTokenError):
        await provider.verify_structured_token(_id_token(impostor, kid="key-1"), AUDIENCE)


@pytest.mark.asyncio
async def test_missing_client_id_rejects(signing_key):
    provider = _provider(GoogleStub([_jwk(signing_key, "key-1")]))
    with pytest.raises(IdentityTokenError):
        await provider.verify_structured_token(_id_token(signing_key), "")


@pytest.mark.asyncio
async def test_certs_endpoint_down_is_dependency_error(signing_key):
    def handler(request):
        return httpx.Response(503)

    provider = _provider(handler)
    with pytest.raises(DependencyError):
        await provider.verify_structured_token(_id_token(signing_key), AUDIENCE)


# ═══════════════════════════════════════════════════════════
# Access tokens
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_access_token_introspection():
    stub = GoogleStub([], httpx.Response(200, json={"sub": "g-9", "email": "c@x.com"}))
    identity = await _provider(stub).introspect_opaque_token("ya29.opaque")
    assert identity.subject == "g-9"
    assert identity.email == "c@x.com"
    assert identity.name is None
    assert stub.auth_headers == ["Bearer ya29.opaque"]


@pytest.mark.asyncio
async def test_access_token_rejected_by_google():
    stub = GoogleStub([], httpx.Response(401, json={"error": "invalid_token"}))
    with pytest.raises(IdentityTokenError):
        await _provider(stub).introspect_opaque_token("ya29.revoked")


@pytest.mark.asyncio
async def test_userinfo_server_error_is_dependency_error():
    stub = GoogleStub([], httpx.Response(502, text="bad gateway"))
    with pytest.raises(DependencyError):
        await _provider(stub).introspect_opaque_token("ya29.opaque")


@pytest.mark.asyncio
async def test_userinfo_unreachable_is_dependency_error():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(DependencyError):
        await _provider(handler).introspect_opaque_token("ya29.opaque")
