"""Google identity provider client.

Learn: Google hands browsers two kinds of credential, depending on which
client flow the frontend uses:
- ID token (Sign-In button / One Tap): a RS256 JWT we can verify
  locally against Google's published signing keys (JWKS).
- Access token (OAuth implicit / token client): an opaque string we can
  only exchange at Google's userinfo endpoint for the profile.

This module knows how to do each; choosing between them is the
credential verifier's job.

Two failure kinds, kept apart on purpose:
- IdentityTokenError: Google says the token is no good → 401.
- DependencyError: we could not reach Google (or it answered 5xx) → 500.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import httpx
import jwt
import structlog

from ticketdesk.errors import DependencyError

logger = structlog.get_logger()

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
DEFAULT_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
DEFAULT_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class IdentityTokenError(Exception):
    """Raised when Google rejects (or we cannot validate) a presented token."""


@dataclass(frozen=True)
class ExternalIdentity:
    subject: str
    email: Optional[str]
    name: Optional[str] = None


class IdentityProvider(Protocol):
    """What the credential verifier needs from an identity provider."""

    async def verify_structured_token(self, token: str, audience: str) -> ExternalIdentity:
        ...

    async def introspect_opaque_token(self, token: str) -> ExternalIdentity:
        ...


class GoogleIdentityProvider:
    """Verifies Google ID tokens and resolves Google access tokens.

    Learn: The JWKS document is cached for `jwks_ttl` seconds. A token
    signed with a key id we have not seen triggers one forced refetch,
    which covers Google's routine key rotation.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        certs_url: str = DEFAULT_CERTS_URL,
        userinfo_url: str = DEFAULT_USERINFO_URL,
        jwks_ttl: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._http = http
        self._certs_url = certs_url
        self._userinfo_url = userinfo_url
        self._jwks_ttl = jwks_ttl
        self._clock = clock
        self._jwks: Optional[jwt.PyJWKSet] = None
        self._jwks_fetched_at = 0.0
        self._jwks_lock = asyncio.Lock()

    # ─── ID tokens ───────────────────────────────────────

    async def verify_structured_token(self, token: str, audience: str) -> ExternalIdentity:
        """Verify a Google ID token's signature, audience, issuer and expiry."""
        if not audience:
            raise IdentityTokenError("Google client ID is not configured")

        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            raise IdentityTokenError(f"Malformed ID token: {e}")

        signing_key = await self._signing_key(header.get("kid"))

        try:
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                audience=audience,
                options={"require": ["exp", "iat", "iss", "aud", "sub"]},
            )
        except jwt.InvalidTokenError as e:
            raise IdentityTokenError(f"ID token rejected: {e}")

        if payload.get("iss") not in GOOGLE_ISSUERS:
            raise IdentityTokenError(f"Unexpected issuer: {payload.get('iss')}")
        if payload.get("email_verified") is False:
            raise IdentityTokenError("Google email is not verified")
        if not payload.get("email"):
            raise IdentityTokenError("ID token carries no email")

        return ExternalIdentity(
            subject=str(payload["sub"]),
            email=payload["email"],
            name=payload.get("name"),
        )

    async def _signing_key(self, kid: Optional[str]) -> jwt.PyJWK:
        if not kid:
            raise IdentityTokenError("ID token header has no key id")

        key = _find_key(await self._load_jwks(), kid)
        if key is None:
            key = _find_key(await self._load_jwks(force=True), kid)
        if key is None:
            raise IdentityTokenError(f"Unknown signing key: {kid}")
        return key

    async def _load_jwks(self, force: bool = False) -> jwt.PyJWKSet:
        async with self._jwks_lock:
            fresh = self._clock() - self._jwks_fetched_at < self._jwks_ttl
            if self._jwks is not None and fresh and not force:
                return self._jwks

            document = await self._get_json(self._certs_url)
            try:
                self._jwks = jwt.PyJWKSet.from_dict(document)
            except (jwt.PyJWKError, jwt.PyJWKSetError, AttributeError) as e:
                logger.error("google.jwks_invalid", error=str(e))
                raise DependencyError("Google sign-in is unavailable.") from e
            self._jwks_fetched_at = self._clock()
            return self._jwks

    async def _get_json(self, url: str) -> dict:
        try:
            resp = await self._http.get(url)
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("google.request_failed", url=url, error=str(e))
            raise DependencyError("Google sign-in is unavailable.") from e

    # ─── Access tokens ───────────────────────────────────

    async def introspect_opaque_token(self, token: str) -> ExternalIdentity:
        """Exchange an access token for the user's Google profile."""
        try:
            resp = await self._http.get(
                self._userinfo_url,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.error("google.userinfo_unreachable", error=str(e))
            raise DependencyError("Google sign-in is unavailable.") from e

        if resp.status_code in (400, 401, 403):
            raise IdentityTokenError(f"userinfo rejected token ({resp.status_code})")
        if resp.status_code >= 400:
            logger.error("google.userinfo_error", status=resp.status_code)
            raise DependencyError("Google sign-in is unavailable.")

        try:
            data = resp.json()
        except ValueError as e:
            raise DependencyError("Google sign-in is unavailable.") from e

        if not isinstance(data, dict) or not data.get("sub"):
            raise IdentityTokenError("userinfo response has no subject")
        if data.get("email_verified") is False:
            raise IdentityTokenError("Google email is not verified")

        return ExternalIdentity(
            subject=str(data["sub"]),
            email=data.get("email"),
            name=data.get("name"),
        )


def _find_key(jwks: jwt.PyJWKSet, kid: str) -> Optional[jwt.PyJWK]:
    for key in jwks.keys:
        if key.key_id == kid:
            return key
    return None
