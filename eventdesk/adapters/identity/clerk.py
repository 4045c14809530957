"""
Clerk identity adapter - Verifies session tokens issued by Clerk.

Clerk signs session JWTs with RS256; the public keys are served from
the instance's JWKS endpoint. PyJWKClient fetches and caches them and
picks the key matching the token's "kid" header.

Name and email are not part of Clerk's default session claims; the
session token template is expected to add "email" and "name" (or
"first_name"/"last_name"). Missing claims yield empty strings.
"""

import logging
from collections.abc import Mapping
from typing import Any

import jwt
from jwt import PyJWKClient

from eventdesk.domain.exceptions import IdentityError
from eventdesk.domain.ports import Identity

logger = logging.getLogger(__name__)


def identity_from_claims(claims: Mapping[str, Any]) -> Identity:
    """
    Build an Identity from verified token claims.

    Raises:
        IdentityError: If the "sub" claim is missing
    """
    subject = claims.get("sub")
    if not subject:
        raise IdentityError("Token missing 'sub' claim")

    full_name = claims.get("name") or claims.get("full_name") or ""
    if not full_name:
        parts = [claims.get("first_name") or "", claims.get("last_name") or ""]
        full_name = " ".join(part for part in parts if part)

    email = claims.get("email") or claims.get("primary_email") or ""
    return Identity(id=subject, full_name=full_name, email=email)


class ClerkIdentityVerifier:
    """Turns a bearer token into a verified Identity."""

    def __init__(
        self,
        jwks_url: str,
        issuer: str | None = None,
        leeway: int = 5,
        jwks_client: PyJWKClient | None = None,
    ) -> None:
        if not jwks_url and jwks_client is None:
            raise ValueError("A Clerk JWKS URL must be configured")
        self.issuer = issuer or None
        self.leeway = leeway
        self._jwks_client = jwks_client or PyJWKClient(jwks_url, cache_keys=True)

    def verify(self, token: str) -> Identity:
        """
        Verify the token signature, expiry and issuer.

        Raises:
            IdentityError: If the token is invalid or expired
        """
        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                issuer=self.issuer,
                leeway=self.leeway,
                options={"require": ["sub", "exp"], "verify_aud": False},
            )
        except jwt.PyJWTError as e:
            logger.warning("JWT validation failed: %s", e)
            raise IdentityError(f"Token validation failed: {e}") from e
        return identity_from_claims(claims)
