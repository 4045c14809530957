"""Identity adapters - Identity provider token verification."""

from .clerk import ClerkIdentityVerifier, identity_from_claims

__all__ = ["ClerkIdentityVerifier", "identity_from_claims"]
