"""Identity (sign-in) provider adapters."""

from kickflip.providers.identity.google_identity_provider import GoogleIdentityProvider

__all__ = ["GoogleIdentityProvider"]
