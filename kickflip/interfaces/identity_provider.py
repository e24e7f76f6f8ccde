"""Abstract base class for third-party sign-in verification."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class VerifiedUser:
    """Profile extracted from a verified identity token."""

    id: str
    name: str
    email: str
    avatar: str = ""


# Concrete implementation: GoogleIdentityProvider (kickflip/providers/identity/)
class IIdentityProvider(ABC):
    """Contract for verifying a client-supplied identity token."""

    @abstractmethod
    async def verify(self, token: str) -> VerifiedUser:
        """Verify *token* and return the user it identifies.

        Raises
        ------
        kickflip.utils.errors.AuthenticationError
            If the token is invalid, expired, or issued for another client.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"google"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if a client id is configured."""
