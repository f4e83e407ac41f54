"""Identity token verification."""

from typing import Protocol


class TokenVerifier(Protocol):
    """Resolves a bearer token to the owner id it was issued for."""

    def verify(self, token: str) -> str | None:
        """Return the owner id, or None when the token is not valid."""


def parse_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
