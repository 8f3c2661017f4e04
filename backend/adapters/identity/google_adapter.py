"""
Google Sign-In adapter.

Verifies Google ID tokens issued to the frontend and turns them into a
normalized profile the identity service can map onto a local account.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from google.auth.transport.requests import Request
from google.oauth2 import id_token as google_id_token

logger = logging.getLogger(__name__)

_TRUSTED_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class GoogleAuthError(Exception):
    """Raised when a Google ID token cannot be verified."""
    pass


@dataclass
class GoogleProfile:
    """Identity claims taken from a Google account."""

    google_id: str
    email: str
    name: str
    picture: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "GoogleProfile":
        email = claims["email"]
        return cls(
            google_id=claims["sub"],
            email=email,
            name=claims.get("name") or email.split("@")[0],
            picture=claims.get("picture"),
        )


class GoogleIdentityVerifier:
    """Verifies ID tokens against Google's public keys for one OAuth client."""

    def __init__(self, client_id: str):
        self._client_id = client_id

    def _verify_sync(self, token: str) -> Dict[str, Any]:
        return google_id_token.verify_oauth2_token(token, Request(), self._client_id)

    async def verify(self, token: str) -> GoogleProfile:
        """
        Verify an ID token and return the profile it asserts.

        Raises:
            GoogleAuthError: If the token is malformed, expired, issued for a
                different client, or the email is not verified.
        """
        try:
            # google-auth fetches signing certs over blocking HTTP
            claims = await asyncio.to_thread(self._verify_sync, token)
        except ValueError as e:
            logger.warning("Google ID token rejected: %s", e)
            raise GoogleAuthError("Invalid Google credential") from e

        if claims.get("iss") not in _TRUSTED_ISSUERS:
            raise GoogleAuthError("Untrusted token issuer")
        if not claims.get("email") or not claims.get("email_verified", False):
            raise GoogleAuthError("Google account email is not verified")

        return GoogleProfile.from_claims(claims)
