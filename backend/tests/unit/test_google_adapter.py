"""
Unit tests for the Google ID token verifier.
"""

from unittest.mock import patch

import pytest

from adapters.identity import GoogleAuthError, GoogleIdentityVerifier, GoogleProfile


def _claims(**overrides):
    claims = {
        "iss": "https://accounts.google.com",
        "sub": "1234567890",
        "email": "ann@example.com",
        "email_verified": True,
        "name": "Ann",
        "picture": "https://example.com/ann.png",
    }
    claims.update(overrides)
    return claims


class TestGoogleIdentityVerifier:
    @pytest.mark.asyncio
    async def test_valid_token_yields_profile(self):
        verifier = GoogleIdentityVerifier("client-id")
        with patch.object(verifier, "_verify_sync", return_value=_claims()):
            profile = await verifier.verify("token")

        assert profile == GoogleProfile(
            google_id="1234567890",
            email="ann@example.com",
            name="Ann",
            picture="https://example.com/ann.png",
        )

    @pytest.mark.asyncio
    async def test_rejected_token(self):
        verifier = GoogleIdentityVerifier("client-id")
        with patch.object(verifier, "_verify_sync", side_effect=ValueError("Token expired")):
            with pytest.raises(GoogleAuthError):
                await verifier.verify("token")

    @pytest.mark.asyncio
    async def test_untrusted_issuer(self):
        verifier = GoogleIdentityVerifier("client-id")
        with patch.object(verifier, "_verify_sync", return_value=_claims(iss="evil.example.com")):
            with pytest.raises(GoogleAuthError, match="issuer"):
                await verifier.verify("token")

    @pytest.mark.asyncio
    async def test_unverified_email(self):
        verifier = GoogleIdentityVerifier("client-id")
        with patch.object(verifier, "_verify_sync", return_value=_claims(email_verified=False)):
            with pytest.raises(GoogleAuthError, match="not verified"):
                await verifier.verify("token")


def test_profile_name_falls_back_to_email_local_part():
    profile = GoogleProfile.from_claims({"sub": "1", "email": "bob@x.com"})

    assert profile.name == "bob"
    assert profile.picture is None
