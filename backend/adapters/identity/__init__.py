"""Identity provider adapters."""

from .google_adapter import GoogleAuthError, GoogleIdentityVerifier, GoogleProfile

__all__ = ["GoogleAuthError", "GoogleIdentityVerifier", "GoogleProfile"]
