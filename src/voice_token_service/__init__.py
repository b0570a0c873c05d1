"""
voice_token_service

Top-level package for the voice-call access token service.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Keep this file minimal: process workers import the package on spawn.
