"""
voice_token_service.api

API package for the voice token service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring and response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: query parsing + rate limiting + delegation to the service.
