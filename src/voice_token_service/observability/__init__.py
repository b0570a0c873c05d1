"""
voice_token_service.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Request context propagation, access logging, and response security headers.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Metrics exporters can be added here without touching the token path.
