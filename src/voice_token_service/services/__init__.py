"""
voice_token_service.services

Service layer package.

Responsibilities:
- Use-case orchestration between the cache and the signing pool.
"""

# Package marker.
