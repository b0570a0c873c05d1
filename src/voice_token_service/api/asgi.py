"""
voice_token_service.api.asgi

Module-level ASGI application for serverless hosts and `uvicorn voice_token_service.api.asgi:app`.

The app is built from the environment at import time; the worker pool and cache are
started lazily by the lifespan on the first invocation of a container.
"""

from __future__ import annotations

from voice_token_service.api.app import create_app
from voice_token_service.settings import get_settings

app = create_app(settings=get_settings())
