"""
voice_token_service.api.routers.health

Liveness endpoint.
"""

from __future__ import annotations

import os

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str | int]:
    # Liveness only: never touches the cache or the signing pool.
    return {"status": "ok", "pid": os.getpid()}
