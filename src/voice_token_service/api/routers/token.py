from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from voice_token_service.api.deps import (
    enforce_token_rate_limit,
    settings_from_app,
    token_service_from_app,
)
from voice_token_service.errors import InvalidIdentityError, TokenServiceError
from voice_token_service.observability.logging import get_logger
from voice_token_service.services.token_service import TokenService
from voice_token_service.settings import Settings

log = get_logger(__name__)

router = APIRouter(tags=["token"])


class TokenResponse(BaseModel):
    token: str
    identity: str
    cached: bool


def resolve_identity(raw: str | None, settings: Settings) -> str:
    # Absent or empty identity falls back to the default caller.
    identity = raw or settings.default_identity
    if len(identity) > settings.max_identity_length:
        raise InvalidIdentityError(
            f"identity must be at most {settings.max_identity_length} characters"
        )
    return identity


@router.get(
    "/token",
    response_model=TokenResponse,
    dependencies=[Depends(enforce_token_rate_limit)],
)
async def get_token(
    identity: str | None = Query(default=None),
    settings: Settings = Depends(settings_from_app),
    service: TokenService = Depends(token_service_from_app),
) -> TokenResponse:
    resolved = resolve_identity(identity, settings)
    try:
        issued = await service.issue(identity=resolved)
    except TokenServiceError:
        raise
    except Exception as e:
        # Dispatch/backend errors we did not classify still map to a generic 500.
        log.exception("token_request_error", identity=resolved)
        raise TokenServiceError(str(e)) from e
    return TokenResponse(token=issued.token, identity=issued.identity, cached=issued.cached)
