"""
voice_token_service.signing.protocol

Message types exchanged between the service and its signing workers.

Responsibilities:
- Define the request/response payloads that cross the worker boundary.
- Carry a correlation id so responses can be matched to the request that caused them.

All types are plain frozen dataclasses so they pickle cleanly across process queues.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SigningCredentials:
    account_sid: str
    api_key: str
    api_secret: str
    app_sid: str

    def __repr__(self) -> str:
        # The secret must never end up in logs or tracebacks.
        return (
            f"SigningCredentials(account_sid={self.account_sid!r}, "
            f"api_key={self.api_key!r}, app_sid={self.app_sid!r})"
        )


@dataclass(frozen=True, slots=True)
class SignRequest:
    request_id: int
    identity: str
    credentials: SigningCredentials
    ttl_seconds: int = 3600


@dataclass(frozen=True, slots=True)
class SignResponse:
    request_id: int
    token: str | None
    # Diagnostic only; never returned to HTTP callers.
    error: str | None = None

    @property
    def ok(self) -> bool:
        return bool(self.token)


# Placed on a worker inbox to ask the worker loop to exit.
SHUTDOWN = None


# --- Module Notes -----------------------------------------------------------
# Workers echo `request_id` back unchanged; the pool keys its pending map on it.
