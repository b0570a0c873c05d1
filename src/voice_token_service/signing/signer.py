"""
voice_token_service.signing.signer

Credential signer: turns a sign request into a Twilio Access Token with a Voice grant.

Runs inside a signing worker, never on the event loop.
"""

from __future__ import annotations

from twilio.jwt.access_token import AccessToken
from twilio.jwt.access_token.grants import VoiceGrant

from voice_token_service.signing.protocol import SignRequest


def sign_voice_token(request: SignRequest) -> str:
    creds = request.credentials
    missing = [
        name
        for name, value in (
            ("account_sid", creds.account_sid),
            ("api_key", creds.api_key),
            ("api_secret", creds.api_secret),
            ("app_sid", creds.app_sid),
        )
        if not value
    ]
    if missing:
        raise ValueError(f"missing signing credentials: {', '.join(missing)}")

    token = AccessToken(
        creds.account_sid,
        creds.api_key,
        creds.api_secret,
        identity=request.identity,
        ttl=request.ttl_seconds,
    )
    token.add_grant(
        VoiceGrant(
            outgoing_application_sid=creds.app_sid,
            incoming_allow=True,
        )
    )
    return token.to_jwt()


# --- Module Notes -----------------------------------------------------------
# Must stay a module-level function: process workers receive it by reference (pickle).
