from __future__ import annotations

import jwt
import pytest

from voice_token_service.signing.protocol import SigningCredentials, SignRequest
from voice_token_service.signing.signer import sign_voice_token

CREDS = SigningCredentials(
    account_sid="AC" + "a" * 32,
    api_key="SK" + "b" * 32,
    api_secret="c" * 32,
    app_sid="AP" + "d" * 32,
)


def test_token_carries_voice_grant_for_identity() -> None:
    token = sign_voice_token(SignRequest(request_id=1, identity="field-agent", credentials=CREDS))

    claims = jwt.decode(token, CREDS.api_secret, algorithms=["HS256"])
    grants = claims["grants"]
    assert grants["identity"] == "field-agent"
    assert grants["voice"]["outgoing"]["application_sid"] == CREDS.app_sid
    assert grants["voice"]["incoming"]["allow"] is True
    assert claims["sub"] == CREDS.account_sid
    assert claims["iss"] == CREDS.api_key


def test_missing_credentials_fail_loudly() -> None:
    partial = SigningCredentials(account_sid="AC1", api_key="", api_secret="", app_sid="AP1")

    with pytest.raises(ValueError, match="api_key, api_secret"):
        sign_voice_token(SignRequest(request_id=1, identity="x", credentials=partial))
