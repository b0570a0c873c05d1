"""
voice_token_service.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Keep the Twilio variable names used by existing deployments (TWILIO_*, REDIS_URL, PORT).
- Hide secrets from repr/logging (e.g., the API key secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from voice_token_service.signing.protocol import SigningCredentials


class Settings(BaseSettings):
    """
    - Env vars are read without a prefix so existing .env files keep working.
    - Defaults are safe for local dev; Twilio credentials have no defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "voice-token-service"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    port: int = 6000
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Twilio credentials forwarded to the signing workers with every request.
    twilio_account_sid: str = ""
    twilio_api_key: str = ""
    twilio_api_secret: str = Field(default="", repr=False)
    twilio_twiml_app_sid: str = ""
    grant_ttl_seconds: int = Field(default=3600, gt=0)

    # Signing worker pool
    max_workers: int = Field(default=8, ge=1)
    worker_mode: Literal["process", "thread"] = "process"
    sign_timeout_seconds: float = Field(default=10.0, gt=0)

    # Token cache
    redis_url: str = "redis://localhost:6379"
    cache_key_prefix: str = ""
    token_cache_ttl_seconds: int = Field(default=300, gt=0)
    align_cache_ttl_with_token: bool = True
    expiry_skew_seconds: int = Field(default=30, ge=0)
    cache_failure_mode: Literal["fail", "degrade"] = "fail"

    # Request handling
    default_identity: str = "admin"
    max_identity_length: int = Field(default=256, ge=1)
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: float = 15 * 60

    def signing_credentials(self) -> SigningCredentials:
        return SigningCredentials(
            account_sid=self.twilio_account_sid,
            api_key=self.twilio_api_key,
            api_secret=self.twilio_api_secret,
            app_sid=self.twilio_twiml_app_sid,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars (and the .env file) for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# The serverless entrypoint (`api.asgi`) reads the same settings; deployments there
# usually set MAX_WORKERS=2 since each cold start pays the pool boot cost.
