"""Per-client configuration, validated at construction. Defaults come from settings."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config.settings import settings


class AmmConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    reserves_cache_ttl_ms: int = Field(default=settings.RESERVES_CACHE_TTL_MS, ge=0)


class PerpConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_summary_ttl_ms: int = Field(default=settings.ACCOUNT_SUMMARY_TTL_MS, ge=0)


class PollConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=settings.POLL_MAX_RETRIES, ge=1)
    retry_after_ms: int = Field(default=settings.POLL_RETRY_AFTER_MS, ge=0)


class PerplexClientConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_url: str = settings.PERPLEX_API_URL
    gateway_url: str = settings.GATEWAY_URL
    cu_url: str = settings.CU_URL
    mu_url: str = settings.MU_URL
    http_timeout_seconds: float = Field(default=settings.HTTP_TIMEOUT_SECONDS, gt=0)
    balances_cache_ttl_ms: int = Field(default=settings.BALANCES_CACHE_TTL_MS, ge=0)
    amm: AmmConfig = Field(default_factory=AmmConfig)
    perp: PerpConfig = Field(default_factory=PerpConfig)
    poll: PollConfig = Field(default_factory=PollConfig)

    @field_validator("api_url", "gateway_url", "cu_url", "mu_url")
    @classmethod
    def http_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must be http(s): {v!r}")
        return v
