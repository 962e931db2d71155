from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Exchange metadata API (defaults match the local dev API)
    PERPLEX_API_URL: str = "http://localhost:4000/graphql"

    # Indexer gateway used to look up confirmation messages
    GATEWAY_URL: str = "https://arweave-search.goldsky.com/graphql"

    # AO units: CU serves dryrun/result reads, MU accepts signed messages
    CU_URL: str = "https://cu.ao-testnet.xyz"
    MU_URL: str = "https://mu.ao-testnet.xyz"

    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Cache TTLs, in milliseconds
    RESERVES_CACHE_TTL_MS: int = 60_000
    BALANCES_CACHE_TTL_MS: int = 60_000
    ACCOUNT_SUMMARY_TTL_MS: int = 60_000

    # Confirmation polling: 40 x 500ms = 20s
    POLL_MAX_RETRIES: int = 40
    POLL_RETRY_AFTER_MS: int = 500


settings = Settings()
