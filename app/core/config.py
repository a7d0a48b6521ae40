"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL (payout ledger)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "connectx_user"
    postgres_password: str = "password"
    postgres_db: str = "connectx_db"
    # Full SQLAlchemy URL, overrides the postgres_* fields when set
    database_url: str = ""

    # MongoDB (jobs, squads, candidates, AI output cache)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "connectx_docs"
    mongodb_timeout_ms: int = 5000

    # Gemini via its OpenAI-compatible endpoint
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    gemini_model: str = "gemini-2.5-flash"

    # Tokens are issued by the external identity provider; we only verify them
    auth_enabled: bool = True
    jwt_secret_key: str = "change-this-secret"
    jwt_public_key: str = ""
    jwt_algorithm: str = "HS256"
    jwt_audience: str = ""
    jwt_role_claim: str = "role"

    # Marketplace
    hourly_rate: float = 30.0
    compensation_share: float = 0.10
    max_squad_suggestions: int = 3
    candidate_pool_limit: int = 50

    # App
    debug: bool = True
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def main_budget_share(self) -> float:
        return 1.0 - self.compensation_share

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
