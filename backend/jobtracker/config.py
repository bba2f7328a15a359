from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/jobs.db"
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("environment", "node_env"),
    )
    port: int = 8000
    log_level: str = "INFO"

    # Signing key for session tokens and OAuth state
    jwt_secret: str = "dev-secret-key-change-in-production"

    cors_origins: List[str] = ["http://localhost:3000"]
    # Where the browser lands after an OAuth login
    frontend_url: str = "http://localhost:3000/"
    # Public base of this API, used to build OAuth redirect URIs
    public_base_url: str = "http://localhost:8000"

    # Session / token issuing
    auth_transport: str = "session"  # "session" or "token"
    session_backend: str = "memory"  # "memory" or "redis"
    redis_url: str = "redis://localhost:6379"
    session_ttl_days: int = 7
    token_expire_days: int = 1
    bcrypt_rounds: int = Field(default=12, ge=4, le=15)

    # Job status catalog
    max_custom_statuses: int = 20

    # OAuth providers (a provider is enabled when its client id is set)
    google_client_id: str = ""
    google_client_secret: str = ""
    microsoft_client_id: str = ""
    microsoft_client_secret: str = ""
    microsoft_tenant: str = "common"
    apple_client_id: str = ""
    apple_team_id: str = ""
    apple_key_id: str = ""
    apple_private_key_path: str = ""

    # AI content optimization
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
