import json
from typing import Annotated, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Taskboard"
    environment: str = "development"
    access_token_secret: str = "change-me-access"
    refresh_token_secret: str = "change-me-refresh"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    database_url: str = "sqlite:///./taskboard.db"
    redis_url: str = "redis://localhost:6379/0"
    cors_origins: Annotated[List[str], NoDecode] = ["http://localhost:3001"]
    login_rate_limit: int = 5
    login_rate_window_seconds: int = 300
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    def parse_cors_origins(cls, value: object) -> List[str]:
        if value is None:
            return []
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            cleaned = value.strip()
            if cleaned == "":
                return []
            if cleaned.startswith("["):
                return json.loads(cleaned)
            return [item.strip() for item in cleaned.split(",") if item.strip()]
        return [str(value)]

    @field_validator("refresh_token_secret")
    def secrets_must_differ(cls, value: str, info) -> str:
        if value == info.data.get("access_token_secret"):
            raise ValueError("refresh_token_secret must differ from access_token_secret")
        return value


settings = Settings()
