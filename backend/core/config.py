from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings


BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_PATH = BASE_DIR / ".env"

# Load environment variables from .env if present
load_dotenv(ENV_PATH)


class Settings(BaseSettings):
    app_env: str = Field("development", env="APP_ENV")
    app_host: str = Field("127.0.0.1", env="APP_HOST")
    app_port: int = Field(8000, env="APP_PORT")
    log_level: str = Field("INFO", env="LOG_LEVEL")
    cors_allow_origins: str = Field("*", env="CORS_ALLOW_ORIGINS")

    high_risk_pct_threshold: float = Field(5.0, env="HIGH_RISK_PCT_THRESHOLD")
    tight_stop_ratio: float = Field(0.015, env="TIGHT_STOP_RATIO")
    unknown_market_policy: str = Field("fallback", env="UNKNOWN_MARKET_POLICY")

    analytics_mode: str = Field("log", env="ANALYTICS_MODE")
    analytics_url: Optional[str] = Field(None, env="ANALYTICS_URL")
    analytics_timeout_seconds: float = Field(3.0, env="ANALYTICS_TIMEOUT_SECONDS")

    class Config:
        env_file = ENV_PATH
        case_sensitive = False
        extra = "ignore"

    def strict_markets(self) -> bool:
        """True when unknown market codes should be rejected instead of defaulted."""
        return (self.unknown_market_policy or "").strip().lower() == "reject"

    def cors_origins(self) -> list[str]:
        raw = self.cors_allow_origins or ""
        origins = [item.strip() for item in raw.split(",") if item.strip()]
        return origins or ["*"]


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


def get_log_level(default: Optional[str] = None) -> str:
    """Convenience accessor for log level with optional override."""
    settings = get_settings()
    return settings.log_level or (default or "INFO")
