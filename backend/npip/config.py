"""
Configuration management for the NPIP ingestion service
Environment-based settings with secure defaults
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "npip"
    APP_ENV: str = "development"  # development, staging, production
    DEBUG: bool = False
    API_VERSION: str = "v1"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database
    DATABASE_URL: str  # Required
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Redis (pub/sub for real-time alerts, per-project run locks)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # Ingestion scheduling
    INGESTION_TICK_SECONDS: int = 60
    PROJECT_LOCK_TTL_SECONDS: int = 600

    # Connector execution
    CONNECTOR_TIMEOUT_SECONDS: float = 25.0
    CONNECTOR_HTTP_TIMEOUT_SECONDS: float = 15.0
    CONNECTOR_MAX_RETRIES: int = 0  # 0 = rely on the next scheduled tick
    CONNECTOR_RETRY_DELAY_SECONDS: float = 2.0

    # Dedup policy: "store" keeps the fingerprint only, "reject" skips collisions
    DEDUP_POLICY: str = "store"

    # Connector credentials
    YOUTUBE_API_KEY: Optional[str] = None
    TWITTER_BEARER_TOKEN: Optional[str] = None
    META_ACCESS_TOKEN: Optional[str] = None
    META_PAGE_ID: str = "me"

    # Sentiment model
    SENTIMENT_MODEL: str = "nlptown/bert-base-multilingual-uncased-sentiment"
    SENTIMENT_MAX_CHARS: int = 512
    SENTIMENT_MODEL_RETRY_SECONDS: int = 300

    # Alert email
    ALERT_EMAIL_ENABLED: bool = False
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: Optional[int] = None
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None
    SMTP_FROM: Optional[str] = None

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    @field_validator("DEDUP_POLICY", mode="before")
    @classmethod
    def parse_dedup_policy(cls, v: str) -> str:
        value = (v or "store").strip().lower()
        if value not in DEDUP_POLICIES:
            raise ValueError(f"DEDUP_POLICY must be one of {DEDUP_POLICIES}")
        return value

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_PORT and self.SMTP_USER and self.SMTP_PASS)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


DEDUP_POLICIES = ("store", "reject")


@lru_cache()
def get_settings() -> Settings:
    """Cached settings loader"""
    return Settings()


@dataclass(frozen=True)
class PlanLimits:
    """Static per-plan limits"""
    max_keywords: int
    min_interval_minutes: int
    monthly_mention_quota: int


DEFAULT_PLAN = "individual"

PLAN_LIMITS: Dict[str, PlanLimits] = {
    "individual": PlanLimits(max_keywords=5, min_interval_minutes=60, monthly_mention_quota=5_000),
    "team": PlanLimits(max_keywords=20, min_interval_minutes=30, monthly_mention_quota=25_000),
    "pro": PlanLimits(max_keywords=100, min_interval_minutes=15, monthly_mention_quota=100_000),
}


def get_plan_limits(plan: Optional[str]) -> PlanLimits:
    """Resolve plan limits, falling back to the default plan for unknown keys"""
    return PLAN_LIMITS.get(plan or DEFAULT_PLAN, PLAN_LIMITS[DEFAULT_PLAN])
