"""Application configuration management."""
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from sqlalchemy.engine.url import make_url, URL
from sqlalchemy.exc import ArgumentError
from typing import Optional
import logging
import secrets

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./karbarg.db"
DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = SQLITE_LOCAL_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Application
    frontend_url: str = "https://karbarg.ir"
    environment: str = "development"
    secret_key: str = DEFAULT_SECRET_KEY
    jwt_algorithm: str = "HS256"
    access_token_exp_minutes: int = 120
    access_token_cookie_name: str = "karbarg_access_token"
    cron_token: str = ""  # Bearer token for /cron endpoints, generated in development when empty

    # Q&A feature switch
    qa_enabled: bool = True

    # Answer Quality Score (AQS) weights
    aqs_helpful_points: int = 8  # Per "helpful" reaction
    aqs_expert_points: int = 15  # Per "expert" endorsement
    aqs_accepted_bonus: int = 25  # Fixed bonus for the accepted answer
    aqs_not_helpful_penalty: int = 5  # Per "not_helpful" reaction
    aqs_flag_penalty: int = 5  # Per open flag
    aqs_max_flag_penalty: int = 20  # Cap on total flag penalty
    aqs_engagement_max_bonus: int = 10  # Bonus for reactions relative to views

    # Quality label thresholds
    aqs_useful_threshold: int = 40
    aqs_pro_threshold: int = 85

    # Q&A limits
    daily_question_limit: int = 5
    daily_answer_limit: int = 10
    max_question_tags: int = 3
    question_title_min_length: int = 10
    question_title_max_length: int = 200
    question_body_min_length: int = 20
    question_body_max_length: int = 10000
    answer_body_min_length: int = 20
    answer_body_max_length: int = 10000

    # Leaderboard
    leaderboard_default_limit: int = 10
    leaderboard_max_limit: int = 50

    # Microcopy dashboard
    microcopy_default_days: int = 7
    microcopy_default_cooldown_hours: int = 24
    microcopy_default_priority: int = 50

    # Quality recompute cron
    quality_recompute_max_age_days: int = 7
    quality_recompute_batch_size: int = 100

    @model_validator(mode="after")
    def validate_all_config(self):
        """Validate security configuration and normalize Postgres URLs."""
        logger = logging.getLogger(__name__)

        # Security validation
        if self.environment == "production":
            if self.secret_key == DEFAULT_SECRET_KEY:
                raise ValueError("secret_key must be changed from default value in production")
            if not self.cron_token:
                raise ValueError("cron_token must be set in production")
        elif not self.cron_token:
            self.cron_token = secrets.token_urlsafe(24)
            logger.debug("Generated an ephemeral cron token for development")

        # Validate JWT algorithm
        if self.jwt_algorithm not in ["HS256", "HS384", "HS512"]:
            raise ValueError(f"Unsupported JWT algorithm: {self.jwt_algorithm}. Use HS256, HS384, or HS512.")

        if self.access_token_exp_minutes < 1 or self.access_token_exp_minutes > 1440:
            raise ValueError("access_token_exp_minutes must be between 1 and 1440 (24 hours)")

        # Label thresholds must describe two ordered tiers inside the score range
        if not 0 < self.aqs_useful_threshold < self.aqs_pro_threshold <= 100:
            raise ValueError(
                "AQS thresholds must satisfy 0 < aqs_useful_threshold < aqs_pro_threshold <= 100"
            )

        if self.leaderboard_default_limit < 1 or self.leaderboard_default_limit > self.leaderboard_max_limit:
            raise ValueError("leaderboard_default_limit must be between 1 and leaderboard_max_limit")

        # Database URL normalization
        url = self.database_url
        if not url:
            logger.warning("Empty DATABASE_URL, using SQLite fallback")
            self.database_url = SQLITE_LOCAL_URL
            return self

        parsed: Optional[URL] = None
        try:
            parsed = make_url(url)
        except ArgumentError as e:
            logger.error(f"Failed to parse DATABASE_URL: {e}")
            logger.warning("Invalid DATABASE_URL; falling back to default sqlite database.")
            self.database_url = SQLITE_LOCAL_URL
            return self

        drivername = parsed.drivername
        if drivername.startswith("postgres") and "+asyncpg" not in drivername:
            old_drivername = drivername
            parsed = parsed.set(drivername="postgresql+asyncpg")
            logger.info(f"Driver normalized: {old_drivername} -> {parsed.drivername}")

        # Use render_as_string to properly re-encode special characters in password
        self.database_url = parsed.render_as_string(hide_password=False)
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
