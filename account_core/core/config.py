from functools import lru_cache
from typing import Optional
import sys

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog

logger = structlog.get_logger()


class Settings(BaseSettings):
    """
    Account core configuration.

    The signing secret MUST be provided via the environment (or .env file).
    Instances are frozen: the secret and token lifetimes are read-only once
    the process has started.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        frozen=True,
        extra="ignore",
    )

    # Application settings
    APP_NAME: str = "Account Core"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    API_V1_STR: str = "/api/v1"

    # Token settings - SECRET_KEY is REQUIRED, NO DEFAULT
    SECRET_KEY: str = Field(..., min_length=32)
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60, ge=1, le=10080)
    VERIFICATION_TOKEN_EXPIRE_MINUTES: int = Field(default=30, ge=1, le=10080)

    # Password hashing and policy
    PASSWORD_HASH_SCHEME: str = "bcrypt"
    PASSWORD_HASH_ROUNDS: int = Field(default=12, ge=4, le=31)
    PASSWORD_MIN_LENGTH: int = Field(default=6, ge=1, le=72)
    PASSWORD_MAX_LENGTH: int = Field(default=72, ge=1, le=72)  # bcrypt truncates past 72 bytes
    PASSWORD_REQUIRE_UPPERCASE: bool = True
    PASSWORD_REQUIRE_LOWERCASE: bool = True
    PASSWORD_REQUIRE_NUMBERS: bool = True
    PASSWORD_REQUIRE_SPECIAL: bool = False

    # Forgot-password codes; None keeps a code until it is used or superseded
    FORGOT_CODE_TTL_SECONDS: Optional[int] = Field(default=900, ge=1)

    # Public address used to build verification links
    PUBLIC_SCHEME: str = "http"
    DOMAIN: Optional[str] = None
    HOST: str = "localhost"
    PORT: int = Field(default=3000, ge=1, le=65535)

    # Storage backends - in-memory when unset
    DATABASE_URL: Optional[str] = None
    REDIS_URL: Optional[str] = None

    # Email settings - mail is only logged when SMTP_HOST is unset
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_TLS: bool = True
    MAIL_FROM: Optional[str] = None

    # Cookie carrying the access token
    COOKIE_NAME: str = "token"
    COOKIE_SECURE: bool = False

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Reject obviously weak or placeholder secrets"""
        bad_values = ["your-secret-key", "change-me", "secret", "password", "12345"]
        if any(bad in v.lower() for bad in bad_values):
            raise ValueError("SECRET_KEY contains weak or default values")
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_envs = ["development", "staging", "production", "test"]
        if v not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of: {valid_envs}")
        return v

    @model_validator(mode="after")
    def validate_token_lifetimes(self) -> "Settings":
        if self.VERIFICATION_TOKEN_EXPIRE_MINUTES > self.ACCESS_TOKEN_EXPIRE_MINUTES:
            raise ValueError(
                "VERIFICATION_TOKEN_EXPIRE_MINUTES must not exceed ACCESS_TOKEN_EXPIRE_MINUTES"
            )
        if self.PASSWORD_MIN_LENGTH > self.PASSWORD_MAX_LENGTH:
            raise ValueError("PASSWORD_MIN_LENGTH must not exceed PASSWORD_MAX_LENGTH")
        return self

    @property
    def mail_sender(self) -> Optional[str]:
        return self.MAIL_FROM or self.SMTP_USER


def validate_required_settings(settings: Settings) -> None:
    """
    Validate that deployment-critical settings are configured.
    Fail fast if a production process would silently drop mail or emit
    localhost verification links.
    """
    errors = []

    if settings.ENVIRONMENT == "production":
        if settings.DEBUG:
            errors.append("DEBUG must be False in production")

        if not settings.SMTP_HOST:
            errors.append("SMTP_HOST is required in production")

        if not settings.DOMAIN:
            errors.append("DOMAIN is required in production for verification links")

    if settings.SMTP_USER and not settings.SMTP_PASSWORD:
        errors.append("SMTP_PASSWORD required when SMTP_USER is set")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        logger.error(error_msg)
        raise ValueError(error_msg)

    logger.info(
        "Configuration validated successfully",
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
        database_backend="sql" if settings.DATABASE_URL else "memory",
        code_store_backend="redis" if settings.REDIS_URL else "memory",
        smtp_enabled=bool(settings.SMTP_HOST),
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Exits the process if required environment variables are missing.
    """
    try:
        settings = Settings()
        validate_required_settings(settings)
        return settings
    except ValidationError as e:
        logger.error(
            "Failed to load settings",
            errors=[
                {"field": ".".join(str(p) for p in err.get("loc", ())), "msg": err.get("msg")}
                for err in e.errors()
            ],
        )
        sys.exit(1)
    except ValueError as e:
        logger.error("Invalid configuration", error=str(e))
        sys.exit(1)
