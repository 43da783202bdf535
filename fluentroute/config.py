"""
FluentRoute - Configuration
============================

What:  Server and credential settings loaded with Pydantic Settings.
How:   Each settings class reads environment variables (or a .env file),
       coerces types and validates ranges when instantiated.
Who:   ServerBuilder owns a ServerConfig for the process lifetime;
       JWTManager.from_settings() reads JWTSettings.

Environment variables (ServerConfig reads them with the FLUENTROUTE_ prefix):
    FLUENTROUTE_PORT, FLUENTROUTE_HOSTNAME, FLUENTROUTE_CORS, FLUENTROUTE_LOGGER,
    FLUENTROUTE_REQUEST_TIMEOUT, FLUENTROUTE_MAX_BODY_SIZE, FLUENTROUTE_LOG_LEVEL
    JWT_SECRET, JWT_ISSUER, JWT_SUBJECT, JWT_EXPIRES_IN, JWT_ALGORITHM
"""

from typing import Any, Callable, Dict, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fluentroute.exceptions import ConfigurationError

M = TypeVar("M", bound=Mapping)


class HttpsConfig(BaseModel):
    """Paths to the PEM certificate and private key handed to uvicorn."""

    cert: str
    key: str


class ServerConfig(BaseSettings):
    """
    Settings for ServerBuilder.

    Defaults match a development server: port 3000 on all interfaces,
    request logging on, CORS off.
    """

    # ── Listener ──────────────────────────────────────────────────────────
    port: int = Field(default=3000, ge=1, le=65535)
    hostname: str = Field(default="0.0.0.0")
    https: Optional[HttpsConfig] = None

    # ── Cross-cutting middleware ──────────────────────────────────────────
    # True allows every origin; a dict is passed to CORSMiddleware as keyword arguments
    cors: Union[bool, Dict[str, Any]] = Field(default=False)
    logger: bool = Field(default=True)

    # Seconds before an in-flight request is answered with 408
    request_timeout: Optional[float] = Field(default=None, gt=0)

    # Bytes; requests declaring a larger Content-Length get 413
    max_body_size: Optional[int] = Field(default=None, gt=0)

    # Starlette exception handler signature: (request, exc) -> Response
    error_handler: Optional[Callable[..., Any]] = Field(default=None, exclude=True)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    model_config = SettingsConfigDict(
        env_prefix="FLUENTROUTE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class JWTSettings(BaseSettings):
    """Signing secret and standard claims for JWTManager."""

    secret: str = Field(default="")
    issuer: str = Field(default="fluentroute")
    subject: str = Field(default="fluentroute")
    expires_in: int = Field(default=3600, ge=1)
    algorithm: str = Field(default="HS256")

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        upper = v.upper()
        if upper not in {"HS256", "HS384", "HS512"}:
            raise ValueError(f"Unsupported JWT algorithm '{v}'. Use an HMAC algorithm.")
        return upper

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def check_env(config: M) -> M:
    """
    Verify that every value of every group in ``config`` is set.

    ``config`` maps group names to mappings of setting names to values, e.g.
    ``{"database": {"DB_URL": os.getenv("DB_URL")}}``. Empty groups are skipped.

    Raises:
        ConfigurationError: listing every key whose value is falsy.
    """
    missing_keys = []
    for group in config.values():
        if not group:
            continue
        missing_keys.extend(key for key, value in group.items() if not value)

    if missing_keys:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing_keys)}",
            context={"missing": missing_keys},
        )
    return config
