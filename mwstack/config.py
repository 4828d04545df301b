"""
mwstack: Configuration
========================

What:  The middleware configuration record and the process-wide settings.
Why:   Every middleware constructor takes one or two scalars from here, so
       defaults and validation live in one place and run once at startup.
How:   Pydantic models with "before" validators map absent or zero-valued
       inputs to defaults. Pydantic Settings fills the record from
       environment variables (or .env); MiddlewareConfig.from_source()
       reads it from any key/value mapping instead.
       Every construction path raises ConfigError for invalid input;
       pydantic's ValidationError never escapes.
Who:   Imported by mwstack.middleware and mwstack.main.
When:  Loaded once at import time; immutable afterwards.

Configuration keys:
    middleware.timeout                 duration   30s
    middleware.body_limit              string     "2M"
    middleware.rate_limit.requests     int        100
    middleware.rate_limit.duration     duration   1m
    middleware.rate_limit.store        string     "memory" | "redis"
    middleware.rate_limit.redis_addr   string     "localhost:6379"

Environment variables use "__" between levels:
    MIDDLEWARE__TIMEOUT=10s
    MIDDLEWARE__RATE_LIMIT__STORE=redis
"""

from datetime import timedelta
from typing import Any, Mapping, Optional

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings

from mwstack.exceptions import ConfigError
from mwstack.units import parse_duration, size_to_bytes

# ── Defaults ──────────────────────────────────────────────────────────────
DEFAULT_TIMEOUT = timedelta(seconds=30)
DEFAULT_BODY_LIMIT = "2M"
DEFAULT_RATE_LIMIT_REQUESTS = 100
DEFAULT_RATE_LIMIT_DURATION = timedelta(minutes=1)
DEFAULT_RATE_LIMIT_STORE = "memory"
DEFAULT_REDIS_ADDR = "localhost:6379"

RATE_LIMIT_STORES = ("memory", "redis")


def _duration_or_default(value: Any, default: timedelta, key: str) -> timedelta:
    duration = parse_duration(value)
    if duration < timedelta(0):
        raise ConfigError(f"{key} must not be negative, got {value!r}", key=key)
    return duration or default


def _is_zero(value: Any) -> bool:
    return value is None or value == "" or value == 0


def _config_error(exc: ValidationError, what: str) -> ConfigError:
    first = exc.errors()[0]
    return ConfigError(
        f"Invalid {what}: {first['msg']}",
        context={"errors": exc.errors(include_context=False)},
    )


class _ConfigModel(BaseModel):
    """Frozen record whose construction fails with ConfigError, never ValidationError."""

    model_config = {"frozen": True}

    @model_validator(mode="wrap")
    @classmethod
    def raise_config_error(cls, data: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        try:
            return handler(data)
        except ValidationError as exc:
            raise _config_error(exc, "middleware configuration") from exc


class RateLimitConfig(_ConfigModel):
    """Rate limiting: `requests` per `duration`, counted in `store`."""

    requests: int = DEFAULT_RATE_LIMIT_REQUESTS
    duration: timedelta = DEFAULT_RATE_LIMIT_DURATION
    store: str = DEFAULT_RATE_LIMIT_STORE
    redis_addr: str = DEFAULT_REDIS_ADDR

    @field_validator("requests", mode="before")
    @classmethod
    def default_requests(cls, v: Any) -> Any:
        # Environment values arrive as strings
        if _is_zero(v) or (isinstance(v, str) and v.strip() == "0"):
            return DEFAULT_RATE_LIMIT_REQUESTS
        if isinstance(v, (int, float, str)) and float(v) < 0:
            raise ConfigError(
                f"middleware.rate_limit.requests must be positive, got {v!r}",
                key="middleware.rate_limit.requests",
            )
        return v

    @field_validator("duration", mode="before")
    @classmethod
    def default_duration(cls, v: Any) -> timedelta:
        return _duration_or_default(v, DEFAULT_RATE_LIMIT_DURATION, "middleware.rate_limit.duration")

    @field_validator("store", mode="before")
    @classmethod
    def default_store(cls, v: Any) -> Any:
        if _is_zero(v):
            return DEFAULT_RATE_LIMIT_STORE
        if v not in RATE_LIMIT_STORES:
            raise ConfigError(
                f"Unknown rate limit store {v!r}. Must be one of: {', '.join(RATE_LIMIT_STORES)}",
                key="middleware.rate_limit.store",
            )
        return v

    @field_validator("redis_addr", mode="before")
    @classmethod
    def default_redis_addr(cls, v: Any) -> Any:
        return DEFAULT_REDIS_ADDR if _is_zero(v) else v

    @property
    def storage_uri(self) -> str:
        """Storage URI understood by `limits.storage.storage_from_string`."""
        if self.store == "redis":
            return f"async+redis://{self.redis_addr}"
        return "async+memory://"


class MiddlewareConfig(_ConfigModel):
    """
    Configuration for all middleware components.

    Absent, None and zero-valued inputs resolve to the DEFAULT_* constants.
    Anything else passes through unchanged (after validation).
    """

    timeout: timedelta = DEFAULT_TIMEOUT
    body_limit: str = DEFAULT_BODY_LIMIT
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)

    @field_validator("timeout", mode="before")
    @classmethod
    def default_timeout(cls, v: Any) -> timedelta:
        return _duration_or_default(v, DEFAULT_TIMEOUT, "middleware.timeout")

    @field_validator("body_limit", mode="before")
    @classmethod
    def default_body_limit(cls, v: Any) -> Any:
        if _is_zero(v):
            return DEFAULT_BODY_LIMIT
        if isinstance(v, int):
            v = str(v)
        # Fail at startup rather than on the first request
        size_to_bytes(v)
        return v

    @field_validator("rate_limit", mode="before")
    @classmethod
    def default_rate_limit(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def body_limit_bytes(self) -> int:
        return size_to_bytes(self.body_limit)

    @classmethod
    def from_source(cls, source: Mapping[str, Any]) -> "MiddlewareConfig":
        """
        Build the record from a key/value configuration source.

        The source may use flat dotted keys ({"middleware.timeout": "10s"})
        or nested mappings ({"middleware": {"timeout": "10s"}}).

        Raises:
            ConfigError: If any present value is invalid
        """
        data = {
            "timeout": _lookup(source, "middleware.timeout"),
            "body_limit": _lookup(source, "middleware.body_limit"),
            "rate_limit": {
                name: _lookup(source, f"middleware.rate_limit.{name}")
                for name in ("requests", "duration", "store", "redis_addr")
            },
        }
        return cls.model_validate(data)


def _lookup(source: Mapping[str, Any], key: str) -> Any:
    """Viper-style get: exact dotted key first, then walk nested mappings."""
    if key in source:
        return source[key]

    node: Any = source
    for part in key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


class Settings(BaseSettings):
    """
    Process settings loaded from environment variables (or .env).

    All settings have working defaults; an empty environment yields the
    default middleware configuration. Invalid values raise ConfigError.
    """

    # ── Middleware ────────────────────────────────────────────────────────
    middleware: MiddlewareConfig = Field(default_factory=MiddlewareConfig)

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
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

    @model_validator(mode="wrap")
    @classmethod
    def raise_config_error(cls, data: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        try:
            return handler(data)
        except ValidationError as exc:
            raise _config_error(exc, "settings") from exc

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }


def load_middleware_config(source: Optional[Mapping[str, Any]] = None) -> MiddlewareConfig:
    """
    Return the middleware configuration.

    With a source, read it from that key/value mapping; otherwise return the
    record loaded from the environment at startup.
    """
    if source is not None:
        return MiddlewareConfig.from_source(source)
    return settings.middleware


# Singleton instance; configuration is read once at startup
settings = Settings()
