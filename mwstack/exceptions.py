"""
mwstack: Exception Hierarchy
==============================

What:  Errors raised while building the middleware stack from configuration.
Why:   A bad configuration value should fail at startup with a clear message,
       not surface later as a confusing 500 inside a request.
How:   Each exception carries a message and an optional context dict.
Who:   Raised by mwstack.units and mwstack.config.
When:  While the configuration record is constructed.

Exception Hierarchy:
    MwStackError (base)
    ├── ConfigError              invalid or inconsistent configuration value
    │   ├── InvalidDurationError duration string that cannot be parsed
    │   └── InvalidSizeError     body-limit string that cannot be parsed

HTTP-facing errors are NOT part of this hierarchy. Request handlers and
middleware raise the framework's own HTTPException, which the error handler
middleware turns into {"error": <message>}.
"""

from typing import Any, Dict, Optional


class MwStackError(Exception):
    """
    Base exception for all mwstack errors.

    Attributes:
        message:  Human-readable description
        context:  Extra debug info (offending key, raw value, ...)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigError(MwStackError):
    """
    Raised when a configuration value is present but unusable.

    Not a ValueError: pydantic does not convert it into a
    ValidationError, so a validator raising it surfaces unchanged from every
    construction path (direct, model_validate, Settings).
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        key: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if key:
            ctx["key"] = key
        super().__init__(message=message, context=ctx)
        self.key = key


class InvalidDurationError(ConfigError):
    """Raised when a duration value cannot be parsed."""

    def __init__(self, value: Any, key: Optional[str] = None):
        super().__init__(
            message=f"Invalid duration {value!r}. Use e.g. '30s', '1m30s', '500ms' or a number of seconds",
            key=key,
            context={"value": value},
        )
        self.value = value


class InvalidSizeError(ConfigError):
    """Raised when a size string such as '2M' cannot be parsed."""

    def __init__(self, value: Any, key: Optional[str] = None):
        super().__init__(
            message=f"Invalid size {value!r}. Use e.g. '2M', '512K', '1.5MB' or a number of bytes",
            key=key,
            context={"value": value},
        )
        self.value = value
