"""
mwstack: Configuration Tests
==============================

What we test:
    ✅ Empty source → every default
    ✅ Zero-valued fields (0, "", None, "0s") → defaults
    ✅ Present values pass through unchanged
    ✅ Flat dotted keys and nested mappings
    ✅ Environment variables through the settings class
    ✅ Invalid values fail at construction with ConfigError
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from mwstack import config as config_module
from mwstack.config import (
    DEFAULT_BODY_LIMIT,
    DEFAULT_RATE_LIMIT_DURATION,
    DEFAULT_RATE_LIMIT_REQUESTS,
    DEFAULT_RATE_LIMIT_STORE,
    DEFAULT_REDIS_ADDR,
    DEFAULT_TIMEOUT,
    MiddlewareConfig,
    RateLimitConfig,
    Settings,
    load_middleware_config,
)
from mwstack.exceptions import ConfigError


def _assert_all_defaults(cfg: MiddlewareConfig) -> None:
    assert cfg.timeout == DEFAULT_TIMEOUT
    assert cfg.body_limit == DEFAULT_BODY_LIMIT
    assert cfg.rate_limit.requests == DEFAULT_RATE_LIMIT_REQUESTS
    assert cfg.rate_limit.duration == DEFAULT_RATE_LIMIT_DURATION
    assert cfg.rate_limit.store == DEFAULT_RATE_LIMIT_STORE
    assert cfg.rate_limit.redis_addr == DEFAULT_REDIS_ADDR


class TestDefaults:

    def test_default_values(self):
        """The documented defaults."""
        assert DEFAULT_TIMEOUT == timedelta(seconds=30)
        assert DEFAULT_BODY_LIMIT == "2M"
        assert DEFAULT_RATE_LIMIT_REQUESTS == 100
        assert DEFAULT_RATE_LIMIT_DURATION == timedelta(minutes=1)
        assert DEFAULT_RATE_LIMIT_STORE == "memory"
        assert DEFAULT_REDIS_ADDR == "localhost:6379"

    def test_empty_source(self):
        _assert_all_defaults(MiddlewareConfig.from_source({}))

    def test_no_arguments(self):
        _assert_all_defaults(MiddlewareConfig())

    def test_zero_values_resolve_to_defaults(self):
        """Zero-valued inputs count as absent."""
        source = {
            "middleware.timeout": 0,
            "middleware.body_limit": "",
            "middleware.rate_limit.requests": 0,
            "middleware.rate_limit.duration": "0s",
            "middleware.rate_limit.store": "",
            "middleware.rate_limit.redis_addr": None,
        }
        _assert_all_defaults(MiddlewareConfig.from_source(source))

    def test_zero_string_request_count(self):
        """Environment values arrive as strings."""
        cfg = MiddlewareConfig.from_source({"middleware.rate_limit.requests": "0"})
        assert cfg.rate_limit.requests == DEFAULT_RATE_LIMIT_REQUESTS

    def test_unrelated_keys_ignored(self):
        _assert_all_defaults(MiddlewareConfig.from_source({"server.port": 8080, "middleware.other": 1}))


class TestPassThrough:

    def test_flat_dotted_keys(self):
        source = {
            "middleware.timeout": "10s",
            "middleware.body_limit": "512K",
            "middleware.rate_limit.requests": 20,
            "middleware.rate_limit.duration": "30s",
            "middleware.rate_limit.store": "redis",
            "middleware.rate_limit.redis_addr": "cache:6380",
        }
        cfg = MiddlewareConfig.from_source(source)

        assert cfg.timeout == timedelta(seconds=10)
        assert cfg.body_limit == "512K"
        assert cfg.rate_limit.requests == 20
        assert cfg.rate_limit.duration == timedelta(seconds=30)
        assert cfg.rate_limit.store == "redis"
        assert cfg.rate_limit.redis_addr == "cache:6380"

    def test_nested_mapping(self):
        source = {
            "middleware": {
                "timeout": "1m30s",
                "rate_limit": {"requests": 5, "duration": 2},
            }
        }
        cfg = MiddlewareConfig.from_source(source)

        assert cfg.timeout == timedelta(seconds=90)
        assert cfg.rate_limit.requests == 5
        assert cfg.rate_limit.duration == timedelta(seconds=2)
        # untouched keys still default
        assert cfg.body_limit == DEFAULT_BODY_LIMIT
        assert cfg.rate_limit.store == DEFAULT_RATE_LIMIT_STORE

    def test_partial_source_keeps_other_defaults(self):
        cfg = MiddlewareConfig.from_source({"middleware.body_limit": "10M"})
        assert cfg.body_limit == "10M"
        assert cfg.body_limit_bytes == 10 * 1024 * 1024
        assert cfg.timeout == DEFAULT_TIMEOUT

    def test_timedelta_values(self):
        cfg = MiddlewareConfig(timeout=timedelta(seconds=5))
        assert cfg.timeout == timedelta(seconds=5)

    def test_integer_body_limit_is_bytes(self):
        cfg = MiddlewareConfig.from_source({"middleware.body_limit": 4096})
        assert cfg.body_limit == "4096"
        assert cfg.body_limit_bytes == 4096


class TestStorageUri:

    def test_memory(self):
        assert MiddlewareConfig().rate_limit.storage_uri == "async+memory://"

    def test_redis_uses_address(self):
        cfg = MiddlewareConfig.from_source(
            {"middleware.rate_limit.store": "redis", "middleware.rate_limit.redis_addr": "cache:6380"}
        )
        assert cfg.rate_limit.storage_uri == "async+redis://cache:6380"


class TestInvalidValues:

    @pytest.mark.parametrize(
        "source",
        [
            {"middleware.timeout": "soon"},
            {"middleware.timeout": "-5s"},
            {"middleware.body_limit": "lots"},
            {"middleware.rate_limit.requests": -1},
            {"middleware.rate_limit.requests": "many"},
            {"middleware.rate_limit.duration": "1 minute"},
            {"middleware.rate_limit.store": "memcached"},
        ],
    )
    def test_rejected_at_construction(self, source):
        with pytest.raises(ConfigError):
            MiddlewareConfig.from_source(source)

    def test_error_context_lists_failures(self):
        with pytest.raises(ConfigError, match="Invalid middleware configuration") as excinfo:
            MiddlewareConfig.from_source({"middleware.rate_limit.requests": "many"})
        assert excinfo.value.context["errors"]
        assert not isinstance(excinfo.value, ValidationError)

    def test_unknown_store_names_key(self):
        with pytest.raises(ConfigError) as excinfo:
            MiddlewareConfig.from_source({"middleware.rate_limit.store": "memcached"})
        assert excinfo.value.key == "middleware.rate_limit.store"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"timeout": "banana"},
            {"body_limit": "lots"},
            {"rate_limit": {"requests": "many"}},
            {"rate_limit": {"store": "memcached"}},
        ],
    )
    def test_direct_construction_raises_config_error(self, kwargs):
        with pytest.raises(ConfigError):
            MiddlewareConfig(**kwargs)

    def test_model_validate_raises_config_error(self):
        with pytest.raises(ConfigError):
            MiddlewareConfig.model_validate({"timeout": "banana"})

    def test_rate_limit_section_alone(self):
        with pytest.raises(ConfigError):
            RateLimitConfig(requests="many")


class TestImmutability:

    def test_record_is_frozen(self):
        cfg = MiddlewareConfig()
        with pytest.raises(ValidationError):
            cfg.timeout = timedelta(seconds=1)

    def test_rate_limit_section_is_frozen(self):
        cfg = MiddlewareConfig()
        with pytest.raises(ValidationError):
            cfg.rate_limit.requests = 1


class TestSettings:

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("MIDDLEWARE__TIMEOUT", "10s")
        monkeypatch.setenv("MIDDLEWARE__BODY_LIMIT", "1M")
        monkeypatch.setenv("MIDDLEWARE__RATE_LIMIT__REQUESTS", "5")
        monkeypatch.setenv("MIDDLEWARE__RATE_LIMIT__STORE", "redis")

        cfg = Settings(_env_file=None).middleware

        assert cfg.timeout == timedelta(seconds=10)
        assert cfg.body_limit == "1M"
        assert cfg.rate_limit.requests == 5
        assert cfg.rate_limit.store == "redis"
        assert cfg.rate_limit.duration == DEFAULT_RATE_LIMIT_DURATION

    def test_empty_environment_gives_defaults(self, monkeypatch):
        for name in ("MIDDLEWARE__TIMEOUT", "MIDDLEWARE__BODY_LIMIT", "MIDDLEWARE__RATE_LIMIT__REQUESTS"):
            monkeypatch.delenv(name, raising=False)
        _assert_all_defaults(Settings(_env_file=None).middleware)

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        with pytest.raises(ConfigError, match="Invalid settings"):
            Settings(_env_file=None)

    def test_invalid_timeout_from_environment(self, monkeypatch):
        monkeypatch.setenv("MIDDLEWARE__TIMEOUT", "banana")
        with pytest.raises(ConfigError) as excinfo:
            Settings(_env_file=None)
        assert excinfo.value.context["value"] == "banana"

    def test_invalid_request_count_from_environment(self, monkeypatch):
        monkeypatch.setenv("MIDDLEWARE__RATE_LIMIT__REQUESTS", "many")
        with pytest.raises(ConfigError, match="Invalid middleware configuration"):
            Settings(_env_file=None)

    def test_log_level_normalized(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert Settings(_env_file=None).log_level == "DEBUG"


class TestLoadMiddlewareConfig:

    def test_without_source_uses_settings(self, monkeypatch):
        expected = MiddlewareConfig(body_limit="8K")
        monkeypatch.setattr(config_module.settings, "middleware", expected)
        assert load_middleware_config() is expected

    def test_with_source(self):
        cfg = load_middleware_config({"middleware.timeout": "2s"})
        assert cfg.timeout == timedelta(seconds=2)


class TestConfigError:

    def test_caller_context_not_mutated(self):
        shared = {"source": "env"}
        first = ConfigError("bad timeout", key="middleware.timeout", context=shared)
        second = ConfigError("bad store", key="middleware.rate_limit.store", context=shared)

        assert shared == {"source": "env"}
        assert first.context == {"source": "env", "key": "middleware.timeout"}
        assert second.context["key"] == "middleware.rate_limit.store"

    def test_not_a_value_error(self):
        """Raised from validators, it must not be folded into a ValidationError."""
        assert not issubclass(ConfigError, ValueError)
