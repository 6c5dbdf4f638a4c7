"""
Tests for configuration and config loading.
"""
import json

import pytest

from backend.src.scrape_recovery.config import (
    ErrorHandlerConfig,
    GracefulDegradationConfig,
    NotificationThresholds,
    RetryConfig,
    load_config,
)
from backend.src.scrape_recovery.exceptions import ConfigurationError
from backend.src.scrape_recovery.types import ErrorKind, FallbackStrategy


class TestRetryConfig:
    """Test cases for RetryConfig."""

    def test_defaults(self):
        config = RetryConfig()

        assert config.max_retries == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 300.0
        assert config.backoff_multiplier == 2.0
        assert config.jitter_enabled is True
        assert config.attempt_timeout is None

    @pytest.mark.parametrize("field_name,value", [
        ("max_retries", -1),
        ("base_delay", -0.5),
        ("max_delay", -1.0),
        ("backoff_multiplier", 1.0),
        ("attempt_timeout", 0),
    ])
    def test_rejects_out_of_range(self, field_name, value):
        with pytest.raises(ConfigurationError) as exc_info:
            RetryConfig(**{field_name: value})

        assert exc_info.value.field_name == field_name

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            RetryConfig(max_retries=-1)

    def test_with_overrides(self):
        config = RetryConfig().with_overrides(max_retries=5, jitter_enabled=False)

        assert config.max_retries == 5
        assert config.jitter_enabled is False
        assert config.base_delay == 1.0


class TestNotificationThresholds:
    """Test cases for NotificationThresholds."""

    def test_defaults(self):
        thresholds = NotificationThresholds()

        assert thresholds.error_rate == 0.5
        assert thresholds.consecutive_failures == 5
        assert thresholds.critical_kinds == {ErrorKind.STORAGE, ErrorKind.AUTHENTICATION}

    @pytest.mark.parametrize("kwargs", [
        {"error_rate": 1.5},
        {"error_rate": -0.1},
        {"consecutive_failures": 0},
    ])
    def test_rejects_out_of_range(self, kwargs):
        with pytest.raises(ConfigurationError):
            NotificationThresholds(**kwargs)

    def test_critical_kinds_coerced(self):
        thresholds = NotificationThresholds(critical_kinds=[ErrorKind.CAPTCHA])
        assert thresholds.critical_kinds == frozenset({ErrorKind.CAPTCHA})


class TestErrorHandlerConfig:
    """Test cases for ErrorHandlerConfig."""

    def test_from_dict_merges_over_defaults(self):
        config = ErrorHandlerConfig.from_dict({
            "retry": {"max_retries": 5},
            "notification_thresholds": {"critical_kinds": ["captcha", "storage"]},
            "graceful_degradation": {"fallback_strategies": ["skip_source"]},
        })

        assert config.retry.max_retries == 5
        assert config.retry.base_delay == 1.0
        assert config.notification_thresholds.error_rate == 0.5
        assert config.notification_thresholds.critical_kinds == {ErrorKind.CAPTCHA, ErrorKind.STORAGE}
        assert config.graceful_degradation.enabled is True
        assert config.graceful_degradation.fallback_strategies == (FallbackStrategy.SKIP_SOURCE,)

    def test_from_empty_dict(self):
        assert ErrorHandlerConfig.from_dict({}) == ErrorHandlerConfig()

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            ErrorHandlerConfig.from_dict({"notification_thresholds": {"critical_kinds": ["meteor"]}})

    def test_merged(self):
        config = ErrorHandlerConfig().merged(graceful_degradation=GracefulDegradationConfig(enabled=False))

        assert config.graceful_degradation.enabled is False
        assert config.retry == RetryConfig()

    def test_to_dict(self):
        data = ErrorHandlerConfig().to_dict()

        assert data["retry"]["max_retries"] == 3
        assert data["notification_thresholds"]["critical_kinds"] == ["authentication", "storage"]
        assert data["graceful_degradation"]["fallback_strategies"] == [
            "skip_source", "use_cache", "partial_processing"
        ]
        json.dumps(data)


class TestLoadConfig:
    """Test cases for load_config."""

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "missing.json") == ErrorHandlerConfig()

    def test_load_json(self, tmp_path):
        path = tmp_path / "error_handler.json"
        path.write_text(json.dumps({
            "retry": {"max_retries": 1, "attempt_timeout": 30},
            "notification_thresholds": {"consecutive_failures": 3},
        }))

        config = load_config(path)

        assert config.retry.max_retries == 1
        assert config.retry.attempt_timeout == 30
        assert config.notification_thresholds.consecutive_failures == 3
        assert config.graceful_degradation == GracefulDegradationConfig()

    def test_invalid_values_rejected(self, tmp_path):
        path = tmp_path / "error_handler.json"
        path.write_text(json.dumps({"retry": {"max_delay": -5}}))

        with pytest.raises(ConfigurationError):
            load_config(path)
