"""
Unit tests for configuration classes and the validation rule mapping.
"""
import pytest

from turnofacil import create_app
from turnofacil.config import (
    Config,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config,
)
from turnofacil.error_handlers.exceptions import ConfigurationException
from turnofacil.services.validation_service import ValidationConfig


class TestConfig:

    @pytest.mark.unit
    def test_get_config_by_name(self):
        assert get_config('testing') is TestingConfig
        assert get_config('production') is ProductionConfig
        assert get_config('unknown') is DevelopmentConfig

    @pytest.mark.unit
    def test_colombian_defaults(self):
        assert Config.MAX_WEEKLY_HOURS == 48
        assert Config.MIN_REST_BETWEEN_SHIFTS == 12
        assert Config.MAX_CONSECUTIVE_WORK_DAYS == 6
        assert Config.BUDGET_WARNING_THRESHOLD == 85

    @pytest.mark.unit
    def test_validate_rejects_bad_threshold(self, monkeypatch):
        monkeypatch.setattr(TestingConfig, 'BUDGET_WARNING_THRESHOLD', 150)
        with pytest.raises(ValueError):
            TestingConfig.validate()

    @pytest.mark.unit
    def test_production_requires_long_secret(self, monkeypatch):
        monkeypatch.setenv('SECRET_KEY', 'short')
        with pytest.raises(ValueError):
            ProductionConfig.validate()

    @pytest.mark.unit
    def test_app_config_feeds_validation(self, app):
        config = ValidationConfig.from_mapping(app.config)
        assert config.max_weekly_hours == app.config['MAX_WEEKLY_HOURS']
        assert config.weekly_budget_limit == 0
        assert config.enforce_availability is True

    @pytest.mark.unit
    def test_production_app_refuses_weak_secret(self, monkeypatch):
        monkeypatch.setenv('SECRET_KEY', 'short')
        with pytest.raises(ConfigurationException):
            create_app('production')

    @pytest.mark.unit
    def test_production_from_environment_is_validated(self, monkeypatch):
        monkeypatch.setenv('FLASK_ENV', 'production')
        monkeypatch.setenv('SECRET_KEY', 'short')
        with pytest.raises(ConfigurationException):
            create_app()
