"""
Unit tests for configuration service.

Tests config loading, tenancy validation and comment-preserving updates.
"""

import pytest

from vetcore.config_schema import TenancyConfig, get_validation_errors, validate_config
from vetcore.services.config_service import ConfigService, get_config_service


class TestConfigLoading:
    """Test configuration file loading."""

    def test_creates_default_file(self, config_path):
        service = ConfigService(str(config_path))

        assert config_path.exists()
        assert service.get("tenancy.pool_size") == 3

    def test_get_with_default(self, config_path):
        service = ConfigService(str(config_path))
        assert service.get("nonexistent.key", default="fallback") == "fallback"

    def test_singleton_uses_env_path(self, config_path):
        service = get_config_service()

        assert service.config_path == config_path
        assert get_config_service() is service

    def test_get_tenancy_defaults(self, config_path):
        tenancy = ConfigService(str(config_path)).get_tenancy()

        assert isinstance(tenancy, TenancyConfig)
        assert tenancy.connection_ttl_seconds == 300
        assert tenancy.retry_backoff_seconds == 0.5
        assert tenancy.aliases == {}


class TestConfigValidation:
    """Test configuration validation."""

    def test_valid_config(self):
        config = validate_config({"tenancy": {"pool_size": 5, "base_domains": ["App.Example.com."]}})

        assert config.tenancy.pool_size == 5
        assert config.tenancy.base_domains == ["app.example.com"]

    def test_aliases_are_lowercased(self):
        config = validate_config({"tenancy": {"aliases": {"ACME-OLD": "Acme"}}})
        assert config.tenancy.aliases == {"acme-old": "acme"}

    def test_invalid_values_reported(self):
        errors = get_validation_errors({"tenancy": {"pool_size": 0, "connect_timeout_seconds": -1}})

        assert len(errors) == 2
        assert any(error.startswith("tenancy.pool_size") for error in errors)


class TestTenancyUpdates:
    """Test round-trip updates of the tenancy section."""

    def test_update_reports_changed_paths(self, config_path):
        service = ConfigService(str(config_path))

        changed = service.update_tenancy({"pool_size": 8, "connection_ttl_seconds": 300})

        assert changed == ["tenancy.pool_size"]
        assert ConfigService(str(config_path)).get("tenancy.pool_size") == 8

    def test_update_preserves_comments(self, config_path):
        service = ConfigService(str(config_path))

        service.update_tenancy({"aliases": {"old-acme": "acme"}})

        text = config_path.read_text()
        assert "# Alternative names mapped to canonical tenant subdomains" in text
        assert "old-acme: acme" in text

    def test_noop_update(self, config_path):
        service = ConfigService(str(config_path))
        assert service.update_tenancy({"pool_size": 3}) == []

    def test_validation_errors_do_not_write(self, config_path):
        service = ConfigService(str(config_path))
        before = config_path.read_text()

        errors = service.validation_errors({"retry_backoff_seconds": 99})

        assert errors
        assert config_path.read_text() == before

    def test_invalid_update_raises(self, config_path):
        service = ConfigService(str(config_path))

        with pytest.raises(ValueError):
            service.update_tenancy({"pool_size": 500})
