"""
Unit tests for configuration management.
"""

import os
from unittest.mock import patch

import pytest

from linkpage.config import get_config, validate_config


class TestGetConfig:
    """Test configuration loading from environment variables."""

    def test_get_config_defaults(self):
        """Test that get_config returns default values when env vars not set."""
        config = get_config()

        assert config["FLASK_ENV"] == "testing"  # Set in conftest
        assert config["BDO_BACKEND"] == "stub"
        assert config["HANDOFF_TTL"] == 1800
        assert config["HANDOFF_GRACE"] == 300
        assert config["HANDOFF_SEQUENCE_LENGTH"] == 5
        assert config["MAPPINGS_FLUSH_EVERY"] == 10
        assert config["WEB_PRICE"] == 2000
        assert config["APP_PRICE"] == 1500
        assert config["APP_NAME"] == "Linkitylink"

    def test_get_config_custom_values(self):
        """Test that get_config uses environment variables when provided."""
        with patch.dict(os.environ, {"BDO_BASE_URL": "https://bdo.example", "APP_PORT": "8080", "APP_NAME": "Custom"}):
            config = get_config()

            assert config["BDO_BASE_URL"] == "https://bdo.example"
            assert config["APP_PORT"] == 8080
            assert config["APP_NAME"] == "Custom"

    def test_get_config_boolean_parsing(self):
        """Test that boolean environment variables are parsed correctly."""
        with patch.dict(
            os.environ,
            {"FLASK_DEBUG": "1", "RATE_LIMIT_ENABLED": "true", "HANDOFF_REQUIRE_APP_SIGNATURE": "yes"},
        ):
            config = get_config()

            assert config["FLASK_DEBUG"] is True
            assert config["RATE_LIMIT_ENABLED"] is True
            assert config["HANDOFF_REQUIRE_APP_SIGNATURE"] is True

    def test_get_config_backend_names_lowercased(self):
        with patch.dict(os.environ, {"BDO_BACKEND": "HTTP"}):
            assert get_config()["BDO_BACKEND"] == "http"

    def test_get_config_invalid_integer_raises(self):
        """Invalid integer inputs should surface a helpful error."""
        with patch.dict(os.environ, {"HANDOFF_TTL": "thirty minutes"}):
            with pytest.raises(ValueError, match="HANDOFF_TTL"):
                get_config()


class TestValidateConfig:
    """Test configuration validation."""

    def test_valid_config_passes(self):
        assert validate_config(get_config()) is True

    def test_production_requires_secret_key(self):
        config = get_config()
        config["FLASK_ENV"] = "production"
        config["FLASK_SECRET_KEY"] = None

        with pytest.raises(ValueError, match="FLASK_SECRET_KEY"):
            validate_config(config)

    def test_production_with_stub_backend_warns(self):
        config = get_config()
        config["FLASK_ENV"] = "production"

        with pytest.warns(UserWarning, match="BDO_BACKEND=stub"):
            validate_config(config)

    def test_app_price_above_web_price_rejected(self):
        config = get_config()
        config["APP_PRICE"] = 2500

        with pytest.raises(ValueError, match="APP_PRICE"):
            validate_config(config)

    def test_empty_sequence_rejected(self):
        config = get_config()
        config["HANDOFF_SEQUENCE_LENGTH"] = 0

        with pytest.raises(ValueError, match="HANDOFF_SEQUENCE_LENGTH"):
            validate_config(config)
