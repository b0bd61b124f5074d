"""Unit tests for configuration validation."""

from parkpal.core.config import Config, PushConfig, validate_config


class TestConfig:
    """Tests for Config defaults."""

    def test_defaults(self):
        config = Config()

        assert config.reports_collection == "parkingReports"
        assert config.default_radius_miles == 0.3
        assert config.retention_ms == 2 * 60 * 60 * 1000

    def test_fractional_retention(self):
        assert Config(retention_hours=0.5).retention_ms == 30 * 60 * 1000


class TestValidateConfig:
    """Tests for validate_config() function."""

    def test_defaults_are_valid(self):
        result = validate_config(Config())

        assert result.valid is True
        assert result.errors == []

    def test_default_radius_must_be_preset(self):
        result = validate_config(Config(default_radius_miles=0.25))

        assert result.valid is False
        assert result.critical_errors[0].field == "default_radius_miles"

    def test_empty_presets(self):
        result = validate_config(Config(radius_presets_miles=()))

        assert result.valid is False
        assert [e.field for e in result.critical_errors] == ["radius_presets_miles"]

    def test_non_positive_preset(self):
        result = validate_config(Config(radius_presets_miles=(0.0, 0.3)))

        assert any(e.field == "radius_presets_miles[0]" for e in result.critical_errors)

    def test_non_positive_retention(self):
        result = validate_config(Config(retention_hours=0))

        assert result.valid is False
        assert result.critical_errors[0].field == "retention_hours"

    def test_negative_threshold(self):
        result = validate_config(Config(location_threshold_meters=-1))

        assert result.critical_errors[0].field == "location_threshold_meters"

    def test_empty_collection_name(self):
        result = validate_config(Config(reports_collection=""))

        assert result.critical_errors[0].field == "reports_collection"

    def test_http_endpoint_is_warning(self):
        result = validate_config(Config(push=PushConfig(endpoint="http://localhost:8080")))

        assert result.valid is True
        assert result.warnings[0].field == "push.endpoint"

    def test_unresolved_token_is_warning(self):
        result = validate_config(Config(push=PushConfig(access_token="${EXPO_TOKEN}")))

        assert result.valid is True
        assert result.warnings[0].field == "push.access_token"
