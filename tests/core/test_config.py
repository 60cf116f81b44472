"""Tests for configuration models and validation."""

import pytest

from isolation_engine.core.config import (
    AppConfig,
    ConfigurationError,
    IsolationConfiguration,
    ValidationError,
    ensure_valid,
    validate_configuration,
)


class TestIsolationConfiguration:
    """Tests for IsolationConfiguration defaults."""

    def test_defaults(self):
        config = IsolationConfiguration()

        assert config.max_isolation == 16
        assert config.contact_case == 11
        assert config.index_case_since_self_diagnosis_onset == 6
        assert config.index_case_since_self_diagnosis_unknown_onset == 4
        assert config.housekeeping_deletion_period == 14
        assert config.index_case_since_npex_day_no_self_diagnosis == 6
        assert config.test_result_polling_token_retention_period == 28

    def test_default_confirmatory_day_limit_is_token_retention(self):
        config = IsolationConfiguration(test_result_polling_token_retention_period=10)
        assert config.default_confirmatory_day_limit == 10

    def test_is_frozen(self):
        config = IsolationConfiguration()
        with pytest.raises(AttributeError):
            config.max_isolation = 20

    def test_app_config_defaults(self):
        config = AppConfig()

        assert config.isolation == IsolationConfiguration()
        assert config.firestore_collection == "isolation_records"
        assert config.virology_api_key is None


class TestValidateConfiguration:
    """Tests for validate_configuration()."""

    def test_defaults_are_valid(self):
        result = validate_configuration(IsolationConfiguration())

        assert result.valid is True
        assert result.errors == []

    def test_negative_window_is_error(self):
        result = validate_configuration(IsolationConfiguration(contact_case=-1))

        assert result.valid is False
        assert len(result.critical_errors) == 1
        assert result.critical_errors[0].field == "contact_case"

    def test_zero_window_is_valid(self):
        result = validate_configuration(IsolationConfiguration(housekeeping_deletion_period=0))
        assert result.valid is True

    def test_non_integer_window_is_error(self):
        result = validate_configuration(IsolationConfiguration(max_isolation="16"))

        assert result.valid is False
        assert result.critical_errors[0].field == "max_isolation"

    def test_bool_is_not_a_day_count(self):
        result = validate_configuration(IsolationConfiguration(contact_case=True))
        assert result.valid is False

    def test_window_longer_than_max_isolation_is_warning(self):
        result = validate_configuration(IsolationConfiguration(contact_case=20))

        assert result.valid is True
        assert len(result.warnings) == 1
        assert result.warnings[0].field == "contact_case"
        assert result.warnings[0].severity == "warning"

    def test_reports_every_invalid_window(self):
        result = validate_configuration(IsolationConfiguration(contact_case=-1, max_isolation=-2))
        fields = {e.field for e in result.critical_errors}
        assert fields == {"contact_case", "max_isolation"}


class TestEnsureValid:
    """Tests for ensure_valid()."""

    def test_returns_valid_config(self):
        config = IsolationConfiguration()
        assert ensure_valid(config) is config

    def test_warnings_do_not_raise(self):
        config = IsolationConfiguration(index_case_since_self_diagnosis_onset=30)
        assert ensure_valid(config) is config

    def test_raises_with_errors_attached(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ensure_valid(IsolationConfiguration(max_isolation=-1))

        assert exc_info.value.errors[0].field == "max_isolation"
        assert "max_isolation" in str(exc_info.value)

    def test_configuration_error_is_value_error(self):
        error = ConfigurationError([ValidationError(field="x", message="bad")])
        assert isinstance(error, ValueError)
