"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field, fields
from datetime import timezone, tzinfo


@dataclass(frozen=True)
class IsolationConfiguration:
    """Day-count windows governing isolation.

    Loaded once per process and never mutated afterwards.

    Attributes:
        max_isolation: Longest any isolation may last, from its first day
        contact_case: Isolation length for a contact case
        index_case_since_self_diagnosis_onset: Isolation length from a
            known symptom onset day
        index_case_since_self_diagnosis_unknown_onset: Isolation length
            from the self-diagnosis day when onset is unknown
        housekeeping_deletion_period: Days a finished record is retained
            before it is deleted
        index_case_since_npex_day_no_self_diagnosis: Isolation length from
            a positive test's end day when there are no symptoms
        test_result_polling_token_retention_period: Default confirmatory
            day limit for unconfirmed tests that do not carry one
    """
    max_isolation: int = 16
    contact_case: int = 11
    index_case_since_self_diagnosis_onset: int = 6
    index_case_since_self_diagnosis_unknown_onset: int = 4
    housekeeping_deletion_period: int = 14
    index_case_since_npex_day_no_self_diagnosis: int = 6
    test_result_polling_token_retention_period: int = 28

    @property
    def default_confirmatory_day_limit(self) -> int:
        return self.test_result_polling_token_retention_period


@dataclass(frozen=True)
class AppConfig:
    """Application configuration.

    Attributes:
        isolation: Isolation windows
        timezone: Reference timezone for converting instants to days
        firestore_database: Firestore database name (None for default)
        firestore_collection: Collection holding one record per person
        virology_base_url: Base URL of the virology testing API
        virology_api_key: Bearer token for the virology testing API
    """
    isolation: IsolationConfiguration = field(default_factory=IsolationConfiguration)
    timezone: tzinfo = timezone.utc
    firestore_database: str | None = None
    firestore_collection: str = "isolation_records"
    virology_base_url: str = "https://api.example.org"
    virology_api_key: str | None = None


class ConfigurationError(ValueError):
    """Raised when configuration fails validation.

    Attributes:
        errors: The validation errors that caused the failure
    """

    def __init__(self, errors: list["ValidationError"]) -> None:
        self.errors = errors
        details = "; ".join(f"{e.field}: {e.message}" for e in errors)
        super().__init__(f"Invalid isolation configuration: {details}")


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


# Windows that describe a single isolation and so should fit inside max_isolation
_ISOLATION_WINDOWS = (
    "contact_case",
    "index_case_since_self_diagnosis_onset",
    "index_case_since_self_diagnosis_unknown_onset",
    "index_case_since_npex_day_no_self_diagnosis",
)


def validate_configuration(config: IsolationConfiguration) -> ValidationResult:
    """Validate isolation configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    for f in fields(config):
        value = getattr(config, f.name)
        if not isinstance(value, int) or isinstance(value, bool):
            errors.append(ValidationError(
                field=f.name,
                message=f"Expected a whole number of days, got {value!r}",
            ))
        elif value < 0:
            errors.append(ValidationError(
                field=f.name,
                message=f"Window must be non-negative, got {value}",
            ))

    if not errors:
        for name in _ISOLATION_WINDOWS:
            value = getattr(config, name)
            if value > config.max_isolation:
                errors.append(ValidationError(
                    field=name,
                    message=f"{value} days exceeds max_isolation ({config.max_isolation}) and will be capped",
                    severity="warning",
                ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )


def ensure_valid(config: IsolationConfiguration) -> IsolationConfiguration:
    """Return the configuration unchanged if it is valid.

    Raises:
        ConfigurationError: If any window is invalid
    """
    result = validate_configuration(config)
    if not result.valid:
        raise ConfigurationError(result.critical_errors)
    return config
