"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from parkpal.core.formatter import DEFAULT_BODY, DEFAULT_TITLE
from parkpal.core.preferences import DEFAULT_RADIUS_MILES, RADIUS_PRESETS_MILES
from parkpal.core.reporting import DEFAULT_MAX_REPORT_DISTANCE_MILES


DEFAULT_PUSH_ENDPOINT = "https://exp.host/--/api/v2/push/send"


@dataclass
class PushConfig:
    """Push notification service configuration.

    Attributes:
        endpoint: Expo push API URL
        access_token: Expo access token (None if push security is off)
        timeout_seconds: Request timeout
    """
    endpoint: str = DEFAULT_PUSH_ENDPOINT
    access_token: str | None = None
    timeout_seconds: int = 10


@dataclass
class NotificationTextConfig:
    """Text used for spot notifications.

    Attributes:
        title: Notification title
        body: Notification body
    """
    title: str = DEFAULT_TITLE
    body: str = DEFAULT_BODY


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        firestore_project: GCP project ID (None for default)
        firestore_database: Firestore database name (None for default)
        reports_collection: Collection holding parking reports
        users_collection: Collection holding per-user documents
        history_subcollection: Per-user notification history sub-collection
        retention_hours: Reports older than this are purged
        default_radius_miles: Radius used when the user hasn't picked one
        radius_presets_miles: Radius choices offered to users
        report_max_distance_miles: How far from the user a report may be placed
        location_threshold_meters: Minimum move before a location update counts
        allow_any_user_delete: Let any user delete any report
        push: Push service configuration
        notification: Notification text
    """
    firestore_project: str | None = None
    firestore_database: str | None = None
    reports_collection: str = "parkingReports"
    users_collection: str = "users"
    history_subcollection: str = "notifications"
    retention_hours: float = 2.0
    default_radius_miles: float = DEFAULT_RADIUS_MILES
    radius_presets_miles: tuple[float, ...] = RADIUS_PRESETS_MILES
    report_max_distance_miles: float = DEFAULT_MAX_REPORT_DISTANCE_MILES
    location_threshold_meters: float = 10.0
    allow_any_user_delete: bool = False
    push: PushConfig = field(default_factory=PushConfig)
    notification: NotificationTextConfig = field(default_factory=NotificationTextConfig)

    @property
    def retention_ms(self) -> int:
        """Retention window in milliseconds."""
        return int(self.retention_hours * 60 * 60 * 1000)


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


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    if not config.radius_presets_miles:
        errors.append(ValidationError(
            field="radius_presets_miles",
            message="At least one radius preset is required",
        ))

    for i, preset in enumerate(config.radius_presets_miles):
        if preset <= 0:
            errors.append(ValidationError(
                field=f"radius_presets_miles[{i}]",
                message=f"Radius preset must be positive, got {preset}",
            ))

    if config.radius_presets_miles and config.default_radius_miles not in config.radius_presets_miles:
        errors.append(ValidationError(
            field="default_radius_miles",
            message=(
                f"Default radius {config.default_radius_miles} is not one of "
                f"the presets {list(config.radius_presets_miles)}"
            ),
        ))

    if config.retention_hours <= 0:
        errors.append(ValidationError(
            field="retention_hours",
            message=f"Retention must be positive, got {config.retention_hours}",
        ))

    if config.report_max_distance_miles <= 0:
        errors.append(ValidationError(
            field="report_max_distance_miles",
            message=f"Report distance must be positive, got {config.report_max_distance_miles}",
        ))

    if config.location_threshold_meters < 0:
        errors.append(ValidationError(
            field="location_threshold_meters",
            message=f"Location threshold can't be negative, got {config.location_threshold_meters}",
        ))

    for name in ("reports_collection", "users_collection", "history_subcollection"):
        if not getattr(config, name):
            errors.append(ValidationError(
                field=name,
                message="Collection name must not be empty",
            ))

    if not config.push.endpoint.startswith("https://"):
        errors.append(ValidationError(
            field="push.endpoint",
            message=f"Push endpoint should use https, got {config.push.endpoint}",
            severity="warning",
        ))

    if config.push.access_token and config.push.access_token.startswith("${"):
        errors.append(ValidationError(
            field="push.access_token",
            message="Push access token not resolved (still contains placeholder)",
            severity="warning",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
