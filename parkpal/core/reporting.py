"""Report submission rules - Pure functions.

Rules for creating, toggling and deleting parking reports, and the
per-user analytics counters updated on submission. All functions are
pure with no side effects.
"""

from dataclasses import dataclass
from typing import Any

from parkpal.core.report import Report, UserLocation
from parkpal.core.session import Session


# Users may only report spots near where they actually are
DEFAULT_MAX_REPORT_DISTANCE_MILES = 0.5


@dataclass(frozen=True)
class AnalyticsCounters:
    """Per-user report counters.

    Attributes:
        total: Reports submitted
        available: Reports marking a spot open
        unavailable: Reports marking a spot taken
    """
    total: int = 0
    available: int = 0
    unavailable: int = 0

    @staticmethod
    def _count(value: Any) -> int:
        try:
            return int(value or 0)
        except (TypeError, ValueError, OverflowError):
            return 0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AnalyticsCounters":
        """Build counters from a stored dict, treating missing or unreadable values as 0."""
        if not isinstance(data, dict):
            data = {}
        return cls(
            total=cls._count(data.get("total")),
            available=cls._count(data.get("available")),
            unavailable=cls._count(data.get("unavailable")),
        )

    def to_dict(self) -> dict[str, int]:
        """Convert to a plain dict."""
        return {
            "total": self.total,
            "available": self.available,
            "unavailable": self.unavailable,
        }


def counter_delta(is_available: bool) -> AnalyticsCounters:
    """Counter increments for one submitted report.

    Pure function.
    """
    return AnalyticsCounters(
        total=1,
        available=1 if is_available else 0,
        unavailable=0 if is_available else 1,
    )


def validate_report_location(
    location: UserLocation | None,
    latitude: float,
    longitude: float,
    max_distance_miles: float = DEFAULT_MAX_REPORT_DISTANCE_MILES,
) -> str | None:
    """Validate where a new report is placed.

    Pure function.

    Args:
        location: Reporter's live position (None if unknown)
        latitude: Spot latitude
        longitude: Spot longitude
        max_distance_miles: Maximum distance from the reporter

    Returns:
        Error message, or None if the location is acceptable
    """
    if location is None:
        return "Location not available"

    if not -90 <= latitude <= 90:
        return f"Latitude {latitude} out of range [-90, 90]"

    if not -180 <= longitude <= 180:
        return f"Longitude {longitude} out of range [-180, 180]"

    distance = location.distance_to(latitude, longitude)
    if distance > max_distance_miles:
        return (
            f"Spot is {distance:.2f} mi away; reports must be within "
            f"{max_distance_miles} mi of your location"
        )

    return None


def can_toggle_report(session: Session, report: Report) -> bool:
    """Check if a user may flip a report's availability.

    Pure function. Availability is crowdsourced, so any signed-in user may.
    """
    return bool(session.user_id)


def can_delete_report(
    session: Session,
    report: Report,
    allow_any_user_delete: bool = False,
) -> bool:
    """Check if a user may delete a report.

    Pure function.

    The reporter may always delete their own report. Anonymous reports
    may be deleted by anyone.

    Args:
        session: Acting user
        report: Report to delete
        allow_any_user_delete: Let any signed-in user delete any report

    Returns:
        True if deletion is allowed
    """
    if not session.user_id:
        return False
    if allow_any_user_delete or report.reporter_id is None:
        return True
    return report.reporter_id == session.user_id
