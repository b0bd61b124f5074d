"""Parking report data models and parsing - Pure functions.

This module handles parsing report documents from the realtime store
into typed Report objects. All functions are pure with no side effects.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from parkpal.core.geo import calculate_distance, meters_to_miles


@dataclass(frozen=True)
class Report:
    """Immutable parking report.

    Attributes:
        id: Store-assigned document ID
        latitude: Spot latitude
        longitude: Spot longitude
        is_available: True for an open spot, False for a taken one
        timestamp: Creation time in epoch milliseconds (None if unknown)
        reporter_id: User who reported the spot (None if anonymous)
    """
    id: str
    latitude: float
    longitude: float
    is_available: bool
    timestamp: int | None = None
    reporter_id: str | None = None

    @property
    def coordinates(self) -> tuple[float, float]:
        """Return (latitude, longitude) tuple."""
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class UserLocation:
    """Current device position.

    Attributes:
        latitude: Device latitude
        longitude: Device longitude
    """
    latitude: float
    longitude: float

    def distance_to(self, latitude: float, longitude: float) -> float:
        """Distance in miles from this location to a point."""
        return calculate_distance(self.latitude, self.longitude, latitude, longitude)

    def moved_at_least(self, other: "UserLocation | None", meters: float) -> bool:
        """Check if this location is at least `meters` away from another.

        A missing previous location always counts as a move.
        """
        if other is None:
            return True
        return self.distance_to(other.latitude, other.longitude) >= meters_to_miles(meters)


@dataclass(frozen=True)
class ParsedReports:
    """Result of parsing a store snapshot.

    Attributes:
        reports: Valid reports, in snapshot order
        malformed_ids: IDs of documents that could not be parsed
    """
    reports: list[Report] = field(default_factory=list)
    malformed_ids: list[str] = field(default_factory=list)


def _parse_coordinate(value: Any, limit: float) -> float | None:
    """Parse a latitude/longitude value, None if missing or out of range."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or not -limit <= number <= limit:
        return None
    return number


def parse_timestamp(value: Any) -> int | None:
    """Convert a stored timestamp to epoch milliseconds.

    Pure function.

    The store may hold integer milliseconds (client clock) or a datetime
    (server timestamp). Anything else is treated as unknown.

    Args:
        value: Raw timestamp value

    Returns:
        Epoch milliseconds, or None if the value is missing or unusable
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return int(value)
    return None


def parse_report(report_id: str, data: dict[str, Any] | None) -> Report | None:
    """Parse a single report document into a Report.

    Pure function: takes raw dict, returns typed Report or None if invalid.

    Args:
        report_id: Document ID
        data: Document fields

    Returns:
        Report object or None if coordinates are missing or invalid
    """
    if not report_id or not isinstance(data, dict):
        return None

    latitude = _parse_coordinate(data.get("latitude"), 90.0)
    longitude = _parse_coordinate(data.get("longitude"), 180.0)
    if latitude is None or longitude is None:
        return None

    reporter_id = data.get("reporterId")

    return Report(
        id=report_id,
        latitude=latitude,
        longitude=longitude,
        is_available=data.get("isAvailable") is True,
        timestamp=parse_timestamp(data.get("timestamp")),
        reporter_id=str(reporter_id) if reporter_id else None,
    )


def parse_reports(documents: dict[str, dict[str, Any]]) -> ParsedReports:
    """Parse a full report snapshot keyed by document ID.

    Pure function: invalid documents are skipped and their IDs collected.

    Args:
        documents: Mapping of document ID to document fields

    Returns:
        ParsedReports with valid reports and malformed IDs
    """
    reports = []
    malformed_ids = []

    for report_id, data in documents.items():
        report = parse_report(report_id, data)
        if report is None:
            malformed_ids.append(report_id)
        else:
            reports.append(report)

    return ParsedReports(reports=reports, malformed_ids=malformed_ids)


def report_to_document(report: Report) -> dict[str, Any]:
    """Convert a Report to store document fields."""
    data: dict[str, Any] = {
        "latitude": report.latitude,
        "longitude": report.longitude,
        "isAvailable": report.is_available,
    }
    if report.timestamp is not None:
        data["timestamp"] = report.timestamp
    if report.reporter_id is not None:
        data["reporterId"] = report.reporter_id
    return data
