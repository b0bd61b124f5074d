"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Report parsing
- Geo/distance calculations
- Report expiry
- Radius membership
- Notification deduplication
- Message formatting

All functions here are deterministic and have no I/O.
"""

from parkpal.core.report import Report, UserLocation, parse_reports
from parkpal.core.geo import calculate_distance, is_within_radius
from parkpal.core.expiry import partition_expired
from parkpal.core.membership import MembershipDelta, MembershipTracker
from parkpal.core.dedup import build_history_index, plan_notifications
from parkpal.core.formatter import format_spot_notification, format_push_payload
from parkpal.core.session import Session

__all__ = [
    # Report
    "Report",
    "UserLocation",
    "parse_reports",
    # Geo
    "calculate_distance",
    "is_within_radius",
    # Expiry
    "partition_expired",
    # Membership
    "MembershipDelta",
    "MembershipTracker",
    # Dedup
    "build_history_index",
    "plan_notifications",
    # Formatter
    "format_spot_notification",
    "format_push_payload",
    # Session
    "Session",
]
