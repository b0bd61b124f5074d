"""User notification preferences - Pure functions.

Radius and notification settings are owned by the user and stored
externally; this module parses and validates them.
"""

from dataclasses import dataclass
from typing import Any


# Radius choices offered to the user, in miles
RADIUS_PRESETS_MILES: tuple[float, ...] = (0.1, 0.2, 0.3, 0.5, 1.0)

DEFAULT_RADIUS_MILES = 0.3


@dataclass(frozen=True)
class RadiusPreference:
    """A user's notification settings.

    Attributes:
        radius_miles: Notification radius in miles
        notifications_enabled: Whether proximity notifications are on
        push_token: Expo push token of the user's device (None if unregistered)
    """
    radius_miles: float = DEFAULT_RADIUS_MILES
    notifications_enabled: bool = True
    push_token: str | None = None


def is_valid_radius(
    radius_miles: float,
    presets: tuple[float, ...] = RADIUS_PRESETS_MILES,
) -> bool:
    """Check if a radius is one of the presets.

    Pure function.
    """
    return any(abs(radius_miles - p) < 1e-9 for p in presets)


def parse_preferences(
    data: dict[str, Any] | None,
    default_radius: float = DEFAULT_RADIUS_MILES,
    presets: tuple[float, ...] = RADIUS_PRESETS_MILES,
) -> RadiusPreference:
    """Parse a user document into a RadiusPreference.

    Pure function. Missing or invalid values fall back to defaults:
    notifications on, default radius.

    Args:
        data: User document fields (None if the document doesn't exist)
        default_radius: Radius to use when unset or not a preset
        presets: Allowed radius values

    Returns:
        RadiusPreference
    """
    if not data:
        return RadiusPreference(radius_miles=default_radius)

    radius = default_radius
    raw_radius = data.get("radius")
    if isinstance(raw_radius, (int, float)) and not isinstance(raw_radius, bool):
        if is_valid_radius(float(raw_radius), presets):
            radius = float(raw_radius)

    enabled = data.get("notificationsEnabled")
    if not isinstance(enabled, bool):
        enabled = True

    push_token = data.get("expoPushToken") or None

    return RadiusPreference(
        radius_miles=radius,
        notifications_enabled=enabled,
        push_token=push_token,
    )
