"""Message formatting - Pure functions.

This module formats parking reports into notification text and push
payloads. All functions are pure with no side effects.
"""

from dataclasses import dataclass
from typing import Any

from parkpal.core.report import Report


DEFAULT_TITLE = "Spot Available Nearby!"
DEFAULT_BODY = "A new parking spot just opened close to you."

FEET_PER_MILE = 5280


@dataclass(frozen=True)
class NotificationContent:
    """Human-readable notification text.

    Attributes:
        title: Notification title
        body: Notification body
    """
    title: str
    body: str


def format_distance(distance_miles: float) -> str:
    """Format a distance for display.

    Pure function. Short distances are shown in feet.

    Examples:
        0.05 -> "264 ft"
        0.3 -> "0.3 mi"
    """
    if distance_miles < 0.1:
        return f"{round(distance_miles * FEET_PER_MILE)} ft"
    return f"{distance_miles:.1f} mi"


def format_spot_notification(
    report: Report,
    distance_miles: float | None = None,
    title: str = DEFAULT_TITLE,
    body: str = DEFAULT_BODY,
) -> NotificationContent:
    """Format the notification for a spot that entered the radius.

    Pure function.

    Args:
        report: The report that entered the radius
        distance_miles: Distance from the user, appended to the body if given
        title: Notification title
        body: Notification body

    Returns:
        NotificationContent for the history record and push
    """
    text = body
    if distance_miles is not None:
        text = f"{body} ({format_distance(distance_miles)} away)"

    return NotificationContent(title=title, body=text)


def format_push_payload(
    push_token: str,
    content: NotificationContent,
    report_id: str,
) -> dict[str, Any]:
    """Format an Expo push message.

    Pure function.

    Args:
        push_token: Device Expo push token
        content: Notification text
        report_id: Report the notification is about

    Returns:
        Push message dict ready for the Expo push API
    """
    return {
        "to": push_token,
        "title": content.title,
        "body": content.body,
        "data": {"reportId": report_id},
        "sound": "default",
    }


def format_time_ago(timestamp_ms: int, now_ms: int) -> str:
    """Format a timestamp relative to now.

    Pure function.

    Args:
        timestamp_ms: Event time in epoch milliseconds
        now_ms: Current time in epoch milliseconds

    Returns:
        Relative time such as "Just now" or "5 minutes ago"
    """
    minutes = max(0, now_ms - timestamp_ms) // 60_000

    if minutes < 1:
        return "Just now"
    if minutes == 1:
        return "1 minute ago"
    if minutes < 60:
        return f"{minutes} minutes ago"

    hours = minutes // 60
    if hours == 1:
        return "1 hour ago"
    if hours < 24:
        return f"{hours} hours ago"

    days = hours // 24
    if days == 1:
        return "1 day ago"
    return f"{days} days ago"
