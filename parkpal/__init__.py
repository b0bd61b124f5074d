"""ParkPal - Geofenced parking spot notifications.

Tracks which crowdsourced parking reports are within a user's radius,
notifies once per report entering it and purges stale reports.
"""

__version__ = "1.0.0"
