"""Geographic calculations - Pure functions.

This module provides distance calculations between user positions and
parking reports. All distances are in miles; radius presets are miles too.
All functions are pure with no side effects.
"""

import math


# Earth's mean radius in miles
EARTH_RADIUS_MILES = 3958.8

METERS_PER_MILE = 1609.344


def calculate_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate distance between two points using Haversine formula.

    Pure function.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in miles
    """
    # Convert to radians
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    # Haversine formula
    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # Rounding can push a slightly outside [0, 1] near antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_MILES * c


def is_within_radius(
    latitude: float,
    longitude: float,
    center_lat: float,
    center_lon: float,
    radius_miles: float,
) -> bool:
    """Check if a point is within a radius of a center point.

    Pure function. The boundary is inclusive.

    Args:
        latitude: Point latitude
        longitude: Point longitude
        center_lat: Center point latitude
        center_lon: Center point longitude
        radius_miles: Radius in miles

    Returns:
        True if the point is within radius
    """
    distance = calculate_distance(latitude, longitude, center_lat, center_lon)
    return distance <= radius_miles


def miles_to_meters(miles: float) -> float:
    """Convert miles to meters."""
    return miles * METERS_PER_MILE


def meters_to_miles(meters: float) -> float:
    """Convert meters to miles."""
    return meters / METERS_PER_MILE
