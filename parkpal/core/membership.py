"""Radius membership tracking.

Tracks which available reports are within the user's notification radius
and reports the change since the previous evaluation. The set arithmetic
is pure; MembershipTracker owns the one piece of state carried between
evaluations of a session.
"""

from dataclasses import dataclass, field

from parkpal.core.geo import is_within_radius
from parkpal.core.report import Report, UserLocation


@dataclass(frozen=True)
class MembershipDelta:
    """Change in membership between two evaluations.

    Attributes:
        entered: Report IDs that moved into the radius
        left: Report IDs that moved out of the radius
    """
    entered: frozenset[str] = field(default_factory=frozenset)
    left: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        """True if nothing entered or left."""
        return not self.entered and not self.left


EMPTY_DELTA = MembershipDelta()


def compute_membership(
    location: UserLocation,
    reports: list[Report],
    radius_miles: float,
) -> frozenset[str]:
    """Compute the IDs of available reports within radius.

    Pure function.

    Args:
        location: User location
        reports: Fresh reports to consider
        radius_miles: Notification radius in miles

    Returns:
        IDs of available reports within the radius
    """
    return frozenset(
        r.id for r in reports
        if r.is_available
        and is_within_radius(
            r.latitude, r.longitude,
            location.latitude, location.longitude,
            radius_miles,
        )
    )


def diff_membership(
    previous: frozenset[str],
    current: frozenset[str],
) -> MembershipDelta:
    """Compute entered/left sets between two memberships.

    Pure function.

    Args:
        previous: Membership at the previous evaluation
        current: Membership now

    Returns:
        MembershipDelta with entered and left IDs
    """
    return MembershipDelta(
        entered=frozenset(current - previous),
        left=frozenset(previous - current),
    )


class MembershipTracker:
    """Per-session radius membership state machine.

    Evaluations must be applied in the order their triggering events
    occurred and must not overlap; the session runner serializes them.
    """

    def __init__(self) -> None:
        self._previous: frozenset[str] = frozenset()

    @property
    def current(self) -> frozenset[str]:
        """Membership as of the last applied evaluation."""
        return self._previous

    def evaluate(
        self,
        location: UserLocation | None,
        reports: list[Report],
        radius_miles: float,
        notifications_enabled: bool,
    ) -> MembershipDelta:
        """Evaluate membership and return the delta since the last call.

        Returns an empty delta without touching state when notifications
        are disabled, the location is unknown or there are no reports.

        Args:
            location: User location (None if unknown)
            reports: Fresh reports (expired ones already removed)
            radius_miles: Notification radius in miles
            notifications_enabled: User's notification preference

        Returns:
            MembershipDelta of entered and left report IDs
        """
        if not notifications_enabled or location is None or not reports:
            return EMPTY_DELTA

        current = compute_membership(location, reports, radius_miles)
        delta = diff_membership(self._previous, current)
        self._previous = current
        return delta

    def reset(self) -> None:
        """Forget all membership, e.g. when the session ends."""
        self._previous = frozenset()
