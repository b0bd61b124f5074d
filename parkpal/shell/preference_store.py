"""Preference Store - Imperative Shell.

This module reads and writes a user's notification radius, notification
toggle and device push token, stored on the user's Firestore document.
"""

import logging
from typing import Any, Callable

from parkpal.core.preferences import (
    DEFAULT_RADIUS_MILES,
    RADIUS_PRESETS_MILES,
    RadiusPreference,
    is_valid_radius,
    parse_preferences,
)
from parkpal.core.session import Session
from parkpal.shell.firestore_client import FirestoreClient


logger = logging.getLogger(__name__)


DEFAULT_USERS_COLLECTION = "users"

PreferenceCallback = Callable[[RadiusPreference], None]


class PreferenceStore:
    """Client for per-user notification preferences.

    This is part of the imperative shell - it handles database I/O.

    User document structure:
    {
        "radius": 0.3,
        "notificationsEnabled": true,
        "expoPushToken": "ExponentPushToken[...]",
        ...
    }
    """

    def __init__(
        self,
        firestore_client: FirestoreClient | None = None,
        collection: str = DEFAULT_USERS_COLLECTION,
        default_radius: float = DEFAULT_RADIUS_MILES,
        presets: tuple[float, ...] = RADIUS_PRESETS_MILES,
    ) -> None:
        """Initialize preference store.

        Args:
            firestore_client: Shared Firestore handle
            collection: Users collection name
            default_radius: Radius for users who haven't picked one
            presets: Allowed radius values
        """
        self.firestore_client = firestore_client or FirestoreClient()
        self.collection = collection
        self.default_radius = default_radius
        self.presets = presets

    def _user_doc(self, session: Session) -> Any:
        return self.firestore_client.collection(self.collection).document(session.user_id)

    def _parse(self, data: dict[str, Any] | None) -> RadiusPreference:
        return parse_preferences(data, self.default_radius, self.presets)

    def get_preferences(self, session: Session) -> RadiusPreference | None:
        """Read a user's preferences.

        This method performs database I/O.

        Returns:
            Preferences (defaults if unset), or None if the read failed
        """
        try:
            doc = self._user_doc(session).get()
        except Exception as e:
            logger.error("Failed to fetch preferences for %s: %s", session.user_id, str(e))
            return None

        return self._parse(doc.to_dict() if doc.exists else None)

    def get_radius(self, session: Session) -> float:
        """Read a user's radius in miles (the default if unreadable)."""
        preferences = self.get_preferences(session)
        return preferences.radius_miles if preferences else self.default_radius

    def get_notifications_enabled(self, session: Session) -> bool:
        """Read whether a user has notifications on.

        An unreadable document counts as off.
        """
        preferences = self.get_preferences(session)
        return preferences.notifications_enabled if preferences else False

    def subscribe_preferences(
        self,
        session: Session,
        callback: PreferenceCallback,
    ) -> Callable[[], None]:
        """Subscribe to changes of a user's preferences.

        The callback runs on Firestore's watch thread.

        Args:
            session: User to watch
            callback: Called with the preferences after every change

        Returns:
            Function that cancels the subscription
        """
        def on_snapshot(docs: list[Any], changes: Any, read_time: Any) -> None:
            doc = docs[0] if docs else None
            data = doc.to_dict() if doc is not None and doc.exists else None
            callback(self._parse(data))

        logger.info("Subscribing to preferences of %s", session.user_id)
        watch = self._user_doc(session).on_snapshot(on_snapshot)
        return watch.unsubscribe

    def _update(self, session: Session, fields: dict[str, Any]) -> bool:
        try:
            self._user_doc(session).set(fields, merge=True)
        except Exception as e:
            logger.error("Failed to save preferences for %s: %s", session.user_id, str(e))
            return False
        return True

    def set_radius(self, session: Session, radius_miles: float) -> bool:
        """Save a user's radius.

        Raises:
            ValueError: If the radius is not one of the presets
        """
        if not is_valid_radius(radius_miles, self.presets):
            raise ValueError(
                f"Radius {radius_miles} is not one of {list(self.presets)}"
            )
        return self._update(session, {"radius": radius_miles})

    def set_notifications_enabled(self, session: Session, enabled: bool) -> bool:
        """Save a user's notification toggle."""
        return self._update(session, {"notificationsEnabled": enabled})

    def set_push_token(self, session: Session, push_token: str | None) -> bool:
        """Save (or clear) a user's device push token."""
        return self._update(session, {"expoPushToken": push_token})
