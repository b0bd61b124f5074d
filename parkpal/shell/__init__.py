"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- Firestore stores for reports, preferences and notification history
- Expo push client (HTTP)
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from parkpal.shell.firestore_client import FirestoreClient
from parkpal.shell.report_store import ReportStore
from parkpal.shell.preference_store import PreferenceStore
from parkpal.shell.history_store import HistoryStore
from parkpal.shell.expo_push_client import ExpoPushClient
from parkpal.shell.config_loader import load_config, Config

__all__ = [
    "FirestoreClient",
    "ReportStore",
    "PreferenceStore",
    "HistoryStore",
    "ExpoPushClient",
    "load_config",
    "Config",
]
