"""Firestore Client - Imperative Shell.

This module owns the connection to Google Cloud Firestore, the hosted
realtime database holding reports, user preferences and notification
history. The stores in this package share one FirestoreClient.
"""

import logging
from dataclasses import dataclass
from typing import Any

from google.cloud import firestore


logger = logging.getLogger(__name__)


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
    """
    project_id: str | None = None
    database: str | None = None


class FirestoreClient:
    """Lazily connected Firestore handle.

    This is part of the imperative shell - it handles database I/O.
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore client.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            logger.info("Connecting to Firestore")
            self._client = firestore.Client(**kwargs)
        return self._client

    def collection(self, *path: str) -> Any:
        """Get a collection reference by path segments."""
        return self.client.collection(*path)

    def document(self, *path: str) -> Any:
        """Get a document reference by path segments."""
        return self.client.document(*path)
