"""Notification History Store - Imperative Shell.

This module persists the per-user log of spot notifications in a
Firestore sub-collection. Which records to write or delete is decided in
the core dedup module.
"""

import logging
from typing import Any

from parkpal.core.dedup import HistoryRecord, parse_history_record, sort_newest_first
from parkpal.core.session import Session
from parkpal.shell.firestore_client import FirestoreClient


logger = logging.getLogger(__name__)


DEFAULT_USERS_COLLECTION = "users"
DEFAULT_HISTORY_SUBCOLLECTION = "notifications"


class HistoryStore:
    """Client for users/{userId}/notifications.

    This is part of the imperative shell - it handles database I/O.

    Record document structure:
    {
        "title": "Spot Available Nearby!",
        "body": "A new parking spot just opened close to you.",
        "reportId": "report_id",
        "timestamp": 1700000000000
    }
    """

    def __init__(
        self,
        firestore_client: FirestoreClient | None = None,
        users_collection: str = DEFAULT_USERS_COLLECTION,
        subcollection: str = DEFAULT_HISTORY_SUBCOLLECTION,
    ) -> None:
        """Initialize history store.

        Args:
            firestore_client: Shared Firestore handle
            users_collection: Users collection name
            subcollection: History sub-collection name
        """
        self.firestore_client = firestore_client or FirestoreClient()
        self.users_collection = users_collection
        self.subcollection = subcollection

    def _records(self, session: Session) -> Any:
        return self.firestore_client.collection(
            self.users_collection,
            session.user_id,
            self.subcollection,
        )

    def list_records(self, session: Session) -> list[HistoryRecord] | None:
        """Read a user's notification history, newest first.

        This method performs database I/O.

        Returns:
            History records, or None if the read failed
        """
        try:
            docs = list(self._records(session).stream())
        except Exception as e:
            logger.error("Failed to fetch history for %s: %s", session.user_id, str(e))
            return None

        records = []
        for doc in docs:
            record = parse_history_record(doc.id, doc.to_dict())
            if record is None:
                logger.warning("Skipping malformed history record %s", doc.id)
                continue
            records.append(record)

        return sort_newest_first(records)

    def create_record(
        self,
        session: Session,
        title: str,
        body: str,
        report_id: str,
        timestamp_ms: int,
    ) -> str | None:
        """Append a record to a user's history.

        Returns:
            New record ID, or None if the write failed
        """
        try:
            _, doc_ref = self._records(session).add({
                "title": title,
                "body": body,
                "reportId": report_id,
                "timestamp": timestamp_ms,
            })
        except Exception as e:
            logger.error(
                "Failed to save history record for report %s: %s",
                report_id,
                str(e),
            )
            return None

        logger.info("Saved history record %s for report %s", doc_ref.id, report_id)
        return doc_ref.id

    def delete_record(self, session: Session, record_id: str) -> bool:
        """Delete a record from a user's history.

        Deleting a record that is already gone succeeds.

        Returns:
            True if the record no longer exists
        """
        try:
            self._records(session).document(record_id).delete()
        except Exception as e:
            logger.error("Failed to delete history record %s: %s", record_id, str(e))
            return False

        logger.info("Deleted history record %s", record_id)
        return True
