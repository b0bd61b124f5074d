"""Report Store - Imperative Shell.

This module reads and writes parking reports in Firestore and maintains
the per-user analytics counters. Snapshots from the live subscription are
full replacements of the collection, not diffs.

All I/O is contained here; parsing and expiry logic are in the core module.
"""

import logging
from typing import Any, Callable

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from parkpal.core.report import Report, parse_report, parse_reports
from parkpal.core.reporting import AnalyticsCounters
from parkpal.core.session import Session
from parkpal.shell.firestore_client import FirestoreClient


logger = logging.getLogger(__name__)


DEFAULT_REPORTS_COLLECTION = "parkingReports"
DEFAULT_USERS_COLLECTION = "users"

ReportsCallback = Callable[[list[Report]], None]


def _documents_to_reports(documents: dict[str, dict[str, Any]]) -> list[Report]:
    """Parse raw documents, logging any that are malformed."""
    parsed = parse_reports(documents)
    if parsed.malformed_ids:
        logger.warning(
            "Skipping %d malformed reports: %s",
            len(parsed.malformed_ids),
            ", ".join(sorted(parsed.malformed_ids)),
        )
    return parsed.reports


class ReportStore:
    """Client for the live parking report collection.

    This is part of the imperative shell - it handles database I/O.

    Report document structure:
    {
        "latitude": 43.0731,
        "longitude": -89.4012,
        "isAvailable": true,
        "timestamp": <server timestamp>,
        "reporterId": "uid"
    }
    """

    def __init__(
        self,
        firestore_client: FirestoreClient | None = None,
        collection: str = DEFAULT_REPORTS_COLLECTION,
        users_collection: str = DEFAULT_USERS_COLLECTION,
    ) -> None:
        """Initialize report store.

        Args:
            firestore_client: Shared Firestore handle
            collection: Report collection name
            users_collection: Collection holding per-user analytics
        """
        self.firestore_client = firestore_client or FirestoreClient()
        self.collection = collection
        self.users_collection = users_collection

    def _reports(self) -> Any:
        return self.firestore_client.collection(self.collection)

    def _user_doc(self, session: Session) -> Any:
        return self.firestore_client.collection(self.users_collection).document(session.user_id)

    def subscribe_reports(self, callback: ReportsCallback) -> Callable[[], None]:
        """Subscribe to the full report collection.

        The callback runs on Firestore's watch thread with every report
        currently in the collection.

        Args:
            callback: Called with the parsed reports of each snapshot

        Returns:
            Function that cancels the subscription
        """
        def on_snapshot(docs: list[Any], changes: Any, read_time: Any) -> None:
            try:
                documents = {doc.id: doc.to_dict() or {} for doc in docs}
                reports = _documents_to_reports(documents)
            except Exception:
                logger.exception("Failed to parse report snapshot, skipping it")
                return
            callback(reports)

        logger.info("Subscribing to %s", self.collection)
        watch = self._reports().on_snapshot(on_snapshot)
        return watch.unsubscribe

    def fetch_reports(self) -> list[Report] | None:
        """Read every report once.

        This method performs database I/O.

        Returns:
            Parsed reports, or None if the read failed
        """
        logger.info("Fetching reports from %s", self.collection)

        try:
            documents = {doc.id: doc.to_dict() or {} for doc in self._reports().stream()}
            reports = _documents_to_reports(documents)
        except Exception as e:
            logger.error("Failed to fetch reports: %s", str(e))
            return None

        logger.info("Fetched %d reports", len(reports))
        return reports

    def get_report(self, report_id: str) -> Report | None:
        """Read a single report.

        Returns:
            The report, or None if missing, malformed or the read failed
        """
        try:
            doc = self._reports().document(report_id).get()
        except Exception as e:
            logger.error("Failed to fetch report %s: %s", report_id, str(e))
            return None

        if not doc.exists:
            return None
        return parse_report(doc.id, doc.to_dict())

    def create_report(self, fields: dict[str, Any]) -> str | None:
        """Create a report.

        A server timestamp is used unless the fields carry one.

        Args:
            fields: Report document fields

        Returns:
            New report ID, or None if the write failed
        """
        data = dict(fields)
        data.setdefault("timestamp", firestore.SERVER_TIMESTAMP)

        try:
            _, doc_ref = self._reports().add(data)
        except Exception as e:
            logger.error("Failed to create report: %s", str(e))
            return None

        logger.info("Created report %s", doc_ref.id)
        return doc_ref.id

    def update_report(self, report_id: str, fields: dict[str, Any]) -> bool:
        """Update fields of an existing report.

        Args:
            report_id: Report to update
            fields: Fields to overwrite

        Returns:
            True if the update was applied
        """
        try:
            self._reports().document(report_id).update(fields)
        except gcp_exceptions.NotFound:
            logger.warning("Report %s no longer exists", report_id)
            return False
        except Exception as e:
            logger.error("Failed to update report %s: %s", report_id, str(e))
            return False

        logger.info("Updated report %s", report_id)
        return True

    def delete_report(self, report_id: str) -> bool:
        """Delete a report.

        Deleting a report that is already gone succeeds.

        Returns:
            True if the report no longer exists
        """
        try:
            self._reports().document(report_id).delete()
        except Exception as e:
            logger.error("Failed to delete report %s: %s", report_id, str(e))
            return False

        logger.info("Deleted report %s", report_id)
        return True

    def get_analytics_counters(self, session: Session) -> AnalyticsCounters | None:
        """Read a user's report counters.

        Returns:
            Counters (zeros if none recorded), or None if the read failed
        """
        try:
            doc = self._user_doc(session).get()
        except Exception as e:
            logger.error("Failed to fetch analytics for %s: %s", session.user_id, str(e))
            return None

        data = doc.to_dict() if doc.exists else None
        return AnalyticsCounters.from_dict((data or {}).get("analytics"))

    def increment_analytics_counters(
        self,
        session: Session,
        delta: AnalyticsCounters,
    ) -> bool:
        """Atomically add to a user's report counters.

        Args:
            session: User whose counters to update
            delta: Amounts to add

        Returns:
            True if the update was applied
        """
        try:
            self._user_doc(session).set(
                {
                    "analytics": {
                        key: firestore.Increment(value)
                        for key, value in delta.to_dict().items()
                    },
                },
                merge=True,
            )
        except Exception as e:
            logger.error("Failed to update analytics for %s: %s", session.user_id, str(e))
            return False

        return True
