"""Orchestrator - Wires Functional Core and Imperative Shell.

This module coordinates one evaluation cycle of the notification engine:
expire stale reports, update radius membership, then write history records
and request pushes for the membership change. It's the "glue" between the
pure core and the I/O-performing shell components.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from parkpal.core.config import Config
from parkpal.core.dedup import build_history_index, plan_notifications
from parkpal.core.expiry import (
    partition_expired,
    prune_requested,
    select_deletions_to_request,
)
from parkpal.core.formatter import format_push_payload, format_spot_notification
from parkpal.core.membership import EMPTY_DELTA, MembershipDelta, MembershipTracker
from parkpal.core.preferences import RadiusPreference
from parkpal.core.report import Report, UserLocation
from parkpal.core.session import Session
from parkpal.shell.expo_push_client import ExpoPushClient
from parkpal.shell.firestore_client import FirestoreClient, FirestoreConfig
from parkpal.shell.history_store import HistoryStore
from parkpal.shell.report_store import ReportStore


logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class EvaluationInput:
    """Inputs of one evaluation cycle.

    Attributes:
        location: Latest user location (None if unknown)
        reports: Latest report snapshot
        preferences: Latest notification preferences
    """
    location: UserLocation | None
    reports: list[Report]
    preferences: RadiusPreference


@dataclass
class NotificationResult:
    """Result of notifying the user about one report.

    Attributes:
        report_id: Report that entered the radius
        record_id: History record written (None if the write failed)
        push_sent: Whether the push service accepted the message
        error: Error message if anything failed
    """
    report_id: str
    record_id: str | None
    push_sent: bool
    error: str | None = None


@dataclass
class CycleResult:
    """Result of one evaluation cycle.

    Attributes:
        reports_received: Reports in the snapshot
        reports_expired: Reports past the retention window
        deletions_requested: Expired report IDs deleted this cycle
        delta: Membership change
        notifications: Per-report notification outcomes
        retracted: Report IDs whose history record was deleted
        errors: Any errors that occurred
    """
    reports_received: int = 0
    reports_expired: int = 0
    deletions_requested: list[str] = field(default_factory=list)
    delta: MembershipDelta = EMPTY_DELTA
    notifications: list[NotificationResult] = field(default_factory=list)
    retracted: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Returns True if no errors occurred."""
        return len(self.errors) == 0

    @property
    def summary(self) -> str:
        """Human-readable summary of the cycle."""
        return (
            f"{self.reports_received} reports, "
            f"{self.reports_expired} expired, "
            f"{len(self.delta.entered)} entered, "
            f"{len(self.delta.left)} left, "
            f"{len(self.notifications)} notified, "
            f"{len(self.retracted)} retracted"
        )


@dataclass
class SweepResult:
    """Result of a collection-wide expiry sweep.

    Attributes:
        reports_checked: Reports read from the store
        deleted: Expired report IDs deleted
        errors: Any errors that occurred
    """
    reports_checked: int = 0
    deleted: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Returns True if no errors occurred."""
        return len(self.errors) == 0

    @property
    def summary(self) -> str:
        """Human-readable summary of the sweep."""
        return f"Checked {self.reports_checked} reports, deleted {len(self.deleted)} expired"


def _default_firestore_client(config: Config) -> FirestoreClient:
    return FirestoreClient(
        FirestoreConfig(
            project_id=config.firestore_project,
            database=config.firestore_database,
        )
    )


class NotificationEngine:
    """Runs evaluation cycles for one user session.

    This class wires together:
    - Core functions (expiry, membership, dedup, formatting)
    - Report store (expired report deletion)
    - History store (notification history records)
    - Expo push client (push requests)

    Cycles must not overlap; SessionRunner serializes them.
    """

    def __init__(
        self,
        session: Session,
        config: Config,
        report_store: ReportStore | None = None,
        history_store: HistoryStore | None = None,
        push_client: ExpoPushClient | None = None,
        tracker: MembershipTracker | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize engine for a session.

        Args:
            session: User the engine acts for
            config: Application configuration
            report_store: Report store (created if not provided)
            history_store: History store (created if not provided)
            push_client: Push client (created if not provided)
            tracker: Membership tracker (created if not provided)
            clock: Returns the current time in epoch milliseconds
        """
        self.session = session
        self.config = config
        firestore_client = None
        if report_store is None or history_store is None:
            firestore_client = _default_firestore_client(config)
        self.report_store = report_store or ReportStore(
            firestore_client,
            collection=config.reports_collection,
            users_collection=config.users_collection,
        )
        self.history_store = history_store or HistoryStore(
            firestore_client,
            users_collection=config.users_collection,
            subcollection=config.history_subcollection,
        )
        self.push_client = push_client or ExpoPushClient(
            endpoint=config.push.endpoint,
            access_token=config.push.access_token,
            timeout=config.push.timeout_seconds,
        )
        self.tracker = tracker or MembershipTracker()
        self.clock = clock

        self._expiry_requested: set[str] = set()
        self._retry_entries: set[str] = set()
        self._retry_exits: set[str] = set()
        self._history_reconciled = False

    @property
    def has_pending_retries(self) -> bool:
        """True if failed history writes are waiting to be retried."""
        return bool(self._retry_entries or self._retry_exits)

    def reset(self) -> None:
        """Drop all session state, e.g. when the session ends."""
        self.tracker.reset()
        self._expiry_requested.clear()
        self._retry_entries.clear()
        self._retry_exits.clear()
        self._history_reconciled = False

    def _expire_reports(self, expired_ids: set[str], all_ids: set[str], result: CycleResult) -> None:
        """Request deletion of expired reports not already requested."""
        self._expiry_requested = prune_requested(self._expiry_requested, all_ids)
        to_delete = select_deletions_to_request(expired_ids, self._expiry_requested)

        for report_id in sorted(to_delete):
            if self.report_store.delete_report(report_id):
                self._expiry_requested.add(report_id)
                result.deletions_requested.append(report_id)
            else:
                result.errors.append(f"Failed to delete expired report {report_id}")

    def _notify(
        self,
        report: Report,
        location: UserLocation,
        preferences: RadiusPreference,
    ) -> NotificationResult:
        """Write a history record for a report, then request its push.

        No push is requested unless the record was written, so a retried
        entry never produces a second push.
        """
        content = format_spot_notification(
            report,
            distance_miles=location.distance_to(report.latitude, report.longitude),
            title=self.config.notification.title,
            body=self.config.notification.body,
        )

        record_id = self.history_store.create_record(
            self.session,
            title=content.title,
            body=content.body,
            report_id=report.id,
            timestamp_ms=self.clock(),
        )
        if record_id is None:
            self._retry_entries.add(report.id)
            return NotificationResult(
                report_id=report.id,
                record_id=None,
                push_sent=False,
                error=f"Failed to save history record for report {report.id}",
            )

        if not preferences.push_token:
            logger.info(
                "No push token for %s, recorded report %s without push",
                self.session.user_id,
                report.id,
            )
            return NotificationResult(report_id=report.id, record_id=record_id, push_sent=False)

        payload = format_push_payload(preferences.push_token, content, report.id)
        response = self.push_client.send_push(payload)

        return NotificationResult(
            report_id=report.id,
            record_id=record_id,
            push_sent=response.success,
            error=None if response.success else f"Push failed for report {report.id}: {response.error}",
        )

    def _apply_delta(
        self,
        delta: MembershipDelta,
        fresh: list[Report],
        location: UserLocation,
        preferences: RadiusPreference,
        result: CycleResult,
    ) -> None:
        """Write and retract history records for a membership change."""
        records = self.history_store.list_records(self.session)
        if records is None:
            # Without the index we can't tell what was already notified
            self._retry_entries |= delta.entered
            self._retry_exits |= delta.left
            result.errors.append("Failed to read notification history")
            return

        plan = plan_notifications(
            delta,
            build_history_index(records),
            membership=self.tracker.current,
            retry_entries=frozenset(self._retry_entries),
            retry_exits=frozenset(self._retry_exits),
            reconcile=not self._history_reconciled,
        )
        self._history_reconciled = True
        self._retry_entries.clear()
        self._retry_exits.clear()

        for report_id, record_id in plan.to_retract.items():
            if self.history_store.delete_record(self.session, record_id):
                result.retracted.append(report_id)
            else:
                self._retry_exits.add(report_id)
                result.errors.append(f"Failed to retract history record for report {report_id}")

        reports_by_id = {r.id: r for r in fresh}
        for report_id in sorted(plan.to_notify):
            notification = self._notify(reports_by_id[report_id], location, preferences)
            result.notifications.append(notification)
            if notification.error:
                result.errors.append(notification.error)

    def run_cycle(self, inputs: EvaluationInput) -> CycleResult:
        """Run one evaluation cycle.

        This is the main entry point that:
        1. Requests deletion of expired reports
        2. Updates membership over fresh reports
        3. Writes history records and requests pushes for entered reports
        4. Retracts history records for reports that left; the first cycle
           of a session also retracts any record whose report is out of range

        Never raises: failures are logged and returned in the result, and
        membership state is kept as computed.

        Args:
            inputs: Latest location, reports and preferences

        Returns:
            CycleResult with details of what happened
        """
        result = CycleResult(reports_received=len(inputs.reports))

        try:
            self._run_cycle(inputs, result)
        except Exception as e:
            logger.exception("Evaluation cycle failed for %s", self.session.user_id)
            result.errors.append(f"Evaluation cycle failed: {e}")

        if result.errors:
            for error in result.errors:
                logger.error("Cycle error for %s: %s", self.session.user_id, error)
        logger.info("Cycle for %s: %s", self.session.user_id, result.summary)

        return result

    def _run_cycle(self, inputs: EvaluationInput, result: CycleResult) -> None:
        partition = partition_expired(inputs.reports, self.clock(), self.config.retention_ms)
        result.reports_expired = len(partition.expired)

        self._expire_reports(
            partition.expired_ids,
            {r.id for r in inputs.reports},
            result,
        )

        preferences = inputs.preferences
        location = inputs.location
        if not preferences.notifications_enabled or location is None or not partition.fresh:
            return

        delta = self.tracker.evaluate(
            location,
            partition.fresh,
            preferences.radius_miles,
            preferences.notifications_enabled,
        )
        result.delta = delta

        if delta.is_empty and not self.has_pending_retries and self._history_reconciled:
            return

        self._apply_delta(delta, partition.fresh, location, preferences, result)


def run_expiry_sweep(
    report_store: ReportStore,
    retention_ms: int,
    clock: Callable[[], int] = now_ms,
) -> SweepResult:
    """Delete every expired report in the collection.

    Used by the scheduled Cloud Function so stale reports disappear even
    when no session is open.

    Args:
        report_store: Report store to sweep
        retention_ms: Retention window in milliseconds
        clock: Returns the current time in epoch milliseconds

    Returns:
        SweepResult with details of what happened
    """
    reports = report_store.fetch_reports()
    if reports is None:
        return SweepResult(errors=["Failed to fetch reports"])

    partition = partition_expired(reports, clock(), retention_ms)
    result = SweepResult(reports_checked=len(reports))

    for report in partition.expired:
        if report_store.delete_report(report.id):
            result.deleted.append(report.id)
        else:
            result.errors.append(f"Failed to delete expired report {report.id}")

    logger.info("Expiry sweep: %s", result.summary)
    return result
