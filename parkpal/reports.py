"""Report Service - Submitting and modifying parking reports.

Applies the core reporting rules (placement distance, who may toggle or
delete) before writing through the report store, and keeps the reporter's
analytics counters in step with their submissions.
"""

import logging
from dataclasses import dataclass

from parkpal.core.config import Config
from parkpal.core.report import Report, UserLocation, report_to_document
from parkpal.core.reporting import (
    AnalyticsCounters,
    can_delete_report,
    can_toggle_report,
    counter_delta,
    validate_report_location,
)
from parkpal.core.session import Session
from parkpal.shell.report_store import ReportStore


logger = logging.getLogger(__name__)


class ReportPermissionError(Exception):
    """Raised when a user may not modify a report."""


@dataclass
class SubmitResult:
    """Result of submitting a report.

    Attributes:
        report_id: New report ID (None if the write failed)
        counters_updated: Whether the reporter's analytics were incremented
        error: Error message if failed
    """
    report_id: str | None
    counters_updated: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.report_id is not None


class ReportService:
    """Creates, toggles and deletes reports on behalf of a user."""

    def __init__(self, config: Config, report_store: ReportStore | None = None) -> None:
        """Initialize report service.

        Args:
            config: Application configuration
            report_store: Report store (created if not provided)
        """
        self.config = config
        self.report_store = report_store or ReportStore(
            collection=config.reports_collection,
            users_collection=config.users_collection,
        )

    def submit_report(
        self,
        session: Session,
        location: UserLocation | None,
        latitude: float,
        longitude: float,
        is_available: bool,
    ) -> SubmitResult:
        """Report a spot as open or taken.

        Args:
            session: Reporting user
            location: Reporter's live position
            latitude: Spot latitude
            longitude: Spot longitude
            is_available: True if the spot is open

        Returns:
            SubmitResult with the new report ID

        Raises:
            ValueError: If the spot is too far from the reporter or invalid
        """
        error = validate_report_location(
            location,
            latitude,
            longitude,
            self.config.report_max_distance_miles,
        )
        if error:
            raise ValueError(error)

        fields = report_to_document(Report(
            id="",
            latitude=latitude,
            longitude=longitude,
            is_available=is_available,
            reporter_id=session.user_id,
        ))

        report_id = self.report_store.create_report(fields)
        if report_id is None:
            return SubmitResult(report_id=None, error="Failed to save report")

        counters_updated = self.report_store.increment_analytics_counters(
            session,
            counter_delta(is_available),
        )
        if not counters_updated:
            logger.warning("Report %s saved but analytics not updated", report_id)

        logger.info(
            "%s reported spot %s as %s",
            session.user_id,
            report_id,
            "available" if is_available else "unavailable",
        )
        return SubmitResult(report_id=report_id, counters_updated=counters_updated)

    def _load(self, report_id: str) -> Report:
        report = self.report_store.get_report(report_id)
        if report is None:
            raise LookupError(f"Report {report_id} not found")
        return report

    def toggle_availability(self, session: Session, report_id: str) -> bool:
        """Flip a report between available and unavailable.

        Returns:
            True if the update was applied

        Raises:
            LookupError: If the report doesn't exist
            ReportPermissionError: If the user may not modify it
        """
        report = self._load(report_id)
        if not can_toggle_report(session, report):
            raise ReportPermissionError(f"{session.user_id} may not modify report {report_id}")

        return self.report_store.update_report(
            report_id,
            {"isAvailable": not report.is_available},
        )

    def delete_report(self, session: Session, report_id: str) -> bool:
        """Delete a report.

        Returns:
            True if the report no longer exists

        Raises:
            LookupError: If the report doesn't exist
            ReportPermissionError: If the user may not delete it
        """
        report = self._load(report_id)
        if not can_delete_report(session, report, self.config.allow_any_user_delete):
            raise ReportPermissionError(f"{session.user_id} may not delete report {report_id}")

        return self.report_store.delete_report(report_id)

    def get_analytics(self, session: Session) -> AnalyticsCounters:
        """Read a user's report counters (zeros if unreadable)."""
        return self.report_store.get_analytics_counters(session) or AnalyticsCounters()
