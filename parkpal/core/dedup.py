"""Notification deduplication logic - Pure functions.

This module decides which membership changes turn into new notifications
and which history records get retracted. All functions are pure with no
side effects.

Note: The actual persistence of history records is handled by the
imperative shell (history store). This module only contains the pure logic.
"""

from dataclasses import dataclass, field
from typing import Any

from parkpal.core.membership import MembershipDelta
from parkpal.core.report import parse_timestamp


@dataclass(frozen=True)
class HistoryRecord:
    """A notification history entry.

    Attributes:
        id: Store-assigned record ID
        title: Notification title
        body: Notification body
        report_id: Report that triggered the notification
        timestamp: Creation time in epoch milliseconds
    """
    id: str
    title: str
    body: str
    report_id: str
    timestamp: int


@dataclass(frozen=True)
class NotificationPlan:
    """Side effects to perform for one evaluation.

    Attributes:
        to_notify: Report IDs that need a history record and a push
        to_retract: Report ID -> history record ID to delete
    """
    to_notify: frozenset[str] = field(default_factory=frozenset)
    to_retract: dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """True if there is nothing to do."""
        return not self.to_notify and not self.to_retract


def parse_history_record(record_id: str, data: dict[str, Any] | None) -> HistoryRecord | None:
    """Parse a history document into a HistoryRecord.

    Pure function.

    Args:
        record_id: Document ID
        data: Document fields

    Returns:
        HistoryRecord or None if the report reference is missing
    """
    if not record_id or not isinstance(data, dict):
        return None

    report_id = data.get("reportId")
    if not report_id:
        return None

    return HistoryRecord(
        id=record_id,
        title=str(data.get("title", "")),
        body=str(data.get("body", "")),
        report_id=str(report_id),
        timestamp=parse_timestamp(data.get("timestamp")) or 0,
    )


def sort_newest_first(records: list[HistoryRecord]) -> list[HistoryRecord]:
    """Sort history records by timestamp, newest first.

    Pure function.
    """
    return sorted(records, key=lambda r: r.timestamp, reverse=True)


def build_history_index(records: list[HistoryRecord]) -> dict[str, str]:
    """Build a report ID -> history record ID index.

    Pure function. If several records reference one report, the newest wins.

    Args:
        records: History records of one user

    Returns:
        Mapping of report ID to history record ID
    """
    index: dict[str, str] = {}
    for record in sort_newest_first(records):
        index.setdefault(record.report_id, record.id)
    return index


def plan_notifications(
    delta: MembershipDelta,
    history_index: dict[str, str],
    membership: frozenset[str] = frozenset(),
    retry_entries: frozenset[str] = frozenset(),
    retry_exits: frozenset[str] = frozenset(),
    reconcile: bool = False,
) -> NotificationPlan:
    """Decide which notifications to send and which records to retract.

    Pure function.

    Entered reports already referenced by a history record are skipped, so
    a report never gets a second record or push while it stays in range.
    Entries whose record write failed earlier are retried while the report
    is still a member; failed retractions are retried once it is not.
    With reconcile set, every indexed record whose report is not a member
    is retracted, which clears records left over from an earlier session.

    Args:
        delta: Membership change from the tracker
        history_index: Report ID -> history record ID
        membership: Current membership after the evaluation
        retry_entries: Report IDs whose record creation failed earlier
        retry_exits: Report IDs whose record deletion failed earlier
        reconcile: Treat the history index as state to bring in line with
            the current membership

    Returns:
        NotificationPlan with reports to notify and records to retract
    """
    candidates = delta.entered | (retry_entries & membership)
    to_notify = frozenset(rid for rid in candidates if rid not in history_index)

    leaving = delta.left | (retry_exits - membership)
    if reconcile:
        leaving |= history_index.keys() - membership
    to_retract = {
        rid: history_index[rid]
        for rid in sorted(leaving)
        if rid in history_index
    }

    return NotificationPlan(to_notify=to_notify, to_retract=to_retract)
