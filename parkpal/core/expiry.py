"""Report expiry logic - Pure functions.

Reports older than the retention window are stale: they are excluded from
membership and deleted from the store. This module only decides which
reports are expired; the deletion itself is done by the imperative shell.
"""

from dataclasses import dataclass, field

from parkpal.core.report import Report


# Reports are purged two hours after creation
DEFAULT_RETENTION_MS = 2 * 60 * 60 * 1000


@dataclass(frozen=True)
class ExpiryPartition:
    """Reports split by freshness.

    Attributes:
        fresh: Reports still inside the retention window
        expired: Reports past the retention window
    """
    fresh: list[Report] = field(default_factory=list)
    expired: list[Report] = field(default_factory=list)

    @property
    def expired_ids(self) -> set[str]:
        """IDs of expired reports."""
        return {r.id for r in self.expired}


def is_expired(
    report: Report,
    now_ms: int,
    retention_ms: int = DEFAULT_RETENTION_MS,
) -> bool:
    """Check if a report is past the retention window.

    Pure function.

    A report without a timestamp never expires.

    Args:
        report: Report to check
        now_ms: Current time in epoch milliseconds
        retention_ms: Retention window in milliseconds

    Returns:
        True if now - timestamp exceeds the retention window
    """
    if report.timestamp is None:
        return False
    return now_ms - report.timestamp > retention_ms


def partition_expired(
    reports: list[Report],
    now_ms: int,
    retention_ms: int = DEFAULT_RETENTION_MS,
) -> ExpiryPartition:
    """Split reports into fresh and expired.

    Pure function. Input order is preserved in both lists.

    Args:
        reports: Full live report set
        now_ms: Current time in epoch milliseconds
        retention_ms: Retention window in milliseconds

    Returns:
        ExpiryPartition with fresh and expired reports
    """
    fresh = []
    expired = []

    for report in reports:
        if is_expired(report, now_ms, retention_ms):
            expired.append(report)
        else:
            fresh.append(report)

    return ExpiryPartition(fresh=fresh, expired=expired)


def select_deletions_to_request(
    expired_ids: set[str],
    already_requested: set[str],
) -> set[str]:
    """Determine which expired reports still need a deletion request.

    Pure function.

    Snapshots can keep delivering an expired report until its deletion
    propagates; each report is only requested once.

    Args:
        expired_ids: IDs expired in the current snapshot
        already_requested: IDs whose deletion was already requested

    Returns:
        IDs to request deletion for now
    """
    return expired_ids - already_requested


def prune_requested(
    already_requested: set[str],
    snapshot_ids: set[str],
) -> set[str]:
    """Forget requested deletions that have left the snapshot.

    Pure function. Keeps the requested set bounded by the live collection.

    Args:
        already_requested: IDs whose deletion was already requested
        snapshot_ids: IDs present in the current snapshot

    Returns:
        Requested IDs that are still present in the snapshot
    """
    return already_requested & snapshot_ids
