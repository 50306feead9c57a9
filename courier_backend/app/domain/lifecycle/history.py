"""
History derivation for package updates.

The diff between the record before and after an update decides which
history entry (if any) to append. Value equality counts, not the presence
of a field in the request.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional
from courier_backend.app.models.enums import UserRole
from courier_backend.app.models.package_enums import PackageStatus


@dataclass(frozen=True)
class PackageSnapshot:
    """The audited part of a package: its status and where it is."""
    status: PackageStatus
    location: str


@dataclass(frozen=True)
class HistoryDraft:
    """A history entry computed from a diff, not yet persisted."""
    status: PackageStatus
    location: str
    description: str
    timestamp: datetime


def initial_entry(snapshot: PackageSnapshot, now: Optional[datetime] = None) -> HistoryDraft:
    return HistoryDraft(
        status=snapshot.status,
        location=snapshot.location,
        description=f"Package created with status: {snapshot.status.value}",
        timestamp=now or datetime.now(timezone.utc),
    )


def derive_history_entries(
    before: PackageSnapshot,
    after: PackageSnapshot,
    actor_role: UserRole,
    now: Optional[datetime] = None,
) -> List[HistoryDraft]:
    """
    Compute the history entries produced by moving from `before` to `after`.
    
    A status change yields one entry carrying the new status and the
    (possibly new) location. A location-only change yields one entry with
    the unchanged status. Anything else yields nothing.
    """
    now = now or datetime.now(timezone.utc)
    
    if after.status != before.status:
        return [HistoryDraft(
            status=after.status,
            location=after.location,
            description=f"Status updated to {after.status.value} by {actor_role.value}.",
            timestamp=now,
        )]
    
    if after.location != before.location:
        return [HistoryDraft(
            status=after.status,
            location=after.location,
            description=f"Location updated to {after.location} by {actor_role.value}.",
            timestamp=now,
        )]
    
    return []
