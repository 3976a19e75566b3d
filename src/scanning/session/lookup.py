"""Read helpers over the session store."""

from datetime import datetime

from protean.utils.globals import current_domain

from scanning.barcode.kanban import normalize_part_number
from scanning.session.session import ScanSession, WorkflowKind, make_active_key


def find_open_session(kind: WorkflowKind, anchor_key: str) -> ScanSession | None:
    """The active or draft session holding an anchor, if any."""
    repo = current_domain.repository_for(ScanSession)
    matches = repo._dao.query.filter(active_key=make_active_key(kind, anchor_key)).all().items
    return matches[0] if matches else None


def serial_last_seen(part_number: str, serial_number: str, since: datetime) -> datetime | None:
    """Latest time an internal kanban serial of a part was scanned in any build session."""
    repo = current_domain.repository_for(ScanSession)
    sessions = repo._dao.query.filter(
        workflow_kind=WorkflowKind.BUILD.value,
        updated_at__gte=since,
    ).limit(None).all().items
    wanted = normalize_part_number(part_number)
    seen = [
        scan.scanned_at
        for session in sessions
        for scan in session.scans
        if scan.internal_kanban_serial == serial_number
        and normalize_part_number(scan.part_number) == wanted
        and scan.scanned_at >= since
    ]
    return max(seen) if seen else None
