"""Scan session domain events — immutable facts about session state changes.

All events are past tense and versioned. Order progress and the exception
ledger react to them through event handlers.
"""

from protean.fields import DateTime, Identifier, Integer, String, Text

from scanning.domain import scanning


@scanning.event(part_of="ScanSession")
class SessionStarted:
    """An operator opened a new session for an anchor."""

    __version__ = 1

    session_id = Identifier(required=True)
    workflow_kind = String(required=True)
    anchor_key = String(required=True)
    operator_id = String()
    order_id = Identifier()
    route = String()
    started_at = DateTime(required=True)


@scanning.event(part_of="ScanSession")
class ScanRecorded:
    """A scan passed validation and was recorded."""

    __version__ = 1

    session_id = Identifier(required=True)
    workflow_kind = String(required=True)
    scan_id = Identifier(required=True)
    order_id = Identifier()
    planned_item_id = Identifier()
    planned_skid_id = Identifier()
    skid_number = String()
    box_number = Integer()
    scanned_at = DateTime(required=True)


@scanning.event(part_of="ScanSession")
class TrailerInfoUpdated:
    """Trailer and seal details were captured for a load."""

    __version__ = 1

    session_id = Identifier(required=True)
    trailer_number = String(required=True)
    seal_number = String()
    updated_at = DateTime(required=True)


@scanning.event(part_of="ScanSession")
class SessionCompleted:
    """The carrier confirmed the session's submission."""

    __version__ = 1

    session_id = Identifier(required=True)
    workflow_kind = String(required=True)
    confirmation_number = String(required=True)
    order_ids = Text(required=True)  # JSON list of order id strings
    completed_by = String()
    completed_at = DateTime(required=True)


@scanning.event(part_of="ScanSession")
class SessionCancelled:
    """The operator abandoned the session."""

    __version__ = 1

    session_id = Identifier(required=True)
    workflow_kind = String(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)


@scanning.event(part_of="ScanSession")
class SessionRestarted:
    """All scans of the session were discarded so scanning can start over."""

    __version__ = 1

    session_id = Identifier(required=True)
    workflow_kind = String(required=True)
    order_id = Identifier()
    discarded_scans = Integer(required=True)
    restarted_at = DateTime(required=True)


@scanning.event(part_of="ScanSession")
class SessionDraftSaved:
    """The session was parked as a draft."""

    __version__ = 1

    session_id = Identifier(required=True)
    current_screen = Integer()
    saved_at = DateTime(required=True)


@scanning.event(part_of="ScanSession")
class SessionResumed:
    """A draft session was reopened."""

    __version__ = 1

    session_id = Identifier(required=True)
    operator_id = String()
    resumed_at = DateTime(required=True)
