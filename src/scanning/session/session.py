"""ScanSession aggregate (CQRS) — one operator pass over an order or a truck.

The same state machine serves all three workflows. ``workflow_kind`` says
what the session is anchored to; everything kind-specific lives in the
workflow policies.

State Machine:
    ACTIVE → COMPLETED          (carrier confirmed the submission)
    ACTIVE → CANCELLED          (explicit)
    ACTIVE → ACTIVE             (restart: scans, exceptions and trailer cleared)
    ACTIVE ⇄ DRAFT              (draft save / resume)
    DRAFT  → CANCELLED

``active_key`` is unique in the store and only set while the session is open
(ACTIVE or DRAFT), so the store admits a single open session per anchor and
workflow kind.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from scanning.domain import scanning
from scanning.errors import SessionNotActiveError
from scanning.session.events import (
    ScanRecorded,
    SessionCancelled,
    SessionCompleted,
    SessionDraftSaved,
    SessionRestarted,
    SessionResumed,
    SessionStarted,
    TrailerInfoUpdated,
)


class WorkflowKind(Enum):
    BUILD = "build"
    LOAD = "load"
    PRE_SHIPMENT = "pre_shipment"


class SessionStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DRAFT = "draft"


_VALID_TRANSITIONS = {
    SessionStatus.ACTIVE: {
        SessionStatus.ACTIVE,
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
        SessionStatus.DRAFT,
    },
    SessionStatus.DRAFT: {SessionStatus.ACTIVE, SessionStatus.CANCELLED},
    SessionStatus.COMPLETED: set(),  # terminal
    SessionStatus.CANCELLED: set(),  # terminal
}

_OPEN_STATUSES = {SessionStatus.ACTIVE.value, SessionStatus.DRAFT.value}


def make_active_key(kind: WorkflowKind | str, anchor_key: str) -> str:
    kind_value = kind.value if isinstance(kind, WorkflowKind) else kind
    return f"{kind_value}:{anchor_key}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@scanning.value_object(part_of="ScanSession")
class TrailerInfo:
    """Trailer, seal and crew details captured before a truck leaves."""

    trailer_number = String(max_length=50)
    seal_number = String(max_length=50)
    lp_code = String(max_length=50)
    driver_first_name = String(max_length=100)
    driver_last_name = String(max_length=100)
    supplier_first_name = String(max_length=100)
    supplier_last_name = String(max_length=100)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@scanning.entity(part_of="ScanSession")
class ScanRecord:
    """A single accepted scan."""

    order_id = Identifier()
    order_number = String(max_length=20)
    planned_item_id = Identifier()
    planned_skid_id = Identifier()
    part_number = String(max_length=20)
    kanban_number = String(max_length=10)
    skid_number = String(max_length=3)
    skid_side = String(max_length=1)
    box_number = Integer()
    palletization_code = String(max_length=2)
    line_side_address = String(max_length=20)
    internal_kanban = String(max_length=100)
    internal_kanban_serial = String(max_length=50)
    skid_cut = Boolean(default=False)
    scanned_at = DateTime(required=True)
    scanned_by = String(max_length=100)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@scanning.aggregate
class ScanSession:
    workflow_kind = String(required=True, choices=WorkflowKind)
    anchor_key = String(required=True, max_length=200)
    active_key = String(max_length=220, unique=True)
    status = String(choices=SessionStatus, default=SessionStatus.ACTIVE.value)
    operator_id = String(max_length=100)
    created_via = String(max_length=50)
    order_id = Identifier()
    order_number = String(max_length=20)
    dock_code = String(max_length=3)
    route = String(max_length=20)
    supplier_code = String(max_length=5)
    pickup_at = DateTime()
    trailer = ValueObject(TrailerInfo)
    confirmation_number = String(max_length=100)
    draft_data = Text()
    current_screen = Integer()
    scans = HasMany(ScanRecord)
    created_at = DateTime()
    updated_at = DateTime()
    completed_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def open(
        cls,
        kind: WorkflowKind,
        anchor_key: str,
        operator_id: str,
        created_via: str | None = None,
        order_id: str | None = None,
        order_number: str | None = None,
        dock_code: str | None = None,
        route: str | None = None,
        supplier_code: str | None = None,
        pickup_at: datetime | None = None,
    ):
        """Start a new active session for an anchor."""
        now = datetime.now(UTC)
        session = cls(
            workflow_kind=kind.value,
            anchor_key=anchor_key,
            active_key=make_active_key(kind, anchor_key),
            status=SessionStatus.ACTIVE.value,
            operator_id=operator_id,
            created_via=created_via,
            order_id=order_id,
            order_number=order_number,
            dock_code=dock_code,
            route=route,
            supplier_code=supplier_code,
            pickup_at=pickup_at,
            created_at=now,
            updated_at=now,
        )
        session.raise_(
            SessionStarted(
                session_id=str(session.id),
                workflow_kind=kind.value,
                anchor_key=anchor_key,
                operator_id=operator_id,
                order_id=order_id,
                route=route,
                started_at=now,
            )
        )
        return session

    # -------------------------------------------------------------------
    # State helpers
    # -------------------------------------------------------------------
    @property
    def kind(self) -> WorkflowKind:
        return WorkflowKind(self.workflow_kind)

    @property
    def is_open(self) -> bool:
        return self.status in _OPEN_STATUSES

    def assert_active(self) -> None:
        if self.status != SessionStatus.ACTIVE.value:
            raise SessionNotActiveError(str(self.id), self.status)

    def _assert_can_transition(self, target_status: SessionStatus) -> None:
        current = SessionStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise SessionNotActiveError(str(self.id), self.status)

    def scans_for_item(self, planned_item_id: str) -> list[ScanRecord]:
        return [s for s in self.scans if str(s.planned_item_id) == str(planned_item_id)]

    def scans_for_order(self, order_id: str) -> list[ScanRecord]:
        return [s for s in self.scans if str(s.order_id) == str(order_id)]

    def scanned_order_ids(self) -> list[str]:
        seen: list[str] = []
        for scan in self.scans:
            if scan.order_id and str(scan.order_id) not in seen:
                seen.append(str(scan.order_id))
        return seen

    # -------------------------------------------------------------------
    # Scanning
    # -------------------------------------------------------------------
    def record_scan(self, scanned_by: str | None = None, **fields) -> ScanRecord:
        """Append an accepted scan. Validation happens before this call."""
        self.assert_active()
        now = datetime.now(UTC)
        record = ScanRecord(scanned_at=now, scanned_by=scanned_by or self.operator_id, **fields)
        self.add_scans(record)
        self.updated_at = now
        self.raise_(
            ScanRecorded(
                session_id=str(self.id),
                workflow_kind=self.workflow_kind,
                scan_id=str(record.id),
                order_id=record.order_id,
                planned_item_id=record.planned_item_id,
                planned_skid_id=record.planned_skid_id,
                skid_number=record.skid_number,
                box_number=record.box_number,
                scanned_at=now,
            )
        )
        return record

    # -------------------------------------------------------------------
    # Trailer
    # -------------------------------------------------------------------
    def update_trailer(self, **trailer_fields) -> None:
        self.assert_active()
        if self.kind == WorkflowKind.BUILD:
            raise ValidationError({"workflow_kind": ["Trailer details only apply to load and pre-shipment sessions"]})
        current = self.trailer.to_dict() if self.trailer else {}
        current.update({k: v for k, v in trailer_fields.items() if v is not None})
        if not current.get("trailer_number"):
            raise ValidationError({"trailer_number": ["Trailer number is required"]})
        now = datetime.now(UTC)
        self.trailer = TrailerInfo(**current)
        self.updated_at = now
        self.raise_(
            TrailerInfoUpdated(
                session_id=str(self.id),
                trailer_number=self.trailer.trailer_number,
                seal_number=self.trailer.seal_number,
                updated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def complete(self, confirmation_number: str, order_ids: list[str], completed_by: str | None = None) -> None:
        """Close the session after the carrier confirmed the submission."""
        self._assert_can_transition(SessionStatus.COMPLETED)
        now = datetime.now(UTC)
        self.status = SessionStatus.COMPLETED.value
        self.confirmation_number = confirmation_number
        self.active_key = None
        self.completed_at = now
        self.updated_at = now
        self.raise_(
            SessionCompleted(
                session_id=str(self.id),
                workflow_kind=self.workflow_kind,
                confirmation_number=confirmation_number,
                order_ids=json.dumps(order_ids),
                completed_by=completed_by or self.operator_id,
                completed_at=now,
            )
        )

    def cancel(self, reason: str | None = None) -> None:
        self._assert_can_transition(SessionStatus.CANCELLED)
        now = datetime.now(UTC)
        self.status = SessionStatus.CANCELLED.value
        self.active_key = None
        self.updated_at = now
        self.raise_(
            SessionCancelled(
                session_id=str(self.id),
                workflow_kind=self.workflow_kind,
                reason=reason or "",
                cancelled_at=now,
            )
        )

    def restart(self) -> int:
        """Discard every scan and the trailer details; the session id is kept."""
        self.assert_active()
        self._assert_can_transition(SessionStatus.ACTIVE)
        discarded = len(self.scans)
        if self.scans:
            self.remove_scans(list(self.scans))
        now = datetime.now(UTC)
        self.trailer = None
        self.draft_data = None
        self.current_screen = None
        self.confirmation_number = None
        self.updated_at = now
        self.raise_(
            SessionRestarted(
                session_id=str(self.id),
                workflow_kind=self.workflow_kind,
                order_id=self.order_id,
                discarded_scans=discarded,
                restarted_at=now,
            )
        )
        return discarded

    def save_draft(self, draft_data: str | None = None, current_screen: int | None = None) -> None:
        self.assert_active()
        self._assert_can_transition(SessionStatus.DRAFT)
        now = datetime.now(UTC)
        self.status = SessionStatus.DRAFT.value
        self.draft_data = draft_data
        self.current_screen = current_screen
        self.updated_at = now
        self.raise_(SessionDraftSaved(session_id=str(self.id), current_screen=current_screen, saved_at=now))

    def resume(self, operator_id: str | None = None) -> None:
        """Reopen a draft session for scanning."""
        if self.status == SessionStatus.ACTIVE.value:
            return
        self._assert_can_transition(SessionStatus.ACTIVE)
        now = datetime.now(UTC)
        self.status = SessionStatus.ACTIVE.value
        if operator_id:
            self.operator_id = operator_id
        self.updated_at = now
        self.raise_(SessionResumed(session_id=str(self.id), operator_id=self.operator_id, resumed_at=now))
