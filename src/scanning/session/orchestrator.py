"""Session orchestrator — the façade the scanner API talks to.

Every operation is one command processed synchronously through the domain;
the orchestrator turns handler results and expected failures into typed
views. Two things happen here rather than in a handler:

- Losing a race to open a session for the same anchor surfaces as a unique
  constraint failure on ``active_key``; the loser re-reads the store and
  resumes the winner's session.
- A concurrent scan on the same session fails the aggregate version check;
  the scan is replayed against the fresh session state.
"""

from dataclasses import dataclass, field
from datetime import datetime

import structlog
from protean.exceptions import ExpectedVersionError, TransactionError, ValidationError
from protean.utils.globals import current_domain

from scanning.barcode.manifest import decode_manifest
from scanning.errors import RejectionReason, ScanRejectedError
from scanning.ledger.lookup import exceptions_for_session
from scanning.ledger.recording import AddException, RemoveException
from scanning.plan import get_plan_repository
from scanning.session.completion import CompleteSession
from scanning.session.lifecycle import (
    CancelSession,
    RestartSession,
    SaveDraft,
    StartOrResumeSession,
    UpdateTrailerInfo,
)
from scanning.session.lookup import find_open_session
from scanning.session.policies import BuildAnchor, LoadAnchor, PreShipmentAnchor, load_anchor_key
from scanning.session.recording import RecordScan
from scanning.session.session import ScanSession, WorkflowKind

logger = structlog.get_logger(__name__)

MAX_SCAN_ATTEMPTS = 3


@dataclass(frozen=True)
class SessionView:
    session_id: str
    workflow_kind: str
    status: str
    anchor_key: str
    operator_id: str | None
    is_resumed: bool = False
    order_number: str | None = None
    dock_code: str | None = None
    route: str | None = None
    supplier_code: str | None = None
    pickup_at: datetime | None = None
    created_via: str | None = None
    confirmation_number: str | None = None
    current_screen: int | None = None
    draft_data: str | None = None
    trailer: dict | None = None
    scans: list[dict] = field(default_factory=list)
    exceptions: list[dict] = field(default_factory=list)

    @classmethod
    def from_session(cls, session: ScanSession, exceptions, is_resumed: bool = False) -> "SessionView":
        return cls(
            session_id=str(session.id),
            workflow_kind=session.workflow_kind,
            status=session.status,
            anchor_key=session.anchor_key,
            operator_id=session.operator_id,
            is_resumed=is_resumed,
            order_number=session.order_number,
            dock_code=session.dock_code,
            route=session.route,
            supplier_code=session.supplier_code,
            pickup_at=session.pickup_at,
            created_via=session.created_via,
            confirmation_number=session.confirmation_number,
            current_screen=session.current_screen,
            draft_data=session.draft_data,
            trailer=session.trailer.to_dict() if session.trailer else None,
            scans=[
                {
                    "scan_id": str(s.id),
                    "order_id": str(s.order_id) if s.order_id else None,
                    "order_number": s.order_number,
                    "planned_item_id": str(s.planned_item_id) if s.planned_item_id else None,
                    "planned_skid_id": str(s.planned_skid_id) if s.planned_skid_id else None,
                    "part_number": s.part_number,
                    "kanban_number": s.kanban_number,
                    "skid_number": s.skid_number,
                    "skid_side": s.skid_side,
                    "box_number": s.box_number,
                    "palletization_code": s.palletization_code,
                    "internal_kanban_serial": s.internal_kanban_serial,
                    "skid_cut": bool(s.skid_cut),
                    "scanned_at": s.scanned_at,
                    "scanned_by": s.scanned_by,
                }
                for s in sorted(session.scans, key=lambda s: s.scanned_at)
            ],
            exceptions=[
                {
                    "exception_id": str(e.id),
                    "order_id": str(e.order_id),
                    "order_number": e.order_number,
                    "code": e.code,
                    "level": e.level,
                    "related_skid_id": e.related_skid_id,
                    "comments": e.comments,
                    "created_by": e.created_by,
                    "created_at": e.created_at,
                }
                for e in exceptions
            ],
        )


@dataclass(frozen=True)
class ScanOutcome:
    accepted: bool
    session_id: str
    scan_id: str | None = None
    reason: RejectionReason | None = None
    message: str = ""
    order_number: str | None = None
    scanned_count: int = 0
    total_count: int = 0
    is_complete: bool = False

    @property
    def remaining_count(self) -> int:
        return max(self.total_count - self.scanned_count, 0)


@dataclass(frozen=True)
class CompletionResult:
    session_id: str
    confirmation_number: str
    order_ids: list[str]


class SessionOrchestrator:
    """Runs the scan-session workflows for build, load and pre-shipment."""

    def _process(self, command):
        return current_domain.process(command, asynchronous=False)

    def _view(self, session_id: str, is_resumed: bool = False) -> SessionView:
        session = current_domain.repository_for(ScanSession).get(session_id)
        return SessionView.from_session(session, exceptions_for_session(session_id), is_resumed=is_resumed)

    def get(self, session_id: str) -> SessionView:
        return self._view(str(session_id))

    # -------------------------------------------------------------------
    # Start / resume
    # -------------------------------------------------------------------
    def start_or_resume(self, anchor, operator_id: str) -> SessionView:
        """Open the session for an anchor, or resume the one already open.

        ``anchor`` is a ``BuildAnchor``, ``LoadAnchor`` or ``PreShipmentAnchor``.
        """
        if isinstance(anchor, BuildAnchor):
            kind = WorkflowKind.BUILD
            command = StartOrResumeSession(
                workflow_kind=kind.value,
                operator_id=operator_id,
                order_number=anchor.order_number,
                dock_code=anchor.dock_code,
            )
        elif isinstance(anchor, LoadAnchor):
            kind = WorkflowKind.LOAD
            command = StartOrResumeSession(
                workflow_kind=kind.value,
                operator_id=operator_id,
                route=anchor.route,
                supplier_code=anchor.supplier_code,
                pickup_at=anchor.pickup_at,
            )
        elif isinstance(anchor, PreShipmentAnchor):
            kind = WorkflowKind.PRE_SHIPMENT
            command = StartOrResumeSession(workflow_kind=kind.value, operator_id=operator_id, manifest=anchor.manifest)
        else:
            raise ValueError(f"Unsupported anchor: {anchor!r}")

        try:
            result = self._process(command)
        except (ValidationError, TransactionError) as exc:
            winner = self._race_winner(kind, anchor)
            if winner is None:
                raise
            logger.info(
                "Session start lost race; resuming existing session",
                session_id=str(winner.id),
                workflow_kind=kind.value,
                error=str(exc),
            )
            return self._view(str(winner.id), is_resumed=True)

        return self._view(result["session_id"], is_resumed=result["is_resumed"])

    def _race_winner(self, kind: WorkflowKind, anchor) -> ScanSession | None:
        if isinstance(anchor, BuildAnchor):
            order = get_plan_repository().get_order(anchor.order_number, anchor.dock_code)
            if order is None:
                return None
            anchor_key = f"{order.order_number}|{order.dock_code}"
        elif isinstance(anchor, LoadAnchor):
            anchor_key = load_anchor_key(anchor.route, anchor.supplier_code, anchor.pickup_at)
        else:
            try:
                manifest = decode_manifest(anchor.manifest)
            except ValidationError:
                return None
            order = get_plan_repository().get_order(manifest.order_number, manifest.dock_code)
            if order is None or not order.route or order.planned_pickup is None:
                return None
            anchor_key = load_anchor_key(order.route, order.supplier_code, order.planned_pickup)
        return find_open_session(kind, anchor_key)

    # -------------------------------------------------------------------
    # Scanning
    # -------------------------------------------------------------------
    def record_scan(
        self,
        session_id: str,
        manifest: str | None = None,
        kanban: str | None = None,
        internal_kanban: str | None = None,
        skid_cut: bool = False,
        operator_id: str | None = None,
    ) -> ScanOutcome:
        """Validate and record one scan.

        Decode failures raise ``DecodeError``; validation failures come back as
        an outcome with ``accepted=False`` and a reason.
        """
        command = RecordScan(
            session_id=session_id,
            manifest=manifest,
            kanban=kanban,
            internal_kanban=internal_kanban or None,
            skid_cut=skid_cut,
            scanned_by=operator_id,
        )
        for attempt in range(1, MAX_SCAN_ATTEMPTS + 1):
            try:
                result = self._process(command)
                break
            except ScanRejectedError as exc:
                return ScanOutcome(
                    accepted=False,
                    session_id=str(session_id),
                    reason=exc.reason,
                    message=exc.message,
                    order_number=exc.order_number,
                    scanned_count=exc.scanned_count,
                    total_count=exc.total_count,
                )
            except ExpectedVersionError:
                if attempt == MAX_SCAN_ATTEMPTS:
                    raise
                logger.info("Concurrent scan on session; retrying", session_id=str(session_id), attempt=attempt)

        return ScanOutcome(
            accepted=True,
            session_id=result["session_id"],
            scan_id=result["scan_id"],
            order_number=result["order_number"],
            scanned_count=result["scanned_count"],
            total_count=result["total_count"],
            is_complete=result["is_complete"],
        )

    # -------------------------------------------------------------------
    # Exceptions
    # -------------------------------------------------------------------
    def add_exception(
        self,
        order_id: str,
        code: str,
        session_id: str | None = None,
        related_skid_id: str | None = None,
        comments: str | None = None,
        created_by: str | None = None,
        exception_id: str | None = None,
    ) -> str:
        return self._process(
            AddException(
                exception_id=exception_id,
                order_id=order_id,
                code=code,
                session_id=session_id,
                related_skid_id=related_skid_id,
                comments=comments,
                created_by=created_by,
            )
        )

    def remove_exception(self, exception_id: str) -> bool:
        return self._process(RemoveException(exception_id=exception_id))

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def update_trailer_info(self, session_id: str, **trailer_fields) -> SessionView:
        self._process(UpdateTrailerInfo(session_id=session_id, **trailer_fields))
        return self._view(str(session_id))

    def save_draft(self, session_id: str, draft_data: str | None = None, current_screen: int | None = None) -> SessionView:
        self._process(SaveDraft(session_id=session_id, draft_data=draft_data, current_screen=current_screen))
        return self._view(str(session_id))

    def complete(self, session_id: str, operator_id: str | None = None) -> CompletionResult:
        """Submit to the carrier; raises ``CarrierSubmissionError`` if it does not confirm."""
        result = self._process(CompleteSession(session_id=session_id, completed_by=operator_id))
        return CompletionResult(
            session_id=result["session_id"],
            confirmation_number=result["confirmation_number"],
            order_ids=list(result["order_ids"]),
        )

    def restart(self, session_id: str) -> SessionView:
        self._process(RestartSession(session_id=session_id))
        return self._view(str(session_id))

    def cancel(self, session_id: str, reason: str | None = None) -> SessionView:
        self._process(CancelSession(session_id=session_id, reason=reason))
        return self._view(str(session_id))
