"""Session lifecycle commands — start/resume, trailer details, draft, restart, cancel."""

import structlog
from protean import handle
from protean.exceptions import InvalidStateError, ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from scanning.domain import scanning
from scanning.plan import get_plan_repository
from scanning.session.lookup import find_open_session
from scanning.session.policies import BuildAnchor, LoadAnchor, PreShipmentAnchor, policy_for
from scanning.session.session import ScanSession, SessionStatus, WorkflowKind

logger = structlog.get_logger(__name__)


@scanning.command(part_of="ScanSession")
class StartOrResumeSession:
    """Open the session for an anchor, or hand back the one already open."""

    workflow_kind = String(required=True, max_length=20)
    operator_id = String(required=True, max_length=100)
    # build
    order_number = String(max_length=20)
    dock_code = String(max_length=3)
    # load
    route = String(max_length=20)
    supplier_code = String(max_length=5)
    pickup_at = DateTime()
    # pre-shipment
    manifest = String(max_length=100, sanitize=False)


@scanning.command(part_of="ScanSession")
class UpdateTrailerInfo:
    session_id = Identifier(required=True)
    trailer_number = String(max_length=50)
    seal_number = String(max_length=50)
    lp_code = String(max_length=50)
    driver_first_name = String(max_length=100)
    driver_last_name = String(max_length=100)
    supplier_first_name = String(max_length=100)
    supplier_last_name = String(max_length=100)


@scanning.command(part_of="ScanSession")
class SaveDraft:
    session_id = Identifier(required=True)
    draft_data = Text()
    current_screen = Integer()


@scanning.command(part_of="ScanSession")
class RestartSession:
    session_id = Identifier(required=True)


@scanning.command(part_of="ScanSession")
class CancelSession:
    session_id = Identifier(required=True)
    reason = String(max_length=500)


def _anchor_from(command):
    kind = WorkflowKind(command.workflow_kind)
    if kind == WorkflowKind.BUILD:
        if not command.order_number or not command.dock_code:
            raise ValidationError({"anchor": ["Build sessions need an order number and a dock code"]})
        return BuildAnchor(order_number=command.order_number.strip(), dock_code=command.dock_code.strip())
    if kind == WorkflowKind.LOAD:
        if not command.route or not command.supplier_code or command.pickup_at is None:
            raise ValidationError({"anchor": ["Load sessions need a route, a supplier code and a pickup time"]})
        return LoadAnchor(route=command.route, supplier_code=command.supplier_code, pickup_at=command.pickup_at)
    if not command.manifest:
        raise ValidationError({"anchor": ["Pre-shipment sessions start from a manifest scan"]})
    return PreShipmentAnchor(manifest=command.manifest)


@scanning.command_handler(part_of=ScanSession)
class SessionLifecycleHandler:
    @handle(StartOrResumeSession)
    def start_or_resume(self, command):
        kind = WorkflowKind(command.workflow_kind)
        policy = policy_for(kind)
        resolution = policy.resolve_anchor(_anchor_from(command), get_plan_repository())
        repo = current_domain.repository_for(ScanSession)

        existing = find_open_session(kind, resolution.anchor_key)
        if existing is not None:
            if existing.status == SessionStatus.DRAFT.value:
                existing.resume(command.operator_id)
                repo.add(existing)
            logger.info(
                "Session resumed",
                session_id=str(existing.id),
                workflow_kind=kind.value,
                anchor_key=resolution.anchor_key,
            )
            return {"session_id": str(existing.id), "is_resumed": True}

        session = ScanSession.open(
            kind=kind,
            anchor_key=resolution.anchor_key,
            operator_id=command.operator_id,
            **resolution.session_fields,
        )
        repo.add(session)
        logger.info(
            "Session started",
            session_id=str(session.id),
            workflow_kind=kind.value,
            anchor_key=resolution.anchor_key,
            operator_id=command.operator_id,
        )
        return {"session_id": str(session.id), "is_resumed": False}

    @handle(UpdateTrailerInfo)
    def update_trailer_info(self, command):
        repo = current_domain.repository_for(ScanSession)
        session = repo.get(command.session_id)
        session.update_trailer(
            trailer_number=command.trailer_number,
            seal_number=command.seal_number,
            lp_code=command.lp_code,
            driver_first_name=command.driver_first_name,
            driver_last_name=command.driver_last_name,
            supplier_first_name=command.supplier_first_name,
            supplier_last_name=command.supplier_last_name,
        )
        repo.add(session)
        logger.info("Trailer info updated", session_id=str(session.id), trailer_number=session.trailer.trailer_number)
        return str(session.id)

    @handle(SaveDraft)
    def save_draft(self, command):
        repo = current_domain.repository_for(ScanSession)
        session = repo.get(command.session_id)
        session.save_draft(command.draft_data, command.current_screen)
        repo.add(session)
        logger.info("Session saved as draft", session_id=str(session.id), current_screen=command.current_screen)
        return str(session.id)

    @handle(RestartSession)
    def restart(self, command):
        repo = current_domain.repository_for(ScanSession)
        session = repo.get(command.session_id)
        session.assert_active()

        if session.kind == WorkflowKind.BUILD:
            order = get_plan_repository().get_order_by_id(str(session.order_id))
            if order is not None and order.build_confirmation_number:
                raise InvalidStateError(
                    f"Order {order.order_number} skid build was confirmed by the carrier "
                    f"(confirmation {order.build_confirmation_number}); restart is not allowed"
                )

        discarded = session.restart()
        repo.add(session)
        logger.info("Session restarted", session_id=str(session.id), discarded_scans=discarded)
        return {"session_id": str(session.id), "discarded_scans": discarded}

    @handle(CancelSession)
    def cancel(self, command):
        repo = current_domain.repository_for(ScanSession)
        session = repo.get(command.session_id)
        session.cancel(command.reason)
        repo.add(session)
        logger.info("Session cancelled", session_id=str(session.id), reason=command.reason)
        return str(session.id)
