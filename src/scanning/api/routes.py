"""FastAPI routes for the Scanning domain."""

import json
from dataclasses import asdict

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from scanning.api.schemas import (
    AddExceptionRequest,
    CancelSessionRequest,
    CompleteSessionRequest,
    CompletionResponse,
    DockMonitorResponse,
    DockOrderResponse,
    DockShipmentResponse,
    ExceptionIdResponse,
    ExceptionResponse,
    OrderIdResponse,
    OrderResponse,
    RecordScanRequest,
    RegisterOrderRequest,
    RemovedResponse,
    SaveDraftRequest,
    ScanOutcomeResponse,
    SessionResponse,
    StartBuildSessionRequest,
    StartLoadSessionRequest,
    StartPreShipmentSessionRequest,
    UpdateTrailerInfoRequest,
)
from scanning.ledger.lookup import exceptions_for_order, exceptions_for_session
from scanning.plan import get_plan_repository
from scanning.plan.ingestion import RegisterOrder
from scanning.projections.dock_board import read_dock_board
from scanning.session.orchestrator import SessionOrchestrator, SessionView
from scanning.session.policies import BuildAnchor, LoadAnchor, PreShipmentAnchor

orchestrator = SessionOrchestrator()


def _session_response(view: SessionView) -> SessionResponse:
    return SessionResponse(**asdict(view))


# ---------------------------------------------------------------------------
# Session Router
# ---------------------------------------------------------------------------
session_router = APIRouter(prefix="/sessions", tags=["sessions"])


@session_router.post("/build", response_model=SessionResponse)
async def start_build_session(body: StartBuildSessionRequest) -> SessionResponse:
    """Start skid build for an order, or resume the open session."""
    view = orchestrator.start_or_resume(BuildAnchor(body.order_number, body.dock_code), body.operator_id)
    return _session_response(view)


@session_router.post("/load", response_model=SessionResponse)
async def start_load_session(body: StartLoadSessionRequest) -> SessionResponse:
    """Start loading a truck (route, supplier, pickup), or resume the open session."""
    view = orchestrator.start_or_resume(
        LoadAnchor(body.route, body.supplier_code, body.pickup_at),
        body.operator_id,
    )
    return _session_response(view)


@session_router.post("/pre-shipment", response_model=SessionResponse)
async def start_pre_shipment_session(body: StartPreShipmentSessionRequest) -> SessionResponse:
    """Start a pre-shipment pass from any manifest on the truck."""
    view = orchestrator.start_or_resume(PreShipmentAnchor(body.manifest), body.operator_id)
    return _session_response(view)


@session_router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str) -> SessionResponse:
    return _session_response(orchestrator.get(session_id))


@session_router.post("/{session_id}/scans", response_model=ScanOutcomeResponse)
async def record_scan(session_id: str, body: RecordScanRequest):
    """Record a scan. A rejected scan answers 422 with the rejection reason."""
    outcome = orchestrator.record_scan(
        session_id,
        manifest=body.manifest,
        kanban=body.kanban,
        internal_kanban=body.internal_kanban,
        skid_cut=body.skid_cut,
        operator_id=body.operator_id,
    )
    response = ScanOutcomeResponse(
        accepted=outcome.accepted,
        session_id=outcome.session_id,
        scan_id=outcome.scan_id,
        reason=outcome.reason.value if outcome.reason else None,
        message=outcome.message,
        order_number=outcome.order_number,
        scanned_count=outcome.scanned_count,
        total_count=outcome.total_count,
        remaining_count=outcome.remaining_count,
        is_complete=outcome.is_complete,
    )
    if not outcome.accepted:
        return JSONResponse(status_code=422, content=response.model_dump(mode="json"))
    return response


@session_router.put("/{session_id}/trailer", response_model=SessionResponse)
async def update_trailer_info(session_id: str, body: UpdateTrailerInfoRequest) -> SessionResponse:
    view = orchestrator.update_trailer_info(session_id, **body.model_dump())
    return _session_response(view)


@session_router.put("/{session_id}/draft", response_model=SessionResponse)
async def save_draft(session_id: str, body: SaveDraftRequest) -> SessionResponse:
    view = orchestrator.save_draft(session_id, draft_data=body.draft_data, current_screen=body.current_screen)
    return _session_response(view)


@session_router.post("/{session_id}/complete", response_model=CompletionResponse)
def complete_session(session_id: str, body: CompleteSessionRequest) -> CompletionResponse:
    """Submit to the carrier. Carrier failures answer 502 (504 on timeout).

    Plain ``def``: the carrier call blocks, so FastAPI runs it in the threadpool.
    """
    result = orchestrator.complete(session_id, operator_id=body.operator_id)
    return CompletionResponse(**asdict(result))


@session_router.post("/{session_id}/restart", response_model=SessionResponse)
async def restart_session(session_id: str) -> SessionResponse:
    return _session_response(orchestrator.restart(session_id))


@session_router.post("/{session_id}/cancel", response_model=SessionResponse)
async def cancel_session(session_id: str, body: CancelSessionRequest) -> SessionResponse:
    return _session_response(orchestrator.cancel(session_id, reason=body.reason))


# ---------------------------------------------------------------------------
# Exception Router
# ---------------------------------------------------------------------------
exception_router = APIRouter(prefix="/exceptions", tags=["exceptions"])


def _exception_response(exc) -> ExceptionResponse:
    return ExceptionResponse(
        exception_id=str(exc.id),
        order_id=str(exc.order_id),
        order_number=exc.order_number,
        code=exc.code,
        level=exc.level,
        related_skid_id=exc.related_skid_id,
        comments=exc.comments,
        created_by=exc.created_by,
        created_at=exc.created_at,
    )


@exception_router.post("", status_code=201, response_model=ExceptionIdResponse)
async def add_exception(body: AddExceptionRequest) -> ExceptionIdResponse:
    exception_id = orchestrator.add_exception(**body.model_dump())
    return ExceptionIdResponse(exception_id=exception_id)


@exception_router.delete("/{exception_id}", response_model=RemovedResponse)
async def remove_exception(exception_id: str) -> RemovedResponse:
    return RemovedResponse(removed=orchestrator.remove_exception(exception_id))


@exception_router.get("", response_model=list[ExceptionResponse])
async def list_exceptions(
    order_id: str | None = Query(default=None),
    session_id: str | None = Query(default=None),
) -> list[ExceptionResponse]:
    if session_id:
        found = exceptions_for_session(session_id)
    elif order_id:
        found = exceptions_for_order(order_id)
    else:
        raise ValueError("Pass order_id or session_id")
    return [_exception_response(e) for e in found]


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def register_order(body: RegisterOrderRequest) -> OrderIdResponse:
    """Register a planned order handed over by the upload pipeline."""
    command = RegisterOrder(
        order_number=body.order_number,
        dock_code=body.dock_code,
        supplier_code=body.supplier_code,
        plant_code=body.plant_code,
        route=body.route,
        planned_pickup=body.planned_pickup,
        mros=body.mros,
        items=json.dumps([item.model_dump() for item in body.items]),
        skids=json.dumps([skid.model_dump() for skid in body.skids]),
    )
    order_id = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=order_id)


@order_router.get("/{order_number}", response_model=OrderResponse)
async def get_order(order_number: str, dock_code: str = Query(...)) -> OrderResponse:
    order = get_plan_repository().get_order(order_number, dock_code)
    if order is None:
        raise ObjectNotFoundError(f"Order {order_number} for dock {dock_code} does not exist")
    data = asdict(order)
    data.pop("is_build_complete")
    return OrderResponse(**data)


# ---------------------------------------------------------------------------
# Dock Monitor Router
# ---------------------------------------------------------------------------
dock_monitor_router = APIRouter(prefix="/dock-monitor", tags=["dock-monitor"])


@dock_monitor_router.get("", response_model=DockMonitorResponse)
async def dock_monitor() -> DockMonitorResponse:
    board = read_dock_board()
    return DockMonitorResponse(
        shipments=[
            DockShipmentResponse(
                route=s.route,
                run=s.run,
                supplier_code=s.supplier_code,
                pickup_at=s.pickup_at,
                status=s.status.value,
                orders=[
                    DockOrderResponse(
                        **{
                            **asdict(o),
                            "status": o.status.value,
                            "exception_codes": list(o.exception_codes),
                        }
                    )
                    for o in s.orders
                ],
            )
            for s in board.shipments
        ],
        total_orders=board.total_orders,
        display_mode=board.settings.display_mode.value,
        behind_minutes=board.settings.behind_minutes,
        critical_minutes=board.settings.critical_minutes,
        refresh_interval_ms=board.settings.refresh_interval_ms,
        refreshed_at=board.refreshed_at,
    )
