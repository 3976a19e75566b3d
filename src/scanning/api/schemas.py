"""Pydantic API schemas for the Scanning domain.

These are the external API contracts — separate from domain commands.
The API layer translates between these schemas and orchestrator calls.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class StartBuildSessionRequest(BaseModel):
    order_number: str
    dock_code: str
    operator_id: str


class StartLoadSessionRequest(BaseModel):
    route: str
    supplier_code: str
    pickup_at: datetime
    operator_id: str


class StartPreShipmentSessionRequest(BaseModel):
    manifest: str
    operator_id: str


class RecordScanRequest(BaseModel):
    manifest: str | None = None
    kanban: str | None = None
    internal_kanban: str | None = None
    skid_cut: bool = False
    operator_id: str | None = None


class UpdateTrailerInfoRequest(BaseModel):
    trailer_number: str | None = None
    seal_number: str | None = None
    lp_code: str | None = None
    driver_first_name: str | None = None
    driver_last_name: str | None = None
    supplier_first_name: str | None = None
    supplier_last_name: str | None = None


class SaveDraftRequest(BaseModel):
    draft_data: str | None = None
    current_screen: int | None = None


class CompleteSessionRequest(BaseModel):
    operator_id: str | None = None


class CancelSessionRequest(BaseModel):
    reason: str | None = None


class AddExceptionRequest(BaseModel):
    order_id: str
    code: str
    session_id: str | None = None
    related_skid_id: str | None = None
    comments: str | None = Field(default=None, max_length=500)
    created_by: str | None = None
    exception_id: str | None = None


class PlannedItemRequest(BaseModel):
    part_number: str
    kanban_number: str | None = None
    qpc: int = 0
    total_boxes_planned: int
    palletization_code: str | None = None
    manifest_number: str | None = None
    line_side_address: str | None = None


class PlannedSkidRequest(BaseModel):
    skid_number: str
    skid_side: str | None = None
    palletization_code: str | None = None
    route: str | None = None


class RegisterOrderRequest(BaseModel):
    order_number: str
    dock_code: str
    supplier_code: str
    plant_code: str
    route: str | None = None
    planned_pickup: datetime | None = None
    mros: str | None = None
    items: list[PlannedItemRequest]
    skids: list[PlannedSkidRequest] = []


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class ScanResponse(BaseModel):
    scan_id: str
    order_number: str | None = None
    part_number: str | None = None
    kanban_number: str | None = None
    skid_number: str | None = None
    skid_side: str | None = None
    box_number: int | None = None
    palletization_code: str | None = None
    skid_cut: bool = False
    scanned_at: datetime
    scanned_by: str | None = None


class ExceptionResponse(BaseModel):
    exception_id: str
    order_id: str
    order_number: str | None = None
    code: str
    level: str
    related_skid_id: str | None = None
    comments: str | None = None
    created_by: str | None = None
    created_at: datetime


class SessionResponse(BaseModel):
    session_id: str
    workflow_kind: str
    status: str
    anchor_key: str
    operator_id: str | None = None
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
    scans: list[ScanResponse] = []
    exceptions: list[ExceptionResponse] = []


class ScanOutcomeResponse(BaseModel):
    accepted: bool
    session_id: str
    scan_id: str | None = None
    reason: str | None = None
    message: str = ""
    order_number: str | None = None
    scanned_count: int = 0
    total_count: int = 0
    remaining_count: int = 0
    is_complete: bool = False


class CompletionResponse(BaseModel):
    session_id: str
    confirmation_number: str
    order_ids: list[str]


class ExceptionIdResponse(BaseModel):
    exception_id: str


class RemovedResponse(BaseModel):
    removed: bool


class OrderIdResponse(BaseModel):
    order_id: str


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    dock_code: str
    supplier_code: str
    plant_code: str
    status: str
    route: str | None = None
    planned_pickup: datetime | None = None
    build_completed_at: datetime | None = None
    build_confirmation_number: str | None = None
    load_completed_at: datetime | None = None
    load_confirmation_number: str | None = None


class DockOrderResponse(BaseModel):
    order_id: str
    order_number: str
    dock_code: str
    supplier_code: str
    route: str | None = None
    planned_pickup: datetime | None = None
    planned_skid_build: datetime | None = None
    completed_skid_build: datetime | None = None
    completed_shipment_load: datetime | None = None
    status: str
    exception_codes: list[str] = []


class DockShipmentResponse(BaseModel):
    route: str
    run: str
    supplier_code: str
    pickup_at: datetime | None = None
    status: str
    orders: list[DockOrderResponse]


class DockMonitorResponse(BaseModel):
    shipments: list[DockShipmentResponse]
    total_orders: int
    display_mode: str
    behind_minutes: int
    critical_minutes: int
    refresh_interval_ms: int
    refreshed_at: datetime
