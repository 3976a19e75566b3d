"""Workflow policies — what differs between build, load and pre-shipment.

All three workflows share the ScanSession state machine. A policy decides
how an anchor is resolved against the plan, which validator judges a scan,
whether trailer details are required, and what is submitted to the carrier
on completion.
"""

from dataclasses import dataclass, field
from datetime import datetime

from protean.exceptions import InvalidStateError, ObjectNotFoundError, ValidationError

from scanning.barcode.kanban import decode_internal_kanban, decode_kanban
from scanning.barcode.manifest import decode_manifest
from scanning.carrier.payload import build_skid_build_payload, build_trailer_payload
from scanning.carrier.port import CarrierPort, CarrierResponse
from scanning.errors import DecodeError, RejectionReason
from scanning.plan.order import OrderStage
from scanning.plan.port import PlanRepository
from scanning.session.lookup import serial_last_seen
from scanning.session.session import ScanSession, WorkflowKind
from scanning.session.validator import (
    BuildScan,
    ScanDecision,
    SkidScan,
    validate_build_scan,
    validate_skid_scan,
)
from scanning.settings import ScanSettings

PICKUP_KEY_FORMAT = "%Y-%m-%dT%H:%M"
PRE_SHIPMENT_CREATED_VIA = "PreShipment"


# ---------------------------------------------------------------------------
# Anchors
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class BuildAnchor:
    """Skid build is anchored on one order at one dock."""

    order_number: str
    dock_code: str


@dataclass(frozen=True)
class LoadAnchor:
    """A truck: route, supplier and planned pickup."""

    route: str
    supplier_code: str
    pickup_at: datetime


@dataclass(frozen=True)
class PreShipmentAnchor:
    """Pre-shipment starts from any manifest on the truck."""

    manifest: str


@dataclass(frozen=True)
class AnchorResolution:
    anchor_key: str
    session_fields: dict = field(default_factory=dict)


@dataclass(frozen=True)
class RawScan:
    """Barcodes exactly as the scanner read them."""

    manifest: str | None = None
    kanban: str | None = None
    internal_kanban: str | None = None
    skid_cut: bool = False


def load_anchor_key(route: str, supplier_code: str, pickup_at: datetime) -> str:
    return f"{route.strip()}|{supplier_code.strip()}|{pickup_at.strftime(PICKUP_KEY_FORMAT)}"


def _require(value, name: str):
    if not value:
        raise DecodeError("field", field=name, detail=f"{name} barcode is required")
    return value


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------
class WorkflowPolicy:
    kind: WorkflowKind
    stage: OrderStage
    requires_trailer = False

    def resolve_anchor(self, anchor, plan: PlanRepository) -> AnchorResolution:
        raise NotImplementedError

    def evaluate(
        self,
        session: ScanSession,
        raw: RawScan,
        plan: PlanRepository,
        settings: ScanSettings,
        now: datetime,
    ) -> tuple[ScanDecision, dict]:
        """Decode and judge a scan. Returns the decision and the fields to record."""
        raise NotImplementedError

    def order_ids(self, session: ScanSession) -> list[str]:
        return session.scanned_order_ids()

    def submit(self, session: ScanSession, plan: PlanRepository, exceptions, carrier: CarrierPort) -> CarrierResponse:
        raise NotImplementedError


class BuildPolicy(WorkflowPolicy):
    kind = WorkflowKind.BUILD
    stage = OrderStage.BUILD

    def resolve_anchor(self, anchor: BuildAnchor, plan: PlanRepository) -> AnchorResolution:
        order = plan.get_order(anchor.order_number, anchor.dock_code)
        if order is None:
            raise ObjectNotFoundError(f"Order {anchor.order_number} for dock {anchor.dock_code} does not exist")
        if order.build_confirmation_number:
            raise InvalidStateError(
                f"Order {order.order_number} skid build was already confirmed "
                f"(confirmation {order.build_confirmation_number})"
            )
        return AnchorResolution(
            anchor_key=f"{order.order_number}|{order.dock_code}",
            session_fields={
                "order_id": order.order_id,
                "order_number": order.order_number,
                "dock_code": order.dock_code,
                "route": order.route,
                "supplier_code": order.supplier_code,
                "pickup_at": order.planned_pickup,
            },
        )

    def evaluate(self, session, raw, plan, settings, now):
        manifest = decode_manifest(_require(raw.manifest, "manifest"))
        kanban = decode_kanban(_require(raw.kanban, "kanban"))
        internal = decode_internal_kanban(raw.internal_kanban) if raw.internal_kanban else None

        if manifest.order_number != session.order_number or manifest.dock_code.strip() != session.dock_code:
            decision = ScanDecision(
                accepted=False,
                reason=RejectionReason.ORDER_NOT_FOUND,
                message=(
                    f"Manifest is for order {manifest.order_number} dock {manifest.dock_code.strip()}, "
                    f"this session builds order {session.order_number} dock {session.dock_code}"
                ),
            )
            return decision, {}

        last_seen = None
        if internal is not None:
            last_seen = serial_last_seen(internal.part_number, internal.serial_number, now - settings.duplicate_window)

        scan = BuildScan(
            part_number=kanban.part_number,
            kanban_number=kanban.kanban_number,
            box_number=kanban.box_number,
            skid_number=manifest.skid_number,
            skid_side=manifest.skid_side,
            palletization_code=manifest.palletization_code,
            line_side_address=kanban.line_side_address,
            internal_kanban=internal,
        )
        decision = validate_build_scan(
            scan,
            plan.get_planned_items(str(session.order_id)),
            list(session.scans),
            settings,
            now,
            serial_last_seen=last_seen,
        )
        if not decision.accepted:
            return decision, {}

        item = decision.planned_item
        return decision, {
            "order_id": str(session.order_id),
            "order_number": session.order_number,
            "planned_item_id": item.planned_item_id,
            "part_number": item.part_number,
            "kanban_number": item.kanban_number,
            "skid_number": scan.skid_number,
            "skid_side": scan.skid_side,
            "box_number": scan.box_number,
            "palletization_code": scan.palletization_code,
            "line_side_address": scan.line_side_address,
            "internal_kanban": internal.raw if internal else None,
            "internal_kanban_serial": internal.serial_number if internal else None,
        }

    def order_ids(self, session):
        return [str(session.order_id)]

    def submit(self, session, plan, exceptions, carrier):
        order = plan.get_order_by_id(str(session.order_id))
        if order is None:
            raise ObjectNotFoundError(f"Order {session.order_id} does not exist")
        payload = build_skid_build_payload(order, plan.get_planned_items(order.order_id), list(session.scans), exceptions)
        return carrier.submit_skid_build(payload)


class LoadPolicy(WorkflowPolicy):
    kind = WorkflowKind.LOAD
    stage = OrderStage.LOAD
    requires_trailer = True

    def resolve_anchor(self, anchor: LoadAnchor, plan: PlanRepository) -> AnchorResolution:
        orders = plan.get_orders_on_route(anchor.route.strip(), anchor.supplier_code.strip(), anchor.pickup_at)
        if not orders:
            raise ObjectNotFoundError(
                f"No orders are planned on route {anchor.route} for supplier {anchor.supplier_code} "
                f"at {anchor.pickup_at.strftime(PICKUP_KEY_FORMAT)}"
            )
        return AnchorResolution(
            anchor_key=load_anchor_key(anchor.route, anchor.supplier_code, anchor.pickup_at),
            session_fields={
                "route": anchor.route.strip(),
                "supplier_code": anchor.supplier_code.strip(),
                "pickup_at": anchor.pickup_at,
            },
        )

    def evaluate(self, session, raw, plan, settings, now):
        manifest = decode_manifest(_require(raw.manifest, "manifest"))
        order = plan.get_order(manifest.order_number, manifest.dock_code)
        route_orders = plan.get_orders_on_route(session.route, session.supplier_code, session.pickup_at)
        skids = plan.get_planned_skids(order_id=order.order_id) if order else []

        scan = SkidScan(
            order_number=manifest.order_number,
            dock_code=manifest.dock_code.strip(),
            skid_number=manifest.skid_number,
            skid_side=manifest.skid_side,
            palletization_code=manifest.palletization_code,
            skid_cut=bool(raw.skid_cut),
        )
        decision = validate_skid_scan(
            scan,
            order,
            {o.order_id for o in route_orders},
            skids,
            list(session.scans),
            settings,
        )
        if not decision.accepted:
            return decision, {}

        skid = decision.planned_skid
        return decision, {
            "order_id": order.order_id,
            "order_number": order.order_number,
            "planned_skid_id": skid.planned_skid_id,
            "skid_number": skid.skid_number,
            "skid_side": scan.skid_side,
            "palletization_code": scan.palletization_code,
            "skid_cut": scan.skid_cut,
        }

    def submit(self, session, plan, exceptions, carrier):
        orders = []
        for order_id in session.scanned_order_ids():
            order = plan.get_order_by_id(order_id)
            if order is None:
                raise ObjectNotFoundError(f"Order {order_id} does not exist")
            orders.append(order)
        if not orders:
            raise ValidationError({"scans": ["No skids have been loaded"]})
        shipped = [o.order_number for o in orders if o.is_shipped or o.load_confirmation_number]
        if shipped:
            raise ValidationError({"orders": [f"Order {number} has already been shipped" for number in shipped]})
        trailer = session.trailer.to_dict() if session.trailer else {}
        payload = build_trailer_payload(session.route, session.pickup_at, trailer, orders, list(session.scans), exceptions)
        return carrier.submit_trailer(payload)


class PreShipmentPolicy(LoadPolicy):
    """Verification pass over a truck, started from a scanned manifest."""

    kind = WorkflowKind.PRE_SHIPMENT

    def resolve_anchor(self, anchor: PreShipmentAnchor, plan: PlanRepository) -> AnchorResolution:
        manifest = decode_manifest(anchor.manifest)
        order = plan.get_order(manifest.order_number, manifest.dock_code)
        if order is None:
            raise ObjectNotFoundError(
                f"Order {manifest.order_number} for dock {manifest.dock_code.strip()} does not exist"
            )
        if not order.route or order.planned_pickup is None:
            raise ValidationError({"manifest": [f"Order {order.order_number} has no planned route or pickup"]})
        resolution = super().resolve_anchor(
            LoadAnchor(route=order.route, supplier_code=order.supplier_code, pickup_at=order.planned_pickup),
            plan,
        )
        return AnchorResolution(
            anchor_key=resolution.anchor_key,
            session_fields={**resolution.session_fields, "created_via": PRE_SHIPMENT_CREATED_VIA},
        )


_POLICIES = {
    WorkflowKind.BUILD: BuildPolicy(),
    WorkflowKind.LOAD: LoadPolicy(),
    WorkflowKind.PRE_SHIPMENT: PreShipmentPolicy(),
}


def policy_for(kind: WorkflowKind | str) -> WorkflowPolicy:
    return _POLICIES[WorkflowKind(kind)]
