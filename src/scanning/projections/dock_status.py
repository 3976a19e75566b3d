"""Dock status — on-time/behind/critical labels for the dock monitor.

Status is computed on every poll from the plan, stage completion stamps and
the exception ledger. It is never stored on the order.
"""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum

from scanning.carrier.payload import split_route_run
from scanning.ledger.exception import severity_override
from scanning.plan.domain_adapter import same_pickup
from scanning.settings import BUILD_LEAD_TIME, DisplayMode, DockMonitorSettings


class DockStatus(Enum):
    ON_TIME = "ON_TIME"
    BEHIND = "BEHIND"
    CRITICAL = "CRITICAL"
    COMPLETED = "COMPLETED"
    SHORT_SHIPPED = "SHORT_SHIPPED"
    PROJECT_SHORT = "PROJECT_SHORT"


# Shipment status is the worst of its orders.
_SEVERITY = {
    DockStatus.COMPLETED: 0,
    DockStatus.ON_TIME: 1,
    DockStatus.BEHIND: 2,
    DockStatus.PROJECT_SHORT: 3,
    DockStatus.CRITICAL: 4,
    DockStatus.SHORT_SHIPPED: 5,
}


@dataclass(frozen=True)
class OrderTiming:
    planned_pickup: datetime | None
    build_completed_at: datetime | None = None
    load_completed_at: datetime | None = None

    @property
    def planned_skid_build(self) -> datetime | None:
        return self.planned_pickup - BUILD_LEAD_TIME if self.planned_pickup else None


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, truncated toward zero."""
    return int((end - start).total_seconds() / 60)


def project_order_status(timing: OrderTiming, exception_codes, settings: DockMonitorSettings, now: datetime) -> DockStatus:
    override = severity_override(exception_codes or [])
    if override is not None:
        return DockStatus(override.value)

    if timing.build_completed_at and timing.load_completed_at:
        return DockStatus.COMPLETED

    if timing.planned_pickup is None:
        return DockStatus.ON_TIME

    if timing.build_completed_at is None:
        minutes_late = minutes_between(timing.planned_skid_build, now)
    else:
        minutes_late = minutes_between(timing.planned_pickup, now)

    if minutes_late >= settings.critical_minutes:
        return DockStatus.CRITICAL
    if minutes_late >= settings.behind_minutes:
        return DockStatus.BEHIND
    return DockStatus.ON_TIME


# ---------------------------------------------------------------------------
# Dock board
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class DockOrderRow:
    order_id: str
    order_number: str
    dock_code: str
    supplier_code: str
    route: str | None
    planned_pickup: datetime | None
    planned_skid_build: datetime | None
    completed_skid_build: datetime | None
    completed_shipment_load: datetime | None
    status: DockStatus
    exception_codes: tuple[str, ...] = ()


@dataclass(frozen=True)
class DockShipment:
    route: str
    run: str
    supplier_code: str
    pickup_at: datetime | None
    orders: list[DockOrderRow] = field(default_factory=list)

    @property
    def status(self) -> DockStatus:
        if not self.orders:
            return DockStatus.ON_TIME
        return max((o.status for o in self.orders), key=_SEVERITY.__getitem__)


@dataclass(frozen=True)
class DockBoard:
    shipments: list[DockShipment]
    settings: DockMonitorSettings
    refreshed_at: datetime

    @property
    def total_orders(self) -> int:
        return sum(len(s.orders) for s in self.shipments)


def _keep(row: DockOrderRow, mode: DisplayMode) -> bool:
    if mode == DisplayMode.SHIPMENT_ONLY:
        return row.completed_shipment_load is not None
    if mode == DisplayMode.SKID_ONLY:
        return row.completed_skid_build is not None and row.completed_shipment_load is None
    if mode == DisplayMode.COMPLETION_ONLY:
        return row.status == DockStatus.COMPLETED
    return True


def build_dock_board(orders, exception_codes: dict, settings: DockMonitorSettings, now: datetime) -> DockBoard:
    """Group orders into shipments and label each one.

    ``orders`` are plan order summaries; ``exception_codes`` maps order id to the
    codes recorded against it. Orders sharing a route and pickup form one
    shipment; an order without a route is a shipment of its own.
    """
    since = now - settings.lookback
    groups: list[DockShipment] = []

    for order in orders:
        if order.planned_pickup is not None and order.planned_pickup < since:
            continue
        codes = tuple(exception_codes.get(order.order_id, ()))
        timing = OrderTiming(order.planned_pickup, order.build_completed_at, order.load_completed_at)
        row = DockOrderRow(
            order_id=order.order_id,
            order_number=order.order_number,
            dock_code=order.dock_code,
            supplier_code=order.supplier_code,
            route=order.route,
            planned_pickup=order.planned_pickup,
            planned_skid_build=timing.planned_skid_build,
            completed_skid_build=order.build_completed_at,
            completed_shipment_load=order.load_completed_at,
            status=project_order_status(timing, codes, settings, now),
            exception_codes=codes,
        )
        if not _keep(row, settings.display_mode):
            continue

        shipment = None
        if order.route:
            shipment = next(
                (
                    s
                    for s in groups
                    if s.route == order.route
                    and s.supplier_code == order.supplier_code
                    and same_pickup(s.pickup_at, order.planned_pickup)
                ),
                None,
            )
        if shipment is None:
            route, run = split_route_run(order.route) if order.route else (order.order_number, "")
            shipment = DockShipment(
                route=order.route or route,
                run=run,
                supplier_code=order.supplier_code,
                pickup_at=order.planned_pickup,
            )
            groups.append(shipment)
        shipment.orders.append(row)

    far_future = datetime.max.replace(tzinfo=UTC)
    shipments = sorted(groups, key=lambda s: s.pickup_at or far_future)
    return DockBoard(
        shipments=[replace(s, orders=sorted(s.orders, key=lambda o: o.order_number)) for s in shipments],
        settings=settings,
        refreshed_at=now,
    )
