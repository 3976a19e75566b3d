"""Scan validator — decides whether a decoded scan may be recorded.

Pure functions: the caller supplies the plan snapshot, the session's existing
scans and a settings snapshot, and gets back a ``ScanDecision``. Nothing here
reads the store or the clock.
"""

from dataclasses import dataclass
from datetime import datetime

from scanning.barcode.kanban import InternalKanbanFields, normalize_part_number
from scanning.barcode.rules import check_box_number, palletization_matches
from scanning.errors import RejectionReason
from scanning.plan.port import OrderSummary, PlannedItemRef, PlannedSkidRef
from scanning.settings import ScanSettings


@dataclass(frozen=True)
class BuildScan:
    """A kanban scanned onto a skid during skid build."""

    part_number: str
    kanban_number: str
    box_number: int
    skid_number: str
    skid_side: str | None = None
    palletization_code: str | None = None
    line_side_address: str | None = None
    internal_kanban: InternalKanbanFields | None = None


@dataclass(frozen=True)
class SkidScan:
    """A skid manifest scanned while loading or verifying a truck."""

    order_number: str
    dock_code: str
    skid_number: str
    skid_side: str | None = None
    palletization_code: str | None = None
    skid_cut: bool = False


@dataclass(frozen=True)
class ScanDecision:
    accepted: bool
    reason: RejectionReason | None = None
    message: str = ""
    planned_item: PlannedItemRef | None = None
    planned_skid: PlannedSkidRef | None = None
    order: OrderSummary | None = None
    scanned_count: int = 0
    total_count: int = 0

    @property
    def remaining_count(self) -> int:
        return max(self.total_count - self.scanned_count, 0)

    @property
    def is_complete(self) -> bool:
        return self.accepted and self.total_count > 0 and self.scanned_count >= self.total_count


def _reject(reason: RejectionReason, message: str, **context) -> ScanDecision:
    return ScanDecision(accepted=False, reason=reason, message=message, **context)


def find_planned_item(planned_items, part_number: str, kanban_number: str | None) -> PlannedItemRef | None:
    wanted = normalize_part_number(part_number)
    kanban = (kanban_number or "").strip().upper()
    candidates = [item for item in planned_items if normalize_part_number(item.part_number) == wanted]
    for item in candidates:
        planned_kanban = (item.kanban_number or "").strip().upper()
        if not planned_kanban or not kanban or planned_kanban == kanban:
            return item
    return None


def _distinct_boxes(scans, planned_item_id: str) -> set[int]:
    return {s.box_number for s in scans if str(s.planned_item_id) == str(planned_item_id)}


def validate_build_scan(
    scan: BuildScan,
    planned_items,
    existing_scans,
    settings: ScanSettings,
    now: datetime,
    serial_last_seen: datetime | None = None,
) -> ScanDecision:
    """Check a skid-build scan against the order's planned items.

    ``existing_scans`` are the session's recorded scans; ``serial_last_seen`` is
    the latest time the internal kanban serial was scanned anywhere.
    """
    box_error = check_box_number(scan.box_number)
    if box_error:
        return _reject(RejectionReason.INVALID_BOX_NUMBER, box_error)

    item = find_planned_item(planned_items, scan.part_number, scan.kanban_number)
    if item is None:
        return _reject(
            RejectionReason.UNPLANNED_ITEM,
            f"Part {scan.part_number} (kanban {scan.kanban_number}) is not planned on this order",
        )

    internal = scan.internal_kanban
    if internal is not None:
        if normalize_part_number(internal.part_number) != normalize_part_number(item.part_number):
            return _reject(
                RejectionReason.PART_NUMBER_MISMATCH,
                f"Internal kanban part '{internal.part_number}' does not match kanban part '{item.part_number}'",
                planned_item=item,
            )
        if item.kanban_number and internal.kanban_code.strip().upper() != item.kanban_number.strip().upper():
            return _reject(
                RejectionReason.KANBAN_CODE_MISMATCH,
                f"Internal kanban code '{internal.kanban_code}' does not match kanban '{item.kanban_number}'",
                planned_item=item,
            )
        excluded = normalize_part_number(item.part_number) in settings.internal_kanban_exclusions
        if (
            not settings.allow_duplicates
            and not excluded
            and serial_last_seen is not None
            and now - serial_last_seen <= settings.duplicate_window
        ):
            return _reject(
                RejectionReason.DUPLICATE_SERIAL,
                f"Serial '{internal.serial_number}' was already scanned within the last "
                f"{settings.duplicate_window_hours} hours",
                planned_item=item,
            )

    previous = [
        s for s in existing_scans if str(s.planned_item_id) == item.planned_item_id and s.box_number == scan.box_number
    ]
    if previous:
        latest = max(s.scanned_at for s in previous)
        if not (settings.allow_duplicates and now - latest <= settings.duplicate_window):
            return _reject(
                RejectionReason.DUPLICATE_SCAN,
                f"Box {scan.box_number} of part {item.part_number} has already been scanned",
                planned_item=item,
                scanned_count=len(_distinct_boxes(existing_scans, item.planned_item_id)),
                total_count=item.total_boxes_planned,
            )

    if settings.enforce_palletization and not palletization_matches(scan.palletization_code, item.palletization_code):
        return _reject(
            RejectionReason.PALLETIZATION_MISMATCH,
            f"Palletization code mismatch. Manifest: '{scan.palletization_code}', planned: '{item.palletization_code}'",
            planned_item=item,
        )

    boxes = _distinct_boxes(existing_scans, item.planned_item_id) | {scan.box_number}
    return ScanDecision(
        accepted=True,
        planned_item=item,
        scanned_count=len(boxes),
        total_count=item.total_boxes_planned,
    )


def find_planned_skid(planned_skids, skid_number: str, skid_side: str | None) -> PlannedSkidRef | None:
    for skid in planned_skids:
        if skid.skid_number != skid_number:
            continue
        if skid.skid_side and skid_side and skid.skid_side != skid_side:
            continue
        return skid
    return None


def validate_skid_scan(
    scan: SkidScan,
    order: OrderSummary | None,
    route_order_ids,
    planned_skids,
    existing_scans,
    settings: ScanSettings,
) -> ScanDecision:
    """Check a load or pre-shipment manifest scan against the truck's orders.

    ``route_order_ids`` holds the ids of the orders planned on the session's
    route, supplier and pickup; None skips the membership check.
    """
    if order is None:
        return _reject(
            RejectionReason.ORDER_NOT_FOUND,
            f"Order {scan.order_number} for dock {scan.dock_code} was not found",
        )

    if route_order_ids is not None and order.order_id not in route_order_ids:
        return _reject(
            RejectionReason.ROUTE_MISMATCH,
            f"Order {order.order_number} (route {order.route}) is not planned on this truck",
            order=order,
        )

    if order.is_shipped or order.load_confirmation_number:
        return _reject(
            RejectionReason.ORDER_ALREADY_SHIPPED,
            f"Order {order.order_number} has already been shipped",
            order=order,
        )

    if not order.is_build_complete:
        return _reject(
            RejectionReason.ORDER_NOT_BUILD_COMPLETE,
            f"Order {order.order_number} has not completed skid build (status: {order.status})",
            order=order,
        )

    skid = find_planned_skid(planned_skids, scan.skid_number, scan.skid_side)
    if skid is None:
        return _reject(
            RejectionReason.UNPLANNED_SKID,
            f"Skid {scan.skid_number}{scan.skid_side or ''} is not planned on order {order.order_number}",
            order=order,
        )

    if settings.enforce_palletization and not palletization_matches(scan.palletization_code, skid.palletization_code):
        return _reject(
            RejectionReason.PALLETIZATION_MISMATCH,
            f"Palletization code mismatch. Manifest: '{scan.palletization_code}', planned: '{skid.palletization_code}'",
            order=order,
            planned_skid=skid,
        )

    order_skid_ids = {s.planned_skid_id for s in planned_skids if s.order_id == order.order_id}
    scanned = {str(s.planned_skid_id) for s in existing_scans if s.planned_skid_id} & order_skid_ids
    if skid.planned_skid_id in scanned:
        return _reject(
            RejectionReason.DUPLICATE_SCAN,
            f"Skid {skid.skid_id} of order {order.order_number} has already been loaded",
            order=order,
            planned_skid=skid,
            scanned_count=len(scanned),
            total_count=len(order_skid_ids),
        )

    return ScanDecision(
        accepted=True,
        order=order,
        planned_skid=skid,
        scanned_count=len(scanned) + 1,
        total_count=len(order_skid_ids),
    )
