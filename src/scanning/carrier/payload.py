"""Carrier payload builders.

Pure functions that turn a session's scans, the plan snapshot and the
exception ledger into the carrier's JSON shapes. Keys whose value is None are
left out of the payload.
"""

from datetime import UTC, datetime
from itertools import groupby

from scanning.ledger.exception import ExceptionLevel

PICKUP_FORMAT = "%Y-%m-%dT%H:%M"


def compact(value):
    """Drop None-valued keys from dicts, recursively."""
    if isinstance(value, dict):
        return {k: compact(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [compact(v) for v in value]
    return value


def split_route_run(route: str | None) -> tuple[str, str]:
    """Split a route number into (route, run); the run is the last two characters.

    >>> split_route_run("YUAN03")
    ('YUAN', '03')
    """
    route = (route or "").strip()
    if len(route) <= 2:
        return route, ""
    return route[:-2], route[-2:]


def format_pickup(pickup: datetime | None) -> str:
    return (pickup or datetime.now(UTC)).strftime(PICKUP_FORMAT)


def _exception_entry(exc) -> dict:
    return {"exceptionCode": exc.code, "comments": exc.comments}


def _skid_matches(exc, skid_number: str, skid_id: str) -> bool:
    related = (exc.related_skid_id or "").strip()
    return related in (skid_number, skid_id)


def _kanban_entry(scan, item) -> dict:
    return {
        "lineSideAddress": scan.line_side_address or (item.line_side_address if item else None) or "",
        "partNumber": item.part_number if item else scan.part_number,
        "kanban": (item.kanban_number if item else scan.kanban_number) or "",
        "qpc": item.qpc if item else 0,
        "boxNumber": scan.box_number,
        "manifestNumber": item.manifest_number if item else None,
        "rfId": None,
        "kanbanCut": False,
    }


def build_skid_build_payload(order, planned_items, scans, exceptions) -> list[dict]:
    """Skid build request: one entry for the order, skids grouped from the scans.

    Scans are grouped by (skid number, palletization); kanbans within a skid are
    ordered by box number.
    """
    items_by_id = {item.planned_item_id: item for item in planned_items}
    key = lambda s: (s.skid_number or "", s.palletization_code or "")  # noqa: E731

    skids = []
    for (skid_number, palletization), group in groupby(sorted(scans, key=key), key=key):
        group = list(group)
        side = next((s.skid_side for s in group if s.skid_side), "")
        skid_id = f"{skid_number}{side}"
        skids.append(
            {
                "palletization": palletization,
                "skidId": skid_id,
                "kanbans": [
                    _kanban_entry(scan, items_by_id.get(str(scan.planned_item_id)))
                    for scan in sorted(group, key=lambda s: s.box_number or 0)
                ],
                "exceptions": [
                    _exception_entry(e)
                    for e in exceptions
                    if e.level == ExceptionLevel.SKID.value and _skid_matches(e, skid_number, skid_id)
                ]
                or None,
                # The carrier expects a one-element list even without RFID tags.
                "rfidDetails": [{"rfid": "", "type": ""}],
            }
        )

    entry = {
        "order": order.order_number,
        "supplier": order.supplier_code,
        "plant": order.plant_code,
        "dock": order.dock_code,
        "exceptions": [
            _exception_entry(e)
            for e in exceptions
            if not e.related_skid_id and e.level != ExceptionLevel.SKID.value
        ],
        "skids": skids,
    }
    return [compact(entry)]


def build_trailer_payload(route, pickup_at, trailer, orders, scans, exceptions, run: str | None = None) -> dict:
    """Trailer (shipment load) request for every order scanned onto the truck.

    ``trailer`` is a mapping of the trailer details captured on the session.
    Exceptions tied to a skid go on that skid, trailer-level codes go on the
    trailer, and order-level codes go on their order.
    """
    if not orders:
        raise ValueError("A trailer submission needs at least one order")
    trailer = trailer or {}
    route_code, parsed_run = split_route_run(route)
    pickup = format_pickup(pickup_at)

    trailer_exceptions = [
        _exception_entry(e) for e in exceptions if not e.related_skid_id and e.level == ExceptionLevel.TRAILER.value
    ]

    order_entries = []
    for order in orders:
        order_scans = [s for s in scans if str(s.order_id) == order.order_id]
        order_exceptions = [e for e in exceptions if str(e.order_id) == order.order_id]
        skid_entries = []
        for scan in order_scans:
            skid_id = f"{scan.skid_number}{scan.skid_side or ''}"
            skid_entries.append(
                {
                    "skidId": scan.skid_number,
                    "palletization": scan.palletization_code or "",
                    "skidCut": bool(scan.skid_cut),
                    "exceptions": [
                        _exception_entry(e) for e in order_exceptions if _skid_matches(e, scan.skid_number, skid_id)
                    ],
                }
            )
        order_entries.append(
            {
                "order": order.order_number,
                "supplier": order.supplier_code,
                "plant": order.plant_code,
                "dock": order.dock_code,
                "pickUp": pickup,
                "exceptions": [
                    _exception_entry(e)
                    for e in order_exceptions
                    if not e.related_skid_id and e.level == ExceptionLevel.ORDER.value
                ],
                "skids": skid_entries,
            }
        )

    payload = {
        "supplier": orders[0].supplier_code,
        "route": route_code,
        "run": run or parsed_run,
        "trailerNumber": trailer.get("trailer_number"),
        "dropHook": False,
        "sealNumber": trailer.get("seal_number"),
        "lpCode": trailer.get("lp_code"),
        "driverTeamFirstName": trailer.get("driver_first_name"),
        "driverTeamLastName": trailer.get("driver_last_name"),
        "supplierTeamFirstName": trailer.get("supplier_first_name"),
        "supplierTeamLastName": trailer.get("supplier_last_name"),
        "exceptions": trailer_exceptions,
        "orders": order_entries,
    }
    return compact(payload)
