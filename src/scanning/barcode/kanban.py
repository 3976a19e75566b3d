"""Supplier kanban (200+ characters) and internal kanban decoders."""

from dataclasses import dataclass

from scanning.errors import DecodeError

KANBAN_MIN_LENGTH = 200
INTERNAL_KANBAN_MIN_LENGTH = 17
INTERNAL_PART_NUMBER_LENGTH = 12
INTERNAL_KANBAN_CODE_LENGTH = 4

# Field name -> (start, end). Positions follow the printed label format.
_KANBAN_LAYOUT = {
    "part_description": (1, 12),
    "part_number_short": (12, 22),
    "supplier_code": (31, 36),
    "dock_code": (36, 38),
    "kanban_number": (38, 42),
    "part_number": (42, 54),
    "line_side_address": (54, 64),
    "store_address": (64, 74),
    "quantity": (74, 79),
    "supplier_name": (79, 99),
    "load_id_1": (99, 108),
    "load_id_2": (108, 117),
    "plan_unload_date": (117, 125),
    "ship_date": (125, 133),
    "ship_time": (133, 137),
    "control_code": (137, 139),
    "delivery_order": (139, 149),
    "box_number": (151, 155),
    "total_boxes": (155, 159),
    "plant_code": (159, 164),
    "route": (183, 192),
    "container_type": (193, 195),
    "pallet_code": (195, 197),
    "control_field": (197, 202),
    "status": (207, 208),
    "zone_area": (209, 211),
}

_NUMERIC_FIELDS = ("quantity", "box_number", "total_boxes")


@dataclass(frozen=True)
class KanbanFields:
    part_description: str
    part_number_short: str
    supplier_code: str
    dock_code: str
    kanban_number: str
    part_number: str
    line_side_address: str
    store_address: str
    quantity: int
    supplier_name: str
    load_id_1: str
    load_id_2: str
    plan_unload_date: str
    ship_date: str
    ship_time: str
    control_code: str
    delivery_order: str
    box_number: int
    total_boxes: int
    plant_code: str
    route: str
    container_type: str
    pallet_code: str
    control_field: str
    status: str
    zone_area: str


@dataclass(frozen=True)
class InternalKanbanFields:
    raw: str
    part_number: str
    kanban_code: str
    serial_number: str


def decode_kanban(raw: str) -> KanbanFields:
    """Decode a supplier kanban label scan.

    Text fields are trimmed. Quantity, box number and total boxes must be
    numeric, anything else is a ``DecodeError`` naming the field.
    """
    if raw is None or len(raw) < KANBAN_MIN_LENGTH:
        raise DecodeError(
            "length",
            detail=f"Kanban must be at least {KANBAN_MIN_LENGTH} characters (got {len(raw or '')})",
        )

    values = {name: raw[start:end].strip() for name, (start, end) in _KANBAN_LAYOUT.items()}
    for name in _NUMERIC_FIELDS:
        if not values[name].isdigit():
            raise DecodeError("field", field=name, detail=f"Kanban {name} '{values[name]}' is not numeric")
        values[name] = int(values[name])
    return KanbanFields(**values)


def decode_internal_kanban(raw: str) -> InternalKanbanFields:
    """Decode the warehouse's own kanban label.

    The first 12 characters are the part number. The rest is the kanban code
    and serial, separated by the first space, or a 4-character code followed
    directly by the serial.
    """
    value = (raw or "").strip()
    if len(value) < INTERNAL_KANBAN_MIN_LENGTH:
        raise DecodeError(
            "length",
            field="internalKanban",
            detail=f"Internal kanban must be at least {INTERNAL_KANBAN_MIN_LENGTH} characters",
        )

    part_number = value[:INTERNAL_PART_NUMBER_LENGTH].strip()
    remainder = value[INTERNAL_PART_NUMBER_LENGTH:].strip()
    if " " in remainder:
        kanban_code, serial = remainder.split(" ", 1)
    else:
        kanban_code = remainder[:INTERNAL_KANBAN_CODE_LENGTH]
        serial = remainder[INTERNAL_KANBAN_CODE_LENGTH:]

    kanban_code, serial = kanban_code.strip(), serial.strip()
    if not part_number or not kanban_code or not serial:
        raise DecodeError("field", field="internalKanban", detail=f"Internal kanban '{value}' is incomplete")
    return InternalKanbanFields(raw=value, part_number=part_number, kanban_code=kanban_code, serial_number=serial)


def normalize_part_number(part_number: str | None) -> str:
    """Compare part numbers with and without dashes: 62730-08201-00 == 627300820100."""
    return (part_number or "").replace("-", "").strip().upper()
