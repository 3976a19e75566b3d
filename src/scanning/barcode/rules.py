"""Field format rules shared by the decoders, the validator and order ingestion.

Each check returns an error message, or ``None`` when the value is acceptable.
"""

import re
from datetime import datetime

from protean.exceptions import ValidationError

MIN_BOX_NUMBER = 1
MAX_BOX_NUMBER = 999

# Plants that use alphanumeric order numbers instead of the dated format.
ALPHANUMERIC_ORDER_PLANTS = frozenset({"21TMC"})

_SUPPLIER_CODE = re.compile(r"^[a-zA-Z0-9]{5}$")
_PLANT_CODE = re.compile(r"^[0-9]{2}[A-Z]{3}$")
_DOCK_CODE = re.compile(r"^[a-zA-Z0-9]{1,3}$")
_NO_SPECIAL_CHARS = re.compile(r"^[a-zA-Z0-9-]+$")
_ORDER_SUFFIX = re.compile(r"^[A-Z]{2}$")


def check_box_number(box_number: int) -> str | None:
    if box_number < MIN_BOX_NUMBER or box_number > MAX_BOX_NUMBER:
        return f"Box number must be between {MIN_BOX_NUMBER} and {MAX_BOX_NUMBER}"
    return None


def check_supplier_code(supplier_code: str) -> str | None:
    if not supplier_code or not _SUPPLIER_CODE.match(supplier_code):
        return "Supplier code must be 5 alphanumeric characters"
    return None


def check_plant_code(plant_code: str) -> str | None:
    if not plant_code or not _PLANT_CODE.match(plant_code):
        return "Plant code must be 2 digits followed by 3 uppercase letters"
    return None


def check_dock_code(dock_code: str) -> str | None:
    if not dock_code or not _DOCK_CODE.match(dock_code):
        return "Dock code must be 1 to 3 alphanumeric characters"
    return None


def check_order_number(order_number: str, plant_code: str | None = None) -> str | None:
    if not order_number:
        return "Order number is required"
    if not _NO_SPECIAL_CHARS.match(order_number):
        return "Order number must not contain special characters"
    if plant_code in ALPHANUMERIC_ORDER_PLANTS:
        return None
    if len(order_number) not in (10, 12):
        return "Order number must be 10 or 12 characters"
    try:
        datetime.strptime(order_number[:8], "%Y%m%d")
    except ValueError:
        return "Order number characters 1-8 must be a YYYYMMDD date"
    if not order_number[8:10].isdigit():
        return "Order number characters 9-10 must be numeric"
    if len(order_number) == 12 and not _ORDER_SUFFIX.match(order_number[10:]):
        return "Order number characters 11-12 must be uppercase letters"
    return None


def palletization_matches(scanned: str | None, planned: str | None) -> bool:
    """Palletization codes must agree, unless either side is blank."""
    scanned, planned = (scanned or "").strip(), (planned or "").strip()
    if not scanned or not planned:
        return True
    return scanned == planned


def validate_order_header(order_number: str, supplier_code: str, plant_code: str, dock_code: str) -> None:
    """Raise ``ValidationError`` listing every malformed order header field."""
    errors = {}
    for field_name, message in (
        ("order_number", check_order_number(order_number, plant_code)),
        ("supplier_code", check_supplier_code(supplier_code)),
        ("plant_code", check_plant_code(plant_code)),
        ("dock_code", check_dock_code(dock_code)),
    ):
        if message:
            errors[field_name] = [message]
    if errors:
        raise ValidationError(errors)
