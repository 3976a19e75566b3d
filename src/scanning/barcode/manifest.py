"""Skid manifest barcode (44 characters, fixed positions).

Layout::

    [0:5]   plant code          [24:36] load id (space padded)
    [5:10]  supplier code       [36:38] palletization code
    [10:12] dock code           [38:40] MROS
    [12:24] order number        [40:44] skid id (3-digit number + side)
"""

import re
from dataclasses import dataclass

from scanning.errors import DecodeError

MANIFEST_LENGTH = 44

_SLICES = {
    "plant_code": slice(0, 5),
    "supplier_code": slice(5, 10),
    "dock_code": slice(10, 12),
    "raw_order_number": slice(12, 24),
    "raw_load_id": slice(24, 36),
    "palletization_code": slice(36, 38),
    "mros": slice(38, 40),
    "skid_id": slice(40, 44),
}

_SKID_ID = re.compile(r"^(\d{3})([AB])$")


@dataclass(frozen=True)
class ManifestFields:
    plant_code: str
    supplier_code: str
    dock_code: str
    raw_order_number: str
    raw_load_id: str
    palletization_code: str
    mros: str
    skid_id: str

    @property
    def order_number(self) -> str:
        return self.raw_order_number.strip()

    @property
    def load_id(self) -> str:
        return self.raw_load_id.strip()

    @property
    def skid_number(self) -> str:
        return self.skid_id[:3]

    @property
    def skid_side(self) -> str:
        return self.skid_id[3]


def decode_manifest(raw: str) -> ManifestFields:
    """Split a manifest scan into its fields.

    Raises ``DecodeError`` with ``reason="length"`` unless the scan is exactly 44
    characters, and ``reason="field"`` when the skid id is not three digits
    followed by side A or B.
    """
    if raw is None or len(raw) != MANIFEST_LENGTH:
        raise DecodeError(
            "length",
            detail=f"Manifest must be exactly {MANIFEST_LENGTH} characters (got {len(raw or '')})",
        )

    values = {name: raw[s] for name, s in _SLICES.items()}
    if not _SKID_ID.match(values["skid_id"]):
        raise DecodeError(
            "field",
            field="skidId",
            detail=f"Skid id '{values['skid_id']}' must be a 3-digit number followed by side A or B",
        )
    return ManifestFields(**values)


def encode_manifest(fields: ManifestFields) -> str:
    """Reassemble a manifest string from decoded fields."""
    return "".join(getattr(fields, name) for name in _SLICES)
