"""Fixed-position barcode decoders for manifest and kanban labels."""

from scanning.barcode.kanban import (
    InternalKanbanFields,
    KanbanFields,
    decode_internal_kanban,
    decode_kanban,
    normalize_part_number,
)
from scanning.barcode.manifest import ManifestFields, decode_manifest, encode_manifest

__all__ = [
    "InternalKanbanFields",
    "KanbanFields",
    "ManifestFields",
    "decode_internal_kanban",
    "decode_kanban",
    "decode_manifest",
    "encode_manifest",
    "normalize_part_number",
]
