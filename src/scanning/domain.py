"""Scanning bounded context — Skid Build, Shipment Load and Pre-Shipment.

Drives operator scan sessions on handheld scanners from the first barcode to
the carrier's confirmation number. Planned orders come in from the upload
pipeline; the dock monitor reads the same state to flag late shipments.
"""

from protean.domain import Domain

from scanning.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
scanning = Domain(name="scanning")
