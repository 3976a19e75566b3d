"""Shipment exception events."""

from protean.fields import DateTime, Identifier, String

from scanning.domain import scanning


@scanning.event(part_of="ShipmentException")
class ExceptionRecorded:
    """An operator recorded a coded exception against an order or skid."""

    __version__ = 1

    exception_id = Identifier(required=True)
    order_id = Identifier(required=True)
    session_id = Identifier()
    code = String(required=True)
    level = String(required=True)
    related_skid_id = String()
    recorded_at = DateTime(required=True)
