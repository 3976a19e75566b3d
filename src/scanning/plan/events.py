"""Order domain events."""

from protean.fields import DateTime, Identifier, Integer, String

from scanning.domain import scanning


@scanning.event(part_of="Order")
class OrderRegistered:
    """A planned order was received from the upload pipeline."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    dock_code = String(required=True)
    route = String()
    planned_pickup = DateTime()
    item_count = Integer(required=True)
    skid_count = Integer(required=True)
    registered_at = DateTime(required=True)


@scanning.event(part_of="Order")
class OrderStageCompleted:
    """The carrier confirmed the skid build or the shipment load of an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    stage = String(required=True)
    confirmation_number = String(required=True)
    completed_at = DateTime(required=True)
