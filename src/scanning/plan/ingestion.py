"""Order ingestion — command and handler.

The upload pipeline (spreadsheets, PDFs) is outside this service; it hands
over each parsed order through ``RegisterOrder``.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from scanning.barcode.rules import validate_order_header
from scanning.domain import scanning
from scanning.plan.order import Order

logger = structlog.get_logger(__name__)


@scanning.command(part_of="Order")
class RegisterOrder:
    """Register a planned order with its kanban lines and skids."""

    order_number = String(required=True, max_length=20)
    dock_code = String(required=True, max_length=3)
    supplier_code = String(required=True, max_length=5)
    plant_code = String(required=True, max_length=5)
    route = String(max_length=20)
    planned_pickup = DateTime()
    mros = String(max_length=2)
    upload_id = Identifier()
    items = Text(required=True)  # JSON list of planned item dicts
    skids = Text()  # JSON list of planned skid dicts


@scanning.command_handler(part_of=Order)
class RegisterOrderHandler:
    @handle(RegisterOrder)
    def register_order(self, command):
        validate_order_header(command.order_number, command.supplier_code, command.plant_code, command.dock_code)

        repo = current_domain.repository_for(Order)
        existing = repo._dao.query.filter(order_number=command.order_number, dock_code=command.dock_code).all()
        if existing.items:
            raise ValidationError(
                {"order_number": [f"Order {command.order_number} is already registered for dock {command.dock_code}"]}
            )

        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        skids_data = json.loads(command.skids) if isinstance(command.skids, str) else (command.skids or [])
        order = Order.register(
            order_number=command.order_number,
            dock_code=command.dock_code,
            supplier_code=command.supplier_code,
            plant_code=command.plant_code,
            items_data=items_data,
            skids_data=skids_data,
            route=command.route,
            planned_pickup=command.planned_pickup,
            mros=command.mros,
            upload_id=command.upload_id,
        )
        repo.add(order)
        logger.info(
            "Order registered",
            order_id=str(order.id),
            order_number=order.order_number,
            dock_code=order.dock_code,
            item_count=len(items_data),
            skid_count=len(skids_data),
        )
        return str(order.id)
