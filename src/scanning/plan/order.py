"""Order aggregate — what the warehouse expects to build and load.

Orders arrive from the upload pipeline with their planned items (one per
kanban) and planned skids. Scanning never changes the plan; it only stamps
stage progress on the order.

Status progression:
    PLANNED → SKID_BUILDING → SKID_BUILT → SHIPMENT_LOADING → SHIPPED
    SKID_BUILT → READY_TO_SHIP → SHIPMENT_LOADING
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from scanning.domain import scanning
from scanning.plan.events import OrderRegistered, OrderStageCompleted


class OrderStatus(Enum):
    PLANNED = "Planned"
    SKID_BUILDING = "SkidBuilding"
    SKID_BUILT = "SkidBuilt"
    READY_TO_SHIP = "ReadyToShip"
    SHIPMENT_LOADING = "ShipmentLoading"
    SHIPPED = "Shipped"
    SKID_BUILD_ERROR = "SkidBuildError"
    SHIPMENT_ERROR = "ShipmentError"


class OrderStage(Enum):
    BUILD = "build"
    LOAD = "load"


# Statuses from which the truck may be loaded.
BUILD_COMPLETE_STATUSES = frozenset(
    {
        OrderStatus.SKID_BUILT.value,
        OrderStatus.READY_TO_SHIP.value,
        OrderStatus.SHIPMENT_LOADING.value,
        OrderStatus.SHIPPED.value,
    }
)


@scanning.entity(part_of="Order")
class PlannedItem:
    """One kanban line on an order."""

    part_number = String(required=True, max_length=20)
    kanban_number = String(max_length=10)
    qpc = Integer(min_value=0, default=0)
    total_boxes_planned = Integer(required=True, min_value=0)
    palletization_code = String(max_length=2)
    manifest_number = String(max_length=20)
    line_side_address = String(max_length=20)


@scanning.entity(part_of="Order")
class PlannedSkid:
    """A pallet the order is expected to ship on."""

    skid_number = String(required=True, max_length=3)
    skid_side = String(max_length=1)
    palletization_code = String(max_length=2)
    route = String(max_length=20)

    @property
    def skid_id(self) -> str:
        return f"{self.skid_number}{self.skid_side or ''}"


@scanning.aggregate
class Order:
    order_number = String(required=True, max_length=20)
    dock_code = String(required=True, max_length=3)
    supplier_code = String(required=True, max_length=5)
    plant_code = String(required=True, max_length=5)
    route = String(max_length=20)
    planned_pickup = DateTime()
    mros = String(max_length=2)
    upload_id = Identifier()
    status = String(choices=OrderStatus, default=OrderStatus.PLANNED.value)
    items = HasMany(PlannedItem)
    skids = HasMany(PlannedSkid)
    build_completed_at = DateTime()
    build_confirmation_number = String(max_length=100)
    load_completed_at = DateTime()
    load_confirmation_number = String(max_length=100)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(
        cls,
        order_number: str,
        dock_code: str,
        supplier_code: str,
        plant_code: str,
        items_data: list[dict],
        skids_data: list[dict] | None = None,
        route: str | None = None,
        planned_pickup: datetime | None = None,
        mros: str | None = None,
        upload_id: str | None = None,
    ):
        """Register a planned order coming from the upload pipeline."""
        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            dock_code=dock_code,
            supplier_code=supplier_code,
            plant_code=plant_code,
            route=route,
            planned_pickup=planned_pickup,
            mros=mros,
            upload_id=upload_id,
            status=OrderStatus.PLANNED.value,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            order.add_items(PlannedItem(**item_data))
        for skid_data in skids_data or []:
            order.add_skids(PlannedSkid(**skid_data))
        order.raise_(
            OrderRegistered(
                order_id=str(order.id),
                order_number=order_number,
                dock_code=dock_code,
                route=route,
                planned_pickup=planned_pickup,
                item_count=len(items_data),
                skid_count=len(skids_data or []),
                registered_at=now,
            )
        )
        return order

    @property
    def is_build_complete(self) -> bool:
        return self.status in BUILD_COMPLETE_STATUSES

    @property
    def is_shipped(self) -> bool:
        return self.status == OrderStatus.SHIPPED.value or bool(self.load_confirmation_number)

    def mark_building(self) -> None:
        """First accepted build scan moves a planned order into building."""
        if self.status == OrderStatus.PLANNED.value:
            self.status = OrderStatus.SKID_BUILDING.value
            self.updated_at = datetime.now(UTC)

    def mark_loading(self) -> None:
        if self.status in (OrderStatus.SKID_BUILT.value, OrderStatus.READY_TO_SHIP.value):
            self.status = OrderStatus.SHIPMENT_LOADING.value
            self.updated_at = datetime.now(UTC)

    def complete_stage(self, stage: OrderStage, confirmation_number: str, completed_at: datetime) -> None:
        """Stamp a carrier-confirmed stage on the order."""
        if stage == OrderStage.BUILD:
            self.build_completed_at = completed_at
            self.build_confirmation_number = confirmation_number
            self.status = OrderStatus.SKID_BUILT.value
        elif stage == OrderStage.LOAD:
            if self.load_confirmation_number:
                raise ValidationError(
                    {
                        "status": [
                            f"Order {self.order_number} has already been shipped "
                            f"(confirmation {self.load_confirmation_number})"
                        ]
                    }
                )
            if not self.is_build_complete:
                raise ValidationError({"status": [f"Order {self.order_number} has not finished skid build"]})
            self.load_completed_at = completed_at
            self.load_confirmation_number = confirmation_number
            self.status = OrderStatus.SHIPPED.value
        self.updated_at = completed_at
        self.raise_(
            OrderStageCompleted(
                order_id=str(self.id),
                order_number=self.order_number,
                stage=stage.value,
                confirmation_number=confirmation_number,
                completed_at=completed_at,
            )
        )

    def reopen_build(self) -> None:
        """Clear build progress when the operator restarts a build session."""
        if self.build_confirmation_number:
            raise ValidationError(
                {
                    "status": [
                        f"Order {self.order_number} has been confirmed by the carrier "
                        f"(confirmation {self.build_confirmation_number}); restart is not allowed"
                    ]
                }
            )
        if self.status == OrderStatus.SKID_BUILDING.value:
            self.status = OrderStatus.PLANNED.value
            self.updated_at = datetime.now(UTC)
