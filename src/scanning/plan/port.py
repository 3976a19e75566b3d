"""Plan repository port — read-only view of planned orders.

The session engine asks this port what is expected; it never writes through
it. Adapters return immutable snapshots so a validator works on a consistent
picture for the duration of one call.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class OrderSummary:
    order_id: str
    order_number: str
    dock_code: str
    supplier_code: str
    plant_code: str
    status: str
    route: str | None = None
    planned_pickup: datetime | None = None
    build_completed_at: datetime | None = None
    build_confirmation_number: str | None = None
    load_completed_at: datetime | None = None
    load_confirmation_number: str | None = None
    is_build_complete: bool = False
    is_shipped: bool = False


@dataclass(frozen=True)
class PlannedItemRef:
    planned_item_id: str
    order_id: str
    part_number: str
    kanban_number: str | None
    total_boxes_planned: int
    qpc: int = 0
    palletization_code: str | None = None
    manifest_number: str | None = None
    line_side_address: str | None = None


@dataclass(frozen=True)
class PlannedSkidRef:
    planned_skid_id: str
    order_id: str
    order_number: str
    skid_number: str
    skid_side: str | None = None
    palletization_code: str | None = None
    route: str | None = None

    @property
    def skid_id(self) -> str:
        return f"{self.skid_number}{self.skid_side or ''}"


class PlanRepository(ABC):
    """Abstract interface for reading the plan."""

    @abstractmethod
    def get_order(self, order_number: str, dock_code: str) -> OrderSummary | None:
        """Find an order by its business key."""
        ...

    @abstractmethod
    def get_order_by_id(self, order_id: str) -> OrderSummary | None:
        ...

    @abstractmethod
    def get_planned_items(self, order_id: str) -> list[PlannedItemRef]:
        """Kanban lines expected on an order."""
        ...

    @abstractmethod
    def get_planned_skids(self, *, order_id: str | None = None, route: str | None = None) -> list[PlannedSkidRef]:
        """Skids expected for one order, or for every order on a route."""
        ...

    @abstractmethod
    def get_orders_on_route(
        self, route: str, supplier_code: str | None = None, pickup: datetime | None = None
    ) -> list[OrderSummary]:
        """Orders that leave on the same truck."""
        ...

    @abstractmethod
    def list_orders(self, since: datetime | None = None) -> list[OrderSummary]:
        """Orders with a planned pickup at or after ``since`` (all when None)."""
        ...
