"""Plan repository backed by the Order aggregate in the active domain."""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from scanning.plan.order import Order
from scanning.plan.port import OrderSummary, PlannedItemRef, PlannedSkidRef, PlanRepository


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def same_pickup(left: datetime | None, right: datetime | None) -> bool:
    """Pickup times match to the minute, the resolution the carrier uses."""
    if left is None or right is None:
        return left is right
    return _as_utc(left).replace(second=0, microsecond=0) == _as_utc(right).replace(second=0, microsecond=0)


def _summary(order: Order) -> OrderSummary:
    return OrderSummary(
        order_id=str(order.id),
        order_number=order.order_number,
        dock_code=order.dock_code,
        supplier_code=order.supplier_code,
        plant_code=order.plant_code,
        status=order.status,
        route=order.route,
        planned_pickup=_as_utc(order.planned_pickup),
        build_completed_at=_as_utc(order.build_completed_at),
        build_confirmation_number=order.build_confirmation_number,
        load_completed_at=_as_utc(order.load_completed_at),
        load_confirmation_number=order.load_confirmation_number,
        is_build_complete=order.is_build_complete,
        is_shipped=order.is_shipped,
    )


class DomainPlanRepository(PlanRepository):
    def _orders(self, **filters) -> list[Order]:
        repo = current_domain.repository_for(Order)
        if filters:
            return repo._dao.query.filter(**filters).limit(None).all().items
        return repo._dao.query.limit(None).all().items

    def _load(self, order_id: str) -> Order | None:
        try:
            return current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError:
            return None

    def get_order(self, order_number: str, dock_code: str) -> OrderSummary | None:
        orders = self._orders(order_number=order_number.strip(), dock_code=dock_code.strip())
        return _summary(orders[0]) if orders else None

    def get_order_by_id(self, order_id: str) -> OrderSummary | None:
        order = self._load(order_id)
        return _summary(order) if order else None

    def get_planned_items(self, order_id: str) -> list[PlannedItemRef]:
        order = self._load(order_id)
        if order is None:
            return []
        return [
            PlannedItemRef(
                planned_item_id=str(item.id),
                order_id=str(order.id),
                part_number=item.part_number,
                kanban_number=item.kanban_number,
                total_boxes_planned=item.total_boxes_planned,
                qpc=item.qpc or 0,
                palletization_code=item.palletization_code,
                manifest_number=item.manifest_number,
                line_side_address=item.line_side_address,
            )
            for item in order.items
        ]

    def get_planned_skids(self, *, order_id: str | None = None, route: str | None = None) -> list[PlannedSkidRef]:
        if order_id is not None:
            order = self._load(order_id)
            orders = [order] if order else []
        elif route is not None:
            orders = self._orders(route=route)
        else:
            raise ValueError("Either order_id or route is required")

        return [
            PlannedSkidRef(
                planned_skid_id=str(skid.id),
                order_id=str(order.id),
                order_number=order.order_number,
                skid_number=skid.skid_number,
                skid_side=skid.skid_side,
                palletization_code=skid.palletization_code,
                route=skid.route or order.route,
            )
            for order in orders
            for skid in order.skids
        ]

    def get_orders_on_route(
        self, route: str, supplier_code: str | None = None, pickup: datetime | None = None
    ) -> list[OrderSummary]:
        orders = self._orders(route=route)
        if supplier_code:
            orders = [o for o in orders if o.supplier_code == supplier_code]
        if pickup is not None:
            orders = [o for o in orders if same_pickup(o.planned_pickup, pickup)]
        return sorted((_summary(o) for o in orders), key=lambda s: (s.order_number, s.dock_code))

    def list_orders(self, since: datetime | None = None) -> list[OrderSummary]:
        summaries = [_summary(o) for o in self._orders()]
        if since is not None:
            since = _as_utc(since)
            summaries = [s for s in summaries if s.planned_pickup is None or s.planned_pickup >= since]
        return sorted(summaries, key=lambda s: (s.planned_pickup or datetime.max.replace(tzinfo=UTC), s.order_number))
