"""Order progress follows the scan sessions.

The first accepted scan moves an order into building or loading, a carrier
confirmation stamps the stage, and restarting a build session puts the order
back to planned.
"""

import json

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from scanning.domain import scanning
from scanning.plan.order import Order, OrderStage
from scanning.session.events import ScanRecorded, SessionCompleted, SessionRestarted
from scanning.session.session import WorkflowKind

logger = structlog.get_logger(__name__)

_STAGE_FOR_KIND = {
    WorkflowKind.BUILD.value: OrderStage.BUILD,
    WorkflowKind.LOAD.value: OrderStage.LOAD,
    WorkflowKind.PRE_SHIPMENT.value: OrderStage.LOAD,
}


def _load(order_id) -> Order | None:
    try:
        return current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        logger.warning("Order referenced by session not found", order_id=str(order_id))
        return None


@scanning.event_handler(part_of=Order, stream_category="scanning::scan_session")
class OrderProgressEventHandler:
    """Keeps order status in step with session events."""

    @handle(ScanRecorded)
    def on_scan_recorded(self, event: ScanRecorded) -> None:
        if not event.order_id:
            return
        order = _load(event.order_id)
        if order is None:
            return
        previous = order.status
        if _STAGE_FOR_KIND[event.workflow_kind] == OrderStage.BUILD:
            order.mark_building()
        else:
            order.mark_loading()
        if order.status != previous:
            current_domain.repository_for(Order).add(order)
            logger.info("Order status changed", order_number=order.order_number, status=order.status)

    @handle(SessionCompleted)
    def on_session_completed(self, event: SessionCompleted) -> None:
        stage = _STAGE_FOR_KIND[event.workflow_kind]
        repo = current_domain.repository_for(Order)
        for order_id in json.loads(event.order_ids):
            order = _load(order_id)
            if order is None:
                continue
            order.complete_stage(stage, event.confirmation_number, event.completed_at)
            repo.add(order)
            logger.info(
                "Order stage confirmed",
                order_number=order.order_number,
                stage=stage.value,
                confirmation_number=event.confirmation_number,
            )

    @handle(SessionRestarted)
    def on_session_restarted(self, event: SessionRestarted) -> None:
        if event.workflow_kind != WorkflowKind.BUILD.value or not event.order_id:
            return
        order = _load(event.order_id)
        if order is None:
            return
        order.reopen_build()
        current_domain.repository_for(Order).add(order)
