"""Dock board reader — assembles the dock monitor from the plan and the ledger."""

from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from scanning.ledger.lookup import exception_codes_by_order
from scanning.plan import get_plan_repository
from scanning.projections.dock_status import DockBoard, build_dock_board
from scanning.settings import DockMonitorSettings

logger = structlog.get_logger(__name__)


def read_dock_board(settings: DockMonitorSettings | None = None, now: datetime | None = None) -> DockBoard:
    settings = settings or DockMonitorSettings.from_domain(current_domain)
    now = now or datetime.now(UTC)

    orders = get_plan_repository().list_orders(since=now - settings.lookback)
    codes = exception_codes_by_order(o.order_id for o in orders)
    board = build_dock_board(orders, codes, settings, now)

    logger.info(
        "Dock board computed",
        shipments=len(board.shipments),
        orders=board.total_orders,
        display_mode=settings.display_mode.value,
    )
    return board
