"""Read helpers over the exception ledger."""

from protean.utils.globals import current_domain

from scanning.ledger.exception import ShipmentException


def _by(**filters) -> list[ShipmentException]:
    repo = current_domain.repository_for(ShipmentException)
    results = repo._dao.query.filter(**filters).limit(None).all().items
    return sorted(results, key=lambda e: e.created_at)


def exceptions_for_order(order_id: str) -> list[ShipmentException]:
    return _by(order_id=str(order_id))


def exceptions_for_session(session_id: str) -> list[ShipmentException]:
    return _by(session_id=str(session_id))


def exception_codes_by_order(order_ids) -> dict[str, list[str]]:
    """Map each order id to the codes recorded against it."""
    wanted = {str(order_id) for order_id in order_ids}
    codes: dict[str, list[str]] = {order_id: [] for order_id in wanted}
    if not wanted:
        return codes
    for exc in _by(order_id__in=sorted(wanted)):
        codes[str(exc.order_id)].append(exc.code)
    return codes
