"""Exception ledger — add/remove commands and handler.

Adding is unconditional for any known code and order. Re-sending an add with
the same exception id returns the existing record instead of a second copy.
Removal is a hard delete; removing an id that no longer exists is a no-op.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from scanning.domain import scanning
from scanning.ledger.exception import MAX_COMMENT_LENGTH, ShipmentException
from scanning.plan import get_plan_repository
from scanning.session.session import ScanSession

logger = structlog.get_logger(__name__)


@scanning.command(part_of="ShipmentException")
class AddException:
    """Record a coded exception against an order, optionally within a session."""

    exception_id = Identifier()
    order_id = Identifier(required=True)
    code = String(required=True, max_length=10)
    session_id = Identifier()
    related_skid_id = String(max_length=50)
    comments = String(max_length=MAX_COMMENT_LENGTH)
    created_by = String(max_length=100)


@scanning.command(part_of="ShipmentException")
class RemoveException:
    """Delete a recorded exception."""

    exception_id = Identifier(required=True)


def _open_session(session_id: str) -> ScanSession:
    session = current_domain.repository_for(ScanSession).get(session_id)
    session.assert_active()
    return session


@scanning.command_handler(part_of=ShipmentException)
class ExceptionLedgerHandler:
    @handle(AddException)
    def add_exception(self, command):
        repo = current_domain.repository_for(ShipmentException)
        if command.exception_id:
            try:
                existing = repo.get(command.exception_id)
            except ObjectNotFoundError:
                existing = None
            if existing is not None:
                return str(existing.id)

        order = get_plan_repository().get_order_by_id(str(command.order_id))
        if order is None:
            raise ObjectNotFoundError(f"Order {command.order_id} does not exist")

        if command.session_id:
            session = _open_session(str(command.session_id))
            if session.order_id and str(session.order_id) != order.order_id:
                raise ValidationError(
                    {"order_id": [f"Order {order.order_number} is not part of session {session.id}"]}
                )

        exc = ShipmentException.record(
            order_id=order.order_id,
            order_number=order.order_number,
            code=command.code,
            created_by=command.created_by,
            session_id=str(command.session_id) if command.session_id else None,
            related_skid_id=command.related_skid_id,
            comments=command.comments,
            exception_id=str(command.exception_id) if command.exception_id else None,
        )
        repo.add(exc)
        logger.info(
            "Exception recorded",
            exception_id=str(exc.id),
            order_number=order.order_number,
            code=exc.code,
            level=exc.level,
            session_id=exc.session_id,
        )
        return str(exc.id)

    @handle(RemoveException)
    def remove_exception(self, command):
        repo = current_domain.repository_for(ShipmentException)
        try:
            exc = repo.get(command.exception_id)
        except ObjectNotFoundError:
            logger.info("Exception already removed", exception_id=str(command.exception_id))
            return False

        if exc.session_id:
            _open_session(str(exc.session_id))

        repo._dao.delete(exc)
        logger.info("Exception removed", exception_id=str(exc.id), order_id=str(exc.order_id), code=exc.code)
        return True
