"""Restarting a session discards the exceptions recorded in it."""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from scanning.domain import scanning
from scanning.ledger.exception import ShipmentException
from scanning.ledger.lookup import exceptions_for_session
from scanning.session.events import SessionRestarted

logger = structlog.get_logger(__name__)


@scanning.event_handler(part_of=ShipmentException, stream_category="scanning::scan_session")
class SessionExceptionsEventHandler:
    @handle(SessionRestarted)
    def on_session_restarted(self, event: SessionRestarted) -> None:
        repo = current_domain.repository_for(ShipmentException)
        removed = 0
        for exc in exceptions_for_session(str(event.session_id)):
            repo._dao.delete(exc)
            removed += 1
        if removed:
            logger.info("Session exceptions cleared", session_id=str(event.session_id), removed=removed)
