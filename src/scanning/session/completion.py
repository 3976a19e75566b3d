"""CompleteSession — submit the session to the carrier and close it on confirmation.

Nothing is changed until the carrier confirms. A failed or timed-out
submission leaves the session active and raises ``CarrierSubmissionError``
with the carrier's own errors.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from scanning.carrier import get_carrier
from scanning.domain import scanning
from scanning.errors import CarrierSubmissionError
from scanning.ledger.lookup import exceptions_for_order, exceptions_for_session
from scanning.plan import get_plan_repository
from scanning.session.policies import policy_for
from scanning.session.session import ScanSession

logger = structlog.get_logger(__name__)


@scanning.command(part_of="ScanSession")
class CompleteSession:
    session_id = Identifier(required=True)
    completed_by = String(max_length=100)


def submission_exceptions(session: ScanSession, order_ids) -> list:
    """Exceptions recorded in the session plus order exceptions recorded outside any session."""
    collected = {str(e.id): e for e in exceptions_for_session(str(session.id))}
    for order_id in order_ids:
        for exc in exceptions_for_order(order_id):
            if not exc.session_id:
                collected.setdefault(str(exc.id), exc)
    return sorted(collected.values(), key=lambda e: e.created_at)


@scanning.command_handler(part_of=ScanSession)
class CompleteSessionHandler:
    @handle(CompleteSession)
    def complete_session(self, command):
        repo = current_domain.repository_for(ScanSession)
        session = repo.get(command.session_id)
        session.assert_active()

        if not session.scans:
            raise ValidationError({"scans": ["Nothing has been scanned in this session"]})

        policy = policy_for(session.kind)
        if policy.requires_trailer and not (session.trailer and session.trailer.trailer_number):
            raise ValidationError({"trailer_number": ["Trailer number is required before completing a load"]})

        order_ids = policy.order_ids(session)
        exceptions = submission_exceptions(session, order_ids)

        try:
            response = policy.submit(session, get_plan_repository(), exceptions, get_carrier())
        except CarrierSubmissionError as exc:
            logger.warning(
                "Carrier submission failed",
                session_id=str(session.id),
                workflow_kind=session.workflow_kind,
                kind=exc.kind.value,
                status_code=exc.status_code,
                detail=exc.message,
            )
            raise

        session.complete(response.confirmation_number, order_ids, completed_by=command.completed_by)
        repo.add(session)
        logger.info(
            "Session completed",
            session_id=str(session.id),
            workflow_kind=session.workflow_kind,
            confirmation_number=response.confirmation_number,
            order_count=len(order_ids),
        )
        return {
            "session_id": str(session.id),
            "confirmation_number": response.confirmation_number,
            "order_ids": order_ids,
        }
