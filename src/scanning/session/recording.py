"""RecordScan — validate a scan against the plan and append it to the session.

Barcodes are decoded first; a decode failure or a rejected scan raises before
anything is recorded, so the unit of work has nothing to commit.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from scanning.domain import scanning
from scanning.errors import ScanRejectedError
from scanning.plan import get_plan_repository
from scanning.session.policies import RawScan, policy_for
from scanning.session.session import ScanSession
from scanning.settings import ScanSettings

logger = structlog.get_logger(__name__)


@scanning.command(part_of="ScanSession")
class RecordScan:
    session_id = Identifier(required=True)
    manifest = String(max_length=100, sanitize=False)
    kanban = String(max_length=400, sanitize=False)
    internal_kanban = String(max_length=100, sanitize=False)
    skid_cut = Boolean(default=False)
    scanned_by = String(max_length=100)


@scanning.command_handler(part_of=ScanSession)
class RecordScanHandler:
    @handle(RecordScan)
    def record_scan(self, command):
        repo = current_domain.repository_for(ScanSession)
        session = repo.get(command.session_id)
        session.assert_active()

        policy = policy_for(session.kind)
        decision, fields = policy.evaluate(
            session,
            RawScan(
                manifest=command.manifest,
                kanban=command.kanban,
                internal_kanban=command.internal_kanban,
                skid_cut=bool(command.skid_cut),
            ),
            get_plan_repository(),
            ScanSettings.from_domain(current_domain),
            datetime.now(UTC),
        )

        if not decision.accepted:
            logger.warning(
                "Scan rejected",
                session_id=str(session.id),
                workflow_kind=session.workflow_kind,
                reason=decision.reason.value,
                detail=decision.message,
            )
            raise ScanRejectedError(
                decision.reason,
                decision.message,
                order_number=decision.order.order_number if decision.order else None,
                scanned_count=decision.scanned_count,
                total_count=decision.total_count,
            )

        record = session.record_scan(scanned_by=command.scanned_by, **fields)
        repo.add(session)
        logger.info(
            "Scan recorded",
            session_id=str(session.id),
            scan_id=str(record.id),
            order_number=record.order_number,
            skid_number=record.skid_number,
            box_number=record.box_number,
        )
        return {
            "session_id": str(session.id),
            "scan_id": str(record.id),
            "order_number": record.order_number,
            "scanned_count": decision.scanned_count,
            "total_count": decision.total_count,
            "is_complete": decision.is_complete,
        }
