"""Skid build sessions driven through the orchestrator.

Each test registers an order through the ingestion command, opens a build
session for it and drives scans through the command handlers, checking both
the session store and the order's progress.
"""

import pytest
from protean import current_domain
from protean.exceptions import InvalidStateError, ObjectNotFoundError, ValidationError
from scanning.errors import DecodeError, RejectionReason
from scanning.plan.order import Order, OrderStatus
from scanning.session.policies import BuildAnchor
from scanning.session.session import ScanSession, SessionStatus


@pytest.fixture()
def session(orchestrator, order_id):
    return orchestrator.start_or_resume(BuildAnchor("2025011501SH", "1A"), "op-1")


def _scan(orchestrator, session, manifest_barcode, kanban_barcode, box_number=1, **manifest_fields):
    return orchestrator.record_scan(
        session.session_id,
        manifest=manifest_barcode(**manifest_fields),
        kanban=kanban_barcode(box_number=box_number),
        operator_id="op-1",
    )


class TestStartBuildSession:
    def test_new_session_for_a_planned_order(self, session, order_id):
        assert session.status == SessionStatus.ACTIVE.value
        assert session.workflow_kind == "build"
        assert session.anchor_key == "2025011501SH|1A"
        assert session.order_number == "2025011501SH"
        assert session.route == "YUAN03"
        assert session.is_resumed is False

    def test_starting_twice_resumes_the_open_session(self, orchestrator, session):
        again = orchestrator.start_or_resume(BuildAnchor("2025011501SH", "1A"), "op-2")

        assert again.session_id == session.session_id
        assert again.is_resumed is True
        assert len(current_domain.repository_for(ScanSession)._dao.query.all().items) == 1

    def test_anchor_is_trimmed(self, orchestrator, session):
        again = orchestrator.start_or_resume(BuildAnchor(" 2025011501SH ", "1A "), "op-1")

        assert again.session_id == session.session_id

    def test_unknown_order(self, orchestrator, order_id):
        with pytest.raises(ObjectNotFoundError):
            orchestrator.start_or_resume(BuildAnchor("2025011599SH", "1A"), "op-1")

    def test_draft_session_is_resumed_active(self, orchestrator, session):
        orchestrator.save_draft(session.session_id, draft_data='{"step": 2}', current_screen=2)

        resumed = orchestrator.start_or_resume(BuildAnchor("2025011501SH", "1A"), "op-3")

        assert resumed.session_id == session.session_id
        assert resumed.status == SessionStatus.ACTIVE.value
        assert resumed.operator_id == "op-3"
        assert resumed.draft_data == '{"step": 2}'

    def test_confirmed_build_cannot_be_started_again(self, orchestrator, order_id, complete_build):
        complete_build(order_id)

        with pytest.raises(InvalidStateError):
            orchestrator.start_or_resume(BuildAnchor("2025011501SH", "1A"), "op-1")


class TestRecordBuildScans:
    def test_accepted_scan_reports_progress(self, orchestrator, session, manifest_barcode, kanban_barcode):
        outcome = _scan(orchestrator, session, manifest_barcode, kanban_barcode)

        assert outcome.accepted is True
        assert outcome.scan_id is not None
        assert outcome.scanned_count == 1
        assert outcome.total_count == 5
        assert outcome.remaining_count == 4

    def test_first_scan_moves_order_into_building(
        self, orchestrator, session, order_id, manifest_barcode, kanban_barcode
    ):
        _scan(orchestrator, session, manifest_barcode, kanban_barcode)

        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == OrderStatus.SKID_BUILDING.value

    def test_five_distinct_boxes_complete_the_item(self, orchestrator, session, manifest_barcode, kanban_barcode):
        outcomes = [_scan(orchestrator, session, manifest_barcode, kanban_barcode, box_number=b) for b in range(1, 6)]

        assert [o.scanned_count for o in outcomes] == [1, 2, 3, 4, 5]
        assert outcomes[-1].is_complete is True
        assert len(orchestrator.get(session.session_id).scans) == 5

    def test_same_box_twice_records_once(self, orchestrator, session, manifest_barcode, kanban_barcode):
        first = _scan(orchestrator, session, manifest_barcode, kanban_barcode, box_number=2)
        second = _scan(orchestrator, session, manifest_barcode, kanban_barcode, box_number=2)

        assert first.accepted is True
        assert second.accepted is False
        assert second.reason == RejectionReason.DUPLICATE_SCAN
        assert second.scanned_count == 1
        assert second.total_count == 5
        assert second.remaining_count == 4
        assert len(orchestrator.get(session.session_id).scans) == 1

    def test_malformed_manifest_raises_and_records_nothing(self, orchestrator, session, kanban_barcode):
        with pytest.raises(DecodeError):
            orchestrator.record_scan(session.session_id, manifest="TOO-SHORT", kanban=kanban_barcode())

        assert orchestrator.get(session.session_id).scans == []

    def test_missing_kanban_is_a_decode_error(self, orchestrator, session, manifest_barcode):
        with pytest.raises(DecodeError) as exc_info:
            orchestrator.record_scan(session.session_id, manifest=manifest_barcode())

        assert exc_info.value.field == "kanban"

    def test_manifest_for_another_order_is_rejected(self, orchestrator, session, manifest_barcode, kanban_barcode):
        outcome = _scan(orchestrator, session, manifest_barcode, kanban_barcode, order_number="2025011502SH")

        assert outcome.accepted is False
        assert outcome.reason == RejectionReason.ORDER_NOT_FOUND

    def test_palletization_mismatch_is_rejected(self, orchestrator, session, manifest_barcode, kanban_barcode):
        outcome = _scan(orchestrator, session, manifest_barcode, kanban_barcode, palletization_code="B2")

        assert outcome.reason == RejectionReason.PALLETIZATION_MISMATCH
        assert "B2" in outcome.message

    def test_scanned_serial_is_refused_on_another_order(
        self, orchestrator, session, plan_order, manifest_barcode, kanban_barcode, internal_kanban_barcode
    ):
        first = orchestrator.record_scan(
            session.session_id,
            manifest=manifest_barcode(),
            kanban=kanban_barcode(box_number=1),
            internal_kanban=internal_kanban_barcode(serial="SER0042"),
        )
        plan_order(order_number="2025011502SH")
        other = orchestrator.start_or_resume(BuildAnchor("2025011502SH", "1A"), "op-1")

        second = orchestrator.record_scan(
            other.session_id,
            manifest=manifest_barcode(order_number="2025011502SH"),
            kanban=kanban_barcode(box_number=1),
            internal_kanban=internal_kanban_barcode(serial="SER0042"),
        )

        assert first.accepted is True
        assert second.accepted is False
        assert second.reason == RejectionReason.DUPLICATE_SERIAL

    def test_scanned_serial_is_kept_on_the_record(
        self, orchestrator, session, manifest_barcode, kanban_barcode, internal_kanban_barcode
    ):
        orchestrator.record_scan(
            session.session_id,
            manifest=manifest_barcode(),
            kanban=kanban_barcode(),
            internal_kanban=internal_kanban_barcode(serial="SER0077"),
        )

        scan = orchestrator.get(session.session_id).scans[0]
        assert scan["internal_kanban_serial"] == "SER0077"
        assert scan["skid_number"] == "001"
        assert scan["skid_side"] == "A"


class TestCompleteBuildSession:
    def test_confirmation_closes_session_and_stamps_order(
        self, orchestrator, session, order_id, fake_carrier, manifest_barcode, kanban_barcode
    ):
        fake_carrier.configure(confirmation_number="SKID-0001")
        _scan(orchestrator, session, manifest_barcode, kanban_barcode)

        result = orchestrator.complete(session.session_id, operator_id="op-1")

        assert result.confirmation_number == "SKID-0001"
        assert result.order_ids == [order_id]
        view = orchestrator.get(session.session_id)
        assert view.status == SessionStatus.COMPLETED.value
        assert view.confirmation_number == "SKID-0001"
        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == OrderStatus.SKID_BUILT.value
        assert order.build_confirmation_number == "SKID-0001"

    def test_submission_is_a_skid_build(self, orchestrator, session, fake_carrier, manifest_barcode, kanban_barcode):
        _scan(orchestrator, session, manifest_barcode, kanban_barcode, box_number=2)
        _scan(orchestrator, session, manifest_barcode, kanban_barcode, box_number=1)

        orchestrator.complete(session.session_id)

        resource, payload = fake_carrier.calls[0]
        assert resource == "skid"
        assert payload[0]["order"] == "2025011501SH"
        assert [k["boxNumber"] for k in payload[0]["skids"][0]["kanbans"]] == [1, 2]

    def test_completed_anchor_can_not_be_reopened(
        self, orchestrator, session, fake_carrier, manifest_barcode, kanban_barcode
    ):
        _scan(orchestrator, session, manifest_barcode, kanban_barcode)
        orchestrator.complete(session.session_id)

        with pytest.raises(InvalidStateError):
            orchestrator.start_or_resume(BuildAnchor("2025011501SH", "1A"), "op-1")

    def test_nothing_scanned_cannot_complete(self, orchestrator, session, fake_carrier):
        with pytest.raises(ValidationError):
            orchestrator.complete(session.session_id)

        assert fake_carrier.calls == []
