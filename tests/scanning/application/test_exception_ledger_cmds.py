import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from scanning.errors import SessionNotActiveError
from scanning.ledger.exception import ShipmentException
from scanning.ledger.lookup import exception_codes_by_order, exceptions_for_order, exceptions_for_session
from scanning.ledger.recording import AddException, RemoveException
from scanning.session.policies import BuildAnchor


def _add(**fields):
    return current_domain.process(AddException(**fields), asynchronous=False)


class TestAddException:
    def test_order_exception_is_recorded(self, order_id):
        exception_id = _add(order_id=order_id, code="12", comments="2 boxes short", created_by="op-1")

        exc = current_domain.repository_for(ShipmentException).get(exception_id)
        assert exc.order_number == "2025011501SH"
        assert exc.level == "order"
        assert exc.comments == "2 boxes short"

    def test_several_codes_on_one_order(self, order_id):
        _add(order_id=order_id, code="10")
        _add(order_id=order_id, code="13")

        assert sorted(e.code for e in exceptions_for_order(order_id)) == ["10", "13"]

    def test_resending_the_same_id_keeps_one_record(self, order_id):
        first = _add(exception_id="exc-retry-1", order_id=order_id, code="12")
        second = _add(exception_id="exc-retry-1", order_id=order_id, code="12")

        assert first == second == "exc-retry-1"
        assert len(exceptions_for_order(order_id)) == 1

    def test_unknown_order(self, order_id):
        with pytest.raises(ObjectNotFoundError):
            _add(order_id="no-such-order", code="12")

    def test_unknown_code(self, order_id):
        with pytest.raises(ValidationError):
            _add(order_id=order_id, code="77")

    def test_skid_code_without_skid(self, order_id):
        with pytest.raises(ValidationError):
            _add(order_id=order_id, code="14")

    def test_session_exception_needs_an_active_session(self, orchestrator, order_id):
        session = orchestrator.start_or_resume(BuildAnchor("2025011501SH", "1A"), "op-1")
        orchestrator.cancel(session.session_id)

        with pytest.raises(SessionNotActiveError):
            _add(order_id=order_id, code="12", session_id=session.session_id)

    def test_build_session_only_takes_its_own_order(self, orchestrator, order_id, plan_order):
        other_order = plan_order(order_number="2025011502SH")
        session = orchestrator.start_or_resume(BuildAnchor("2025011501SH", "1A"), "op-1")

        with pytest.raises(ValidationError):
            _add(order_id=other_order, code="12", session_id=session.session_id)

    def test_session_exceptions_are_listed_by_session(self, orchestrator, order_id):
        session = orchestrator.start_or_resume(BuildAnchor("2025011501SH", "1A"), "op-1")
        _add(order_id=order_id, code="14", related_skid_id="001A", session_id=session.session_id)

        assert [e.related_skid_id for e in exceptions_for_session(session.session_id)] == ["001A"]
        assert orchestrator.get(session.session_id).exceptions[0]["code"] == "14"


class TestRemoveException:
    def test_remove_deletes_the_record(self, order_id):
        exception_id = _add(order_id=order_id, code="12")

        removed = current_domain.process(RemoveException(exception_id=exception_id), asynchronous=False)

        assert removed is True
        assert exceptions_for_order(order_id) == []

    def test_removing_twice_is_a_no_op(self, order_id):
        exception_id = _add(order_id=order_id, code="12")
        current_domain.process(RemoveException(exception_id=exception_id), asynchronous=False)

        assert current_domain.process(RemoveException(exception_id=exception_id), asynchronous=False) is False

    def test_exceptions_of_completed_sessions_are_frozen(
        self, orchestrator, order_id, manifest_barcode, kanban_barcode
    ):
        session = orchestrator.start_or_resume(BuildAnchor("2025011501SH", "1A"), "op-1")
        orchestrator.record_scan(session.session_id, manifest=manifest_barcode(), kanban=kanban_barcode())
        exception_id = orchestrator.add_exception(order_id=order_id, code="12", session_id=session.session_id)
        orchestrator.complete(session.session_id)

        with pytest.raises(SessionNotActiveError):
            orchestrator.remove_exception(exception_id)


class TestExceptionCodesByOrder:
    def test_codes_are_grouped_by_order(self, order_id, plan_order):
        other_order = plan_order(order_number="2025011502SH")
        _add(order_id=order_id, code="12")
        _add(order_id=order_id, code="10")

        codes = exception_codes_by_order([order_id, other_order])

        assert sorted(codes[order_id]) == ["10", "12"]
        assert codes[other_order] == []

    def test_only_requested_orders_are_read(self, order_id, plan_order):
        unrequested = plan_order(order_number="2025011503SH")
        _add(order_id=order_id, code="12")
        _add(order_id=unrequested, code="10")

        codes = exception_codes_by_order([order_id])

        assert codes == {order_id: ["12"]}

    def test_no_orders(self):
        assert exception_codes_by_order([]) == {}
