"""Shared BDD fixtures and step definitions for the Scanning domain."""

from datetime import UTC, datetime

import pytest
from protean import current_domain
from protean.exceptions import InvalidStateError, ValidationError
from pytest_bdd import given, parsers, then, when
from scanning.errors import CarrierSubmissionError, SessionNotActiveError
from scanning.plan.order import Order
from scanning.session.policies import BuildAnchor, LoadAnchor

PICKUP = datetime(2025, 1, 15, 14, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured errors."""
    return {"exc": None}


@pytest.fixture()
def starts():
    """Session views returned by successive starts, in order."""
    return []


@pytest.fixture()
def scan_box(orchestrator, session, planned_order, manifest_barcode, kanban_barcode):
    """Scan the manifest and kanban for one box of the planned order."""

    def _scan(box_number):
        return orchestrator.record_scan(
            session.session_id,
            manifest=manifest_barcode(order_number=planned_order["order_number"], dock_code=planned_order["dock_code"]),
            kanban=kanban_barcode(box_number=box_number, total_boxes=planned_order["boxes"]),
        )

    return _scan


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a planned order "{order_number}" on dock "{dock_code}" with {boxes:d} boxes'),
    target_fixture="planned_order",
)
def _(plan_order, order_number, dock_code, boxes):
    order_id = plan_order(order_number=order_number, dock_code=dock_code, total_boxes=boxes)
    return {"id": order_id, "order_number": order_number, "dock_code": dock_code, "boxes": boxes}


@given("the skid build for the order was confirmed")
def _(planned_order, complete_build):
    complete_build(planned_order["id"])


@given(parsers.cfparse('operator "{operator}" has started skid build for the order'), target_fixture="session")
def _(orchestrator, planned_order, operator):
    return orchestrator.start_or_resume(BuildAnchor(planned_order["order_number"], planned_order["dock_code"]), operator)


@given(
    parsers.cfparse('operator "{operator}" has started loading route "{route}" for supplier "{supplier}"'),
    target_fixture="session",
)
def _(orchestrator, operator, route, supplier):
    return orchestrator.start_or_resume(LoadAnchor(route, supplier, PICKUP), operator)


@given(parsers.cfparse("box {box_number:d} was scanned"))
def _(scan_box, box_number):
    outcome = scan_box(box_number)
    assert outcome.accepted, outcome.message


@given(parsers.cfparse('exception code "{code}" was logged in the session'))
def _(orchestrator, session, planned_order, code):
    orchestrator.add_exception(order_id=planned_order["id"], code=code, session_id=session.session_id)


@given(parsers.cfparse('exception code "{code}" was logged against the order'))
def _(orchestrator, planned_order, code):
    orchestrator.add_exception(order_id=planned_order["id"], code=code)


@given("the carrier times out")
def _(fake_carrier):
    fake_carrier.configure(timeout=True)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse("box {box_number:d} is scanned"), target_fixture="outcome")
def _(scan_box, box_number, error):
    try:
        return scan_box(box_number)
    except (ValidationError, InvalidStateError) as exc:
        error["exc"] = exc
        return None


@when("the session is completed", target_fixture="completion")
def _(orchestrator, session, fake_carrier, error):
    try:
        return orchestrator.complete(session.session_id)
    except (ValidationError, CarrierSubmissionError) as exc:
        error["exc"] = exc
        return None


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the last scan is accepted")
def _(outcome):
    assert outcome.accepted is True, outcome.message


@then(parsers.cfparse('the last scan is rejected as "{reason}"'))
def _(outcome, reason):
    assert outcome.accepted is False
    assert outcome.reason.value == reason


@then(parsers.cfparse("the session has {count:d} scans"))
def _(orchestrator, session, count):
    assert len(orchestrator.get(session.session_id).scans) == count


@then(parsers.cfparse("the session has {count:d} exceptions"))
def _(orchestrator, session, count):
    assert len(orchestrator.get(session.session_id).exceptions) == count


@then(parsers.cfparse('the session status is "{status}"'))
def _(orchestrator, session, status):
    assert orchestrator.get(session.session_id).status == status


@then(parsers.cfparse('the order status is "{status}"'))
def _(planned_order, status):
    assert current_domain.repository_for(Order).get(planned_order["id"]).status == status


@then("the action fails with a validation error")
def _(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then("the action fails because the session is not active")
def _(error):
    assert isinstance(error["exc"], SessionNotActiveError)
