"""BDD tests for shipment load sessions."""

from pytest_bdd import given, parsers, scenarios, when

scenarios("features/load_session.feature")


def _load(orchestrator, session, planned_order, skid_id, manifest_barcode):
    return orchestrator.record_scan(
        session.session_id,
        manifest=manifest_barcode(
            order_number=planned_order["order_number"],
            dock_code=planned_order["dock_code"],
            skid_id=skid_id,
        ),
    )


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('skid "{skid_id}" was loaded'))
def _(orchestrator, session, planned_order, skid_id, manifest_barcode):
    outcome = _load(orchestrator, session, planned_order, skid_id, manifest_barcode)
    assert outcome.accepted, outcome.message


@given(parsers.cfparse('trailer "{trailer_number}" with seal "{seal_number}" was recorded'))
def _(orchestrator, session, trailer_number, seal_number):
    orchestrator.update_trailer_info(session.session_id, trailer_number=trailer_number, seal_number=seal_number)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('skid "{skid_id}" is loaded'), target_fixture="outcome")
def _(orchestrator, session, planned_order, skid_id, manifest_barcode):
    return _load(orchestrator, session, planned_order, skid_id, manifest_barcode)
