import json
from datetime import UTC, datetime

import pytest
from protean.integrations.pytest import DomainFixture

PICKUP = datetime(2025, 1, 15, 14, 0, tzinfo=UTC)
ORDER_NUMBER = "2025011501SH"
DOCK = "1A"
SUPPLIER = "12345"
PLANT = "02TMI"
ROUTE = "YUAN03"
PART = "62730-08201-00"
KANBAN = "AB12"
KANBAN_LENGTH = 211


@pytest.fixture(scope="session")
def scanning_bed():
    from scanning.domain import scanning

    bed = DomainFixture(scanning)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(scanning_bed):
    with scanning_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Barcode builders
# ---------------------------------------------------------------------------
def build_manifest(
    order_number=ORDER_NUMBER,
    dock_code=DOCK,
    supplier_code=SUPPLIER,
    plant_code=PLANT,
    load_id="LOAD01",
    palletization_code="A1",
    mros="01",
    skid_id="001A",
):
    return (
        f"{plant_code:<5}{supplier_code:<5}{dock_code:<2}{order_number:<12}"
        f"{load_id:<12}{palletization_code:<2}{mros:<2}{skid_id:<4}"
    )


def build_kanban(
    part_number="627300820100",
    kanban_number=KANBAN,
    box_number=1,
    total_boxes=5,
    quantity=10,
    supplier_code=SUPPLIER,
    dock_code=DOCK,
    line_side_address="LSA-01",
    plant_code=PLANT,
):
    fields = {
        (1, 12): "BRACKET",
        (12, 22): part_number[:10],
        (31, 36): supplier_code,
        (36, 38): dock_code,
        (38, 42): kanban_number,
        (42, 54): part_number,
        (54, 64): line_side_address,
        (74, 79): f"{quantity:05d}",
        (79, 99): "ACME PARTS",
        (151, 155): f"{box_number:04d}" if isinstance(box_number, int) else box_number,
        (155, 159): f"{total_boxes:04d}",
        (159, 164): plant_code,
        (183, 192): ROUTE,
    }
    buffer = [" "] * KANBAN_LENGTH
    for (start, end), value in fields.items():
        buffer[start:end] = value.ljust(end - start)[: end - start]
    return "".join(buffer)


def build_internal_kanban(part_number="627300820100", kanban_code=KANBAN, serial="SER0001"):
    return f"{part_number}{kanban_code} {serial}"


@pytest.fixture()
def manifest_barcode():
    return build_manifest


@pytest.fixture()
def kanban_barcode():
    return build_kanban


@pytest.fixture()
def internal_kanban_barcode():
    return build_internal_kanban


# ---------------------------------------------------------------------------
# Plan helpers
# ---------------------------------------------------------------------------
def register_order(
    order_number=ORDER_NUMBER,
    dock_code=DOCK,
    route=ROUTE,
    planned_pickup=PICKUP,
    supplier_code=SUPPLIER,
    total_boxes=5,
    items=None,
    skids=None,
):
    """Register a planned order through the ingestion command; returns its id."""
    from protean import current_domain
    from scanning.plan.ingestion import RegisterOrder

    items = items or [
        {
            "part_number": PART,
            "kanban_number": KANBAN,
            "qpc": 10,
            "total_boxes_planned": total_boxes,
            "palletization_code": "A1",
            "manifest_number": "M0001",
            "line_side_address": "LSA-01",
        }
    ]
    skids = skids if skids is not None else [
        {"skid_number": "001", "skid_side": "A", "palletization_code": "A1"},
        {"skid_number": "002", "skid_side": "A", "palletization_code": "A1"},
    ]
    return current_domain.process(
        RegisterOrder(
            order_number=order_number,
            dock_code=dock_code,
            supplier_code=supplier_code,
            plant_code=PLANT,
            route=route,
            planned_pickup=planned_pickup,
            mros="01",
            items=json.dumps(items),
            skids=json.dumps(skids),
        ),
        asynchronous=False,
    )


def mark_build_complete(order_id, confirmation_number="BUILD-0001"):
    """Stamp a carrier-confirmed skid build on an order."""
    from protean import current_domain
    from scanning.plan.order import Order, OrderStage

    repo = current_domain.repository_for(Order)
    order = repo.get(order_id)
    order.complete_stage(OrderStage.BUILD, confirmation_number, datetime.now(UTC))
    repo.add(order)
    return order


@pytest.fixture()
def plan_order():
    return register_order


@pytest.fixture()
def complete_build():
    return mark_build_complete


@pytest.fixture()
def order_id():
    return register_order()


@pytest.fixture()
def built_order_id(order_id):
    mark_build_complete(order_id)
    return order_id


@pytest.fixture()
def fake_carrier():
    from scanning.carrier import set_carrier
    from scanning.carrier.fake_adapter import FakeCarrier

    carrier = FakeCarrier()
    set_carrier(carrier)
    return carrier


@pytest.fixture()
def orchestrator():
    from scanning.session.orchestrator import SessionOrchestrator

    return SessionOrchestrator()
