"""Carrier request payloads for skid build and trailer submissions."""

from datetime import UTC, datetime
from types import SimpleNamespace

import pytest
from scanning.carrier.payload import (
    build_skid_build_payload,
    build_trailer_payload,
    compact,
    format_pickup,
    split_route_run,
)
from scanning.plan.port import OrderSummary, PlannedItemRef

PICKUP = datetime(2025, 1, 15, 14, 0, tzinfo=UTC)


def _order(order_id="order-1", order_number="2025011501SH"):
    return OrderSummary(
        order_id=order_id,
        order_number=order_number,
        dock_code="1A",
        supplier_code="12345",
        plant_code="02TMI",
        status="SkidBuilt",
        route="YUAN03",
        planned_pickup=PICKUP,
    )


def _item():
    return PlannedItemRef(
        planned_item_id="item-1",
        order_id="order-1",
        part_number="62730-08201-00",
        kanban_number="AB12",
        total_boxes_planned=5,
        qpc=10,
        palletization_code="A1",
        manifest_number="M0001",
        line_side_address="LSA-01",
    )


def _scan(box_number, skid_number="001", skid_side="A", palletization_code="A1", order_id="order-1", **extra):
    values = {
        "order_id": order_id,
        "planned_item_id": "item-1",
        "part_number": "62730-08201-00",
        "kanban_number": "AB12",
        "skid_number": skid_number,
        "skid_side": skid_side,
        "box_number": box_number,
        "palletization_code": palletization_code,
        "line_side_address": None,
        "skid_cut": False,
    }
    values.update(extra)
    return SimpleNamespace(**values)


def _exception(code, level, related_skid_id=None, order_id="order-1", comments=None):
    return SimpleNamespace(
        code=code, level=level, related_skid_id=related_skid_id, order_id=order_id, comments=comments
    )


class TestHelpers:
    def test_split_route_run(self):
        assert split_route_run("YUAN03") == ("YUAN", "03")
        assert split_route_run("03") == ("03", "")
        assert split_route_run(None) == ("", "")

    def test_format_pickup(self):
        assert format_pickup(PICKUP) == "2025-01-15T14:00"

    def test_compact_drops_none_recursively(self):
        assert compact({"a": None, "b": [{"c": None, "d": 1}], "e": ""}) == {"b": [{"d": 1}], "e": ""}


class TestSkidBuildPayload:
    def test_one_entry_per_order_with_header(self):
        payload = build_skid_build_payload(_order(), [_item()], [_scan(1)], [])

        assert len(payload) == 1
        entry = payload[0]
        assert entry["order"] == "2025011501SH"
        assert entry["supplier"] == "12345"
        assert entry["plant"] == "02TMI"
        assert entry["dock"] == "1A"

    def test_scans_group_into_skids_with_kanbans_by_box(self):
        scans = [_scan(3), _scan(1), _scan(2, skid_number="002"), _scan(4, palletization_code="B2")]

        skids = build_skid_build_payload(_order(), [_item()], scans, [])[0]["skids"]

        assert [(s["skidId"], s["palletization"]) for s in skids] == [("001A", "A1"), ("001A", "B2"), ("002A", "A1")]
        assert [k["boxNumber"] for k in skids[0]["kanbans"]] == [1, 3]

    def test_kanban_entries_come_from_the_plan(self):
        kanban = build_skid_build_payload(_order(), [_item()], [_scan(1)], [])[0]["skids"][0]["kanbans"][0]

        assert kanban == {
            "lineSideAddress": "LSA-01",
            "partNumber": "62730-08201-00",
            "kanban": "AB12",
            "qpc": 10,
            "boxNumber": 1,
            "manifestNumber": "M0001",
            "kanbanCut": False,
        }

    def test_skid_carries_placeholder_rfid(self):
        skid = build_skid_build_payload(_order(), [_item()], [_scan(1)], [])[0]["skids"][0]

        assert skid["rfidDetails"] == [{"rfid": "", "type": ""}]
        assert "exceptions" not in skid

    def test_exceptions_split_between_order_and_skid(self):
        exceptions = [
            _exception("12", "order", comments="2 boxes short"),
            _exception("14", "skid", related_skid_id="001A"),
            _exception("15", "skid", related_skid_id="009"),
        ]

        entry = build_skid_build_payload(_order(), [_item()], [_scan(1)], exceptions)[0]

        assert entry["exceptions"] == [{"exceptionCode": "12", "comments": "2 boxes short"}]
        assert entry["skids"][0]["exceptions"] == [{"exceptionCode": "14"}]


class TestTrailerPayload:
    def test_header_from_route_and_trailer(self):
        trailer = {"trailer_number": "TR-1", "seal_number": "S-1", "driver_first_name": "Sam"}

        payload = build_trailer_payload("YUAN03", PICKUP, trailer, [_order()], [_scan(1)], [])

        assert payload["supplier"] == "12345"
        assert payload["route"] == "YUAN"
        assert payload["run"] == "03"
        assert payload["trailerNumber"] == "TR-1"
        assert payload["sealNumber"] == "S-1"
        assert payload["driverTeamFirstName"] == "Sam"
        assert payload["dropHook"] is False
        assert "lpCode" not in payload

    def test_orders_list_their_loaded_skids(self):
        orders = [_order(), _order("order-2", "2025011502SH")]
        scans = [_scan(None, skid_number="001"), _scan(None, skid_number="002", skid_cut=True, order_id="order-2")]

        payload = build_trailer_payload("YUAN03", PICKUP, {"trailer_number": "TR-1"}, orders, scans, [])

        first, second = payload["orders"]
        assert first["pickUp"] == "2025-01-15T14:00"
        assert first["skids"] == [{"skidId": "001", "palletization": "A1", "skidCut": False, "exceptions": []}]
        assert second["skids"][0]["skidId"] == "002"
        assert second["skids"][0]["skidCut"] is True

    def test_exceptions_land_at_their_level(self):
        exceptions = [
            _exception("13", "trailer"),
            _exception("10", "order"),
            _exception("18", "skid", related_skid_id="001"),
        ]

        payload = build_trailer_payload("YUAN03", PICKUP, {"trailer_number": "TR-1"}, [_order()], [_scan(None)], exceptions)

        assert payload["exceptions"] == [{"exceptionCode": "13"}]
        order = payload["orders"][0]
        assert order["exceptions"] == [{"exceptionCode": "10"}]
        assert order["skids"][0]["exceptions"] == [{"exceptionCode": "18"}]

    def test_explicit_run_wins(self):
        payload = build_trailer_payload("YUAN03", PICKUP, {}, [_order()], [], [], run="07")

        assert payload["run"] == "07"

    def test_no_orders_is_refused(self):
        with pytest.raises(ValueError):
            build_trailer_payload("YUAN03", PICKUP, {}, [], [], [])
