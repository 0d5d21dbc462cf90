"""Tests for the row-by-row inventory import."""

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from dealerchat.db.models import Dealership, Vehicle, VehicleAvailability, VehicleCondition
from dealerchat.queues.payloads import InventoryImportPayload
from dealerchat.services import inventory_import
from dealerchat.services.inventory_import import normalize_vin, parse_condition, run_inventory_import


def make_payload(dealership_id, rows, mark_missing_as_sold=False):
    return InventoryImportPayload(
        dealership_id=dealership_id,
        rows=rows,
        mark_missing_as_sold=mark_missing_as_sold,
        total_rows=len(rows),
    )


def vehicles(database):
    with database.session() as session:
        return {v.vin: v for v in session.scalars(select(Vehicle))}


def test_normalize_vin():
    assert normalize_vin("  abc123  ") == "ABC123"
    assert normalize_vin(None) == ""
    assert normalize_vin(12345) == ""


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("New", VehicleCondition.NEW),
        ("used", VehicleCondition.USED),
        ("CERTIFIED", VehicleCondition.CERTIFIED),
        ("cpo", VehicleCondition.CERTIFIED),
        ("CpO", VehicleCondition.CERTIFIED),
        ("hybrid", None),
        (None, None),
        ("", None),
    ],
)
def test_parse_condition(raw, expected):
    assert parse_condition(raw) == expected


def test_mixed_batch_reports_each_row(database, dealership):
    rows = [
        {"vin": "1FA6P8TH5J5100001", "condition": "New", "price": 25000},
        {"vin": "", "condition": "Used"},
        {"vin": "2FB6P8TH5J5100002", "condition": "bogus"},
    ]

    result = run_inventory_import(database, make_payload(dealership, rows))

    assert result.model_dump(by_alias=True) == {
        "processed": 3,
        "total": 3,
        "created": 1,
        "updated": 0,
        "errors": [
            {"row": 2, "error": "Missing VIN"},
            {"row": 3, "error": 'Invalid condition "bogus"'},
        ],
        "markedSold": 0,
    }
    stored = vehicles(database)
    assert list(stored) == ["1FA6P8TH5J5100001"]
    assert stored["1FA6P8TH5J5100001"].price == Decimal("25000")


def test_created_vehicle_fields(database, dealership):
    rows = [
        {
            "vin": "1hgcm82633a004352",
            "stockNumber": "A-100",
            "year": 2021,
            "make": "Honda",
            "model": "Civic",
            "trim": "EX",
            "condition": "cpo",
            "price": 21999.5,
            "mileage": 18000,
            "color": "Blue",
            "bodyType": "Sedan",
            "images": ["https://img/1.jpg", "", "https://img/2.jpg"],
        }
    ]

    result = run_inventory_import(database, make_payload(dealership, rows))

    assert result.created == 1
    vehicle = vehicles(database)["1HGCM82633A004352"]
    assert vehicle.condition == VehicleCondition.CERTIFIED
    assert vehicle.availability == VehicleAvailability.IN_STOCK
    assert vehicle.featured is False
    assert vehicle.stock_number == "A-100"
    assert vehicle.exterior_color == "Blue"
    assert vehicle.body_type == "Sedan"
    assert vehicle.images == ["https://img/1.jpg", "https://img/2.jpg"]
    assert vehicle.price == Decimal("21999.50")


def test_missing_condition_renders_empty(database, dealership):
    result = run_inventory_import(database, make_payload(dealership, [{"vin": "VIN1"}]))

    assert [e.error for e in result.errors] == ['Invalid condition ""']
    assert vehicles(database) == {}


def test_non_finite_price_stored_as_null(database, dealership):
    rows = [{"vin": "VIN1", "condition": "Used", "price": "not-a-number", "year": "abc"}]

    result = run_inventory_import(database, make_payload(dealership, rows))

    assert result.created == 1
    vehicle = vehicles(database)["VIN1"]
    assert vehicle.price is None
    assert vehicle.year is None


def test_reimport_is_an_update(database, dealership):
    rows = [{"vin": "VIN1", "condition": "New", "price": 30000}]

    first = run_inventory_import(database, make_payload(dealership, rows))
    second = run_inventory_import(
        database, make_payload(dealership, [{"vin": "VIN1", "condition": "Used", "price": 28000}])
    )

    assert (first.created, first.updated) == (1, 0)
    assert (second.created, second.updated) == (0, 1)
    vehicle = vehicles(database)["VIN1"]
    assert vehicle.condition == VehicleCondition.USED
    assert vehicle.price == Decimal("28000")
    assert vehicle.created_at != vehicle.updated_at


def test_update_restores_in_stock(database, dealership):
    run_inventory_import(database, make_payload(dealership, [{"vin": "VIN1", "condition": "New"}]))
    with database.transaction() as session:
        session.scalars(select(Vehicle)).one().availability = VehicleAvailability.SOLD

    run_inventory_import(database, make_payload(dealership, [{"vin": "VIN1", "condition": "New"}]))

    assert vehicles(database)["VIN1"].availability == VehicleAvailability.IN_STOCK


def test_whitespace_and_case_collide_on_same_vin(database, dealership):
    rows = [
        {"vin": "  abc123  ", "condition": "New"},
        {"vin": "ABC123", "condition": "Used"},
    ]

    result = run_inventory_import(database, make_payload(dealership, rows))

    assert (result.created, result.updated) == (1, 1)
    assert list(vehicles(database)) == ["ABC123"]


def test_every_row_classified_once(database, dealership):
    rows = [
        {"vin": "A1", "condition": "New"},
        {"vin": "A2", "condition": "hybrid"},
        {"vin": None, "condition": "New"},
        {"vin": "A1", "condition": "Used"},
        {"vin": "A3", "condition": "certified"},
    ]

    result = run_inventory_import(database, make_payload(dealership, rows))

    assert result.created + result.updated + len(result.errors) == result.total == 5
    assert result.processed == 5


def test_progress_reported_after_every_row(database, dealership):
    rows = [
        {"vin": "A1", "condition": "New"},
        {"vin": "", "condition": "New"},
        {"vin": "A2", "condition": "nope"},
    ]
    snapshots = []

    run_inventory_import(database, make_payload(dealership, rows), report_progress=snapshots.append)

    assert snapshots == [
        {"processed": 1, "total": 3},
        {"processed": 2, "total": 3},
        {"processed": 3, "total": 3},
    ]


def test_mark_missing_as_sold(database, dealership):
    run_inventory_import(
        database,
        make_payload(dealership, [{"vin": "V1", "condition": "New"}, {"vin": "V2", "condition": "New"}]),
    )

    result = run_inventory_import(
        database,
        make_payload(dealership, [{"vin": "V1", "condition": "New"}], mark_missing_as_sold=True),
    )

    assert result.marked_sold == 1
    stored = vehicles(database)
    assert stored["V1"].availability == VehicleAvailability.IN_STOCK
    assert stored["V2"].availability == VehicleAvailability.SOLD


def test_mark_missing_as_sold_is_scoped_to_dealership(database, dealership):
    with database.transaction() as session:
        other = Dealership(name="Other Motors")
        session.add(other)
        session.flush()
        other_id = other.id
    run_inventory_import(database, make_payload(other_id, [{"vin": "OTHER1", "condition": "New"}]))
    run_inventory_import(database, make_payload(dealership, [{"vin": "V1", "condition": "New"}]))

    result = run_inventory_import(
        database,
        make_payload(dealership, [{"vin": "V9", "condition": "New"}], mark_missing_as_sold=True),
    )

    assert result.marked_sold == 1
    stored = vehicles(database)
    assert stored["OTHER1"].availability == VehicleAvailability.IN_STOCK
    assert stored["V1"].availability == VehicleAvailability.SOLD


def test_invalid_row_vin_still_counts_as_seen(database, dealership):
    run_inventory_import(database, make_payload(dealership, [{"vin": "V1", "condition": "New"}]))

    result = run_inventory_import(
        database,
        make_payload(dealership, [{"vin": " v1 ", "condition": "hybrid"}], mark_missing_as_sold=True),
    )

    assert result.marked_sold == 0
    assert vehicles(database)["V1"].availability == VehicleAvailability.IN_STOCK


def test_no_reconciliation_without_valid_vins(database, dealership):
    run_inventory_import(database, make_payload(dealership, [{"vin": "V1", "condition": "New"}]))

    result = run_inventory_import(
        database,
        make_payload(dealership, [{"vin": "", "condition": "New"}], mark_missing_as_sold=True),
    )

    assert result.marked_sold == 0
    assert vehicles(database)["V1"].availability == VehicleAvailability.IN_STOCK


def test_unexpected_row_failure_is_recorded(database, dealership, monkeypatch):
    real_upsert = inventory_import.upsert_vehicle

    def flaky_upsert(session, vin, fields):
        if vin == "BAD":
            raise ValueError("price overflow")
        return real_upsert(session, vin, fields)

    monkeypatch.setattr(inventory_import, "upsert_vehicle", flaky_upsert)
    rows = [
        {"vin": "BAD", "condition": "New"},
        {"vin": "GOOD", "condition": "New"},
    ]

    result = run_inventory_import(database, make_payload(dealership, rows))

    assert [(e.row, e.error) for e in result.errors] == [(1, "price overflow")]
    assert result.created == 1
    assert list(vehicles(database)) == ["GOOD"]


def test_infrastructure_error_fails_the_job(database, dealership, monkeypatch):
    def lost_connection(session, vin, fields):
        raise OperationalError("INSERT INTO vehicles", {}, Exception("server closed the connection"))

    monkeypatch.setattr(inventory_import, "upsert_vehicle", lost_connection)

    with pytest.raises(OperationalError):
        run_inventory_import(database, make_payload(dealership, [{"vin": "V1", "condition": "New"}]))
