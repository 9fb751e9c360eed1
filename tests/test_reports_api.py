import csv
import io
from decimal import Decimal

import pytest


@pytest.fixture()
def activity(client, admin_headers, mouse, keyboard):
    for body in (
        {"id": "TX-1001", "type": "IN", "date": "2024-01-01T10:00:00", "reference_number": "SJ-001",
         "items": [{"item_id": "2", "quantity": "1", "unit": "Box"}, {"item_id": "4", "quantity": "4", "unit": "pcs"}]},
        {"id": "TX-1002", "type": "OUT", "date": "2024-01-10T10:00:00", "notes": "Sales Order #101",
         "items": [{"item_id": "4", "quantity": "20", "unit": "pcs"}]},
    ):
        response = client.post("/transactions", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text


def test_report_rows_are_flattened_per_line(client, admin_headers, activity):
    rows = client.get("/reports/transactions", headers=admin_headers).json()
    assert [(row["transaction_id"], row["item_id"]) for row in rows] == [
        ("TX-1002", "4"),
        ("TX-1001", "2"),
        ("TX-1001", "4"),
    ]
    assert rows[1]["reference"] == "SJ-001"
    assert Decimal(rows[1]["base_quantity"]) == Decimal("10")


def test_report_filters(client, admin_headers, activity):
    rows = client.get("/reports/transactions", params={"type": "IN", "item_id": "4"}, headers=admin_headers).json()
    assert [(row["transaction_id"], row["item_id"]) for row in rows] == [("TX-1001", "4")]

    rows = client.get(
        "/reports/transactions",
        params={"date_from": "2024-01-05T00:00:00"},
        headers=admin_headers,
    ).json()
    assert [row["transaction_id"] for row in rows] == ["TX-1002"]


def test_csv_export(client, admin_headers, activity):
    response = client.get("/reports/transactions/export/csv", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0][:3] == ["transaction_id", "date", "type"]
    assert len(rows) == 4
    assert rows[1][0] == "TX-1002"
    assert rows[1][11] == "Sales Order #101"


def test_pdf_export(client, admin_headers, activity):
    response = client.get("/reports/transactions/export/pdf", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF-1.4")
    assert b"TX-1001" in response.content
    assert response.content.rstrip().endswith(b"%%EOF")


def test_dashboard_summary(client, admin_headers, activity):
    response = client.get("/reports/dashboard", headers=admin_headers)
    assert response.status_code == 200
    summary = response.json()
    # mouse 55 pcs, keyboard 4 pcs
    assert summary["total_items"] == 2
    assert summary["low_stock_items"] == 1
    assert summary["total_transactions"] == 2
    assert Decimal(summary["total_stock_value"]) == Decimal("55") * 250000 + Decimal("4") * 850000
    assert Decimal(summary["total_in_base_quantity"]) == Decimal("14")
    assert Decimal(summary["total_out_base_quantity"]) == Decimal("20")
    assert summary["stock_by_category"][0]["category"] == "Accessories"
    assert Decimal(summary["stock_by_category"][0]["total_stock"]) == Decimal("59")
    assert summary["recent_activity"][0]["transaction_id"] == "TX-1002"


def test_staff_can_view_reports(client, staff_headers):
    assert client.get("/reports/dashboard", headers=staff_headers).status_code == 200
