from decimal import Decimal


def _stock(client, headers, item_id) -> Decimal:
    return Decimal(client.get(f"/inventory/items/{item_id}", headers=headers).json()["stock"])


def _post(client, headers, **body):
    body.setdefault("type", "IN")
    return client.post("/transactions", json=body, headers=headers)


def test_box_scenario_end_to_end(client, admin_headers, mouse):
    response = _post(
        client,
        admin_headers,
        id="TX-BOX",
        date="2024-03-01T09:00:00",
        reference_number="SJ-010",
        items=[{"item_id": "2", "quantity": "2", "unit": "Box"}],
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["version"] == 1
    assert body["performer"] == "Admin"
    assert Decimal(body["lines"][0]["base_quantity"]) == Decimal("20")
    assert body["lines"][0]["sku"] == "ACC-002"
    assert _stock(client, admin_headers, "2") == Decimal("65")

    response = client.put(
        "/transactions/TX-BOX",
        json={"type": "OUT", "items": [{"item_id": "2", "quantity": "1", "unit": "Box"}], "expected_version": 1},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["version"] == 2
    assert response.json()["reference_number"] == "SJ-010"
    assert _stock(client, admin_headers, "2") == Decimal("35")

    response = client.delete("/transactions/TX-BOX", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"id": "TX-BOX", "deleted": True, "integrity_errors": []}
    assert _stock(client, admin_headers, "2") == Decimal("45")
    assert client.get("/transactions/TX-BOX", headers=admin_headers).status_code == 404


def test_unknown_unit_is_400_and_nothing_changes(client, admin_headers, mouse, keyboard):
    response = _post(
        client,
        admin_headers,
        id="TX-BAD",
        items=[{"item_id": "4", "quantity": "1", "unit": "pcs"}, {"item_id": "2", "quantity": "1", "unit": "ZZZ"}],
    )
    assert response.status_code == 400
    assert "ZZZ" in response.json()["detail"]
    assert _stock(client, admin_headers, "4") == Decimal("20")
    assert client.get("/transactions/TX-BAD", headers=admin_headers).status_code == 404


def test_unknown_item_is_404(client, admin_headers):
    response = _post(client, admin_headers, items=[{"item_id": "missing", "quantity": "1", "unit": "pcs"}])
    assert response.status_code == 404


def test_payload_validation(client, admin_headers, mouse):
    assert _post(client, admin_headers, items=[]).status_code == 422
    response = _post(client, admin_headers, items=[{"item_id": "2", "quantity": "0", "unit": "pcs"}])
    assert response.status_code == 422


def test_negative_stock_requires_confirmation(client, admin_headers, keyboard):
    body = {"type": "OUT", "items": [{"item_id": "4", "quantity": "25", "unit": "pcs"}]}
    response = _post(client, admin_headers, **body)
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["code"] == "negative_stock"
    assert Decimal(detail["projected"]["4"]) == Decimal("-5")
    assert _stock(client, admin_headers, "4") == Decimal("20")

    response = _post(client, admin_headers, confirm_negative=True, **body)
    assert response.status_code == 201
    assert _stock(client, admin_headers, "4") == Decimal("-5")


def test_stale_version_conflicts(client, admin_headers, mouse):
    _post(client, admin_headers, id="TX-1", items=[{"item_id": "2", "quantity": "1", "unit": "pcs"}])
    client.put("/transactions/TX-1", json={"notes": "checked"}, headers=admin_headers)

    response = client.put(
        "/transactions/TX-1",
        json={"items": [{"item_id": "2", "quantity": "5", "unit": "pcs"}], "expected_version": 1},
        headers=admin_headers,
    )
    assert response.status_code == 409
    response = client.delete("/transactions/TX-1", params={"expected_version": 1}, headers=admin_headers)
    assert response.status_code == 409
    assert _stock(client, admin_headers, "2") == Decimal("46")


def test_duplicate_id_conflicts(client, admin_headers, mouse):
    line = [{"item_id": "2", "quantity": "1", "unit": "pcs"}]
    assert _post(client, admin_headers, id="TX-1", items=line).status_code == 201
    assert _post(client, admin_headers, id="TX-1", items=line).status_code == 409
    assert _stock(client, admin_headers, "2") == Decimal("46")


def test_metadata_only_edit_keeps_stock(client, admin_headers, mouse):
    _post(client, admin_headers, id="TX-1", supplier="Acme", items=[{"item_id": "2", "quantity": "1", "unit": "Box"}])
    response = client.put("/transactions/TX-1", json={"notes": "recounted"}, headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["notes"] == "recounted"
    assert body["supplier"] == "Acme"
    assert body["version"] == 2
    assert _stock(client, admin_headers, "2") == Decimal("55")


def test_update_missing_transaction_is_404(client, admin_headers):
    assert client.put("/transactions/TX-NONE", json={"notes": "x"}, headers=admin_headers).status_code == 404
    assert client.delete("/transactions/TX-NONE", headers=admin_headers).status_code == 404


def test_list_filters(client, admin_headers, mouse, keyboard):
    _post(client, admin_headers, id="TX-A", date="2024-01-05T10:00:00",
          items=[{"item_id": "2", "quantity": "1", "unit": "pcs"}])
    _post(client, admin_headers, id="TX-B", type="OUT", date="2024-02-05T10:00:00",
          items=[{"item_id": "4", "quantity": "1", "unit": "pcs"}])
    _post(client, admin_headers, id="TX-C", date="2024-03-05T10:00:00",
          items=[{"item_id": "4", "quantity": "2", "unit": "pcs"}])

    def ids(**params):
        return [tx["id"] for tx in client.get("/transactions", params=params, headers=admin_headers).json()]

    assert ids() == ["TX-C", "TX-B", "TX-A"]
    assert ids(type="OUT") == ["TX-B"]
    assert ids(item_id="4") == ["TX-C", "TX-B"]
    assert ids(date_from="2024-02-01T00:00:00", date_to="2024-02-28T00:00:00") == ["TX-B"]


def test_timezone_aware_dates_are_stored_as_utc(client, admin_headers, mouse):
    response = _post(
        client,
        admin_headers,
        date="2024-03-01T09:00:00+07:00",
        items=[{"item_id": "2", "quantity": "1", "unit": "pcs"}],
    )
    assert response.json()["date"].startswith("2024-03-01T02:00:00")


def test_stock_card_endpoint(client, admin_headers, mouse):
    _post(client, admin_headers, id="TX-A", date="2024-01-01T10:00:00",
          items=[{"item_id": "2", "quantity": "2", "unit": "Box"}])
    _post(client, admin_headers, id="TX-B", type="OUT", date="2024-01-03T10:00:00",
          items=[{"item_id": "2", "quantity": "15", "unit": "pcs"}])

    response = client.get("/inventory/items/2/stock-card", headers=admin_headers)
    assert response.status_code == 200
    card = response.json()
    assert Decimal(card["current_balance"]) == Decimal("50")
    assert Decimal(card["opening_balance"]) == Decimal("45")
    assert [entry["transaction_id"] for entry in card["entries"]] == ["TX-B", "TX-A"]
    assert [Decimal(entry["balance_after"]) for entry in card["entries"]] == [Decimal("50"), Decimal("65")]
    assert Decimal(card["entries"][0]["quantity_out"]) == Decimal("15")

    response = client.get(
        "/inventory/items/2/stock-card",
        params={"date_from": "2024-01-02T00:00:00"},
        headers=admin_headers,
    )
    entries = response.json()["entries"]
    assert [entry["transaction_id"] for entry in entries] == ["TX-B"]
    assert Decimal(entries[0]["balance_after"]) == Decimal("50")


def test_staff_can_write_transactions(client, staff_headers, mouse):
    response = _post(client, staff_headers, items=[{"item_id": "2", "quantity": "1", "unit": "pcs"}])
    assert response.status_code == 201
    assert response.json()["performer"] == "Staff01"


def test_quantity_finer_than_storage_scale_is_400(client, admin_headers, mouse):
    response = _post(client, admin_headers, id="TX-FINE", items=[{"item_id": "2", "quantity": "0.00006", "unit": "Box"}])
    assert response.status_code == 400
    assert _stock(client, admin_headers, "2") == Decimal("45")
    assert client.get("/transactions/TX-FINE", headers=admin_headers).status_code == 404


def test_metadata_edit_of_fractional_box_keeps_stock(client, admin_headers, mouse):
    response = _post(client, admin_headers, id="TX-FRAC", items=[{"item_id": "2", "quantity": "0.0001", "unit": "Box"}])
    assert response.status_code == 201, response.text
    assert _stock(client, admin_headers, "2") == Decimal("45.001")

    response = client.put("/transactions/TX-FRAC", json={"notes": "recounted"}, headers=admin_headers)
    assert response.status_code == 200, response.text
    assert Decimal(response.json()["lines"][0]["base_quantity"]) == Decimal("0.001")
    assert _stock(client, admin_headers, "2") == Decimal("45.001")
