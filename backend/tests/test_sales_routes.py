"""HTTP tests for /api/sales."""

import pytest


@pytest.fixture
def product(make_product):
    return make_product(name="Alface", unit_price="2.50", initial_stock="10")


def _create(client, headers, customer_id, product_id, quantity=2, **extra):
    body = {"customer_id": customer_id, "items": [{"product_id": product_id, "quantity": quantity}]}
    body.update(extra)
    return client.post("/api/sales", json=body, headers=headers)


def test_create_sale(client, admin_headers, customer, product):
    resp = _create(client, admin_headers, customer.id, product.id, quantity=4, notes="Entregar cedo")
    assert resp.status_code == 201

    sale = resp.get_json()["sale"]
    assert sale["status"] == "PENDING"
    assert sale["sale_number"].startswith("VND")
    assert sale["total_amount"] == 10.0
    assert sale["final_amount"] == 10.0
    assert sale["customer_name"] == "Mercado Central"
    assert sale["delivery_address"]["principal"] is True
    assert sale["notes"] == "Entregar cedo"
    assert sale["items"][0]["product_name"] == "Alface"

    stock = client.get(f"/api/products/{product.id}", headers=admin_headers).get_json()
    assert stock["current_stock"] == 6.0


def test_create_sale_insufficient_stock(client, admin_headers, customer, product):
    resp = _create(client, admin_headers, customer.id, product.id, quantity=11)
    assert resp.status_code == 400
    body = resp.get_json()
    assert "Insufficient stock" in body["error"]
    assert body["details"]["current_stock"] == 10.0


@pytest.mark.parametrize(
    "body,status",
    [
        ({}, 400),
        ({"customer_id": "1", "items": []}, 400),
        ({"customer_id": 9999, "items": [{"product_id": 1, "quantity": 1}]}, 404),
        ({"customer_id": None}, 400),
    ],
)
def test_create_sale_bad_requests(client, admin_headers, body, status):
    resp = client.post("/api/sales", json=body, headers=admin_headers)
    assert resp.status_code == status


@pytest.mark.parametrize("items", [[5], [[1, 2, 3]], ["abc"], [None]])
def test_create_sale_malformed_items(client, admin_headers, customer, product, items):
    resp = client.post("/api/sales", json={"customer_id": customer.id, "items": items}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Each item must be an object with product_id and quantity"


@pytest.mark.parametrize("address_id", [True, "1", 1.5])
def test_create_sale_rejects_non_integer_address(client, admin_headers, customer, product, address_id):
    resp = _create(client, admin_headers, customer.id, product.id, delivery_address_id=address_id)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "delivery_address_id must be an integer"


def test_create_sale_rejects_long_notes(client, admin_headers, customer, product):
    resp = _create(client, admin_headers, customer.id, product.id, notes="x" * 501)
    assert resp.status_code == 400

    stock = client.get(f"/api/products/{product.id}", headers=admin_headers).get_json()
    assert stock["current_stock"] == 10.0


def test_create_sale_without_items(client, admin_headers, customer):
    resp = client.post("/api/sales", json={"customer_id": customer.id}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "A sale must contain at least one item"


def test_finalize_with_payment_method(client, admin_headers, customer, product):
    sale_id = _create(client, admin_headers, customer.id, product.id).get_json()["sale"]["id"]

    resp = client.post(f"/api/sales/{sale_id}/finalize", json={"payment_method": "dinheiro"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["sale"]["payment_method"] == "dinheiro"
    assert resp.get_json()["sale"]["status"] == "FINALIZED"


def test_finalize_defaults_to_pix(client, admin_headers, customer, product):
    sale_id = _create(client, admin_headers, customer.id, product.id).get_json()["sale"]["id"]
    resp = client.post(f"/api/sales/{sale_id}/finalize", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["sale"]["payment_method"] == "pix"


def test_finalize_payment_method_from_query(client, admin_headers, customer, product):
    number = _create(client, admin_headers, customer.id, product.id).get_json()["sale"]["sale_number"]
    resp = client.post(f"/api/sales/number/{number}/finalize?payment_method=cartao", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["sale"]["payment_method"] == "cartao"


def test_finalize_twice_is_rejected(client, admin_headers, customer, product):
    sale_id = _create(client, admin_headers, customer.id, product.id).get_json()["sale"]["id"]
    client.post(f"/api/sales/{sale_id}/finalize", headers=admin_headers)

    resp = client.post(f"/api/sales/{sale_id}/finalize", headers=admin_headers)
    assert resp.status_code == 400
    assert resp.get_json()["details"]["status"] == "FINALIZED"


def test_cancel_returns_stock(client, admin_headers, customer, product):
    sale_id = _create(client, admin_headers, customer.id, product.id, quantity=3).get_json()["sale"]["id"]

    resp = client.post(f"/api/sales/{sale_id}/cancel", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["sale"]["status"] == "CANCELLED"

    stock = client.get(f"/api/products/{product.id}", headers=admin_headers).get_json()
    assert stock["current_stock"] == 10.0


def test_cancel_unknown_sale(client, admin_headers):
    resp = client.post("/api/sales/9999/cancel", headers=admin_headers)
    assert resp.status_code == 404


def test_get_and_list(client, admin_headers, customer, other_customer, product):
    created = _create(client, admin_headers, customer.id, product.id).get_json()["sale"]
    _create(client, admin_headers, other_customer.id, product.id)

    by_id = client.get(f"/api/sales/{created['id']}", headers=admin_headers)
    assert by_id.get_json()["sale"]["sale_number"] == created["sale_number"]

    by_number = client.get(f"/api/sales/number/{created['sale_number']}", headers=admin_headers)
    assert by_number.get_json()["sale"]["id"] == created["id"]

    assert client.get("/api/sales/number/VND0", headers=admin_headers).status_code == 404

    all_sales = client.get("/api/sales", headers=admin_headers).get_json()
    assert all_sales["count"] == 2

    mine = client.get(f"/api/sales?customer_id={customer.id}", headers=admin_headers).get_json()
    assert [s["id"] for s in mine["items"]] == [created["id"]]

    pending = client.get("/api/sales?status=pending", headers=admin_headers).get_json()
    assert pending["count"] == 2

    assert client.get("/api/sales?status=PAID", headers=admin_headers).status_code == 400
