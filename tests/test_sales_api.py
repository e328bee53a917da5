"""
Tests for the `/api/v1/sales` HTTP surface.

Covers authentication, role gating, status codes of the error taxonomy
and the request shapes accepted for line items.
"""

from __future__ import annotations

import asyncio
import time

import httpx

from app.core.exceptions import StockError
from app.main import app as sales_app

SALES_URL = "/api/v1/sales"


def test_requires_bearer_token(client) -> None:
    assert client.get(SALES_URL).status_code == 401
    assert client.get(SALES_URL, headers={"Authorization": "Bearer not-a-token"}).status_code == 401


def test_create_get_update_delete_over_http(client, inventory, seller, auth_headers) -> None:
    headers = auth_headers(seller)

    response = client.post(SALES_URL, json={"lineItems": [{"productId": "P1", "qty": 3}]}, headers=headers)
    assert response.status_code == 201
    sale = response.json()
    assert sale["total"] == 30.0
    assert sale["line_items"] == [
        {"product_id": "P1", "product_name": "Producto P1", "quantity": 3, "unit_price": 10.0, "subtotal": 30.0}
    ]

    response = client.get(f"{SALES_URL}/{sale['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["seller_info"]["id"] == seller.id

    response = client.put(f"{SALES_URL}/{sale['id']}", json={"productos": [{"producto_id": "P1", "cantidad": 1}]}, headers=headers)
    assert response.status_code == 200
    assert response.json()["total"] == 10.0

    response = client.delete(f"{SALES_URL}/{sale['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["success"] is True

    assert client.get(f"{SALES_URL}/{sale['id']}", headers=headers).status_code == 404
    assert inventory.stock_calls() == [("decrement", "P1", 3), ("adjust", "P1", 2), ("adjust", "P1", 1)]


def test_invalid_line_item_returns_400(client, inventory, seller, auth_headers) -> None:
    response = client.post(
        SALES_URL,
        json={"lineItems": [{"productId": "P1", "quantity": -2}]},
        headers=auth_headers(seller),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"
    assert "lineItems[0].quantity" in response.json()["detail"]
    assert inventory.calls == []


def test_insufficient_stock_surfaces_upstream_message(client, inventory, seller, auth_headers) -> None:
    inventory.fail("decrement", "P2", StockError("Stock insuficiente para P2", status_code=400, upstream_status=400, product_id="P2"))

    response = client.post(
        SALES_URL,
        json={"lineItems": [{"productId": "P1"}, {"productId": "P2"}]},
        headers=auth_headers(seller),
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Stock insuficiente para P2", "error": "StockError"}
    assert inventory.stock_calls()[-1] == ("adjust", "P1", 1)


def test_unavailable_inventory_surfaces_server_error(client, inventory, seller, auth_headers) -> None:
    inventory.fail("decrement", "P1", StockError("Servicio de inventario no disponible", status_code=503))

    response = client.post(SALES_URL, json={"lineItems": [{"productId": "P1"}]}, headers=auth_headers(seller))

    assert response.status_code == 503


def test_consultant_cannot_create_sales(client, inventory, consultant, auth_headers) -> None:
    response = client.post(SALES_URL, json={"lineItems": [{"productId": "P1"}]}, headers=auth_headers(consultant))

    assert response.status_code == 403
    assert inventory.calls == []


def test_foreign_sale_is_forbidden_and_missing_sale_is_not_found(
    client, seller, other_seller, admin, auth_headers
) -> None:
    sale = client.post(SALES_URL, json={"lineItems": [{"productId": "P1"}]}, headers=auth_headers(seller)).json()

    assert client.get(f"{SALES_URL}/{sale['id']}", headers=auth_headers(other_seller)).status_code == 403
    assert client.delete(f"{SALES_URL}/{sale['id']}", headers=auth_headers(other_seller)).status_code == 403
    assert client.get(f"{SALES_URL}/{sale['id'] + 50}", headers=auth_headers(other_seller)).status_code == 404
    assert client.get(f"{SALES_URL}/{sale['id']}", headers=auth_headers(admin)).status_code == 200


def test_report_endpoints(client, seller, consultant, auth_headers) -> None:
    client.post(SALES_URL, json={"lineItems": [{"productId": "P1", "qty": 2}]}, headers=auth_headers(seller))
    params = {"start_date": "2000-01-01", "end_date": "2999-12-31"}

    response = client.get(f"{SALES_URL}/report", params=params, headers=auth_headers(seller))
    assert response.status_code == 200
    assert response.json()["count"] == 1
    assert response.json()["total_amount"] == 20.0

    response = client.get(f"{SALES_URL}/report/pdf", params=params, headers=auth_headers(consultant))
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def test_report_with_inverted_range_is_rejected(client, seller, auth_headers) -> None:
    response = client.get(
        f"{SALES_URL}/report",
        params={"start_date": "2024-03-02", "end_date": "2024-03-01"},
        headers=auth_headers(seller),
    )

    assert response.status_code == 400


def test_slow_inventory_does_not_block_other_requests(client, inventory, seller, auth_headers, monkeypatch) -> None:
    decrement = inventory.decrement

    def slow_decrement(product_id, quantity):
        time.sleep(1.0)
        return decrement(product_id, quantity)

    monkeypatch.setattr(inventory, "decrement", slow_decrement)

    async def scenario():
        transport = httpx.ASGITransport(app=sales_app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            sale = asyncio.create_task(
                http.post(SALES_URL, json={"lineItems": [{"productId": "P1"}]}, headers=auth_headers(seller))
            )
            await asyncio.sleep(0.3)
            started = time.perf_counter()
            health = await http.get("/api/v1/health")
            latency = time.perf_counter() - started
            return await sale, health, latency

    sale, health, latency = asyncio.run(scenario())

    assert health.status_code == 200
    assert latency < 0.5
    assert sale.status_code == 201
    assert inventory.stock_calls() == [("decrement", "P1", 1)]
