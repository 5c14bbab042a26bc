"""
POS HTTP API tests.

Go through the FastAPI app with TestClient: status codes, error bodies and
the print jobs returned alongside each order.
"""

from restopos import main as app_main
from restopos.utils import pubsub


def _create(client, menus, customer="Budi", qty=2):
    response = client.post(
        "/pos/orders",
        json={"customer_name": customer, "items": [{"menu_id": menus["A"].id, "quantity": qty}]},
    )
    assert response.status_code == 200, response.text
    return response.json()


class TestOrderRoutes:
    def test_index_lists_menus_categories_and_open_orders(self, client, menus):
        _create(client, menus)
        data = client.get("/pos").json()
        assert {m["name"] for m in data["menus"]} == {"Bakmi Jowo Godog", "Wedang Uwuh", "Rica-rica Ayam"}
        assert {c["name"]: c["menus_count"] for c in data["categories"]} == {"Makanan": 2, "Minuman": 1}
        assert [o["customer_name"] for o in data["activeOrders"]] == ["Budi"]

    def test_create_returns_kitchen_ticket_and_marks_printed(self, client, menus):
        body = _create(client, menus)
        assert body["order"]["total_amount"] == 32000
        assert body["order"]["status"] == "unpaid"
        assert body["print_job"]["type"] == "kitchen"
        assert body["print_job"]["items"][0]["qty"] == 2

        detail = client.get(f"/pos/orders/{body['order']['id']}").json()
        assert all(it["is_printed"] for it in detail["items"])

    def test_add_on_ticket_lists_only_new_items(self, client, menus):
        order_id = _create(client, menus)["order"]["id"]
        response = client.post(
            f"/pos/orders/{order_id}/add",
            json={"items": [{"menu_id": menus["B"].id, "quantity": 1}]},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["order"]["total_amount"] == 40000
        assert body["print_job"]["subtitle"] == "** TAMBAHAN **"
        assert [l["name"] for l in body["print_job"]["items"]] == ["Wedang Uwuh"]

    def test_checkout_returns_change(self, client, menus):
        order_id = _create(client, menus)["order"]["id"]
        response = client.post(
            f"/pos/orders/{order_id}/checkout",
            json={"payment_method": "cash", "cash_received": 50000},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["change"] == 18000
        assert body["order"]["status"] == "paid"
        assert body["print_job"]["type"] == "customer"
        assert "Rp 18.000" in body["message"]

    def test_checkout_with_short_cash_is_422(self, client, menus):
        order_id = _create(client, menus)["order"]["id"]
        response = client.post(
            f"/pos/orders/{order_id}/checkout",
            json={"payment_method": "cash", "cash_received": 1000},
        )
        assert response.status_code == 422
        assert "less than" in response.json()["detail"]
        assert client.get(f"/pos/orders/{order_id}").json()["status"] == "unpaid"

    def test_unknown_payment_method_is_422(self, client, menus):
        order_id = _create(client, menus)["order"]["id"]
        response = client.post(f"/pos/orders/{order_id}/pay", json={"payment_method": "bitcoin"})
        assert response.status_code == 422

    def test_closed_order_is_409(self, client, menus):
        order_id = _create(client, menus)["order"]["id"]
        assert client.post(f"/pos/orders/{order_id}/pay", json={"payment_method": "qris"}).status_code == 200

        response = client.post(f"/pos/orders/{order_id}/cancel")
        assert response.status_code == 409
        assert "already paid" in response.json()["detail"]

        response = client.post(
            f"/pos/orders/{order_id}/add",
            json={"items": [{"menu_id": menus["B"].id, "quantity": 1}]},
        )
        assert response.status_code == 409

    def test_cancel_and_unpaid_list(self, client, menus):
        keep = _create(client, menus, customer="Sari")["order"]["id"]
        drop = _create(client, menus, customer="Budi")["order"]["id"]
        assert client.post(f"/pos/orders/{drop}/cancel").json()["order"]["status"] == "cancelled"

        unpaid = client.get("/pos/unpaid").json()
        assert [o["id"] for o in unpaid] == [keep]

    def test_missing_order_is_404(self, client, menus):
        response = client.get("/pos/orders/999")
        assert response.status_code == 404
        assert response.json() == {"detail": "Order 999 not found"}

    def test_unavailable_menu_is_422(self, client, menus):
        response = client.post(
            "/pos/orders",
            json={"customer_name": "Budi", "items": [{"menu_id": menus["C"].id, "quantity": 1}]},
        )
        assert response.status_code == 422
        assert "not available" in response.json()["detail"]

    def test_empty_customer_is_422(self, client, menus):
        response = client.post("/pos/orders", json={"customer_name": "", "items": []})
        assert response.status_code == 422


    def test_retried_uuid_returns_the_recorded_order(self, client, menus):
        payload = {
            "uuid": "0a1b2c3d-0000-4000-8000-00000000000a",
            "customer_name": "Budi",
            "items": [{"menu_id": menus["A"].id, "quantity": 1}],
        }
        queue = pubsub.register_queue(pubsub.parse_types("kitchen"))
        try:
            first = client.post("/pos/orders", json=payload).json()
            second = client.post("/pos/orders", json=payload)
            assert queue.qsize() == 1
        finally:
            pubsub.unregister_queue(queue)
        assert second.status_code == 200
        body = second.json()
        assert body["order"]["id"] == first["order"]["id"]
        assert body["message"].endswith("already recorded")
        assert body["print_job"] is None
        assert len(client.get("/pos/unpaid").json()) == 1

    def test_out_of_range_menu_id_is_422(self, client, menus):
        response = client.post("/pos/orders", json={"customer_name": "Budi", "items": [{"menu_id": 2 ** 70, "quantity": 1}]})
        assert response.status_code == 422


class TestVoidRoutes:
    def test_void_item_returns_void_ticket(self, client, menus):
        order_id = _create(client, menus)["order"]["id"]
        body = client.post(
            f"/pos/orders/{order_id}/add",
            json={"items": [{"menu_id": menus["B"].id, "quantity": 1}]},
        ).json()
        item_b = body["order"]["items"][1]["id"]

        response = client.delete(f"/pos/item/{item_b}")
        assert response.status_code == 200
        body = response.json()
        assert body["order"]["total_amount"] == 32000
        assert body["print_job"]["type"] == "void"
        assert body["print_job"]["items"][0]["status"] == "DIBATALKAN"

        assert client.delete(f"/pos/item/{item_b}").status_code == 409

    def test_batch_void(self, client, menus):
        first = _create(client, menus, customer="Budi")["order"]
        second = _create(client, menus, customer="Sari", qty=1)["order"]
        ids = [first["items"][0]["id"], second["items"][0]["id"]]

        response = client.post("/pos/items/batch-void", json={"item_ids": ids})
        assert response.status_code == 200
        body = response.json()
        assert len(body["print_jobs"]) == 2
        assert {o["total_amount"] for o in body["orders"]} == {0}

    def test_batch_void_with_unknown_item_changes_nothing(self, client, menus):
        order = _create(client, menus)["order"]
        response = client.post("/pos/items/batch-void", json={"item_ids": [order["items"][0]["id"], 4040]})
        assert response.status_code == 404
        assert client.get(f"/pos/orders/{order['id']}").json()["total_amount"] == 32000


class TestKitchenFeed:
    def test_print_jobs_reach_subscribers(self, client, menus):
        queue = pubsub.register_queue()
        try:
            _create(client, menus)
            event = queue.get_nowait()
        finally:
            pubsub.unregister_queue(queue)
        assert event["type"] == "kitchen"
        assert event["customer_name"] == "Budi"

    def test_listeners_only_get_their_ticket_types(self, client, menus):
        counter = pubsub.register_queue(pubsub.parse_types("customer"))
        try:
            order_id = _create(client, menus)["order"]["id"]
            assert counter.empty()
            client.post(f"/pos/orders/{order_id}/checkout", json={"payment_method": "cash", "cash_received": 50000})
            job = counter.get_nowait()
            assert counter.empty()
        finally:
            pubsub.unregister_queue(counter)
        assert job["type"] == "customer"
        assert job["change"] == 18000

    def test_void_ticket_reaches_void_listeners(self, client, menus):
        listener = pubsub.register_queue(pubsub.parse_types("void"))
        try:
            item_id = _create(client, menus)["order"]["items"][0]["id"]
            assert client.delete(f"/pos/item/{item_id}").status_code == 200
            job = listener.get_nowait()
            assert listener.empty()
        finally:
            pubsub.unregister_queue(listener)
        assert job["type"] == "void"

    def test_parse_types(self):
        assert pubsub.parse_types(None) is None
        assert pubsub.parse_types("Kitchen, void") == frozenset({"kitchen", "void"})
        assert pubsub.parse_types("fax") is None

    def test_status_counts_listeners(self, client):
        queue = pubsub.register_queue(frozenset({"void"}))
        try:
            status = client.get("/kitchen/status").json()
            assert status["sse_queues"] >= 1
            assert status["by_type"]["void"] >= 1
        finally:
            pubsub.unregister_queue(queue)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/").status_code == 200


def test_db_health_reports_counters(client):
    stats = client.get("/health/db").json()
    assert stats["queries"] >= 1
    assert stats["checkouts"] >= 1
    assert isinstance(stats["pool"], str)


def test_request_counts_are_keyed_by_route_template(client, menus):
    """Counts are kept per route, not per concrete URL."""
    client.get("/pos/orders/1")
    client.get("/pos/orders/2")
    client.get("/no/such/page/3")
    keys = set(app_main._request_counts)
    assert "GET /pos/orders/{order_id}" in keys
    assert f"GET {app_main.UNMATCHED_ROUTE}" in keys
    assert not any(k.endswith(("/1", "/2", "/3")) for k in keys)
