from .conftest import COOK_ID, CUSTOMER_ID, make_headers

API = "/api/v1"


class TestHealth:

    def test_health_and_root(self, client):
        assert client.get("/health").json()["status"] == "healthy"
        assert client.get("/").json()["name"] == "LunchMate API (Test)"


class TestAuth:

    def test_missing_token(self, client):
        response = client.get(f"{API}/menu-days/2025-06-10")
        assert response.status_code == 401
        assert response.json()["error_code"] == "AUTHENTICATION_REQUIRED"

    def test_bad_token(self, client):
        response = client.get(f"{API}/menu-days/2025-06-10",
                              headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_customer_cannot_edit_menu(self, client, customer_headers):
        response = client.put(f"{API}/menu-days/2025-06-10", json={"dishes": []},
                              headers=customer_headers)
        assert response.status_code == 403
        assert response.json()["error_code"] == "PERMISSION_DENIED"


class TestMenuDayApi:

    def test_get_creates_draft(self, client, cook_headers):
        response = client.get(f"{API}/menu-days/2025-06-10", headers=cook_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "draft"
        assert [d["index"] for d in data["dishes"]] == [1, 2, 3]

    def test_put_and_week(self, client, cook_headers, customer_headers):
        response = client.put(f"{API}/menu-days/2025-06-10", headers=cook_headers, json={
            "dishes": [{"index": 2, "meal_id": "m2", "name": "Casado"}],
            "status": "published",
            "time_zone": "America/Costa_Rica",
        })
        assert response.status_code == 200
        assert response.json()["data"]["dishes"][1]["meal_id"] == "m2"

        week = client.get(f"{API}/menu-days/week",
                          params={"cook_id": COOK_ID, "week_start": "2025-06-09"},
                          headers=customer_headers)
        assert week.status_code == 200
        assert [d["date"] for d in week.json()["data"]] == ["2025-06-10"]

    def test_invalid_transition_is_conflict(self, client, cook_headers):
        client.put(f"{API}/menu-days/2025-06-10", headers=cook_headers, json={"status": "closed"})
        response = client.put(f"{API}/menu-days/2025-06-10", headers=cook_headers,
                              json={"status": "published"})

        assert response.status_code == 409
        assert response.json()["error_code"] == "MENU_DAY_STATUS_INVALID"

    def test_bad_date_is_validation_error(self, client, cook_headers):
        response = client.get(f"{API}/menu-days/not-a-date", headers=cook_headers)
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"


class TestOrderApi:

    def _order(self, client, headers, meal_id="m1"):
        return client.post(f"{API}/orders", headers=headers, json={
            "cook_id": COOK_ID, "meal_id": meal_id, "date": "2025-06-10", "time_zone": "UTC",
        })

    def test_create_update_cancel(self, client, published_day, customer_headers):
        created = self._order(client, customer_headers)
        assert created.status_code == 200
        data = created.json()["data"]
        assert data["status"] == "pending"
        assert data["price_at_order_cents"] == 2500
        assert data["can_cancel"] is True

        updated = self._order(client, customer_headers, "m2")
        assert updated.json()["data"]["order_id"] == data["order_id"]

        cancelled = client.delete(f"{API}/orders", headers=customer_headers,
                                  params={"cook_id": COOK_ID, "date": "2025-06-10"})
        assert cancelled.status_code == 200
        assert cancelled.json()["data"]["status"] == "cancelled"

        history = client.get(f"{API}/orders/history", headers=customer_headers)
        assert [o["order_id"] for o in history.json()["data"]] == [data["order_id"]]

    def test_cutoff_expired(self, client, published_day, customer_headers, clock):
        clock.set("2025-06-10T08:00:01")
        response = self._order(client, customer_headers)

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "CUTOFF_EXPIRED"

    def test_invalid_selection(self, client, published_day, customer_headers):
        response = self._order(client, customer_headers, "m3")
        assert response.status_code == 422
        assert response.json()["error_code"] == "INVALID_SELECTION"

    def test_no_menu(self, client, catalog, customer_headers):
        response = self._order(client, customer_headers)
        assert response.status_code == 404
        assert response.json()["error_code"] == "MENU_DAY_NOT_FOUND"

    def test_mine(self, client, published_day, customer_headers):
        self._order(client, customer_headers)
        response = client.get(f"{API}/orders/mine", headers=customer_headers,
                              params={"from": "2025-06-09", "to": "2025-06-16"})
        assert [o["meal_id"] for o in response.json()["data"]] == ["m1"]

    def test_cook_flow(self, client, published_day, customer_headers, cook_headers):
        order_id = self._order(client, customer_headers).json()["data"]["order_id"]

        rows = client.get(f"{API}/orders/cook", headers=cook_headers,
                          params={"from": "2025-06-10", "to": "2025-06-11"}).json()["data"]
        assert [(r["customer_name"], r["meal_name"]) for r in rows] == [("Luis", "Gallo pinto")]

        response = client.patch(f"{API}/orders/{order_id}/status", headers=cook_headers,
                                json={"status": "ready"})
        assert response.json()["data"]["status"] == "ready"

        groups = client.get(f"{API}/orders/cook/grouped", headers=cook_headers,
                            params={"meal_id": "m1", "from": "2025-06-09", "to": "2025-06-16"}).json()["data"]
        assert groups[0]["date"] == "2025-06-10"
        assert groups[0]["ready"] == 1

    def test_other_cook_cannot_change_status(self, client, published_day, customer_headers):
        order_id = self._order(client, customer_headers).json()["data"]["order_id"]
        response = client.patch(f"{API}/orders/{order_id}/status", headers=make_headers("c2", "cook"),
                                json={"status": "ready"})
        assert response.status_code == 403


class TestWeekAndLogsApi:

    def test_week_projection(self, client, published_day, customer_headers):
        client.post(f"{API}/orders", headers=customer_headers, json={
            "cook_id": COOK_ID, "meal_id": "m2", "date": "2025-06-10",
        })
        response = client.get(f"{API}/week", headers=customer_headers,
                              params={"cook_id": COOK_ID, "week_start": "2025-06-09"})

        assert response.status_code == 200
        day = response.json()["data"][0]
        assert day["selected_meal_id"] == "m2"
        assert day["can_cancel"] is True
        assert [d["meal_id"] for d in day["dishes"]] == ["m1", "m2"]

    def test_logs_for_cook(self, client, published_day, cook_headers):
        response = client.get(f"{API}/logs", headers=cook_headers, params={"action": "menu_day_upsert"})

        data = response.json()["data"]
        assert data["total"] == 1
        assert data["logs"][0]["detail"]["to_status"] == "published"
