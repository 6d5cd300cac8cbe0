"""Integration tests for providers, products and orders."""

from decimal import Decimal

import pytest

from songstock.domain.entities import UserRole


@pytest.fixture
def shop(client, seed_user, login, admin_headers) -> dict:
    """A provider with one vinyl and one digital product."""
    seed_user("seller", UserRole.PROVIDER, business_name="Discos Seller")
    headers = login("seller")

    artist_id = client.post(
        "/api/artists", json={"name": "Totó la Momposina"}, headers=headers
    ).json()["id"]
    album_id = client.post(
        "/api/albums", json={"title": "La Candela Viva", "artist_id": artist_id}, headers=headers
    ).json()["id"]
    category_id = client.post(
        "/api/categories", json={"name": "Vinyl"}, headers=admin_headers
    ).json()["id"]

    vinyl = client.post(
        "/api/products",
        json={
            "album_id": album_id,
            "category_id": category_id,
            "product_type": "PHYSICAL",
            "price": "45.00",
            "stock_quantity": 2,
            "vinyl_size": "TWELVE_INCH",
        },
        headers=headers,
    )
    assert vinyl.status_code == 201, vinyl.text
    digital = client.post(
        "/api/products",
        json={
            "album_id": album_id,
            "category_id": category_id,
            "product_type": "DIGITAL",
            "price": "9.99",
            "file_format": "FLAC",
        },
        headers=headers,
    )
    assert digital.status_code == 201, digital.text
    return {
        "headers": headers,
        "vinyl": vinyl.json(),
        "digital": digital.json(),
        "category_id": category_id,
    }


class TestProducts:
    def test_created_product_has_generated_sku(self, shop) -> None:
        assert shop["vinyl"]["sku"].startswith("PHY-")
        assert shop["vinyl"]["in_stock"] is True
        assert shop["digital"]["in_stock"] is True

    def test_public_listing_with_filters(self, client, shop) -> None:
        body = client.get("/api/products", params={"product_type": "DIGITAL"}).json()
        assert [p["id"] for p in body["items"]] == [shop["digital"]["id"]]
        assert client.get("/api/products").json()["total"] == 2

    def test_my_products(self, client, shop) -> None:
        body = client.get("/api/products/me", headers=shop["headers"]).json()
        assert body["total"] == 2

    def test_stock_update_and_low_stock(self, client, shop) -> None:
        vinyl_id = shop["vinyl"]["id"]
        response = client.patch(
            f"/api/products/{vinyl_id}/stock",
            json={"stock_quantity": 1},
            headers=shop["headers"],
        )
        assert response.status_code == 200
        assert response.json()["is_low_stock"] is True
        low = client.get("/api/products/low-stock", headers=shop["headers"]).json()
        assert [p["id"] for p in low] == [vinyl_id]

    def test_digital_stock_update_is_400(self, client, shop) -> None:
        response = client.patch(
            f"/api/products/{shop['digital']['id']}/stock",
            json={"stock_quantity": 5},
            headers=shop["headers"],
        )
        assert response.status_code == 400

    def test_other_provider_cannot_edit(self, client, seed_user, login, shop) -> None:
        seed_user("rival", UserRole.PROVIDER, business_name="Rival")
        response = client.patch(
            f"/api/products/{shop['vinyl']['id']}",
            json={"price": "1.00"},
            headers=login("rival"),
        )
        assert response.status_code == 403

    def test_statistics_is_admin_only(self, client, shop, admin_headers) -> None:
        assert client.get("/api/products/statistics", headers=shop["headers"]).status_code == 403
        body = client.get("/api/products/statistics", headers=admin_headers).json()
        assert body["total_products"] == 2
        assert body["digital_products"] == 1

    def test_provider_with_products_cannot_be_deleted(
        self, client, shop, admin_headers
    ) -> None:
        me = client.get("/api/auth/me", headers=shop["headers"]).json()
        response = client.delete(f"/api/admin/users/{me['id']}", headers=admin_headers)
        assert response.status_code == 400
        assert "associated products" in response.json()["detail"]

    def test_dashboard_counts_products(self, client, shop, admin_headers) -> None:
        body = client.get("/api/admin/users/statistics", headers=admin_headers).json()
        assert body["total_products"] == 2
        assert body["physical_products"] == 1


class TestOrders:
    def test_checkout_and_cancel(self, client, seed_user, login, shop) -> None:
        seed_user("buyer")
        buyer = login("buyer")
        vinyl_id = shop["vinyl"]["id"]

        response = client.post(
            "/api/orders",
            json={
                "items": [
                    {"product_id": vinyl_id, "quantity": 2},
                    {"product_id": shop["digital"]["id"], "quantity": 1},
                ],
                "shipping_address": "Carrera 7 # 12-34, Bogotá",
            },
            headers=buyer,
        )
        assert response.status_code == 201, response.text
        order = response.json()
        assert order["status"] == "PENDING"
        assert Decimal(order["total_amount"]) == Decimal("99.99")
        assert client.get(f"/api/products/{vinyl_id}").json()["stock_quantity"] == 0

        mine = client.get("/api/orders/me", headers=buyer).json()
        assert [o["id"] for o in mine] == [order["id"]]
        seller_view = client.get("/api/orders/provider", headers=shop["headers"]).json()
        assert [o["id"] for o in seller_view] == [order["id"]]

        cancelled = client.post(f"/api/orders/{order['id']}/cancel", headers=buyer)
        assert cancelled.json()["status"] == "CANCELLED"
        assert client.get(f"/api/products/{vinyl_id}").json()["stock_quantity"] == 2

    def test_insufficient_stock_rolls_back(self, client, seed_user, login, shop) -> None:
        seed_user("buyer")
        response = client.post(
            "/api/orders",
            json={
                "items": [{"product_id": shop["vinyl"]["id"], "quantity": 3}],
                "shipping_address": "Somewhere",
            },
            headers=login("buyer"),
        )
        assert response.status_code == 400
        assert client.get(f"/api/products/{shop['vinyl']['id']}").json()["stock_quantity"] == 2

    def test_provider_cannot_place_orders(self, client, shop) -> None:
        response = client.post(
            "/api/orders",
            json={"items": [{"product_id": shop["digital"]["id"], "quantity": 1}]},
            headers=shop["headers"],
        )
        assert response.status_code == 403

    def test_admin_moves_status_forward_only(
        self, client, seed_user, login, shop, admin_headers
    ) -> None:
        seed_user("buyer")
        order_id = client.post(
            "/api/orders",
            json={"items": [{"product_id": shop["digital"]["id"], "quantity": 1}]},
            headers=login("buyer"),
        ).json()["id"]

        confirmed = client.patch(
            f"/api/orders/{order_id}/status", json={"status": "CONFIRMED"}, headers=admin_headers
        )
        assert confirmed.json()["status"] == "CONFIRMED"
        back = client.patch(
            f"/api/orders/{order_id}/status", json={"status": "PENDING"}, headers=admin_headers
        )
        assert back.status_code == 400


class TestProviders:
    def test_provider_me_and_admin_verification(self, client, shop, admin_headers) -> None:
        me = client.get("/api/providers/me", headers=shop["headers"]).json()
        assert me["business_name"] == "Discos Seller"
        assert me["verification_status"] == "PENDING"

        verified = client.post(
            f"/api/providers/{me['id']}/verify",
            json={"reason": "documents ok"},
            headers=admin_headers,
        )
        assert verified.status_code == 200
        assert verified.json()["verification_status"] == "VERIFIED"

        listed = client.get(
            "/api/providers", params={"verification_status": "VERIFIED"}, headers=admin_headers
        ).json()
        assert [p["id"] for p in listed] == [me["id"]]

    def test_invitation_flow(self, client, admin_headers) -> None:
        created = client.post(
            "/api/providers/invitations",
            json={"email": "invitee@example.com", "business_name": "Invited Records"},
            headers=admin_headers,
        )
        assert created.status_code == 201, created.text
        token = created.json()["invitation_token"]

        public = client.get(f"/api/providers/invitations/{token}")
        assert public.status_code == 200
        assert public.json()["status"] == "PENDING"

        registered = client.post(
            "/api/auth/register-provider",
            json={
                "username": "invitee",
                "email": "invitee@example.com",
                "password": "longenough",
                "first_name": "In",
                "last_name": "Vitee",
                "invitation_token": token,
            },
        )
        assert registered.status_code == 201, registered.text
        assert registered.json()["provider"]["business_name"] == "Invited Records"

        completed = client.get(
            "/api/providers/invitations", params={"status": "COMPLETED"}, headers=admin_headers
        ).json()
        assert [i["invitation_token"] for i in completed] == [token]
        assert client.delete(
            f"/api/providers/invitations/{token}", headers=admin_headers
        ).status_code == 400


class TestProductLookups:
    def test_sku_and_price_range(self, client, shop) -> None:
        vinyl = shop["vinyl"]
        assert client.get(f"/api/products/sku/{vinyl['sku']}").json()["id"] == vinyl["id"]
        assert client.get("/api/products/sku/UNKNOWN").status_code == 404

        cheap = client.get(
            "/api/products/price-range", params={"min_price": "0", "max_price": "10"}
        )
        assert cheap.status_code == 200
        assert [p["id"] for p in cheap.json()] == [shop["digital"]["id"]]
        inverted = client.get(
            "/api/products/price-range", params={"min_price": "50", "max_price": "10"}
        )
        assert inverted.status_code == 400
        assert client.get("/api/products/price-range").status_code == 422

    def test_format_lookups(self, client, shop) -> None:
        vinyl, digital = shop["vinyl"], shop["digital"]
        album_id = vinyl["album_id"]

        alternatives = client.get(f"/api/products/{vinyl['id']}/alternative-formats")
        assert [p["id"] for p in alternatives.json()] == [digital["id"]]
        has_alt = client.get(f"/api/products/{digital['id']}/has-alternative").json()
        assert has_alt == {"has_alternative": True}

        formats = client.get(f"/api/products/album/{album_id}/all-formats").json()
        assert [p["product_type"] for p in formats] == ["DIGITAL", "PHYSICAL"]
        assert client.get("/api/products/album/999/all-formats").status_code == 404

        with_vinyl = client.get("/api/products/digital-with-vinyl").json()
        with_digital = client.get("/api/products/vinyl-with-digital").json()
        assert [p["id"] for p in with_vinyl] == [digital["id"]]
        assert [p["id"] for p in with_digital] == [vinyl["id"]]

    def test_image_management(self, client, shop) -> None:
        base = f"/api/products/{shop['vinyl']['id']}/images"
        first = client.post(
            base, json={"image_url": "https://img.example.com/front.jpg"}, headers=shop["headers"]
        )
        assert first.status_code == 201, first.text
        assert first.json()["is_primary"] is True
        back = client.post(
            base,
            json={"image_url": "https://img.example.com/back.jpg", "display_order": 1},
            headers=shop["headers"],
        ).json()
        assert back["is_primary"] is False

        response = client.patch(f"{base}/{back['id']}/primary", headers=shop["headers"])
        assert response.status_code == 200
        listed = client.get(base).json()
        assert [i["is_primary"] for i in listed] == [False, True]

        assert client.delete(f"{base}/{back['id']}", headers=shop["headers"]).status_code == 204
        listed = client.get(base).json()
        assert [(i["id"], i["is_primary"]) for i in listed] == [(first.json()["id"], True)]

    def test_anonymous_cannot_add_images(self, client, shop) -> None:
        response = client.post(
            f"/api/products/{shop['vinyl']['id']}/images", json={"image_url": "x.jpg"}
        )
        assert response.status_code == 401


def _place_order(client, buyer, shop, vinyl_qty: int = 1) -> dict:
    response = client.post(
        "/api/orders",
        json={
            "items": [
                {"product_id": shop["vinyl"]["id"], "quantity": vinyl_qty},
                {"product_id": shop["digital"]["id"], "quantity": 1},
            ],
            "shipping_address": "Calle 10 # 5-51, Cartagena",
        },
        headers=buyer,
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestFulfilment:
    def test_full_journey_to_review(self, client, seed_user, login, shop) -> None:
        seed_user("buyer")
        buyer, seller = login("buyer"), shop["headers"]
        order = _place_order(client, buyer, shop)
        assert {i["status"] for i in order["items"]} == {"PENDING"}

        pending = client.get("/api/orders/provider/pending", headers=seller).json()
        assert [o["id"] for o in pending] == [order["id"]]

        for item in order["items"]:
            accepted = client.post(f"/api/orders/items/{item['id']}/accept", headers=seller)
            assert accepted.status_code == 200, accepted.text
            shipped = client.post(
                f"/api/orders/items/{item['id']}/ship",
                json={"shipped_at": "2026-05-02T10:00:00Z"},
                headers=seller,
            )
            assert shipped.status_code == 200, shipped.text
        assert shipped.json()["status"] == "SHIPPED"
        assert shipped.json()["shipped_at"].startswith("2026-05-02T10:00:00")
        assert client.get("/api/orders/provider/pending", headers=seller).json() == []

        for item in order["items"]:
            delivered = client.post(f"/api/orders/items/{item['id']}/deliver", headers=seller)
        assert delivered.json()["status"] == "DELIVERED"

        received = client.post(f"/api/orders/{order['id']}/confirm-received", headers=buyer)
        assert received.json()["status"] == "RECEIVED"

        review_url = f"/api/orders/{order['id']}/review"
        created = client.post(review_url, json={"rating": 5, "comment": "Perfect"}, headers=buyer)
        assert created.status_code == 201, created.text
        assert client.post(review_url, json={"rating": 4}, headers=buyer).status_code == 409
        assert client.get(review_url, headers=seller).json()["comment"] == "Perfect"

    def test_reject_restores_stock(self, client, seed_user, login, shop) -> None:
        seed_user("buyer")
        buyer, seller = login("buyer"), shop["headers"]
        order = _place_order(client, buyer, shop, vinyl_qty=2)
        vinyl_item = next(
            i for i in order["items"] if i["product_id"] == shop["vinyl"]["id"]
        )
        url = f"/api/orders/items/{vinyl_item['id']}/reject"

        assert client.post(url, json={"reason": ""}, headers=seller).status_code == 422
        response = client.post(url, json={"reason": "Warped record"}, headers=seller)
        assert response.status_code == 200, response.text
        body = response.json()
        assert Decimal(body["total_amount"]) == Decimal("9.99")
        rejected = next(i for i in body["items"] if i["id"] == vinyl_item["id"])
        assert rejected["status"] == "REJECTED"
        assert rejected["rejection_reason"] == "Warped record"
        product = client.get(f"/api/products/{shop['vinyl']['id']}").json()
        assert product["stock_quantity"] == 2

    def test_item_actions_are_provider_only(self, client, seed_user, login, shop) -> None:
        seed_user("buyer")
        buyer = login("buyer")
        order = _place_order(client, buyer, shop)
        item_id = order["items"][0]["id"]

        assert client.post(f"/api/orders/items/{item_id}/accept", headers=buyer).status_code == 403
        response = client.post(f"/api/orders/items/{item_id}/deliver", headers=shop["headers"])
        assert response.status_code == 400

    def test_review_needs_delivery_and_valid_rating(
        self, client, seed_user, login, shop
    ) -> None:
        seed_user("buyer")
        buyer = login("buyer")
        order = _place_order(client, buyer, shop)
        url = f"/api/orders/{order['id']}/review"

        assert client.post(url, json={"rating": 7}, headers=buyer).status_code == 422
        assert client.post(url, json={"rating": 4}, headers=buyer).status_code == 400
        assert client.get(url, headers=buyer).status_code == 404
        confirm = client.post(f"/api/orders/{order['id']}/confirm-received", headers=buyer)
        assert confirm.status_code == 400
