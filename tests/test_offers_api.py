"""HTTP API for offers."""
import uuid


def christmas_payload(**overrides):
    payload = {
        "name": "Christmas Collection 15% Off",
        "description": "Get 15% off all Christmas decorations",
        "type": "PERCENT_OFF",
        "percent_off": 15,
        "priority": 10,
        "is_stackable": False,
        "scopes": {"collections": ["Christmas"]},
    }
    payload.update(overrides)
    return payload


async def create(client, **overrides):
    response = await client.post("/api/v1/offers", json=christmas_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


class TestAdmin:
    async def test_create_and_get(self, client, products):
        created = await create(client)

        assert created["type"] == "PERCENT_OFF"
        assert created["scopes"] == {"product_ids": [], "categories": [], "collections": ["Christmas"]}
        assert created["display_text"] == "15% off"

        response = await client.get(f"/api/v1/offers/{created['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Christmas Collection 15% Off"

    async def test_create_validation_error(self, client, products):
        response = await client.post("/api/v1/offers", json=christmas_payload(type="AMOUNT_OFF"))

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Amount off value is required for AMOUNT_OFF offers"

    async def test_create_rejects_amount_below_one_cent(self, client, products):
        response = await client.post("/api/v1/offers", json=christmas_payload(
            type="AMOUNT_OFF", percent_off=None, amount_off="0.001", scopes={"categories": ["Garlands"]},
        ))
        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "amount_off"

        response = await client.post("/api/v1/offers/calculate", json={
            "cart_items": [{"product_id": str(products["XM-GAR-001"].id), "quantity": 2}],
        })
        assert response.status_code == 200
        assert response.json()["applied_offers"] == []

    async def test_create_rejects_malformed_body(self, client, products):
        response = await client.post("/api/v1/offers", json=christmas_payload(type="BOGO"))
        assert response.status_code == 422

    async def test_free_item_display_text(self, client, products):
        created = await create(
            client,
            name="Buy 2 Garlands Get 1 Free",
            type="FREE_ITEM",
            free_item_product_id=str(products["XM-GAR-001"].id),
            min_quantity=2,
            scopes={"categories": ["Garlands"]},
        )
        assert created["display_text"] == "Free Pine Garland 6ft (min 2 items)"
        assert created["free_item_product"]["sku"] == "XM-GAR-001"

    async def test_free_item_unknown_product(self, client, products):
        response = await client.post("/api/v1/offers", json=christmas_payload(
            type="FREE_ITEM", free_item_product_id=str(uuid.uuid4()),
        ))
        assert response.status_code == 404

    async def test_list(self, client, products):
        await create(client)
        await create(client, name="Bulk Order Discount", type="AMOUNT_OFF", amount_off=20,
                     min_order_amount=200, priority=5)

        response = await client.get("/api/v1/offers", params={"type": "AMOUNT_OFF"})

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}
        assert body["items"][0]["display_text"] == "£20 off (min order £200)"

    async def test_update(self, client, products):
        created = await create(client)

        response = await client.patch(f"/api/v1/offers/{created['id']}", json={
            "percent_off": 20,
            "scopes": {"categories": ["Garlands"]},
        })

        assert response.status_code == 200
        body = response.json()
        assert body["display_text"] == "20% off"
        assert body["scopes"]["categories"] == ["Garlands"]
        assert body["scopes"]["collections"] == []

    async def test_delete(self, client, products):
        created = await create(client)

        response = await client.delete(f"/api/v1/offers/{created['id']}")
        assert response.status_code == 204

        response = await client.get(f"/api/v1/offers/{created['id']}")
        assert response.status_code == 404

    async def test_get_missing(self, client):
        response = await client.get(f"/api/v1/offers/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["detail"]["message"] == "Offer not found"


class TestStorefront:
    async def test_calculate(self, client, products):
        christmas = await create(client)
        garland = products["XM-GAR-001"]

        response = await client.post("/api/v1/offers/calculate", json={
            "cart_items": [{"product_id": str(garland.id), "quantity": 48, "unit_price": "7.50"}],
        })

        assert response.status_code == 200
        body = response.json()
        assert [a["offer_id"] for a in body["applied_offers"]] == [christmas["id"]]
        assert float(body["original_amount"]) == 360.0
        assert float(body["total_discount"]) == 54.0
        assert float(body["final_amount"]) == 306.0
        assert body["free_items"] == []

    async def test_calculate_free_items(self, client, products):
        garland = products["XM-GAR-001"]
        await create(
            client,
            name="Buy 2 Garlands Get 1 Free",
            type="FREE_ITEM",
            free_item_product_id=str(garland.id),
            min_quantity=2,
            scopes={"categories": ["Garlands"]},
        )

        response = await client.post("/api/v1/offers/calculate", json={
            "cart_items": [{"product_id": str(products["EA-GAR-001"].id), "quantity": 5}],
        })

        body = response.json()
        assert body["free_items"] == [{"product_id": str(garland.id), "quantity": 2}]
        assert float(body["total_discount"]) == 0.0

    async def test_calculate_unknown_product(self, client, products):
        response = await client.post("/api/v1/offers/calculate", json={
            "cart_items": [{"product_id": str(uuid.uuid4()), "quantity": 1, "unit_price": "1.00"}],
        })
        assert response.status_code == 422
        assert len(response.json()["detail"]["missing_product_ids"]) == 1

    async def test_calculate_rejects_zero_quantity(self, client, products):
        response = await client.post("/api/v1/offers/calculate", json={
            "cart_items": [{"product_id": str(products["XM-GAR-001"].id), "quantity": 0}],
        })
        assert response.status_code == 422

    async def test_applicable_for_item(self, client, products):
        christmas = await create(client)
        await create(client, name="Autumn", scopes={"collections": ["Autumn"]})

        response = await client.get("/api/v1/offers/applicable", params={
            "product_id": str(products["XM-WRE-001"].id),
        })

        assert response.status_code == 200
        assert [o["id"] for o in response.json()] == [christmas["id"]]

    async def test_applicable_without_context_is_empty(self, client, products):
        await create(client)
        response = await client.get("/api/v1/offers/applicable")
        assert response.json() == []

    async def test_applicable_for_cart(self, client, products):
        christmas = await create(client)
        signs = await create(client, name="Signs", priority=20, scopes={"categories": ["Signs"]})

        response = await client.post("/api/v1/offers/applicable", json={"cart_items": [
            {"product_id": str(products["AU-SGN-001"].id), "quantity": 1},
            {"product_id": str(products["XM-GAR-001"].id), "quantity": 1},
        ]})

        assert [o["id"] for o in response.json()] == [signs["id"], christmas["id"]]

    async def test_applicable_with_empty_cart_uses_item(self, client, products):
        christmas = await create(client)

        response = await client.post("/api/v1/offers/applicable", json={
            "cart_items": [],
            "product_id": str(products["XM-WRE-001"].id),
        })

        assert response.status_code == 200
        assert [o["id"] for o in response.json()] == [christmas["id"]]

    async def test_by_products(self, client, products):
        christmas = await create(client)
        garland, sign = products["XM-GAR-001"], products["AU-SGN-001"]

        response = await client.post("/api/v1/offers/by-products", json={
            "product_ids": [str(garland.id), str(sign.id)],
        })

        offers = response.json()["offers"]
        assert [o["id"] for o in offers[str(garland.id)]] == [christmas["id"]]
        assert offers[str(sign.id)] == []


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["app"] == "Wholesale Marketplace Offers"
