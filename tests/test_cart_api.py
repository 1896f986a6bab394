from conftest import MIXED_ROSES, PINK_ORCHID, RED_ROSES, TULIPS_OUT_OF_STOCK


def test_cart_requires_sign_in(client):
    assert client.get("/api/cart").status_code == 401
    assert client.post("/api/cart", json={"product_id": RED_ROSES}).status_code == 401


def test_empty_cart(client, auth_headers):
    cart = client.get("/api/cart", headers=auth_headers).json()
    assert cart == {"items": [], "item_count": 0, "subtotal": 0.0}


def test_add_item(client, auth_headers):
    response = client.post("/api/cart", json={"product_id": RED_ROSES, "quantity": 2}, headers=auth_headers)
    assert response.status_code == 200
    cart = response.json()
    assert cart["item_count"] == 2
    assert cart["subtotal"] == 1798.0
    line = cart["items"][0]
    assert line["product_name"] == "Red Rose Bouquet"
    assert line["unit_price"] == 899.0
    assert line["total_price"] == 1798.0


def test_adding_same_product_increments_quantity(client, auth_headers):
    client.post("/api/cart", json={"product_id": RED_ROSES}, headers=auth_headers)
    cart = client.post("/api/cart", json={"product_id": RED_ROSES, "quantity": 3}, headers=auth_headers).json()
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 4


def test_add_rejections(client, auth_headers):
    missing = client.post("/api/cart", json={"product_id": 999}, headers=auth_headers)
    assert missing.status_code == 404

    out_of_stock = client.post("/api/cart", json={"product_id": TULIPS_OUT_OF_STOCK}, headers=auth_headers)
    assert out_of_stock.status_code == 400
    assert out_of_stock.json()["detail"] == "Product 'Seasonal Tulip Bunch' is currently not available"

    zero = client.post("/api/cart", json={"product_id": RED_ROSES, "quantity": 0}, headers=auth_headers)
    assert zero.status_code == 422


def test_quantity_limit_per_line(client, auth_headers):
    client.post("/api/cart", json={"product_id": RED_ROSES, "quantity": 60}, headers=auth_headers)
    response = client.post("/api/cart", json={"product_id": RED_ROSES, "quantity": 50}, headers=auth_headers)
    assert response.status_code == 400
    cart = client.get("/api/cart", headers=auth_headers).json()
    assert cart["items"][0]["quantity"] == 60


def test_update_quantity(client, auth_headers):
    client.post("/api/cart", json={"product_id": PINK_ORCHID}, headers=auth_headers)
    cart = client.put(f"/api/cart/{PINK_ORCHID}", json={"quantity": 3}, headers=auth_headers).json()
    assert cart["items"][0]["quantity"] == 3
    assert cart["subtotal"] == 4497.0


def test_update_to_zero_removes_line(client, auth_headers):
    client.post("/api/cart", json={"product_id": PINK_ORCHID}, headers=auth_headers)
    cart = client.put(f"/api/cart/{PINK_ORCHID}", json={"quantity": 0}, headers=auth_headers).json()
    assert cart["items"] == []


def test_update_missing_line(client, auth_headers):
    response = client.put(f"/api/cart/{PINK_ORCHID}", json={"quantity": 2}, headers=auth_headers)
    assert response.status_code == 404


def test_remove_and_clear(client, auth_headers):
    client.post("/api/cart", json={"product_id": RED_ROSES}, headers=auth_headers)
    client.post("/api/cart", json={"product_id": PINK_ORCHID}, headers=auth_headers)

    cart = client.delete(f"/api/cart/{RED_ROSES}", headers=auth_headers).json()
    assert [line["product_id"] for line in cart["items"]] == [PINK_ORCHID]
    assert client.delete(f"/api/cart/{RED_ROSES}", headers=auth_headers).status_code == 404

    cart = client.delete("/api/cart", headers=auth_headers).json()
    assert cart["items"] == []


def test_sync_merges_guest_cart(client, auth_headers):
    client.post("/api/cart", json={"product_id": RED_ROSES, "quantity": 3}, headers=auth_headers)
    response = client.post("/api/cart/sync", json={"items": [
        {"product_id": RED_ROSES, "quantity": 1},
        {"product_id": MIXED_ROSES, "quantity": 2},
        {"product_id": TULIPS_OUT_OF_STOCK, "quantity": 1},
        {"product_id": 999, "quantity": 1},
    ]}, headers=auth_headers)
    assert response.status_code == 200
    quantities = {line["product_id"]: line["quantity"] for line in response.json()["items"]}
    assert quantities == {RED_ROSES: 3, MIXED_ROSES: 2}


def test_carts_are_per_user(client, register):
    asha = register("asha@example.com")
    ravi = register("ravi@example.com")
    client.post("/api/cart", json={"product_id": RED_ROSES}, headers=asha)
    assert client.get("/api/cart", headers=ravi).json()["items"] == []
