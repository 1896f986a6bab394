from conftest import address_payload


def add(client, headers, **overrides):
    response = client.post("/api/addresses", json=address_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_addresses_require_sign_in(client):
    assert client.get("/api/addresses").status_code == 401


def test_first_address_becomes_default(client, auth_headers):
    first = add(client, auth_headers)
    assert first["is_default"] is True
    assert first["country"] == "India"
    assert first["address_type"] == "Home"

    second = add(client, auth_headers, address_type="Office")
    assert second["is_default"] is False


def test_new_default_replaces_old_one(client, auth_headers):
    first = add(client, auth_headers)
    second = add(client, auth_headers, is_default=True)

    addresses = client.get("/api/addresses", headers=auth_headers).json()
    assert [a["id"] for a in addresses] == [second["id"], first["id"]]
    assert [a["is_default"] for a in addresses] == [True, False]


def test_set_default(client, auth_headers):
    add(client, auth_headers)
    second = add(client, auth_headers)
    response = client.post(f"/api/addresses/{second['id']}/default", headers=auth_headers)
    assert response.json()["is_default"] is True

    defaults = [a for a in client.get("/api/addresses", headers=auth_headers).json() if a["is_default"]]
    assert [a["id"] for a in defaults] == [second["id"]]


def test_blank_optional_fields_become_null(client, auth_headers):
    address = add(client, auth_headers, email="", landmark="  ", address_line2="")
    assert address["email"] is None
    assert address["landmark"] is None
    assert address["address_line2"] is None


def test_validation(client, auth_headers):
    cases = [
        {"full_name": "A"},
        {"phone": "12345"},
        {"address_line1": "12"},
        {"city": "B"},
        {"postal_code": "060038"},
        {"postal_code": "56003"},
        {"email": "not-an-email"},
        {"address_type": "Warehouse"},
    ]
    for overrides in cases:
        response = client.post("/api/addresses", json=address_payload(**overrides), headers=auth_headers)
        assert response.status_code == 422, overrides


def test_update_address(client, auth_headers):
    address = add(client, auth_headers)
    response = client.put(
        f"/api/addresses/{address['id']}",
        json=address_payload(city="Mysuru", postal_code="570001"),
        headers=auth_headers,
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["city"] == "Mysuru"
    # Saving without is_default keeps the address as default
    assert updated["is_default"] is True


def test_addresses_are_private(client, register):
    asha = register("asha@example.com")
    ravi = register("ravi@example.com")
    address = add(client, asha)

    assert client.get("/api/addresses", headers=ravi).json() == []
    assert client.put(
        f"/api/addresses/{address['id']}", json=address_payload(), headers=ravi
    ).status_code == 404
    assert client.delete(f"/api/addresses/{address['id']}", headers=ravi).status_code == 404


def test_deleting_default_promotes_oldest(client, auth_headers):
    first = add(client, auth_headers)
    second = add(client, auth_headers)
    third = add(client, auth_headers, is_default=True)

    assert client.delete(f"/api/addresses/{third['id']}", headers=auth_headers).status_code == 204

    addresses = client.get("/api/addresses", headers=auth_headers).json()
    assert [a["id"] for a in addresses] == [first["id"], second["id"]]
    assert addresses[0]["is_default"] is True


def test_deleting_selected_address_clears_checkout(client, ready_checkout):
    checkout = client.get("/api/checkout", headers=ready_checkout).json()
    address_id = checkout["shipping_address"]["id"]

    client.delete(f"/api/addresses/{address_id}", headers=ready_checkout)

    checkout = client.get("/api/checkout", headers=ready_checkout).json()
    assert checkout["shipping_address"] is None
    assert "Shipping address not selected" in checkout["validation_errors"]
    assert checkout["current_step"] == "shipping"
