from conftest import ALICE, BOB

NEW_PRODUCT = {
    "name": "Leather Loafers",
    "description": "Hand-stitched loafers",
    "price": 89.5,
    "category": "Shoes",
    "stock": 4,
}


def test_create_requires_auth(client):
    r = client.post("/products", json=NEW_PRODUCT)
    assert r.status_code == 401


def test_create_product_stamps_creator(alice):
    r = alice.post("/products", json=NEW_PRODUCT)
    assert r.status_code == 201
    body = r.json()
    assert body["name"] == "Leather Loafers"
    assert body["createdBy"] == ALICE.id
    assert body["stock"] == 4
    assert body["image"] == ""
    assert body["id"]


def test_create_missing_fields_is_400(alice):
    r = alice.post("/products", json={"name": "Scarf", "price": 10})
    assert r.status_code == 400


def test_create_rejects_unknown_category_and_negative_stock(alice):
    assert alice.post("/products", json={**NEW_PRODUCT, "category": "Hats"}).status_code == 400
    assert alice.post("/products", json={**NEW_PRODUCT, "stock": -1}).status_code == 400
    assert alice.post("/products", json={**NEW_PRODUCT, "price": -5}).status_code == 400


def test_get_product(client, make_product):
    p = make_product()
    r = client.get(f"/products/{p.id}")
    assert r.status_code == 200
    assert r.json()["name"] == "Linen Shirt"


def test_get_unknown_or_malformed_id_is_404(client):
    assert client.get("/products/5f1d7f3e9b1e8a3b4c5d6e7f").status_code == 404
    assert client.get("/products/not-an-id").status_code == 404


def test_list_filters_and_paginates(client, make_product):
    make_product(name="Linen Shirt")
    make_product(name="Oxford SHIRT")
    make_product(name="Chinos", category="Pants")
    make_product(name="Pearl Necklace", category="Jewelry")

    r = client.get("/products", params={"search": "shirt"})
    body = r.json()
    assert body["total"] == 2
    assert {p["name"] for p in body["products"]} == {"Linen Shirt", "Oxford SHIRT"}

    r = client.get("/products", params={"category": "Pants"})
    assert [p["name"] for p in r.json()["products"]] == ["Chinos"]

    r = client.get("/products", params={"category": "all", "page": 2, "limit": 3})
    body = r.json()
    assert body["total"] == 4
    assert body["totalPages"] == 2
    assert body["currentPage"] == 2
    assert len(body["products"]) == 1


def test_search_is_literal_substring(client, make_product):
    make_product(name="Tote (Large)")
    make_product(name="Tote Large")
    r = client.get("/products", params={"search": "(large)"})
    assert [p["name"] for p in r.json()["products"]] == ["Tote (Large)"]


def test_invalid_page_is_400(client):
    assert client.get("/products", params={"page": 0}).status_code == 400


def test_update_product(bob, make_product):
    p = make_product()
    r = bob.put(f"/products/{p.id}", json={**NEW_PRODUCT, "price": 70})
    assert r.status_code == 200
    body = r.json()
    assert body["price"] == 70
    assert body["name"] == "Leather Loafers"
    assert body["updatedBy"] == BOB.id
    assert body["createdBy"] == ALICE.id


def test_update_unknown_is_404(alice):
    r = alice.put("/products/5f1d7f3e9b1e8a3b4c5d6e7f", json=NEW_PRODUCT)
    assert r.status_code == 404


def test_update_requires_auth(client, make_product):
    p = make_product()
    assert client.put(f"/products/{p.id}", json=NEW_PRODUCT).status_code == 401


def test_delete_product(alice, client, make_product):
    p = make_product()
    r = alice.delete(f"/products/{p.id}")
    assert r.status_code == 204
    assert client.get(f"/products/{p.id}").status_code == 404
    assert alice.delete(f"/products/{p.id}").status_code == 404


def test_delete_pulls_product_from_carts(alice, make_product):
    kept = make_product(name="Belt", category="Accessories")
    gone = make_product(name="Clutch", category="Handbags")
    alice.post("/cart", json={"productId": kept.id})
    alice.post("/cart", json={"productId": gone.id, "quantity": 2})

    alice.delete(f"/products/{gone.id}")

    cart = alice.get("/cart").json()
    assert [line["product"]["id"] for line in cart["items"]] == [kept.id]
    assert cart["totalItems"] == 1
