def test_category_crud(client):
    r = client.post("/categories", json={"name": "Medición", "kind": "individual", "color": "#123ABC"})
    assert r.status_code == 200
    cat = r.json()
    assert cat["color"] == "#123ABC"

    r = client.post("/categories", json={"name": "Medición", "kind": "individual"})
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "DUPLICATE_CATEGORY"

    r = client.post("/categories", json={"name": "Pintura", "kind": "common", "color": "red"})
    assert r.status_code == 422

    r = client.get("/categories", params={"kind": "individual"})
    assert [c["name"] for c in r.json()] == ["Medición"]

    r = client.put(f"/categories/{cat['id']}", json={"name": "Medición láser", "kind": "individual"})
    assert r.status_code == 200
    assert r.json()["name"] == "Medición láser"

    r = client.delete(f"/categories/{cat['id']}")
    assert r.status_code == 200
    assert r.json()["active"] is False
    assert client.get("/categories").json() == []


def test_category_in_use_and_stats(client):
    cat = client.post("/categories", json={"name": "Eléctricas", "kind": "individual"}).json()
    client.post(
        "/inventory/tools",
        json={"name": "Radial", "category_id": cat["id"], "kind": "individual", "total_quantity": 3},
    )

    r = client.delete(f"/categories/{cat['id']}")
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "CATEGORY_IN_USE"

    r = client.get("/categories/stats")
    assert r.status_code == 200
    stats = r.json()
    assert stats[0]["name"] == "Eléctricas"
    assert stats[0]["tool_count"] == 1
    assert stats[0]["available_quantity"] == 3
