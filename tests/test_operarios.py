def test_operario_crud(client):
    r = client.post("/operarios", json={"name": "Luis", "email": "Luis@Obra.es"})
    assert r.status_code == 200
    luis = r.json()
    assert luis["email"] == "luis@obra.es"
    assert len(luis["access_code"]) == 4

    r = client.post("/operarios", json={"name": "Luis B", "email": "luis@obra.es"})
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "DUPLICATE_EMAIL"

    r = client.put(f"/operarios/{luis['id']}", json={"name": "Luis García", "email": "luis@obra.es"})
    assert r.status_code == 200
    assert r.json()["name"] == "Luis García"

    r = client.get("/operarios")
    assert [o["id"] for o in r.json()] == [luis["id"]]

    r = client.delete(f"/operarios/{luis['id']}")
    assert r.status_code == 200
    assert r.json()["mode"] == "hard"

    r = client.put(f"/operarios/{luis['id']}", json={"name": "X"})
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "OPERARIO_NOT_FOUND"


def test_regenerate_code(client):
    r = client.post("/operarios", json={"name": "Marta"})
    marta = r.json()

    r = client.post(f"/operarios/{marta['id']}/regenerate-code")
    assert r.status_code == 200
    code = r.json()["access_code"]

    r = client.post("/inventory/auth", json={"operario_code": code})
    assert r.status_code == 200
    assert r.json()["id"] == marta["id"]
