import random
from datetime import date

import pytest
from fastapi.testclient import TestClient

import database
import main


BRIDE = {"name": "Asha", "age": 25, "gender": "Female", "height": "5'2\""}
GROOM = {"name": "Kiran", "age": 30, "gender": "Male", "profession": "Doctor", "height": "6'0\""}


def test_root_needs_no_auth(client):
    r = client.get("/", headers={"Authorization": ""})
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_missing_token(client):
    r = client.get("/api/profiles", headers={"Authorization": ""})
    assert r.status_code == 401


def test_wrong_token(client):
    r = client.get("/api/profiles", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 403


def test_profile_crud(client):
    r = client.post("/api/profiles", json=BRIDE)
    assert r.status_code == 201
    created = r.json()
    assert created["profile_id"].startswith("GB-")

    pid = created["id"]
    assert client.get(f"/api/profiles/{pid}").json()["name"] == "Asha"

    r = client.put(f"/api/profiles/{pid}", json={"profession": "Teacher"})
    assert r.status_code == 200
    assert r.json()["profession"] == "Teacher"

    assert client.delete(f"/api/profiles/{pid}").status_code == 200
    assert client.get(f"/api/profiles/{pid}").status_code == 404
    assert client.delete(f"/api/profiles/{pid}").status_code == 404


def test_invalid_profile_rejected(client):
    r = client.post("/api/profiles", json={**BRIDE, "gender": "Other"})
    assert r.status_code == 422


def test_search_and_stats(client):
    client.post("/api/profiles", json=BRIDE)
    client.post("/api/profiles", json=GROOM)

    r = client.get("/api/profiles/search", params={"gender": "Male"})
    assert [p["name"] for p in r.json()] == ["Kiran"]

    assert client.get("/api/profiles/stats").json() == {
        "total_profiles": 2,
        "bride_profiles": 1,
        "groom_profiles": 1,
    }


def test_match_success(client, monkeypatch):
    monkeypatch.setattr(main, "match_rng", random.Random(0))
    client.post("/api/profiles", json=BRIDE)
    client.post("/api/profiles", json=GROOM)

    r = client.post("/api/match", json={
        "name": "Ravi", "age": 30, "gender": "Male", "profession": "Engineer", "height": "5'10\"",
    })
    assert r.status_code == 200
    body = r.json()
    assert body["inputProfile"]["name"] == "Ravi"
    assert body["matchedProfile"]["name"] == "Asha"
    assert body["matchedProfile"]["profile_id"].startswith("GB-")
    assert 85 <= body["compatibilityScore"] <= 100
    assert main.recent_window.ids() == [body["matchedProfile"]["id"]]


def test_bride_match(client):
    client.post("/api/profiles", json=GROOM)
    r = client.post("/api/match", json={"name": "Meera", "age": 25, "gender": "Female", "height": "5'4\""})
    assert r.status_code == 200
    assert r.json()["matchedProfile"]["name"] == "Kiran"


def test_match_groom_profession_required(client):
    client.post("/api/profiles", json=BRIDE)
    r = client.post("/api/match", json={"name": "Ravi", "age": 30, "gender": "Male", "height": "5'10\""})
    assert r.status_code == 400
    assert r.json()["detail"] == "Groom profession is mandatory"


def test_match_not_found(client):
    client.post("/api/profiles", json={**BRIDE, "age": 29})
    r = client.post("/api/match", json={
        "name": "Ravi", "age": 30, "gender": "Male", "profession": "Engineer", "height": "5'10\"",
    })
    assert r.status_code == 404
    assert r.json()["detail"] == "No compatible matches found"


@pytest.mark.parametrize("field", ["name", "age", "gender", "height", "birth_year"])
def test_update_rejects_null_required_field(client, field):
    pid = client.post("/api/profiles", json=BRIDE).json()["id"]
    r = client.put(f"/api/profiles/{pid}", json={field: None})
    assert r.status_code == 422
    assert client.get(f"/api/profiles/{pid}").json()["name"] == "Asha"


def test_update_can_clear_optional_field(client):
    pid = client.post("/api/profiles", json={**BRIDE, "profession": "Teacher"}).json()["id"]
    r = client.put(f"/api/profiles/{pid}", json={"profession": None})
    assert r.status_code == 200
    assert r.json()["profession"] is None


def test_match_echoes_birth_year(client):
    client.post("/api/profiles", json=GROOM)
    r = client.post("/api/match", json={"name": "Meera", "age": 25, "gender": "Female", "height": "5'4\""})
    assert r.json()["inputProfile"]["birthYear"] == date.today().year - 25


def test_custom_options_routes(client):
    r = client.post("/api/custom-options", json={"field_type": "profession", "value": "Pilot"})
    assert r.status_code == 201
    option = r.json()
    assert option["value"] == "Pilot"

    r = client.get("/api/custom-options/profession")
    assert [o["value"] for o in r.json()] == ["Pilot"]

    assert client.delete(f"/api/custom-options/{option['id']}").status_code == 200
    assert client.get("/api/custom-options/profession").json() == []
    assert client.delete(f"/api/custom-options/{option['id']}").status_code == 404


def test_custom_option_needs_value(client):
    r = client.post("/api/custom-options", json={"field_type": "height", "value": ""})
    assert r.status_code == 422


def test_startup_creates_tables(tmp_path, monkeypatch):
    monkeypatch.setattr(database, "DATABASE_FILE", str(tmp_path / "fresh.db"))
    monkeypatch.setattr(main, "AUTH_TOKEN", "test-token")
    with TestClient(main.app) as c:
        r = c.get("/api/profiles/stats", headers={"Authorization": "Bearer test-token"})
    assert r.status_code == 200
    assert r.json()["total_profiles"] == 0
