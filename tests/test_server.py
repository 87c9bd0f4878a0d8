import sys
from pathlib import Path

from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from anchor_ghost.server import create_app

FIELDS = [
    {"selector": "#name", "label": "Patient Name", "role": "textbox", "editable": True, "visible": True},
    {"selector": "#notes", "label": "Assessment", "role": "textarea", "editable": True, "visible": True},
]


def _client() -> TestClient:
    return TestClient(create_app())


def test_health():
    response = _client().get("/")
    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_plan_from_supplied_fields():
    response = _client().post("/actions/plan", json={"url": "http://ehr.test/", "fields": FIELDS, "note": "Stable."})
    assert response.status_code == 200
    plan = response.json()
    assert plan["noteTargetSelector"] == "#notes"
    assert {step["selector"]: step["value"] for step in plan["steps"]} == {
        "#notes": "Stable.",
        "#name": "DEMO_PATIENT_NAME",
    }
    assert plan["url"] == "http://ehr.test/"


def test_plan_falls_back_to_stored_dom_map():
    client = _client()
    stored = client.post("/dom", json={"url": "http://ehr.test/", "fields": FIELDS + [{"selector": 3}]})
    assert stored.json() == {"ok": True, "fields": 2}
    assert client.get("/dom").json()["url"] == "http://ehr.test/"

    plan = client.post("/actions/plan", json={"note": ""}).json()
    assert plan["url"] == "http://ehr.test/"
    assert [step["value"] for step in plan["steps"]] == ["DEMO_PATIENT_NAME", "DEMO_ASSESSMENT"]
    assert "noteTargetSelector" not in plan


def test_invalid_shapes_are_rejected():
    client = _client()
    assert client.post("/dom", json={"url": "http://ehr.test/", "fields": "nope"}).status_code == 422
    assert client.post("/dom", json=["not", "an", "object"]).status_code == 422
    assert client.post("/actions/plan", json={"fields": "nope", "note": "x"}).status_code == 422
    assert client.post("/actions/plan", json={"fields": FIELDS, "note": 5}).status_code == 422


def test_missing_map_is_reported():
    client = _client()
    assert client.get("/dom").status_code == 404
    assert client.post("/actions/plan", json={"note": "Stable."}).status_code == 409
