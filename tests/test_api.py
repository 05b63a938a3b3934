from __future__ import annotations

import csv
import importlib
import io
import json
import os
import sys

from fastapi.testclient import TestClient

from dematel_core import config
from dematel_core.record import canonical_record
from dematel_core.structure import config_digest
from tests.conftest import build_raw_structure, build_snapshot


def _reload_app(tmp_path) -> tuple[object, object]:
    os.environ["DATA_DIR"] = str(tmp_path)
    if "api.storage" in sys.modules:
        importlib.reload(sys.modules["api.storage"])
    else:
        import api.storage  # noqa: F401
    storage = sys.modules["api.storage"]
    if "api.app" in sys.modules:
        importlib.reload(sys.modules["api.app"])
    else:
        import api.app  # noqa: F401
    app_module = sys.modules["api.app"]
    return storage, app_module


def _post_text(client: TestClient, body: str, content_type: str = "text/plain;charset=utf-8"):
    return client.post("/submit", content=body.encode("utf-8"), headers={"Content-Type": content_type})


def test_submit_writes_sheet_and_history(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "SHARED_KEY", "", raising=False)
    storage, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    record = canonical_record(build_snapshot())
    resp = _post_text(client, json.dumps(record, ensure_ascii=False))
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["version"] == config.BACKEND_VERSION
    assert body["sheet"] == record["surveyId"]

    assert client.get("/sheets").json() == {"sheets": [record["surveyId"]]}
    csv_resp = client.get(f"/sheets/{record['surveyId']}.csv")
    assert csv_resp.status_code == 200
    assert csv_resp.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(io.StringIO(csv_resp.text)))
    assert rows[0] == ["key", "value"]
    assert rows[1] == ["surveyId", record["surveyId"]]
    assert ["basicInfo.name", "Lin"] in rows
    assert ["answers.matrix_1", "Group: A-C"] in rows
    assert ["answers.matrix_2", "Group: A1-B1"] in rows

    history = storage.read_history()
    assert len(history) == 1
    assert history[0]["surveyId"] == record["surveyId"]
    assert json.loads(history[0]["json"])["answers"]["A|B"] == "3|0"

    # a resubmission replaces the sheet and appends a second history row
    assert _post_text(client, json.dumps(record)).json()["ok"] is True
    assert client.get("/sheets").json()["sheets"] == [record["surveyId"]]
    assert len(storage.read_history()) == 2


def test_submit_rejections(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "SHARED_KEY", "", raising=False)
    storage, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    resp = _post_text(client, '{"surveyId":"x"}', content_type="application/json")
    assert (resp.status_code, resp.text) == (415, "Unsupported Media Type")
    resp = _post_text(client, "")
    assert (resp.status_code, resp.text) == (400, "Empty body")
    resp = _post_text(client, "{nope")
    assert (resp.status_code, resp.text) == (400, "Invalid JSON syntax")
    resp = _post_text(client, "[1, 2]")
    assert resp.status_code == 400
    resp = _post_text(client, '{"surveyId": "   "}')
    assert (resp.status_code, resp.text) == (400, "Missing field: surveyId")

    assert storage.read_history() == []
    assert client.get("/sheets/none.csv").status_code == 404


def test_submit_shared_key(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "SHARED_KEY", "s3cret", raising=False)
    _, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    resp = _post_text(client, json.dumps({"surveyId": "k1", "key": "wrong"}))
    assert (resp.status_code, resp.text) == (401, "Unauthorized")
    resp = _post_text(client, json.dumps({"surveyId": "k1", "key": "s3cret"}))
    assert resp.json()["ok"] is True
    assert client.get("/health").json()["shared_key_required"] is True


def test_submit_huge_timestamp_is_stored_verbatim(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "SHARED_KEY", "", raising=False)
    _, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    resp = _post_text(client, '{"surveyId":"s1","startTime":1e300}')
    assert resp.status_code == 200
    assert resp.json()["ok"] is True
    rows = list(csv.reader(io.StringIO(client.get("/sheets/s1.csv").text)))
    assert ["startTime", "1e+300"] in rows


def test_submit_sanitizes_sheet_name(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "SHARED_KEY", "", raising=False)
    _, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    resp = _post_text(client, json.dumps({"surveyId": "a/b:c", "answers": {}}))
    assert resp.json()["sheet"] == "a_b_c"
    assert client.get("/sheets/a_b_c.csv").status_code == 200


def test_questions_and_progress(tmp_path):
    _, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)
    raw = build_raw_structure()

    resp = client.post("/questions", json=raw)
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 18
    assert len(body["digest"]) == 64
    first = body["questions"][0]
    assert first["type"] == "dimension"
    assert first["key"] == "dimension:A|B"
    crit = body["questions"][3]
    assert crit["key"] == "criteria:A1|A2"
    assert crit["itemA"]["dimensionCode"] == "A"
    assert crit["itemA"]["examples"] == ["example A1"]

    answers = {"dimension:A|B": "3|0", "dimension:A|C": "0|0", "criteria:A1|A2": "0|1"}
    prog = client.post("/progress", json={"structure": raw, "answers": answers}).json()
    assert prog["dimension"] == {"answered": 2, "total": 3}
    assert prog["criteria"] == {"answered": 1, "total": 15}
    assert prog["percent"] == 17

    bad = dict(raw)
    bad.pop("架構")
    assert client.post("/questions", json=bad).status_code == 422


def test_report_matrices(tmp_path):
    _, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    answers = canonical_record(build_snapshot())["answers"]
    body = client.post("/report/matrices", json={"answers": answers}).json()
    first, second = body["matrices"]
    assert first["labels"] == ["A", "B", "C"]
    assert first["group"] == "A-C"
    assert first["matrix"] == [[0, 3, 0], [0, 0, 2], [0, 4, 0]]
    assert first["rows"][0] == ["answers.matrix_1", "Group: A-C"]
    assert second["labels"] == ["A1", "A2", "B1"]
    assert second["matrix"] == [[0, 0, 4], [1, 0, 0], [4, 0, 0]]


def test_transport_round_trip(tmp_path):
    _, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    record = canonical_record(build_snapshot())
    packed = client.post("/transport/pack", json={"record": record, "budget": 300}).json()
    assert packed["count"] == len(packed["segments"]) >= 1
    assert all(len(s["part"]) <= 200 for s in packed["segments"])

    segments = list(reversed(packed["segments"]))
    resp = client.post("/transport/unpack", json={"segments": segments})
    assert resp.status_code == 200
    assert resp.json()["record"] == record

    as_text = [json.dumps(s) for s in packed["segments"]]
    assert client.post("/transport/unpack", json={"segments": as_text}).json()["record"] == record


def test_transport_errors(tmp_path):
    _, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    record = canonical_record(build_snapshot())
    assert client.post("/transport/pack", json={"record": record, "budget": 50}).status_code == 422

    packed = client.post("/transport/pack", json={"record": record, "budget": 300}).json()
    if packed["count"] > 1:
        resp = client.post("/transport/unpack", json={"segments": packed["segments"][1:]})
        assert resp.status_code == 400
        assert resp.json()["detail"].startswith("IncompleteTransport")

    resp = client.post("/transport/unpack", json={"segments": [{"g": "x", "i": 1, "total": 1, "part": "!!!"}]})
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("MalformedEnvelope")


def test_transport_pack_checks_structure_digest(tmp_path):
    _, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    text = json.dumps(build_raw_structure(), ensure_ascii=False)
    record = canonical_record(build_snapshot())
    record["configDigest"] = config_digest(text)

    resp = client.post("/transport/pack", json={"record": record, "structure": text})
    assert resp.status_code == 200
    assert resp.json()["count"] >= 1

    edited = build_raw_structure()
    edited["架構"][1]["構面"] = "renamed"
    resp = client.post(
        "/transport/pack",
        json={"record": record, "structure": json.dumps(edited, ensure_ascii=False)},
    )
    assert resp.status_code == 409
    assert "structure changed" in resp.json()["detail"]

    assert client.post("/transport/pack", json={"record": record, "structure": "{"}).status_code == 422
