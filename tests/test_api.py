import os

import pytest
from fastapi.testclient import TestClient

from control_importer import api
from control_importer.importer import ControlFileImporter

from .conftest import CONTROL_TEXT, FakeAdapter, make_pdf


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(api, "UPLOAD_DIR", str(tmp_path))
    return tmp_path


def client_for(importer):
    api.app.dependency_overrides[api.get_importer] = lambda: importer
    return TestClient(api.app)


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    api.app.dependency_overrides.clear()


def upload(client, content, content_type="application/pdf", filename="Controlo_Aroeira I.pdf"):
    return client.post("/upload-control-file", files={"pdf": (filename, content, content_type)})


def test_upload_success(store, two_row_response, upload_dir):
    client = client_for(ControlFileImporter(adapter=FakeAdapter(two_row_response), store=store))
    response = upload(client, make_pdf(CONTROL_TEXT))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["propertyName"] == "Aroeira I"
    assert body["totalFound"] == 2
    assert body["summary"] == {"valid": 1, "duplicates": 1, "invalid": 0, "total": 2}
    assert body["created"] == 1
    assert body["results"]["valid"][0]["checkOutDate"] == "05/06/2024"
    assert "error" not in body
    assert os.listdir(upload_dir) == []


def test_rejects_non_pdf_mime_type(store, upload_dir):
    client = client_for(ControlFileImporter(adapter=FakeAdapter("[]"), store=store))
    response = upload(client, b"name,date\n", content_type="text/csv", filename="list.csv")

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_rejects_oversize_upload(store, upload_dir, monkeypatch):
    monkeypatch.setattr(api, "MAX_UPLOAD_BYTES", 100)
    client = client_for(ControlFileImporter(adapter=FakeAdapter("[]"), store=store))
    response = upload(client, make_pdf(CONTROL_TEXT))

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert os.listdir(upload_dir) == []


def test_rejects_unreadable_pdf(store, upload_dir):
    client = client_for(ControlFileImporter(adapter=FakeAdapter("[]"), store=store))
    response = upload(client, b"%PDF-broken")

    assert response.status_code == 400
    assert os.listdir(upload_dir) == []


def test_not_a_control_file(store, upload_dir):
    adapter = FakeAdapter("[]")
    client = client_for(ControlFileImporter(adapter=adapter, store=store))
    response = upload(client, make_pdf("Invoice 42\nTotal due 120,00 EUR"))

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "not a control file"}
    assert adapter.calls == []
    assert os.listdir(upload_dir) == []


def test_extraction_failure(store, failing_adapter, upload_dir):
    client = client_for(ControlFileImporter(adapter=failing_adapter, store=store))
    response = upload(client, make_pdf(CONTROL_TEXT))

    assert response.status_code == 502
    body = response.json()
    assert body["success"] is False
    assert "timed out" in body["error"]
    assert os.listdir(upload_dir) == []


def test_uninitialized_importer_is_server_error(monkeypatch):
    monkeypatch.setattr(api, "importer", None)
    response = TestClient(api.app).post(
        "/upload-control-file", files={"pdf": ("a.pdf", b"%PDF", "application/pdf")}
    )
    assert response.status_code == 500


def test_health(monkeypatch):
    monkeypatch.setattr(api, "importer", None)
    response = TestClient(api.app).get("/health")
    assert response.json() == {"status": "healthy", "importer_initialized": False}
