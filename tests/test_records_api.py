import io
import zipfile
from datetime import datetime, timezone

from fastapi.testclient import TestClient

from tests.conftest import PET_ID, FakeStore, make_pdf, make_record

RECORDS_URL = f"/pets/{PET_ID}/records"


def test_requires_auth(app: TestClient) -> None:
    assert app.get(RECORDS_URL).status_code == 401


def test_rejects_invalid_token(app: TestClient) -> None:
    response = app.get(RECORDS_URL, headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


def test_upload_pdf(app: TestClient, auth_headers: dict, store: FakeStore) -> None:
    response = app.post(
        RECORDS_URL,
        headers=auth_headers,
        files={"file": ("rabies.pdf", make_pdf("Rabies vaccine administered"), "application/pdf")},
        data={"title": "Rabies certificate"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["record"]["title"] == "Rabies certificate"
    assert "Rabies vaccine administered" in body["record"]["description"]
    assert body["record"]["file_names"] == ["rabies.pdf"]
    assert body["extraction_warning"] is None
    assert [r["id"] for r in body["records"]] == [body["record"]["id"]]
    assert body["record"]["id"] in store.records


def test_upload_rejects_unsupported_type(
    app: TestClient, auth_headers: dict, store: FakeStore
) -> None:
    response = app.post(
        RECORDS_URL,
        headers=auth_headers,
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 415
    assert "Only PDF and image files" in response.json()["detail"]
    assert store.records == {}


def test_upload_rejects_empty_file(app: TestClient, auth_headers: dict) -> None:
    response = app.post(
        RECORDS_URL,
        headers=auth_headers,
        files={"file": ("scan.pdf", b"", "application/pdf")},
    )
    assert response.status_code == 422
    assert response.json()["detail"] == "Uploaded file is empty"


def test_upload_persist_failure_returns_502(
    app: TestClient, auth_headers: dict, store: FakeStore
) -> None:
    store.fail_saves = True
    response = app.post(
        RECORDS_URL,
        headers=auth_headers,
        files={"file": ("scan.pdf", make_pdf("CBC"), "application/pdf")},
    )

    assert response.status_code == 502
    assert "Failed to save record" in response.json()["detail"]
    assert store.records == {}


def test_list_records_newest_first(
    app: TestClient, auth_headers: dict, store: FakeStore
) -> None:
    store.records["old"] = make_record("old", when=datetime(2023, 1, 1, tzinfo=timezone.utc))
    store.records["new"] = make_record("new", when=datetime(2024, 1, 1, tzinfo=timezone.utc))

    response = app.get(RECORDS_URL, headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert [r["id"] for r in body] == ["new", "old"]
    assert "files" not in body[0]
    assert body[0]["file_names"] == ["checkup.pdf"]


def test_list_records_search(app: TestClient, auth_headers: dict, store: FakeStore) -> None:
    store.records["a"] = make_record("a", title="Dental cleaning", description="Tartar removed")
    store.records["b"] = make_record("b", title="Checkup", description="Heartworm NEGATIVE")

    response = app.get(RECORDS_URL, params={"q": "heartworm"}, headers=auth_headers)
    assert [r["id"] for r in response.json()] == ["b"]


def test_records_are_scoped_to_owner(
    app: TestClient, other_auth_headers: dict, store: FakeStore
) -> None:
    store.records["rec-1"] = make_record()

    assert app.get(RECORDS_URL, headers=other_auth_headers).json() == []
    response = app.delete(f"{RECORDS_URL}/rec-1", headers=other_auth_headers)
    assert response.status_code == 404
    assert "rec-1" in store.records


def test_download_record_file(app: TestClient, auth_headers: dict, store: FakeStore) -> None:
    store.records["rec-1"] = make_record(files={"xray.pdf": b"%PDF-1.4 xray"})

    response = app.get(f"{RECORDS_URL}/rec-1/files/xray.pdf", headers=auth_headers)

    assert response.status_code == 200
    assert response.content == b"%PDF-1.4 xray"
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="xray.pdf"' in response.headers["content-disposition"]


def test_download_missing_file(app: TestClient, auth_headers: dict, store: FakeStore) -> None:
    store.records["rec-1"] = make_record()

    assert app.get(f"{RECORDS_URL}/rec-1/files/other.pdf", headers=auth_headers).status_code == 404
    assert app.get(f"{RECORDS_URL}/nope/files/checkup.pdf", headers=auth_headers).status_code == 404


def test_download_other_owners_file(
    app: TestClient, other_auth_headers: dict, store: FakeStore
) -> None:
    store.records["rec-1"] = make_record()
    response = app.get(f"{RECORDS_URL}/rec-1/files/checkup.pdf", headers=other_auth_headers)
    assert response.status_code == 404


def test_delete_record_returns_fresh_list(
    app: TestClient, auth_headers: dict, store: FakeStore
) -> None:
    store.records["rec-1"] = make_record("rec-1")
    store.records["rec-2"] = make_record("rec-2")

    response = app.delete(f"{RECORDS_URL}/rec-1", headers=auth_headers)

    assert response.status_code == 200
    assert [r["id"] for r in response.json()] == ["rec-2"]
    assert "rec-1" not in store.records


def test_export_records(app: TestClient, auth_headers: dict, store: FakeStore) -> None:
    store.records["rec-1"] = make_record("rec-1", files={"scan.pdf": b"one"})
    store.records["rec-2"] = make_record("rec-2", files={"scan.pdf": b"two"})

    response = app.get(f"{RECORDS_URL}/export", headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert 'filename="Luna-medical-records.zip"' in response.headers["content-disposition"]
    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        assert sorted(archive.namelist()) == ["scan (2).pdf", "scan.pdf"]


def test_export_without_records(app: TestClient, auth_headers: dict) -> None:
    response = app.get(f"{RECORDS_URL}/export", headers=auth_headers)
    assert response.status_code == 422
    assert response.json()["detail"] == "No records to download."


def test_other_owner_cannot_export(
    app: TestClient, other_auth_headers: dict, store: FakeStore
) -> None:
    store.records["rec-1"] = make_record()
    response = app.get(f"{RECORDS_URL}/export", headers=other_auth_headers)
    assert response.status_code == 404
    assert response.json() == {"detail": "Pet not found"}


def test_download_header_uses_safe_filename(
    app: TestClient, auth_headers: dict, store: FakeStore
) -> None:
    # Older clients stored file keys without sanitizing them
    store.records["rec-1"] = make_record(files={'lab "final" v2.pdf': b"%PDF-1.4 labs"})

    response = app.get(
        f"{RECORDS_URL}/rec-1/files/lab%20%22final%22%20v2.pdf", headers=auth_headers
    )

    assert response.status_code == 200
    assert response.content == b"%PDF-1.4 labs"
    assert response.headers["content-disposition"] == (
        'attachment; filename="lab__final__v2.pdf"'
    )
