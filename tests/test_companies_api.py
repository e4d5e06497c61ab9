from datetime import timedelta

from fastapi.testclient import TestClient

from conftest import upload_report
from app import models
from app.models.base import utcnow
from app.core.config import settings
from app.services.blob_storage import ICONS_BUCKET, REPORTS_BUCKET, BlobStorageError


def _create(client: TestClient, name: str, code: str, company_type: str = "美股") -> dict:
    resp = client.post("/companies", json={"name": name, "code": code, "type": company_type, "description": "desc"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    return body["data"]


def _ids(resp) -> list:
    return [c["id"] for c in resp.json()["data"]]


def test_create_company_assigns_increasing_order(client: TestClient):
    first = _create(client, "Figma", "FIG.N")
    second = _create(client, "DraftKings", "DKNG")

    assert first["order"] == 0
    assert second["order"] == 1
    assert first["type"] == "美股"
    assert first["iconUrl"] is None
    assert first["createdAt"]

    resp = client.get("/companies")
    assert resp.status_code == 200, resp.text
    assert _ids(resp) == [first["id"], second["id"]]


def test_list_puts_unordered_companies_last_newest_first(client: TestClient, session_factory):
    ordered = _create(client, "Figma", "FIG.N")
    now = utcnow()
    with session_factory() as db:
        older = models.Company(name="Old", code="OLD", type="行业", order=None, created_at=now - timedelta(days=2))
        newer = models.Company(name="New", code="NEW", type="行业", order=None, created_at=now - timedelta(days=1))
        db.add_all([older, newer])
        db.commit()
        older_id, newer_id = older.id, newer.id

    resp = client.get("/companies")
    assert _ids(resp) == [ordered["id"], newer_id, older_id]


def test_get_update_and_missing_company(client: TestClient):
    company = _create(client, "Figma", "FIG.N")

    resp = client.put(
        f"/companies/{company['id']}",
        json={"name": "Figma Inc", "code": "FIG", "type": "美股", "description": "设计协作"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["name"] == "Figma Inc"
    assert resp.json()["data"]["order"] == company["order"]

    resp = client.get(f"/companies/{company['id']}")
    assert resp.json()["data"]["description"] == "设计协作"

    resp = client.get("/companies/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Company not found"}


def test_create_company_rejects_missing_fields_and_unknown_type(client: TestClient):
    resp = client.post("/companies", json={"name": "Figma", "code": "", "type": "美股"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert resp.json()["error"]

    resp = client.post("/companies", json={"name": "Figma", "code": "FIG", "type": "期货"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_reorder_companies_ignores_unknown_ids(client: TestClient):
    a = _create(client, "A", "A")
    b = _create(client, "B", "B")

    resp = client.post(
        "/companies/reorder",
        json={
            "orderUpdates": [
                {"id": b["id"], "order": 0},
                {"id": a["id"], "order": 1},
                {"id": "ghost", "order": 2},
            ]
        },
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["success"] is True

    assert _ids(client.get("/companies")) == [b["id"], a["id"]]


def test_reorder_requires_order_updates(client: TestClient):
    resp = client.post("/companies/reorder", json={})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_icon_upload_replace_and_remove(client: TestClient, blob_store):
    company = _create(client, "Figma", "FIG.N")

    resp = client.post(
        f"/companies/{company['id']}/icon",
        files={"icon": ("logo.png", b"\x89PNG fake", "image/png")},
    )
    assert resp.status_code == 200, resp.text
    icon_url = resp.json()["data"]["iconUrl"]
    assert icon_url == f"http://testserver/storage/company-icons/{company['id']}.png"
    assert blob_store.exists(ICONS_BUCKET, f"{company['id']}.png")

    # icons are public
    served = client.get(icon_url.replace("http://testserver", ""))
    assert served.status_code == 200
    assert served.content == b"\x89PNG fake"

    resp = client.post(
        f"/companies/{company['id']}/icon",
        files={"icon": ("logo.jpg", b"jpeg bytes", "image/jpeg")},
    )
    assert resp.status_code == 200, resp.text
    assert blob_store.exists(ICONS_BUCKET, f"{company['id']}.jpg")
    assert not blob_store.exists(ICONS_BUCKET, f"{company['id']}.png")

    resp = client.delete(f"/companies/{company['id']}/icon")
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["iconUrl"] is None
    assert not blob_store.exists(ICONS_BUCKET, f"{company['id']}.jpg")


def test_icon_upload_rejects_non_images_and_large_files(client: TestClient):
    company = _create(client, "Figma", "FIG.N")

    resp = client.post(f"/companies/{company['id']}/icon", files={"icon": ("a.txt", b"hello", "text/plain")})
    assert resp.status_code == 400
    assert resp.json()["error"] == "File must be an image"

    too_big = b"0" * (settings.max_icon_bytes + 1)
    resp = client.post(f"/companies/{company['id']}/icon", files={"icon": ("a.png", too_big, "image/png")})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Icon must be 2MB or smaller"


def test_delete_company_cascades_rows_and_blobs(client: TestClient, blob_store, session_factory, tmp_path):
    company = _create(client, "Figma", "FIG.N")
    cid = company["id"]
    client.post(f"/companies/{cid}/icon", files={"icon": ("logo.png", b"png", "image/png")})
    report = upload_report(client, cid).json()["data"]
    client.post(f"/reports/{cid}/{report['id']}/comments", json={"content": "first"})
    assert blob_store.exists(REPORTS_BUCKET, report["filePath"])

    resp = client.delete(f"/companies/{cid}")
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"success": True, "data": None, "error": None}

    assert client.get(f"/companies/{cid}").status_code == 404
    assert client.get(f"/companies/{cid}/reports").status_code == 404
    assert not blob_store.exists(REPORTS_BUCKET, report["filePath"])
    assert not blob_store.exists(ICONS_BUCKET, f"{cid}.png")
    with session_factory() as db:
        assert db.query(models.Report).count() == 0
        assert db.query(models.Comment).count() == 0
    trash = tmp_path / "storage" / ".trash"
    assert list(trash.iterdir()) == []


def test_delete_company_restores_blobs_when_staging_fails(client: TestClient, blob_store, monkeypatch, tmp_path):
    company = _create(client, "Figma", "FIG.N")
    cid = company["id"]
    client.post(f"/companies/{cid}/icon", files={"icon": ("logo.png", b"png", "image/png")})
    report = upload_report(client, cid).json()["data"]

    original_stage = blob_store.stage
    calls = {"count": 0}

    def flaky_stage(bucket, key):
        calls["count"] += 1
        if calls["count"] == 2:
            raise BlobStorageError("disk full")
        return original_stage(bucket, key)

    monkeypatch.setattr(blob_store, "stage", flaky_stage)

    resp = client.delete(f"/companies/{cid}")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Failed to delete company"}

    assert client.get(f"/companies/{cid}").status_code == 200
    assert blob_store.exists(ICONS_BUCKET, f"{cid}.png")
    assert blob_store.exists(REPORTS_BUCKET, report["filePath"])
    assert len(client.get(f"/companies/{cid}/reports").json()["data"]) == 1
    assert list((tmp_path / "storage" / ".trash").iterdir()) == []


def test_init_sample_data_seeds_once(client: TestClient):
    resp = client.post("/init-sample-data")
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"] == 6

    resp = client.post("/init-sample-data")
    assert resp.json()["data"] == 0

    companies = client.get("/companies").json()["data"]
    assert [c["order"] for c in companies] == list(range(6))
    assert companies[0]["name"] == "海外TMT追踪"

    created = _create(client, "Extra", "EXT")
    assert created["order"] == 6


def test_api_token_is_enforced_when_configured(client: TestClient, monkeypatch):
    monkeypatch.setattr(settings, "api_token", "s3cret")

    resp = client.get("/companies")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Unauthorized"}
    assert resp.headers["www-authenticate"] == "Bearer"

    resp = client.get("/companies", headers={"Authorization": "Bearer s3cret"})
    assert resp.status_code == 200

    assert client.get("/health").status_code == 200
