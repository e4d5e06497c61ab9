from urllib.parse import urlsplit

from fastapi.testclient import TestClient

from conftest import make_pdf, upload_report
from app import models
from app.services.blob_storage import REPORTS_BUCKET


def _path(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.path}?{parts.query}" if parts.query else parts.path


def test_upload_report_stores_pdf_and_metadata(client: TestClient, company_id: str, blob_store):
    resp = upload_report(client, company_id, file=("q3.pdf", make_pdf(pages=3), "application/pdf"))
    assert resp.status_code == 200, resp.text
    report = resp.json()["data"]

    assert report["companyId"] == company_id
    assert report["title"] == "Q3 跟踪"
    assert report["category"] == "跟踪"
    assert report["fileName"] == "q3.pdf"
    assert report["fileSize"] == "0.0MB"
    assert report["pageCount"] == 3
    assert report["order"] == 0
    assert report["comments"] == []
    assert report["filePath"] == f"{company_id}/{report['id']}.pdf"
    assert blob_store.exists(REPORTS_BUCKET, report["filePath"])


def test_upload_report_validation_errors(client: TestClient, company_id: str, blob_store):
    resp = upload_report(client, company_id, title="   ")
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Missing required fields"}

    resp = upload_report(client, company_id, category="研报")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Unknown report category: 研报"

    resp = upload_report(client, company_id, file=("notes.txt", b"plain text", "text/plain"))
    assert resp.status_code == 400
    assert resp.json()["error"] == "Only PDF files are allowed"

    resp = upload_report(client, company_id, file=("empty.pdf", b"", "application/pdf"))
    assert resp.status_code == 400
    assert resp.json()["error"] == "File is empty"

    resp = upload_report(client, company_id, file=("broken.pdf", b"not really a pdf", "application/pdf"))
    assert resp.status_code == 400
    assert resp.json()["error"] == "File is not a readable PDF"

    assert client.get(f"/companies/{company_id}/reports").json()["data"] == []
    assert not list((blob_store.root / REPORTS_BUCKET).rglob("*.pdf"))


def test_upload_report_for_missing_company(client: TestClient):
    resp = upload_report(client, "missing-company")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Company not found"


def test_reports_are_listed_in_display_order_and_reorderable(client: TestClient, company_id: str):
    first = upload_report(client, company_id, title="首次覆盖报告", category="首次覆盖").json()["data"]
    second = upload_report(client, company_id, title="会议纪要", category="会议纪要").json()["data"]
    assert (first["order"], second["order"]) == (0, 1)

    listed = client.get(f"/companies/{company_id}/reports").json()["data"]
    assert [r["id"] for r in listed] == [first["id"], second["id"]]

    resp = client.post(
        f"/companies/{company_id}/reports/reorder",
        json={"orderUpdates": [{"id": second["id"], "order": 0}, {"id": first["id"], "order": 1}]},
    )
    assert resp.status_code == 200, resp.text

    listed = client.get(f"/companies/{company_id}/reports").json()["data"]
    assert [r["id"] for r in listed] == [second["id"], first["id"]]
    assert [r["order"] for r in listed] == [0, 1]


def test_reorder_reports_cannot_touch_other_companies(client: TestClient, company_id: str):
    other = client.post("/companies", json={"name": "Other", "code": "OTH", "type": "行业"}).json()["data"]
    foreign = upload_report(client, other["id"]).json()["data"]

    resp = client.post(
        f"/companies/{company_id}/reports/reorder",
        json={"orderUpdates": [{"id": foreign["id"], "order": 42}]},
    )
    assert resp.status_code == 200, resp.text

    listed = client.get(f"/companies/{other['id']}/reports").json()["data"]
    assert listed[0]["order"] == 0


def test_update_report_can_backdate(client: TestClient, company_id: str):
    report = upload_report(client, company_id).json()["data"]

    resp = client.put(
        f"/reports/{company_id}/{report['id']}",
        json={"title": "Q3 跟踪（修订）", "analyst": "李四", "category": "会议纪要", "createdAt": "2023-01-15T09:30:00"},
    )
    assert resp.status_code == 200, resp.text
    updated = resp.json()["data"]
    assert updated["title"] == "Q3 跟踪（修订）"
    assert updated["analyst"] == "李四"
    assert updated["category"] == "会议纪要"
    assert updated["createdAt"].startswith("2023-01-15T09:30:00")

    resp = client.put(
        f"/reports/{company_id}/missing",
        json={"title": "x", "analyst": "y", "category": "跟踪"},
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "Report not found"


def test_backdate_with_offset_is_stored_as_utc(client: TestClient, company_id: str):
    older = upload_report(client, company_id, title="older").json()["data"]
    newer = upload_report(client, company_id, title="newer").json()["data"]
    client.post(
        f"/companies/{company_id}/reports/reorder",
        json={"orderUpdates": [{"id": older["id"], "order": 0}, {"id": newer["id"], "order": 0}]},
    )

    body = {"title": "older", "analyst": "张三", "category": "跟踪"}
    resp = client.put(
        f"/reports/{company_id}/{older['id']}",
        json={**body, "createdAt": "2023-01-15T09:30:00+08:00"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["createdAt"].startswith("2023-01-15T01:30:00")

    # 01:30 UTC sorts before 05:00 UTC on the createdAt-desc tiebreak
    client.put(f"/reports/{company_id}/{newer['id']}", json={**body, "title": "newer", "createdAt": "2023-01-15T05:00:00Z"})
    listed = client.get(f"/companies/{company_id}/reports").json()["data"]
    assert [r["title"] for r in listed] == ["newer", "older"]


def test_download_url_is_signed_and_time_limited(client: TestClient, company_id: str):
    pdf = make_pdf()
    report = upload_report(client, company_id, file=("r.pdf", pdf, "application/pdf")).json()["data"]

    resp = client.get(f"/reports/{company_id}/{report['id']}/download")
    assert resp.status_code == 200, resp.text
    link = resp.json()["data"]
    assert link["downloadUrl"].startswith(f"http://testserver/storage/reports/{company_id}/{report['id']}.pdf?")
    assert link["expiresAt"] > 0

    served = client.get(_path(link["downloadUrl"]))
    assert served.status_code == 200
    assert served.content == pdf

    unsigned = client.get(f"/storage/reports/{company_id}/{report['id']}.pdf")
    assert unsigned.status_code == 403
    assert unsigned.json()["success"] is False

    tampered = client.get(_path(link["downloadUrl"]).replace("signature=", "signature=0"))
    assert tampered.status_code == 403


def test_storage_rejects_expired_signature(client: TestClient, company_id: str, blob_store):
    report = upload_report(client, company_id).json()["data"]
    url, _ = blob_store.signed_url(REPORTS_BUCKET, report["filePath"], ttl_seconds=60, now=1_000)

    resp = client.get(_path(url))
    assert resp.status_code == 403


def test_download_fails_when_blob_is_missing(client: TestClient, company_id: str, blob_store):
    report = upload_report(client, company_id).json()["data"]
    blob_store.remove(REPORTS_BUCKET, report["filePath"])

    resp = client.get(f"/reports/{company_id}/{report['id']}/download")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Failed to generate download link"}


def test_delete_report_removes_blob_and_comments(client: TestClient, company_id: str, blob_store, session_factory):
    report = upload_report(client, company_id).json()["data"]
    client.post(f"/reports/{company_id}/{report['id']}/comments", json={"content": "looks good"})

    resp = client.delete(f"/reports/{company_id}/{report['id']}")
    assert resp.status_code == 200, resp.text
    assert resp.json()["success"] is True

    assert client.get(f"/companies/{company_id}/reports").json()["data"] == []
    assert not blob_store.exists(REPORTS_BUCKET, report["filePath"])
    with session_factory() as db:
        assert db.query(models.Comment).count() == 0

    resp = client.delete(f"/reports/{company_id}/{report['id']}")
    assert resp.status_code == 404
