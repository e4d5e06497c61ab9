from datetime import timedelta

from fastapi.testclient import TestClient

from conftest import upload_report
from app import models
from app.models.base import utcnow


def _report_id(client: TestClient, company_id: str) -> str:
    resp = upload_report(client, company_id)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["id"]


def test_comment_mutations_return_the_full_thread_oldest_first(
    client: TestClient, company_id: str, session_factory
):
    report_id = _report_id(client, company_id)
    with session_factory() as db:
        db.add(models.Comment(report_id=report_id, content="older", created_at=utcnow() - timedelta(hours=1)))
        db.commit()

    resp = client.post(f"/reports/{company_id}/{report_id}/comments", json={"content": "  newer  "})
    assert resp.status_code == 200, resp.text
    thread = resp.json()["data"]
    assert [c["content"] for c in thread] == ["older", "newer"]
    assert thread[1]["updatedAt"] is None

    listed = client.get(f"/reports/{company_id}/{report_id}/comments").json()["data"]
    assert listed == thread

    reports = client.get(f"/companies/{company_id}/reports").json()["data"]
    assert [c["content"] for c in reports[0]["comments"]] == ["older", "newer"]


def test_update_and_delete_comment(client: TestClient, company_id: str):
    report_id = _report_id(client, company_id)
    thread = client.post(f"/reports/{company_id}/{report_id}/comments", json={"content": "draft"}).json()["data"]
    comment_id = thread[0]["id"]

    resp = client.put(f"/reports/{company_id}/{report_id}/comments/{comment_id}", json={"content": "final"})
    assert resp.status_code == 200, resp.text
    edited = resp.json()["data"]
    assert edited[0]["content"] == "final"
    assert edited[0]["updatedAt"] is not None

    resp = client.delete(f"/reports/{company_id}/{report_id}/comments/{comment_id}")
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"] == []

    resp = client.delete(f"/reports/{company_id}/{report_id}/comments/{comment_id}")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Comment not found"


def test_blank_comment_is_rejected(client: TestClient, company_id: str):
    report_id = _report_id(client, company_id)

    resp = client.post(f"/reports/{company_id}/{report_id}/comments", json={"content": "   "})
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert "Comment content is required" in resp.json()["error"]


def test_comments_on_unknown_report(client: TestClient, company_id: str):
    resp = client.post(f"/reports/{company_id}/missing/comments", json={"content": "hello"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Report not found"
