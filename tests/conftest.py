import os
import sys
from io import BytesIO
from pathlib import Path

import pypdf
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.pop("API_TOKEN", None)

import database  # noqa: E402
from app import models  # noqa: E402
from app.services.blob_storage import BlobStore, get_blob_store  # noqa: E402


def make_pdf(pages: int = 1) -> bytes:
    writer = pypdf.PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def session_factory(monkeypatch):
    """Fresh in-memory database shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    database.enable_sqlite_foreign_keys(engine)
    SessionTesting = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(database, "SessionLocal", SessionTesting)
    models.Base.metadata.create_all(bind=engine)
    yield SessionTesting
    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def blob_store(tmp_path) -> BlobStore:
    return BlobStore(tmp_path / "storage", "test-signing-secret", "http://testserver")


@pytest.fixture
def app(session_factory, blob_store):
    from main import app as fastapi_app

    fastapi_app.dependency_overrides[get_blob_store] = lambda: blob_store
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def company_id(client: TestClient) -> str:
    resp = client.post("/companies", json={"name": "腾讯控股", "code": "0700.HK", "type": "港股"})
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["id"]


def upload_report(client: TestClient, company_id: str, title: str = "Q3 跟踪", **overrides):
    form = {"title": title, "analyst": "张三", "category": "跟踪"}
    form.update({k: v for k, v in overrides.items() if k != "file"})
    file = overrides.get("file", ("q3.pdf", make_pdf(), "application/pdf"))
    return client.post(f"/companies/{company_id}/reports", data=form, files={"file": file})
