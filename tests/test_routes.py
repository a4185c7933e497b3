"""
Tests for the HTTP routes and error envelopes
"""

import pytest
from datetime import datetime

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.db import Base, build_engine, get_db
from app.models import Table, Wedding
from app.services.checklist_export import ChecklistExportService
from main import app

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_routes.db"
engine = build_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def client():
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def auth():
    return {"Authorization": f"Bearer {settings.ADMIN_TOKEN}"}

@pytest.fixture
def wedding_id():
    db = TestingSessionLocal()
    try:
        wedding = Wedding(couple_names="Alice & Bob", wedding_date=datetime(2026, 6, 15))
        db.add(wedding)
        db.commit()
        return wedding.id
    finally:
        db.close()

def _upload(content, filename="checklist.xlsx"):
    return {"file": (filename, content, XLSX)}

def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}

def test_download_template(client):
    response = client.get("/template/checklist_template.xlsx")
    assert response.status_code == 200
    assert response.headers["content-type"] == XLSX

def test_admin_routes_need_token(client, wedding_id):
    response = client.get(f"/admin/weddings/{wedding_id}/seating")
    assert response.status_code in (401, 403)

    response = client.get(
        f"/admin/weddings/{wedding_id}/seating",
        headers={"Authorization": "Bearer wrong"}
    )
    assert response.status_code == 401

def test_preview_then_import(client, auth, wedding_id):
    content = ChecklistExportService.create_template()

    response = client.post(
        f"/admin/weddings/{wedding_id}/checklist/import/preview", files=_upload(content), headers=auth
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["new_tasks"] == 5
    assert data["updated_tasks"] == 0

    response = client.post(
        f"/admin/weddings/{wedding_id}/checklist/import", files=_upload(content), headers=auth
    )
    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["data"]["tasks_created"] == 5

    response = client.get(f"/admin/weddings/{wedding_id}/checklist/export.xlsx", headers=auth)
    assert response.status_code == 200
    assert "wedding-checklist-alice-bob.xlsx" in response.headers["content-disposition"]

def test_import_validation_errors(client, auth, wedding_id):
    content = (
        "Section,Title,Description,Assigned To,Due Date,Status,Completed\n"
        "Planning,Book venue,,Couple,someday,Pending,No\n"
    ).encode()

    response = client.post(
        f"/admin/weddings/{wedding_id}/checklist/import", files=_upload(content, "checklist.csv"), headers=auth
    )

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "validation_failed"
    assert body["details"]["errors"][0]["row"] == 2
    assert body["details"]["errors"][0]["field"] == "Due Date"

def test_import_missing_column(client, auth, wedding_id):
    content = b"Section,Title\nPlanning,Book venue\n"

    response = client.post(
        f"/admin/weddings/{wedding_id}/checklist/import", files=_upload(content, "checklist.csv"), headers=auth
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Missing required column: Description"

@pytest.mark.parametrize("filename", ["notes.txt", "checklist.xls"])
def test_import_rejects_other_file_types(client, auth, wedding_id, filename):
    response = client.post(
        f"/admin/weddings/{wedding_id}/checklist/import", files=_upload(b"hello", filename), headers=auth
    )
    assert response.status_code == 400
    assert ".xlsx" in response.json()["detail"]

def test_unknown_wedding(client, auth):
    response = client.post("/admin/weddings/404/seating/random", headers=auth)
    assert response.status_code == 404
    assert response.json()["message"] == "Wedding not found"

def test_random_seating_without_tables(client, auth, wedding_id):
    response = client.post(f"/admin/weddings/{wedding_id}/seating/random", headers=auth)
    assert response.status_code == 400
    assert response.json()["message"] == "No tables configured"

def test_tables_and_manual_seating(client, auth, wedding_id):
    response = client.post(
        f"/admin/weddings/{wedding_id}/seating/tables",
        json={"tables": [{"number": 1, "capacity": 8}, {"number": 2, "name": "Family", "capacity": 6}]},
        headers=auth
    )
    assert response.status_code == 200
    tables = response.json()["data"]
    assert [t["number"] for t in tables] == [1, 2]

    response = client.post(
        f"/admin/weddings/{wedding_id}/seating",
        json={"assignments": [
            {"guest_id": "couple-member-1", "table_id": tables[1]["id"]},
            {"guest_id": "couple-member-2", "table_id": tables[1]["id"]},
        ]},
        headers=auth
    )
    assert response.status_code == 200

    plan = client.get(f"/admin/weddings/{wedding_id}/seating", headers=auth).json()["data"]
    family_table = next(t for t in plan["tables"] if t["number"] == 2)
    assert [g["id"] for g in family_table["assigned_guests"]] == ["couple-member-1", "couple-member-2"]
    assert plan["unassigned_guests"] == []

    db = TestingSessionLocal()
    try:
        assert db.query(Table).count() == 2
    finally:
        db.close()

def test_database_url_configured():
    from app.core import db

    assert settings.DATABASE_URL
    assert db.engine.url.drivername == settings.DATABASE_URL.split(":", 1)[0]

def test_import_planner_template(client, auth, wedding_id):
    content = (
        "Section,Title,Description,Assigned To,Due Date,Status,Completed\n"
        "Planning,Book venue,,Couple,WEDDING_DATE-180,Pending,No\n"
        "Planning,Final fitting,,Couple,2026-06-01,Pending,No\n"
    ).encode()

    response = client.post(
        "/admin/planners/7/checklist-template/import",
        files=_upload(content, "template.csv"),
        data={"wedding_date": "2026-06-15"},
        headers=auth
    )
    assert response.status_code == 200
    assert response.json()["data"]["sections_created"] == 1
    assert response.json()["data"]["tasks_created"] == 2

    response = client.get("/admin/planners/7/checklist-template.xlsx", headers=auth)
    assert response.status_code == 200
    assert "checklist-template-7.xlsx" in response.headers["content-disposition"]

def test_import_planner_template_needs_wedding_date(client, auth):
    content = ChecklistExportService.create_template()

    response = client.post(
        "/admin/planners/7/checklist-template/import",
        files=_upload(content),
        data={"wedding_date": "June 15th"},
        headers=auth
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "invalid_wedding_date"
