"""Children collection and report endpoint tests."""

import json
from pathlib import Path

from fastapi.testclient import TestClient

from portage.api.deps import get_catalog
from portage.catalog.loader import Catalog
from portage.main import app
from portage.schemas.child import Child, dump_collection


def test_empty_collection_creates_file(client: TestClient, data_file: Path) -> None:
    """A missing data file is initialised with an empty collection."""
    response = client.get("/api/v1/children")

    assert response.status_code == 200
    assert response.json() == []
    assert json.loads(data_file.read_text(encoding="utf-8")) == []


def test_put_then_get_round_trip(client: TestClient, completed_child: Child) -> None:
    """A replaced collection is returned unchanged."""
    document = dump_collection([completed_child])

    response = client.put("/api/v1/children", json=document)
    assert response.status_code == 200
    assert response.json() == {"success": True}

    response = client.get("/api/v1/children")
    assert response.json() == document


def test_post_replaces_collection(client: TestClient, completed_child: Child) -> None:
    """POST is accepted as a whole-collection replace."""
    response = client.post("/api/v1/children", json=dump_collection([completed_child]))

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert len(client.get("/api/v1/children").json()) == 1


def test_replace_with_empty_collection(client: TestClient, completed_child: Child) -> None:
    client.put("/api/v1/children", json=dump_collection([completed_child]))

    client.put("/api/v1/children", json=[])

    assert client.get("/api/v1/children").json() == []


def test_invalid_score_rejected(client: TestClient, completed_child: Child) -> None:
    """Scores outside 1, 0.5, 0 are refused and nothing is stored."""
    document = dump_collection([completed_child])
    document[0]["assessments"][0]["responses"]["q1"]["score"] = 2

    response = client.put("/api/v1/children", json=document)

    assert response.status_code == 422
    assert client.get("/api/v1/children").json() == []


def test_duplicate_child_ids_rejected(client: TestClient, completed_child: Child) -> None:
    document = dump_collection([completed_child, completed_child])

    response = client.put("/api/v1/children", json=document)

    assert response.status_code == 422


def test_legacy_document_is_normalised(client: TestClient) -> None:
    """Documents written with the old field names are stored with the new ones."""
    legacy = [
        {
            "id": "c1",
            "name": "Ana",
            "birthDate": "2021-01-10",
            "gender": "F",
            "guardianName": "Maria",
            "condition": "Nenhum",
            "clinicalHistory": "",
            "assessments": [
                {
                    "id": "a1",
                    "date": "2024-03-15T10:30:00Z",
                    "professionalName": "Dra. Carla",
                    "professionalRole": "Fonoaudióloga",
                    "responses": {},
                    "status": "draft",
                    "summaryNotes": "",
                }
            ],
        }
    ]

    assert client.put("/api/v1/children", json=legacy).status_code == 200

    stored = client.get("/api/v1/children").json()[0]["assessments"][0]
    assert stored["leadProfessionalName"] == "Dra. Carla"
    assert "professionalName" not in stored


def test_report_endpoint(client: TestClient, completed_child: Child, small_catalog: Catalog) -> None:
    """The report is derived from stored responses."""
    app.dependency_overrides[get_catalog] = lambda: small_catalog
    client.put("/api/v1/children", json=dump_collection([completed_child]))

    response = client.get("/api/v1/children/child-1/assessments/assess-1/report")

    assert response.status_code == 200
    data = response.json()
    assert [a["percentage"] for a in data["area_scores"]] == [75, 0]
    assert data["global_progress"] == 100
    assert data["contributors"] == {"Dra. Carla": 2, "João TO": 1}


def test_report_pdf_endpoint(client: TestClient, completed_child: Child) -> None:
    client.put("/api/v1/children", json=dump_collection([completed_child]))

    response = client.get("/api/v1/children/child-1/assessments/assess-1/report.pdf")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def test_report_unknown_child(client: TestClient) -> None:
    response = client.get("/api/v1/children/ghost/assessments/a1/report")
    assert response.status_code == 404
    assert response.json()["detail"] == "Child not found"


def test_report_unknown_assessment(client: TestClient, completed_child: Child) -> None:
    client.put("/api/v1/children", json=dump_collection([completed_child]))

    response = client.get("/api/v1/children/child-1/assessments/ghost/report")

    assert response.status_code == 404
    assert response.json()["detail"] == "Assessment not found"


def test_corrupt_data_file(client: TestClient, data_file: Path) -> None:
    """An unreadable store is reported as a server error."""
    data_file.write_text("{broken", encoding="utf-8")

    response = client.get("/api/v1/children")

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to load children"
