"""Tests for project routes."""

import pytest

from tests.consts import API_BASE
from tests.fixtures.domain_fixtures import raw_environment
from tests.fixtures.domain_fixtures import raw_material
from tests.fixtures.domain_fixtures import raw_project
from tests.fixtures.upstream_fixtures import paginated
from tests.fixtures.upstream_fixtures import request_json


@pytest.fixture
def many_pending_projects(upstream):
    """Seven pending projects; two of them are the responsibility of "Bruno"."""
    rows = [
        raw_project(project_id=i, name=f"Projeto {i}", responsible="Bruno Lima" if i in (3, 6) else "Ana Souza")
        for i in range(1, 8)
    ]
    upstream.add("GET", "/api/projetos/", json_body=paginated(rows))
    return rows


class TestListProjects:
    """Tests for GET /projects."""

    def test_pending_view_uses_its_page_size(self, client, upstream, many_pending_projects):
        """Test the pending view pages by 5 and forwards the backend status value."""
        response = client.get(f"{API_BASE}/projects", params={"status": "PENDING"})

        assert response.status_code == 200
        data = response.json()
        assert [p["id"] for p in data["items"]] == [1, 2, 3, 4, 5]
        assert data["page_size"] == 5
        assert data["total_pages"] == 2
        assert data["total_items"] == 7
        assert upstream.calls[0].url.params["status"] == "PENDENTE"

    def test_search_then_paginate(self, client, many_pending_projects):
        response = client.get(f"{API_BASE}/projects", params={"status": "PENDENTE", "search": "bruno", "page": 4})

        data = response.json()
        assert [p["id"] for p in data["items"]] == [3, 6]
        assert data["page"] == 1

    def test_explicit_page_size(self, client, many_pending_projects):
        response = client.get(f"{API_BASE}/projects", params={"page": 2, "page_size": 3})

        assert [p["id"] for p in response.json()["items"]] == [4, 5, 6]

    def test_invalid_status(self, client, upstream):
        response = client.get(f"{API_BASE}/projects", params={"status": "ARCHIVED"})

        assert response.status_code == 400
        assert upstream.calls == []

    def test_backend_page(self, client, upstream):
        upstream.add("GET", "/api/projetos/", json_body=paginated([raw_project(1)], next_url="/api/projetos/?page=3", count=21))

        response = client.get(f"{API_BASE}/projects/backend-page/2", params={"status": "REJECTED"})

        data = response.json()
        assert data["count"] == 21
        assert data["has_next"] is True
        assert upstream.calls[0].url.params["status"] == "REPROVADO"


class TestProjectDetail:
    """Tests for GET /projects/{id} and the PDF download."""

    def test_project_tree(self, client, pending_rejected_pending_project):
        response = client.get(f"{API_BASE}/projects/1")

        assert response.status_code == 200
        environment = response.json()["environments"][0]
        assert [m["status"] for m in environment["materials"]] == ["PENDENTE", "REPROVADO", "PENDENTE"]

    def test_unknown_project(self, client, upstream):
        upstream.add("GET", "/api/projetos/9/", status_code=404, json_body={"detail": "Not found."})

        response = client.get(f"{API_BASE}/projects/9")

        assert response.status_code == 404
        assert response.json()["error_type"] == "NotFoundError"

    def test_upstream_failure_is_bad_gateway(self, client, upstream):
        upstream.add("GET", "/api/projetos/9/", status_code=500, json_body={"detail": "erro"})

        response = client.get(f"{API_BASE}/projects/9")

        assert response.status_code == 502
        assert response.json()["detail"].startswith("500 Internal Server Error")

    def test_pdf_passthrough(self, client, upstream):
        upstream.add("GET", "/api/projetos/1/gerar-pdf/", content=b"%PDF-1.7", headers={"content-type": "application/pdf"})

        response = client.get(f"{API_BASE}/projects/1/pdf")

        assert response.status_code == 200
        assert response.content == b"%PDF-1.7"
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="projeto_1.pdf"' in response.headers["content-disposition"]


class TestCreateProject:
    """Tests for POST /projects and /projects/document."""

    BODY = {"name": "Vila Nova", "project_type": "RESIDENCIAL", "delivery_date": "2026-06-01"}

    def test_create(self, client, upstream):
        upstream.add("GET", "/api/projetos/", json_body=paginated([]))
        upstream.add("POST", "/api/projetos/", status_code=201, json_body=raw_project(9, name="Vila Nova"))

        response = client.post(f"{API_BASE}/projects", json=self.BODY)

        assert response.status_code == 201
        assert response.json()["id"] == 9

    def test_duplicate_name(self, client, upstream):
        upstream.add("GET", "/api/projetos/", json_body=paginated([raw_project(3, name="VILA NOVA")]))

        response = client.post(f"{API_BASE}/projects", json=self.BODY)

        assert response.status_code == 409
        assert response.json()["error_type"] == "ConflictError"
        assert upstream.mutating_calls() == []

    def test_invalid_project_type(self, client, upstream):
        response = client.post(f"{API_BASE}/projects", json={**self.BODY, "project_type": "RURAL"})

        assert response.status_code == 422
        assert upstream.calls == []

    def test_document_success(self, client, upstream):
        upstream.add("GET", "/api/projetos/", json_body=paginated([]))
        upstream.add("POST", "/api/projetos/", status_code=201, json_body=raw_project(9, name="Vila Nova", environments=[]))
        upstream.add("POST", "/api/ambientes/", status_code=201, json_body=raw_environment(30, project_id=9))
        upstream.add("POST", "/api/materiais/", status_code=201, json_body=raw_material(1, environment_id=30))
        body = {
            **self.BODY,
            "environments": [{"name": "Sala", "category": "PRIVATIVA", "materials": [{"item": "PISO"}]}],
        }

        response = client.post(f"{API_BASE}/projects/document", json=body)

        assert response.status_code == 201
        data = response.json()
        assert data["project"]["id"] == 9
        assert data["report"]["failed_step"] is None
        assert request_json(upstream.calls_to("POST", "/api/ambientes/")[0])["categoria"] == "PRIVATIVA"

    def test_document_partial_failure(self, client, upstream):
        """Test a run that stops part way answers 207 with the step report."""
        upstream.add("GET", "/api/projetos/", json_body=paginated([]))
        upstream.add("POST", "/api/projetos/", status_code=201, json_body=raw_project(9, name="Vila Nova", environments=[]))
        upstream.add("POST", "/api/ambientes/", status_code=400, json_body={"nome_do_ambiente": ["obrigatório"]})
        body = {**self.BODY, "environments": [{"name": "Sala", "materials": [{"item": "PISO"}]}]}

        response = client.post(f"{API_BASE}/projects/document", json=body)

        assert response.status_code == 207
        report = response.json()["report"]
        assert [s["name"] for s in report["completed"]] == ["project"]
        assert report["failed_step"] == "environment:0:Sala"
        assert report["error_type"] == "ApiValidationError"
