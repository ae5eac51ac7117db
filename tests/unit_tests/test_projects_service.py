"""Tests for project listing, creation and PDF download."""

import httpx
import pytest

from espec_api.auth.session import DraftMaterial
from espec_api.client.exceptions import ConflictError
from espec_api.models.enums import Status
from espec_api.services.projects import EnvironmentDraft
from espec_api.services.projects import create_project
from espec_api.services.projects import create_project_document
from espec_api.services.projects import download_project_pdf
from espec_api.services.projects import list_all_projects
from espec_api.services.projects import list_projects_page
from espec_api.services.projects import update_material_description
from tests.consts import UPSTREAM_URL
from tests.fixtures.domain_fixtures import raw_environment
from tests.fixtures.domain_fixtures import raw_material
from tests.fixtures.domain_fixtures import raw_project
from tests.fixtures.upstream_fixtures import paginated
from tests.fixtures.upstream_fixtures import request_json

PROJECTS = "/api/projetos/"


def search_handler(existing_names):
    """GET /api/projetos/ answering ?search= with projects of the given names."""

    def handler(request):
        search = request.url.params.get("search", "").lower()
        rows = [raw_project(project_id=i, name=n) for i, n in enumerate(existing_names, start=50) if search in n.lower()]
        return httpx.Response(200, json=paginated(rows))

    return handler


class TestListing:
    """Tests for project listings."""

    @pytest.mark.asyncio
    async def test_backend_page(self, api_client, upstream):
        upstream.add(
            "GET",
            PROJECTS,
            json_body=paginated([raw_project(1), raw_project(2)], next_url=f"{UPSTREAM_URL}{PROJECTS}?page=3", count=25),
        )

        page = await list_projects_page(api_client, page=2, status=Status.APPROVED)

        assert [p.id for p in page.items] == [1, 2]
        assert page.count == 25
        assert page.has_next is True
        assert page.has_previous is False
        assert upstream.calls[0].url.params["status"] == "APROVADO"
        assert upstream.calls[0].url.params["page"] == "2"

    @pytest.mark.asyncio
    async def test_list_all_walks_every_page(self, api_client, upstream):
        def pages(request):
            if request.url.params.get("page") == "2":
                return httpx.Response(200, json=paginated([raw_project(3)], count=3))
            return httpx.Response(
                200, json=paginated([raw_project(1), raw_project(2)], next_url=f"{UPSTREAM_URL}{PROJECTS}?page=2", count=3)
            )

        upstream.add("GET", PROJECTS, handler=pages)

        projects = await list_all_projects(api_client, status=Status.PENDING)

        assert [p.id for p in projects] == [1, 2, 3]
        assert upstream.calls[0].url.params["status"] == "PENDENTE"


class TestCreateProject:
    """Tests for single-call project creation."""

    @pytest.mark.asyncio
    async def test_create(self, api_client, upstream):
        upstream.add("GET", PROJECTS, handler=search_handler(["Outro Projeto"]))
        upstream.add("POST", PROJECTS, status_code=201, json_body=raw_project(9, name="Vila Nova"))

        project = await create_project(api_client, " Vila Nova ", "RESIDENCIAL", "2026-06-01", environment_ids=[10])

        assert project.id == 9
        assert request_json(upstream.calls_to("POST", PROJECTS)[0]) == {
            "nome_do_projeto": "Vila Nova",
            "tipo_do_projeto": "RESIDENCIAL",
            "data_entrega": "2026-06-01",
            "descricao": "",
            "ambientes_ids": [10],
        }

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, api_client, upstream):
        """Test a case-insensitive name match blocks creation before any POST."""
        upstream.add("GET", PROJECTS, handler=search_handler(["Vila Nova"]))

        with pytest.raises(ConflictError) as exc_info:
            await create_project(api_client, "vila nova", "RESIDENCIAL", "2026-06-01")

        assert exc_info.value.status_code == 409
        assert upstream.mutating_calls() == []

    @pytest.mark.asyncio
    async def test_partial_name_match_is_not_a_duplicate(self, api_client, upstream):
        upstream.add("GET", PROJECTS, handler=search_handler(["Vila Nova II"]))
        upstream.add("POST", PROJECTS, status_code=201, json_body=raw_project(9, name="Vila Nova"))

        project = await create_project(api_client, "Vila Nova", "RESIDENCIAL", "2026-06-01")

        assert project.name == "Vila Nova"


class TestCreateProjectDocument:
    """Tests for the project + environments + materials run."""

    @pytest.fixture
    def drafts(self):
        return [
            EnvironmentDraft(
                name="Sala",
                category="PRIVATIVA",
                materials=[DraftMaterial(item="PISO", description="Porcelanato"), DraftMaterial(item="TETO")],
            ),
            EnvironmentDraft(name="Hall", category="COMUM", materials=[DraftMaterial(item="PAREDE")]),
        ]

    @pytest.mark.asyncio
    async def test_all_steps_succeed(self, api_client, upstream, drafts):
        """Test the project is created first, then each environment followed by its materials."""
        upstream.add("GET", PROJECTS, handler=search_handler([]))
        upstream.add("POST", PROJECTS, status_code=201, json_body=raw_project(9, name="Vila Nova", environments=[]))
        upstream.add("POST", "/api/ambientes/", status_code=201, json_body=raw_environment(30, project_id=9))
        upstream.add("POST", "/api/ambientes/", status_code=201, json_body=raw_environment(31, project_id=9, name="Hall"))
        upstream.add("POST", "/api/materiais/", status_code=201, json_body=raw_material(1, environment_id=30))

        project, report = await create_project_document(api_client, "Vila Nova", "RESIDENCIAL", "2026-06-01", drafts)

        assert project.id == 9
        assert report.succeeded
        assert [s.name for s in report.completed] == [
            "project",
            "environment:0:Sala",
            "environment:1:Hall",
            "material:0:PISO",
            "material:0:TETO",
            "material:1:PAREDE",
        ]
        environment_bodies = [request_json(c) for c in upstream.calls_to("POST", "/api/ambientes/")]
        assert [b["projeto"] for b in environment_bodies] == [9, 9]
        material_bodies = [request_json(c) for c in upstream.calls_to("POST", "/api/materiais/")]
        assert [(b["ambiente"], b["item"]) for b in material_bodies] == [(30, "PISO"), (30, "TETO"), (31, "PAREDE")]

    @pytest.mark.asyncio
    async def test_failed_environment_is_reported(self, api_client, upstream, drafts):
        """Test a failing environment stops the run; the project stays created and the rest is pending."""
        upstream.add("GET", PROJECTS, handler=search_handler([]))
        upstream.add("POST", PROJECTS, status_code=201, json_body=raw_project(9, name="Vila Nova", environments=[]))
        upstream.add("POST", "/api/ambientes/", status_code=201, json_body=raw_environment(30, project_id=9))
        upstream.add("POST", "/api/ambientes/", status_code=400, json_body={"categoria": ["inválida"]})
        upstream.add("POST", "/api/materiais/", status_code=201, json_body=raw_material(1, environment_id=30))

        project, report = await create_project_document(api_client, "Vila Nova", "RESIDENCIAL", "2026-06-01", drafts)

        assert project.id == 9
        assert not report.succeeded
        assert report.failed_step == "environment:1:Hall"
        assert report.pending_steps == ["material:0:PISO", "material:0:TETO"]
        assert upstream.calls_to("POST", "/api/materiais/") == []

    @pytest.mark.asyncio
    async def test_failed_project_creates_nothing_else(self, api_client, upstream, drafts):
        upstream.add("GET", PROJECTS, handler=search_handler([]))
        upstream.add("POST", PROJECTS, status_code=500, json_body={"detail": "erro"})

        project, report = await create_project_document(api_client, "Vila Nova", "RESIDENCIAL", "2026-06-01", drafts)

        assert project is None
        assert report.failed_step == "project"
        assert upstream.mutating_calls() == [("POST", PROJECTS)]

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, api_client, upstream, drafts):
        upstream.add("GET", PROJECTS, handler=search_handler(["Vila Nova"]))

        with pytest.raises(ConflictError):
            await create_project_document(api_client, "Vila Nova", "RESIDENCIAL", "2026-06-01", drafts)


@pytest.mark.asyncio
async def test_update_material_description(api_client, upstream):
    upstream.add("PATCH", "/api/materiais/101/", json_body=raw_material(101, description="Granito"))

    material = await update_material_description(api_client, 101, "Granito")

    assert material.description == "Granito"
    assert request_json(upstream.calls[0]) == {"descricao": "Granito"}


@pytest.mark.asyncio
async def test_download_project_pdf(api_client, upstream):
    upstream.add("GET", "/api/projetos/1/gerar-pdf/", content=b"%PDF-1.7 body", headers={"content-type": "application/pdf"})

    content, content_type = await download_project_pdf(api_client, 1)

    assert content == b"%PDF-1.7 body"
    assert content_type == "application/pdf"
