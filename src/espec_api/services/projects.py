"""
Project Services

Project listing, full-tree loading, creation and the PDF pass-through.
"""

import asyncio
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple

from loguru import logger
from pydantic import BaseModel

from espec_api.auth.session import DraftMaterial
from espec_api.client.api_client import SpecApiClient
from espec_api.client.exceptions import ConflictError
from espec_api.client.exceptions import RequestCancelledError
from espec_api.client.exceptions import SpecApiError
from espec_api.client.mappers import map_environment
from espec_api.client.mappers import map_material
from espec_api.client.mappers import map_project
from espec_api.client.mappers import results_of
from espec_api.models.domain import Material
from espec_api.models.domain import Project
from espec_api.models.enums import Status
from espec_api.workflow.saga import Saga
from espec_api.workflow.saga import SagaReport

PROJECTS_PATH = "/api/projetos/"
MATERIALS_PATH = "/api/materiais/"
ENVIRONMENTS_PATH = "/api/ambientes/"


def project_path(project_id: int) -> str:
    return f"{PROJECTS_PATH}{project_id}/"


class ProjectPage(BaseModel):
    """One backend page of projects."""

    items: List[Project]
    page: int
    count: int
    has_next: bool
    has_previous: bool


class EnvironmentDraft(BaseModel):
    """An environment to create together with a new project."""

    name: str
    category: Optional[str] = None
    type_id: Optional[int] = None
    color_guide: str = ""
    materials: List[DraftMaterial] = []


def _status_param(status: Optional[Status]) -> Dict[str, str]:
    return {"status": status.value} if status else {}


async def list_projects_page(client: SpecApiClient, page: int = 1, status: Optional[Status] = None) -> ProjectPage:
    """
    Fetch one backend page of projects, optionally filtered by status.

    Parameters
    ----------
    client : SpecApiClient
        Session-bound upstream client
    page : int
        1-based backend page number
    status : Optional[Status]
        Status filter sent as `?status=`

    Returns
    -------
    ProjectPage
        Mapped projects plus the backend's pagination info
    """
    params = {"page": page, **_status_param(status)}
    payload = await client.get(PROJECTS_PATH, params=params)
    rows = results_of(payload)
    count = payload.get("count", len(rows)) if isinstance(payload, dict) else len(rows)
    return ProjectPage(
        items=[map_project(row) for row in rows],
        page=page,
        count=count,
        has_next=bool(isinstance(payload, dict) and payload.get("next")),
        has_previous=bool(isinstance(payload, dict) and payload.get("previous")),
    )


async def list_all_projects(client: SpecApiClient, status: Optional[Status] = None) -> List[Project]:
    """Concatenate every page of the project listing until `next` is empty."""
    rows = await client.fetch_all(PROJECTS_PATH, params=_status_param(status) or None)
    projects = [map_project(row) for row in rows]
    logger.info("Projects listed", status=status.value if status else None, count=len(projects))
    return projects


async def _environment_materials(
    client: SpecApiClient, project_id: int, environment_id: int
) -> Tuple[List[Material], Optional[str]]:
    """Every material of one environment, following `next` links; (materials, load error)."""
    try:
        rows = await client.fetch_all(MATERIALS_PATH, params={"projeto": project_id, "ambiente": environment_id})
    except RequestCancelledError:
        raise
    except SpecApiError as e:
        # Shown as an unloaded environment; the rest of the project stays visible
        logger.error(
            "Failed to load environment materials",
            project_id=project_id,
            environment_id=environment_id,
            error=str(e),
        )
        return [], str(e)
    return [map_material(row) for row in rows], None


async def load_project_tree(client: SpecApiClient, project_id: int) -> Project:
    """
    Load a project with every environment's materials.

    An environment whose material listing fails keeps an empty material list
    and carries the error in `load_error`; callers that reason over the whole
    tree must check `Project.unloaded_environments()`.

    Raises
    ------
    NotFoundError
        If the project does not exist
    NetworkError
        On transport failure of the project request
    """
    project = map_project(await client.get(project_path(project_id)))
    results = await asyncio.gather(
        *(_environment_materials(client, project_id, env.id) for env in project.environments)
    )
    for environment, (env_materials, load_error) in zip(project.environments, results):
        environment.materials = env_materials
        environment.load_error = load_error

    logger.info(
        "Project tree loaded",
        project_id=project_id,
        environments=len(project.environments),
        materials=len(project.all_materials()),
        unloaded_environments=len(project.unloaded_environments()),
    )
    return project


async def find_projects_by_name(client: SpecApiClient, name: str) -> List[Project]:
    """Projects whose name equals `name` (case-insensitive) among the backend's search results."""
    payload = await client.get(PROJECTS_PATH, params={"search": name})
    needle = name.strip().lower()
    return [p for p in (map_project(row) for row in results_of(payload)) if p.name.strip().lower() == needle]


async def create_project(
    client: SpecApiClient,
    name: str,
    project_type: str,
    delivery_date: str,
    description: str = "",
    environment_ids: Optional[List[int]] = None,
) -> Project:
    """
    Create a project after checking that its name is not taken.

    Raises
    ------
    ConflictError
        If a project with the same name already exists
    """
    if await find_projects_by_name(client, name):
        raise ConflictError(f'Já existe um projeto chamado "{name}"', status_code=409)

    payload = {
        "nome_do_projeto": name.strip(),
        "tipo_do_projeto": project_type,
        "data_entrega": delivery_date,
        "descricao": description,
        "ambientes_ids": environment_ids or [],
    }
    created = await client.post(PROJECTS_PATH, json=payload)
    logger.info("Project created", project_id=created.get("id"), project_type=project_type)
    return map_project(created)


async def create_project_document(
    client: SpecApiClient,
    name: str,
    project_type: str,
    delivery_date: str,
    environments: List[EnvironmentDraft],
    description: str = "",
) -> Tuple[Optional[Project], SagaReport]:
    """
    Create a project and, for each environment draft, an environment bound to
    it followed by its materials.

    Each upstream call is one saga step. If a step fails the run stops there;
    the returned report lists what was created and what was not.
    """
    if await find_projects_by_name(client, name):
        raise ConflictError(f'Já existe um projeto chamado "{name}"', status_code=409)

    saga = Saga("create_project_document", cancel_token=client.cancel_token)
    state: Dict[str, int] = {}

    async def create_project_step():
        created = await client.post(
            PROJECTS_PATH,
            json={
                "nome_do_projeto": name.strip(),
                "tipo_do_projeto": project_type,
                "data_entrega": delivery_date,
                "descricao": description,
                "ambientes_ids": [],
            },
        )
        state["project_id"] = created["id"]
        return map_project(created)

    def environment_step(index: int, draft: EnvironmentDraft):
        async def create_environment_step():
            created = await client.post(
                ENVIRONMENTS_PATH,
                json={
                    "projeto": state["project_id"],
                    "nome_do_ambiente": draft.name.strip(),
                    "tipo": draft.type_id,
                    "categoria": draft.category,
                    "guia_de_cores": draft.color_guide,
                },
            )
            environment_id = created["id"]
            for material in draft.materials:
                saga.add_step(
                    f"material:{index}:{material.item}",
                    material_step(environment_id, material),
                )
            return map_environment(created)

        return create_environment_step

    def material_step(environment_id: int, material: DraftMaterial):
        async def create_material_step():
            created = await client.post(
                MATERIALS_PATH,
                json={
                    "ambiente": environment_id,
                    "item": material.item,
                    "descricao": material.description,
                    "marca": material.brand_id,
                },
            )
            return map_material(created)

        return create_material_step

    saga.add_step("project", create_project_step)
    for index, draft in enumerate(environments):
        saga.add_step(f"environment:{index}:{draft.name}", environment_step(index, draft))

    report = await saga.run()
    return report.result_of("project"), report


async def update_material_description(client: SpecApiClient, material_id: int, description: str) -> Material:
    """Patch the description of a single material (specification editor)."""
    updated = await client.patch(f"{MATERIALS_PATH}{material_id}/", json={"descricao": description})
    logger.info("Material description updated", material_id=material_id)
    return map_material(updated)


async def download_project_pdf(client: SpecApiClient, project_id: int) -> Tuple[bytes, str]:
    """Return the backend-generated PDF bytes and content type unchanged."""
    content, content_type = await client.get_bytes(f"{project_path(project_id)}gerar-pdf/")
    logger.info("Project PDF downloaded", project_id=project_id, size_bytes=len(content))
    return content, content_type
