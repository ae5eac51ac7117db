"""
Resubmission Flow

Edit the rejected materials of a REJECTED project and send the whole project
back to review: every rejected material returns to PENDING with its reason
cleared, then the project itself returns to PENDING.
"""

from typing import Dict
from typing import List
from typing import Optional

from loguru import logger
from pydantic import BaseModel

from espec_api.client.api_client import SpecApiClient
from espec_api.client.exceptions import ApiValidationError
from espec_api.client.exceptions import ConflictError
from espec_api.client.exceptions import NetworkError
from espec_api.client.exceptions import NotFoundError
from espec_api.models.domain import Material
from espec_api.models.domain import Project
from espec_api.models.enums import ITEM_LABELS
from espec_api.models.enums import Status
from espec_api.services.projects import MATERIALS_PATH
from espec_api.services.projects import load_project_tree
from espec_api.services.projects import project_path
from espec_api.workflow.saga import Saga
from espec_api.workflow.saga import SagaReport


class MaterialEdit(BaseModel):
    """Buffered edit of one rejected material."""

    item: str
    description: str


class ResubmissionDraft:
    """
    Editable view over the rejected materials of one project.

    Parameters
    ----------
    project : Project
        Fully loaded project tree in REJECTED status
    """

    def __init__(self, project: Project):
        self.project = project
        self.edits: Dict[int, MaterialEdit] = {}

    @classmethod
    async def load(cls, client: SpecApiClient, project_id: int) -> "ResubmissionDraft":
        """
        Raises
        ------
        ConflictError
            If the project is not REJECTED
        NetworkError
            If the materials of an environment could not be loaded
        """
        project = await load_project_tree(client, project_id)
        if project.status is not Status.REJECTED:
            raise ConflictError(
                f"Projeto {project_id} não está reprovado ({project.status.value})",
                status_code=409,
            )
        unloaded = project.unloaded_environments()
        if unloaded:
            raise NetworkError(
                f"Materiais do ambiente {unloaded[0].name or unloaded[0].id} não carregados: {unloaded[0].load_error}"
            )
        return cls(project)

    def editable_materials(self) -> List[Material]:
        return [m for m in self.project.all_materials() if m.is_rejected]

    def _editable(self, material_id: int) -> Material:
        for material in self.project.all_materials():
            if material.id == material_id:
                if not material.is_rejected:
                    raise ApiValidationError(f"Material {material_id} não está reprovado e não pode ser editado")
                return material
        raise NotFoundError(f"Material {material_id} não encontrado neste projeto", status_code=404)

    def edit(self, material_id: int, item: Optional[str] = None, description: Optional[str] = None) -> MaterialEdit:
        """
        Buffer an edit of a rejected material.

        Raises
        ------
        ApiValidationError
            If the material is not editable or `item` is not a known label
        NotFoundError
            If the material is not part of this project
        """
        material = self._editable(material_id)
        current = self.edits.get(material_id) or MaterialEdit(item=material.item, description=material.description)

        if item is not None:
            label = item.strip().upper()
            if label not in ITEM_LABELS:
                raise ApiValidationError(f'Item "{item}" não pertence à lista de itens')
            current.item = label
        if description is not None:
            current.description = description

        self.edits[material_id] = current
        return current

    def payload_for(self, material: Material) -> dict:
        edit = self.edits.get(material.id)
        return {
            "status": Status.PENDING.value,
            "motivo": None,
            "item": edit.item if edit else material.item,
            "descricao": edit.description if edit else material.description,
        }

    async def resubmit(self, client: SpecApiClient) -> SagaReport:
        """
        Send every rejected material, then the project, back to PENDING.

        One saga step per upstream call; the first failure stops the run and
        already-applied steps stay applied. A project still REJECTED with no
        rejected material left (every material step of an earlier run went
        through) only gets the project step.

        Raises
        ------
        ApiValidationError
            If the project was already sent back to PENDING
        """
        if self.project.status is not Status.REJECTED:
            raise ApiValidationError(f"Projeto {self.project.id} já foi reenviado para aprovação")
        materials = self.editable_materials()

        saga = Saga("resubmit_project", cancel_token=client.cancel_token)
        for material in materials:
            saga.add_step(f"material:{material.id}", self._material_step(client, material))
        saga.add_step(f"project:{self.project.id}", self._project_step(client))

        report = await saga.run()
        logger.info(
            "Project resubmission finished",
            project_id=self.project.id,
            succeeded=report.succeeded,
            completed_steps=len(report.completed),
        )
        return report

    def _material_step(self, client: SpecApiClient, material: Material):
        async def step():
            payload = self.payload_for(material)
            await client.patch(f"{MATERIALS_PATH}{material.id}/", json=payload)
            material.status = Status.PENDING
            material.rejection_reason = None
            material.item = payload["item"]
            material.description = payload["descricao"]
            self.edits.pop(material.id, None)
            return material.id

        return step

    def _project_step(self, client: SpecApiClient):
        async def step():
            await client.patch(project_path(self.project.id), json={"status": Status.PENDING.value})
            self.project.status = Status.PENDING
            return self.project.id

        return step
