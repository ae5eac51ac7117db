"""
Approval Workflow

Per-material approve/reject decisions on a loaded project tree, followed by
the client-triggered project-level status recomputation.

Workflow:
1. Load the project and every environment's materials
2. Approve or reject one PENDING material (one upstream call)
3. Update the local tree, drop the material's buffered rejection note
4. Recompute the project status; once nothing is pending and the project is
   still PENDING locally, POST the project-level approve/reject action
"""

from datetime import datetime
from datetime import timezone
from typing import Dict
from typing import Optional

from loguru import logger
from pydantic import BaseModel

from espec_api.client.api_client import SpecApiClient
from espec_api.client.exceptions import ConflictError
from espec_api.client.exceptions import NotFoundError
from espec_api.client.exceptions import RequestCancelledError
from espec_api.client.exceptions import SpecApiError
from espec_api.models.domain import Material
from espec_api.models.domain import Project
from espec_api.models.enums import Status
from espec_api.services.projects import MATERIALS_PATH
from espec_api.services.projects import load_project_tree
from espec_api.services.projects import project_path
from espec_api.workflow.aggregate import compute_aggregate_status
from espec_api.workflow.aggregate import count_by_status

DEFAULT_REJECTION_REASON = "Item reprovado sem observações específicas"


class DecisionResult(BaseModel):
    """Outcome of one material decision and the recomputation that followed it."""

    material: Material
    project_status: Status
    aggregate_target: Optional[Status] = None
    aggregate_applied: bool = False
    aggregate_error: Optional[str] = None


class ApprovalWorkflow:
    """
    In-memory approval board for one project.

    Parameters
    ----------
    project : Project
        Fully loaded project tree
    default_rejection_reason : str
        Reason sent when a material is rejected without any note
    """

    def __init__(self, project: Project, default_rejection_reason: str = DEFAULT_REJECTION_REASON):
        self.project = project
        self.default_rejection_reason = default_rejection_reason
        self.rejection_notes: Dict[int, str] = {}
        self.collapsed: Dict[int, bool] = {}

    @classmethod
    async def load(
        cls,
        client: SpecApiClient,
        project_id: int,
        default_rejection_reason: str = DEFAULT_REJECTION_REASON,
    ) -> "ApprovalWorkflow":
        project = await load_project_tree(client, project_id)
        return cls(project, default_rejection_reason=default_rejection_reason)

    # ------------------------------------------------------------------
    # Local UI state
    # ------------------------------------------------------------------

    def set_rejection_note(self, material_id: int, text: str) -> None:
        """Buffer a free-text rejection reason; a blank text removes the note."""
        self._find_material(material_id)
        if text and text.strip():
            self.rejection_notes[material_id] = text
        else:
            self.rejection_notes.pop(material_id, None)

    def toggle_environment(self, environment_id: int) -> bool:
        """Flip the collapse flag of an environment; returns the new value."""
        if self.project.find_environment(environment_id) is None:
            raise NotFoundError(f"Ambiente {environment_id} não encontrado neste projeto", status_code=404)
        self.collapsed[environment_id] = not self.collapsed.get(environment_id, False)
        return self.collapsed[environment_id]

    def counts(self) -> Dict[Status, int]:
        return count_by_status(self.project.all_materials())

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def _find_material(self, material_id: int, environment_id: Optional[int] = None) -> Material:
        environments = self.project.environments
        if environment_id is not None:
            environment = self.project.find_environment(environment_id)
            if environment is None:
                raise NotFoundError(f"Ambiente {environment_id} não encontrado neste projeto", status_code=404)
            environments = [environment]

        for environment in environments:
            for material in environment.materials:
                if material.id == material_id:
                    return material
        raise NotFoundError(f"Material {material_id} não encontrado neste projeto", status_code=404)

    def _pending_material(self, environment_id: int, material_id: int) -> Material:
        material = self._find_material(material_id, environment_id)
        if not material.is_pending:
            raise ConflictError(
                f"Material {material_id} já foi avaliado ({material.status.value})",
                status_code=409,
            )
        return material

    async def approve_material(self, client: SpecApiClient, environment_id: int, material_id: int) -> DecisionResult:
        """
        Approve one PENDING material.

        On upstream failure the error propagates and the local tree is left
        untouched.

        Raises
        ------
        NotFoundError
            If the environment or material is not part of this project
        ConflictError
            If the material is no longer PENDING
        """
        material = self._pending_material(environment_id, material_id)
        response = await client.post(f"{MATERIALS_PATH}{material_id}/aprovar/")

        material.status = Status.APPROVED
        material.approved_at = datetime.now(timezone.utc)
        material.rejection_reason = None
        if isinstance(response, dict) and response.get("aprovador_email"):
            material.approver_email = response["aprovador_email"]
        self.rejection_notes.pop(material_id, None)
        logger.info("Material approved", project_id=self.project.id, material_id=material_id)

        return await self._finish_decision(client, material)

    async def reject_material(
        self,
        client: SpecApiClient,
        environment_id: int,
        material_id: int,
        reason: Optional[str] = None,
    ) -> DecisionResult:
        """
        Reject one PENDING material.

        The reason is, in order: `reason`, the buffered note for the material,
        the default rejection reason.
        """
        material = self._pending_material(environment_id, material_id)
        reason = (reason or "").strip() or self.rejection_notes.get(material_id, "").strip()
        reason = reason or self.default_rejection_reason

        await client.post(f"{MATERIALS_PATH}{material_id}/reprovar/", json={"motivo": reason})

        material.status = Status.REJECTED
        material.approved_at = datetime.now(timezone.utc)
        material.rejection_reason = reason
        self.rejection_notes.pop(material_id, None)
        logger.info("Material rejected", project_id=self.project.id, material_id=material_id)

        return await self._finish_decision(client, material)

    async def _finish_decision(self, client: SpecApiClient, material: Material) -> DecisionResult:
        target, applied, error = await self.recompute(client)
        return DecisionResult(
            material=material,
            project_status=self.project.status,
            aggregate_target=target,
            aggregate_applied=applied,
            aggregate_error=error,
        )

    async def recompute(self, client: SpecApiClient):
        """
        Recompute the project status from the local tree.

        Returns
        -------
        tuple
            (target status or None, whether the project-level call was made
            and succeeded, error message of a failed project-level call)

        No project-level call is made while an environment of the tree
        failed to load.
        """
        unloaded = self.project.unloaded_environments()
        if unloaded:
            # Materials of these environments are unknown, so nothing can be concluded
            names = ", ".join(e.name or str(e.id) for e in unloaded)
            logger.warning(
                "Project status not recomputed, environments not loaded",
                project_id=self.project.id,
                environment_ids=[e.id for e in unloaded],
            )
            return None, False, f"Materiais não carregados para: {names}. Recarregue o projeto."

        target = compute_aggregate_status(self.project.all_materials())
        if target is None or self.project.status is not Status.PENDING:
            return target, False, None

        action = "reprovar" if target is Status.REJECTED else "aprovar"
        try:
            await client.post(f"{project_path(self.project.id)}{action}/")
        except RequestCancelledError:
            raise
        except SpecApiError as e:
            # Local project status stays stale until the next load
            logger.error(
                "Project status update failed",
                project_id=self.project.id,
                target_status=target.value,
                error=str(e),
            )
            return target, False, str(e)

        self.project.status = target
        logger.info("Project status updated", project_id=self.project.id, status=target.value)
        return target, True, None
