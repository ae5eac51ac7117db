"""
Reference Data Services

Editors for environments, environment types, brands, materials, items,
brand mappings and admin users. List-backed editors go through a
CachedCollection so every mutation is followed by a re-fetch from upstream.
"""

from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from loguru import logger

from espec_api.client.api_client import SpecApiClient
from espec_api.client.exceptions import ApiValidationError
from espec_api.client.exceptions import RequestCancelledError
from espec_api.client.exceptions import SpecApiError
from espec_api.client.mappers import map_admin_user
from espec_api.client.mappers import map_brand_description
from espec_api.client.mappers import map_environment
from espec_api.client.mappers import map_material
from espec_api.client.mappers import map_reference_item
from espec_api.client.mappers import results_of
from espec_api.models.domain import AdminUser
from espec_api.models.domain import BrandDescription
from espec_api.models.domain import Environment
from espec_api.models.domain import Material
from espec_api.models.domain import ReferenceItem
from espec_api.workflow.repository import CachedCollection

ENVIRONMENTS_PATH = "/api/ambientes/"
ENVIRONMENT_CATEGORIES_PATH = "/api/ambientes/categorias/"
ENVIRONMENT_TYPES_PATH = "/api/tipos-ambiente/"
BRANDS_PATH = "/api/marcas/"
MATERIALS_PATH = "/api/materiais/"
ITEMS_PATH = "/api/itens/"
BRAND_MAPPINGS_PATH = "/api/marcas-descricao/"
ADMIN_USERS_PATH = "/api/usuarios-admin/"

FALLBACK_CATEGORIES = ["COMUM", "PRIVATIVA"]

# Backend unique-together violation on (ambiente, item)
DUPLICATE_MATERIAL_MARKER = "ambiente, item"


class ReferenceDataService:
    """
    Reference-data editors bound to one upstream client.

    Parameters
    ----------
    client : SpecApiClient
        Session-bound upstream client
    """

    def __init__(self, client: SpecApiClient):
        self.client = client
        self.environments: CachedCollection[Environment] = CachedCollection("environments", self._fetch_environments)
        self.environment_types: CachedCollection[ReferenceItem] = CachedCollection(
            "environment_types", self._fetch_environment_types
        )
        self.brands: CachedCollection[ReferenceItem] = CachedCollection("brands", self._fetch_brands)
        self.brand_mappings: CachedCollection[BrandDescription] = CachedCollection(
            "brand_mappings", self._fetch_brand_mappings
        )

    # ------------------------------------------------------------------
    # Fetchers
    # ------------------------------------------------------------------

    async def _fetch_environments(self) -> List[Environment]:
        rows = await self.client.fetch_all(ENVIRONMENTS_PATH, params={"disponiveis": 1})
        return [map_environment(row) for row in rows]

    async def _fetch_environment_types(self) -> List[ReferenceItem]:
        return [map_reference_item(row) for row in await self.client.fetch_all(ENVIRONMENT_TYPES_PATH)]

    async def _fetch_brands(self) -> List[ReferenceItem]:
        return [map_reference_item(row) for row in await self.client.fetch_all(BRANDS_PATH)]

    async def _fetch_brand_mappings(self) -> List[BrandDescription]:
        return [map_brand_description(row) for row in await self.client.fetch_all(BRAND_MAPPINGS_PATH)]

    ##########################
    # Environments
    ##########################

    async def create_environment(
        self,
        name: str,
        category: Optional[str],
        type_id: Optional[int] = None,
        color_guide: str = "",
        project_id: Optional[int] = None,
    ) -> Environment:
        payload = {
            "nome_do_ambiente": name.strip(),
            "categoria": category,
            "tipo": type_id,
            "guia_de_cores": color_guide,
            "projeto": project_id,
        }
        created = await self.environments.mutate(lambda: self.client.post(ENVIRONMENTS_PATH, json=payload))
        logger.info("Environment created", environment_id=created.get("id"), category=category)
        return map_environment(created)

    async def update_environment(
        self,
        environment_id: int,
        name: str,
        category: Optional[str],
        type_id: Optional[int] = None,
        color_guide: str = "",
    ) -> Environment:
        payload = {
            "nome_do_ambiente": name.strip(),
            "categoria": category,
            "tipo": type_id,
            "guia_de_cores": color_guide,
        }
        updated = await self.environments.mutate(
            lambda: self.client.put(f"{ENVIRONMENTS_PATH}{environment_id}/", json=payload)
        )
        logger.info("Environment updated", environment_id=environment_id)
        return map_environment(updated)

    async def delete_environment(self, environment_id: int) -> None:
        await self.environments.mutate(lambda: self.client.delete(f"{ENVIRONMENTS_PATH}{environment_id}/"))
        logger.info("Environment deleted", environment_id=environment_id)

    async def environment_categories(self) -> List[str]:
        """Category choices offered by the backend, or the fixed fallback when the lookup fails."""
        try:
            payload = await self.client.get(ENVIRONMENT_CATEGORIES_PATH)
        except RequestCancelledError:
            raise
        except SpecApiError as e:
            logger.warning("Environment categories unavailable, using fallback", error=str(e))
            return list(FALLBACK_CATEGORIES)

        categories = [c for c in (payload if isinstance(payload, list) else results_of(payload)) if c]
        return [str(c) for c in categories] or list(FALLBACK_CATEGORIES)

    ##########################
    # Environment types and brands
    ##########################

    async def create_environment_type(self, name: str) -> ReferenceItem:
        created = await self.environment_types.mutate(
            lambda: self.client.post(ENVIRONMENT_TYPES_PATH, json={"nome": name.strip()})
        )
        return map_reference_item(created)

    async def create_brand(self, name: str) -> ReferenceItem:
        created = await self.brands.mutate(lambda: self.client.post(BRANDS_PATH, json={"nome": name.strip()}))
        return map_reference_item(created)

    ##########################
    # Materials and items
    ##########################

    async def create_material(
        self,
        environment_id: int,
        item: str,
        description: str = "",
        brand_id: Optional[int] = None,
    ) -> Material:
        """
        Create a material, or update the existing one for the same (environment, item).

        The backend rejects a second material with the same item in one
        environment; in that case the existing row's description and brand
        are patched instead.
        """
        payload = {"ambiente": environment_id, "item": item, "descricao": description, "marca": brand_id}
        try:
            created = await self.client.post(MATERIALS_PATH, json=payload)
            return map_material(created)
        except ApiValidationError as e:
            if DUPLICATE_MATERIAL_MARKER not in e.message:
                raise
            existing = await self._find_material(environment_id, item)
            if existing is None:
                raise
            logger.info(
                "Material already exists, updating it instead",
                environment_id=environment_id,
                material_id=existing["id"],
            )
            updated = await self.client.patch(
                f"{MATERIALS_PATH}{existing['id']}/",
                json={"descricao": description, "marca": brand_id},
            )
            return map_material(updated)

    async def _find_material(self, environment_id: int, item: str) -> Optional[Dict[str, Any]]:
        rows = await self.client.fetch_all(MATERIALS_PATH, params={"ambiente": environment_id})
        return next((row for row in rows if row.get("item") == item), None)

    async def list_items(self) -> List[str]:
        """Every item label known to the backend, de-duplicated, in backend order."""
        rows = await self.client.fetch_all(ITEMS_PATH)
        names: List[str] = []
        for row in rows:
            name = (row.get("nome") or row.get("item_label") or "").strip()
            if name and name not in names:
                names.append(name)
        return names

    async def description_suggestions(self, limit: int = 2000) -> Dict[str, List[str]]:
        """
        Known descriptions grouped by upper-cased item label.

        Walks the material listing page by page, stopping after `limit` rows.
        Descriptions are unique and sorted per item.
        """
        rows = await self.client.fetch_all(MATERIALS_PATH, limit=limit)
        grouped: Dict[str, set] = {}
        for row in rows:
            item = (row.get("item") or "").strip()
            description = (row.get("descricao") or "").strip()
            if item and description:
                grouped.setdefault(item.upper(), set()).add(description)
        return {item: sorted(descriptions) for item, descriptions in sorted(grouped.items())}

    ##########################
    # Brand mappings
    ##########################

    async def save_brand_mapping(self, material: str, brands: str, project_id: Optional[int] = None) -> BrandDescription:
        """Create or replace the brand list of a material name (backend upsert)."""
        payload = {"material": material.strip(), "marcas": brands, "projeto": project_id}
        saved = await self.brand_mappings.mutate(
            lambda: self.client.post(f"{BRAND_MAPPINGS_PATH}salvar/", json=payload)
        )
        logger.info("Brand mapping saved", material=material)
        return map_brand_description(saved if isinstance(saved, dict) else payload)

    async def update_brand_mapping(self, mapping_id: int, brands: str) -> BrandDescription:
        updated = await self.brand_mappings.mutate(
            lambda: self.client.patch(f"{BRAND_MAPPINGS_PATH}{mapping_id}/", json={"marcas": brands})
        )
        return map_brand_description(updated)

    async def delete_brand_mapping(self, mapping_id: int) -> None:
        await self.brand_mappings.mutate(lambda: self.client.delete(f"{BRAND_MAPPINGS_PATH}{mapping_id}/"))
        logger.info("Brand mapping deleted", mapping_id=mapping_id)

    ##########################
    # Admin users
    ##########################

    async def list_users(self) -> List[AdminUser]:
        return [map_admin_user(row) for row in await self.client.fetch_all(ADMIN_USERS_PATH)]

    async def create_user(
        self,
        email: str,
        username: str,
        password: str,
        role: str,
        first_name: str = "",
        last_name: str = "",
    ) -> AdminUser:
        payload = {
            "email": email,
            "username": username,
            "password": password,
            "first_name": first_name,
            "last_name": last_name,
            "cargo": role,
        }
        created = await self.client.post(ADMIN_USERS_PATH, json=payload)
        logger.info("Admin user created", email=email, role=role)
        return map_admin_user(created if isinstance(created, dict) else {**payload, "password": None})
