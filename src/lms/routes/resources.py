from typing import Dict, List, Optional, Type

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from lms.auth.dependencies import get_current_user
from lms.auth.models import TokenClaims
from lms.auth.rbac import require_roles
from lms.db.entities import ENTITIES
from lms.db.repository import EntityDescriptor, EntityRepository
from lms.models import (
    BatchPayload,
    CategoryPayload,
    CoursePayload,
    ModulePayload,
    SessionPayload,
    SubCategoryPayload,
    SubjectPayload,
    TopicPayload,
)
from lms.utils.db import DatabasePool, get_db_pool


def _gate(roles: Optional[tuple]):
    """Authorization gate for a route: a role check, or plain authentication
    when any role is accepted."""
    if roles is None:
        return get_current_user
    return require_roles(*roles)


def build_router(descriptor: EntityDescriptor, payload_model: Type[BaseModel]) -> APIRouter:
    """Wire list/get/create/update/delete routes for one entity type."""
    router = APIRouter()

    def get_repository(pool: DatabasePool = Depends(get_db_pool)) -> EntityRepository:
        return EntityRepository(descriptor, pool)

    read_gate = _gate(descriptor.read_roles)
    create_gate = _gate(descriptor.create_roles)
    write_gate = _gate(descriptor.write_roles)
    filter_alias = descriptor.parent_filter or "parent_id"

    @router.get("")
    async def list_entities(
        parent_id: Optional[int] = Query(None, alias=filter_alias),
        current_user: TokenClaims = Depends(read_gate),
        repository: EntityRepository = Depends(get_repository),
    ) -> List[Dict]:
        return await repository.list(current_user, parent_id)

    @router.get("/{entity_id}")
    async def get_entity(
        entity_id: int,
        current_user: TokenClaims = Depends(read_gate),
        repository: EntityRepository = Depends(get_repository),
    ) -> Dict:
        return await repository.get(current_user, entity_id)

    @router.post("", status_code=201)
    async def create_entity(
        payload: payload_model,
        current_user: TokenClaims = Depends(create_gate),
        repository: EntityRepository = Depends(get_repository),
    ) -> Dict:
        return await repository.create(current_user, payload.model_dump(exclude_unset=True))

    @router.put("/{entity_id}")
    async def update_entity(
        entity_id: int,
        payload: payload_model,
        current_user: TokenClaims = Depends(write_gate),
        repository: EntityRepository = Depends(get_repository),
    ) -> Dict:
        return await repository.update(
            current_user, entity_id, payload.model_dump(exclude_unset=True)
        )

    @router.delete("/{entity_id}")
    async def delete_entity(
        entity_id: int,
        current_user: TokenClaims = Depends(write_gate),
        repository: EntityRepository = Depends(get_repository),
    ) -> Dict:
        return await repository.delete(current_user, entity_id)

    return router


ENTITY_PAYLOADS = {
    "sessions": SessionPayload,
    "batches": BatchPayload,
    "modules": ModulePayload,
    "categories": CategoryPayload,
    "subcategories": SubCategoryPayload,
    "subjects": SubjectPayload,
    "topics": TopicPayload,
    "courses": CoursePayload,
}


def entity_routers():
    """Yield (path, router) for every entity type."""
    for path, descriptor in ENTITIES.items():
        yield path, build_router(descriptor, ENTITY_PAYLOADS[path])
