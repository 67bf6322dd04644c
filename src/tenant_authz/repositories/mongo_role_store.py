from __future__ import annotations

from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from tenant_authz.configs.logging_config import get_logger
from tenant_authz.configs.settings import Settings
from tenant_authz.domain.entities.access import RoleBinding, Tenant
from tenant_authz.errors import RoleStoreError
from tenant_authz.repositories.role_store import RoleStore, binding_from_row, tenant_from_row

log = get_logger(__name__)


def get_mongo_client(settings: Settings) -> AsyncIOMotorClient:
    log.info("mongo.client.create uri=%s", settings.mongo_uri)
    return AsyncIOMotorClient(settings.mongo_uri)


class MongoRoleStore(RoleStore):
    """Role store over a Mongo mirror of the `user_client_roles` and tenant tables."""

    def __init__(self, db: AsyncIOMotorDatabase, settings: Settings, client: AsyncIOMotorClient = None):
        self._client = client
        self._bindings = db[settings.role_bindings_table]
        self._tenants = db[settings.tenants_table]

    def name(self) -> str:
        return "mongo"

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()

    async def fetch_binding(self, user_id: str, tenant_id: str) -> Optional[RoleBinding]:
        log.info("repo.role.fetch_binding user_id=%s tenant_id=%s", user_id, tenant_id)
        doc = await self._find_one(self._bindings, {"user_id": user_id, "cliente_id": tenant_id})
        if not doc:
            log.info("repo.role.fetch_binding not_found user_id=%s tenant_id=%s", user_id, tenant_id)
            return None
        return binding_from_row(doc)

    async def fetch_all_bindings(self, user_id: str) -> list[RoleBinding]:
        log.info("repo.role.fetch_all_bindings user_id=%s", user_id)
        try:
            docs = await self._bindings.find({"user_id": user_id}, {"_id": 0}).to_list(length=None)
        except PyMongoError as exc:
            log.error("repo.role.mongo_error op=find error=%s", str(exc))
            raise RoleStoreError("role store request failed") from exc
        return [binding_from_row(doc) for doc in docs]

    async def fetch_tenant(self, tenant_id: str) -> Optional[Tenant]:
        log.info("repo.role.fetch_tenant tenant_id=%s", tenant_id)
        doc = await self._find_one(self._tenants, {"id": tenant_id})
        return tenant_from_row(doc) if doc else None

    async def _find_one(self, col, query: dict[str, Any]) -> Optional[dict[str, Any]]:
        try:
            return await col.find_one(query, {"_id": 0})
        except PyMongoError as exc:
            log.error("repo.role.mongo_error op=find_one error=%s", str(exc))
            raise RoleStoreError("role store request failed") from exc
