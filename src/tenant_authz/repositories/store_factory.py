from __future__ import annotations

from tenant_authz.configs.settings import Settings
from tenant_authz.repositories.mongo_role_store import MongoRoleStore, get_mongo_client
from tenant_authz.repositories.postgrest_role_store import PostgrestRoleStore
from tenant_authz.repositories.role_store import RoleStore
from tenant_authz.webclient.rest_client import RestClient


def _postgrest(settings: Settings) -> RoleStore:
    client = RestClient(settings.postgrest_url, settings.postgrest_api_key, timeout=settings.postgrest_timeout)
    return PostgrestRoleStore(client, settings)


def _mongo(settings: Settings) -> RoleStore:
    client = get_mongo_client(settings)
    return MongoRoleStore(client[settings.mongo_db], settings, client=client)


_BACKENDS = {
    "postgrest": _postgrest,
    "mongo": _mongo,
}


def build_role_store(settings: Settings) -> RoleStore:
    builder = _BACKENDS.get(settings.role_store_backend)
    if builder is None:
        raise ValueError(f"Unknown role store backend: {settings.role_store_backend}")
    return builder(settings)
