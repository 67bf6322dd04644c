from __future__ import annotations

import httpx
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from conftest import TENANT_A, TENANT_B
from tenant_authz.configs.settings import Settings
from tenant_authz.domain.entities.access import Role
from tenant_authz.errors import RoleStoreError
from tenant_authz.repositories.mongo_role_store import MongoRoleStore
from tenant_authz.repositories.postgrest_role_store import PostgrestRoleStore
from tenant_authz.repositories.store_factory import build_role_store
from tenant_authz.webclient.rest_client import RestClient

NO_ROWS = {"code": "PGRST116", "details": "The result contains 0 rows", "message": "JSON object requested"}


def _store(handler) -> PostgrestRoleStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PostgrestRoleStore(RestClient("http://store.test/", "anon-key", client=client), Settings())


@pytest.mark.asyncio
async def test_postgrest_fetch_binding_found() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"user_id": "u1", "cliente_id": TENANT_A, "role": "cliente"})

    store = _store(handler)
    found = await store.fetch_binding("u1", TENANT_A)

    assert found is not None and found.role is Role.CLIENTE and found.tenant_id == TENANT_A
    req = seen[0]
    assert req.url.path == "/rest/v1/user_client_roles"
    assert req.url.params["user_id"] == "eq.u1"
    assert req.url.params["cliente_id"] == f"eq.{TENANT_A}"
    assert req.headers["apikey"] == "anon-key"
    assert req.headers["accept"] == "application/vnd.pgrst.object+json"


@pytest.mark.asyncio
async def test_postgrest_no_rows_is_not_found() -> None:
    store = _store(lambda request: httpx.Response(406, json=NO_ROWS))
    assert await store.fetch_binding("u1", TENANT_A) is None
    assert await store.fetch_tenant(TENANT_A) is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"message": "db down"}),
        httpx.Response(406, json={"code": "PGRST000"}),
        httpx.Response(401, text="unauthorized"),
        httpx.Response(200, json=[{"user_id": "u1"}]),
        httpx.Response(200, json={"user_id": "u1", "cliente_id": TENANT_A, "role": "super_admin"}),
    ],
)
async def test_postgrest_failures_raise(response: httpx.Response) -> None:
    store = _store(lambda request: response)
    with pytest.raises(RoleStoreError):
        await store.fetch_binding("u1", TENANT_A)


@pytest.mark.asyncio
async def test_postgrest_network_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = _store(handler)
    with pytest.raises(RoleStoreError):
        await store.fetch_binding("u1", TENANT_A)


@pytest.mark.asyncio
async def test_postgrest_fetch_all_and_tenant() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/clientes"):
            return httpx.Response(200, json={"id": TENANT_A, "nome": "Acme", "status": "active"})
        return httpx.Response(
            200,
            json=[
                {"user_id": "u1", "cliente_id": TENANT_A, "role": "admin"},
                {"user_id": "u1", "cliente_id": TENANT_B, "role": "aluno"},
            ],
        )

    store = _store(handler)
    bindings = await store.fetch_all_bindings("u1")
    tenant = await store.fetch_tenant(TENANT_A)

    assert [b.role for b in bindings] == [Role.ADMIN, Role.ALUNO]
    assert tenant is not None and tenant.name == "Acme" and tenant.status == "active"


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    async def to_list(self, length=None):
        return list(self._docs)


class FakeCollection:
    def __init__(self, docs=None, error: Exception | None = None):
        self.docs = list(docs or [])
        self.error = error

    async def find_one(self, query, projection=None):
        if self.error:
            raise self.error
        for doc in self.docs:
            if all(doc.get(k) == v for k, v in query.items()):
                return dict(doc)
        return None

    def find(self, query, projection=None):
        if self.error:
            raise self.error
        return FakeCursor(d for d in self.docs if all(d.get(k) == v for k, v in query.items()))


def _mongo(bindings=None, tenants=None, error=None) -> MongoRoleStore:
    settings = Settings()
    db = {
        settings.role_bindings_table: FakeCollection(bindings, error),
        settings.tenants_table: FakeCollection(tenants, error),
    }
    return MongoRoleStore(db, settings)


@pytest.mark.asyncio
async def test_mongo_store_reads_bindings_and_tenants() -> None:
    store = _mongo(
        bindings=[{"user_id": "u1", "cliente_id": TENANT_A, "role": "admin"}],
        tenants=[{"id": TENANT_A, "nome": "Acme", "status": "inactive"}],
    )

    assert (await store.fetch_binding("u1", TENANT_A)).role is Role.ADMIN
    assert await store.fetch_binding("u1", TENANT_B) is None
    assert len(await store.fetch_all_bindings("u1")) == 1
    assert (await store.fetch_tenant(TENANT_A)).status == "inactive"


@pytest.mark.asyncio
async def test_mongo_driver_errors_raise() -> None:
    store = _mongo(error=ServerSelectionTimeoutError("no servers"))
    with pytest.raises(RoleStoreError):
        await store.fetch_binding("u1", TENANT_A)
    with pytest.raises(RoleStoreError):
        await store.fetch_all_bindings("u1")


def test_factory_selects_backend() -> None:
    assert build_role_store(Settings(role_store_backend="postgrest")).name() == "postgrest"

    settings = Settings()
    settings.role_store_backend = "redis"
    with pytest.raises(ValueError):
        build_role_store(settings)
