from __future__ import annotations

from typing import Any, Optional

import httpx

from tenant_authz.configs.logging_config import get_logger
from tenant_authz.configs.settings import Settings
from tenant_authz.domain.entities.access import RoleBinding, Tenant
from tenant_authz.errors import RoleStoreError
from tenant_authz.repositories.role_store import RoleStore, binding_from_row, tenant_from_row
from tenant_authz.webclient.rest_client import RestClient

log = get_logger(__name__)

SINGLE_OBJECT = "application/vnd.pgrst.object+json"
# PostgREST code for "JSON object requested, multiple (or no) rows returned".
NO_ROWS_CODE = "PGRST116"


class PostgrestRoleStore(RoleStore):
    def __init__(self, client: RestClient, settings: Settings):
        self._client = client
        self._bindings = f"/rest/v1/{settings.role_bindings_table}"
        self._tenants = f"/rest/v1/{settings.tenants_table}"

    def name(self) -> str:
        return "postgrest"

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_binding(self, user_id: str, tenant_id: str) -> Optional[RoleBinding]:
        log.info("repo.role.fetch_binding user_id=%s tenant_id=%s", user_id, tenant_id)
        row = await self._get_one(
            self._bindings,
            {"select": "user_id,cliente_id,role", "user_id": f"eq.{user_id}", "cliente_id": f"eq.{tenant_id}"},
        )
        if row is None:
            log.info("repo.role.fetch_binding not_found user_id=%s tenant_id=%s", user_id, tenant_id)
            return None
        return binding_from_row(row)

    async def fetch_all_bindings(self, user_id: str) -> list[RoleBinding]:
        log.info("repo.role.fetch_all_bindings user_id=%s", user_id)
        resp = await self._send(
            self._bindings,
            {"select": "user_id,cliente_id,role", "user_id": f"eq.{user_id}"},
        )
        if resp.status_code != 200:
            raise self._error(resp)
        rows = self._json(resp)
        if not isinstance(rows, list):
            raise RoleStoreError("unexpected role store payload")
        return [binding_from_row(row) for row in rows]

    async def fetch_tenant(self, tenant_id: str) -> Optional[Tenant]:
        log.info("repo.role.fetch_tenant tenant_id=%s", tenant_id)
        row = await self._get_one(self._tenants, {"select": "id,nome,status", "id": f"eq.{tenant_id}"})
        return tenant_from_row(row) if row is not None else None

    async def _get_one(self, path: str, params: dict[str, str]) -> Optional[dict[str, Any]]:
        resp = await self._send(path, params, headers={"Accept": SINGLE_OBJECT})
        if resp.status_code == 200:
            row = self._json(resp)
            if not isinstance(row, dict):
                raise RoleStoreError("unexpected role store payload")
            return row
        if resp.status_code == 406 and self._error_code(resp) == NO_ROWS_CODE:
            return None
        raise self._error(resp)

    async def _send(self, path: str, params: dict[str, str], headers: dict[str, str] | None = None) -> httpx.Response:
        try:
            return await self._client.get(path, params=params, headers=dict(headers or {}))
        except httpx.HTTPError as exc:
            log.error("repo.role.transport_error path=%s error=%s", path, str(exc))
            raise RoleStoreError("role store request failed") from exc

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise RoleStoreError("role store returned invalid json") from exc

    @staticmethod
    def _error_code(resp: httpx.Response) -> Optional[str]:
        try:
            body = resp.json()
        except ValueError:
            return None
        return body.get("code") if isinstance(body, dict) else None

    def _error(self, resp: httpx.Response) -> RoleStoreError:
        log.error(
            "repo.role.query_failed status=%s code=%s",
            resp.status_code,
            self._error_code(resp),
        )
        return RoleStoreError(f"role store query failed status={resp.status_code}")
