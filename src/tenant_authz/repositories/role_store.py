from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import ValidationError

from tenant_authz.configs.logging_config import get_logger
from tenant_authz.domain.entities.access import RoleBinding, Tenant
from tenant_authz.errors import RoleStoreError

log = get_logger(__name__)


class RoleStore(ABC):
    """
    Read-only access to role bindings and tenant rows.

    A missing row is reported as ``None`` (or an empty list); every
    infrastructure failure raises ``RoleStoreError``.
    """

    @abstractmethod
    async def fetch_binding(self, user_id: str, tenant_id: str) -> Optional[RoleBinding]:
        pass

    @abstractmethod
    async def fetch_all_bindings(self, user_id: str) -> list[RoleBinding]:
        pass

    @abstractmethod
    async def fetch_tenant(self, tenant_id: str) -> Optional[Tenant]:
        pass

    @abstractmethod
    def name(self) -> str:
        pass

    async def close(self) -> None:
        return None


def binding_from_row(row: dict[str, Any]) -> RoleBinding:
    """
    Map a `user_client_roles` row to a RoleBinding.

    Rows carrying a role outside the closed set are a store fault, not a
    silent deny.
    """
    try:
        return RoleBinding(
            user_id=str(row["user_id"]),
            tenant_id=str(row["cliente_id"]),
            role=row["role"],
        )
    except (KeyError, ValidationError) as exc:
        log.error("role_store.bad_binding_row keys=%s error=%s", sorted(row), str(exc))
        raise RoleStoreError("malformed role binding row") from exc


def tenant_from_row(row: dict[str, Any]) -> Tenant:
    try:
        return Tenant(id=str(row["id"]), name=row.get("nome") or row.get("name") or "", status=row["status"])
    except (KeyError, ValidationError) as exc:
        log.error("role_store.bad_tenant_row keys=%s error=%s", sorted(row), str(exc))
        raise RoleStoreError("malformed tenant row") from exc
