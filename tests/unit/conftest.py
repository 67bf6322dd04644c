from __future__ import annotations

from typing import Optional

import pytest

from tenant_authz.auth.models import Principal
from tenant_authz.authz.audit import AuditEvent, AuditSink
from tenant_authz.domain.entities.access import Role, RoleBinding, Tenant
from tenant_authz.errors import RoleStoreError
from tenant_authz.repositories.role_store import RoleStore

TENANT_A = "11111111-1111-4111-8111-111111111111"
TENANT_B = "22222222-2222-4222-8222-222222222222"
TENANT_C = "33333333-3333-4333-8333-333333333333"
TENANT_D = "44444444-4444-4444-8444-444444444444"


class FakeRoleStore(RoleStore):
    def __init__(
        self,
        bindings: list[RoleBinding] | None = None,
        tenants: list[Tenant] | None = None,
        failing_tenants: set[str] | None = None,
    ):
        self.bindings = list(bindings or [])
        self.tenants = {t.id: t for t in tenants or []}
        self.failing_tenants = set(failing_tenants or ())
        self.calls: list[tuple[str, str]] = []

    def name(self) -> str:
        return "fake"

    async def fetch_binding(self, user_id: str, tenant_id: str) -> Optional[RoleBinding]:
        self.calls.append((user_id, tenant_id))
        if tenant_id in self.failing_tenants:
            raise RoleStoreError("connection reset")
        for b in self.bindings:
            if b.user_id == user_id and b.tenant_id == tenant_id:
                return b
        return None

    async def fetch_all_bindings(self, user_id: str) -> list[RoleBinding]:
        return [b for b in self.bindings if b.user_id == user_id]

    async def fetch_tenant(self, tenant_id: str) -> Optional[Tenant]:
        if tenant_id in self.failing_tenants:
            raise RoleStoreError("connection reset")
        return self.tenants.get(tenant_id)


class RecordingSink(AuditSink):
    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    def emit(self, event: AuditEvent) -> None:
        self.events.append(event)


class BrokenSink(AuditSink):
    def emit(self, event: AuditEvent) -> None:
        raise ConnectionError("audit sink down")


def binding(user_id: str, tenant_id: str, role: Role | str) -> RoleBinding:
    return RoleBinding(user_id=user_id, tenant_id=tenant_id, role=role)


@pytest.fixture
def principal() -> Principal:
    return Principal(user_id="user-p", email="p@example.com")


@pytest.fixture
def super_admin() -> Principal:
    return Principal(user_id="root", email="root@example.com", is_super_admin=True)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
