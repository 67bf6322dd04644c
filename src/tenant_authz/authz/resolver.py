from __future__ import annotations

from typing import Iterable, Optional

from tenant_authz.auth.models import Principal
from tenant_authz.configs.logging_config import get_logger
from tenant_authz.domain.entities.access import (
    AccessLevel,
    AccessResult,
    DenialCode,
    Role,
    RoleBinding,
)
from tenant_authz.repositories.role_store import RoleStore

log = get_logger(__name__)

REASON_STUDENT = "students have no access to this page"
REASON_CROSS_TENANT = "cross-tenant access denied"
REASON_NO_PERMISSIONS = "no permissions defined"


def accessible_tenants(principal: Optional[Principal], bindings: Iterable[RoleBinding]) -> frozenset[str]:
    """
    Tenant ids the principal holds a binding for.

    Super-admins get the same set: the override does not enumerate tenants
    they have no row for.
    """
    if principal is None:
        return frozenset()
    return frozenset(b.tenant_id for b in bindings)


def can_access_tenant(
    principal: Optional[Principal], bindings: Iterable[RoleBinding], tenant_id: str
) -> bool:
    if principal is None:
        return False
    if principal.is_super_admin:
        return True
    return any(b.tenant_id == tenant_id for b in bindings)


def has_admin_role(bindings: Iterable[RoleBinding]) -> bool:
    return any(b.role is Role.ADMIN for b in bindings)


def can_create_users(principal: Optional[Principal], bindings: Iterable[RoleBinding]) -> bool:
    """Super-admins, and admins of any tenant, may create users."""
    if principal is None:
        return False
    return principal.is_super_admin or has_admin_role(bindings)


def resolve_access_level(principal: Optional[Principal], bindings: Iterable[RoleBinding]) -> AccessLevel:
    if principal is None:
        return AccessLevel.NONE
    if principal.is_super_admin:
        return AccessLevel.SUPER_ADMIN

    roles = {b.role for b in bindings}
    if Role.ADMIN in roles:
        return AccessLevel.ADMIN
    if Role.CLIENTE in roles:
        return AccessLevel.CLIENTE
    if Role.ALUNO in roles:
        return AccessLevel.ALUNO
    return AccessLevel.NONE


def decide_client_access(
    binding: Optional[RoleBinding],
    tenant_id: str,
    current_tenant_id: Optional[str],
) -> AccessResult:
    """Apply the tenant page rule to the binding fetched for (principal, tenant_id)."""
    if binding is None:
        return AccessResult(False, error=REASON_NO_PERMISSIONS, code=DenialCode.NO_ROLE_ASSIGNED)

    role = binding.role
    if role is Role.ALUNO:
        return AccessResult(False, user_role=role, error=REASON_STUDENT, code=DenialCode.ROLE_FORBIDDEN)
    if role is Role.ADMIN:
        return AccessResult(True, user_role=role)
    if role is Role.CLIENTE:
        if current_tenant_id is not None and tenant_id == current_tenant_id:
            return AccessResult(True, user_role=role)
        return AccessResult(
            False, user_role=role, error=REASON_CROSS_TENANT, code=DenialCode.ROLE_FORBIDDEN
        )

    return AccessResult(False, error=REASON_NO_PERMISSIONS, code=DenialCode.NO_ROLE_ASSIGNED)


async def validate_tenant_access(
    store: RoleStore,
    principal: Principal,
    tenant_id: str,
    current_tenant_id: Optional[str],
) -> AccessResult:
    """
    Fetch the binding for exactly (principal, tenant_id) and apply the page rule.

    Store errors propagate; callers that must fail closed catch them.
    """
    binding = await store.fetch_binding(principal.user_id, tenant_id)
    # A row for another principal or tenant never counts.
    if binding is not None and (binding.user_id != principal.user_id or binding.tenant_id != tenant_id):
        log.warning(
            "authz.binding_mismatch user_id=%s tenant_id=%s row_user=%s row_tenant=%s",
            principal.user_id,
            tenant_id,
            binding.user_id,
            binding.tenant_id,
        )
        binding = None
    return decide_client_access(binding, tenant_id, current_tenant_id)
