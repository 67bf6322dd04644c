from __future__ import annotations

import uuid
from typing import Optional

from tenant_authz.auth.models import Principal, TenantContext
from tenant_authz.configs.logging_config import get_logger
from tenant_authz.configs.settings import Settings
from tenant_authz.domain.entities.access import Role
from tenant_authz.errors import ForbiddenError, TenantHeaderError
from tenant_authz.repositories.role_store import RoleStore

log = get_logger(__name__)


def is_valid_tenant_id(value: str) -> bool:
    try:
        parsed = uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return False
    return parsed.variant == uuid.RFC_4122 and parsed.version in (1, 2, 3, 4, 5)


async def validate_tenant(
    store: RoleStore,
    principal: Principal,
    tenant_id: Optional[str],
    settings: Settings,
    *,
    require_admin: bool = False,
) -> TenantContext:
    """
    Resolve the tenant context for a request scoped by the tenant header.

    The tenant must exist and be active, and the caller must hold a binding
    for it unless they are a super-admin. Store failures propagate as
    RoleStoreError.
    """
    if not tenant_id:
        log.info("tenant.header_missing user_id=%s", principal.user_id)
        raise TenantHeaderError(
            f"{settings.TENANT_HEADER} header is required", code="TENANT_HEADER_REQUIRED"
        )
    if not is_valid_tenant_id(tenant_id):
        log.info("tenant.header_invalid user_id=%s", principal.user_id)
        raise TenantHeaderError(f"invalid UUID in {settings.TENANT_HEADER} header")

    tenant = await store.fetch_tenant(tenant_id)
    if tenant is None:
        log.info("tenant.not_found tenant_id=%s user_id=%s", tenant_id, principal.user_id)
        raise ForbiddenError("tenant not found or not accessible", code="TENANT_FORBIDDEN")
    if tenant.status != settings.TENANT_ACTIVE_STATUS:
        log.info("tenant.inactive tenant_id=%s status=%s", tenant_id, tenant.status)
        raise ForbiddenError("tenant inactive", code="TENANT_FORBIDDEN")

    if principal.is_super_admin:
        return TenantContext(tenant_id=tenant_id, user_id=principal.user_id, role=None, principal=principal)

    binding = await store.fetch_binding(principal.user_id, tenant_id)
    if binding is None:
        log.info("tenant.no_binding tenant_id=%s user_id=%s", tenant_id, principal.user_id)
        raise ForbiddenError("user has no link to this tenant", code="TENANT_FORBIDDEN")

    if require_admin and binding.role is not Role.ADMIN:
        log.info("tenant.admin_required tenant_id=%s role=%s", tenant_id, binding.role.value)
        raise ForbiddenError("insufficient role")

    return TenantContext(tenant_id=tenant_id, user_id=principal.user_id, role=binding.role, principal=principal)
