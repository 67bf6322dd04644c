from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tenant_authz.auth.dependencies import get_optional_principal, get_principal, get_role_store
from tenant_authz.auth.models import Principal, TenantContext
from tenant_authz.authz.guards import check_permission, get_audit_sink, get_tenant_context
from tenant_authz.authz.audit import AuditSink
from tenant_authz.authz.orchestrator import AccessValidator
from tenant_authz.authz.resolver import accessible_tenants, can_create_users, resolve_access_level
from tenant_authz.authz.tenant_guard import is_valid_tenant_id
from tenant_authz.configs.logging_config import get_logger
from tenant_authz.errors import TenantHeaderError
from tenant_authz.repositories.role_store import RoleStore
from tenant_authz.utils.response import success

log = get_logger(__name__)

router = APIRouter(prefix="/access", tags=["access"])


class ValidateAccessRequest(BaseModel):
    tenant_id: str
    current_tenant_id: Optional[str] = None


@router.get("/me")
async def me(
    principal: Principal = Depends(get_principal),
    store: RoleStore = Depends(get_role_store),
) -> dict:
    bindings = await store.fetch_all_bindings(principal.user_id)
    data = {
        "user_id": principal.user_id,
        "email": principal.email,
        "access_level": resolve_access_level(principal, bindings).value,
        "tenants": sorted(accessible_tenants(principal, bindings)),
        "roles": {b.tenant_id: b.role.value for b in bindings},
        "can_create_users": can_create_users(principal, bindings),
    }
    log.info("access.me user_id=%s level=%s tenants=%s", principal.user_id, data["access_level"], len(data["tenants"]))
    return success(data)


@router.get("/check")
async def check(
    resource: str,
    action: str,
    ctx: TenantContext = Depends(get_tenant_context),
    sink: Optional[AuditSink] = Depends(get_audit_sink),
) -> dict:
    decision = check_permission(ctx, resource, action, sink)
    return success(
        {
            "allowed": decision.allowed,
            "reason": decision.reason,
            "matched_role": decision.matched_role.value if decision.matched_role else None,
        }
    )


@router.post("/validate")
async def validate(
    body: ValidateAccessRequest,
    principal: Optional[Principal] = Depends(get_optional_principal),
    store: RoleStore = Depends(get_role_store),
    sink: Optional[AuditSink] = Depends(get_audit_sink),
) -> dict:
    if not is_valid_tenant_id(body.tenant_id):
        log.info("access.validate.invalid_tenant_id")
        raise TenantHeaderError("tenant_id must be a UUID")
    validator = AccessValidator(store, principal, audit_sink=sink)
    result = await validator.validate_client_access(body.tenant_id, current_tenant_id=body.current_tenant_id)
    data = result.to_dict()
    data["state"] = validator.state.status
    return success(data)
