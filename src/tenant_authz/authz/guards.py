from __future__ import annotations

from typing import Iterable, Optional

from fastapi import Depends, Request

from tenant_authz.auth.dependencies import get_principal, get_role_store
from tenant_authz.auth.models import Principal, TenantContext
from tenant_authz.authz.audit import AuditEvent, AuditSink, emit_safely
from tenant_authz.authz.evaluator import allowed_roles, evaluate
from tenant_authz.authz.tenant_guard import validate_tenant
from tenant_authz.configs.logging_config import get_logger
from tenant_authz.configs.settings import Settings, get_settings
from tenant_authz.domain.entities.access import (
    Action,
    PermissionDecision,
    Resource,
    Role,
    RoleBinding,
)
from tenant_authz.errors import ForbiddenError
from tenant_authz.repositories.role_store import RoleStore

log = get_logger(__name__)

Permission = tuple[Resource | str, Action | str]


def get_audit_sink(request: Request) -> Optional[AuditSink]:
    return getattr(request.app.state, "audit_sink", None)


async def get_tenant_context(
    request: Request,
    principal: Principal = Depends(get_principal),
    store: RoleStore = Depends(get_role_store),
    settings: Settings = Depends(get_settings),
) -> TenantContext:
    tenant_id = request.headers.get(settings.TENANT_HEADER)
    return await validate_tenant(store, principal, tenant_id, settings)


def context_bindings(ctx: TenantContext) -> list[RoleBinding]:
    if ctx.role is None:
        return []
    return [RoleBinding(user_id=ctx.user_id, tenant_id=ctx.tenant_id, role=ctx.role)]


def check_permission(
    ctx: TenantContext, resource: Resource | str, action: Action | str, sink: Optional[AuditSink]
) -> PermissionDecision:
    decision = evaluate(ctx.principal, context_bindings(ctx), resource, action)
    emit_safely(
        sink,
        AuditEvent(
            resource=str(getattr(resource, "value", resource)),
            tenant_id=ctx.tenant_id,
            principal_id=ctx.user_id,
            decision="allow" if decision.allowed else "deny",
            reason=decision.reason,
        ),
    )
    return decision


def require_permission(resource: Resource | str, action: Action | str):
    async def dependency(
        ctx: TenantContext = Depends(get_tenant_context),
        sink: Optional[AuditSink] = Depends(get_audit_sink),
    ) -> TenantContext:
        decision = check_permission(ctx, resource, action, sink)
        if not decision.allowed:
            log.info(
                "guard.denied user_id=%s tenant_id=%s resource=%s action=%s required=%s reason=%s",
                ctx.user_id,
                ctx.tenant_id,
                resource,
                action,
                [r.value for r in allowed_roles(resource, action)],
                decision.reason,
            )
            raise ForbiddenError("access denied: insufficient role for this operation")
        return ctx

    return dependency


def require_any_permission(permissions: Iterable[Permission]):
    perms = list(permissions)

    async def dependency(
        ctx: TenantContext = Depends(get_tenant_context),
        sink: Optional[AuditSink] = Depends(get_audit_sink),
    ) -> TenantContext:
        for resource, action in perms:
            if check_permission(ctx, resource, action, sink).allowed:
                return ctx
        log.info("guard.denied_any user_id=%s tenant_id=%s permissions=%s", ctx.user_id, ctx.tenant_id, perms)
        raise ForbiddenError("access denied: no sufficient permission found")

    return dependency


def require_all_permissions(permissions: Iterable[Permission]):
    perms = list(permissions)

    async def dependency(
        ctx: TenantContext = Depends(get_tenant_context),
        sink: Optional[AuditSink] = Depends(get_audit_sink),
    ) -> TenantContext:
        for resource, action in perms:
            if not check_permission(ctx, resource, action, sink).allowed:
                log.info(
                    "guard.denied_all user_id=%s tenant_id=%s resource=%s action=%s",
                    ctx.user_id,
                    ctx.tenant_id,
                    resource,
                    action,
                )
                raise ForbiddenError("access denied: insufficient role for this operation")
        return ctx

    return dependency


def require_roles(*roles: Role):
    async def dependency(ctx: TenantContext = Depends(get_tenant_context)) -> TenantContext:
        if ctx.principal.is_super_admin or ctx.role in roles:
            return ctx
        log.info(
            "guard.role_required user_id=%s tenant_id=%s required=%s current=%s",
            ctx.user_id,
            ctx.tenant_id,
            [r.value for r in roles],
            ctx.role.value if ctx.role else None,
        )
        raise ForbiddenError(f"access denied: {' or '.join(r.value for r in roles)} role required")

    return dependency


def require_admin():
    return require_roles(Role.ADMIN)


def require_client_or_admin():
    return require_roles(Role.CLIENTE, Role.ADMIN)
