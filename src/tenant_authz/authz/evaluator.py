from __future__ import annotations

from typing import Callable, Iterable, Mapping, Optional

from tenant_authz.auth.models import Principal
from tenant_authz.domain.entities.access import (
    ROLE_PRECEDENCE,
    Action,
    DenialCode,
    PermissionDecision,
    Resource,
    Role,
    RoleBinding,
)

REASON_UNAUTHENTICATED = "unauthenticated"
REASON_NO_ROLE = "no role assigned"
REASON_UNKNOWN_RESOURCE = "unknown resource"
REASON_UNKNOWN_ACTION = "unknown action"
REASON_INSUFFICIENT_ROLE = "insufficient role"

Rule = Callable[[Role, Action], bool]


def _clientes(role: Role, action: Action) -> bool:
    return action is Action.READ or (action is Action.CREATE and role is Role.ADMIN)


def _admin_or_cliente(role: Role, action: Action) -> bool:
    return role in (Role.ADMIN, Role.CLIENTE)


def _parcelas(role: Role, action: Action) -> bool:
    return role is Role.ADMIN or (role is Role.CLIENTE and action is not Action.DELETE)


PERMISSION_MATRIX: Mapping[Resource, Rule] = {
    Resource.CLIENTES: _clientes,
    Resource.CONTRATOS: _admin_or_cliente,
    Resource.ALUNOS: _admin_or_cliente,
    Resource.PRODUTOS: _admin_or_cliente,
    Resource.OFERTAS: _admin_or_cliente,
    Resource.JORNADAS: _admin_or_cliente,
    Resource.PASSOS: _admin_or_cliente,
    Resource.DASHBOARD: _admin_or_cliente,
    Resource.PARCELAS: _parcelas,
}


def is_allowed(role: Role, resource: Resource, action: Action) -> bool:
    rule = PERMISSION_MATRIX.get(resource)
    return rule is not None and rule(role, action)


def allowed_roles(resource: Resource | str, action: Action | str) -> list[Role]:
    """Roles the matrix grants `action` on `resource`, highest first."""
    res = Resource.parse(resource)
    act = Action.parse(action)
    if res is None or act is None:
        return []
    return [role for role in ROLE_PRECEDENCE if is_allowed(role, res, act)]


def evaluate(
    principal: Optional[Principal],
    bindings: Iterable[RoleBinding],
    resource: Resource | str,
    action: Action | str,
) -> PermissionDecision:
    """
    Decide whether `principal` may perform `action` on `resource`.

    Super-admins bypass the matrix entirely. Everyone else is allowed when any
    one of their bindings satisfies the matrix; anything outside the catalog
    is denied.
    """
    if principal is None:
        return PermissionDecision(False, REASON_UNAUTHENTICATED, code=DenialCode.UNAUTHENTICATED)

    if principal.is_super_admin:
        return PermissionDecision(True)

    res = Resource.parse(resource)
    if res is None:
        return PermissionDecision(False, REASON_UNKNOWN_RESOURCE, code=DenialCode.UNKNOWN_RESOURCE)

    act = Action.parse(action)
    if act is None:
        return PermissionDecision(False, REASON_UNKNOWN_ACTION, code=DenialCode.UNKNOWN_RESOURCE)

    roles = {b.role for b in bindings}
    if not roles:
        return PermissionDecision(False, REASON_NO_ROLE, code=DenialCode.NO_ROLE_ASSIGNED)

    for role in ROLE_PRECEDENCE:
        if role in roles and is_allowed(role, res, act):
            return PermissionDecision(True, matched_role=role)

    return PermissionDecision(False, REASON_INSUFFICIENT_ROLE, code=DenialCode.ROLE_FORBIDDEN)
