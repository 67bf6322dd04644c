from __future__ import annotations

import itertools

import pytest

from conftest import TENANT_A, TENANT_B, binding
from tenant_authz.auth.models import Principal
from tenant_authz.authz.evaluator import allowed_roles, evaluate
from tenant_authz.domain.entities.access import Action, DenialCode, Resource, Role

ADMIN_OR_CLIENTE = [
    Resource.CONTRATOS,
    Resource.ALUNOS,
    Resource.PRODUTOS,
    Resource.OFERTAS,
    Resource.JORNADAS,
    Resource.PASSOS,
    Resource.DASHBOARD,
]


def _expected(resource: Resource, action: Action, role: Role) -> bool:
    if resource is Resource.CLIENTES:
        return action is Action.READ or (action is Action.CREATE and role is Role.ADMIN)
    if resource is Resource.PARCELAS:
        return role is Role.ADMIN or (role is Role.CLIENTE and action is not Action.DELETE)
    return role in (Role.ADMIN, Role.CLIENTE)


@pytest.mark.parametrize("resource,action,role", list(itertools.product(Resource, Action, Role)))
def test_matrix_single_binding(principal: Principal, resource, action, role) -> None:
    decision = evaluate(principal, [binding(principal.user_id, TENANT_A, role)], resource, action)
    assert decision.allowed is _expected(resource, action, role)
    if decision.allowed:
        assert decision.matched_role is role
    else:
        assert decision.code is DenialCode.ROLE_FORBIDDEN


def test_null_principal_is_unauthenticated() -> None:
    decision = evaluate(None, [], Resource.DASHBOARD, Action.READ)
    assert decision.allowed is False
    assert decision.reason == "unauthenticated"


@pytest.mark.parametrize("resource,action", list(itertools.product(Resource, Action)))
def test_super_admin_without_bindings_is_allowed(super_admin: Principal, resource, action) -> None:
    assert evaluate(super_admin, [], resource, action).allowed is True


@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize("resource", ["financeiro", "", "CLIENTES", "usuarios"])
def test_unknown_resource_denied(principal: Principal, resource: str, role: Role) -> None:
    decision = evaluate(principal, [binding(principal.user_id, TENANT_A, role)], resource, "read")
    assert decision.allowed is False
    assert decision.code is DenialCode.UNKNOWN_RESOURCE


def test_unknown_action_denied(principal: Principal) -> None:
    decision = evaluate(principal, [binding(principal.user_id, TENANT_A, Role.ADMIN)], "dashboard", "export")
    assert decision.allowed is False
    assert decision.reason == "unknown action"


def test_no_bindings_means_no_role(principal: Principal) -> None:
    decision = evaluate(principal, [], Resource.CLIENTES, Action.READ)
    assert decision.allowed is False
    assert decision.reason == "no role assigned"
    assert decision.code is DenialCode.NO_ROLE_ASSIGNED


def test_parcelas_cliente() -> None:
    p = Principal(user_id="u1")
    bindings = [binding("u1", TENANT_A, Role.CLIENTE)]
    for action in ("read", "create", "update"):
        assert evaluate(p, bindings, "parcelas", action).allowed is True
    assert evaluate(p, bindings, "parcelas", "delete").allowed is False


def test_clientes_cliente() -> None:
    p = Principal(user_id="u1")
    bindings = [binding("u1", TENANT_A, Role.CLIENTE)]
    assert evaluate(p, bindings, "clientes", "read").allowed is True
    assert evaluate(p, bindings, "clientes", "create").allowed is False


def test_bindings_are_or_combined() -> None:
    p = Principal(user_id="u1")
    bindings = [binding("u1", TENANT_A, Role.ALUNO), binding("u1", TENANT_B, Role.ADMIN)]
    decision = evaluate(p, bindings, Resource.PARCELAS, Action.DELETE)
    assert decision.allowed is True
    assert decision.matched_role is Role.ADMIN


def test_aluno_reads_clientes() -> None:
    p = Principal(user_id="u1")
    assert evaluate(p, [binding("u1", TENANT_A, Role.ALUNO)], "clientes", "read").allowed is True
    assert evaluate(p, [binding("u1", TENANT_A, Role.ALUNO)], "dashboard", "read").allowed is False


def test_allowed_roles() -> None:
    assert allowed_roles("parcelas", "delete") == [Role.ADMIN]
    assert allowed_roles(Resource.CLIENTES, Action.READ) == [Role.ADMIN, Role.CLIENTE, Role.ALUNO]
    assert allowed_roles("nope", "read") == []
