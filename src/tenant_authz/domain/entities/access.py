from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Tenant-scoped roles. `super_admin` is never stored as a binding."""

    ADMIN = "admin"
    CLIENTE = "cliente"
    ALUNO = "aluno"


class Resource(str, Enum):
    CLIENTES = "clientes"
    CONTRATOS = "contratos"
    ALUNOS = "alunos"
    PRODUTOS = "produtos"
    OFERTAS = "ofertas"
    JORNADAS = "jornadas"
    PASSOS = "passos"
    PARCELAS = "parcelas"
    DASHBOARD = "dashboard"

    @classmethod
    def parse(cls, value: "Resource | str") -> Optional["Resource"]:
        try:
            return cls(value)
        except ValueError:
            return None


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @classmethod
    def parse(cls, value: "Action | str") -> Optional["Action"]:
        try:
            return cls(value)
        except ValueError:
            return None


class AccessLevel(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    CLIENTE = "cliente"
    ALUNO = "aluno"
    NONE = "none"

    @property
    def rank(self) -> int:
        return _ACCESS_RANK[self]


_ACCESS_RANK = {
    AccessLevel.NONE: 0,
    AccessLevel.ALUNO: 1,
    AccessLevel.CLIENTE: 2,
    AccessLevel.ADMIN: 3,
    AccessLevel.SUPER_ADMIN: 4,
}

# Highest authority first.
ROLE_PRECEDENCE: tuple[Role, ...] = (Role.ADMIN, Role.CLIENTE, Role.ALUNO)


class DenialCode(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    NO_ROLE_ASSIGNED = "NO_ROLE_ASSIGNED"
    ROLE_FORBIDDEN = "ROLE_FORBIDDEN"
    STORE_TRANSPORT_ERROR = "STORE_TRANSPORT_ERROR"
    UNKNOWN_RESOURCE = "UNKNOWN_RESOURCE"


class RoleBinding(BaseModel):
    """
    Row of the `user_client_roles` table: one principal, one tenant, one role.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    tenant_id: str
    role: Role


class Tenant(BaseModel):
    """Row of the tenants (`clientes`) table. Read-only here."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    status: str


@dataclass(frozen=True)
class PermissionDecision:
    allowed: bool
    reason: Optional[str] = None
    matched_role: Optional[Role] = None
    code: Optional[DenialCode] = None


@dataclass(frozen=True)
class AccessResult:
    """Outcome of a tenant-scoped access validation."""

    can_access: bool
    user_role: Optional[Role] = None
    error: Optional[str] = None
    code: Optional[DenialCode] = None
    request_id: Optional[int] = field(default=None, compare=False)

    def to_dict(self) -> dict:
        return {
            "can_access": self.can_access,
            "user_role": self.user_role.value if self.user_role else None,
            "error": self.error,
            "code": self.code.value if self.code else None,
        }
