from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from tenant_authz.domain.entities.access import Role

SUPER_ADMIN_ROLE = "super_admin"


@dataclass(frozen=True)
class Principal:
    user_id: str
    email: Optional[str] = None
    is_super_admin: bool = False

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Principal":
        # Super-admin comes from identity metadata, never from the role table.
        metadata = claims.get("user_metadata")
        if not isinstance(metadata, dict):
            metadata = {}
        return cls(
            user_id=str(claims["sub"]),
            email=claims.get("email"),
            is_super_admin=metadata.get("role") == SUPER_ADMIN_ROLE,
        )


@dataclass(frozen=True)
class TenantContext:
    tenant_id: str
    user_id: str
    role: Optional[Role]
    principal: Principal
