from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from tenant_authz.auth.jwt import decode_token
from tenant_authz.auth.models import Principal
from tenant_authz.configs.logging_config import get_logger
from tenant_authz.configs.settings import Settings, get_settings
from tenant_authz.errors import AuthError
from tenant_authz.repositories.role_store import RoleStore

log = get_logger(__name__)


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthError("missing authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("invalid authorization header")
    return token.strip()


async def get_principal(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> Principal:
    token = _bearer_token(authorization)
    claims = decode_token(token, settings)
    principal = Principal.from_claims(claims)
    log.info(
        "auth.principal user_id=%s super_admin=%s",
        principal.user_id,
        principal.is_super_admin,
    )
    return principal


async def get_optional_principal(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> Optional[Principal]:
    """Like get_principal, but a missing header yields None instead of 401."""
    if not authorization:
        return None
    return await get_principal(authorization, settings)


def get_role_store(request: Request) -> RoleStore:
    return request.app.state.role_store
