from __future__ import annotations

from typing import Any

from jose import JWTError, jwt

from tenant_authz.configs.logging_config import get_logger
from tenant_authz.configs.settings import Settings
from tenant_authz.errors import AuthError

log = get_logger(__name__)


def decode_token(token: str, settings: Settings) -> dict[str, Any]:
    """
    Decode and validate an access token issued by the identity provider.

    Tokens are HS256 with the project's shared secret; this service only
    verifies them.
    """
    try:
        options = {"verify_aud": settings.jwt_audience is not None}
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_alg],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options=options,
        )
    except JWTError as e:
        log.info("jwt.decode failed: %s", str(e))
        raise AuthError("invalid token") from e

    if not claims.get("sub"):
        log.info("jwt.decode missing_sub")
        raise AuthError("token missing required claims")
    log.debug("jwt.decode ok sub=%s", claims.get("sub"))
    return claims
