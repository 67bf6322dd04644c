from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass
from typing import Optional, Union

from tenant_authz.auth.models import Principal
from tenant_authz.authz.audit import AuditEvent, AuditSink, LoggingAuditSink, emit_safely
from tenant_authz.authz.resolver import validate_tenant_access
from tenant_authz.configs.logging_config import get_logger
from tenant_authz.domain.entities.access import AccessResult, DenialCode
from tenant_authz.errors import RoleStoreError
from tenant_authz.repositories.role_store import RoleStore

log = get_logger(__name__)

REASON_NOT_AUTHENTICATED = "user not authenticated"
REASON_VERIFY_FAILED = "error verifying permissions"

AUDIT_RESOURCE = "client_page"


@dataclass(frozen=True)
class Idle:
    status: str = "idle"


@dataclass(frozen=True)
class Loading:
    request_id: int
    tenant_id: str
    status: str = "loading"


@dataclass(frozen=True)
class Resolved:
    result: AccessResult
    status: str = "resolved"


@dataclass(frozen=True)
class Failed:
    result: AccessResult
    cause: Optional[BaseException] = None
    status: str = "failed"


ValidationState = Union[Idle, Loading, Resolved, Failed]


class AccessValidator:
    """
    Stateful façade around the tenant page check.

    Lifecycle per call: idle/resolved/failed -> loading -> resolved | failed.
    Calls are not coalesced; each one gets a monotonically increasing
    request id and the last one to finish owns `state`. Callers that care
    about ordering compare results with `is_latest`.
    """

    def __init__(
        self,
        store: RoleStore,
        principal: Optional[Principal],
        audit_sink: Optional[AuditSink] = None,
    ):
        self._store = store
        self._principal = principal
        self._audit_sink = audit_sink if audit_sink is not None else LoggingAuditSink()
        self._ids = itertools.count(1)
        self._latest_id = 0
        self.state: ValidationState = Idle()

    @property
    def loading(self) -> bool:
        return isinstance(self.state, Loading)

    @property
    def error(self) -> Optional[str]:
        if isinstance(self.state, Failed):
            return self.state.result.error
        return None

    @property
    def latest_request_id(self) -> int:
        return self._latest_id

    def is_latest(self, result: AccessResult) -> bool:
        return result.request_id == self._latest_id

    async def validate_client_access(
        self, tenant_id: str, *, current_tenant_id: Optional[str] = None
    ) -> AccessResult:
        request_id = next(self._ids)
        self._latest_id = request_id
        principal = self._principal

        if principal is None:
            log.info("authz.validate.unauthenticated tenant_id=%s request_id=%s", tenant_id, request_id)
            result = AccessResult(
                False,
                error=REASON_NOT_AUTHENTICATED,
                code=DenialCode.UNAUTHENTICATED,
                request_id=request_id,
            )
            self.state = Resolved(result)
            self._audit(result, tenant_id)
            return result

        self.state = Loading(request_id=request_id, tenant_id=tenant_id)
        log.info(
            "authz.validate.start user_id=%s tenant_id=%s request_id=%s store=%s",
            principal.user_id,
            tenant_id,
            request_id,
            self._store.name(),
        )

        try:
            decision = await validate_tenant_access(self._store, principal, tenant_id, current_tenant_id)
        except asyncio.CancelledError as exc:
            log.info(
                "authz.validate.cancelled user_id=%s tenant_id=%s request_id=%s",
                principal.user_id,
                tenant_id,
                request_id,
            )
            result = AccessResult(
                False,
                error=REASON_VERIFY_FAILED,
                code=DenialCode.STORE_TRANSPORT_ERROR,
                request_id=request_id,
            )
            self.state = Failed(result, cause=exc)
            self._audit(result, tenant_id)
            raise
        except Exception as exc:
            if isinstance(exc, RoleStoreError):
                log.error(
                    "authz.validate.store_error user_id=%s tenant_id=%s request_id=%s error=%s",
                    principal.user_id,
                    tenant_id,
                    request_id,
                    exc.message,
                )
            else:
                log.exception(
                    "authz.validate.unexpected_error user_id=%s tenant_id=%s request_id=%s",
                    principal.user_id,
                    tenant_id,
                    request_id,
                )
            result = AccessResult(
                False,
                error=REASON_VERIFY_FAILED,
                code=DenialCode.STORE_TRANSPORT_ERROR,
                request_id=request_id,
            )
            self.state = Failed(result, cause=exc)
            self._audit(result, tenant_id)
            return result

        result = AccessResult(
            decision.can_access,
            user_role=decision.user_role,
            error=decision.error,
            code=decision.code,
            request_id=request_id,
        )
        self.state = Resolved(result)
        log.info(
            "authz.validate.done user_id=%s tenant_id=%s request_id=%s can_access=%s role=%s",
            principal.user_id,
            tenant_id,
            request_id,
            result.can_access,
            result.user_role.value if result.user_role else None,
        )
        self._audit(result, tenant_id)
        return result

    def _audit(self, result: AccessResult, tenant_id: str) -> None:
        emit_safely(
            self._audit_sink,
            AuditEvent(
                resource=AUDIT_RESOURCE,
                tenant_id=tenant_id,
                principal_id=self._principal.user_id if self._principal else None,
                decision="allow" if result.can_access else "deny",
                reason=result.error,
            ),
        )
