from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Optional

from tenant_authz.configs.logging_config import get_logger
from tenant_authz.utils.time_utils import utc_now

log = get_logger(__name__)
audit_log = get_logger("tenant_authz.audit")


@dataclass(frozen=True)
class AuditEvent:
    resource: str
    tenant_id: Optional[str]
    principal_id: Optional[str]
    decision: str
    reason: Optional[str] = None
    action: str = "access_check"


class AuditSink(ABC):
    @abstractmethod
    def emit(self, event: AuditEvent) -> None:
        pass


class LoggingAuditSink(AuditSink):
    """Writes one JSON line per event to the `tenant_authz.audit` logger."""

    def emit(self, event: AuditEvent) -> None:
        payload = asdict(event)
        payload["timestamp"] = utc_now().isoformat()
        audit_log.info(json.dumps(payload, sort_keys=True))


def emit_safely(sink: Optional[AuditSink], event: AuditEvent) -> None:
    """Fire-and-forget: a failing sink never changes a decision already made."""
    if sink is None:
        return
    try:
        sink.emit(event)
    except Exception as exc:
        log.warning(
            "audit.emit_failed sink=%s resource=%s tenant_id=%s error=%s",
            type(sink).__name__,
            event.resource,
            event.tenant_id,
            str(exc),
        )
