"""
Module: ledger_kernel.services.audit
Responsibility: Best-effort delivery of audit notifications.
Architecture position: Kernel > Services.

Invariants enforced:
    - An exception raised by the recorder never reaches the caller; it is
      logged at ERROR with the traceback and the business result stands.
"""

from typing import Any

from ledger_kernel.logging_config import get_logger
from ledger_kernel.ports import AuditRecorder

logger = get_logger("services.audit")


class BestEffortAudit:
    """Wraps an AuditRecorder (or nothing) so services can notify unconditionally."""

    def __init__(self, recorder: AuditRecorder | None = None):
        self._recorder = recorder

    def notify(
        self,
        action: str,
        entity_type: str,
        entity_id: Any,
        actor_id: str | None,
        payload: dict[str, Any] | None = None,
    ) -> bool:
        """Forward to the recorder. Returns False if the recorder failed."""
        if self._recorder is None:
            return True
        try:
            self._recorder.record(action, entity_type, str(entity_id), actor_id, payload or {})
        except Exception:
            logger.error(
                "audit_record_failed",
                extra={
                    "action": action,
                    "entity_type": entity_type,
                    "entity_id": str(entity_id),
                },
                exc_info=True,
            )
            return False
        return True
