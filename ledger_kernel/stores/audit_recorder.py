"""
Module: ledger_kernel.stores.audit_recorder
Responsibility: Append-only audit trail backed by the audit_events table.
Architecture position: Kernel > Stores.

Invariants enforced:
    - Each record() inserts exactly one row; rows are never updated.
    - payload_hash is computed from the canonical JSON of the payload.
"""

import json
from typing import Any

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.audit_event import AuditEventModel
from ledger_kernel.stores.base import SqlStore
from ledger_kernel.utils.hashing import canonicalize_json, hash_payload

logger = get_logger("stores.audit")


class SqlAuditRecorder(SqlStore):
    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        actor_id: str | None,
        payload: dict[str, Any],
    ) -> None:
        # Round-trip through canonical JSON so Decimal and date values fit the JSON column
        stored = json.loads(canonicalize_json(payload))
        with self._storage("audit_event.record"):
            self.session.add(
                AuditEventModel(
                    entity_type=entity_type,
                    entity_id=str(entity_id),
                    action=action,
                    actor_id=actor_id,
                    occurred_at=self._clock.now(),
                    payload=stored,
                    payload_hash=hash_payload(payload),
                )
            )
            self.session.flush()
        logger.debug(
            "audit_event_recorded",
            extra={"action": action, "entity_type": entity_type, "entity_id": str(entity_id)},
        )
