"""
Module: ledger_kernel.models.audit_event
Responsibility: ORM persistence for the append-only audit trail written by
    SqlAuditRecorder.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Rows are only ever inserted; nothing in the kernel updates or deletes
      them.
    - payload_hash = SHA-256 of the canonical JSON payload, so a later edit
      of the payload column is detectable.
"""

from datetime import datetime

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base


class AuditEventModel(Base):
    """
    One audit notification.

    Contract:
        action is a snake_case verb phrase ("journal_entry_confirmed",
        "account_structure_reparented", "auto_journal_generation_failed").
    """

    __tablename__ = "audit_events"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action", "action"),
        Index("idx_audit_occurred", "occurred_at"),
    )

    # Type of entity being audited (e.g. "JournalEntry", "AccountStructure")
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)

    action: Mapped[str] = mapped_column(String(50), nullable=False)

    actor_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    payload: Mapped[dict] = mapped_column(JSON, nullable=False)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEvent {self.action} {self.entity_type}:{self.entity_id}>"
