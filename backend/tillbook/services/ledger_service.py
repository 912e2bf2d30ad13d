# Overview: Service-layer operations for the audit ledger.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import LedgerEvent
"""
Tillbook Audit Ledger Invariants (authoritative)

- Append-only audit log for cross-cutting domain events.
- No domain/business logic in the ledger itself.
- Events are written inside the same DB transaction as the domain event they record.
- occurred_at is business time; created_at is system time (DB default).
"""


def append_ledger_event(
    *,
    event_type: str,
    event_category: str,
    entity_type: str,
    entity_id: int,
    actor: str | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    payload: Optional[str] = None,
) -> LedgerEvent:
    """
    Append-only ledger event.

    - No domain logic here.
    - No deletes/updates of existing events.
    - Flushes but never commits; the caller owns the transaction.
    """
    ev = LedgerEvent(
        event_type=event_type,
        event_category=event_category,
        entity_type=entity_type,
        entity_id=entity_id,
        actor=actor,
        occurred_at=occurred_at,  # if None, model default applies
        note=note[:255] if note else note,
        payload=payload,
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev


def list_ledger_events(
    *,
    category: str | None = None,
    event_type: str | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
    before: tuple[datetime, int] | None = None,
    limit: int = 100,
) -> list[LedgerEvent]:
    """Newest first. ``before`` is a (occurred_at, id) cursor, exclusive."""
    q = LedgerEvent.query
    if category:
        q = q.filter(LedgerEvent.event_category == category)
    if event_type:
        q = q.filter(LedgerEvent.event_type == event_type)
    if entity_type:
        q = q.filter(LedgerEvent.entity_type == entity_type)
    if entity_id is not None:
        q = q.filter(LedgerEvent.entity_id == entity_id)
    if before is not None:
        cursor_dt, cursor_id = before
        q = q.filter(
            db.or_(
                LedgerEvent.occurred_at < cursor_dt,
                db.and_(LedgerEvent.occurred_at == cursor_dt, LedgerEvent.id < cursor_id),
            )
        )

    return (
        q.order_by(LedgerEvent.occurred_at.desc(), LedgerEvent.id.desc())
        .limit(limit)
        .all()
    )
