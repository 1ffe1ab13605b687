"""Audit trail of security- and booking-relevant events."""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from court_booking.models import AuditLogEntry
from court_booking.services.clock import Clock
from court_booking.storage.base import Store

logger = logging.getLogger(__name__)


async def record_event(
    store: Store,
    clock: Clock,
    event_type: str,
    user_id: str | None,
    **details: Any,
) -> AuditLogEntry:
    entry = AuditLogEntry(
        id=str(uuid4()),
        user_id=user_id,
        event_type=event_type,
        details=details,
        created_at=clock.now(),
    )
    await store.add_audit_entry(entry)
    logger.debug("Audit %s by %s: %s", event_type, user_id, details)
    return entry
