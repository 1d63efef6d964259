"""
FastAPI dependencies.

Process-wide singletons for the store, locks, commander and router, plus the
clinic-local "today" every channel passes to the parser and router.
Tests replace these with app.dependency_overrides.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import Depends

from podiatry_scheduler.config import settings
from podiatry_scheduler.core.intelligence.intent.parser import IntentParser, get_intent_parser
from podiatry_scheduler.core.scheduling.commander import BookingCommander
from podiatry_scheduler.core.scheduling.response import ResponseRenderer, get_response_renderer
from podiatry_scheduler.core.scheduling.router import CommandIntentRouter
from podiatry_scheduler.core.scheduling.store import AppointmentStore
from podiatry_scheduler.infra.database import async_session_factory
from podiatry_scheduler.infra.notifications import WhatsAppSender, get_whatsapp_sender
from podiatry_scheduler.infra.redis import ProfessionalLocks
from podiatry_scheduler.infra.seed import seeded_memory_store
from podiatry_scheduler.infra.sql_store import SqlAppointmentStore

logger = logging.getLogger(__name__)

_store: Optional[AppointmentStore] = None
_locks: Optional[ProfessionalLocks] = None


def get_store() -> AppointmentStore:
    """Appointment store singleton (SQL unless use_memory_store is set)."""
    global _store
    if _store is None:
        if settings.use_memory_store:
            logger.warning("Using in-memory appointment store; data is not persisted")
            seed_file = settings.memory_store_seed_file
            _store = seeded_memory_store(Path(seed_file) if seed_file else None)
        else:
            _store = SqlAppointmentStore(async_session_factory)
    return _store


def get_locks() -> ProfessionalLocks:
    """Per-professional booking locks shared by all requests of this worker."""
    global _locks
    if _locks is None:
        _locks = ProfessionalLocks()
    return _locks


def get_commander(
    store: AppointmentStore = Depends(get_store),
    locks: ProfessionalLocks = Depends(get_locks),
) -> BookingCommander:
    return BookingCommander(store, locks=locks)


def get_router(
    store: AppointmentStore = Depends(get_store),
    commander: BookingCommander = Depends(get_commander),
) -> CommandIntentRouter:
    return CommandIntentRouter(store, commander)


def get_parser() -> IntentParser:
    return get_intent_parser()


def get_renderer() -> ResponseRenderer:
    return get_response_renderer()


def get_sender() -> WhatsAppSender:
    return get_whatsapp_sender()


def clinic_today() -> date:
    """Today's date in the clinic timezone."""
    return datetime.now(ZoneInfo(settings.clinic_timezone)).date()
