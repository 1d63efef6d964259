"""
Shared channel plumbing.

Free-text channels (staff dictation, email, WhatsApp) all run the same
text -> parser -> router pipeline; every HTTP surface maps RouterResult
outcomes to the same status codes.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import status
from fastapi.responses import JSONResponse

from podiatry_scheduler.core.intelligence.intent.parser import IntentParser
from podiatry_scheduler.core.intelligence.intent.types import Intent
from podiatry_scheduler.core.scheduling.errors import StoreError
from podiatry_scheduler.core.scheduling.response import ResponseRenderer
from podiatry_scheduler.core.scheduling.router import (
    CommandIntentRouter,
    Outcome,
    RouterResult,
)
from podiatry_scheduler.core.scheduling.store import AppointmentStore
from podiatry_scheduler.infra.claude import ClaudeClientError

logger = logging.getLogger(__name__)


OUTCOME_STATUS = {
    Outcome.BOOKED: status.HTTP_201_CREATED,
    Outcome.RESCHEDULED: status.HTTP_200_OK,
    Outcome.CANCELLED: status.HTTP_200_OK,
    Outcome.LISTED: status.HTTP_200_OK,
    Outcome.NO_AVAILABILITY: status.HTTP_200_OK,
    Outcome.INCOMPLETE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    Outcome.SERVICE_NOT_FOUND: status.HTTP_422_UNPROCESSABLE_ENTITY,
    Outcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    Outcome.AMBIGUOUS: status.HTTP_409_CONFLICT,
    Outcome.CONFLICT: status.HTTP_409_CONFLICT,
    Outcome.ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def result_response(result: RouterResult, renderer: ResponseRenderer) -> JSONResponse:
    """JSON body of a router result plus the rendered reply text."""
    content = result.to_dict()
    content["reply"] = renderer.render(result)
    return JSONResponse(status_code=OUTCOME_STATUS[result.outcome], content=content)


async def run_text_command(
    text: str,
    parser: IntentParser,
    router: CommandIntentRouter,
    store: AppointmentStore,
    current_date: date,
    location_id: Optional[str] = None,
) -> RouterResult:
    """Parse a free-text command and route it."""
    try:
        service_names = [s.name for s in await store.list_services()]
    except StoreError as e:
        logger.warning(f"Service catalog unavailable for parser prompt: {e}")
        service_names = []

    try:
        parsed = await parser.parse(text, current_date, service_names)
    except ClaudeClientError as e:
        logger.error(f"Intent parser failed: {e}")
        return RouterResult(
            outcome=Outcome.ERROR,
            intent=Intent.UNKNOWN,
            message="Intent parser unavailable",
        )

    logger.info(f"Command parsed as {parsed.intent.value} in {parsed.processing_time_ms:.0f}ms")
    return await router.dispatch(parsed, current_date=current_date, location_id=location_id)
