"""
Command API Endpoint.

Staff dictation: free-text scheduling commands such as
"9 carlos sanchez podo" or "cancela a maria lopez el martes".
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from podiatry_scheduler.api.channel import result_response, run_text_command
from podiatry_scheduler.api.dependencies import (
    clinic_today,
    get_parser,
    get_renderer,
    get_router,
    get_store,
)
from podiatry_scheduler.core.intelligence.intent.parser import IntentParser
from podiatry_scheduler.core.scheduling.response import ResponseRenderer
from podiatry_scheduler.core.scheduling.router import CommandIntentRouter
from podiatry_scheduler.core.scheduling.store import AppointmentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/commands", tags=["Commands"])


class CommandRequest(BaseModel):
    """Free-text command request."""

    text: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Command as typed or dictated by staff",
        examples=["9 carlos sanchez podo"],
    )
    location_id: Optional[str] = Field(
        default=None,
        description="Location the command applies to (defaults to the clinic default)",
    )
    current_date: Optional[date] = Field(
        default=None,
        description="Reference date for relative expressions (defaults to clinic today)",
    )


class CommandResponse(BaseModel):
    """Outcome of a command."""

    outcome: str = Field(..., description="booked, no_availability, incomplete, ...")
    intent: str
    message: str
    reply: str = Field(..., description="Text to show to the sender")
    appointment: Optional[dict] = None
    appointments: Optional[list[dict]] = None
    missing_fields: Optional[list[str]] = None
    candidates: Optional[list[dict]] = None
    rejections: Optional[dict[str, str]] = None


@router.post(
    "",
    response_model=CommandResponse,
    status_code=status.HTTP_200_OK,
    summary="Execute a free-text command",
    responses={
        201: {"model": CommandResponse, "description": "Appointment booked"},
        404: {"model": CommandResponse, "description": "No matching appointment"},
        409: {"model": CommandResponse, "description": "Ambiguous match or conflict"},
        422: {"model": CommandResponse, "description": "Incomplete command or unknown service"},
        503: {"model": CommandResponse, "description": "Store or parser unavailable"},
    },
)
async def execute_command(
    request: CommandRequest,
    parser: IntentParser = Depends(get_parser),
    command_router: CommandIntentRouter = Depends(get_router),
    store: AppointmentStore = Depends(get_store),
    renderer: ResponseRenderer = Depends(get_renderer),
) -> JSONResponse:
    """
    Parse and execute a scheduling command.

    No availability is a normal 200 outcome; the reply asks for another time.
    """
    result = await run_text_command(
        request.text,
        parser=parser,
        router=command_router,
        store=store,
        current_date=request.current_date or clinic_today(),
        location_id=request.location_id,
    )
    return result_response(result, renderer)
