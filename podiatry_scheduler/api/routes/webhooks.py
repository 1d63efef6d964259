"""
Inbound channel webhooks.

- POST /webhooks/email: inbound email body, reply returned in the response
- GET  /webhooks/whatsapp: Meta verification handshake
- POST /webhooks/whatsapp: inbound text messages, replies sent via WhatsAppSender

Webhooks always answer 200 once the payload is accepted so the provider
does not redeliver; the scheduling outcome travels in the body or the reply.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from podiatry_scheduler.api.channel import run_text_command
from podiatry_scheduler.api.dependencies import (
    clinic_today,
    get_parser,
    get_renderer,
    get_router,
    get_sender,
    get_store,
)
from podiatry_scheduler.config import settings
from podiatry_scheduler.core.intelligence.intent.parser import IntentParser
from podiatry_scheduler.core.scheduling.response import ResponseRenderer
from podiatry_scheduler.core.scheduling.router import CommandIntentRouter
from podiatry_scheduler.core.scheduling.store import AppointmentStore
from podiatry_scheduler.infra.notifications import WhatsAppSender, extract_text_messages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


class EmailWebhook(BaseModel):
    """Inbound email forwarded by the mail gateway."""

    sender: Optional[str] = Field(default=None, alias="from")
    subject: Optional[str] = None
    body: str = Field(..., min_length=1, max_length=20000)
    location_id: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class EmailReply(BaseModel):
    """Reply for the mail gateway to send back."""

    to: Optional[str] = None
    subject: str
    body: str
    outcome: str
    appointment: Optional[dict] = None


@router.post("/email", response_model=EmailReply, summary="Inbound email command")
async def email_webhook(
    email: EmailWebhook,
    parser: IntentParser = Depends(get_parser),
    command_router: CommandIntentRouter = Depends(get_router),
    store: AppointmentStore = Depends(get_store),
    renderer: ResponseRenderer = Depends(get_renderer),
) -> EmailReply:
    """Run the email body as a command and return the reply email."""
    text = email.body if not email.subject else f"{email.subject}\n{email.body}"

    result = await run_text_command(
        text,
        parser=parser,
        router=command_router,
        store=store,
        current_date=clinic_today(),
        location_id=email.location_id,
    )
    logger.info(f"Email command from {email.sender or 'unknown'}: {result.outcome.value}")

    subject = email.subject or "Your appointment request"
    return EmailReply(
        to=email.sender,
        subject=f"Re: {subject}",
        body=renderer.render(result),
        outcome=result.outcome.value,
        appointment=result.appointment.to_dict() if result.appointment else None,
    )


@router.get("/whatsapp", response_class=PlainTextResponse, summary="WhatsApp verification")
async def whatsapp_verify(
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
) -> str:
    """Echo the challenge when the verify token matches."""
    if (
        mode == "subscribe"
        and settings.whatsapp_verify_token
        and token == settings.whatsapp_verify_token
    ):
        return challenge or ""

    logger.warning("WhatsApp webhook verification failed")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Verification failed")


@router.post("/whatsapp", summary="Inbound WhatsApp messages")
async def whatsapp_webhook(
    payload: dict[str, Any],
    parser: IntentParser = Depends(get_parser),
    command_router: CommandIntentRouter = Depends(get_router),
    store: AppointmentStore = Depends(get_store),
    renderer: ResponseRenderer = Depends(get_renderer),
    sender: WhatsAppSender = Depends(get_sender),
) -> dict:
    """Run each inbound text message as a command and reply to its sender."""
    messages = extract_text_messages(payload)
    results = []

    for message in messages:
        result = await run_text_command(
            message.text,
            parser=parser,
            router=command_router,
            store=store,
            current_date=clinic_today(),
        )
        sent = await sender.send_text(message.sender, renderer.render(result))
        results.append({
            "message_id": message.message_id,
            "outcome": result.outcome.value,
            "reply_sent": sent,
        })

    return {"processed": len(results), "results": results}
