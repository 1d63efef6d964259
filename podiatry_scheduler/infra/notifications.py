"""
Outbound messaging.

WhatsApp Business (Graph API) sender used to reply to inbound WhatsApp
commands. Email replies are returned in the webhook response and delivered
by the mail gateway, so there is no email sender here.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from podiatry_scheduler.config import get_settings

logger = logging.getLogger(__name__)

# WhatsApp text bodies are capped at 4096 characters
MAX_TEXT_LENGTH = 4096


@dataclass
class InboundMessage:
    """Text message extracted from a WhatsApp webhook payload."""

    sender: str
    text: str
    message_id: Optional[str] = None


def extract_text_messages(payload: dict[str, Any]) -> list[InboundMessage]:
    """
    Pull text messages out of a WhatsApp webhook payload.

    Non-text messages (images, audio, status updates) are skipped.
    """
    messages: list[InboundMessage] = []
    for entry in payload.get("entry", []) or []:
        for change in entry.get("changes", []) or []:
            value = change.get("value", {}) or {}
            for message in value.get("messages", []) or []:
                if message.get("type") != "text":
                    logger.debug(f"Skipping WhatsApp message of type {message.get('type')}")
                    continue
                body = (message.get("text") or {}).get("body", "")
                sender = message.get("from", "")
                if body and sender:
                    messages.append(
                        InboundMessage(sender=sender, text=body, message_id=message.get("id"))
                    )
    return messages


class WhatsAppSender:
    """
    Sends text replies through the WhatsApp Cloud API.

    Endpoint:
    - POST /{phone_number_id}/messages
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        phone_number_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
    ):
        """Initialize sender.

        Args:
            access_token: Graph API token (defaults to settings)
            phone_number_id: sending number id (defaults to settings)
            base_url: Graph API base URL (defaults to settings)
            timeout: Request timeout in seconds
        """
        settings = get_settings()
        self.access_token = access_token or settings.whatsapp_access_token
        self.phone_number_id = phone_number_id or settings.whatsapp_phone_number_id
        self.base_url = base_url or settings.whatsapp_api_base_url
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def configured(self) -> bool:
        return bool(self.access_token and self.phone_number_id)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Authorization": f"Bearer {self.access_token}"},
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send_text(self, to: str, body: str) -> bool:
        """Send a text message.

        Args:
            to: recipient WhatsApp id (phone number, digits only)
            body: message text

        Returns:
            True if the API accepted the message
        """
        if not self.configured:
            logger.warning("WhatsApp sender not configured, reply not sent")
            return False

        client = await self._get_client()
        payload = {
            "messaging_product": "whatsapp",
            "to": to,
            "type": "text",
            "text": {"body": body[:MAX_TEXT_LENGTH]},
        }

        try:
            response = await client.post(f"/{self.phone_number_id}/messages", json=payload)
            response.raise_for_status()
            return True

        except httpx.HTTPError as e:
            logger.error(f"Failed to send WhatsApp message: {e}")
            return False


# Singleton
_sender: Optional[WhatsAppSender] = None


def get_whatsapp_sender() -> WhatsAppSender:
    """Get singleton WhatsAppSender."""
    global _sender
    if _sender is None:
        _sender = WhatsAppSender()
    return _sender
