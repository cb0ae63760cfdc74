"""HTTP client for the Resend transactional email API."""

import logging
from typing import List, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)


class ResendEmailClient:
    """
    Client for sending transactional emails through Resend.

    One instance is created at startup and shared by every request.
    """

    BASE_URL = "https://api.resend.com"

    def __init__(
        self,
        api_key: str,
        default_sender: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.default_sender = default_sender
        self.timeout = timeout
        self._transport = transport

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        reraise=True,
    )
    async def _post(self, payload: dict) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        async with httpx.AsyncClient(base_url=self.BASE_URL, transport=self._transport) as client:
            return await client.post(
                "/emails",
                headers=headers,
                json=payload,
                timeout=self.timeout
            )

    async def send_email(
        self,
        to_emails: List[str],
        subject: str,
        body_html: str,
        reply_to: Optional[str] = None,
        sender: Optional[str] = None,
    ) -> dict:
        """
        Send an HTML email.

        Args:
            to_emails: List of recipient email addresses
            subject: Email subject
            body_html: HTML body content
            reply_to: Optional reply-to address
            sender: Overrides the configured sender

        Returns:
            The Resend response body, which carries the message id.

        Raises:
            EmailDeliveryError: Resend rejected the message or could not be reached.
        """
        payload = {
            "from": sender or self.default_sender,
            "to": to_emails,
            "subject": subject,
            "html": body_html,
        }
        if reply_to:
            payload["reply_to"] = reply_to

        try:
            response = await self._post(payload)
        except httpx.HTTPError as e:
            logger.error(f"❌ [EMAIL] Could not reach Resend: {e}")
            raise EmailDeliveryError() from e

        if response.status_code not in (200, 201, 202):
            logger.error(f"❌ [EMAIL] Resend returned {response.status_code}: {response.text}")
            raise EmailDeliveryError()

        return response.json()
