"""Transactional mail API HTTP client.

Posts a JSON message ({from, to, subject, html, text}) to MAIL_API_URL with a
bearer key. Transient failures (connection errors, 429, 5xx) are retried with a
linear backoff; anything else fails fast.
"""

import asyncio
import logging
from typing import Optional

import httpx

from querydesk.config import get_settings
from querydesk.core.exceptions import NotificationDeliveryException

settings = get_settings()
logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


def _parse_body(response: httpx.Response) -> dict:
    """Provider receipt, if any. Any 2xx means the message was accepted."""
    try:
        body = response.json()
    except ValueError:
        logger.debug(f"Mail API returned a non-JSON body: {response.text[:200]}")
        return {}
    return body if isinstance(body, dict) else {"response": body}


class MailAPIClient:
    """Client for the outbound mail provider."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.MAIL_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.MAIL_API_KEY
        self.sender = sender or settings.MAIL_FROM
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def send_email(self, to: str, subject: str, html: str, text: str) -> dict:
        """
        Send one email.

        Raises NotificationDeliveryException once retries are exhausted or the
        provider rejects the message outright.
        """
        if not self.configured:
            raise NotificationDeliveryException("Mail API is not configured (MAIL_API_URL is empty)")

        payload = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        }

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=20, transport=self._transport) as client:
                    response = await client.post(self.base_url, json=payload, headers=self.headers)
                    response.raise_for_status()
                    logger.info(f"Email '{subject}' sent to {to} (attempt {attempt})")
                    return _parse_body(response)
            except httpx.HTTPStatusError as e:
                last_error = e
                status_code = e.response.status_code
                logger.warning(
                    f"Mail API error (attempt {attempt}/{self.max_retries}): "
                    f"{status_code} - {e.response.text[:200]}"
                )
                if status_code not in RETRYABLE_STATUS_CODES:
                    break
            except httpx.HTTPError as e:
                last_error = e
                logger.warning(f"Mail API connection error (attempt {attempt}/{self.max_retries}): {e}")

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * attempt)

        raise NotificationDeliveryException(
            f"Failed to send email to {to} after {attempt} attempt(s): {last_error}",
            details={"recipient": to},
        )
