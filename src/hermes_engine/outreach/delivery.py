"""Outbound email delivery through the Resend API."""

import logging
import os
from typing import Optional

import requests

from ..core.errors import DependencyError

logger = logging.getLogger(__name__)

PROVIDER = "resend"


class ResendClient:
    """Resend transactional email connector."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        reply_to: Optional[str] = None,
        timeout: int = 30,
    ):
        self.api_key = api_key if api_key is not None else os.environ.get("RESEND_API_KEY", "")
        self.from_email = from_email or os.environ.get("RESEND_FROM_EMAIL", "hermes@localhost")
        self.reply_to = reply_to or os.environ.get("RESEND_REPLY_TO")
        self.base_url = "https://api.resend.com"
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def send(self, to: str, subject: str, text: str) -> str:
        """Send a plain-text email. Returns the provider message id."""
        if not self.api_key:
            raise DependencyError(PROVIDER, "RESEND_API_KEY not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "from": self.from_email,
            "to": to,
            "subject": subject,
            "text": text,
        }
        if self.reply_to:
            payload["reply_to"] = self.reply_to

        try:
            response = requests.post(
                f"{self.base_url}/emails",
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Resend request error: {e}")
            raise DependencyError(PROVIDER, str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            message = data.get("message") or f"HTTP {response.status_code}"
            logger.error(f"Resend rejected email to {to}: {message}")
            raise DependencyError(PROVIDER, message)

        return data.get("id") or ""
