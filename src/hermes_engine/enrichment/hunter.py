"""Hunter.io email finder connector."""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import requests

from ..core.errors import DependencyError
from ..storage.models import Lead

logger = logging.getLogger(__name__)

PROVIDER = "hunter.io"

# Hosts that identify a social profile rather than the lead's own domain
SOCIAL_HOSTS = ("reddit.com", "twitter.com", "x.com")


@dataclass
class EmailMatch:
    """Result from an email-finder lookup."""

    email: Optional[str]
    confidence: int = 0
    source: str = PROVIDER
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def found(self) -> bool:
        return bool(self.email)


def extract_domain(value: Optional[str]) -> Optional[str]:
    """Domain from a URL, bare domain or company name.

    ``https://www.acme.io/about`` -> ``acme.io``; ``Acme`` -> ``acme.com``.
    """
    if not value or not value.strip():
        return None
    cleaned = re.sub(r"^(https?://)?(www\.)?", "", value.strip().lower())
    cleaned = cleaned.split("/")[0].split("?")[0]
    if not cleaned:
        return None
    if "." in cleaned:
        return cleaned
    cleaned = re.sub(r"[^a-z0-9-]", "", cleaned)
    return f"{cleaned}.com" if cleaned else None


def parse_name(full_name: Optional[str]) -> Tuple[str, str]:
    """Split a display name into (first, last). Handles ``u/`` and ``@``."""
    if not full_name:
        return "", ""
    handle = re.sub(r"^(u/|@)", "", full_name.strip())
    parts = [p for p in re.split(r"[\s_]+", handle) if p]
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def lead_domain(lead: Lead) -> Optional[str]:
    """Best domain guess: company, then website, then a non-social author URL."""
    domain = extract_domain(lead.company) or extract_domain(lead.website)
    if domain:
        return domain

    if lead.author_url:
        host = (urlparse(lead.author_url).hostname or "").lower()
        host = host[4:] if host.startswith("www.") else host
        if host and not any(host == s or host.endswith("." + s) for s in SOCIAL_HOSTS):
            return host
    return None


class HunterClient:
    """Hunter.io Email Finder API.

    Needs a domain plus a first/last name. Free tier is 25 requests/month.
    """

    def __init__(self, api_key: Optional[str] = None, timeout: int = 30):
        self.api_key = api_key if api_key is not None else os.environ.get("HUNTER_API_KEY", "")
        self.base_url = "https://api.hunter.io/v2"
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def find_email(self, domain: str, first_name: str, last_name: str = "") -> EmailMatch:
        """Look up an address. Raises DependencyError on any provider failure."""
        if not self.api_key:
            raise DependencyError(PROVIDER, "HUNTER_API_KEY not configured")

        params = {"domain": domain, "api_key": self.api_key}
        if first_name and last_name:
            params["first_name"] = first_name
            params["last_name"] = last_name
        else:
            params["full_name"] = f"{first_name} {last_name}".strip()

        try:
            response = requests.get(
                f"{self.base_url}/email-finder",
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Hunter request error: {e}")
            raise DependencyError(PROVIDER, str(e)) from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        errors = payload.get("errors") or []
        if errors:
            detail = errors[0].get("details", "unknown error")
            raise DependencyError(PROVIDER, detail)
        if response.status_code != 200:
            raise DependencyError(PROVIDER, f"HTTP {response.status_code}")

        data = payload.get("data") or {}
        email = data.get("email")
        if not email:
            return EmailMatch(email=None)

        return EmailMatch(email=email, confidence=data.get("score") or 0, raw=data)
