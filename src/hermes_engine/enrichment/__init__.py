"""Contact enrichment collaborators."""

from .hunter import HunterClient, EmailMatch, extract_domain, parse_name, lead_domain

__all__ = ["HunterClient", "EmailMatch", "extract_domain", "parse_name", "lead_domain"]
