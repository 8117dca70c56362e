"""Lead lifecycle and outreach orchestration engine."""

__version__ = "1.0.0"
