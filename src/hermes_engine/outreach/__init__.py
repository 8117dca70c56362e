"""Outreach templates, message tracking and delivery."""

from .templates import TemplateBucket, BUCKET_TEMPLATES, classify, render, derive_variables
from .library import TemplateLibrary
from .tracker import MessageTracker
from .delivery import ResendClient
from .service import OutreachService, OutreachDraft

__all__ = [
    "TemplateBucket",
    "BUCKET_TEMPLATES",
    "classify",
    "render",
    "derive_variables",
    "TemplateLibrary",
    "MessageTracker",
    "ResendClient",
    "OutreachService",
    "OutreachDraft",
]
