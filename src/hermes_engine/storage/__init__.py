"""Storage layer for the lead pipeline."""

from .database import PipelineDatabase, LeadFilter
from .locks import LeadLockRegistry
from .models import (
    DailyStats,
    Lead,
    LeadDetail,
    LeadStatus,
    Message,
    MessageChannel,
    MessageDirection,
    MessageStatus,
    Note,
    NoteType,
    Proposal,
    ProposalStatus,
    Task,
    TaskPriority,
    TaskStatus,
    TaskType,
    Template,
    TemplateType,
)

__all__ = [
    "PipelineDatabase",
    "LeadFilter",
    "LeadLockRegistry",
    "DailyStats",
    "Lead",
    "LeadDetail",
    "LeadStatus",
    "Message",
    "MessageChannel",
    "MessageDirection",
    "MessageStatus",
    "Note",
    "NoteType",
    "Proposal",
    "ProposalStatus",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "TaskType",
    "Template",
    "TemplateType",
]
