"""Data models for pipeline storage."""

import uuid
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum
from typing import Optional, List, Dict, Any


class LeadStatus(Enum):
    """Pipeline stage of a lead.

    Listed in the intended progression order; no transition is enforced.
    """

    NEW = "NEW"
    QUALIFIED = "QUALIFIED"
    CONTACTED = "CONTACTED"
    FOLLOWUP_1 = "FOLLOWUP_1"
    FOLLOWUP_2 = "FOLLOWUP_2"
    RESPONDED = "RESPONDED"
    CALL_SCHEDULED = "CALL_SCHEDULED"
    CALL_DONE = "CALL_DONE"
    PROPOSAL_SENT = "PROPOSAL_SENT"
    NEGOTIATING = "NEGOTIATING"
    WON = "WON"
    LOST = "LOST"
    ARCHIVED = "ARCHIVED"


class NoteType(Enum):
    MANUAL = "MANUAL"
    AI_ANALYSIS = "AI_ANALYSIS"
    AI_RESEARCH = "AI_RESEARCH"
    SYSTEM = "SYSTEM"


class TaskType(Enum):
    FOLLOWUP = "FOLLOWUP"
    CALL = "CALL"
    EMAIL = "EMAIL"
    RESEARCH = "RESEARCH"
    PROPOSAL = "PROPOSAL"
    OTHER = "OTHER"


class TaskPriority(Enum):
    """Task priority levels."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @property
    def rank(self) -> int:
        """Higher rank is worked first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.URGENT: 3,
}


class TaskStatus(Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TemplateType(Enum):
    INITIAL_OUTREACH = "INITIAL_OUTREACH"
    FOLLOWUP_1 = "FOLLOWUP_1"
    FOLLOWUP_2 = "FOLLOWUP_2"
    FOLLOWUP_3 = "FOLLOWUP_3"
    PROPOSAL = "PROPOSAL"
    CLOSING = "CLOSING"
    REJECTION = "REJECTION"
    CUSTOM = "CUSTOM"


class MessageChannel(Enum):
    REDDIT_DM = "REDDIT_DM"
    TWITTER_DM = "TWITTER_DM"
    EMAIL = "EMAIL"
    LINKEDIN = "LINKEDIN"
    DISCORD = "DISCORD"
    OTHER = "OTHER"


class MessageDirection(Enum):
    OUTBOUND = "OUTBOUND"
    INBOUND = "INBOUND"


class MessageStatus(Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    READ = "READ"
    REPLIED = "REPLIED"
    BOUNCED = "BOUNCED"
    FAILED = "FAILED"


class ProposalStatus(Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


def new_id() -> str:
    return uuid.uuid4().hex


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _serialize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, list):
        return list(value)
    return value


class _Serializable:
    """Mixin giving dataclasses a JSON-friendly, camelCase ``to_dict``."""

    def to_dict(self) -> Dict[str, Any]:
        return {_camel(f.name): _serialize(getattr(self, f.name)) for f in fields(self)}


@dataclass
class Lead(_Serializable):
    """A prospective contact tracked through the pipeline."""

    id: str
    source: str
    source_url: str
    title: str
    source_id: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    author_url: Optional[str] = None

    # Scoring
    score: int = 0
    score_reasons: List[str] = field(default_factory=list)

    status: LeadStatus = LeadStatus.NEW

    # Contact info
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    website: Optional[str] = None
    email_source: Optional[str] = None
    email_enriched_at: Optional[datetime] = None

    # Budget
    budget_min: Optional[int] = None
    budget_max: Optional[int] = None
    currency: Optional[str] = None
    deadline: Optional[datetime] = None

    tags: List[str] = field(default_factory=list)

    # Milestones
    scraped_at: datetime = field(default_factory=datetime.now)
    qualified_at: Optional[datetime] = None
    contacted_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    call_at: Optional[datetime] = None
    proposal_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    updated_at: datetime = field(default_factory=datetime.now)

    # Optimistic concurrency counter, bumped on every write
    revision: int = 0

    @property
    def display_name(self) -> str:
        return self.author or self.title or f"Lead {self.id}"


@dataclass
class Note(_Serializable):
    """Append-only note attached to a lead."""

    id: str
    lead_id: str
    content: str
    note_type: NoteType = NoteType.MANUAL
    ai_model: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class Task(_Serializable):
    """A unit of work, optionally linked to a lead."""

    id: str
    title: str
    lead_id: Optional[str] = None
    description: Optional[str] = None
    task_type: TaskType = TaskType.OTHER
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    due_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    ai_executed: bool = False
    ai_result: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_open(self) -> bool:
        return self.status in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)


@dataclass
class Template(_Serializable):
    """A parameterized outreach template with ``{{name}}`` placeholders."""

    id: str
    name: str
    template_type: TemplateType
    content: str
    subject: str = ""
    description: Optional[str] = None
    channel: Optional[MessageChannel] = None
    variables: List[str] = field(default_factory=list)
    usage_count: int = 0
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class Message(_Serializable):
    """An outbound or inbound message exchanged with a lead."""

    id: str
    lead_id: str
    channel: MessageChannel
    direction: MessageDirection
    content: str
    subject: Optional[str] = None
    status: MessageStatus = MessageStatus.DRAFT
    # Weak reference to the template used, by id only
    template_id: Optional[str] = None
    # Provider correlation, passed through untouched
    external_id: Optional[str] = None
    thread_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class Proposal(_Serializable):
    """A commercial proposal sent to a lead."""

    id: str
    lead_id: str
    title: str
    amount: float
    currency: str = "USD"
    status: ProposalStatus = ProposalStatus.DRAFT
    sent_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class DailyStats(_Serializable):
    """Counters for one calendar day, recomputed from scratch."""

    date: date
    leads_scraped: int = 0
    leads_qualified: int = 0
    leads_contacted: int = 0
    leads_responded: int = 0
    calls_scheduled: int = 0
    proposals_sent: int = 0
    deals_won: int = 0
    deals_lost: int = 0

    def counters(self) -> Dict[str, int]:
        """Counter columns by name, without the date."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "date"}


@dataclass
class LeadDetail(_Serializable):
    """A lead together with its children."""

    lead: Lead
    notes: List[Note] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    proposals: List[Proposal] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = self.lead.to_dict()
        data["notes"] = [n.to_dict() for n in self.notes]
        data["tasks"] = [t.to_dict() for t in self.tasks]
        data["messages"] = [m.to_dict() for m in self.messages]
        data["proposals"] = [p.to_dict() for p in self.proposals]
        return data
