"""Pydantic request bodies.

Fields accept camelCase (wire) or snake_case. Enum-typed fields are plain
strings here; the pipeline rejects unknown values with a validation_error.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)


class LeadCreateRequest(_Body):
    source: str
    source_url: str
    title: str
    source_id: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    author_url: Optional[str] = None
    score: int = 0
    score_reasons: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    website: Optional[str] = None
    budget_min: Optional[int] = None
    budget_max: Optional[int] = None
    currency: Optional[str] = None
    deadline: Optional[str] = None


class LeadPatchRequest(_Body):
    status: Optional[str] = None
    score: Optional[int] = None
    score_reasons: Optional[List[str]] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    website: Optional[str] = None
    budget_min: Optional[int] = None
    budget_max: Optional[int] = None
    currency: Optional[str] = None
    deadline: Optional[str] = None
    tags: Optional[List[str]] = None


class ManualScoreRequest(_Body):
    score: Optional[int] = None
    reasons: Optional[List[str]] = None


class NoteCreateRequest(_Body):
    content: str
    type: str = "MANUAL"
    ai_model: Optional[str] = None


class ProposalCreateRequest(_Body):
    title: str
    amount: float
    currency: str = "USD"
    status: str = "DRAFT"
    sent_at: Optional[str] = None


class TaskCreateRequest(_Body):
    title: str
    lead_id: Optional[str] = None
    description: Optional[str] = None
    type: str = "OTHER"
    priority: str = "MEDIUM"
    due_at: Optional[str] = None


class TaskPatchRequest(_Body):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    due_at: Optional[str] = None
    ai_executed: Optional[bool] = None
    ai_result: Optional[str] = None


class TemplateCreateRequest(_Body):
    name: str
    type: str
    content: str
    subject: str = ""
    description: Optional[str] = None
    channel: Optional[str] = None
    variables: Optional[List[str]] = None
    is_active: bool = True


class TemplatePatchRequest(_Body):
    name: Optional[str] = None
    type: Optional[str] = None
    content: Optional[str] = None
    subject: Optional[str] = None
    description: Optional[str] = None
    channel: Optional[str] = None
    variables: Optional[List[str]] = None
    is_active: Optional[bool] = None


class TemplateRenderRequest(_Body):
    variables: Dict[str, str] = Field(default_factory=dict)
    record_usage: bool = False


class QualifyRequest(_Body):
    score: int
    reasons: List[str]
    analysis: Optional[str] = None
    ai_model: Optional[str] = None


class OutreachRequest(_Body):
    template_id: Optional[str] = None
    bucket: Optional[str] = None
    variables: Dict[str, str] = Field(default_factory=dict)
    channel: Optional[str] = None


class MarkSentRequest(_Body):
    external_id: Optional[str] = None
    thread_id: Optional[str] = None


class ResponseRequest(_Body):
    content: str
    channel: str
    external_id: Optional[str] = None
    thread_id: Optional[str] = None
    sentiment: Optional[str] = None


class MessageStatusRequest(_Body):
    status: str
    external_id: Optional[str] = None


class EmailDraftRequest(_Body):
    subject: str
    body: str
    recipient_email: Optional[str] = None


class SendEmailRequest(_Body):
    subject: str
    body: str
    recipient_email: str
    recipient_name: Optional[str] = None
