"""Lead operations for the human and agent boundaries."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..core.config import PipelineConfig
from ..core.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    PipelineError,
    ValidationError,
    parse_enum,
)
from ..core.qualification import normalize_manual_reasons, qualify
from ..core.stages import AGENT_QUALIFY_STAMPS, TimestampRule, apply_status, stamp
from ..enrichment.hunter import EmailMatch, HunterClient, lead_domain, parse_name
from ..storage.database import LeadFilter, PipelineDatabase
from ..storage.models import (
    Lead,
    LeadDetail,
    LeadStatus,
    Note,
    NoteType,
    Proposal,
    ProposalStatus,
    new_id,
)
from .mutator import Clock, LeadChanges, LeadMutator
from .validation import (
    check_budget,
    optional_text,
    parse_datetime,
    validate_candidate,
    validate_patch,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 500


@dataclass
class IngestSummary:
    """Per-batch outcome of bulk ingestion."""

    created: int = 0
    exists: int = 0
    failed: int = 0
    total: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "exists": self.exists,
            "failed": self.failed,
            "total": self.total,
            "errors": self.errors,
        }


@dataclass
class EnrichmentOutcome:
    lead: Lead
    match: EmailMatch

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.match.found,
            "email": self.match.email,
            "confidence": self.match.confidence,
            "source": self.match.source,
            "lead": self.lead.to_dict(),
        }


def _task_due_key(task):
    return (task.due_at is None, task.due_at or datetime.max, task.created_at)


class LeadService:
    """Creates, queries and mutates leads.

    Every compound mutation goes through LeadMutator, so status changes and
    their milestone stamps are written as one unit per lead.
    """

    def __init__(
        self,
        db: PipelineDatabase,
        config: Optional[PipelineConfig] = None,
        mutator: Optional[LeadMutator] = None,
        hunter: Optional[HunterClient] = None,
        clock: Optional[Clock] = None,
    ):
        self.db = db
        self.config = config or PipelineConfig()
        self.clock = clock or datetime.now
        self.mutator = mutator or LeadMutator(db, clock=self.clock)
        self.hunter = hunter or HunterClient()

    # === CREATION ===

    def create_lead(self, data: Mapping[str, Any]) -> Lead:
        """Create a lead. Raises ConflictError carrying the existing lead on a duplicate sourceUrl."""
        clean = validate_candidate(data)
        now = self.clock()
        lead = Lead(id=new_id(), scraped_at=now, updated_at=now, **clean)
        self.db.insert_lead(lead)
        logger.info(f"Created lead {lead.id} from {lead.source}: {lead.source_url}")
        return lead

    def bulk_ingest(self, candidates: Iterable[Mapping[str, Any]]) -> IngestSummary:
        """Ingest candidates one by one; a bad candidate never stops the batch."""
        summary = IngestSummary()
        for index, candidate in enumerate(candidates):
            summary.total += 1
            try:
                self.create_lead(candidate)
                summary.created += 1
            except ConflictError:
                summary.exists += 1
            except PipelineError as e:
                summary.failed += 1
                summary.errors.append({"index": index, "error": e.kind, "detail": e.message})
            except Exception as e:
                logger.exception(f"Unexpected error ingesting candidate {index}")
                summary.failed += 1
                summary.errors.append({"index": index, "error": "server_error", "detail": str(e)})

        logger.info(
            f"Bulk ingest: {summary.created} created, {summary.exists} existing, "
            f"{summary.failed} failed of {summary.total}"
        )
        return summary

    # === QUERIES ===

    def get_lead(self, lead_id: str) -> Lead:
        lead = self.db.get_lead(lead_id)
        if lead is None:
            raise NotFoundError("Lead", lead_id)
        return lead

    def get_detail(self, lead_id: str) -> LeadDetail:
        """Lead with notes, tasks, messages and proposals."""
        lead = self.get_lead(lead_id)
        tasks = sorted(self.db.list_tasks(lead_id=lead_id), key=_task_due_key)
        return LeadDetail(
            lead=lead,
            notes=self.db.get_notes(lead_id),
            tasks=tasks,
            messages=self.db.list_messages(lead_id),
            proposals=self.db.list_proposals(lead_id),
        )

    def list_leads(
        self,
        status: Optional[Any] = None,
        min_score: Optional[int] = None,
        source: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Lead], int]:
        """Filtered page of leads, best score first, plus the total match count."""
        if status is not None:
            status = parse_enum(LeadStatus, status, "status")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
        if offset < 0:
            raise ValidationError("offset must not be negative", field="offset")

        lead_filter = LeadFilter(status=status, min_score=min_score, source=source, search=search)
        leads = self.db.find_leads(lead_filter, limit=limit, offset=offset)
        return leads, self.db.count_leads(lead_filter)

    # === MUTATIONS ===

    def patch_lead(self, lead_id: str, data: Mapping[str, Any]) -> Lead:
        """Apply a validated patch as a whole, or not at all.

        Touching score or scoreReasons is a manual score update and tags the
        reasons with the manual marker.
        """
        clean = validate_patch(data)

        def change(lead: Lead, now: datetime, changes: LeadChanges):
            fields = dict(clean)
            status = fields.pop("status", None)

            if "score" in fields or "score_reasons" in fields:
                lead.score = fields.pop("score", lead.score)
                lead.score_reasons = normalize_manual_reasons(
                    fields.pop("score_reasons", lead.score_reasons)
                )

            for name, value in fields.items():
                setattr(lead, name, value)
            check_budget(lead.budget_min, lead.budget_max)

            if status is not None:
                apply_status(lead, status, now)

        lead, _ = self.mutator.mutate(lead_id, change)
        return lead

    def set_status(self, lead_id: str, status: Any) -> Lead:
        """Set any status; the mapped milestone is stamped only if unset."""
        status = parse_enum(LeadStatus, status, "status")

        def change(lead: Lead, now: datetime, changes: LeadChanges):
            apply_status(lead, status, now)

        lead, _ = self.mutator.mutate(lead_id, change)
        return lead

    def update_score(
        self,
        lead_id: str,
        score: Optional[int] = None,
        reasons: Optional[Sequence[str]] = None,
    ) -> Lead:
        """Manual score update. Leaves status alone."""
        data: Dict[str, Any] = {}
        if score is not None:
            data["score"] = score
        if reasons is not None:
            data["score_reasons"] = reasons
        if not data:
            raise ValidationError("Provide a score or reasons")
        return self.patch_lead(lead_id, data)

    def mark_qualified(self, lead_id: str) -> Lead:
        """Manual qualification: first qualifiedAt wins."""
        return self.set_status(lead_id, LeadStatus.QUALIFIED)

    def auto_qualify(
        self,
        lead_id: str,
        score: int,
        reasons: Sequence[str],
        analysis: Optional[str] = None,
        ai_model: Optional[str] = None,
    ) -> Lead:
        """Agent qualification.

        Status is recomputed from the score on every call and qualifiedAt is
        overwritten every time, unlike the manual path, so the agent can
        re-qualify a lead and the timestamp tracks its latest decision.
        """
        result = qualify(score, reasons, self.config.qualify_threshold)
        analysis = optional_text(analysis, "analysis")
        ai_model = optional_text(ai_model, "ai_model")

        def change(lead: Lead, now: datetime, changes: LeadChanges):
            lead.score = result.score
            lead.score_reasons = list(result.reasons)
            apply_status(lead, result.status, now, TimestampRule.OVERWRITE)
            for field_name, rule in AGENT_QUALIFY_STAMPS:
                stamp(lead, field_name, now, rule)
            if analysis:
                changes.notes.append(Note(
                    id=new_id(),
                    lead_id=lead.id,
                    content=analysis,
                    note_type=NoteType.AI_ANALYSIS,
                    ai_model=ai_model,
                    created_at=now,
                ))

        lead, _ = self.mutator.mutate(lead_id, change)
        logger.info(
            f"Agent qualified lead {lead_id}: score {result.score} -> {result.status.value}"
        )
        return lead

    def add_note(
        self,
        lead_id: str,
        content: str,
        note_type: Any = NoteType.MANUAL,
        ai_model: Optional[str] = None,
    ) -> Note:
        content = optional_text(content, "content")
        if not content:
            raise ValidationError("content is required", field="content")
        note = Note(
            id=new_id(),
            lead_id=lead_id,
            content=content,
            note_type=parse_enum(NoteType, note_type, "type"),
            ai_model=optional_text(ai_model, "ai_model"),
            created_at=self.clock(),
        )
        return self.db.add_note(note)

    def add_proposal(
        self,
        lead_id: str,
        title: str,
        amount: float,
        currency: str = "USD",
        status: Any = ProposalStatus.DRAFT,
        sent_at: Any = None,
    ) -> Proposal:
        title = optional_text(title, "title")
        if not title:
            raise ValidationError("title is required", field="title")
        if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount < 0:
            raise ValidationError("amount must be a non-negative number", field="amount")
        proposal = Proposal(
            id=new_id(),
            lead_id=lead_id,
            title=title,
            amount=float(amount),
            currency=(optional_text(currency, "currency") or "USD").upper(),
            status=parse_enum(ProposalStatus, status, "status"),
            sent_at=parse_datetime(sent_at, "sent_at"),
            created_at=self.clock(),
        )
        return self.db.add_proposal(proposal)

    def delete_lead(self, lead_id: str):
        """Delete a lead along with its notes, tasks, messages and proposals."""
        with self.mutator.locks.hold(lead_id):
            if not self.db.delete_lead(lead_id):
                raise NotFoundError("Lead", lead_id)
        logger.info(f"Deleted lead {lead_id}")

    # === ENRICHMENT ===

    def _system_note(self, lead_id: str, content: str):
        self.db.add_note(Note(
            id=new_id(),
            lead_id=lead_id,
            content=content,
            note_type=NoteType.SYSTEM,
            created_at=self.clock(),
        ))

    def enrich_lead(self, lead_id: str) -> EnrichmentOutcome:
        """Find a contact email through the email-finder collaborator."""
        lead = self.get_lead(lead_id)
        now = self.clock()
        cooldown = timedelta(hours=self.config.enrichment_cooldown_hours)
        if lead.email_enriched_at and now - lead.email_enriched_at < cooldown:
            raise ConflictError(
                f"Lead was already enriched in the last {self.config.enrichment_cooldown_hours} hours",
                existing=lead,
            )

        domain = lead_domain(lead)
        if not domain:
            self._system_note(lead_id, "Enrichment skipped: no company domain available")
            raise ValidationError("Cannot enrich: no company domain available", field="company")

        first, last = parse_name(lead.author)
        if not first:
            self._system_note(lead_id, "Enrichment skipped: no author name available")
            raise ValidationError("Cannot enrich: no author name available", field="author")

        # The provider call happens outside the lead lock
        try:
            match = self.hunter.find_email(domain, first, last)
        except DependencyError as e:
            self._system_note(lead_id, f"Enrichment failed: {e.message}")
            raise

        def change(lead: Lead, now: datetime, changes: LeadChanges):
            if match.found:
                lead.email = match.email
                lead.email_source = match.source
                lead.email_enriched_at = now
                content = f"Email found via {match.source}: {match.email} (confidence {match.confidence})"
            else:
                content = f"No email found via {match.source} for {domain}"
            changes.notes.append(Note(
                id=new_id(),
                lead_id=lead.id,
                content=content,
                note_type=NoteType.SYSTEM,
                created_at=now,
            ))

        lead, _ = self.mutator.mutate(lead_id, change)
        logger.info(f"Enrichment for lead {lead_id}: {'found' if match.found else 'not found'}")
        return EnrichmentOutcome(lead=lead, match=match)
