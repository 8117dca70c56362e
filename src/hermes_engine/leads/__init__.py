"""Lead creation, ingestion, qualification and enrichment."""

from .mutator import LeadMutator, LeadChanges
from .service import LeadService, IngestSummary, EnrichmentOutcome

__all__ = ["LeadMutator", "LeadChanges", "LeadService", "IngestSummary", "EnrichmentOutcome"]
