"""Serialized read-modify-write of a single lead."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from ..core.errors import NotFoundError, StaleRevisionError
from ..storage.database import PipelineDatabase
from ..storage.locks import LeadLockRegistry
from ..storage.models import Lead, Message, Note

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass
class LeadChanges:
    """Child records written in the same transaction as the lead."""

    notes: List[Note] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    deleted_message_ids: List[str] = field(default_factory=list)


Mutation = Callable[[Lead, datetime, LeadChanges], None]


class LeadMutator:
    """Apply compound mutations to a lead atomically.

    Each mutation runs under the lead's lock against a fresh copy of the
    lead. The write is a compare-and-swap on ``revision``; if another
    process slipped in, the mutation is replayed on the newer copy.
    """

    MAX_ATTEMPTS = 3

    def __init__(
        self,
        db: PipelineDatabase,
        locks: Optional[LeadLockRegistry] = None,
        clock: Optional[Clock] = None,
    ):
        self.db = db
        self.locks = locks or LeadLockRegistry()
        self.clock = clock or datetime.now

    def mutate(self, lead_id: str, mutation: Mutation) -> Tuple[Lead, LeadChanges]:
        """Run ``mutation(lead, now, changes)`` and persist the result.

        Anything the mutation raises aborts the write, so validation inside
        the mutation leaves the stored lead untouched.
        """
        with self.locks.hold(lead_id):
            for attempt in range(1, self.MAX_ATTEMPTS + 1):
                lead = self.db.get_lead(lead_id)
                if lead is None:
                    raise NotFoundError("Lead", lead_id)

                now = self.clock()
                changes = LeadChanges()
                mutation(lead, now, changes)
                lead.updated_at = now

                try:
                    self.db.save_lead(
                        lead,
                        notes=changes.notes,
                        messages=changes.messages,
                        deleted_message_ids=changes.deleted_message_ids,
                    )
                    return lead, changes
                except StaleRevisionError:
                    if attempt == self.MAX_ATTEMPTS:
                        raise
                    logger.warning(f"Stale revision on lead {lead_id}, retrying ({attempt})")
