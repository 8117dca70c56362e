"""SQLite database for pipeline storage with sourceUrl deduplication."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Optional, List, Dict, Any, Generator, Iterable, Sequence, Tuple

from .models import (
    DailyStats,
    Lead,
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
from ..core.errors import ConflictError, NotFoundError, StaleRevisionError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".hermes-engine" / "pipeline.db"

# Lead columns a filter may test for null/ranges
DATE_FIELDS = (
    "scraped_at",
    "qualified_at",
    "contacted_at",
    "responded_at",
    "call_at",
    "proposal_at",
    "closed_at",
    "email_enriched_at",
)

LEAD_COLUMNS = (
    "id", "source", "source_url", "source_id", "title", "description",
    "author", "author_url", "score", "score_reasons", "status",
    "email", "phone", "company", "website", "email_source", "email_enriched_at",
    "budget_min", "budget_max", "currency", "deadline", "tags",
    "scraped_at", "qualified_at", "contacted_at", "responded_at",
    "call_at", "proposal_at", "closed_at", "updated_at", "revision",
)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _json_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return list(json.loads(value))


class LeadFilter:
    """Composable WHERE clause over the leads table."""

    def __init__(
        self,
        status: Optional[LeadStatus] = None,
        statuses: Optional[Sequence[LeadStatus]] = None,
        min_score: Optional[int] = None,
        max_score: Optional[int] = None,
        source: Optional[str] = None,
        search: Optional[str] = None,
        is_set: Sequence[str] = (),
        is_null: Sequence[str] = (),
        since: Optional[Tuple[str, datetime]] = None,
        before: Optional[Tuple[str, datetime]] = None,
    ):
        self.clauses: List[str] = []
        self.params: List[Any] = []

        if status is not None:
            self.clauses.append("status = ?")
            self.params.append(status.value)
        if statuses:
            self.clauses.append(f"status IN ({', '.join('?' for _ in statuses)})")
            self.params.extend(s.value for s in statuses)
        if min_score is not None:
            self.clauses.append("score >= ?")
            self.params.append(min_score)
        if max_score is not None:
            self.clauses.append("score <= ?")
            self.params.append(max_score)
        if source:
            self.clauses.append("source = ?")
            self.params.append(source)
        if search:
            term = f"%{search}%"
            self.clauses.append("(title LIKE ? OR description LIKE ? OR author LIKE ?)")
            self.params.extend([term, term, term])
        for name in is_set:
            self.clauses.append(f"{self._field(name)} IS NOT NULL")
        for name in is_null:
            self.clauses.append(f"{self._field(name)} IS NULL")
        if since:
            self.clauses.append(f"{self._field(since[0])} >= ?")
            self.params.append(since[1].isoformat())
        if before:
            self.clauses.append(f"{self._field(before[0])} < ?")
            self.params.append(before[1].isoformat())

    @staticmethod
    def _field(name: str) -> str:
        if name not in DATE_FIELDS:
            raise ValueError(f"Unsupported date field: {name}")
        return name

    @property
    def sql(self) -> str:
        return " AND ".join(self.clauses) if self.clauses else "1=1"


class PipelineDatabase:
    """SQLite database for leads and everything attached to them."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize database connection."""
        if db_path is None:
            db_path = DEFAULT_DB_PATH

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection; one transaction per block."""
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS leads (
                    id TEXT PRIMARY KEY,
                    source TEXT NOT NULL,
                    source_url TEXT NOT NULL UNIQUE,
                    source_id TEXT,
                    title TEXT NOT NULL,
                    description TEXT,
                    author TEXT,
                    author_url TEXT,

                    score INTEGER NOT NULL DEFAULT 0,
                    score_reasons TEXT,
                    status TEXT NOT NULL DEFAULT 'NEW',

                    email TEXT,
                    phone TEXT,
                    company TEXT,
                    website TEXT,
                    email_source TEXT,
                    email_enriched_at TIMESTAMP,

                    budget_min INTEGER,
                    budget_max INTEGER,
                    currency TEXT,
                    deadline TIMESTAMP,
                    tags TEXT,

                    scraped_at TIMESTAMP NOT NULL,
                    qualified_at TIMESTAMP,
                    contacted_at TIMESTAMP,
                    responded_at TIMESTAMP,
                    call_at TIMESTAMP,
                    proposal_at TIMESTAMP,
                    closed_at TIMESTAMP,
                    updated_at TIMESTAMP NOT NULL,

                    revision INTEGER NOT NULL DEFAULT 0
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS notes (
                    id TEXT PRIMARY KEY,
                    lead_id TEXT NOT NULL,
                    content TEXT NOT NULL,
                    note_type TEXT NOT NULL,
                    ai_model TEXT,
                    created_at TIMESTAMP NOT NULL,

                    FOREIGN KEY (lead_id) REFERENCES leads(id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    lead_id TEXT,
                    title TEXT NOT NULL,
                    description TEXT,
                    task_type TEXT NOT NULL,
                    priority TEXT NOT NULL,
                    status TEXT NOT NULL,
                    due_at TIMESTAMP,
                    completed_at TIMESTAMP,
                    ai_executed INTEGER NOT NULL DEFAULT 0,
                    ai_result TEXT,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL,

                    FOREIGN KEY (lead_id) REFERENCES leads(id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS templates (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    template_type TEXT NOT NULL,
                    channel TEXT,
                    subject TEXT NOT NULL DEFAULT '',
                    content TEXT NOT NULL,
                    variables TEXT,
                    usage_count INTEGER NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id TEXT PRIMARY KEY,
                    lead_id TEXT NOT NULL,
                    channel TEXT NOT NULL,
                    direction TEXT NOT NULL,
                    subject TEXT,
                    content TEXT NOT NULL,
                    status TEXT NOT NULL,
                    template_id TEXT,
                    external_id TEXT,
                    thread_id TEXT,
                    sent_at TIMESTAMP,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL,

                    FOREIGN KEY (lead_id) REFERENCES leads(id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS proposals (
                    id TEXT PRIMARY KEY,
                    lead_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    amount REAL NOT NULL,
                    currency TEXT NOT NULL,
                    status TEXT NOT NULL,
                    sent_at TIMESTAMP,
                    created_at TIMESTAMP NOT NULL,

                    FOREIGN KEY (lead_id) REFERENCES leads(id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS daily_stats (
                    date TEXT PRIMARY KEY,
                    leads_scraped INTEGER NOT NULL DEFAULT 0,
                    leads_qualified INTEGER NOT NULL DEFAULT 0,
                    leads_contacted INTEGER NOT NULL DEFAULT 0,
                    leads_responded INTEGER NOT NULL DEFAULT 0,
                    calls_scheduled INTEGER NOT NULL DEFAULT 0,
                    proposals_sent INTEGER NOT NULL DEFAULT 0,
                    deals_won INTEGER NOT NULL DEFAULT 0,
                    deals_lost INTEGER NOT NULL DEFAULT 0
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_leads_score ON leads(score DESC)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_leads_status ON leads(status)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_notes_lead ON notes(lead_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_lead ON tasks(lead_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_messages_lead ON messages(lead_id)")

    # === ROW CONVERSION ===

    def _row_to_lead(self, row: sqlite3.Row) -> Lead:
        return Lead(
            id=row["id"],
            source=row["source"],
            source_url=row["source_url"],
            source_id=row["source_id"],
            title=row["title"],
            description=row["description"],
            author=row["author"],
            author_url=row["author_url"],
            score=row["score"] or 0,
            score_reasons=_json_list(row["score_reasons"]),
            status=LeadStatus(row["status"]),
            email=row["email"],
            phone=row["phone"],
            company=row["company"],
            website=row["website"],
            email_source=row["email_source"],
            email_enriched_at=_dt(row["email_enriched_at"]),
            budget_min=row["budget_min"],
            budget_max=row["budget_max"],
            currency=row["currency"],
            deadline=_dt(row["deadline"]),
            tags=_json_list(row["tags"]),
            scraped_at=_dt(row["scraped_at"]),
            qualified_at=_dt(row["qualified_at"]),
            contacted_at=_dt(row["contacted_at"]),
            responded_at=_dt(row["responded_at"]),
            call_at=_dt(row["call_at"]),
            proposal_at=_dt(row["proposal_at"]),
            closed_at=_dt(row["closed_at"]),
            updated_at=_dt(row["updated_at"]),
            revision=row["revision"],
        )

    def _lead_params(self, lead: Lead) -> Dict[str, Any]:
        return {
            "id": lead.id,
            "source": lead.source,
            "source_url": lead.source_url,
            "source_id": lead.source_id,
            "title": lead.title,
            "description": lead.description,
            "author": lead.author,
            "author_url": lead.author_url,
            "score": lead.score,
            "score_reasons": json.dumps(lead.score_reasons),
            "status": lead.status.value,
            "email": lead.email,
            "phone": lead.phone,
            "company": lead.company,
            "website": lead.website,
            "email_source": lead.email_source,
            "email_enriched_at": _iso(lead.email_enriched_at),
            "budget_min": lead.budget_min,
            "budget_max": lead.budget_max,
            "currency": lead.currency,
            "deadline": _iso(lead.deadline),
            "tags": json.dumps(lead.tags),
            "scraped_at": _iso(lead.scraped_at),
            "qualified_at": _iso(lead.qualified_at),
            "contacted_at": _iso(lead.contacted_at),
            "responded_at": _iso(lead.responded_at),
            "call_at": _iso(lead.call_at),
            "proposal_at": _iso(lead.proposal_at),
            "closed_at": _iso(lead.closed_at),
            "updated_at": _iso(lead.updated_at),
            "revision": lead.revision,
        }

    def _row_to_note(self, row: sqlite3.Row) -> Note:
        return Note(
            id=row["id"],
            lead_id=row["lead_id"],
            content=row["content"],
            note_type=NoteType(row["note_type"]),
            ai_model=row["ai_model"],
            created_at=_dt(row["created_at"]),
        )

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            lead_id=row["lead_id"],
            title=row["title"],
            description=row["description"],
            task_type=TaskType(row["task_type"]),
            priority=TaskPriority(row["priority"]),
            status=TaskStatus(row["status"]),
            due_at=_dt(row["due_at"]),
            completed_at=_dt(row["completed_at"]),
            ai_executed=bool(row["ai_executed"]),
            ai_result=row["ai_result"],
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )

    def _row_to_template(self, row: sqlite3.Row) -> Template:
        return Template(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            template_type=TemplateType(row["template_type"]),
            channel=MessageChannel(row["channel"]) if row["channel"] else None,
            subject=row["subject"] or "",
            content=row["content"],
            variables=_json_list(row["variables"]),
            usage_count=row["usage_count"],
            is_active=bool(row["is_active"]),
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )

    def _row_to_message(self, row: sqlite3.Row) -> Message:
        return Message(
            id=row["id"],
            lead_id=row["lead_id"],
            channel=MessageChannel(row["channel"]),
            direction=MessageDirection(row["direction"]),
            subject=row["subject"],
            content=row["content"],
            status=MessageStatus(row["status"]),
            template_id=row["template_id"],
            external_id=row["external_id"],
            thread_id=row["thread_id"],
            sent_at=_dt(row["sent_at"]),
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )

    def _row_to_proposal(self, row: sqlite3.Row) -> Proposal:
        return Proposal(
            id=row["id"],
            lead_id=row["lead_id"],
            title=row["title"],
            amount=row["amount"],
            currency=row["currency"],
            status=ProposalStatus(row["status"]),
            sent_at=_dt(row["sent_at"]),
            created_at=_dt(row["created_at"]),
        )

    # === LEADS ===

    def insert_lead(self, lead: Lead) -> Lead:
        """Insert a new lead. Raises ConflictError on a duplicate sourceUrl."""
        params = self._lead_params(lead)
        columns = ", ".join(LEAD_COLUMNS)
        placeholders = ", ".join(f":{c}" for c in LEAD_COLUMNS)
        try:
            with self._get_connection() as conn:
                conn.execute(f"INSERT INTO leads ({columns}) VALUES ({placeholders})", params)
        except sqlite3.IntegrityError:
            existing = self.get_lead_by_source_url(lead.source_url)
            if existing is None:
                raise
            raise ConflictError("Lead already exists", existing=existing) from None
        return lead

    def get_lead(self, lead_id: str) -> Optional[Lead]:
        """Get a lead by ID."""
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM leads WHERE id = ?", (lead_id,)).fetchone()
            return self._row_to_lead(row) if row else None

    def get_lead_by_source_url(self, source_url: str) -> Optional[Lead]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM leads WHERE source_url = ?", (source_url,)
            ).fetchone()
            return self._row_to_lead(row) if row else None

    def save_lead(
        self,
        lead: Lead,
        notes: Iterable[Note] = (),
        messages: Iterable[Message] = (),
        deleted_message_ids: Iterable[str] = (),
    ) -> Lead:
        """Write a lead and any children in one transaction.

        The write only applies if the stored revision still matches
        ``lead.revision``; otherwise StaleRevisionError is raised and
        nothing is written.
        """
        params = self._lead_params(lead)
        params["expected_revision"] = lead.revision
        assignments = ", ".join(
            f"{c} = :{c}" for c in LEAD_COLUMNS if c not in ("id", "revision")
        )

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE leads SET {assignments}, revision = revision + 1 "
                f"WHERE id = :id AND revision = :expected_revision",
                params,
            )
            if cursor.rowcount == 0:
                exists = conn.execute("SELECT 1 FROM leads WHERE id = ?", (lead.id,)).fetchone()
                if not exists:
                    raise NotFoundError("Lead", lead.id)
                raise StaleRevisionError(lead.id, lead.revision)

            for note in notes:
                self._insert_note(conn, note)
            for message in messages:
                self._upsert_message(conn, message)
            for message_id in deleted_message_ids:
                conn.execute("DELETE FROM messages WHERE id = ?", (message_id,))

        lead.revision += 1
        return lead

    def delete_lead(self, lead_id: str) -> bool:
        """Delete a lead; notes, tasks, messages and proposals cascade."""
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM leads WHERE id = ?", (lead_id,))
            return cursor.rowcount > 0

    def find_leads(
        self,
        lead_filter: Optional[LeadFilter] = None,
        order_by: str = "score DESC, scraped_at DESC",
        limit: int = 1000,
        offset: int = 0,
    ) -> List[Lead]:
        """Get leads matching a filter."""
        lead_filter = lead_filter or LeadFilter()
        query = f"SELECT * FROM leads WHERE {lead_filter.sql} ORDER BY {order_by} LIMIT ? OFFSET ?"
        with self._get_connection() as conn:
            rows = conn.execute(query, lead_filter.params + [limit, offset]).fetchall()
            return [self._row_to_lead(row) for row in rows]

    def count_leads(self, lead_filter: Optional[LeadFilter] = None) -> int:
        lead_filter = lead_filter or LeadFilter()
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT COUNT(*) FROM leads WHERE {lead_filter.sql}", lead_filter.params
            ).fetchone()
            return row[0]

    def status_counts(self) -> Dict[str, int]:
        """Lead count per status."""
        with self._get_connection() as conn:
            rows = conn.execute("SELECT status, COUNT(*) FROM leads GROUP BY status").fetchall()
            return {row[0]: row[1] for row in rows}

    # === NOTES ===

    def _insert_note(self, conn: sqlite3.Connection, note: Note):
        conn.execute(
            """
            INSERT INTO notes (id, lead_id, content, note_type, ai_model, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (note.id, note.lead_id, note.content, note.note_type.value,
             note.ai_model, _iso(note.created_at)),
        )

    def add_note(self, note: Note) -> Note:
        with self._get_connection() as conn:
            if not conn.execute("SELECT 1 FROM leads WHERE id = ?", (note.lead_id,)).fetchone():
                raise NotFoundError("Lead", note.lead_id)
            self._insert_note(conn, note)
        return note

    def get_notes(self, lead_id: str) -> List[Note]:
        """Notes for a lead, newest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM notes WHERE lead_id = ? ORDER BY created_at DESC, rowid DESC",
                (lead_id,),
            ).fetchall()
            return [self._row_to_note(row) for row in rows]

    # === TASKS ===

    def save_task(self, task: Task) -> Task:
        """Insert or update a task."""
        with self._get_connection() as conn:
            if task.lead_id and not conn.execute(
                "SELECT 1 FROM leads WHERE id = ?", (task.lead_id,)
            ).fetchone():
                raise NotFoundError("Lead", task.lead_id)
            conn.execute(
                """
                INSERT INTO tasks (
                    id, lead_id, title, description, task_type, priority, status,
                    due_at, completed_at, ai_executed, ai_result, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    lead_id = excluded.lead_id,
                    title = excluded.title,
                    description = excluded.description,
                    task_type = excluded.task_type,
                    priority = excluded.priority,
                    status = excluded.status,
                    due_at = excluded.due_at,
                    completed_at = excluded.completed_at,
                    ai_executed = excluded.ai_executed,
                    ai_result = excluded.ai_result,
                    updated_at = excluded.updated_at
                """,
                (
                    task.id, task.lead_id, task.title, task.description,
                    task.task_type.value, task.priority.value, task.status.value,
                    _iso(task.due_at), _iso(task.completed_at),
                    int(task.ai_executed), task.ai_result,
                    _iso(task.created_at), _iso(task.updated_at),
                ),
            )
        return task

    def get_task(self, task_id: str) -> Optional[Task]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_task(row) if row else None

    def delete_task(self, task_id: str) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            return cursor.rowcount > 0

    def list_tasks(
        self,
        statuses: Optional[Sequence[TaskStatus]] = None,
        priority: Optional[TaskPriority] = None,
        task_type: Optional[TaskType] = None,
        lead_id: Optional[str] = None,
        due_before: Optional[datetime] = None,
    ) -> List[Task]:
        """Tasks matching the filters, unordered."""
        query = "SELECT * FROM tasks WHERE 1=1"
        params: List[Any] = []

        if statuses:
            query += f" AND status IN ({', '.join('?' for _ in statuses)})"
            params.extend(s.value for s in statuses)
        if priority:
            query += " AND priority = ?"
            params.append(priority.value)
        if task_type:
            query += " AND task_type = ?"
            params.append(task_type.value)
        if lead_id:
            query += " AND lead_id = ?"
            params.append(lead_id)
        if due_before:
            query += " AND due_at IS NOT NULL AND due_at < ?"
            params.append(due_before.isoformat())

        with self._get_connection() as conn:
            return [self._row_to_task(row) for row in conn.execute(query, params).fetchall()]

    # === TEMPLATES ===

    def save_template(self, template: Template) -> Template:
        """Insert or update a template. usage_count is never overwritten here."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO templates (
                    id, name, description, template_type, channel, subject, content,
                    variables, usage_count, is_active, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    description = excluded.description,
                    template_type = excluded.template_type,
                    channel = excluded.channel,
                    subject = excluded.subject,
                    content = excluded.content,
                    variables = excluded.variables,
                    is_active = excluded.is_active,
                    updated_at = excluded.updated_at
                """,
                (
                    template.id, template.name, template.description,
                    template.template_type.value,
                    template.channel.value if template.channel else None,
                    template.subject, template.content, json.dumps(template.variables),
                    template.usage_count, int(template.is_active),
                    _iso(template.created_at), _iso(template.updated_at),
                ),
            )
        return template

    def get_template(self, template_id: str) -> Optional[Template]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM templates WHERE id = ?", (template_id,)).fetchone()
            return self._row_to_template(row) if row else None

    def list_templates(
        self,
        template_type: Optional[TemplateType] = None,
        channel: Optional[MessageChannel] = None,
        active: Optional[bool] = None,
    ) -> List[Template]:
        query = "SELECT * FROM templates WHERE 1=1"
        params: List[Any] = []
        if template_type:
            query += " AND template_type = ?"
            params.append(template_type.value)
        if channel:
            query += " AND channel = ?"
            params.append(channel.value)
        if active is not None:
            query += " AND is_active = ?"
            params.append(int(active))
        query += " ORDER BY name ASC"

        with self._get_connection() as conn:
            return [self._row_to_template(row) for row in conn.execute(query, params).fetchall()]

    def count_templates(self) -> int:
        with self._get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM templates").fetchone()[0]

    def delete_template(self, template_id: str) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM templates WHERE id = ?", (template_id,))
            return cursor.rowcount > 0

    def increment_template_usage(self, template_id: str) -> bool:
        """Atomically add one to a template's usage counter."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE templates SET usage_count = usage_count + 1 WHERE id = ?",
                (template_id,),
            )
            return cursor.rowcount > 0

    # === MESSAGES ===

    def _upsert_message(self, conn: sqlite3.Connection, message: Message):
        conn.execute(
            """
            INSERT INTO messages (
                id, lead_id, channel, direction, subject, content, status,
                template_id, external_id, thread_id, sent_at, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                subject = excluded.subject,
                content = excluded.content,
                status = excluded.status,
                external_id = excluded.external_id,
                thread_id = excluded.thread_id,
                sent_at = excluded.sent_at,
                updated_at = excluded.updated_at
            """,
            (
                message.id, message.lead_id, message.channel.value,
                message.direction.value, message.subject, message.content,
                message.status.value, message.template_id, message.external_id,
                message.thread_id, _iso(message.sent_at),
                _iso(message.created_at), _iso(message.updated_at),
            ),
        )

    def save_message(self, message: Message) -> Message:
        """Insert or update a message without touching its lead."""
        with self._get_connection() as conn:
            if not conn.execute("SELECT 1 FROM leads WHERE id = ?", (message.lead_id,)).fetchone():
                raise NotFoundError("Lead", message.lead_id)
            self._upsert_message(conn, message)
        return message

    def get_message(self, message_id: str) -> Optional[Message]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM messages WHERE id = ?", (message_id,)).fetchone()
            return self._row_to_message(row) if row else None

    def list_messages(
        self,
        lead_id: str,
        status: Optional[MessageStatus] = None,
        channel: Optional[MessageChannel] = None,
    ) -> List[Message]:
        """Messages for a lead, newest first."""
        query = "SELECT * FROM messages WHERE lead_id = ?"
        params: List[Any] = [lead_id]
        if status:
            query += " AND status = ?"
            params.append(status.value)
        if channel:
            query += " AND channel = ?"
            params.append(channel.value)
        query += " ORDER BY created_at DESC, rowid DESC"

        with self._get_connection() as conn:
            return [self._row_to_message(row) for row in conn.execute(query, params).fetchall()]

    # === PROPOSALS ===

    def add_proposal(self, proposal: Proposal) -> Proposal:
        with self._get_connection() as conn:
            if not conn.execute("SELECT 1 FROM leads WHERE id = ?", (proposal.lead_id,)).fetchone():
                raise NotFoundError("Lead", proposal.lead_id)
            conn.execute(
                """
                INSERT INTO proposals (id, lead_id, title, amount, currency, status, sent_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    proposal.id, proposal.lead_id, proposal.title, proposal.amount,
                    proposal.currency, proposal.status.value,
                    _iso(proposal.sent_at), _iso(proposal.created_at),
                ),
            )
        return proposal

    def list_proposals(self, lead_id: str) -> List[Proposal]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM proposals WHERE lead_id = ? ORDER BY created_at DESC, rowid DESC",
                (lead_id,),
            ).fetchall()
            return [self._row_to_proposal(row) for row in rows]

    # === DAILY STATS ===

    def upsert_daily_stats(self, stats: DailyStats) -> DailyStats:
        """Replace the counters stored for ``stats.date``."""
        counters = stats.counters()
        columns = ["date"] + list(counters)
        updates = ", ".join(f"{c} = excluded.{c}" for c in counters)
        with self._get_connection() as conn:
            conn.execute(
                f"INSERT INTO daily_stats ({', '.join(columns)}) "
                f"VALUES ({', '.join('?' for _ in columns)}) "
                f"ON CONFLICT(date) DO UPDATE SET {updates}",
                [stats.date.isoformat()] + list(counters.values()),
            )
        return stats

    def _row_to_daily_stats(self, row: sqlite3.Row) -> DailyStats:
        return DailyStats(
            date=date.fromisoformat(row["date"]),
            leads_scraped=row["leads_scraped"],
            leads_qualified=row["leads_qualified"],
            leads_contacted=row["leads_contacted"],
            leads_responded=row["leads_responded"],
            calls_scheduled=row["calls_scheduled"],
            proposals_sent=row["proposals_sent"],
            deals_won=row["deals_won"],
            deals_lost=row["deals_lost"],
        )

    def get_daily_stats(self, day: date) -> Optional[DailyStats]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM daily_stats WHERE date = ?", (day.isoformat(),)
            ).fetchone()
            return self._row_to_daily_stats(row) if row else None

    def list_daily_stats(self, since: date) -> List[DailyStats]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM daily_stats WHERE date >= ? ORDER BY date ASC",
                (since.isoformat(),),
            ).fetchall()
            return [self._row_to_daily_stats(row) for row in rows]

    # === HEALTH ===

    def ping(self) -> bool:
        with self._get_connection() as conn:
            conn.execute("SELECT 1")
        return True

