"""Task queue: priority ordering, overdue view and one-way completion."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..core.config import PipelineConfig
from ..core.errors import NotFoundError, ValidationError, parse_enum
from ..leads.validation import normalize_keys, optional_text, parse_datetime
from ..storage.database import PipelineDatabase
from ..storage.models import Task, TaskPriority, TaskStatus, TaskType, new_id

logger = logging.getLogger(__name__)

OPEN_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)
CLOSED_STATUSES = (TaskStatus.COMPLETED, TaskStatus.CANCELLED)

TASK_FIELDS = {
    "title", "description", "task_type", "type", "priority", "status",
    "due_at", "ai_executed", "ai_result", "lead_id",
}


def queue_key(task: Task):
    """URGENT first, then earliest due date; undated tasks go last."""
    return (
        -task.priority.rank,
        task.due_at is None,
        task.due_at or datetime.max,
        task.created_at,
    )


def prioritize(tasks: List[Task]) -> List[Task]:
    return sorted(tasks, key=queue_key)


class TaskManager:
    """Manages tasks and the views the agent works from."""

    def __init__(
        self,
        db: PipelineDatabase,
        config: Optional[PipelineConfig] = None,
        clock=None,
    ):
        self.db = db
        self.config = config or PipelineConfig()
        self.clock = clock or datetime.now

    def _clean(self, data: Mapping[str, Any], partial: bool) -> Dict[str, Any]:
        data = normalize_keys(data)
        unknown = set(data) - TASK_FIELDS
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")

        clean: Dict[str, Any] = {}
        if "title" in data or not partial:
            title = optional_text(data.get("title"), "title")
            if not title:
                raise ValidationError("title is required", field="title")
            clean["title"] = title
        if "description" in data:
            clean["description"] = optional_text(data["description"], "description")
        type_value = data.get("task_type", data.get("type"))
        if type_value is not None:
            clean["task_type"] = parse_enum(TaskType, type_value, "type")
        if data.get("priority") is not None:
            clean["priority"] = parse_enum(TaskPriority, data["priority"], "priority")
        if data.get("status") is not None:
            clean["status"] = parse_enum(TaskStatus, data["status"], "status")
        if "due_at" in data:
            clean["due_at"] = parse_datetime(data["due_at"], "due_at")
        if "ai_executed" in data:
            if not isinstance(data["ai_executed"], bool):
                raise ValidationError("ai_executed must be a boolean", field="ai_executed")
            clean["ai_executed"] = data["ai_executed"]
        if "ai_result" in data:
            clean["ai_result"] = optional_text(data["ai_result"], "ai_result")
        if "lead_id" in data:
            if partial:
                raise ValidationError("lead_id cannot be changed", field="lead_id")
            clean["lead_id"] = optional_text(data["lead_id"], "lead_id")
        return clean

    def create_task(self, data: Mapping[str, Any]) -> Task:
        """Create a new task, optionally linked to a lead."""
        clean = self._clean(data, partial=False)
        status = clean.pop("status", TaskStatus.PENDING)
        if status in CLOSED_STATUSES:
            raise ValidationError("New tasks must be PENDING or IN_PROGRESS", field="status")

        now = self.clock()
        task = Task(id=new_id(), status=status, created_at=now, updated_at=now, **clean)
        self.db.save_task(task)

        logger.info(f"Created task: {task.title} (due: {task.due_at})")
        return task

    def get_task(self, task_id: str) -> Task:
        task = self.db.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def update_task(self, task_id: str, data: Mapping[str, Any]) -> Task:
        """Patch a task. Closed tasks never go back to an open status."""
        clean = self._clean(data, partial=True)
        task = self.get_task(task_id)
        now = self.clock()

        status = clean.pop("status", None)
        if status is not None and status is not task.status:
            if not task.is_open:
                raise ValidationError(
                    f"Task is {task.status.value} and cannot change status", field="status"
                )

        for key, value in clean.items():
            setattr(task, key, value)
        if status is not None:
            task.status = status
            if status is TaskStatus.COMPLETED and task.completed_at is None:
                task.completed_at = now

        task.updated_at = now
        return self.db.save_task(task)

    def complete_task(self, task_id: str) -> Task:
        """Mark a task as completed. Completing twice keeps the first completedAt."""
        task = self.get_task(task_id)
        if task.status is TaskStatus.COMPLETED:
            return task
        if task.status is TaskStatus.CANCELLED:
            raise ValidationError("Cancelled tasks cannot be completed", field="status")

        now = self.clock()
        task.status = TaskStatus.COMPLETED
        task.completed_at = now
        task.updated_at = now
        self.db.save_task(task)
        logger.info(f"Completed task {task.id}: {task.title}")
        return task

    def cancel_task(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        if task.status is TaskStatus.CANCELLED:
            return task
        if task.status is TaskStatus.COMPLETED:
            raise ValidationError("Completed tasks cannot be cancelled", field="status")

        task.status = TaskStatus.CANCELLED
        task.updated_at = self.clock()
        return self.db.save_task(task)

    def delete_task(self, task_id: str):
        """Delete a task permanently."""
        if not self.db.delete_task(task_id):
            raise NotFoundError("Task", task_id)

    def list_tasks(
        self,
        status: Any = None,
        priority: Any = None,
        task_type: Any = None,
        lead_id: Optional[str] = None,
    ) -> List[Task]:
        tasks = self.db.list_tasks(
            statuses=[parse_enum(TaskStatus, status, "status")] if status else None,
            priority=parse_enum(TaskPriority, priority, "priority") if priority else None,
            task_type=parse_enum(TaskType, task_type, "type") if task_type else None,
            lead_id=lead_id,
        )
        return prioritize(tasks)

    def pending_queue(self, limit: Optional[int] = None) -> List[Task]:
        """PENDING tasks in work order."""
        tasks = prioritize(self.db.list_tasks(statuses=[TaskStatus.PENDING]))
        return tasks[:limit] if limit is not None else tasks

    def next_actions(self) -> List[Task]:
        return self.pending_queue(limit=self.config.next_actions_limit)

    def overdue(self, now: Optional[datetime] = None) -> List[Task]:
        """Open tasks past their due date, most overdue first."""
        now = now or self.clock()
        tasks = self.db.list_tasks(statuses=list(OPEN_STATUSES), due_before=now)
        return sorted(tasks, key=lambda t: (t.due_at, -t.priority.rank))

    def counts(self) -> Dict[str, int]:
        return {
            "pending": len(self.db.list_tasks(statuses=[TaskStatus.PENDING])),
            "overdue": len(self.overdue()),
        }
