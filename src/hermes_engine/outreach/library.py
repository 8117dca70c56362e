"""Stored outreach templates."""

import logging
import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..core.errors import NotFoundError, ValidationError, parse_enum
from ..storage.database import PipelineDatabase
from ..storage.models import MessageChannel, Template, TemplateType, new_id
from ..tasks.background import BackgroundWorker
from .templates import RenderedTemplate, extract_variables, render

logger = logging.getLogger(__name__)

TEMPLATE_FIELDS = {
    "name", "description", "template_type", "type", "channel", "subject",
    "content", "variables", "is_active",
}


# Seeded on first use of an empty library
DEFAULT_TEMPLATES = [
    {
        "name": "Reddit Initial Outreach",
        "template_type": TemplateType.INITIAL_OUTREACH,
        "channel": MessageChannel.REDDIT_DM,
        "subject": "",
        "content": (
            "Hey {{author}},\n\n"
            "I saw your post about {{title}} and it caught my attention.\n\n"
            "I'm a freelance developer working in {{stack}} and I've built similar "
            "projects before. I'd love to help you bring this to life.\n\n"
            "A few quick thoughts:\n"
            "- {{personalized_insight}}\n"
            "- I work async and can start this week\n"
            "- Happy to share relevant portfolio pieces\n\n"
            "Would you be open to a quick chat about the project scope?"
        ),
    },
    {
        "name": "Follow-up Day 2",
        "template_type": TemplateType.FOLLOWUP_1,
        "channel": MessageChannel.REDDIT_DM,
        "subject": "",
        "content": (
            "Hey {{author}},\n\n"
            "Just following up on my message about {{title}}.\n\n"
            "I specialize in {{stack}}, I've shipped {{similar_project}} before, and "
            "I can start immediately.\n\n"
            "Happy to jump on a quick call or just chat here if that's easier."
        ),
    },
    {
        "name": "Follow-up Day 7",
        "template_type": TemplateType.FOLLOWUP_2,
        "channel": MessageChannel.REDDIT_DM,
        "subject": "",
        "content": (
            "Hey {{author}},\n\n"
            "Last ping from me! If you've already found someone for {{title}}, no "
            "worries at all.\n\n"
            "If you're still looking or want a second opinion, I'm here. Good luck "
            "with the project!"
        ),
    },
    {
        "name": "Proposal Template",
        "template_type": TemplateType.PROPOSAL,
        "channel": None,
        "subject": "Proposal: {{title}}",
        "content": (
            "# Proposal: {{title}}\n\n"
            "## Understanding\n\n{{project_understanding}}\n\n"
            "## Proposed Solution\n\n{{solution}}\n\n"
            "## Timeline\n\n{{timeline}}\n\n"
            "## Investment\n\n**Total: {{amount}} {{currency}}**\n\n"
            "Payment terms: {{payment_terms}}\n\n"
            "## Next Steps\n\n"
            "1. Review this proposal\n"
            "2. 15-min call to align on details\n"
            "3. Sign agreement and deposit\n"
            "4. Kick off!"
        ),
    },
]


def _slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


def validate_variables(variables: Any) -> Dict[str, str]:
    """Render inputs must map names to strings."""
    if variables is None:
        return {}
    if not isinstance(variables, Mapping):
        raise ValidationError("variables must be an object of strings", field="variables")
    for key, value in variables.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ValidationError(
                f"Variable {key!r} must map to a string", field="variables"
            )
    return dict(variables)


class TemplateLibrary:
    """Template CRUD plus rendering with optional usage counting."""

    def __init__(
        self,
        db: PipelineDatabase,
        worker: Optional[BackgroundWorker] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.worker = worker or BackgroundWorker()
        self.clock = clock or datetime.now

    def seed_defaults(self) -> int:
        """Install the default templates into an empty library."""
        if self.db.count_templates() > 0:
            return 0
        now = self.clock()
        for data in DEFAULT_TEMPLATES:
            self.db.save_template(Template(
                id=_slug(data["name"]),
                name=data["name"],
                template_type=data["template_type"],
                channel=data["channel"],
                subject=data["subject"],
                content=data["content"],
                variables=extract_variables(data["subject"], data["content"]),
                created_at=now,
                updated_at=now,
            ))
        logger.info(f"Seeded {len(DEFAULT_TEMPLATES)} default templates")
        return len(DEFAULT_TEMPLATES)

    def _clean(self, data: Mapping[str, Any], partial: bool) -> Dict[str, Any]:
        unknown = set(data) - TEMPLATE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown template fields: {', '.join(sorted(unknown))}")

        clean: Dict[str, Any] = {}
        for key in ("name", "content"):
            if key in data or not partial:
                value = data.get(key)
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError(f"{key} is required", field=key)
                clean[key] = value if key == "content" else value.strip()

        type_value = data.get("template_type", data.get("type"))
        if type_value is not None:
            clean["template_type"] = parse_enum(TemplateType, type_value, "type")
        elif not partial:
            raise ValidationError("type is required", field="type")

        if "channel" in data:
            channel = data["channel"]
            clean["channel"] = parse_enum(MessageChannel, channel, "channel") if channel else None
        if "subject" in data:
            subject = data["subject"]
            if subject is not None and not isinstance(subject, str):
                raise ValidationError("subject must be a string", field="subject")
            clean["subject"] = subject or ""
        if "description" in data:
            clean["description"] = data["description"]
        if "is_active" in data:
            if not isinstance(data["is_active"], bool):
                raise ValidationError("is_active must be a boolean", field="is_active")
            clean["is_active"] = data["is_active"]
        if "variables" in data and data["variables"] is not None:
            variables = data["variables"]
            if isinstance(variables, str) or not all(isinstance(v, str) for v in variables):
                raise ValidationError("variables must be a list of strings", field="variables")
            clean["variables"] = list(variables)
        return clean

    def create_template(self, data: Mapping[str, Any]) -> Template:
        clean = self._clean(data, partial=False)
        now = self.clock()
        template = Template(id=new_id(), created_at=now, updated_at=now, **clean)
        if "variables" not in clean:
            template.variables = extract_variables(template.subject, template.content)
        self.db.save_template(template)
        logger.info(f"Created template {template.id}: {template.name}")
        return template

    def update_template(self, template_id: str, data: Mapping[str, Any]) -> Template:
        clean = self._clean(data, partial=True)
        template = self.get_template(template_id)
        for key, value in clean.items():
            setattr(template, key, value)
        if "variables" not in clean and ("subject" in clean or "content" in clean):
            template.variables = extract_variables(template.subject, template.content)
        template.updated_at = self.clock()
        self.db.save_template(template)
        return template

    def get_template(self, template_id: str) -> Template:
        template = self.db.get_template(template_id)
        if template is None:
            raise NotFoundError("Template", template_id)
        return template

    def list_templates(
        self,
        template_type: Any = None,
        channel: Any = None,
        active: Optional[bool] = None,
    ) -> List[Template]:
        return self.db.list_templates(
            template_type=parse_enum(TemplateType, template_type, "type") if template_type else None,
            channel=parse_enum(MessageChannel, channel, "channel") if channel else None,
            active=active,
        )

    def delete_template(self, template_id: str):
        if not self.db.delete_template(template_id):
            raise NotFoundError("Template", template_id)
        logger.info(f"Deleted template {template_id}")

    def render(
        self,
        template_id: str,
        variables: Any = None,
        record_usage: bool = False,
    ) -> RenderedTemplate:
        """Render a stored template. Previews leave usageCount alone."""
        variables = validate_variables(variables)
        template = self.get_template(template_id)
        rendered = render(template, variables)
        if record_usage:
            self.record_usage(template.id)
        return rendered

    def record_usage(self, template_id: str) -> bool:
        """Count one real use of a template, in the background."""
        return self.worker.submit(self.db.increment_template_usage, template_id)
