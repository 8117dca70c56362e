"""Template rendering, lead classification and merge-variable derivation.

Everything here is pure: no storage access, no clocks. Usage counting is
the caller's job (see TemplateLibrary.record_usage).
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional

from ..storage.models import Lead

# {{name}} with optional whitespace inside the braces
PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z0-9_.\-]+)\s*\}\}")

OBSERVATION_LENGTH = 80

DEFAULT_FIRST_NAME = "there"
DEFAULT_COMPANY = "your project"
DEFAULT_PRODUCT = "your product"
DEFAULT_OBSERVATION = "your recent post"
DEFAULT_TITLE = "your post"
DEFAULT_STACK = "React/TypeScript"

WEB3_KEYWORDS = ("web3", "solidity", "blockchain")
HIRING_KEYWORDS = ("[hiring]", "hiring")

STACK_KEYWORDS = (
    ("react", "React"),
    ("typescript", "TypeScript"),
    ("next.js", "Next.js"),
    ("nextjs", "Next.js"),
    ("node", "Node.js"),
    ("python", "Python"),
    ("solidity", "Solidity"),
)


class TemplateBucket(Enum):
    """Default template family picked for a lead."""

    STARTUP = "startup"
    HIRING_POST = "hiring_post"
    WEB3 = "web3"
    FOLLOWUP = "followup"


@dataclass(frozen=True)
class BucketTemplate:
    """A built-in template, addressed by bucket rather than stored id."""

    bucket: TemplateBucket
    subject: str
    content: str

    @property
    def name(self) -> str:
        return self.bucket.value.replace("_", " ").title()


@dataclass(frozen=True)
class RenderedTemplate:
    subject: str
    content: str


BUCKET_TEMPLATES: Dict[TemplateBucket, BucketTemplate] = {
    TemplateBucket.STARTUP: BucketTemplate(
        bucket=TemplateBucket.STARTUP,
        subject="Quick question about {{company}}",
        content=(
            "Hey {{firstName}},\n\n"
            "Saw {{observation}}. Looks like you're building something interesting.\n\n"
            "I'm a freelance developer working in {{stack}}. I've helped a few startups "
            "ship faster without cutting corners.\n\n"
            "Worth a quick 15-min chat to see if I can help?"
        ),
    ),
    TemplateBucket.HIRING_POST: BucketTemplate(
        bucket=TemplateBucket.HIRING_POST,
        subject="Re: {{title}}",
        content=(
            "Hey {{firstName}},\n\n"
            "Your post caught my eye, especially {{observation}}.\n\n"
            "I work in exactly that stack: {{stack}}.\n\n"
            "Quick questions:\n"
            "- Remote async OK?\n"
            "- Timeline you're targeting?\n\n"
            "Happy to jump on a quick call if easier."
        ),
    ),
    TemplateBucket.WEB3: BucketTemplate(
        bucket=TemplateBucket.WEB3,
        subject="Saw {{company}}, quick question",
        content=(
            "Hey {{firstName}},\n\n"
            "Checked out {{product}}: {{observation}}.\n\n"
            "I do Web3 full-stack work, Solidity contracts plus a {{stack}} frontend.\n\n"
            "If you need dev help with audits, new features or the frontend, happy to chat."
        ),
    ),
    TemplateBucket.FOLLOWUP: BucketTemplate(
        bucket=TemplateBucket.FOLLOWUP,
        subject="Re: {{title}}",
        content=(
            "Hey {{firstName}},\n\n"
            "Following up in case my last message got buried.\n\n"
            "Still around if you need help with {{company}}. No worries if the timing "
            "isn't right."
        ),
    ),
}


def render_text(text: str, variables: Mapping[str, str]) -> str:
    """Substitute ``{{name}}`` placeholders.

    Placeholders without a supplied value are left exactly as written.
    """
    if not text:
        return text or ""

    def _replace(match: "re.Match") -> str:
        value = variables.get(match.group(1))
        if value is None:
            return match.group(0)
        return str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, text)


def render(template, variables: Mapping[str, str]) -> RenderedTemplate:
    """Render a stored or built-in template's subject and content."""
    return RenderedTemplate(
        subject=render_text(template.subject or "", variables),
        content=render_text(template.content, variables),
    )


def extract_variables(*texts: str) -> List[str]:
    """Placeholder names in order of first appearance."""
    names: List[str] = []
    for text in texts:
        for name in PLACEHOLDER_PATTERN.findall(text or ""):
            if name not in names:
                names.append(name)
    return names


def classify(lead: Lead) -> TemplateBucket:
    """Pick the default bucket for a lead. First match wins."""
    text = f"{lead.title or ''} {lead.description or ''} {lead.source or ''}".lower()

    if any(keyword in text for keyword in WEB3_KEYWORDS):
        return TemplateBucket.WEB3
    if any(keyword in text for keyword in HIRING_KEYWORDS):
        return TemplateBucket.HIRING_POST
    return TemplateBucket.STARTUP


def first_name(author: Optional[str]) -> str:
    """``u/jane_doe`` -> ``Jane``; ``@bob smith`` -> ``Bob``."""
    if not author:
        return DEFAULT_FIRST_NAME
    handle = re.sub(r"^(u/|@)", "", author.strip())
    tokens = [t for t in re.split(r"[\s_]+", handle) if t]
    if not tokens:
        return DEFAULT_FIRST_NAME
    return tokens[0][:1].upper() + tokens[0][1:]


def _title_head(title: Optional[str]) -> str:
    if not title:
        return ""
    return re.split(r"[-|]", title, maxsplit=1)[0].strip()


def company_name(lead: Lead) -> str:
    return lead.company or _title_head(lead.title) or DEFAULT_COMPANY


def product_name(lead: Lead) -> str:
    return lead.company or _title_head(lead.title) or DEFAULT_PRODUCT


def observation(description: Optional[str]) -> str:
    if not description or not description.strip():
        return DEFAULT_OBSERVATION
    return description.strip()[:OBSERVATION_LENGTH]


def stack(description: Optional[str]) -> str:
    if not description:
        return DEFAULT_STACK
    text = description.lower()
    found: List[str] = []
    for keyword, label in STACK_KEYWORDS:
        if keyword in text and label not in found:
            found.append(label)
    return "/".join(found[:3]) if found else DEFAULT_STACK


def derive_variables(lead: Lead) -> Dict[str, str]:
    """Merge variables every template may draw on."""
    name = first_name(lead.author)
    return {
        "firstName": name,
        "author": name,
        "company": company_name(lead),
        "product": product_name(lead),
        "observation": observation(lead.description),
        "title": lead.title or DEFAULT_TITLE,
        "stack": stack(lead.description),
    }


def bucket_template(bucket: Optional[TemplateBucket], lead: Lead) -> BucketTemplate:
    return BUCKET_TEMPLATES[bucket or classify(lead)]
