"""Pipeline policy constants and their persistence."""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".hermes-engine"


@dataclass
class PipelineConfig:
    """Policy constants injected into every pipeline component."""

    # Automated qualify: score at or above -> QUALIFIED, else ARCHIVED
    qualify_threshold: int = 15

    # Contacted leads with no response after this many days need a follow-up
    followup_window_days: int = 2

    # Agent-facing queues
    next_actions_limit: int = 10
    next_actions_lead_limit: int = 5
    qualify_queue_limit: int = 10

    # Enrichment
    enrichment_cooldown_hours: int = 24

    # Periodic daily-stats recompute
    daily_stats_interval_seconds: int = 3600

    updated_at: datetime = field(default_factory=datetime.now)


ENV_OVERRIDES = {
    "HERMES_QUALIFY_THRESHOLD": "qualify_threshold",
    "HERMES_FOLLOWUP_WINDOW_DAYS": "followup_window_days",
    "HERMES_NEXT_ACTIONS_LIMIT": "next_actions_limit",
}


class PipelineConfigManager:
    """Load and persist the pipeline configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or DEFAULT_HOME / "pipeline_config.json"
        self.config = self._load_config()

    def _load_config(self) -> PipelineConfig:
        config = PipelineConfig()
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)
                config = PipelineConfig(
                    qualify_threshold=data.get("qualify_threshold", 15),
                    followup_window_days=data.get("followup_window_days", 2),
                    next_actions_limit=data.get("next_actions_limit", 10),
                    next_actions_lead_limit=data.get("next_actions_lead_limit", 5),
                    qualify_queue_limit=data.get("qualify_queue_limit", 10),
                    enrichment_cooldown_hours=data.get("enrichment_cooldown_hours", 24),
                    daily_stats_interval_seconds=data.get("daily_stats_interval_seconds", 3600),
                )
            except Exception as e:
                logger.error(f"Error loading pipeline config: {e}")

        for env_name, attr in ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue
            try:
                setattr(config, attr, int(raw))
            except ValueError:
                logger.warning(f"Ignoring non-integer {env_name}={raw!r}")

        return config

    def save_config(self):
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config.updated_at = datetime.now()
        data = asdict(self.config)
        data["updated_at"] = self.config.updated_at.isoformat()
        with open(self.config_path, "w") as f:
            json.dump(data, f, indent=2)
