"""Read-side pipeline reporting: funnel, digest and daily stats."""

from .funnel import PipelineReport, FunnelStage, build_funnel, percentage
from .digest import AgentReport, Digest, day_bounds
from .daily_stats import DailyStatsRecorder

__all__ = [
    "PipelineReport",
    "FunnelStage",
    "build_funnel",
    "percentage",
    "AgentReport",
    "Digest",
    "day_bounds",
    "DailyStatsRecorder",
]
