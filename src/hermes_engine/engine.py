"""Wires every pipeline component around one database."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .core.config import PipelineConfig
from .enrichment.hunter import HunterClient
from .leads.mutator import LeadMutator
from .leads.service import LeadService
from .outreach.delivery import ResendClient
from .outreach.library import TemplateLibrary
from .outreach.service import OutreachService
from .outreach.tracker import MessageTracker
from .reporting.daily_stats import DailyStatsRecorder
from .reporting.digest import AgentReport
from .reporting.funnel import PipelineReport
from .storage.database import PipelineDatabase
from .storage.locks import LeadLockRegistry
from .tasks.background import BackgroundWorker
from .tasks.scheduler import DailyStatsRunner
from .tasks.task_manager import TaskManager

logger = logging.getLogger(__name__)


class Engine:
    """One shared config, clock, lock registry and worker for all components."""

    def __init__(
        self,
        db_path: Optional[Path] = None,
        config: Optional[PipelineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        hunter: Optional[HunterClient] = None,
        delivery: Optional[ResendClient] = None,
    ):
        self.config = config or PipelineConfig()
        self.clock = clock or datetime.now
        self.db = PipelineDatabase(db_path)
        self.worker = BackgroundWorker()
        self.locks = LeadLockRegistry()
        self.mutator = LeadMutator(self.db, self.locks, self.clock)

        self.leads = LeadService(self.db, self.config, self.mutator, hunter, self.clock)
        self.tasks = TaskManager(self.db, self.config, self.clock)
        self.templates = TemplateLibrary(self.db, self.worker, self.clock)
        self.tracker = MessageTracker(self.db, self.mutator)
        self.outreach = OutreachService(self.db, self.tracker, self.templates, delivery)

        self.pipeline = PipelineReport(self.db, self.tasks)
        self.agent = AgentReport(self.db, self.config, self.tasks, self.clock)
        self.daily_stats = DailyStatsRecorder(self.db, self.clock)
        self.stats_runner = DailyStatsRunner(
            self.daily_stats, self.config.daily_stats_interval_seconds
        )

        self.templates.seed_defaults()

    def start(self, periodic_stats: bool = True):
        self.worker.start()
        if periodic_stats:
            self.stats_runner.start()
        logger.info(f"Engine started on {self.db.db_path}")

    def stop(self):
        self.stats_runner.stop()
        self.worker.drain()
        self.worker.stop()
        logger.info("Engine stopped")
