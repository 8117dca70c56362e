"""Tests for pipeline configuration loading."""

import json

from hermes_engine.core.config import PipelineConfig, PipelineConfigManager


class TestPipelineConfigManager:
    """Tests for PipelineConfigManager."""

    def test_defaults(self, temp_data_dir):
        config = PipelineConfigManager(temp_data_dir / "config.json").config
        assert config.qualify_threshold == 15
        assert config.followup_window_days == 2

    def test_round_trip(self, temp_data_dir):
        path = temp_data_dir / "config.json"
        manager = PipelineConfigManager(path)
        manager.config.qualify_threshold = 40
        manager.save_config()

        assert json.loads(path.read_text())["qualify_threshold"] == 40
        assert PipelineConfigManager(path).config.qualify_threshold == 40

    def test_env_override(self, temp_data_dir, monkeypatch):
        monkeypatch.setenv("HERMES_QUALIFY_THRESHOLD", "25")
        monkeypatch.setenv("HERMES_FOLLOWUP_WINDOW_DAYS", "soon")
        config = PipelineConfigManager(temp_data_dir / "config.json").config

        assert config.qualify_threshold == 25
        assert config.followup_window_days == 2

    def test_threshold_drives_qualification(self, engine, lead):
        engine.leads.config = PipelineConfig(qualify_threshold=50)
        assert engine.leads.auto_qualify(lead.id, 20, []).status.value == "ARCHIVED"
