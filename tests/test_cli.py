"""Tests for the hermes command line."""

import json
import pytest
from click.testing import CliRunner

from hermes_engine.cli import cli
from hermes_engine.storage.database import PipelineDatabase


@pytest.fixture
def db_path(temp_data_dir):
    return str(temp_data_dir / "cli.db")


@pytest.fixture
def runner():
    return CliRunner()


class TestCli:
    """Tests for the click commands."""

    def test_init(self, runner, db_path):
        result = runner.invoke(cli, ["init", "--db", db_path])
        assert result.exit_code == 0
        assert "Hermes pipeline ready" in result.output

    def test_ingest(self, runner, db_path, temp_data_dir, make_candidate):
        path = temp_data_dir / "leads.json"
        path.write_text(json.dumps([make_candidate(1), make_candidate(2), {"title": "no source"}]))

        result = runner.invoke(cli, ["ingest", str(path), "--db", db_path])

        assert result.exit_code == 0
        assert "Created" in result.output
        assert PipelineDatabase(db_path).count_leads() == 2

    def test_ingest_rejects_non_array(self, runner, db_path, temp_data_dir):
        path = temp_data_dir / "lead.json"
        path.write_text(json.dumps({"title": "one"}))

        result = runner.invoke(cli, ["ingest", str(path), "--db", db_path])
        assert result.exit_code == 1

    def test_qualify_and_funnel(self, runner, db_path, temp_data_dir, make_candidate):
        path = temp_data_dir / "leads.json"
        path.write_text(json.dumps([make_candidate(1)]))
        runner.invoke(cli, ["ingest", str(path), "--db", db_path])
        lead_id = PipelineDatabase(db_path).find_leads()[0].id

        result = runner.invoke(
            cli, ["qualify", lead_id, "--score", "30", "--reason", "+fit", "--db", db_path]
        )
        assert result.exit_code == 0
        assert "QUALIFIED" in result.output

        result = runner.invoke(cli, ["funnel", "--db", db_path])
        assert result.exit_code == 0
        assert "Qualified" in result.output

    def test_qualify_missing_lead(self, runner, db_path):
        result = runner.invoke(cli, ["qualify", "missing", "--score", "30", "--reason", "x", "--db", db_path])
        assert result.exit_code == 1
        assert "not_found" in result.output

    def test_stats_record(self, runner, db_path):
        result = runner.invoke(cli, ["stats", "record", "--date", "2026-03-10", "--db", db_path])
        assert result.exit_code == 0
        assert "leads_scraped: 0" in result.output

    def test_empty_views(self, runner, db_path):
        assert "No leads found" in runner.invoke(cli, ["leads", "--db", db_path]).output
        assert "No pending tasks" in runner.invoke(cli, ["tasks", "--db", db_path]).output
