"""Tests for the gen-pr command line entry point."""

from __future__ import annotations

import os

from genpr import cli, pipeline
from genpr.errors import CommandError, IssueNotFoundError
from genpr.pipeline import PipelineResult


def test_main_returns_one_on_gen_pr_error(monkeypatch, tmp_path, caplog):
    monkeypatch.chdir(tmp_path)

    def failing_run(options):
        raise IssueNotFoundError("Failed to fetch issue data for issue #4")

    monkeypatch.setattr(pipeline, "run", failing_run)

    status = cli.main(["-i", "4", "--logs-dir", str(tmp_path / "logs")])

    assert status == 1
    assert "Failed to fetch issue data" in caplog.text
    manifests = list((tmp_path / "logs").glob("*/manifest.log"))
    assert len(manifests) == 1
    assert "Status: failed" in manifests[0].read_text(encoding="utf-8")


def test_main_passes_merged_options_to_pipeline(monkeypatch, tmp_path, capsys):
    work_dir = tmp_path / "repo"
    work_dir.mkdir()
    (tmp_path / "gen-pr.config.yml").write_text("test-command: npm test\nnode-runtime: bun\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    seen = {}

    def fake_run(options):
        seen["options"] = options
        seen["cwd"] = os.getcwd()
        return PipelineResult(branch="b", title="t", body="", pr_url="https://github.com/acme/widgets/pull/1")

    monkeypatch.setattr(pipeline, "run", fake_run)

    status = cli.main(["-i", "8", "-w", str(work_dir), "--logs-dir", str(tmp_path / "logs")])

    assert status == 0
    options = seen["options"]
    assert options.issue_number == 8
    assert options.test_command == "npm test"
    assert options.node_runtime == "bunx"
    assert os.path.realpath(seen["cwd"]) == os.path.realpath(work_dir)
    assert "https://github.com/acme/widgets/pull/1" in capsys.readouterr().out


def test_main_rejects_invalid_config_file(monkeypatch, tmp_path):
    (tmp_path / "gen-pr.config.yml").write_text("[not a mapping", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    assert cli.main(["-i", "1"]) == 1


def test_main_reports_failed_git_push_without_traceback(monkeypatch, tmp_path, caplog):
    monkeypatch.chdir(tmp_path)

    def failing_run(options):
        raise CommandError("git push origin gen-pr-2 --no-verify", 128, "remote rejected")

    monkeypatch.setattr(pipeline, "run", failing_run)

    assert cli.main(["-i", "2", "--logs-dir", str(tmp_path / "logs")]) == 1
    assert "git push origin gen-pr-2" in caplog.text
