"""Tests for the CLI interface.

Covers --help output, invalid args, and every command end to end via
CliRunner against a temporary SQLite store.
"""

from __future__ import annotations

import re
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from dev3 import __version__
from dev3.cli import app
from dev3.persistence import open_store
from dev3.schemas.config import Dev3Config, StoreConfig
from dev3.schemas.voters import Voter

# NO_COLOR=1 prevents Rich from injecting ANSI codes inside option names,
# which breaks substring matching in CI (headless, no TTY).
# COLUMNS=200 prevents wrapping that could split a flag across lines.
runner = CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})

_LOAD_CONFIG = "dev3.cli._load_config"


# ── Factories ──────────────────────────────────────────────────────


def _config(tmp_path: Path) -> Dev3Config:
    return Dev3Config(store=StoreConfig(db_path=str(tmp_path / "cli.db")))


def _invoke(tmp_path: Path, args: list[str], **kwargs):
    with patch(_LOAD_CONFIG, return_value=_config(tmp_path)):
        return runner.invoke(app, args, **kwargs)


def _create(tmp_path: Path, title: str = "Adopt flags", category: str = "process") -> str:
    result = _invoke(tmp_path, [
        "decisions", "create",
        "--title", title,
        "--description", "Gate launches behind flags",
        "--category", category,
    ])
    assert result.exit_code == 0, result.output
    match = re.search(r"Decision created: (\S+)", result.output)
    assert match
    return match.group(1)


def _respond(tmp_path: Path, decision_id: str, voter: str, vote: str, *extra: str):
    return _invoke(tmp_path, [
        "respond", decision_id,
        "--voter", voter,
        "--vote", vote,
        "--confidence", "80",
        "--reasoning", f"{voter} weighed it",
        *extra,
    ])


# ══════════════════════════════════════════════════════════════════
# Help and version
# ══════════════════════════════════════════════════════════════════


class TestHelp:

    def test_main_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("voters", "decisions", "respond", "consensus", "stats", "config", "serve"):
            assert command in result.output

    def test_decisions_help(self):
        result = runner.invoke(app, ["decisions", "--help"])
        assert result.exit_code == 0
        for command in ("create", "list", "show", "update", "delete", "export"):
            assert command in result.output

    def test_respond_help(self):
        result = runner.invoke(app, ["respond", "--help"])
        assert result.exit_code == 0
        assert "--voter" in result.output
        assert "--confidence" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestInvalidArgs:

    def test_bad_category(self, tmp_path):
        result = _invoke(tmp_path, [
            "decisions", "create", "--title", "t", "--description", "d",
            "--category", "marketing",
        ])
        assert result.exit_code != 0

    def test_bad_vote(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _respond(tmp_path, decision_id, "grok", "maybe")
        assert result.exit_code != 0

    def test_bad_voter(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _respond(tmp_path, decision_id, "gemini", "approve")
        assert result.exit_code != 0


# ══════════════════════════════════════════════════════════════════
# Commands
# ══════════════════════════════════════════════════════════════════


class TestVotersCommand:

    def test_lists_voters(self):
        result = runner.invoke(app, ["voters"])
        assert result.exit_code == 0
        assert "Grok" in result.output
        assert "ChatGPT" in result.output
        assert "Claude" in result.output
        assert "Ethics & Restraint" in result.output


class TestDecisionsCommands:

    def test_create_and_list(self, tmp_path):
        _create(tmp_path, title="First proposal")
        _create(tmp_path, title="Second proposal")

        result = _invoke(tmp_path, ["decisions", "list"])
        assert result.exit_code == 0
        assert result.output.index("Second proposal") < result.output.index("First proposal")
        assert "0/3" in result.output

    def test_list_empty(self, tmp_path):
        result = _invoke(tmp_path, ["decisions", "list"])
        assert result.exit_code == 0
        assert "No decisions found." in result.output

    def test_list_status_filter(self, tmp_path):
        _create(tmp_path, title="Still pending")
        result = _invoke(tmp_path, ["decisions", "list", "--status", "deadlock"])
        assert "No decisions found." in result.output

    def test_show_by_prefix(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _invoke(tmp_path, ["decisions", "show", decision_id[:8]])
        assert result.exit_code == 0
        assert decision_id in result.output
        assert "Adopt flags" in result.output
        assert "Awaiting: Grok, ChatGPT, Claude" in result.output

    def test_show_unknown(self, tmp_path):
        result = _invoke(tmp_path, ["decisions", "show", "nope"])
        assert result.exit_code == 1
        assert "Decision not found: nope" in result.output

    def test_update(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _invoke(tmp_path, [
            "decisions", "update", decision_id, "--status", "deadlock", "--priority", "low",
        ])
        assert result.exit_code == 0
        assert "Decision updated" in result.output

        shown = _invoke(tmp_path, ["decisions", "show", decision_id])
        assert "deadlock" in shown.output
        assert "low" in shown.output

    def test_update_rejects_non_deadlock_status(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _invoke(tmp_path, [
            "decisions", "update", decision_id, "--status", "consensus_reached",
        ])
        assert result.exit_code == 1
        assert "cannot be set by an update" in result.output

        shown = _invoke(tmp_path, ["decisions", "show", decision_id])
        assert "pending" in shown.output
        assert "consensus_reached" not in shown.output

    def test_update_nothing(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _invoke(tmp_path, ["decisions", "update", decision_id])
        assert result.exit_code == 1
        assert "Nothing to update." in result.output

    def test_delete(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _invoke(tmp_path, ["decisions", "delete", decision_id, "--yes"])
        assert result.exit_code == 0
        assert "Decision deleted" in result.output
        assert "No decisions found." in _invoke(tmp_path, ["decisions", "list"]).output

    def test_delete_cancelled(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _invoke(tmp_path, ["decisions", "delete", decision_id], input="n\n")
        assert "Cancelled." in result.output
        assert _invoke(tmp_path, ["decisions", "show", decision_id]).exit_code == 0

    def test_export_markdown(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _invoke(tmp_path, ["decisions", "export", decision_id])
        assert result.exit_code == 0
        assert "# Decision: Adopt flags" in result.output
        assert "## Metadata" in result.output

    def test_export_json(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _invoke(tmp_path, ["decisions", "export", decision_id, "--format", "json"])
        assert result.exit_code == 0
        assert '"title": "Adopt flags"' in result.output
        assert '"status": "pending"' in result.output

    def test_export_bad_format(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _invoke(tmp_path, ["decisions", "export", decision_id, "--format", "pdf"])
        assert result.exit_code == 1
        assert "Invalid format" in result.output


class TestDeliberationCommands:

    def test_respond(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _respond(tmp_path, decision_id, "grok", "approve", "--risk", "Flag debt")
        assert result.exit_code == 0
        assert "Recorded Grok: APPROVE (80%)" in result.output
        assert "1/3 voters responded" in result.output

    def test_counts_follow_store_voters(self, tmp_path):
        decision_id = _create(tmp_path)

        async def _grok_only(config):
            return await open_store(config, voters=(Voter.GROK,))

        with patch("dev3.cli.open_store", side_effect=_grok_only):
            result = _respond(tmp_path, decision_id, "grok", "approve")
            listed = _invoke(tmp_path, ["decisions", "list"])
        assert "1/1 voters responded" in result.output
        assert "status deliberating" in result.output
        assert "1/1" in listed.output

    def test_respond_bad_confidence(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _invoke(tmp_path, [
            "respond", decision_id, "--voter", "grok", "--vote", "approve",
            "--confidence", "101", "--reasoning", "sure",
        ])
        assert result.exit_code == 1
        assert "confidence" in result.output

    def test_third_response_moves_to_deliberating(self, tmp_path):
        decision_id = _create(tmp_path)
        _respond(tmp_path, decision_id, "grok", "approve")
        _respond(tmp_path, decision_id, "chatgpt", "approve")
        result = _respond(tmp_path, decision_id, "claude", "reject")
        assert "3/3 voters responded" in result.output
        assert "status deliberating" in result.output

    def test_consensus_incomplete(self, tmp_path):
        decision_id = _create(tmp_path)
        _respond(tmp_path, decision_id, "grok", "approve")
        result = _invoke(tmp_path, ["consensus", "reach", decision_id])
        assert result.exit_code == 1
        assert "Cannot reach consensus: waiting on ChatGPT, Claude" in result.output
        assert "Responded: Grok" in result.output

    def test_consensus_reach_and_show(self, tmp_path):
        decision_id = _create(tmp_path)
        _respond(tmp_path, decision_id, "grok", "approve", "--recommend", "Add kill switch")
        _respond(tmp_path, decision_id, "chatgpt", "approve")
        _respond(tmp_path, decision_id, "claude", "reject")

        result = _invoke(tmp_path, ["consensus", "reach", decision_id])
        assert result.exit_code == 0
        assert "APPROVED" in result.output
        assert "2 approve · 1 reject · 0 abstain" in result.output
        assert "Add kill switch" in result.output

        shown = _invoke(tmp_path, ["consensus", "show", decision_id])
        assert shown.exit_code == 0
        assert "APPROVED" in shown.output

    def test_consensus_show_none(self, tmp_path):
        decision_id = _create(tmp_path)
        result = _invoke(tmp_path, ["consensus", "show", decision_id])
        assert result.exit_code == 1
        assert "No consensus reached yet." in result.output


class TestStatsAndConfig:

    def test_stats(self, tmp_path):
        _create(tmp_path, category="security")
        result = _invoke(tmp_path, ["stats"])
        assert result.exit_code == 0
        assert "Total decisions: 1" in result.output
        assert "security" in result.output

    def test_config_show(self, tmp_path):
        result = _invoke(tmp_path, ["config", "show"])
        assert result.exit_code == 0
        assert "sqlite" in result.output
        assert "cli.db" in result.output
        assert "8430" in result.output

    def test_config_error_exits(self):
        with patch("dev3.cli.load_config", side_effect=ValueError("Unknown store backend")):
            result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 1
        assert "Error loading config" in result.output
