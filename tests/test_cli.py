"""Tests for the chunkflow CLI via CliRunner."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from chunkflow import __version__
from chunkflow.cli import app
from chunkflow.errors import BackendError
from chunkflow.schemas.streaming import TokenUsage
from chunkflow.streaming import StreamingResult

# NO_COLOR=1 keeps Rich from injecting ANSI codes; COLUMNS=200 avoids wrapping
runner = CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})

_STREAM_TEXT = "chunkflow.orchestrator.stream_text"


def _write_conversation(tmp_path: Path, messages: list[dict]) -> Path:
    path = tmp_path / "conversation.json"
    path.write_text(json.dumps(messages), encoding="utf-8")
    return path


def _words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


# ── Root ─────────────────────────────────────────────────────


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"chunkflow {__version__}" in result.output

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("limits", "plan", "run"):
            assert command in result.output


# ── limits ───────────────────────────────────────────────────


class TestLimitsCommands:
    def test_show_known(self):
        result = runner.invoke(app, ["limits", "show", "gpt-4o"])
        assert result.exit_code == 0
        assert "Limits for model gpt-4o:" in result.output
        assert "16,384" in result.output

    def test_show_unknown(self):
        result = runner.invoke(app, ["limits", "show", "gpt-99-ultra", "--provider", "OpenAI"])
        assert result.exit_code == 0
        assert "not in the limits table" in result.output
        assert "4,096" in result.output

    def test_list(self):
        result = runner.invoke(app, ["limits", "list"])
        assert result.exit_code == 0
        assert "Model Token Limits" in result.output
        assert "gemini-1.5-pro" in result.output
        assert "13 models" in result.output

    def test_check_fits(self):
        result = runner.invoke(app, ["limits", "check", "gpt-4o", "4000"])
        assert result.exit_code == 0
        assert "4,000 tokens fits gpt-4o" in result.output

    def test_check_over_ceiling(self):
        result = runner.invoke(
            app, ["limits", "check", "claude-3-5-sonnet-20241022", "500000"]
        )
        assert result.exit_code == 0
        assert "Requested 500000 tokens" in result.output
        assert "clamped to 8,192 tokens" in result.output


# ── plan ─────────────────────────────────────────────────────


class TestPlanCommand:
    def test_single_chunk(self, tmp_path):
        path = _write_conversation(tmp_path, [{"role": "user", "content": "Hello"}])
        result = runner.invoke(app, ["plan", str(path)])
        assert result.exit_code == 0
        assert "Chunk plan (1 chunks)" in result.output

    def test_several_chunks(self, tmp_path):
        path = _write_conversation(tmp_path, [
            {"role": "user", "content": _words(200)},
            {"role": "assistant", "content": _words(200)},
            {"role": "user", "content": _words(10)},
        ])
        result = runner.invoke(app, ["plan", str(path), "-m", "500", "-r", "100"])
        assert result.exit_code == 0
        assert "Chunk plan (2 chunks)" in result.output
        assert "1/2" in result.output
        assert "2/2" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["plan", str(tmp_path / "nope.json")])
        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        result = runner.invoke(app, ["plan", str(path)])
        assert result.exit_code == 1
        assert "Invalid conversation file" in result.output

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "obj.json"
        path.write_text('{"role": "user", "content": "hi"}', encoding="utf-8")
        result = runner.invoke(app, ["plan", str(path)])
        assert result.exit_code == 1
        assert "expected a JSON array" in result.output

    def test_invalid_message(self, tmp_path):
        path = _write_conversation(tmp_path, [{"role": "robot", "content": "hi"}])
        result = runner.invoke(app, ["plan", str(path)])
        assert result.exit_code == 1


# ── run ──────────────────────────────────────────────────────


class TestRunCommand:
    def test_streams_answer(self, tmp_path):
        path = _write_conversation(tmp_path, [{"role": "user", "content": "Hello"}])
        mock_stream = AsyncMock(
            return_value=StreamingResult.from_text("Hi there", usage=TokenUsage.of(120, 3))
        )
        with patch(_STREAM_TEXT, mock_stream):
            result = runner.invoke(app, ["run", str(path), "--model", "OpenAI/gpt-4o"])

        assert result.exit_code == 0
        assert "Hi there" in result.output
        assert "finish: stop" in result.output
        assert "prompt 120" in result.output

        args = mock_stream.call_args
        assert args.args[1] == "OpenAI/gpt-4o"
        assert args.kwargs["chat_mode"] == "build"

    def test_discuss_flag(self, tmp_path):
        path = _write_conversation(tmp_path, [{"role": "user", "content": "Hello"}])
        mock_stream = AsyncMock(return_value=StreamingResult.from_text("ok"))
        with patch(_STREAM_TEXT, mock_stream):
            result = runner.invoke(app, ["run", str(path), "--discuss"])

        assert result.exit_code == 0
        assert mock_stream.call_args.kwargs["chat_mode"] == "discuss"

    def test_backend_error_exit_code(self, tmp_path):
        path = _write_conversation(tmp_path, [{"role": "user", "content": "Hello"}])
        with patch(_STREAM_TEXT, AsyncMock(side_effect=BackendError("provider down"))):
            result = runner.invoke(app, ["run", str(path)])

        assert result.exit_code == 1
        assert "Error: provider down" in result.output
