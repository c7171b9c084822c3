"""Unit tests for utility functions (clean_scaffold.utils).

Tests cover:
- run_command (success, failure, cwd, stderr, missing executable)
- save_json (use tmp_path)
- ensure_dir
- format_duration
- STAGE_NAMES constants
- Rich output helpers (print_stage_header, print_summary_table, etc.)
"""

from __future__ import annotations

import io
import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from clean_scaffold.utils import (
    STAGE_COUNT,
    STAGE_NAMES,
    ensure_dir,
    format_duration,
    print_error,
    print_stage_header,
    print_step,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
    save_json,
)

PYTHON = sys.executable


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_command(self):
        returncode, stdout, stderr = await run_command([PYTHON, "-c", "print('hello')"])
        assert returncode == 0
        assert stdout == "hello"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_command(self):
        returncode, stdout, stderr = await run_command(
            [PYTHON, "-c", "import sys; sys.exit(3)"]
        )
        assert returncode == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_with_cwd(self, tmp_path: Path):
        returncode, stdout, stderr = await run_command(
            [PYTHON, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )
        assert returncode == 0
        assert Path(stdout).resolve() == tmp_path.resolve()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_returns_stderr(self):
        returncode, stdout, stderr = await run_command(
            [PYTHON, "-c", "import sys; sys.stderr.write('error_msg\\n')"],
        )
        assert "error_msg" in stderr

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_executable_raises(self):
        with pytest.raises(FileNotFoundError):
            await run_command(["nonexistent-binary-12345-xyz"])


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


class TestJson:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_save_object(self, tmp_path: Path):
        path = tmp_path / "nested" / "data.json"
        await save_json({"name": "Shop", "count": 3}, path)
        assert path.exists()
        assert json.loads(path.read_text(encoding="utf-8")) == {"name": "Shop", "count": 3}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_save_list(self, tmp_path: Path):
        path = tmp_path / "ops.json"
        await save_json([{"kind": "write_file"}], path)
        assert json.loads(path.read_text(encoding="utf-8")) == [{"kind": "write_file"}]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_save_serialises_paths(self, tmp_path: Path):
        path = tmp_path / "paths.json"
        await save_json({"root": Path("/srv/Shop")}, path)
        assert json.loads(path.read_text(encoding="utf-8"))["root"] == str(Path("/srv/Shop"))


# ---------------------------------------------------------------------------
# ensure_dir / format_duration
# ---------------------------------------------------------------------------


class TestEnsureDir:
    @pytest.mark.unit
    def test_creates_nested(self, tmp_path: Path):
        target = tmp_path / "a" / "b" / "c"
        assert ensure_dir(target) == target
        assert target.is_dir()

    @pytest.mark.unit
    def test_existing_is_fine(self, tmp_path: Path):
        ensure_dir(tmp_path)
        assert tmp_path.is_dir()


class TestFormatDuration:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (3.7, "3.7s"),
            (0, "0.0s"),
            (-5, "0.0s"),
            (65.2, "1m 5s"),
            (3661.0, "1h 1m 1s"),
        ],
    )
    def test_format(self, seconds: float, expected: str):
        assert format_duration(seconds) == expected


# ---------------------------------------------------------------------------
# Stage names and Rich output helpers
# ---------------------------------------------------------------------------


class TestStageNames:
    @pytest.mark.unit
    def test_eight_stages(self):
        assert STAGE_COUNT == 8
        assert sorted(STAGE_NAMES) == list(range(1, 9))
        assert STAGE_NAMES[1] == "Checking prerequisites"
        assert STAGE_NAMES[8] == "Creating starter files"


class TestOutputHelpers:
    @pytest.mark.unit
    def test_print_stage_header(self):
        with patch("clean_scaffold.utils.console") as mock_console:
            print_stage_header(3, "Creating projects")
        rule = mock_console.print.call_args_list[-1][0][0]
        assert "[3/8] Creating projects..." in str(rule.title)

    @pytest.mark.unit
    def test_print_summary_table(self):
        with patch("clean_scaffold.utils.console") as mock_console:
            print_summary_table({"Solution Name": "Shop"}, title="Configuration")
        table = mock_console.print.call_args_list[0][0][0]
        assert table.title == "Configuration"
        assert table.row_count == 1

    @pytest.mark.unit
    def test_summary_table_values_are_literal(self):
        buffer = io.StringIO()
        with patch("clean_scaffold.utils.console", Console(file=buffer, width=120)):
            print_summary_table({"Framework": "net[/8]", "Output": "[bold]out"})
        output = buffer.getvalue()
        assert "net[/8]" in output
        assert "[bold]out" in output

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("helper", "style"),
        [
            (print_success, "green"),
            (print_error, "red"),
            (print_warning, "yellow"),
        ],
    )
    def test_message_helpers_style(self, helper, style: str):
        with patch("clean_scaffold.utils.console") as mock_console:
            helper("message")
        printed = mock_console.print.call_args[0][0]
        assert "message" in printed
        assert style in printed

    @pytest.mark.unit
    def test_print_step(self):
        with patch("clean_scaffold.utils.console") as mock_console:
            print_step("Created Shop.Domain")
        assert "✓" in mock_console.print.call_args[0][0]
