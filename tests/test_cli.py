"""Tests for the command line interface."""

import json
from datetime import date
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from epoch import __version__
from epoch.cli import main
from epoch.ports.update_checker import UpdateInfo

DAY = "2024-01-01"


@pytest.fixture
def config_file(tmp_path):
    config_file = tmp_path / "epoch.conf"
    with patch("epoch.config.CONFIG_FILE", config_file):
        yield config_file


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "data.json"


@pytest.fixture
def run(config_file, data_file):
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(main, ["--data-file", str(data_file), *args])

    return invoke


class TestAdd:
    def test_add_and_list(self, run, data_file):
        result = run("add", "Buy milk", "--date", DAY)
        assert result.exit_code == 0
        assert result.output == f"Added: Buy milk ({DAY})\n"
        assert data_file.exists()

        result = run("list", "--date", DAY)
        assert result.exit_code == 0
        assert "  1. [ ] Buy milk" in result.output
        assert "0/1 completed (0%)" in result.output

    def test_empty_list(self, run):
        result = run("list", "--date", DAY)
        assert result.output == f"No tasks for {DAY}.\n"

    def test_invalid_title(self, run):
        result = run("add", "   ", "--date", DAY)
        assert result.exit_code == 1
        assert "Error: Task title cannot be empty" in result.output

    def test_invalid_date(self, run):
        result = run("add", "Buy milk", "--date", "2024-13-01")
        assert result.exit_code == 1
        assert "Invalid date" in result.output

    def test_weekly_recurring(self, run):
        run("add", "Standup", "--date", DAY, "--weekly", "mon,wed")

        # 2024-01-03 is a Wednesday, 2024-01-04 a Thursday
        assert "Standup (r)" in run("list", "--date", "2024-01-03").output
        assert "No tasks" in run("list", "--date", "2024-01-04").output

    def test_recurring_until(self, run):
        run("add", "Standup", "--date", DAY, "--daily", "--until", "2024-01-02")
        assert "Standup" in run("list", "--date", "2024-01-02").output
        assert "No tasks" in run("list", "--date", "2024-01-03").output

    def test_unknown_weekday(self, run):
        result = run("add", "Standup", "--weekly", "funday")
        assert result.exit_code == 2
        assert "Unknown weekday" in result.output

    def test_conflicting_frequencies(self, run):
        result = run("add", "Standup", "--daily", "--monthly")
        assert result.exit_code == 2

    def test_until_needs_frequency(self, run):
        result = run("add", "Standup", "--until", "2024-02-01")
        assert result.exit_code == 2


class TestTaskCommands:
    @pytest.fixture(autouse=True)
    def seed(self, run):
        run("add", "Buy milk", "--date", DAY)

    def test_done(self, run):
        result = run("done", "1", "--date", DAY)
        assert result.output == "Buy milk: completed\n"

        listing = run("list", "--date", DAY).output
        assert "[x] Buy milk" in listing
        assert "1/1 completed (100%)" in listing

    @pytest.mark.parametrize(
        "command, marker",
        [("delegate", ">"), ("delay", "~")],
    )
    def test_finished_markers(self, run, command, marker):
        run(command, "1", "--date", DAY)
        assert f"[{marker}] Buy milk" in run("list", "--date", DAY).output

    def test_todo_reopens(self, run):
        run("done", "1", "--date", DAY)
        result = run("todo", "1", "--date", DAY)
        assert result.output == "Buy milk: todo\n"

    def test_start_and_unstart(self, run):
        result = run("start", "1", "--date", DAY)
        assert result.output.startswith("Started: Buy milk at ")
        assert "[*] Buy milk" in run("list", "--date", DAY).output

        result = run("unstart", "1", "--date", DAY)
        assert result.output == "Not started: Buy milk\n"

    def test_unstart_not_started(self, run):
        result = run("unstart", "1", "--date", DAY)
        assert result.exit_code == 1
        assert "not been started" in result.output

    def test_edit(self, run):
        result = run("edit", "1", "Buy oat milk", "--date", DAY)
        assert result.output == "Renamed: Buy oat milk\n"

    def test_subtask_numbering(self, run):
        result = run("sub", "1", "Check fridge", "--date", DAY)
        assert result.output == "Added subtask: Check fridge\n"

        listing = run("list", "--date", DAY).output
        assert "  2.   [ ] Check fridge" in listing
        assert "0/2 completed (0%)" in listing

    def test_rm(self, run):
        assert run("rm", "1", "--date", DAY).output == "Deleted: Buy milk\n"
        assert run("list", "--date", DAY).output == f"No tasks for {DAY}.\n"

    def test_number_out_of_range(self, run):
        result = run("done", "5", "--date", DAY)
        assert result.exit_code == 2
        assert "No task #5" in result.output

    def test_skip_requires_recurring(self, run):
        result = run("skip", "1", "--date", DAY)
        assert result.exit_code == 1
        assert "does not recur" in result.output


class TestRecurringCommands:
    @pytest.fixture(autouse=True)
    def seed(self, run):
        run("add", "Standup", "--date", DAY, "--daily")

    def test_skip(self, run):
        result = run("skip", "1", "--date", "2024-01-02")
        assert result.output == "Skipped Standup on 2024-01-02\n"
        assert "No tasks" in run("list", "--date", "2024-01-02").output
        assert "Standup" in run("list", "--date", "2024-01-03").output

    def test_skip_done_occurrence(self, run):
        run("done", "1", "--date", "2024-01-02")
        run("skip", "1", "--date", "2024-01-02")
        assert "No tasks" in run("list", "--date", "2024-01-02").output

    def test_done_materializes_one_date(self, run, data_file):
        run("done", "1", "--date", "2024-01-02")

        assert "[x] Standup" in run("list", "--date", "2024-01-02").output
        assert "[ ] Standup" in run("list", "--date", "2024-01-03").output
        assert set(json.loads(data_file.read_text())["tasks"]) == {DAY, "2024-01-02"}

    def test_edit_all(self, run):
        run("edit", "1", "Sync", "--date", "2024-01-02", "--scope", "all")
        assert "Sync (r)" in run("list", "--date", DAY).output
        assert "Sync (r)" in run("list", "--date", "2024-01-05").output

    def test_rm_from_today(self, run):
        run("rm", "1", "--date", DAY, "--scope", "from-today")
        assert "No tasks" in run("list", "--date", "2024-01-05").output


class TestTimelineAndUndo:
    def test_timeline(self, run):
        run("add", "Buy milk", "--date", DAY)
        result = run("timeline")
        assert f"Timeline for {date.today().isoformat()}" in result.output
        assert "Created: Buy milk" in result.output

    def test_empty_timeline(self, run):
        assert run("timeline", "--date", DAY).output == f"No activity on {DAY}.\n"

    def test_clear_timeline(self, run):
        run("add", "Buy milk", "--date", DAY)
        run("timeline", "--clear")
        assert "No activity" in run("timeline").output

    def test_undo(self, run):
        run("add", "Buy milk", "--date", DAY)
        run("done", "1", "--date", DAY)

        assert run("undo").output == "Undid state change.\n"
        assert "[ ] Buy milk" in run("list", "--date", DAY).output
        assert run("undo").output == "Undid create.\n"
        assert run("undo").output == "Nothing to undo.\n"


class TestMain:
    def test_version(self, run):
        result = run("--version")
        assert __version__ in result.output

    def test_corrupt_data_file(self, run, data_file):
        data_file.write_text("{oops")
        result = run("list")
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_data_file_from_config(self, config_file, tmp_path):
        data_file = tmp_path / "custom" / "tasks.json"
        config_file.write_text(f"DATA_FILE={data_file}\n")

        result = CliRunner().invoke(main, ["add", "Buy milk", "--date", DAY])
        assert result.exit_code == 0
        assert data_file.exists()

    def test_theme_saved_in_settings(self, run, config_file, data_file):
        config_file.write_text("THEME=light\n")
        run("add", "Buy milk", "--date", DAY)
        assert json.loads(data_file.read_text())["settings"] == {"theme": "light"}

    @patch("epoch.cli.PyPIUpdateChecker")
    def test_check_update_available(self, mock_cls, run):
        mock_cls.return_value.check.return_value = UpdateInfo(True, "0.1.7", "0.2.0")
        result = run("check-update")
        assert "Update available: 0.1.7 -> 0.2.0" in result.output

    @patch("epoch.cli.PyPIUpdateChecker")
    def test_check_update_current(self, mock_cls, run):
        mock_cls.return_value.check.return_value = UpdateInfo(False, "0.1.7", "0.1.7")
        assert run("check-update").output == "Epoch 0.1.7 is up to date.\n"

    @patch("epoch.cli.PyPIUpdateChecker")
    def test_check_update_disabled(self, mock_cls, run, config_file):
        config_file.write_text("CHECK_UPDATES=false\n")
        assert "disabled" in run("check-update").output
        mock_cls.assert_not_called()
