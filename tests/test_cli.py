"""Tests for the command-line interface."""

import os
import shutil

import pytest
from click.testing import CliRunner

from taskbuffer import __version__
from taskbuffer import cli
from taskbuffer.cli import main
from taskbuffer.state import CurrentTask, StateStore

requires_rg = pytest.mark.skipif(shutil.which("rg") is None, reason="ripgrep not installed")


class TestCLI:
    """Test commands against a temporary vault."""

    @pytest.fixture(autouse=True)
    def setup(self, tmp_path, notes_dir, now, monkeypatch):
        self.runner = CliRunner()
        self.notes = notes_dir
        self.state_dir = tmp_path / "state"
        self.inbox = tmp_path / "inbox.md"
        self.config_path = tmp_path / "config.yaml"
        self.config_path.write_text(
            f"state_dir: {self.state_dir}\n"
            f"inbox:\n  file: {self.inbox}\n"
        )
        monkeypatch.setattr(cli, "now_local", lambda: now)

    def invoke(self, *args, input=None):
        return self.runner.invoke(
            main,
            ["--config", str(self.config_path), "--source", str(self.notes), *args],
            input=input,
        )

    def note(self, name, text):
        path = self.notes / name
        path.write_text(text, encoding="utf-8")
        return path

    def test_version(self):
        result = self.runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_missing_config_file_rejected(self, tmp_path):
        result = self.runner.invoke(main, ["--config", str(tmp_path / "typo.yaml"), "current"])
        assert result.exit_code == 2
        assert "typo.yaml" in result.output

    def test_check(self):
        path = self.note("a.md", "- [ ] Quick\n")
        result = self.invoke("check", str(path), "1")
        assert result.exit_code == 0
        assert path.read_text() == "- [x] Quick\n"

    def test_bad_line_number(self):
        path = self.note("a.md", "- [ ] Quick\n")
        result = self.invoke("check", str(path), "5")
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert path.read_text() == "- [ ] Quick\n"

    def test_line_must_be_positive(self):
        path = self.note("a.md", "- [ ] Quick\n")
        assert self.invoke("check", str(path), "0").exit_code == 2

    def test_irrelevant_then_unset(self):
        path = self.note("a.md", "- [ ] Idea\n")
        assert self.invoke("irrelevant", str(path), "1").exit_code == 0
        assert path.read_text() == "- [-] Idea ::irrelevant [[2026-02-17]] 10:30\n"

        assert self.invoke("unset", str(path), "1").exit_code == 0
        assert path.read_text() == "- [ ] Idea\n"

    def test_unset_nothing(self):
        path = self.note("a.md", "- [ ] Idea\n")
        result = self.invoke("unset", str(path), "1")
        assert result.exit_code == 0
        assert "Nothing to undo." in result.output

    def test_partial(self):
        path = self.note("a.md", "- [ ] Half\n")
        assert self.invoke("partial", str(path), "1").exit_code == 0
        assert path.read_text() == "- [~] Half ::partial [[2026-02-17]] 10:30\n"

    def test_defer(self):
        path = self.note("a.md", "- [ ] Pay (@[[2026-02-10]])\n")
        assert self.invoke("defer", str(path), "1").exit_code == 0
        assert path.read_text() == (
            "- [ ] Pay (@[[2026-02-10]]) ::original [[2026-02-10]] ::deferral [[2026-02-17]] 10:30\n"
        )

    def test_shift_negative(self):
        path = self.note("a.md", "- [ ] Pay (@[[2026-03-01]])\n")
        result = self.invoke("shift", str(path), "1", "-1")
        assert result.exit_code == 0
        assert "2026-02-28" in result.output
        assert path.read_text() == "- [ ] Pay (@[[2026-02-28]])\n"

    def test_today(self):
        path = self.note("a.md", "- [ ] Pay (@[[2026-01-01]] 09:00)\n")
        assert self.invoke("today", str(path), "1").exit_code == 0
        assert path.read_text() == "- [ ] Pay (@[[2026-02-17]] 09:00)\n"

    def test_today_undated_fails(self):
        path = self.note("a.md", "- [ ] Pay\n")
        assert self.invoke("today", str(path), "1").exit_code == 1

    def test_complete_at(self):
        path = self.note("a.md", "- [ ] Ship\n")
        assert self.invoke("complete-at", str(path), "1").exit_code == 0
        assert path.read_text() == "- [x] Ship ::complete [[2026-02-17]] 10:30\n"

    def test_create_in_inbox(self):
        result = self.invoke("create", "Call", "the", "bank")
        assert result.exit_code == 0
        assert self.inbox.read_text() == "- [ ] Call the bank\n"

    def test_create_under_header(self, tmp_path):
        target = tmp_path / "todo.md"
        target.write_text("# Inbox\n- [ ] Old\n")
        result = self.invoke("create", "--file", str(target), "--header", "# Inbox", "New")
        assert result.exit_code == 0
        assert target.read_text() == "# Inbox\n- [ ] New\n- [ ] Old\n"

    def test_create_without_target(self):
        self.config_path.write_text(f"state_dir: {self.state_dir}\n")
        result = self.invoke("create", "Orphan")
        assert result.exit_code == 1
        assert "no target file" in result.output

    def test_current(self):
        StateStore(str(self.state_dir)).write(CurrentTask(1, "Write report", "/x.md", 3))
        result = self.invoke("current")
        assert result.exit_code == 0
        assert result.output == "Write report\n"

    def test_current_idle(self):
        result = self.invoke("current")
        assert result.exit_code == 0
        assert result.output == ""

    def test_stop(self):
        path = self.note("a.md", "- [ ] Write ::start [[2026-02-17]] 09:00\n")
        store = StateStore(str(self.state_dir))
        store.write(CurrentTask(1, "Write", str(path), 1))

        result = self.invoke("stop")
        assert result.exit_code == 0
        assert "Stopped: Write" in result.output
        assert path.read_text() == "- [ ] Write ::start [[2026-02-17]] 09:00 ::stop [[2026-02-17]] 10:30\n"
        assert store.read() is None

    def test_done_alias_completes(self):
        path = self.note("a.md", "- [ ] Write ::start [[2026-02-17]] 09:00\n")
        store = StateStore(str(self.state_dir))
        store.write(CurrentTask(1, "Write", str(path), 1))

        result = self.invoke("done")
        assert result.exit_code == 0
        assert "Completed: Write" in result.output
        assert path.read_text() == (
            "- [x] Write ::start [[2026-02-17]] 09:00 ::complete [[2026-02-17]] 10:30\n"
        )
        assert store.read() is None

    def test_stop_idle(self):
        result = self.invoke("pause")
        assert result.exit_code == 0
        assert "No task running." in result.output

    @requires_rg
    def test_list(self):
        self.note("a.md", "- [ ] Today (@[[2026-02-17]]) #home\n- [x] Done (@[[2026-02-17]])\n- [ ] Someday\n")
        result = self.invoke("list")
        assert result.exit_code == 0

        lines = result.output.splitlines()
        path = os.path.join(os.path.realpath(self.notes), "a.md")
        assert lines == [
            "# Today",
            f"{path}:1:1:\t[[2026-02-17]]\t |       |     |\t Today \t #home",
            "",
            "# Someday",
            f"{path}:3:1:\t          \t |       |     |\t Someday \t",
        ]

    @requires_rg
    def test_default_command_is_list(self):
        self.note("a.md", "- [ ] Someday\n")
        result = self.invoke()
        assert result.exit_code == 0
        assert result.output.startswith("# Someday\n")

    @requires_rg
    def test_list_tag_filter_and_frontmatter(self):
        self.note("a.md", "---\ntags: [work]\n---\n- [ ] Report\n")
        self.note("b.md", "- [ ] Laundry #home\n")
        result = self.invoke("list", "--tag", "work")
        assert "Report" in result.output
        assert "Laundry" not in result.output

    @requires_rg
    def test_list_includes_project_notes(self):
        self.note("Relaunch.md", "---\ntags:\n  - project\ndue: 2026-02-18\n---\n")
        result = self.invoke("list")
        assert "# Tomorrow" in result.output
        assert " Relaunch " in result.output

    @requires_rg
    def test_tags(self):
        self.note("a.md", "- [ ] A #zeta #alpha\n- [x] B #done\n")
        result = self.invoke("tags")
        assert result.exit_code == 0
        assert result.output == "alpha\nzeta\n"

    @requires_rg
    def test_do_starts_chosen_task(self):
        path = self.note("a.md", "- [ ] Later (@[[2026-02-17]] 15:00)\n- [ ] First (@[[2026-02-17]] 09:00)\n")
        result = self.invoke("do", input="1\n")
        assert result.exit_code == 0
        assert "Started: First" in result.output

        lines = path.read_text().splitlines()
        assert lines[1] == "- [ ] First (@[[2026-02-17]] 09:00) ::start [[2026-02-17]] 10:30"
        current = StateStore(str(self.state_dir)).read()
        assert current.name == "First"
        assert current.line_number == 2

    @requires_rg
    def test_do_nothing_due(self):
        self.note("a.md", "- [ ] Someday\n")
        result = self.invoke("do")
        assert result.exit_code == 0
        assert "No tasks due today." in result.output
