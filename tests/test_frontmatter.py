"""Tests for frontmatter tags and project notes."""

from datetime import date

from taskbuffer.frontmatter import (
    Frontmatter,
    FrontmatterCache,
    merge_frontmatter_tags,
    project_tasks,
)
from taskbuffer.task import Task


def note(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestFrontmatterCache:
    """Test reading and caching frontmatter."""

    def setup_method(self):
        self.cache = FrontmatterCache()

    def test_list_tags(self, tmp_path):
        path = note(tmp_path, "a.md", "---\ntags:\n  - work\n  - q1\nstatus: active\n---\n- [ ] Task\n")
        assert self.cache.get(path) == Frontmatter(tags=["work", "q1"], due="", status="active")

    def test_string_tag(self, tmp_path):
        path = note(tmp_path, "a.md", "---\ntags: solo\n---\nbody\n")
        assert self.cache.get(path).tags == ["solo"]

    def test_no_frontmatter(self, tmp_path):
        path = note(tmp_path, "a.md", "# Heading\n- [ ] Task\n")
        assert self.cache.get(path) is None

    def test_empty_block(self, tmp_path):
        path = note(tmp_path, "a.md", "---\n---\nbody\n")
        assert self.cache.get(path) is None

    def test_malformed_yaml(self, tmp_path):
        path = note(tmp_path, "a.md", "---\ntags: [unclosed\n---\nbody\n")
        assert self.cache.get(path) is None

    def test_missing_file(self, tmp_path):
        assert self.cache.get(str(tmp_path / "missing.md")) is None

    def test_yaml_date_due(self, tmp_path):
        path = note(tmp_path, "a.md", "---\ndue: 2026-03-01\n---\n")
        assert self.cache.get(path).due == "2026-03-01"

    def test_cached_until_reset(self, tmp_path):
        path = note(tmp_path, "a.md", "---\ntags: [one]\n---\n")
        assert self.cache.get(path).tags == ["one"]

        note(tmp_path, "a.md", "---\ntags: [two]\n---\n")
        assert self.cache.get(path).tags == ["one"]
        assert len(self.cache) == 1

        self.cache.reset()
        assert len(self.cache) == 0
        assert self.cache.get(path).tags == ["two"]


class TestMergeTags:
    """Test merging file tags into tasks."""

    def test_merge_deduplicates_against_inline(self, tmp_path):
        path = note(tmp_path, "a.md", "---\ntags: [work, home]\n---\n")
        task = Task(path, 4, "Task", "open", tags=("home", "home"))
        merged = merge_frontmatter_tags([task], FrontmatterCache())
        assert merged[0].tags == ("home", "home", "work")

    def test_files_without_frontmatter_untouched(self, tmp_path):
        path = note(tmp_path, "a.md", "- [ ] Task #x\n")
        task = Task(path, 1, "Task", "open", tags=("x",))
        assert merge_frontmatter_tags([task], FrontmatterCache()) == [task]


class TestProjectTasks:
    """Test project notes turned into tasks."""

    def test_project_note(self, tmp_path):
        path = note(tmp_path, "Website Relaunch.md",
                    "---\ntags:\n  - project\n  - web\ndue: 2026-03-01 14:00\nstatus: active\n---\n")
        tasks = project_tasks([path], FrontmatterCache())
        assert tasks == [Task(
            source_path=path,
            source_line=1,
            body="Website Relaunch",
            status="open",
            due_date=date(2026, 3, 1),
            due_time="14:00",
            tags=("project", "web"),
        )]

    def test_skips_finished_undated_and_non_projects(self, tmp_path):
        paths = [
            note(tmp_path, "done.md", "---\ntags: [project]\ndue: 2026-03-01\nstatus: Done\n---\n"),
            note(tmp_path, "completed.md", "---\ntags: [project]\ndue: 2026-03-01\nstatus: completed\n---\n"),
            note(tmp_path, "undated.md", "---\ntags: [project]\n---\n"),
            note(tmp_path, "plain.md", "---\ntags: [area]\ndue: 2026-03-01\n---\n"),
            note(tmp_path, "bad-due.md", "---\ntags: [project]\ndue: soon\n---\n"),
        ]
        assert project_tasks(paths, FrontmatterCache()) == []
