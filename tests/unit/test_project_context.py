"""Tests for /init project context generation."""

import json

import pytest

from cobot.core.config import load_project_context
from cobot.core.project_context import generate_project_context, write_project_context


class TestGenerate:
    def test_summary(self, tmp_project):
        summary = generate_project_context(tmp_project)

        assert summary.total_files == 4
        assert summary.total_directories == 1
        assert summary.languages == [("py", 3), ("md", 1)]
        assert summary.notable_files == ["README.md"]
        assert summary.package is None
        assert summary.tree == [
            "src/",
            "├── app.py",
            "└── utils.py",
            "main.py",
            "README.md",
        ]

    def test_ignored_entries_skipped(self, tmp_project):
        (tmp_project / "node_modules" / "left-pad").mkdir(parents=True)
        (tmp_project / "node_modules" / "left-pad" / "index.js").write_text("")
        (tmp_project / "run.log").write_text("")

        summary = generate_project_context(tmp_project)

        assert not any("node_modules" in line for line in summary.tree)
        assert "run.log" not in summary.tree

    def test_depth_limit(self, tmp_project):
        deep = tmp_project / "a" / "b" / "c" / "d"
        deep.mkdir(parents=True)
        (deep / "deep.py").write_text("")

        summary = generate_project_context(tmp_project, max_depth=3)

        assert any(line.endswith("c/") for line in summary.tree)
        assert not any("d/" in line for line in summary.tree)

    def test_entry_limit(self, tmp_project):
        summary = generate_project_context(tmp_project, max_entries=2)
        assert summary.total_files + summary.total_directories == 2

    def test_package_json(self, tmp_project):
        (tmp_project / "package.json").write_text(json.dumps({
            "name": "web-app",
            "version": "2.1.0",
            "scripts": {"test": "jest", "build": "tsc"},
            "dependencies": {"react": "^18"},
        }))

        summary = generate_project_context(tmp_project)

        assert summary.package["name"] == "web-app"
        assert summary.package["scripts"] == ["build", "test"]
        assert summary.config_files == ["package.json"]
        assert "- Package: web-app v2.1.0" in summary.to_markdown()

    def test_pyproject(self, tmp_project):
        (tmp_project / "pyproject.toml").write_text(
            '[project]\nname = "tool"\nversion = "0.3"\ndependencies = ["click", "rich"]\n'
        )

        summary = generate_project_context(tmp_project)

        assert summary.package["dependencies_count"] == 2

    def test_not_a_directory(self, tmp_project):
        with pytest.raises(NotADirectoryError):
            generate_project_context(tmp_project / "main.py")


class TestWrite:
    def test_files_written_and_loaded(self, tmp_project):
        md_path, json_path = write_project_context(tmp_project)

        markdown = md_path.read_text()
        assert markdown.startswith("# Project Context")
        assert "## Languages (by file count)" in markdown
        assert "- .py: 3" in markdown
        assert markdown.rstrip().endswith("Re-run /init to refresh.")

        data = json.loads(json_path.read_text())
        assert data["total_files"] == 4
        assert data["languages"][0] == {"extension": "py", "files": 3}

        source, text = load_project_context(tmp_project)
        assert source == ".cobot/context.md"
        assert text == markdown

    def test_rerun_does_not_list_output(self, tmp_project):
        write_project_context(tmp_project)
        md_path, _ = write_project_context(tmp_project)

        assert ".cobot" not in md_path.read_text().split("## Directory Tree")[1]
