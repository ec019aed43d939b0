"""Project context generation for ``/init``.

Walks the project, summarizes it and writes ``.cobot/context.md`` (loaded
into every new session) plus ``.cobot/context.json``.
"""

from __future__ import annotations

import json
import logging
import tomllib
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from cobot.tools.listing import is_ignored

logger = logging.getLogger(__name__)

MAX_DEPTH = 3
MAX_ENTRIES = 1500
MAX_LANGUAGES_SHOWN = 12
OUTPUT_DIR = ".cobot"

CONFIG_FILE_NAMES = frozenset({
    "package.json", "tsconfig.json", "jsconfig.json", "pyproject.toml", "poetry.lock",
    "requirements.txt", "setup.py", "setup.cfg", "go.mod", "go.sum", "cargo.toml",
    "cargo.lock", "composer.json", "composer.lock", "gemfile", "gemfile.lock", "pipfile",
    "pipfile.lock", "dockerfile", "docker-compose.yml", ".dockerignore", ".gitignore",
    ".env", ".editorconfig", ".eslintrc", ".eslintrc.js", ".prettierrc", ".prettierrc.js",
    "makefile", "justfile",
})


@dataclass
class _Node:
    name: str
    is_dir: bool
    children: list[_Node] = field(default_factory=list)


@dataclass
class ProjectSummary:
    generated_at: str
    root: str
    total_files: int
    total_directories: int
    languages: list[tuple[str, int]]
    package: dict[str, Any] | None
    config_files: list[str]
    notable_files: list[str]
    tree: list[str]

    def to_json(self) -> str:
        data = asdict(self)
        data["languages"] = [{"extension": ext, "files": n} for ext, n in self.languages]
        return json.dumps(data, indent=2)

    def to_markdown(self) -> str:
        lines = [
            "# Project Context",
            "",
            f"Generated: {self.generated_at}",
            "",
            f"Root: {self.root}",
            "",
            "## Summary",
            f"- Files: {self.total_files}",
            f"- Directories: {self.total_directories}",
        ]
        if self.package:
            name = self.package.get("name") or ""
            version = self.package.get("version")
            lines.append(f"- Package: {name} {'v' + version if version else ''}".rstrip())
            if self.package.get("description"):
                lines.append(f"- Description: {self.package['description']}")
            lines.append(f"- Scripts: {len(self.package.get('scripts') or [])}")
            lines.append(f"- Dependencies: {self.package.get('dependencies_count', 0)}")

        lines += ["", "## Languages (by file count)"]
        shown = self.languages[:MAX_LANGUAGES_SHOWN]
        if shown:
            for ext, count in shown:
                label = ext if ext == "(none)" else f".{ext}"
                lines.append(f"- {label}: {count}")
        else:
            lines.append("- (no code files detected)")

        if self.config_files:
            lines += ["", "## Configuration Files", *(f"- {f}" for f in self.config_files)]
        if self.notable_files:
            lines += ["", "## Notable Files", *(f"- {f}" for f in self.notable_files)]
        if self.tree:
            lines += ["", "## Directory Tree", "```", *self.tree, "```"]

        lines += ["", "---", "This file is auto-generated. Re-run /init to refresh."]
        return "\n".join(lines)


def _read_package_metadata(root: Path) -> dict[str, Any] | None:
    """Pull name, version and counts from package.json or pyproject.toml."""
    package_json = root / "package.json"
    if package_json.is_file():
        try:
            data = json.loads(package_json.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.debug("unreadable package.json in %s", root, exc_info=True)
            return None
        return {
            "name": data.get("name"),
            "version": data.get("version"),
            "description": data.get("description"),
            "scripts": sorted(data.get("scripts") or {}),
            "dependencies_count": len(data.get("dependencies") or {}),
            "dev_dependencies_count": len(data.get("devDependencies") or {}),
        }

    pyproject = root / "pyproject.toml"
    if pyproject.is_file():
        try:
            with open(pyproject, "rb") as f:
                project = tomllib.load(f).get("project", {})
        except (OSError, tomllib.TOMLDecodeError):
            logger.debug("unreadable pyproject.toml in %s", root, exc_info=True)
            return None
        return {
            "name": project.get("name"),
            "version": project.get("version"),
            "description": project.get("description"),
            "scripts": sorted(project.get("scripts") or {}),
            "dependencies_count": len(project.get("dependencies") or []),
        }
    return None


def _is_notable(name: str) -> bool:
    lower = name.lower()
    return lower.startswith("readme") or lower in ("license", "license.md") or lower.endswith(".md")


def _render_tree(nodes: list[_Node]) -> list[str]:
    lines: list[str] = []

    def render(node: _Node, prefix: str, last: bool, top: bool) -> None:
        connector = "" if top else ("└── " if last else "├── ")
        lines.append(f"{prefix}{connector}{node.name}{'/' if node.is_dir else ''}")
        child_prefix = prefix if top else prefix + ("    " if last else "│   ")
        for idx, child in enumerate(node.children):
            render(child, child_prefix, idx == len(node.children) - 1, False)

    for idx, node in enumerate(nodes):
        render(node, "", idx == len(nodes) - 1, True)
    return lines


def generate_project_context(
    root: Path, max_depth: int = MAX_DEPTH, max_entries: int = MAX_ENTRIES,
) -> ProjectSummary:
    """Summarize the project rooted at *root*.

    Raises ``NotADirectoryError`` when *root* is not a directory.
    """
    root = root.resolve()
    if not root.is_dir():
        raise NotADirectoryError(f"Root path is not a directory: {root}")

    extensions: Counter[str] = Counter()
    files: list[Path] = []
    dir_count = 0
    entries = 0

    def walk(path: Path, depth: int) -> _Node | None:
        nonlocal dir_count, entries
        if depth > max_depth or entries >= max_entries:
            return None
        if is_ignored(path.name) or path.name == OUTPUT_DIR:
            return None
        entries += 1
        if not path.is_dir():
            files.append(path)
            extensions[path.suffix.lstrip(".") or "(none)"] += 1
            return _Node(path.name, is_dir=False)

        dir_count += 1
        node = _Node(path.name, is_dir=True)
        try:
            children = sorted(path.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower()))
        except OSError:
            return node
        for child in children:
            if entries >= max_entries:
                break
            if (child_node := walk(child, depth + 1)) is not None:
                node.children.append(child_node)
        return node

    top: list[_Node] = []
    for child in sorted(root.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower())):
        if entries >= max_entries:
            break
        if (node := walk(child, 1)) is not None:
            top.append(node)

    rel = lambda p: str(p.relative_to(root))  # noqa: E731
    return ProjectSummary(
        generated_at=datetime.now(UTC).isoformat(),
        root=str(root),
        total_files=len(files),
        total_directories=dir_count,
        languages=extensions.most_common(),
        package=_read_package_metadata(root),
        config_files=sorted(rel(p) for p in files if p.name.lower() in CONFIG_FILE_NAMES),
        notable_files=sorted(rel(p) for p in files if _is_notable(p.name)),
        tree=_render_tree(top),
    )


def write_project_context(root: Path) -> tuple[Path, Path]:
    """Generate and write ``.cobot/context.md`` and ``.cobot/context.json``."""
    summary = generate_project_context(root)
    out_dir = root / OUTPUT_DIR
    out_dir.mkdir(parents=True, exist_ok=True)
    md_path = out_dir / "context.md"
    json_path = out_dir / "context.json"
    md_path.write_text(summary.to_markdown(), encoding="utf-8")
    json_path.write_text(summary.to_json(), encoding="utf-8")
    logger.info("wrote project context to %s", md_path)
    return md_path, json_path
