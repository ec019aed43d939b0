"""Static tool classification and the read-before-edit guard."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class ToolClass(str, Enum):
    SAFE = "safe"
    APPROVAL_REQUIRED = "approval_required"
    DANGEROUS = "dangerous"


# Tools that mutate the workspace or reach external services.
APPROVAL_REQUIRED_TOOLS: frozenset[str] = frozenset({
    "create_file",
    "edit_file",
    "create_web_page",
    "convert_document",
    "process_image",
    "batch_process_images",
    "process_media",
    "get_clickhouse_schema",
    "execute_clickhouse_query",
})

# Never covered by session auto-approve.
DANGEROUS_TOOLS: frozenset[str] = frozenset({
    "delete_file",
    "execute_command",
})

SAFE_TOOLS: frozenset[str] = frozenset({
    "read_file",
    "list_files",
    "search_files",
    "create_tasks",
    "update_tasks",
    "open_file",
})


def classify(tool_name: str) -> ToolClass:
    """Return the safety class for *tool_name*.

    Names outside both gated sets are SAFE.
    """
    if tool_name in DANGEROUS_TOOLS:
        return ToolClass.DANGEROUS
    if tool_name in APPROVAL_REQUIRED_TOOLS:
        return ToolClass.APPROVAL_REQUIRED
    return ToolClass.SAFE


def is_dangerous(tool_name: str) -> bool:
    return tool_name in DANGEROUS_TOOLS


def requires_approval(tool_name: str) -> bool:
    return tool_name in APPROVAL_REQUIRED_TOOLS


class ReadTracker:
    """Set of absolute, resolved paths read during the current session."""

    def __init__(self) -> None:
        self._paths: set[Path] = set()

    def add(self, path: Path | str) -> None:
        self._paths.add(Path(path).resolve())

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return Path(path).resolve() in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def clear(self) -> None:
        self._paths.clear()

    def __repr__(self) -> str:
        return f"ReadTracker({len(self._paths)} paths)"


def is_read_before_edit_satisfied(
    file_path: str, tracker: ReadTracker | None, cwd: Path,
) -> bool:
    """Return True if *file_path* may be edited.

    Without a tracker there is nothing to enforce, so the check passes.
    """
    if tracker is None:
        return True
    p = Path(file_path).expanduser()
    if not p.is_absolute():
        p = cwd / p
    return p.resolve() in tracker


def read_before_edit_error(file_path: str) -> str:
    return f"File must be read before editing. Use read_file tool first: {file_path}"
