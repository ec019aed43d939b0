"""create_tasks / update_tasks: a per-session task checklist."""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from cobot.tools.base import BaseTool
from cobot.types.tools import ToolContext, ToolDef, ToolParam, ToolResult

TASK_STATUSES: tuple[str, ...] = ("pending", "in_progress", "completed")


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(slots=True)
class Task:
    id: str
    description: str
    status: str = "pending"
    notes: str | None = None
    updated_at: str | None = None


@dataclass(slots=True)
class TaskList:
    user_query: str
    tasks: list[Task] = field(default_factory=list)
    created_at: str = field(default_factory=_now)


class TaskBoard:
    """Holds the active task list for one agent session."""

    def __init__(self) -> None:
        self._active: TaskList | None = None

    @property
    def active(self) -> TaskList | None:
        return self._active

    def replace(self, task_list: TaskList) -> None:
        self._active = task_list

    def clear(self) -> None:
        self._active = None

    def snapshot(self) -> dict[str, Any] | None:
        """Return a deep copy so earlier displays never see later mutations."""
        if self._active is None:
            return None
        return copy.deepcopy(asdict(self._active))


_CREATE_DEFINITION = ToolDef(
    name="create_tasks",
    description=(
        "Break down complex requests into organized task lists. Use for multi-step projects. "
        'Example: {"user_query": "Build login system", "tasks": [{"id": "1", '
        '"description": "Create user model", "status": "pending"}]}'
    ),
    parameters=(
        ToolParam(
            name="user_query",
            type="string",
            description="Original user request being broken down",
        ),
        ToolParam(
            name="tasks",
            type="array",
            description="List of actionable subtasks",
            items={
                "type": "object",
                "properties": {
                    "id": {
                        "type": "string",
                        "description": 'Unique task identifier string (e.g., "1", "2", "3")',
                    },
                    "description": {
                        "type": "string",
                        "description": "Clear, actionable task description",
                    },
                    "status": {
                        "type": "string",
                        "enum": list(TASK_STATUSES),
                        "description": "Task status: pending, in_progress, or completed",
                    },
                },
                "required": ["id", "description"],
            },
        ),
    ),
)

_UPDATE_DEFINITION = ToolDef(
    name="update_tasks",
    description=(
        "Update task progress and status. Use to mark tasks as started or completed. "
        'Example: {"task_updates": [{"id": "1", "status": "completed", '
        '"notes": "Successfully implemented"}]}'
    ),
    parameters=(
        ToolParam(
            name="task_updates",
            type="array",
            description="Array of status updates for specific tasks",
            items={
                "type": "object",
                "properties": {
                    "id": {
                        "type": "string",
                        "description": "ID string of task to update (must match existing task ID)",
                    },
                    "status": {
                        "type": "string",
                        "enum": list(TASK_STATUSES),
                        "description": "New status: pending, in_progress, or completed",
                    },
                    "notes": {
                        "type": "string",
                        "description": "Optional progress notes or completion details",
                    },
                },
                "required": ["id", "status"],
            },
        ),
    ),
)


def _board(ctx: ToolContext) -> TaskBoard:
    if ctx.tasks is None:
        ctx.tasks = TaskBoard()
    return ctx.tasks


class CreateTasksTool(BaseTool):
    """Replaces the session's task list."""

    @property
    def definition(self) -> ToolDef:
        return _CREATE_DEFINITION

    async def run(
        self, ctx: ToolContext, user_query: str, tasks: list[dict[str, Any]],
    ) -> ToolResult:
        parsed: list[Task] = []
        for i, raw in enumerate(tasks):
            if not isinstance(raw, dict) or not raw.get("id") or not raw.get("description"):
                return self._error(f"Error: Task {i} missing required fields (id, description)")
            status = raw.get("status") or "pending"
            if status not in TASK_STATUSES:
                return self._error(f"Error: Invalid status '{status}' for task {raw['id']}")
            parsed.append(Task(
                id=str(raw["id"]),
                description=str(raw["description"]),
                status=status,
                notes=raw.get("notes"),
            ))

        board = _board(ctx)
        board.replace(TaskList(user_query=user_query, tasks=parsed))
        return self._ok(
            board.snapshot(),
            f"Created task list with {len(parsed)} tasks for: {user_query}",
        )


class UpdateTasksTool(BaseTool):
    """Applies status changes to tasks in the session's list.

    Updates are validated up front and applied all together.
    """

    @property
    def definition(self) -> ToolDef:
        return _UPDATE_DEFINITION

    async def run(self, ctx: ToolContext, task_updates: list[dict[str, Any]]) -> ToolResult:
        board = _board(ctx)
        active = board.active
        if active is None:
            return self._error("Error: No task list exists. Create tasks first.")

        by_id = {task.id: task for task in active.tasks}
        for update in task_updates:
            if not isinstance(update, dict) or not update.get("id") or not update.get("status"):
                return self._error("Error: Task update missing required fields (id, status)")
            if update["status"] not in TASK_STATUSES:
                return self._error(f"Error: Invalid status '{update['status']}'")
            if str(update["id"]) not in by_id:
                return self._error(f"Error: Task '{update['id']}' not found")

        stamp = _now()
        for update in task_updates:
            task = by_id[str(update["id"])]
            task.status = update["status"]
            if update.get("notes"):
                task.notes = update["notes"]
            task.updated_at = stamp

        return self._ok(board.snapshot(), f"Updated {len(task_updates)} task(s)")
