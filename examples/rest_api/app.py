"""REST API — CRUD for tasks with validation.

Demonstrates route groups, ``ctx.bind()`` into a dataclass, ``constraint()``
validation rules, query filters, and JSON error responses.

Run:
    cd examples/rest_api && python app.py
"""

import threading
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime

from smallapi import App, constraint
from smallapi.errors import NotFound
from smallapi.middleware.builtin import cors, logger, recovery


@dataclass(slots=True)
class Task:
    title: str = constraint("required,min=1,max=100")
    description: str = constraint("max=500", default="")
    completed: bool = False
    priority: str = constraint("regex=^(low|medium|high)$", default="medium")
    due_date: str | None = None
    id: str = ""
    created: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    updated: str = ""


class TaskStore:
    """In-memory tasks keyed by string id."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def create(self, task: Task) -> Task:
        with self._lock:
            task.id = str(self._next_id)
            self._next_id += 1
            task.updated = task.created
            self._tasks[task.id] = task
            return task

    def all(self, completed: bool | None = None, priority: str = "") -> list[Task]:
        with self._lock:
            tasks = list(self._tasks.values())
        return [
            t
            for t in tasks
            if (completed is None or t.completed == completed)
            and (not priority or t.priority == priority)
        ]

    def get(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            msg = "Task not found"
            raise NotFound(msg)
        return task

    def update(self, task_id: str, changes: Task) -> Task:
        with self._lock:
            task = self.get(task_id)
            task.title = changes.title
            if changes.description:
                task.description = changes.description
            task.priority = changes.priority
            if changes.due_date is not None:
                task.due_date = changes.due_date
            task.completed = changes.completed
            task.updated = datetime.now(UTC).isoformat()
            return task

    def delete(self, task_id: str) -> None:
        with self._lock:
            if self._tasks.pop(task_id, None) is None:
                msg = "Task not found"
                raise NotFound(msg)


store = TaskStore()
store.create(
    Task(
        title="Learn SmallAPI",
        description="Go through the documentation and examples",
        priority="high",
    )
)
store.create(
    Task(
        title="Build REST API",
        description="Create a todo API using SmallAPI",
        completed=True,
    )
)

app = App()
app.use(logger(), cors(), recovery())

api = app.group("/api/v1")


@api.get("/tasks")
def list_tasks(ctx):
    completed = ctx.query("completed")
    tasks = store.all(
        completed=None if not completed else completed == "true",
        priority=ctx.query("priority"),
    )
    ctx.json({"tasks": [asdict(t) for t in tasks], "count": len(tasks)})


@api.get("/tasks/:id")
def get_task(ctx):
    ctx.json(asdict(store.get(ctx.param("id"))))


@api.post("/tasks")
async def create_task(ctx):
    task = await ctx.bind(Task)
    ctx.validate(task).raise_for_errors()
    ctx.status(201).json(asdict(store.create(task)))


@api.put("/tasks/:id")
async def update_task(ctx):
    changes = await ctx.bind(Task)
    ctx.validate(changes).raise_for_errors()
    ctx.json(asdict(store.update(ctx.param("id"), changes)))


@api.delete("/tasks/:id")
def delete_task(ctx):
    store.delete(ctx.param("id"))
    ctx.status(204)


@app.get("/health")
def health(ctx):
    ctx.json({"status": "healthy", "tasks": len(store.all())})


app.enable_docs()


if __name__ == "__main__":
    app.run()
