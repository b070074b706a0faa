"""
Lightweight DAG engine for record-aggregation pipelines.

Tasks run in topological order; each receives the merged results of its
upstream tasks. A task's exception is captured on the task (never raised out
of run()), and the trigger rule decides what happens downstream:

- ALL_SUCCESS: run only when every upstream task succeeded (default)
- ALL_DONE:    run once upstream tasks have finished, whatever their outcome

ALL_DONE is what lets independent source fetches fail on their own without
taking the whole timeline down with them.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class TriggerRule(str, Enum):
    ALL_SUCCESS = "all_success"
    ALL_DONE = "all_done"


@dataclass
class TaskNode:
    """A single unit of work inside a DAG."""

    name: str
    execute_fn: Callable[[dict[str, Any]], dict[str, Any] | None]
    depends_on: list[str] = field(default_factory=list)
    trigger_rule: TriggerRule = TriggerRule.ALL_SUCCESS
    status: TaskStatus = TaskStatus.PENDING
    result: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    duration_ms: float = 0.0


class DAG:
    """
    A directed acyclic graph of TaskNodes.

    Usage:
        dag = DAG("patient_timeline")
        dag.add_task("load_sessions", load_sessions)
        dag.add_task("load_notes", load_notes)
        dag.add_task(
            "build", build_fn,
            depends_on=["load_sessions", "load_notes"],
            trigger_rule=TriggerRule.ALL_DONE,
        )
        summary = dag.run(initial_context={"patient_id": patient_id})
    """

    def __init__(self, name: str):
        self.name = name
        self.tasks: dict[str, TaskNode] = {}

    def add_task(
        self,
        name: str,
        execute_fn: Callable[[dict[str, Any]], dict[str, Any] | None],
        depends_on: list[str] | None = None,
        trigger_rule: TriggerRule = TriggerRule.ALL_SUCCESS,
    ) -> DAG:
        if name in self.tasks:
            raise ValueError(f"Duplicate task name: {name}")
        self.tasks[name] = TaskNode(
            name=name,
            execute_fn=execute_fn,
            depends_on=depends_on or [],
            trigger_rule=trigger_rule,
        )
        return self

    def _topological_sort(self) -> list[str]:
        """Kahn's algorithm; ties keep insertion order."""
        in_degree: dict[str, int] = {name: 0 for name in self.tasks}
        for task in self.tasks.values():
            for dep in task.depends_on:
                if dep not in self.tasks:
                    raise ValueError(
                        f"Task '{task.name}' depends on unknown task '{dep}'"
                    )
                in_degree[task.name] += 1

        queue = [name for name, deg in in_degree.items() if deg == 0]
        order: list[str] = []

        while queue:
            current = queue.pop(0)
            order.append(current)
            for name, task in self.tasks.items():
                if current in task.depends_on:
                    in_degree[name] -= 1
                    if in_degree[name] == 0:
                        queue.append(name)

        if len(order) != len(self.tasks):
            raise ValueError("Cycle detected in DAG")
        return order

    def terminal_tasks(self) -> list[str]:
        """Tasks nothing else depends on."""
        upstream = {dep for task in self.tasks.values() for dep in task.depends_on}
        return [name for name in self.tasks if name not in upstream]

    def _should_skip(self, task: TaskNode) -> bool:
        if task.trigger_rule is TriggerRule.ALL_DONE:
            return False
        return any(
            self.tasks[dep].status in (TaskStatus.FAILED, TaskStatus.SKIPPED)
            for dep in task.depends_on
        )

    def _overall_status(self) -> str:
        statuses = [t.status for t in self.tasks.values()]
        if all(s == TaskStatus.SUCCESS for s in statuses):
            return "completed"
        if all(self.tasks[name].status == TaskStatus.SUCCESS for name in self.terminal_tasks()):
            return "partial"
        return "failed"

    def run(self, initial_context: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Execute all tasks in topological order.
        Each task receives the context merged with its upstream results.
        """
        execution_order = self._topological_sort()
        context = dict(initial_context or {})
        summary: dict[str, Any] = {"pipeline": self.name, "tasks": {}}

        logger.info("Starting pipeline '%s' with %d tasks", self.name, len(self.tasks))

        for task_name in execution_order:
            task = self.tasks[task_name]

            if self._should_skip(task):
                task.status = TaskStatus.SKIPPED
                logger.warning("Skipping '%s' - upstream dependency did not succeed", task_name)
                summary["tasks"][task_name] = {"status": task.status.value}
                continue

            # Failed upstream tasks contribute nothing to the context
            for dep in task.depends_on:
                context.update(self.tasks[dep].result)

            task.status = TaskStatus.RUNNING
            logger.debug("Running task '%s'", task_name)
            start = time.perf_counter()
            try:
                task.result = task.execute_fn(context) or {}
                task.status = TaskStatus.SUCCESS
            except Exception as exc:
                task.status = TaskStatus.FAILED
                task.error = str(exc)
                logger.error("Task '%s' failed: %s", task_name, exc)
            finally:
                task.duration_ms = (time.perf_counter() - start) * 1000

            summary["tasks"][task_name] = {
                "status": task.status.value,
                "duration_ms": round(task.duration_ms, 2),
                "error": task.error,
            }

        summary["status"] = self._overall_status()
        logger.info("Pipeline '%s' finished - %s", self.name, summary["status"])
        return summary
