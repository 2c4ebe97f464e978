"""
Dependency Graph - Builds scheduling nodes for tasks and computes execution order.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Iterable, Sequence

from .errors import GraphInvariantError
from .schema import DependencyNode, DependencyRef, MigrationTask, PhaseGate, TaskRef

# Nodes whose path length is within 10% of the longest path are on the critical path
CRITICAL_PATH_RATIO = 0.9


class DependencyGraphBuilder:
    """
    Builds dependency nodes from tasks and answers scheduling questions about them.

    Only ``TaskRef`` dependencies that name a known task are graph edges.
    Phase gates and references to unknown task ids are treated as already
    satisfied.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)

    def build_graph(self, tasks: Sequence[MigrationTask]) -> list[DependencyNode]:
        """
        Create one node per task.

        Args:
            tasks: Tasks in plan order

        Returns:
            Nodes in the same order as ``tasks``

        Raises:
            GraphInvariantError: If two tasks share an id
        """
        self._check_unique_ids(tasks)

        # task id -> ids of tasks that depend on it
        blocked_by: dict[str, list[str]] = {task.id: [] for task in tasks}
        for task in tasks:
            for dep_id in task.task_dependency_ids:
                dependents = blocked_by.get(dep_id)
                if dependents is not None and task.id not in dependents:
                    dependents.append(task.id)

        path_lengths = self.calculate_path_lengths(tasks)
        max_length = max(path_lengths.values(), default=0)
        threshold = max_length * CRITICAL_PATH_RATIO

        return [
            DependencyNode(
                task_id=task.id,
                depends_on=task.dependencies,
                blocked_by=tuple(blocked_by[task.id]),
                can_run_in_parallel=len(task.dependencies) == 0,
                critical_path=path_lengths[task.id] >= threshold,
            )
            for task in tasks
        ]

    def calculate_path_lengths(self, tasks: Sequence[MigrationTask]) -> dict[str, int]:
        """
        Longest duration-weighted chain ending at each task.

        ``length(task) = max(length(dep) for dep in deps, default 0) + estimated_minutes``.
        Cycle edges are stripped first (the same repair ``validate_plan`` applies),
        so every task gets a well-defined length no matter which branch reaches it
        first. The lengths are computed over the resulting DAG in topological order.

        Returns:
            Mapping of task id to path length in minutes
        """
        cycles = self.detect_circular_dependencies(tasks)
        acyclic = self.remove_cycle_edges(tasks, cycles) if cycles else list(tasks)

        task_map = {task.id: task for task in acyclic}
        dependencies = {
            task.id: [dep_id for dep_id in task.task_dependency_ids if dep_id in task_map]
            for task in acyclic
        }
        dependents: dict[str, list[str]] = {task_id: [] for task_id in task_map}
        for task_id, dep_ids in dependencies.items():
            for dep_id in dep_ids:
                dependents[dep_id].append(task_id)

        in_degree = {task_id: len(dep_ids) for task_id, dep_ids in dependencies.items()}
        queue = deque(task_id for task_id in task_map if in_degree[task_id] == 0)
        lengths: dict[str, int] = {}

        while queue:
            task_id = queue.popleft()
            longest_dependency = max((lengths[dep_id] for dep_id in dependencies[task_id]), default=0)
            lengths[task_id] = longest_dependency + task_map[task_id].estimated_minutes

            for dependent in dependents[task_id]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        for task_id, task in task_map.items():
            lengths.setdefault(task_id, task.estimated_minutes)

        return lengths

    def detect_circular_dependencies(self, tasks: Sequence[MigrationTask]) -> list[list[str]]:
        """
        Find dependency cycles using DFS.

        Returns:
            Zero or more cycles, each the list of task ids from the first
            repeated task through the task that closes the loop
        """
        task_map = {task.id: task for task in tasks}
        cycles: list[list[str]] = []
        visited: set[str] = set()
        rec_stack: set[str] = set()

        def dfs(task_id: str, path: list[str]) -> None:
            visited.add(task_id)
            rec_stack.add(task_id)
            path.append(task_id)

            for dep_id in task_map[task_id].task_dependency_ids:
                if dep_id not in task_map:
                    continue

                if dep_id not in visited:
                    dfs(dep_id, path.copy())
                elif dep_id in rec_stack:
                    cycle_start = path.index(dep_id)
                    cycles.append(path[cycle_start:])

            rec_stack.remove(task_id)

        for task in tasks:
            if task.id not in visited:
                dfs(task.id, [])

        return cycles

    def remove_cycle_edges(
        self,
        tasks: Sequence[MigrationTask],
        cycles: Iterable[Sequence[str]],
    ) -> list[MigrationTask]:
        """
        Break cycles by dropping dependency edges.

        A single-task cycle loses its self-reference. For a multi-task cycle,
        every member drops every dependency on another member of that cycle.
        The input tasks are left untouched.

        Returns:
            New task list, same order, with repaired dependency lists
        """
        drop: dict[str, set[str]] = {}
        for cycle in cycles:
            if not cycle:
                continue
            members = set(cycle)
            for task_id in cycle:
                drop.setdefault(task_id, set()).update(members)

        repaired: list[MigrationTask] = []
        for task in tasks:
            blocked = drop.get(task.id)
            if not blocked:
                repaired.append(task)
                continue

            kept = [dep for dep in task.dependencies if not self._refers_to(dep, blocked)]
            removed = [str(dep) for dep in task.dependencies if self._refers_to(dep, blocked)]

            if removed:
                self.logger.debug(
                    "Dropped cycle edges from %s: %s", task.id, ", ".join(removed)
                )
            else:
                self.logger.debug(
                    "Task %s is in a cycle but has no dependency on it; dependencies: %s",
                    task.id,
                    [str(dep) for dep in task.dependencies],
                )

            repaired.append(task.with_dependencies(kept))

        return repaired

    def get_execution_order(self, nodes: Sequence[DependencyNode]) -> list[list[str]]:
        """
        Group nodes into batches that can run at the same time.

        Each batch holds every remaining node whose dependencies are all done.
        Stops early if no batch can be formed; the nodes left over sit on an
        unresolved cycle.

        Returns:
            List of batches, each a list of task ids
        """
        node_ids = {node.task_id for node in nodes}
        completed: set[str] = set()
        batches: list[list[str]] = []

        while len(completed) < len(nodes):
            batch = [
                node.task_id
                for node in nodes
                if node.task_id not in completed
                and all(self._is_satisfied(dep, completed, node_ids) for dep in node.depends_on)
            ]

            if not batch:
                stuck = [node.task_id for node in nodes if node.task_id not in completed]
                self.logger.warning(
                    "Execution order stopped after %d batches; unresolved tasks: %s",
                    len(batches),
                    ", ".join(stuck),
                )
                break

            batches.append(batch)
            completed.update(batch)

        return batches

    def estimate_total_time(
        self,
        nodes: Sequence[DependencyNode],
        tasks: Sequence[MigrationTask],
        use_automation: bool,
    ) -> int:
        """
        Total minutes with full parallelism inside a batch and none across batches.

        Args:
            nodes: Dependency nodes
            tasks: Tasks the nodes were built from
            use_automation: Use ``automated_minutes`` instead of ``estimated_minutes``

        Returns:
            Sum over batches of the longest task in each batch
        """
        task_map = {task.id: task for task in tasks}
        total = 0

        for batch in self.get_execution_order(nodes):
            batch_minutes = [
                task_map[task_id].automated_minutes if use_automation else task_map[task_id].estimated_minutes
                for task_id in batch
                if task_id in task_map
            ]
            total += max(batch_minutes, default=0)

        return total

    def calculate_parallelism_score(self, nodes: Sequence[DependencyNode]) -> float:
        """Percentage of nodes with no dependencies at all."""
        if not nodes:
            return 0.0
        parallel = sum(1 for node in nodes if node.can_run_in_parallel)
        return parallel / len(nodes) * 100

    @staticmethod
    def _is_satisfied(dep: DependencyRef, completed: set[str], node_ids: set[str]) -> bool:
        if isinstance(dep, PhaseGate):
            return True
        if dep.task_id not in node_ids:
            return True
        return dep.task_id in completed

    @staticmethod
    def _refers_to(dep: DependencyRef, task_ids: set[str]) -> bool:
        return isinstance(dep, TaskRef) and dep.task_id in task_ids

    @staticmethod
    def _check_unique_ids(tasks: Sequence[MigrationTask]) -> None:
        seen: set[str] = set()
        for task in tasks:
            if task.id in seen:
                raise GraphInvariantError(f"Duplicate task id in graph input: {task.id}")
            seen.add(task.id)


def graph_to_dict(nodes: Sequence[DependencyNode]) -> dict[str, Any]:
    """
    Export nodes as ``{nodes, edges}`` for JSON serialization.

    Edges point from a task to what it depends on; ``kind`` tells task edges
    from phase gates.
    """
    return {
        "nodes": [node.task_id for node in nodes],
        "edges": [
            {
                "from": node.task_id,
                "to": str(dep),
                "kind": "phase" if isinstance(dep, PhaseGate) else "task",
            }
            for node in nodes
            for dep in node.depends_on
        ],
        "critical_path": [node.task_id for node in nodes if node.critical_path],
    }
