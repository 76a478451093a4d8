"""
TaskGraph — NetworkX view of the parent/child relation over a flat task list.

Edges: parent_task_id → id. A parent id that is absent from the list still
becomes a node, so descendants of a task outside the loaded set can be found.

Every traversal is visited-set based: a corrupted list with a parent cycle
terminates instead of looping.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

import networkx as nx

from planterplan.records import Task


class TaskGraph:
    """
    Read-only parent → child DiGraph.

    Usage:
        graph = TaskGraph(tasks)
        graph.descendant_ids("root")
        graph.would_create_cycle("phase-1", new_parent_id="task-7")
    """

    def __init__(self, tasks: Iterable[Task]):
        self._graph = nx.DiGraph()
        self._tasks: Dict[str, Task] = {}

        for task in tasks:
            self._tasks[task.id] = task
            self._graph.add_node(task.id)
        for task in self._tasks.values():
            if task.parent_task_id is not None:
                self._graph.add_edge(task.parent_task_id, task.id)

    # -----------------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------------

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def get(self, task_id: Optional[str]) -> Optional[Task]:
        if task_id is None:
            return None
        return self._tasks.get(task_id)

    def child_ids(self, task_id: str) -> List[str]:
        """Direct children in input order."""
        if not self._graph.has_node(task_id):
            return []
        return list(self._graph.successors(task_id))

    # -----------------------------------------------------------------------
    # Traversal
    # -----------------------------------------------------------------------

    def descendant_ids(self, task_id: str) -> List[str]:
        """All transitive descendants, breadth-first, excluding task_id itself."""
        if not self._graph.has_node(task_id):
            return []
        return [child for _, child in nx.bfs_edges(self._graph, task_id)]

    def descendants(self, task_id: str) -> List[Task]:
        return [self._tasks[i] for i in self.descendant_ids(task_id) if i in self._tasks]

    def ancestor_ids(self, task_id: str) -> List[str]:
        """Parent chain, nearest first. Stops at a missing parent or a repeat."""
        chain: List[str] = []
        seen = {task_id}
        current = self._tasks.get(task_id)
        while current is not None and current.parent_task_id is not None:
            parent_id = current.parent_task_id
            if parent_id in seen:
                break
            chain.append(parent_id)
            seen.add(parent_id)
            current = self._tasks.get(parent_id)
        return chain

    def is_descendant(self, task_id: str, candidate_id: str) -> bool:
        """True when candidate_id sits somewhere below task_id."""
        return task_id in self.ancestor_ids(candidate_id)

    def would_create_cycle(self, task_id: str, new_parent_id: Optional[str]) -> bool:
        """True when re-parenting task_id under new_parent_id makes it its own ancestor."""
        if new_parent_id is None:
            return False
        return new_parent_id == task_id or self.is_descendant(task_id, new_parent_id)

    # -----------------------------------------------------------------------
    # Diagnostics
    # -----------------------------------------------------------------------

    def find_cycles(self) -> List[List[str]]:
        """Every parent cycle in the data. Empty for a healthy forest."""
        return [sorted(cycle) for cycle in nx.simple_cycles(self._graph)]

    def orphans(self) -> List[Task]:
        """Tasks whose parent id does not resolve within the set."""
        return [
            t for t in self._tasks.values()
            if t.parent_task_id is not None and t.parent_task_id not in self._tasks
        ]

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()
