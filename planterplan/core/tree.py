"""
TreeBuilder — flat task lists to nested, position-ordered hierarchies and back.

Sibling lists are sorted ascending by position (missing = 0) with a stable
sort, so ties keep input order. Malformed input never raises: a task whose
parent is not in the list becomes a root, and tasks reachable only through
a parent cycle are left out.

Every walk uses an explicit stack, so depth is bounded by memory rather than
the interpreter's recursion limit.
"""

from __future__ import annotations

import uuid
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from planterplan.core.graph import TaskGraph
from planterplan.records import Task, TaskNode, TaskOrigin

CLONE_OVERRIDE_FIELDS = ("title", "description", "start_date", "due_date", "days_from_start", "position")


class SeparatedTasks(NamedTuple):
    instance_tasks: List[TaskNode]
    template_tasks: List[TaskNode]


def sort_by_position(tasks: Iterable[Task]) -> list:
    """Stable ascending sort on position, missing position treated as 0."""
    return sorted(tasks, key=lambda t: t.sort_key)


def _sorted_child_nodes(graph: TaskGraph, parent_id: str, visited: Set[str]) -> List[TaskNode]:
    nodes: List[TaskNode] = []
    for child_id in graph.child_ids(parent_id):
        if child_id in visited:
            continue
        visited.add(child_id)
        nodes.append(TaskNode.from_task(graph.get(child_id)))
    return sort_by_position(nodes)


def _attach_descendants(graph: TaskGraph, level: List[TaskNode], visited: Set[str]) -> None:
    stack = list(level)
    while stack:
        node = stack.pop()
        node.children = _sorted_child_nodes(graph, node.id, visited)
        stack.extend(node.children)


def build_tree(tasks: Iterable[Task], root_id: str) -> List[TaskNode]:
    """
    Nest the descendants of ``root_id``.

    Returns the direct children of ``root_id`` (the root itself is not
    included), each carrying its own sorted ``children``. Tasks outside
    that subtree are excluded.
    """
    graph = TaskGraph(tasks)
    visited = {root_id}
    top = _sorted_child_nodes(graph, root_id, visited)
    _attach_descendants(graph, top, visited)
    return top


def build_hierarchy(tasks: Iterable[Task]) -> List[TaskNode]:
    """
    Nest a whole forest.

    A task is a root when its parent is null or not present in ``tasks``.
    """
    graph = TaskGraph(tasks)
    roots = [
        TaskNode.from_task(task) for task in graph
        if task.parent_task_id is None or task.parent_task_id not in graph
    ]
    roots = sort_by_position(roots)
    _attach_descendants(graph, roots, {root.id for root in roots})
    return roots


def separate_by_origin(tasks: Iterable[Task]) -> SeparatedTasks:
    """
    Partition by origin first, then build each forest independently,
    so templates and live instances never nest together.
    """
    instance: List[Task] = []
    template: List[Task] = []
    for task in tasks:
        if task.origin == TaskOrigin.TEMPLATE:
            template.append(task)
        elif task.origin == TaskOrigin.INSTANCE:
            instance.append(task)

    return SeparatedTasks(
        instance_tasks=build_hierarchy(instance),
        template_tasks=build_hierarchy(template),
    )


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------

def flatten_tree(nodes: Sequence[TaskNode]) -> List[Task]:
    """Depth-first, pre-order flattening. Children are stripped."""
    result: List[Task] = []
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        result.append(node.to_task())
        stack.extend(reversed(node.children))
    return result


def find_node(nodes: Sequence[TaskNode], task_id: str) -> Optional[TaskNode]:
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        if node.id == task_id:
            return node
        stack.extend(reversed(node.children))
    return None


def _path_to(nodes: Sequence[TaskNode], task_id: str) -> Optional[Tuple[int, ...]]:
    """Child indexes leading from the top level to ``task_id``, first match in pre-order."""
    stack: List[Tuple[TaskNode, Tuple[int, ...]]] = [
        (node, (i,)) for i, node in reversed(list(enumerate(nodes)))
    ]
    while stack:
        node, path = stack.pop()
        if node.id == task_id:
            return path
        stack.extend(
            (child, path + (i,)) for i, child in reversed(list(enumerate(node.children)))
        )
    return None


def _replace_at(
    nodes: Sequence[TaskNode],
    path: Tuple[int, ...],
    replace: Callable[[TaskNode], TaskNode],
) -> List[TaskNode]:
    """Copy the levels along ``path``; nodes off the path are shared, not copied."""
    levels = [list(nodes)]
    for index in path[:-1]:
        levels.append(list(levels[-1][index].children))

    updated = replace(levels[-1][path[-1]])
    for depth in range(len(path) - 1, -1, -1):
        level = levels[depth]
        level[path[depth]] = updated
        if depth:
            updated = levels[depth - 1][path[depth - 1]].model_copy(update={"children": level})
    return levels[0]


def update_task_in_tree(nodes: Sequence[TaskNode], task_id: str, **changes) -> List[TaskNode]:
    """Copy of the tree with one node's fields replaced. The input is not mutated."""
    path = _path_to(nodes, task_id)
    if path is None:
        return list(nodes)
    return _replace_at(nodes, path, lambda node: node.model_copy(update=changes))


def merge_children_into_tree(
    nodes: Sequence[TaskNode],
    parent_id: str,
    children: Iterable[Task],
) -> List[TaskNode]:
    """Copy of the tree where ``parent_id`` gets ``children`` (sorted) as its child list."""
    loaded = sort_by_position(
        child if isinstance(child, TaskNode) else TaskNode.from_task(child)
        for child in children
    )
    path = _path_to(nodes, parent_id)
    if path is None:
        return list(nodes)
    return _replace_at(nodes, path, lambda node: node.model_copy(update={"children": loaded}))


# ---------------------------------------------------------------------------
# Cloning
# ---------------------------------------------------------------------------

def _new_id() -> str:
    return str(uuid.uuid4())


def clone_subtree(
    tasks: Iterable[Task],
    source_id: str,
    new_parent_id: Optional[str],
    new_origin: str,
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    parent_root_id: Optional[str] = None,
    creator: Optional[str] = None,
    id_factory: Callable[[], str] = _new_id,
) -> List[Task]:
    """
    Copy ``source_id`` and all of its descendants under fresh ids.

    The copy of the source is placed under ``new_parent_id`` and comes first
    in the result, followed by its descendants breadth-first. Parent links
    are remapped onto the new ids. ``root_id`` is the copied root itself
    when ``new_parent_id`` is None, otherwise ``parent_root_id`` (falling back
    to ``new_parent_id``). Every copy gets ``new_origin`` and ``creator`` and
    starts incomplete.

    ``overrides`` replaces fields of the copied root only; keys outside
    CLONE_OVERRIDE_FIELDS and None values are ignored.

    Returns an empty list when ``source_id`` is not in ``tasks``.
    """
    graph = TaskGraph(tasks)
    source = graph.get(source_id)
    if source is None:
        return []

    sources = [source, *graph.descendants(source_id)]
    new_ids: Dict[str, str] = {task.id: id_factory() for task in sources}
    clone_root_id = new_ids[source.id]
    tree_root_id = clone_root_id if new_parent_id is None else (parent_root_id or new_parent_id)
    origin = TaskOrigin(new_origin).value

    root_overrides = {
        key: value for key, value in (overrides or {}).items()
        if key in CLONE_OVERRIDE_FIELDS and value is not None
    }

    clones: List[Task] = []
    for task in sources:
        data = task.model_dump()
        data.update(
            id=new_ids[task.id],
            parent_task_id=new_parent_id if task.id == source.id else new_ids[task.parent_task_id],
            root_id=tree_root_id,
            origin=origin,
            is_complete=False,
            creator=creator,
        )
        if task.id == source.id:
            data.update(root_overrides)
        clones.append(Task.model_validate(data))
    return clones
