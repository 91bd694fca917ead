"""Cycle detection over the sanitized task dependency graph."""
import logging
from typing import Dict, Iterator, List, Sequence, Set, Tuple

from .errors import GraphInvariantError
from .pipeline_models import GraphTask, StatusTask

logger = logging.getLogger(__name__)

UNVISITED = 0
IN_PROGRESS = 1
DONE = 2


def detect_cycles(tasks: Sequence[GraphTask]) -> Set[str]:
    """
    Return the ids of every task that sits on at least one dependency cycle.

    Depth-first search with UNVISITED / IN_PROGRESS / DONE colouring, driven by
    an explicit work stack so deep graphs do not hit the recursion limit.
    Each node also carries a Tarjan low-link: an edge back into a node that is
    still on the component stack (an in-progress ancestor, or a finished node
    whose component is not closed yet) pulls the low-link down, and every
    strongly connected component with more than one node, or with a self
    edge, is a set of cycle participants.

    Roots are taken in task order and edges in dependency order, so the result
    only depends on the input. The graph must be closed; an edge to an unknown
    id raises GraphInvariantError.
    """
    adjacency: Dict[str, List[str]] = {task.id: list(task.dependencies) for task in tasks}
    color: Dict[str, int] = {task_id: UNVISITED for task_id in adjacency}

    order: Dict[str, int] = {}
    low: Dict[str, int] = {}
    component_stack: List[str] = []
    on_component_stack: Set[str] = set()
    cycle_nodes: Set[str] = set()

    def enter(task_id: str) -> Tuple[str, Iterator[str]]:
        color[task_id] = IN_PROGRESS
        order[task_id] = low[task_id] = len(order)
        component_stack.append(task_id)
        on_component_stack.add(task_id)
        return task_id, iter(adjacency[task_id])

    for root in adjacency:
        if color[root] != UNVISITED:
            continue

        work = [enter(root)]
        while work:
            node, edges = work[-1]
            for target in edges:
                if target not in color:
                    raise GraphInvariantError(
                        f"Task '{node}' depends on unknown task '{target}'",
                        {"task": node, "dependency": target},
                    )
                if color[target] == UNVISITED:
                    work.append(enter(target))
                    break
                if target in on_component_stack:
                    low[node] = min(low[node], order[target])
            else:
                work.pop()
                color[node] = DONE
                if work:
                    parent = work[-1][0]
                    low[parent] = min(low[parent], low[node])
                if low[node] == order[node]:
                    component = []
                    while True:
                        member = component_stack.pop()
                        on_component_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    if len(component) > 1 or node in adjacency[node]:
                        cycle_nodes.update(component)

    if cycle_nodes:
        logger.info("Cycle detection: %d of %d tasks on a cycle", len(cycle_nodes), len(adjacency))
    return cycle_nodes


def mark_cyclic_tasks(tasks: Sequence[GraphTask]) -> List[StatusTask]:
    """Annotate every task with status 'error' (on a cycle) or 'ok'."""
    cycle_ids = detect_cycles(tasks)
    return [
        StatusTask(
            id=task.id,
            priority=task.priority,
            dependencies=list(task.dependencies),
            status="error" if task.id in cycle_ids else "ok",
        )
        for task in tasks
    ]
