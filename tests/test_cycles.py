"""
Unit tests for cycle detection.

Includes property-based testing with hypothesis against a brute-force
reachability check.
"""
import pytest
from hypothesis import given
from hypothesis import strategies as st

from taskgraph.cycles import detect_cycles, mark_cyclic_tasks
from taskgraph.errors import GraphInvariantError
from taskgraph.pipeline_models import GraphTask


def make_tasks(edges):
    """Build tasks from {id: [dependency ids]} preserving insertion order"""
    return [GraphTask(id=task_id, priority="medium", dependencies=deps) for task_id, deps in edges.items()]


def statuses(edges):
    return {task.id: task.status for task in mark_cyclic_tasks(make_tasks(edges))}


@pytest.mark.unit
class TestCycleDetection:
    """Concrete dependency shapes"""

    def test_mutual_dependency(self):
        assert statuses({"A": ["B"], "B": ["A"]}) == {"A": "error", "B": "error"}

    def test_linear_chain(self):
        assert statuses({"A": ["B"], "B": ["C"], "C": []}) == {"A": "ok", "B": "ok", "C": "ok"}

    def test_shared_dependency(self):
        assert statuses({"A": ["B"], "B": [], "C": ["B"]}) == {"A": "ok", "B": "ok", "C": "ok"}

    def test_task_depending_on_cycle_is_not_on_it(self):
        result = statuses({"A": ["B"], "B": ["C"], "C": ["A"], "D": ["A"]})
        assert result == {"A": "error", "B": "error", "C": "error", "D": "ok"}

    def test_dependent_visited_first(self):
        result = statuses({"D": ["A"], "A": ["B"], "B": ["C"], "C": ["A"]})
        assert result == {"A": "error", "B": "error", "C": "error", "D": "ok"}

    def test_self_dependency(self):
        assert statuses({"A": ["A"]}) == {"A": "error"}

    def test_empty_task_list(self):
        assert mark_cyclic_tasks([]) == []
        assert detect_cycles([]) == set()

    def test_cycle_closed_through_finished_node(self):
        """B is on A -> B -> C -> A even though C finishes before B is entered"""
        result = statuses({"A": ["C", "B"], "B": ["C"], "C": ["A"]})
        assert result == {"A": "error", "B": "error", "C": "error"}

    def test_disconnected_components(self):
        result = statuses({"A": ["B"], "B": ["A"], "X": ["Y"], "Y": []})
        assert result == {"A": "error", "B": "error", "X": "ok", "Y": "ok"}

    def test_preserves_order_and_dependencies(self):
        tasks = make_tasks({"B": ["A"], "A": []})
        marked = mark_cyclic_tasks(tasks)
        assert [task.id for task in marked] == ["B", "A"]
        assert marked[0].dependencies == ["A"]
        assert tasks[0].dependencies == ["A"]

    def test_deep_chain_does_not_recurse(self):
        n = 5000
        edges = {f"t{i}": [f"t{i + 1}"] for i in range(n)}
        edges[f"t{n}"] = ["t0"]
        assert len(detect_cycles(make_tasks(edges))) == n + 1

    def test_unknown_dependency_is_invariant_violation(self):
        with pytest.raises(GraphInvariantError) as exc_info:
            detect_cycles(make_tasks({"A": ["missing"]}))
        assert exc_info.value.details["dependency"] == "missing"

    def test_deterministic(self):
        edges = {"A": ["B", "C"], "B": ["C"], "C": ["B"], "D": ["D", "A"]}
        first = detect_cycles(make_tasks(edges))
        for _ in range(5):
            assert detect_cycles(make_tasks(edges)) == first
        assert first == {"B", "C", "D"}


def on_cycle_brute_force(edges):
    """Tasks reachable from themselves by following one or more edges"""
    result = set()
    for start in edges:
        seen = set()
        frontier = list(edges[start])
        while frontier:
            node = frontier.pop()
            if node == start:
                result.add(start)
                break
            if node not in seen:
                seen.add(node)
                frontier.extend(edges[node])
    return result


@st.composite
def closed_graphs(draw):
    ids = draw(st.lists(st.sampled_from("ABCDEFGH"), min_size=0, max_size=8, unique=True))
    edges = {}
    for task_id in ids:
        edges[task_id] = draw(st.lists(st.sampled_from(ids), max_size=4)) if ids else []
    return edges


@pytest.mark.unit
@given(closed_graphs())
def test_property_errors_are_exactly_cycle_participants(edges):
    """Property test: status is 'error' iff the task can reach itself"""
    assert detect_cycles(make_tasks(edges)) == on_cycle_brute_force(edges)
