import pytest

from busplanner.astar import astar


def null_heuristic(_vertex):
    return 0


def add_edge(graph, v1, v2, cost):
    graph.setdefault(v1, {})[v2] = cost
    graph.setdefault(v2, {})


def test_single_vertex():
    graph = {0: {}}
    assert astar(graph, 0, 0, null_heuristic) == (0, [0])
    assert astar(graph, 0, 1, null_heuristic) is None


def test_single_edge():
    graph = {}
    add_edge(graph, 0, 1, 2)
    assert astar(graph, 0, 1, null_heuristic) == (2, [0, 1])
    assert astar(graph, 1, 0, null_heuristic) is None


@pytest.fixture
def graph_1():
    graph = {}
    add_edge(graph, "a", "c", 12)
    add_edge(graph, "a", "d", 60)
    add_edge(graph, "b", "a", 10)
    add_edge(graph, "c", "b", 20)
    add_edge(graph, "c", "d", 32)
    add_edge(graph, "e", "a", 7)
    return graph


@pytest.mark.parametrize(
    "start, target, expected",
    [
        ("a", "a", (0, ["a"])),
        ("a", "b", (32, ["a", "c", "b"])),
        ("a", "c", (12, ["a", "c"])),
        ("a", "d", (12 + 32, ["a", "c", "d"])),
        ("a", "e", None),
        ("b", "a", (10, ["b", "a"])),
        ("b", "b", (0, ["b"])),
        ("b", "c", (10 + 12, ["b", "a", "c"])),
        ("b", "d", (10 + 12 + 32, ["b", "a", "c", "d"])),
        ("b", "e", None),
        ("c", "a", (20 + 10, ["c", "b", "a"])),
        ("c", "b", (20, ["c", "b"])),
        ("c", "c", (0, ["c"])),
        ("c", "d", (32, ["c", "d"])),
        ("c", "e", None),
        ("d", "a", None),
        ("d", "b", None),
        ("d", "c", None),
        ("d", "d", (0, ["d"])),
        ("d", "e", None),
        ("e", "a", (7, ["e", "a"])),
        ("e", "b", (7 + 12 + 20, ["e", "a", "c", "b"])),
        ("e", "c", (7 + 12, ["e", "a", "c"])),
        ("e", "d", (7 + 12 + 32, ["e", "a", "c", "d"])),
        ("e", "e", (0, ["e"])),
    ],
)
def test_graph_1(graph_1, start, target, expected):
    assert astar(graph_1, start, target, null_heuristic) == expected


def test_heuristic():
    graph = {}
    rows = 100
    cols = 100
    for row in range(rows):
        for col in range(cols):
            add_edge(graph, (row, col), (row + 1, col), 1)
            add_edge(graph, (row, col), (row, col + 1), 1)
            add_edge(graph, (row, col), (row + 1, col + 1), 1)
            add_edge(graph, (row + 1, col), (row, col), 1)
            add_edge(graph, (row + 1, col + 1), (row, col), 1)

    result = astar(graph, (0, 0), (100, 90), lambda p: 100 - p[0] + 90 - p[1])
    assert result is not None
    weight, path = result
    assert weight == 100
    assert len(path) == 101
    assert path[0] == (0, 0)
    assert path[-1] == (100, 90)