"""
Shared pytest fixtures for bracket builder tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bracket.editor import AddEdge, AddLayer, AddNode, SetSeedSource, apply
from bracket.models import Graph, InputPort, OutputPort, create_starter_graph


@pytest.fixture
def starter_graph():
    """The default bracket: QF1 (2 v 3) feeding the home slot of the GF (v seed 1)."""
    return create_starter_graph()


@pytest.fixture
def three_layer_graph():
    """
    Three layers, layer 0 feeding layer 1 through two edges.

    r0m0 (1 v 4) and r0m1 (2 v 3) both feed r1m0 (an EF); r1m1 is a
    second EF seeded 5 v 6; r2m0 is the GF fed by both layer-1 winners.
    """
    graph = Graph(seed_count=6)
    for _ in range(3):
        graph = apply(graph, AddLayer())
    graph = apply(graph, AddNode(0))
    graph = apply(graph, AddNode(0))
    graph = apply(graph, AddNode(1))
    graph = apply(graph, AddNode(1))
    graph = apply(graph, AddNode(2))
    for node_id, port, rank in [
        ('r0m0', InputPort.HOME, 1),
        ('r0m0', InputPort.AWAY, 4),
        ('r0m1', InputPort.HOME, 2),
        ('r0m1', InputPort.AWAY, 3),
        ('r1m1', InputPort.HOME, 5),
        ('r1m1', InputPort.AWAY, 6),
    ]:
        graph = apply(graph, SetSeedSource(node_id, port, rank))
    graph = apply(graph, AddEdge('r0m0', OutputPort.WINNER, 'r1m0', InputPort.HOME))
    graph = apply(graph, AddEdge('r0m1', OutputPort.WINNER, 'r1m0', InputPort.AWAY))
    graph = apply(graph, AddEdge('r1m0', OutputPort.WINNER, 'r2m0', InputPort.HOME))
    graph = apply(graph, AddEdge('r1m1', OutputPort.WINNER, 'r2m0', InputPort.AWAY))
    return graph


@pytest.fixture
def knockout_ruleset_dict():
    """A four-team knockout in the scheduler's wire shape."""
    return {
        'seedCount': 4,
        'layers': [
            {'label': 'Semi Finals', 'matches': [
                {'label': 'SF1', 'category': 'SF', 'eliminationFlag': True,
                 'home': {'kind': 'seed', 'rank': 1}, 'away': {'kind': 'seed', 'rank': 4}},
                {'label': 'SF2', 'category': 'SF', 'eliminationFlag': True,
                 'home': {'kind': 'seed', 'rank': 2}, 'away': {'kind': 'seed', 'rank': 3}},
            ]},
            {'label': 'Grand Final', 'matches': [
                {'label': 'GF', 'category': 'GF', 'eliminationFlag': True,
                 'home': {'kind': 'result', 'layerRef': 1, 'matchRef': 0, 'outcome': 'winner'},
                 'away': {'kind': 'result', 'layerRef': 1, 'matchRef': 1, 'outcome': 'winner'}},
            ]},
        ],
    }
