"""
Graph model for the finals bracket builder.

A bracket is a sequence of layers (rounds). Each layer holds nodes (matches),
each node exposes two input slots (home/away) and two output ports
(winner/loser). Edges bind an output port of one node to an input slot of a
node in a later layer. An input slot may instead hold a static seed rank.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple


class Category(str, Enum):
    QUALIFYING = "QF"
    ELIMINATION = "EF"
    SEMI = "SF"
    PRELIMINARY = "PF"
    GRAND = "GF"


TERMINAL_CATEGORY = Category.GRAND
DEFAULT_CATEGORY = Category.ELIMINATION


class OutputPort(str, Enum):
    WINNER = "winner-out"
    LOSER = "loser-out"


class InputPort(str, Enum):
    HOME = "home-in"
    AWAY = "away-in"


def make_node_id(layer: int, slot: int) -> str:
    """Node ids are derived from position, e.g. layer 1 slot 0 -> 'r1m0'."""
    return f"r{layer}m{slot}"


def make_edge_id(source: str, source_port: OutputPort, target: str, target_port: InputPort) -> str:
    return f"{source}:{OutputPort(source_port).value}->{target}:{InputPort(target_port).value}"


def auto_label(category: Category, slot: int) -> str:
    """Default label for a match: 'GF' for the terminal match, else e.g. 'EF2'."""
    if category == TERMINAL_CATEGORY:
        return category.value
    return f"{category.value}{slot + 1}"


@dataclass(frozen=True)
class Node:
    id: str
    layer: int
    slot: int
    label: str
    category: Category = DEFAULT_CATEGORY
    elimination: bool = True
    home_rank: Optional[int] = None
    away_rank: Optional[int] = None

    def seed_rank(self, port: InputPort) -> Optional[int]:
        """Seed rank bound to the given input slot, or None."""
        if port == InputPort.HOME:
            return self.home_rank
        return self.away_rank

    def with_seed_rank(self, port: InputPort, rank: Optional[int]) -> "Node":
        if port == InputPort.HOME:
            return replace(self, home_rank=rank)
        return replace(self, away_rank=rank)

    @property
    def is_terminal(self) -> bool:
        return self.category == TERMINAL_CATEGORY


@dataclass(frozen=True)
class Edge:
    id: str
    source: str
    source_port: OutputPort
    target: str
    target_port: InputPort

    @classmethod
    def between(cls, source: str, source_port: OutputPort, target: str, target_port: InputPort) -> "Edge":
        """Build an edge with its canonical id."""
        source_port = OutputPort(source_port)
        target_port = InputPort(target_port)
        return cls(
            id=make_edge_id(source, source_port, target, target_port),
            source=source,
            source_port=source_port,
            target=target,
            target_port=target_port,
        )


@dataclass(frozen=True)
class Layer:
    label: str
    nodes: Tuple[Node, ...] = ()


@dataclass(frozen=True)
class Graph:
    layers: Tuple[Layer, ...] = ()
    edges: Tuple[Edge, ...] = ()
    seed_count: int = 8

    def nodes(self) -> Iterator[Node]:
        """All nodes in layer/slot order."""
        for layer in self.layers:
            yield from layer.nodes

    def node_map(self) -> Dict[str, Node]:
        return {node.id: node for node in self.nodes()}

    def find_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes():
            if node.id == node_id:
                return node
        return None

    def find_edge(self, edge_id: str) -> Optional[Edge]:
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def inbound_edge(self, node_id: str, port: InputPort) -> Optional[Edge]:
        """The edge feeding the given input slot, if any."""
        for edge in self.edges:
            if edge.target == node_id and edge.target_port == port:
                return edge
        return None

    def outbound_edges(self, node_id: str, port: Optional[OutputPort] = None) -> List[Edge]:
        return [
            edge for edge in self.edges
            if edge.source == node_id and (port is None or edge.source_port == port)
        ]

    @property
    def final_layer_index(self) -> int:
        """Index of the last layer (-1 for a graph with no layers)."""
        return len(self.layers) - 1

    @property
    def node_count(self) -> int:
        return sum(len(layer.nodes) for layer in self.layers)


def create_starter_graph() -> Graph:
    """
    Create the default bracket shown to a new editor.

    One qualifying match (seeds 2 v 3) whose winner meets seed 1 in the
    grand final. Validates with no diagnostics.
    """
    qualifier = Node(
        id=make_node_id(0, 0),
        layer=0,
        slot=0,
        label=auto_label(Category.QUALIFYING, 0),
        category=Category.QUALIFYING,
        elimination=True,
        home_rank=2,
        away_rank=3,
    )
    grand_final = Node(
        id=make_node_id(1, 0),
        layer=1,
        slot=0,
        label=auto_label(TERMINAL_CATEGORY, 0),
        category=TERMINAL_CATEGORY,
        elimination=True,
        home_rank=None,
        away_rank=1,
    )
    return Graph(
        layers=(
            Layer(label="Finals Week 1", nodes=(qualifier,)),
            Layer(label="Grand Final", nodes=(grand_final,)),
        ),
        edges=(Edge.between(qualifier.id, OutputPort.WINNER, grand_final.id, InputPort.HOME),),
        seed_count=3,
    )


def graph_to_dict(graph: Graph) -> Dict:
    """JSON-ready projection of a graph for API responses."""
    return {
        'seed_count': graph.seed_count,
        'layers': [
            {
                'index': index,
                'label': layer.label,
                'nodes': [
                    {
                        'id': node.id,
                        'layer': node.layer,
                        'slot': node.slot,
                        'label': node.label,
                        'category': node.category.value,
                        'elimination': node.elimination,
                        'home_rank': node.home_rank,
                        'away_rank': node.away_rank,
                    }
                    for node in layer.nodes
                ],
            }
            for index, layer in enumerate(graph.layers)
        ],
        'edges': [
            {
                'id': edge.id,
                'source': edge.source,
                'source_port': edge.source_port.value,
                'target': edge.target,
                'target_port': edge.target_port.value,
            }
            for edge in graph.edges
        ],
    }
