"""
Conversion between the bracket graph and the declarative finals ruleset.

The ruleset is the edge-free form consumed by the fixture scheduler: each
match names where its home and away teams come from, either a seed rank or
the winner/loser of an earlier match. Layer references are 1-based and match
references 0-based, as the scheduler expects.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from .models import (
    Category,
    DEFAULT_CATEGORY,
    Edge,
    Graph,
    InputPort,
    Layer,
    Node,
    OutputPort,
    auto_label,
    make_node_id,
)

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    WINNER = "winner"
    LOSER = "loser"


PORT_BY_OUTCOME = {
    Outcome.WINNER: OutputPort.WINNER,
    Outcome.LOSER: OutputPort.LOSER,
}
OUTCOME_BY_PORT = {port: outcome for outcome, port in PORT_BY_OUTCOME.items()}


@dataclass(frozen=True)
class SeedSource:
    rank: int


@dataclass(frozen=True)
class ResultSource:
    layer_ref: int  # 1-based
    match_ref: int  # 0-based
    outcome: Outcome = Outcome.WINNER


SlotSource = Union[SeedSource, ResultSource]


@dataclass(frozen=True)
class MatchRule:
    label: str
    category: Category
    elimination: bool
    home: Optional[SlotSource]
    away: Optional[SlotSource]


@dataclass(frozen=True)
class RulesetLayer:
    label: str
    matches: Tuple[MatchRule, ...] = ()


@dataclass(frozen=True)
class Ruleset:
    seed_count: int
    layers: Tuple[RulesetLayer, ...] = ()


# ---------------------------------------------------------------------------
# Graph -> Ruleset
# ---------------------------------------------------------------------------

def to_ruleset(graph: Graph) -> Ruleset:
    """Convert a graph into the scheduler's ruleset. Unbound slots become None."""
    node_map = graph.node_map()
    layers = []
    for layer in graph.layers:
        matches = tuple(
            MatchRule(
                label=node.label,
                category=node.category,
                elimination=node.elimination,
                home=_slot_source(graph, node_map, node, InputPort.HOME),
                away=_slot_source(graph, node_map, node, InputPort.AWAY),
            )
            for node in layer.nodes
        )
        layers.append(RulesetLayer(label=layer.label, matches=matches))
    return Ruleset(seed_count=graph.seed_count, layers=tuple(layers))


def _slot_source(graph: Graph, node_map: Dict[str, Node], node: Node, port: InputPort) -> Optional[SlotSource]:
    edge = graph.inbound_edge(node.id, port)
    if edge is not None:
        source = node_map.get(edge.source)
        if source is not None:
            return ResultSource(
                layer_ref=source.layer + 1,
                match_ref=source.slot,
                outcome=OUTCOME_BY_PORT[edge.source_port],
            )
    rank = node.seed_rank(port)
    if rank is not None:
        return SeedSource(rank=rank)
    return None


# ---------------------------------------------------------------------------
# Ruleset -> Graph
# ---------------------------------------------------------------------------

def from_ruleset(ruleset: Ruleset) -> Graph:
    """
    Build a graph from a ruleset.

    Every result source becomes an edge. A result source that points at a
    match that does not exist, or that is not in an earlier layer, degrades
    to an unbound slot.
    """
    layers = []
    for layer_index, ruleset_layer in enumerate(ruleset.layers):
        nodes = []
        for slot, rule in enumerate(ruleset_layer.matches):
            nodes.append(Node(
                id=make_node_id(layer_index, slot),
                layer=layer_index,
                slot=slot,
                label=rule.label,
                category=rule.category,
                elimination=rule.elimination,
                home_rank=rule.home.rank if isinstance(rule.home, SeedSource) else None,
                away_rank=rule.away.rank if isinstance(rule.away, SeedSource) else None,
            ))
        layers.append(Layer(label=ruleset_layer.label, nodes=tuple(nodes)))

    edges = []
    for layer, ruleset_layer in zip(layers, ruleset.layers):
        for node, rule in zip(layer.nodes, ruleset_layer.matches):
            for port, source in ((InputPort.HOME, rule.home), (InputPort.AWAY, rule.away)):
                if not isinstance(source, ResultSource):
                    continue
                edge = _edge_from_result(layers, node, port, source)
                if edge is None:
                    logger.debug(
                        "Dropping reference from %s %s to layer %s match %s",
                        node.id, port.value, source.layer_ref, source.match_ref,
                    )
                    continue
                edges.append(edge)

    return Graph(layers=tuple(layers), edges=tuple(edges), seed_count=ruleset.seed_count)


def _edge_from_result(layers: List[Layer], node: Node, port: InputPort, source: ResultSource) -> Optional[Edge]:
    source_layer = source.layer_ref - 1
    if source_layer < 0 or source_layer >= node.layer:
        return None
    candidates = layers[source_layer].nodes
    if source.match_ref < 0 or source.match_ref >= len(candidates):
        return None
    return Edge.between(
        candidates[source.match_ref].id,
        PORT_BY_OUTCOME[source.outcome],
        node.id,
        port,
    )


# ---------------------------------------------------------------------------
# Wire format
# ---------------------------------------------------------------------------

def ruleset_to_dict(ruleset: Ruleset) -> Dict:
    """Serialize a ruleset into the scheduler's wire shape."""
    return {
        'seedCount': ruleset.seed_count,
        'layers': [
            {
                'label': layer.label,
                'matches': [
                    {
                        'label': rule.label,
                        'category': rule.category.value,
                        'eliminationFlag': rule.elimination,
                        'home': _slot_to_dict(rule.home),
                        'away': _slot_to_dict(rule.away),
                    }
                    for rule in layer.matches
                ],
            }
            for layer in ruleset.layers
        ],
    }


def _slot_to_dict(source: Optional[SlotSource]) -> Optional[Dict]:
    if isinstance(source, SeedSource):
        return {'kind': 'seed', 'rank': source.rank}
    if isinstance(source, ResultSource):
        return {
            'kind': 'result',
            'layerRef': source.layer_ref,
            'matchRef': source.match_ref,
            'outcome': source.outcome.value,
        }
    return None


def ruleset_from_dict(data) -> Ruleset:
    """
    Decode a ruleset from its wire shape.

    Decoding never fails: unknown categories fall back to the default
    category, malformed slot sources decode as unbound and a missing seed
    count, or one below 1, falls back to the highest seeded rank.
    """
    if not isinstance(data, dict):
        logger.debug("Ruleset document is not a mapping, decoding as empty")
        return Ruleset(seed_count=1)

    layers = []
    raw_layers = data.get('layers')
    if not isinstance(raw_layers, list):
        raw_layers = []
    for layer_index, raw_layer in enumerate(raw_layers):
        if not isinstance(raw_layer, dict):
            raw_layer = {}
        raw_matches = raw_layer.get('matches')
        if not isinstance(raw_matches, list):
            raw_matches = []
        matches = tuple(
            _match_from_dict(raw_match, slot)
            for slot, raw_match in enumerate(raw_matches)
        )
        label = raw_layer.get('label') or f"Round {layer_index + 1}"
        layers.append(RulesetLayer(label=str(label), matches=matches))

    seed_count = data.get('seedCount')
    if not _is_int(seed_count) or seed_count < 1:
        ranks = [
            source.rank
            for layer in layers
            for rule in layer.matches
            for source in (rule.home, rule.away)
            if isinstance(source, SeedSource)
        ]
        seed_count = max(ranks + [1])
    return Ruleset(seed_count=seed_count, layers=tuple(layers))


def _match_from_dict(raw, slot: int) -> MatchRule:
    if not isinstance(raw, dict):
        raw = {}
    try:
        category = Category(raw.get('category'))
    except ValueError:
        category = DEFAULT_CATEGORY
    label = raw.get('label') or auto_label(category, slot)
    return MatchRule(
        label=str(label),
        category=category,
        elimination=bool(raw.get('eliminationFlag', True)),
        home=_slot_from_dict(raw.get('home')),
        away=_slot_from_dict(raw.get('away')),
    )


def _slot_from_dict(raw) -> Optional[SlotSource]:
    if not isinstance(raw, dict):
        return None
    kind = raw.get('kind')
    if kind == 'seed':
        rank = raw.get('rank')
        if _is_int(rank):
            return SeedSource(rank=rank)
        return None
    if kind == 'result':
        layer_ref = raw.get('layerRef')
        match_ref = raw.get('matchRef')
        if not (_is_int(layer_ref) and _is_int(match_ref)):
            return None
        try:
            outcome = Outcome(raw.get('outcome', Outcome.WINNER.value))
        except ValueError:
            return None
        return ResultSource(layer_ref=layer_ref, match_ref=match_ref, outcome=outcome)
    return None


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
