"""
Structural editor for the bracket graph.

`apply(graph, action)` is a pure reducer: it returns a new graph and never
raises. An action that cannot be applied (unknown node, bad index, backward
edge, ...) returns the input graph unchanged.

Node ids are derived from (layer, slot), so any removal re-derives the ids of
every surviving node and rewrites the edges that reference them. Edges whose
endpoint disappeared are dropped.
"""
import logging
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from .formats import Ruleset, from_ruleset
from .models import (
    Category,
    DEFAULT_CATEGORY,
    Edge,
    Graph,
    InputPort,
    Layer,
    Node,
    OutputPort,
    TERMINAL_CATEGORY,
    auto_label,
    make_node_id,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InitFromRuleset:
    ruleset: Ruleset


@dataclass(frozen=True)
class SetQualifyingSeedCount:
    count: int


@dataclass(frozen=True)
class AddLayer:
    label: Optional[str] = None


@dataclass(frozen=True)
class UpdateLayerLabel:
    layer: int
    label: str


@dataclass(frozen=True)
class RemoveLayer:
    layer: int


@dataclass(frozen=True)
class AddNode:
    layer: int


@dataclass(frozen=True)
class RemoveNode:
    node_id: str


@dataclass(frozen=True)
class UpdateNode:
    node_id: str
    label: Optional[str] = None
    category: Optional[Category] = None
    elimination: Optional[bool] = None


@dataclass(frozen=True)
class SetSeedSource:
    node_id: str
    port: InputPort
    rank: Optional[int]


@dataclass(frozen=True)
class AddEdge:
    source: str
    source_port: OutputPort
    target: str
    target_port: InputPort


@dataclass(frozen=True)
class RemoveEdge:
    edge_id: str


# Actions after which node ids may refer to different matches.
REINDEXING_ACTIONS = (InitFromRuleset, RemoveLayer, RemoveNode)


# ---------------------------------------------------------------------------
# Reindexing
# ---------------------------------------------------------------------------

def reindex(layers: Tuple[Layer, ...], edges: Tuple[Edge, ...]) -> Tuple[Tuple[Layer, ...], Tuple[Edge, ...]]:
    """
    Re-derive node ids from position and repair edges.

    Returns the rewritten layers and edges. An edge whose endpoint has no
    surviving node is dropped rather than rewritten.
    """
    id_map: Dict[str, str] = {}
    new_layers = []
    for layer_index, layer in enumerate(layers):
        nodes = []
        for slot, node in enumerate(layer.nodes):
            new_id = make_node_id(layer_index, slot)
            id_map[node.id] = new_id
            nodes.append(replace(node, id=new_id, layer=layer_index, slot=slot))
        new_layers.append(replace(layer, nodes=tuple(nodes)))

    new_edges = []
    for edge in edges:
        source = id_map.get(edge.source)
        target = id_map.get(edge.target)
        if source is None or target is None:
            continue
        new_edges.append(Edge.between(source, edge.source_port, target, edge.target_port))
    return tuple(new_layers), tuple(new_edges)


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def apply(graph: Graph, action) -> Graph:
    """Apply one editor action and return the resulting graph."""
    handler = _HANDLERS.get(type(action))
    if handler is None:
        logger.debug("Ignoring unknown action %r", action)
        return graph
    result = handler(graph, action)
    if result is graph:
        logger.debug("Action %r left the graph unchanged", action)
    return result


def _init_from_ruleset(graph: Graph, action: InitFromRuleset) -> Graph:
    if not isinstance(action.ruleset, Ruleset):
        return graph
    return from_ruleset(action.ruleset)


def _set_seed_count(graph: Graph, action: SetQualifyingSeedCount) -> Graph:
    if not _is_int(action.count) or action.count < 1:
        return graph
    return replace(graph, seed_count=action.count)


def _add_layer(graph: Graph, action: AddLayer) -> Graph:
    label = action.label or f"Round {len(graph.layers) + 1}"
    return replace(graph, layers=graph.layers + (Layer(label=label),))


def _update_layer_label(graph: Graph, action: UpdateLayerLabel) -> Graph:
    if not _valid_layer(graph, action.layer) or not action.label:
        return graph
    layers = list(graph.layers)
    layers[action.layer] = replace(layers[action.layer], label=action.label)
    return replace(graph, layers=tuple(layers))


def _remove_layer(graph: Graph, action: RemoveLayer) -> Graph:
    if not _valid_layer(graph, action.layer):
        return graph
    layers = graph.layers[:action.layer] + graph.layers[action.layer + 1:]
    new_layers, edges = reindex(layers, graph.edges)
    return replace(graph, layers=new_layers, edges=edges)


def _add_node(graph: Graph, action: AddNode) -> Graph:
    if not _valid_layer(graph, action.layer):
        return graph
    layer = graph.layers[action.layer]
    slot = len(layer.nodes)
    is_final_layer = action.layer == graph.final_layer_index
    category = TERMINAL_CATEGORY if is_final_layer and slot == 0 else DEFAULT_CATEGORY
    node = Node(
        id=make_node_id(action.layer, slot),
        layer=action.layer,
        slot=slot,
        label=auto_label(category, slot),
        category=category,
    )
    layers = list(graph.layers)
    layers[action.layer] = replace(layer, nodes=layer.nodes + (node,))
    return replace(graph, layers=tuple(layers))


def _remove_node(graph: Graph, action: RemoveNode) -> Graph:
    node = graph.find_node(action.node_id)
    if node is None:
        return graph
    layers = list(graph.layers)
    layer = layers[node.layer]
    layers[node.layer] = replace(layer, nodes=tuple(n for n in layer.nodes if n.id != node.id))
    new_layers, edges = reindex(tuple(layers), graph.edges)
    return replace(graph, layers=new_layers, edges=edges)


def _update_node(graph: Graph, action: UpdateNode) -> Graph:
    node = graph.find_node(action.node_id)
    if node is None:
        return graph
    changes = {}
    if action.label is not None:
        changes['label'] = action.label
    if action.category is not None:
        if not isinstance(action.category, Category):
            return graph
        changes['category'] = action.category
    if action.elimination is not None:
        changes['elimination'] = bool(action.elimination)
    if not changes:
        return graph
    return _replace_node(graph, replace(node, **changes))


def _set_seed_source(graph: Graph, action: SetSeedSource) -> Graph:
    node = graph.find_node(action.node_id)
    if node is None or not isinstance(action.port, InputPort):
        return graph
    if action.rank is not None and not _is_int(action.rank):
        return graph
    updated = _replace_node(graph, node.with_seed_rank(action.port, action.rank))
    if action.rank is None:
        return updated
    edges = tuple(
        edge for edge in updated.edges
        if not (edge.target == node.id and edge.target_port == action.port)
    )
    return replace(updated, edges=edges)


def _add_edge(graph: Graph, action: AddEdge) -> Graph:
    if not isinstance(action.source_port, OutputPort) or not isinstance(action.target_port, InputPort):
        return graph
    source = graph.find_node(action.source)
    target = graph.find_node(action.target)
    if source is None or target is None or source.layer >= target.layer:
        return graph
    edge = Edge.between(source.id, action.source_port, target.id, action.target_port)
    edges = tuple(
        existing for existing in graph.edges
        if not (existing.target == target.id and existing.target_port == edge.target_port)
    )
    updated = _replace_node(graph, target.with_seed_rank(edge.target_port, None))
    return replace(updated, edges=edges + (edge,))


def _remove_edge(graph: Graph, action: RemoveEdge) -> Graph:
    if graph.find_edge(action.edge_id) is None:
        return graph
    return replace(graph, edges=tuple(edge for edge in graph.edges if edge.id != action.edge_id))


_HANDLERS = {
    InitFromRuleset: _init_from_ruleset,
    SetQualifyingSeedCount: _set_seed_count,
    AddLayer: _add_layer,
    UpdateLayerLabel: _update_layer_label,
    RemoveLayer: _remove_layer,
    AddNode: _add_node,
    RemoveNode: _remove_node,
    UpdateNode: _update_node,
    SetSeedSource: _set_seed_source,
    AddEdge: _add_edge,
    RemoveEdge: _remove_edge,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _replace_node(graph: Graph, node: Node) -> Graph:
    layers = list(graph.layers)
    layer = layers[node.layer]
    layers[node.layer] = replace(
        layer,
        nodes=tuple(node if existing.id == node.id else existing for existing in layer.nodes),
    )
    return replace(graph, layers=tuple(layers))


def _valid_layer(graph: Graph, index) -> bool:
    return _is_int(index) and 0 <= index < len(graph.layers)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
