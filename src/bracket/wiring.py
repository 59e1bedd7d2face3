"""
Click-to-connect wiring for the bracket editor.

Two states: Idle and Wiring. Activating an output port starts a wiring
session; activating a valid input port completes it and yields an AddEdge
action; cancelling (or re-clicking the source) returns to Idle. At most one
session is pending at a time.
"""
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

from .editor import AddEdge
from .models import Graph, InputPort, OutputPort


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Wiring:
    source: str
    source_port: OutputPort
    # Opaque to this module; the presentation layer stores e.g. the port position here.
    anchor: Any = None


WiringState = Union[Idle, Wiring]

IDLE = Idle()


@dataclass(frozen=True)
class ActivateOutput:
    node_id: str
    port: OutputPort
    anchor: Any = None


@dataclass(frozen=True)
class ActivateInput:
    node_id: str
    port: InputPort


@dataclass(frozen=True)
class Cancel:
    pass


def is_valid_target(graph: Graph, state: WiringState, node_id: str, port: InputPort) -> bool:
    """
    Check whether an input slot may receive the pending connection.

    A slot holding a seed rank is rejected; the seed must be cleared first.
    A slot already fed by another edge is accepted, the new edge replaces it.
    """
    if not isinstance(state, Wiring) or not isinstance(port, InputPort):
        return False
    if node_id == state.source:
        return False
    source = graph.find_node(state.source)
    target = graph.find_node(node_id)
    if source is None or target is None:
        return False
    if target.layer <= source.layer:
        return False
    return target.seed_rank(port) is None


def valid_targets(graph: Graph, state: WiringState) -> List[Tuple[str, InputPort]]:
    """All input slots that would accept the pending connection, in layer/slot order."""
    if not isinstance(state, Wiring):
        return []
    return [
        (node.id, port)
        for node in graph.nodes()
        for port in InputPort
        if is_valid_target(graph, state, node.id, port)
    ]


def transition(graph: Graph, state: WiringState, event) -> Tuple[WiringState, Optional[AddEdge]]:
    """Apply one interaction event. Returns the next state and the edge to add, if any."""
    if isinstance(event, Cancel):
        return IDLE, None

    if isinstance(event, ActivateOutput):
        if not isinstance(event.port, OutputPort) or graph.find_node(event.node_id) is None:
            return state, None
        if isinstance(state, Wiring) and (state.source, state.source_port) == (event.node_id, event.port):
            return IDLE, None
        return Wiring(source=event.node_id, source_port=event.port, anchor=event.anchor), None

    if isinstance(event, ActivateInput):
        if not is_valid_target(graph, state, event.node_id, event.port):
            return state, None
        action = AddEdge(
            source=state.source,
            source_port=state.source_port,
            target=event.node_id,
            target_port=event.port,
        )
        return IDLE, action

    return state, None


def wiring_state_to_dict(state: WiringState) -> dict:
    if isinstance(state, Wiring):
        return {'mode': 'wiring', 'source': state.source, 'source_port': state.source_port.value}
    return {'mode': 'idle'}
