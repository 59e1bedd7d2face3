"""
Bracket validation.

validate() scans a whole graph and returns an ordered list of diagnostics.
Errors block exporting the ruleset to the fixture scheduler; warnings are
advisory.
"""
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .models import Graph, InputPort, OutputPort

SLOT_NAMES = {
    InputPort.HOME: 'Home',
    InputPort.AWAY: 'Away',
}


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    message: str
    node_id: Optional[str] = None

    def to_dict(self) -> Dict:
        return {'severity': self.severity.value, 'message': self.message, 'node_id': self.node_id}


def _error(message: str, node_id: Optional[str] = None) -> Diagnostic:
    return Diagnostic(Severity.ERROR, message, node_id)


def _warning(message: str, node_id: Optional[str] = None) -> Diagnostic:
    return Diagnostic(Severity.WARNING, message, node_id)


def validate(graph: Graph) -> List[Diagnostic]:
    """
    Check a bracket graph.

    Checks run in a fixed order:
    1. the bracket has at least one match (otherwise stop here)
    2. exactly one grand final, in the last layer
    3. every input slot has a source
    4. every connection flows to a later layer
    5. no input slot is fed by more than one connection
    6. seed ranks lie within the qualifying seed count (warning)
    7. every match outside the last layer passes its winner on (warning)
    """
    diagnostics: List[Diagnostic] = []
    nodes = list(graph.nodes())

    if not nodes:
        diagnostics.append(_error('Bracket must have at least one match.'))
        return diagnostics

    node_map = {node.id: node for node in nodes}
    final_layer = graph.final_layer_index

    # Terminal match
    terminals = [node for node in nodes if node.is_terminal]
    if not terminals:
        diagnostics.append(_error('Missing terminal match: bracket must have exactly one Grand Final.'))
    elif len(terminals) > 1:
        diagnostics.append(_error(f'Duplicate terminal match: found {len(terminals)} Grand Finals, only one allowed.'))
    elif terminals[0].layer != final_layer:
        diagnostics.append(_error('Terminal match misplaced: Grand Final must be in the last layer.', terminals[0].id))

    # Unbound slots
    fed = {(edge.target, edge.target_port) for edge in graph.edges}
    for node in nodes:
        for port in InputPort:
            if node.seed_rank(port) is None and (node.id, port) not in fed:
                diagnostics.append(_error(
                    f'{node.label}: {SLOT_NAMES[port]} slot has no source (seed rank or connection).',
                    node.id,
                ))

    # Edge direction
    for edge in graph.edges:
        source = node_map.get(edge.source)
        target = node_map.get(edge.target)
        if source is None or target is None:
            diagnostics.append(_error(f'Connection {edge.id} references a match that does not exist.'))
        elif source.layer >= target.layer:
            diagnostics.append(_error(
                f'Connection from {source.label} to {target.label} goes backward: must flow to a later layer.',
                target.id,
            ))

    # Fan-in
    fan_in = Counter((edge.target, edge.target_port) for edge in graph.edges)
    for (node_id, port), count in fan_in.items():
        if count > 1:
            target = node_map.get(node_id)
            name = target.label if target else node_id
            diagnostics.append(_error(
                f'{name}: {SLOT_NAMES[port]} slot is fed by {count} connections.',
                node_id,
            ))

    # Seed ranks
    for node in nodes:
        for port in InputPort:
            rank = node.seed_rank(port)
            if rank is not None and not 1 <= rank <= graph.seed_count:
                diagnostics.append(_warning(
                    f'{node.label}: {SLOT_NAMES[port]} seed rank ({rank}) is outside 1..{graph.seed_count}.',
                    node.id,
                ))

    # Discarded results
    for node in nodes:
        if node.layer == final_layer:
            continue
        if not graph.outbound_edges(node.id, OutputPort.WINNER):
            diagnostics.append(_warning(
                f'{node.label}: result discarded, winner is not connected to a later match.',
                node.id,
            ))

    return diagnostics


def has_blocking_errors(diagnostics: List[Diagnostic]) -> bool:
    return any(d.severity == Severity.ERROR for d in diagnostics)


def summarize(diagnostics: List[Diagnostic]) -> Dict:
    """Counts for a status badge: 'valid', 'warnings' or 'errors'."""
    errors = sum(1 for d in diagnostics if d.severity == Severity.ERROR)
    warnings = sum(1 for d in diagnostics if d.severity == Severity.WARNING)
    if errors:
        status = 'errors'
    elif warnings:
        status = 'warnings'
    else:
        status = 'valid'
    return {'status': status, 'errors': errors, 'warnings': warnings}
