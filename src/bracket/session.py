"""
Editing session: owns one bracket graph and one wiring state.

The session is the only writer of its graph. Editor actions go through
dispatch(), interaction events through handle(); both replace the owned
values atomically.
"""
import logging
from typing import List, Optional

from .editor import REINDEXING_ACTIONS, apply
from .formats import Ruleset, to_ruleset
from .models import Graph, create_starter_graph
from .validation import Diagnostic, has_blocking_errors, validate
from .wiring import IDLE, WiringState, transition, valid_targets

logger = logging.getLogger(__name__)


class EditingSession:
    def __init__(self, graph: Optional[Graph] = None):
        self._graph = graph if graph is not None else create_starter_graph()
        self._wiring: WiringState = IDLE

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def wiring(self) -> WiringState:
        return self._wiring

    def dispatch(self, action) -> Graph:
        """Apply an editor action to the owned graph."""
        before = self._graph
        self._graph = apply(before, action)
        if self._graph is before:
            return self._graph
        if isinstance(action, REINDEXING_ACTIONS) and self._wiring != IDLE:
            logger.debug("Cancelling pending wiring after %s", type(action).__name__)
            self._wiring = IDLE
        return self._graph

    def handle(self, event) -> WiringState:
        """Feed one interaction event to the wiring state machine."""
        self._wiring, action = transition(self._graph, self._wiring, event)
        if action is not None:
            self.dispatch(action)
        return self._wiring

    def valid_targets(self):
        return valid_targets(self._graph, self._wiring)

    def diagnostics(self) -> List[Diagnostic]:
        return validate(self._graph)

    def can_export(self) -> bool:
        return not has_blocking_errors(self.diagnostics())

    def export_ruleset(self) -> Optional[Ruleset]:
        """The ruleset for the scheduler, or None while blocking errors remain."""
        if not self.can_export():
            return None
        return to_ruleset(self._graph)
