"""
Flask web application for the finals bracket builder.

Hosts a single editing session behind a JSON API. The presentation layer
sends editor actions and wiring events; the app answers with the updated
graph and its diagnostics. The current bracket is persisted in ruleset form.
"""
import os
import threading
import yaml
from filelock import FileLock
from flask import Flask, Response, jsonify, request
from bracket.editor import (
    AddEdge,
    AddLayer,
    AddNode,
    InitFromRuleset,
    RemoveEdge,
    RemoveLayer,
    RemoveNode,
    SetQualifyingSeedCount,
    SetSeedSource,
    UpdateLayerLabel,
    UpdateNode,
)
from bracket.formats import from_ruleset, ruleset_from_dict, ruleset_to_dict, to_ruleset
from bracket.models import Category, InputPort, OutputPort, graph_to_dict
from bracket.presets import get_preset, list_presets
from bracket.session import EditingSession
from bracket.validation import has_blocking_errors, summarize
from bracket.wiring import ActivateInput, ActivateOutput, Cancel, wiring_state_to_dict

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('BRACKET_DATA_DIR', os.path.join(BASE_DIR, 'data'))
RULESET_FILE = os.path.join(DATA_DIR, 'ruleset.yaml')
LOCK_FILE = os.path.join(DATA_DIR, '.lock')
LOCK_TIMEOUT = 10
MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # 10 MB

_session = None
# Held for every read or change of _session.
_session_lock = threading.Lock()


class BadRequest(ValueError):
    """Raised while decoding a request payload that cannot be turned into an action."""


def load_ruleset():
    """Load the persisted ruleset, or None if there is none."""
    if not os.path.exists(RULESET_FILE):
        return None
    try:
        with open(RULESET_FILE, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except Exception as e:
        app.logger.warning(f'Failed to parse {RULESET_FILE}: {e}')
        return None
    return ruleset_from_dict(data)


def save_ruleset(ruleset):
    """Persist a ruleset to YAML."""
    os.makedirs(DATA_DIR, exist_ok=True)
    with FileLock(LOCK_FILE, timeout=LOCK_TIMEOUT):
        with open(RULESET_FILE, 'w', encoding='utf-8') as f:
            yaml.dump(ruleset_to_dict(ruleset), f, default_flow_style=False, sort_keys=False)


def get_session() -> EditingSession:
    """Return the editing session, restoring it from disk on first use. Call with _session_lock held."""
    global _session
    if _session is None:
        ruleset = load_ruleset()
        if ruleset is not None:
            app.logger.info(f'Restored bracket from {RULESET_FILE}')
            _session = EditingSession(from_ruleset(ruleset))
        else:
            _session = EditingSession()
    return _session


def _commit(session: EditingSession):
    save_ruleset(to_ruleset(session.graph))


def _state_payload(session: EditingSession) -> dict:
    diagnostics = session.diagnostics()
    return {
        'graph': graph_to_dict(session.graph),
        'diagnostics': [d.to_dict() for d in diagnostics],
        'summary': summarize(diagnostics),
        'can_export': not has_blocking_errors(diagnostics),
        'wiring': wiring_state_to_dict(session.wiring),
    }


# ---------------------------------------------------------------------------
# Request decoding
# ---------------------------------------------------------------------------

def _enum(enum_cls, value, field):
    try:
        return enum_cls(value)
    except ValueError:
        raise BadRequest(f'Invalid {field}: {value!r}')


def _required(data: dict, field):
    if field not in data:
        raise BadRequest(f'Missing {field}')
    return data[field]


def action_from_json(data: dict):
    """Build an editor action from a JSON payload like {'type': 'add_node', 'layer': 0}."""
    action_type = data.get('type')
    if action_type == 'set_seed_count':
        return SetQualifyingSeedCount(count=_required(data, 'count'))
    if action_type == 'add_layer':
        return AddLayer(label=data.get('label'))
    if action_type == 'update_layer_label':
        return UpdateLayerLabel(layer=_required(data, 'layer'), label=_required(data, 'label'))
    if action_type == 'remove_layer':
        return RemoveLayer(layer=_required(data, 'layer'))
    if action_type == 'add_node':
        return AddNode(layer=_required(data, 'layer'))
    if action_type == 'remove_node':
        return RemoveNode(node_id=_required(data, 'node_id'))
    if action_type == 'update_node':
        category = data.get('category')
        return UpdateNode(
            node_id=_required(data, 'node_id'),
            label=data.get('label'),
            category=_enum(Category, category, 'category') if category is not None else None,
            elimination=data.get('elimination'),
        )
    if action_type == 'set_seed_source':
        return SetSeedSource(
            node_id=_required(data, 'node_id'),
            port=_enum(InputPort, _required(data, 'port'), 'port'),
            rank=data.get('rank'),
        )
    if action_type == 'add_edge':
        return AddEdge(
            source=_required(data, 'source'),
            source_port=_enum(OutputPort, _required(data, 'source_port'), 'source_port'),
            target=_required(data, 'target'),
            target_port=_enum(InputPort, _required(data, 'target_port'), 'target_port'),
        )
    if action_type == 'remove_edge':
        return RemoveEdge(edge_id=_required(data, 'edge_id'))
    if action_type == 'init_from_ruleset':
        return InitFromRuleset(ruleset=ruleset_from_dict(_required(data, 'ruleset')))
    raise BadRequest(f'Unknown action type: {action_type!r}')


def event_from_json(data: dict):
    """Build a wiring event from a JSON payload like {'event': 'output', 'node_id': 'r0m0', 'port': 'winner-out'}."""
    event = data.get('event')
    if event == 'output':
        return ActivateOutput(
            node_id=_required(data, 'node_id'),
            port=_enum(OutputPort, _required(data, 'port'), 'port'),
            anchor=data.get('anchor'),
        )
    if event == 'input':
        return ActivateInput(
            node_id=_required(data, 'node_id'),
            port=_enum(InputPort, _required(data, 'port'), 'port'),
        )
    if event == 'cancel':
        return Cancel()
    raise BadRequest(f'Unknown wiring event: {event!r}')


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.route('/api/bracket', methods=['GET'])
def get_bracket():
    """Current graph, diagnostics and wiring state."""
    with _session_lock:
        return jsonify(_state_payload(get_session()))


@app.route('/api/bracket/actions', methods=['POST'])
def dispatch_action():
    """API endpoint to apply one editor action."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object'}), 400
    try:
        action = action_from_json(data)
    except BadRequest as e:
        return jsonify({'error': str(e)}), 400

    with _session_lock:
        session = get_session()
        before = session.graph
        session.dispatch(action)
        changed = session.graph is not before
        if changed:
            _commit(session)

        payload = _state_payload(session)
    payload['changed'] = changed
    return jsonify(payload)


@app.route('/api/bracket/wiring', methods=['POST'])
def wiring_event():
    """API endpoint to feed one click-to-connect event."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object'}), 400
    try:
        event = event_from_json(data)
    except BadRequest as e:
        return jsonify({'error': str(e)}), 400

    with _session_lock:
        session = get_session()
        before = session.graph
        session.handle(event)
        if session.graph is not before:
            _commit(session)
        return jsonify(_state_payload(session))


@app.route('/api/bracket/targets', methods=['GET'])
def wiring_targets():
    """Input slots that would accept the pending connection."""
    with _session_lock:
        targets = get_session().valid_targets()
    return jsonify({'targets': [{'node_id': node_id, 'port': port.value} for node_id, port in targets]})


@app.route('/api/bracket/presets', methods=['GET'])
def presets():
    return jsonify({'presets': [
        {'id': preset_id, 'name': name, 'description': description}
        for preset_id, name, description in list_presets()
    ]})


@app.route('/api/bracket/presets/<preset_id>', methods=['POST'])
def load_preset(preset_id):
    """Replace the current bracket with a built-in format."""
    ruleset = get_preset(preset_id)
    if ruleset is None:
        return jsonify({'error': f'Unknown preset: {preset_id}'}), 404
    with _session_lock:
        session = get_session()
        session.dispatch(InitFromRuleset(ruleset))
        _commit(session)
        return jsonify(_state_payload(session))


@app.route('/api/bracket/import', methods=['POST'])
def import_ruleset():
    """Replace the current bracket with an uploaded ruleset (YAML or JSON)."""
    content = request.get_data()
    if len(content) > MAX_UPLOAD_SIZE:
        return jsonify({'error': 'File too large'}), 413
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        return jsonify({'error': f'Invalid YAML: {e}'}), 400
    if not isinstance(data, dict):
        return jsonify({'error': 'Ruleset must be a mapping'}), 400

    with _session_lock:
        session = get_session()
        session.dispatch(InitFromRuleset(ruleset_from_dict(data)))
        _commit(session)
        app.logger.info(f'Imported ruleset with {session.graph.node_count} matches')
        return jsonify(_state_payload(session))


@app.route('/api/bracket/export', methods=['GET'])
def export_ruleset():
    """Download the ruleset for the fixture scheduler. Blocked while errors remain."""
    with _session_lock:
        session = get_session()
        diagnostics = session.diagnostics()
        ruleset = session.export_ruleset()
    if has_blocking_errors(diagnostics):
        return jsonify({
            'error': 'Bracket has blocking errors',
            'diagnostics': [d.to_dict() for d in diagnostics],
        }), 409

    export_data = ruleset_to_dict(ruleset)
    yaml_content = yaml.dump(export_data, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return Response(
        yaml_content,
        mimetype='application/x-yaml',
        headers={'Content-Disposition': 'attachment; filename=ruleset.yaml'},
    )


if __name__ == '__main__':
    app.run(debug=True, port=5000)
