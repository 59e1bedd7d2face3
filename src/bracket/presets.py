"""
Built-in finals formats.

Each preset is stored in the scheduler's wire shape and decoded on demand,
so presets go through the same tolerant decoder as imported rulesets.
"""
from typing import List, Optional, Tuple

from .formats import Ruleset, ruleset_from_dict


def _seed(rank):
    return {'kind': 'seed', 'rank': rank}


def _winner(layer_ref, match_ref):
    return {'kind': 'result', 'layerRef': layer_ref, 'matchRef': match_ref, 'outcome': 'winner'}


def _loser(layer_ref, match_ref):
    return {'kind': 'result', 'layerRef': layer_ref, 'matchRef': match_ref, 'outcome': 'loser'}


def _match(label, category, home, away, elimination=True):
    return {
        'label': label,
        'category': category,
        'eliminationFlag': elimination,
        'home': home,
        'away': away,
    }


PRESETS = {
    'afl-top-8': {
        'name': 'AFL Top 8',
        'description': 'Top 8 qualify. Qualifying and elimination finals give the top 4 a double chance.',
        'ruleset': {
            'seedCount': 8,
            'layers': [
                {'label': 'Finals Week 1', 'matches': [
                    _match('QF1', 'QF', _seed(1), _seed(4), elimination=False),
                    _match('EF1', 'EF', _seed(5), _seed(8)),
                    _match('QF2', 'QF', _seed(2), _seed(3), elimination=False),
                    _match('EF2', 'EF', _seed(6), _seed(7)),
                ]},
                {'label': 'Finals Week 2', 'matches': [
                    _match('SF1', 'SF', _loser(1, 0), _winner(1, 1)),
                    _match('SF2', 'SF', _loser(1, 2), _winner(1, 3)),
                ]},
                {'label': 'Finals Week 3', 'matches': [
                    _match('PF1', 'PF', _winner(1, 0), _winner(2, 0)),
                    _match('PF2', 'PF', _winner(1, 2), _winner(2, 1)),
                ]},
                {'label': 'Grand Final', 'matches': [
                    _match('GF', 'GF', _winner(3, 0), _winner(3, 1)),
                ]},
            ],
        },
    },
    'page-mcintyre-top-4': {
        'name': 'Page-McIntyre Top 4',
        'description': '1st v 2nd with a double chance, 3rd v 4th elimination, then preliminary and grand final.',
        'ruleset': {
            'seedCount': 4,
            'layers': [
                {'label': 'Finals Week 1', 'matches': [
                    _match('QF', 'QF', _seed(1), _seed(2), elimination=False),
                    _match('EF', 'EF', _seed(3), _seed(4)),
                ]},
                {'label': 'Preliminary Final', 'matches': [
                    _match('PF', 'PF', _loser(1, 0), _winner(1, 1)),
                ]},
                {'label': 'Grand Final', 'matches': [
                    _match('GF', 'GF', _winner(1, 0), _winner(2, 0)),
                ]},
            ],
        },
    },
    'top-6': {
        'name': 'Top 6',
        'description': 'Six teams qualify. The top 2 skip week 1, then semi finals and the grand final.',
        'ruleset': {
            'seedCount': 6,
            'layers': [
                {'label': 'Elimination Finals', 'matches': [
                    _match('EF1', 'EF', _seed(3), _seed(6)),
                    _match('EF2', 'EF', _seed(4), _seed(5)),
                ]},
                {'label': 'Semi Finals', 'matches': [
                    _match('SF1', 'SF', _seed(1), _winner(1, 0)),
                    _match('SF2', 'SF', _seed(2), _winner(1, 1)),
                ]},
                {'label': 'Grand Final', 'matches': [
                    _match('GF', 'GF', _winner(2, 0), _winner(2, 1)),
                ]},
            ],
        },
    },
    'straight-knockout': {
        'name': 'Straight Knockout',
        'description': 'Top 8 play sudden-death knockout. Lose and you are out.',
        'ruleset': {
            'seedCount': 8,
            'layers': [
                {'label': 'Quarter Finals', 'matches': [
                    _match('QF1', 'QF', _seed(1), _seed(8)),
                    _match('QF2', 'QF', _seed(2), _seed(7)),
                    _match('QF3', 'QF', _seed(3), _seed(6)),
                    _match('QF4', 'QF', _seed(4), _seed(5)),
                ]},
                {'label': 'Semi Finals', 'matches': [
                    _match('SF1', 'SF', _winner(1, 0), _winner(1, 1)),
                    _match('SF2', 'SF', _winner(1, 2), _winner(1, 3)),
                ]},
                {'label': 'Grand Final', 'matches': [
                    _match('GF', 'GF', _winner(2, 0), _winner(2, 1)),
                ]},
            ],
        },
    },
    'round-robin': {
        'name': 'Round Robin Top 4',
        'description': 'Top 4 play each other once, then the top 2 play the grand final.',
        'ruleset': {
            'seedCount': 4,
            'layers': [
                {'label': 'Round Robin Week 1', 'matches': [
                    _match('RR1', 'SF', _seed(1), _seed(4), elimination=False),
                    _match('RR2', 'SF', _seed(2), _seed(3), elimination=False),
                ]},
                {'label': 'Round Robin Week 2', 'matches': [
                    _match('RR3', 'SF', _seed(1), _seed(3), elimination=False),
                    _match('RR4', 'SF', _seed(2), _seed(4), elimination=False),
                ]},
                {'label': 'Round Robin Week 3', 'matches': [
                    _match('RR5', 'SF', _seed(1), _seed(2), elimination=False),
                    _match('RR6', 'SF', _seed(3), _seed(4), elimination=False),
                ]},
                # The scheduler re-ranks after the round robin; seeds 1 and 2 are placeholders.
                {'label': 'Grand Final', 'matches': [
                    _match('GF', 'GF', _seed(1), _seed(2)),
                ]},
            ],
        },
    },
}


def list_presets() -> List[Tuple[str, str, str]]:
    """Returns (preset_id, name, description) for every built-in format."""
    return [(preset_id, preset['name'], preset['description']) for preset_id, preset in PRESETS.items()]


def get_preset(preset_id: str) -> Optional[Ruleset]:
    preset = PRESETS.get(preset_id)
    if preset is None:
        return None
    return ruleset_from_dict(preset['ruleset'])
