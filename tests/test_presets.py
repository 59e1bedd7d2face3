"""
Unit tests for the built-in finals formats.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bracket.formats import from_ruleset, Ruleset
from bracket.models import Category, OutputPort
from bracket.presets import PRESETS, get_preset, list_presets
from bracket.validation import Severity, has_blocking_errors, validate


class TestListPresets:
    """Tests for list_presets."""

    def test_lists_every_preset(self):
        """Test each preset appears once with its name and description."""
        listed = list_presets()
        assert [preset_id for preset_id, _, _ in listed] == list(PRESETS)
        assert len(listed) == 5
        for preset_id, name, description in listed:
            assert name == PRESETS[preset_id]['name']
            assert description

    def test_unknown_preset(self):
        """Test an unknown id returns None."""
        assert get_preset('no-such-format') is None


class TestPresetContent:
    """Tests that every preset is a usable bracket."""

    @pytest.mark.parametrize('preset_id', sorted(PRESETS))
    def test_preset_has_no_errors(self, preset_id):
        """Test every preset can be exported as-is."""
        ruleset = get_preset(preset_id)
        assert isinstance(ruleset, Ruleset)
        assert not has_blocking_errors(validate(from_ruleset(ruleset)))

    @pytest.mark.parametrize('preset_id', sorted(PRESETS))
    def test_single_terminal_in_last_layer(self, preset_id):
        """Test each preset ends in exactly one grand final."""
        graph = from_ruleset(get_preset(preset_id))
        terminals = [node for node in graph.nodes() if node.category == Category.GRAND]
        assert len(terminals) == 1
        assert terminals[0].layer == graph.final_layer_index

    @pytest.mark.parametrize('preset_id', ['afl-top-8', 'page-mcintyre-top-4', 'top-6', 'straight-knockout'])
    def test_elimination_presets_are_clean(self, preset_id):
        """Test elimination formats validate with no diagnostics at all."""
        assert validate(from_ruleset(get_preset(preset_id))) == []

    def test_round_robin_warns_about_discarded_results(self):
        """Test round robin matches are flagged as feeding nothing."""
        diagnostics = validate(from_ruleset(get_preset('round-robin')))
        assert len(diagnostics) == 6
        assert all(d.severity == Severity.WARNING for d in diagnostics)
        assert all('result discarded' in d.message for d in diagnostics)

    def test_afl_top_8_double_chance(self):
        """Test qualifying final losers drop into the semi finals."""
        graph = from_ruleset(get_preset('afl-top-8'))
        losers = graph.outbound_edges('r0m0', OutputPort.LOSER)
        assert [edge.target for edge in losers] == ['r1m0']
        assert graph.find_node('r0m0').elimination is False
        assert graph.find_node('r0m1').elimination is True

    def test_seed_counts(self):
        """Test each preset declares its qualifying teams."""
        assert {preset_id: get_preset(preset_id).seed_count for preset_id in PRESETS} == {
            'afl-top-8': 8,
            'page-mcintyre-top-4': 4,
            'top-6': 6,
            'straight-knockout': 8,
            'round-robin': 4,
        }
