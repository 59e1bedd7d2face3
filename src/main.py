#!/usr/bin/env python3
"""
Finals bracket command-line tool.

Validates ruleset files and prints the built-in finals formats.

Usage:
    python src/main.py validate path/to/ruleset.yaml
    python src/main.py presets
    python src/main.py show afl-top-8

Exit codes:
    0: Success (warnings may have been printed)
    1: Ruleset has blocking errors
    2: File could not be read or preset not found
"""
import argparse
import sys
import yaml
from bracket.formats import from_ruleset, ruleset_from_dict, ruleset_to_dict
from bracket.presets import get_preset, list_presets
from bracket.validation import has_blocking_errors, summarize, validate


def load_ruleset_file(file_path):
    """Read a ruleset from a YAML (or JSON) file. Returns None if unreadable."""
    try:
        with open(file_path, mode='r', encoding='utf-8') as file:
            data = yaml.safe_load(file)
    except (OSError, yaml.YAMLError) as e:
        print(f"Error: Cannot read {file_path}: {e}", file=sys.stderr)
        return None
    if not isinstance(data, dict):
        print(f"Error: {file_path} does not contain a ruleset mapping", file=sys.stderr)
        return None
    return ruleset_from_dict(data)


def cmd_validate(args):
    ruleset = load_ruleset_file(args.file)
    if ruleset is None:
        return 2

    diagnostics = validate(from_ruleset(ruleset))
    for diagnostic in diagnostics:
        location = f" [{diagnostic.node_id}]" if diagnostic.node_id else ""
        print(f"{diagnostic.severity.value}{location}: {diagnostic.message}")

    summary = summarize(diagnostics)
    print(f"{summary['status']}: {summary['errors']} error(s), {summary['warnings']} warning(s)")
    return 1 if has_blocking_errors(diagnostics) else 0


def cmd_presets(args):
    for preset_id, name, description in list_presets():
        print(f"{preset_id:<22} {name}")
        print(f"{'':<22} {description}")
    return 0


def cmd_show(args):
    ruleset = get_preset(args.preset)
    if ruleset is None:
        print(f"Error: Unknown preset '{args.preset}'", file=sys.stderr)
        return 2
    print(yaml.dump(ruleset_to_dict(ruleset), default_flow_style=False, sort_keys=False), end='')
    return 0


def build_parser():
    parser = argparse.ArgumentParser(description='Finals bracket ruleset tool')
    subparsers = parser.add_subparsers(dest='command', required=True)

    validate_parser = subparsers.add_parser('validate', help='Validate a ruleset file')
    validate_parser.add_argument('file', help='Path to a YAML or JSON ruleset')
    validate_parser.set_defaults(func=cmd_validate)

    presets_parser = subparsers.add_parser('presets', help='List built-in finals formats')
    presets_parser.set_defaults(func=cmd_presets)

    show_parser = subparsers.add_parser('show', help='Print a built-in format as a ruleset')
    show_parser.add_argument('preset', help='Preset id, e.g. afl-top-8')
    show_parser.set_defaults(func=cmd_show)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
