"""
CLI entry point for activity_rollup. Wires the pipeline: parse -> combine -> group -> JSON output
"""

import argparse
import json
import logging
import os

from normalize.models import Ticket
from normalize.util import activity_from_dict, activity_to_dict, identify_activities, ActivityParseError
from correlate.combiner import combine_activities
from scoring.grouper import group_activities, group_actor_activities
from scoring.initiatives import group_initiative_stats
from scoring.utils import load_policy

logger = logging.getLogger(__name__)

MODES = ('combine', 'group', 'actor', 'stats')


def _json_default(obj):
    if isinstance(obj, Ticket):
        return {'key': obj.key, 'status': obj.status}
    if isinstance(obj, set):
        return sorted(obj)
    return str(obj)


def _load_json_file(path: str, description: str):
    """Load a JSON file, raising ValueError with a readable message on failure."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to read {description} {path}: {e}") from e


def _parse_activities(records):
    if not isinstance(records, list):
        raise ActivityParseError("activities file must contain an array of activity records")
    return [activity_from_dict(r) for r in records]


def run_pipeline(args, policy):
    """Execute the requested mode on the input file and return a JSON-friendly result."""
    records = _load_json_file(args.input, 'input file')
    if args.mode == 'stats':
        if not isinstance(records, list):
            raise ValueError("stats file must contain an array of stats records")
        return group_initiative_stats(records)

    activities = _parse_activities(records)
    if args.account_map:
        account_map = _load_json_file(args.account_map, 'account map')
        identify_activities(activities, account_map)
    logger.info("parsed %d activities from %s", len(activities), args.input)

    if args.mode == 'actor':
        return group_actor_activities(activities, policy)

    combined = combine_activities(activities)
    logger.info("combined %d activities into %d", len(activities), len(combined))
    if args.mode == 'combine':
        return [activity_to_dict(a) for a in combined]
    return group_activities(combined, policy)


def write_output(result, args):
    """Write JSON output to a file, or stdout when no file is given."""
    rendered = json.dumps(result, indent=2, default=_json_default, ensure_ascii=False)
    out_path = args.out_file.strip()
    if not out_path:
        print(rendered)
        return
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(out_path, 'w', encoding='utf-8') as f:
        f.write(rendered)
    print(f"Wrote {args.mode} output to {out_path}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Activity combination and grouping CLI")
    parser.add_argument("--input", type=str, required=True, help="JSON file with activity records (or stats records for --mode stats)")
    parser.add_argument("--mode", type=str, choices=MODES, default="group", help="combine: fold duplicates; group: dashboard aggregates; actor: ticket rollup; stats: launch item stats")
    parser.add_argument("--policy", type=str, default="", help="Path to policy YAML (defaults to config/policy.yaml when present)")
    parser.add_argument("--account-map", type=str, default="", help="JSON object mapping account ids to identity ids")
    parser.add_argument("--out-file", type=str, default="", help="Output file path. If omitted the JSON is printed")
    parser.add_argument("--log-level", type=str, default="WARNING", choices=("DEBUG", "INFO", "WARNING", "ERROR"))
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        policy = load_policy(args.policy or None)
        result = run_pipeline(args, policy)
    except ValueError as e:
        # ActivityParseError is a ValueError
        parser.error(str(e))
    write_output(result, args)


if __name__ == "__main__":
    main()
