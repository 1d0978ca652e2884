"""
Playbook CLI entrypoint for ansilite-playbook.

Usage:
    ansilite-playbook --version
    ansilite-playbook [playbook.yaml ...]
"""

import argparse
import json
import platform
import sys
from pathlib import Path

import yaml

from ansilite import __version__
from ansilite.engine.playbook import DEFAULT_PLAYBOOK


def get_version_string() -> str:
    """Generate a detailed version string."""
    python_version = platform.python_version()
    os_info = f"{platform.system()} {platform.release()}"
    return (
        f"ansilite-playbook {__version__}\n"
        f"  python: {python_version}\n"
        f"  platform: {os_info}"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for ansilite-playbook."""
    parser = argparse.ArgumentParser(
        prog="ansilite-playbook",
        description="Run playbooks over SSH, one file after another",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  ansilite-playbook                      # runs ./{DEFAULT_PLAYBOOK}
  ansilite-playbook base.yaml deploy.yaml
  ansilite-playbook deploy.yaml -e version=1.2 -f 10 -v
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=get_version_string(),
    )

    parser.add_argument(
        "playbook",
        nargs="*",
        help=f"Playbook file(s) to run in order (default: {DEFAULT_PLAYBOOK})",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v, -vv)",
    )

    parser.add_argument(
        "-f", "--forks",
        dest="forks",
        type=int,
        default=None,
        help="Maximum number of hosts to run at once (default: all)",
    )

    parser.add_argument(
        "-e", "--extra-vars",
        dest="extra_vars",
        action="append",
        default=[],
        help="Extra variables as key=value, JSON, or a YAML file (can be repeated)",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results in JSON format",
    )

    return parser


def _parse_extra_vars(extra_vars_list: list[str]) -> dict:
    """Parse extra vars from command line."""
    result = {}
    for item in extra_vars_list:
        item = item.strip()

        # Try JSON first
        if item.startswith('{'):
            try:
                result.update(json.loads(item))
                continue
            except json.JSONDecodeError:
                pass

        # Try key=value format
        if '=' in item:
            key, _, value = item.partition('=')
            key = key.strip()
            value = value.strip()

            # Try to parse value as JSON for complex types
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                pass  # Keep as string

            result[key] = value
        elif Path(item.lstrip('@')).is_file():
            with open(item.lstrip('@'), encoding='utf-8') as f:
                file_vars = yaml.safe_load(f)
            if isinstance(file_vars, dict):
                result.update(file_vars)

    return result


def main(args: list[str] | None = None) -> int:
    """Main entrypoint for ansilite-playbook CLI."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.forks is not None and parsed.forks < 1:
        parser.error("--forks must be at least 1")

    playbooks = parsed.playbook or [DEFAULT_PLAYBOOK]

    from ansilite.engine.runner import PlaybookRunner

    runner = PlaybookRunner(
        playbook_paths=playbooks,
        forks=parsed.forks,
        verbosity=parsed.verbose,
        extra_vars=_parse_extra_vars(parsed.extra_vars),
        json_output=parsed.json,
    )

    if not parsed.json:
        print(f"Playbooks to run: {', '.join(playbooks)}")

    return runner.run()


if __name__ == "__main__":
    sys.exit(main())
