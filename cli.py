from __future__ import annotations

import argparse
import dataclasses
import json
import os
import sys
from pathlib import Path
from typing import Callable

from dsu import TARGET_VERSION, journal
from dsu.docker_ops import DockerServiceControl
from dsu.errors import UpgradeError
from dsu.external import GitConfigSync, TimezoneHelper, WeatherSetup
from dsu.orchestrator import Upgrader
from dsu.runonce import MIGRATIONS_DIR
from dsu.settings import settings
from dsu.stores import FileConfigStore, FileMarkerStore

FINAL_INSTRUCTIONS = """
---------------[ Update Dashboard ]---------------
Open Grafana at http://localhost:9000/

From 'Dashboard/Browse', select 'New/Import', and
upload 'dashboard.json' located in the folder
{dashboards}/

Please note, you may need to select data sources
for 'InfluxDB' and 'Sun and Moon' via the
dropdowns and use 'Import (Overwrite)' button.
"""


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def prompt_yes_no(question: str) -> bool:
    """Anything but y/yes, including no terminal at all, is a no."""
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def main(argv: list[str] | None = None, confirm: Callable[[str], bool] | None = None) -> int:
    p = argparse.ArgumentParser(description=f"Upgrade the dashboard stack in place to v{TARGET_VERSION}")
    p.add_argument("--yes", action="store_true", help="Answer yes to every confirmation prompt")
    p.add_argument("--skip-sync", action="store_true", help="Do not pull configuration changes with git")
    p.add_argument("--max-wait-s", type=int, default=None, help="Give up waiting for the database after N seconds")
    p.add_argument("--json", action="store_true", help="Print the final report as JSON")
    p.add_argument("--events", type=int, metavar="N", help="Show the last N journal events and exit")
    args = p.parse_args(argv)

    if args.events is not None:
        journal.init_db()
        _print(journal.latest_events(args.events))
        return 0

    stack = Path(settings.stack_dir)
    run_settings = settings
    if args.max_wait_s is not None:
        run_settings = dataclasses.replace(settings, max_wait_s=args.max_wait_s)

    if args.yes:
        confirm = lambda _question: True  # noqa: E731
    upgrader = Upgrader(
        store=FileConfigStore(stack),
        markers=FileMarkerStore(stack / MIGRATIONS_DIR),
        control=DockerServiceControl(stack),
        confirm=confirm or prompt_yes_no,
        tz_setter=TimezoneHelper(stack),
        config_sync=None if args.skip_sync else GitConfigSync(stack),
        weather=WeatherSetup(stack),
        settings=run_settings,
    )

    print(f"Upgrade to v{TARGET_VERSION}")
    print("-" * 69)
    print("This will upgrade you to the latest version without removing existing")
    print("data. A backup is still recommended.\n")

    code = 0
    try:
        report = upgrader.run()
    except UpgradeError as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        if e.remediation:
            print(e.remediation, file=sys.stderr)
        code = 1
    except KeyboardInterrupt:
        print("\nInterrupted. Run the upgrade again to resume.", file=sys.stderr)
        code = 130
    else:
        if report.status == "completed":
            print(FINAL_INSTRUCTIONS.format(dashboards=os.path.join(os.path.abspath(stack), "dashboards")))

    if args.json and upgrader.report is not None:
        _print(upgrader.report.model_dump())
    return code


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
