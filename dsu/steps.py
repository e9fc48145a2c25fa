from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass, field
from typing import Callable, Protocol

from . import journal
from .models import StepReport
from .preflight import CREDENTIALS_FILE
from .stores import ConfigStore

GRAFANA_ENV = "grafana.env"
# Present in grafana.env since the panel plugin moved to this release.
GRAFANA_PLUGIN_MARKER = "yesoreyeram-boomtable-panel-1.5.0-alpha.3.zip"
COMPOSE_ENV = "compose.env"
TELEGRAF_LOCAL = "telegraf.local"
WEATHER_CONF = "weather/weather411.conf"

LEGACY_USER_VAR = "GRAFANAUSER"
USER_VAR = "PWD_USER"
LEGACY_USER_DEFAULT = re.compile(r'^PWD_USER="1000:1000"', re.MULTILINE)

CREDENTIAL_DEFAULTS = (
    ("credentials-style", "PW_STYLE", "PW_STYLE=grafana-dark"),
    ("credentials-timezone", "TZ=", "TZ=America/Los_Angeles"),
)


class Weather(Protocol):
    def available(self) -> bool: ...

    def setup(self) -> None: ...


@dataclass
class StepContext:
    store: ConfigStore
    confirm: Callable[[str], bool]
    weather: Weather | None = None
    recycle: set[str] = field(default_factory=set)
    # Files instantiated from their template during this run; later steps leave them verbatim.
    created: set[str] = field(default_factory=set)
    run_id: int | None = None

    def log(self, level: str, message: str, step: str | None = None) -> None:
        journal.log_event(level, message, step=step, run_id=self.run_id)


@dataclass(frozen=True)
class MigrationStep:
    """`needed` says whether the step still has work to do; `apply` returns False if declined."""

    name: str
    needed: Callable[[StepContext], bool]
    apply: Callable[[StepContext], bool]


def run_pipeline(steps: list[MigrationStep], ctx: StepContext, report: StepReport | None = None) -> StepReport:
    """Run steps in declared order. A failing step aborts; the rest resume on re-run."""
    report = report if report is not None else StepReport()
    for step in steps:
        if not step.needed(ctx):
            report.skipped.append(step.name)
            continue
        if step.apply(ctx):
            report.applied.append(step.name)
            ctx.log("INFO", f"Applied {step.name}", step=step.name)
        else:
            report.declined.append(step.name)
            ctx.log("INFO", f"No change for {step.name}", step=step.name)
    return report


def create_from_template(name: str, step_name: str) -> MigrationStep:
    return MigrationStep(
        name=step_name,
        needed=lambda ctx: not ctx.store.exists(name),
        apply=lambda ctx: _instantiate(ctx, name),
    )


def _instantiate(ctx: StepContext, name: str) -> bool:
    ctx.store.instantiate(name)
    ctx.created.add(name)
    return True


# -- grafana.env --

def _grafana_outdated(ctx: StepContext) -> bool:
    return ctx.store.exists(GRAFANA_ENV) and GRAFANA_PLUGIN_MARKER not in ctx.store.read(GRAFANA_ENV)


def _refresh_grafana(ctx: StepContext) -> bool:
    ctx.log("WARN", "Your Grafana environmental settings are outdated.", step="grafana-env-refresh")
    if not ctx.confirm(f"Upgrade {GRAFANA_ENV}?"):
        return False
    ctx.store.copy(GRAFANA_ENV, f"{GRAFANA_ENV}.bak")
    ctx.store.instantiate(GRAFANA_ENV)
    # The running container keeps the old settings until it is recreated.
    ctx.recycle.add("grafana")
    return True


# -- compose.env --

def _compose_has_legacy_name(ctx: StepContext) -> bool:
    if COMPOSE_ENV in ctx.created:
        return False
    return ctx.store.exists(COMPOSE_ENV) and LEGACY_USER_VAR in ctx.store.read(COMPOSE_ENV)


def _rename_user_var(ctx: StepContext) -> bool:
    text = ctx.store.read(COMPOSE_ENV)
    ctx.store.write(f"{COMPOSE_ENV}.bak", text)
    ctx.store.write(COMPOSE_ENV, text.replace(LEGACY_USER_VAR, USER_VAR))
    return True


def _compose_has_default_user(ctx: StepContext) -> bool:
    if COMPOSE_ENV in ctx.created:
        return False
    return ctx.store.exists(COMPOSE_ENV) and LEGACY_USER_DEFAULT.search(ctx.store.read(COMPOSE_ENV)) is not None


def _disable_default_user(ctx: StepContext) -> bool:
    # Left as a hint; active, it would override the real uid the stack should run as.
    text = ctx.store.read(COMPOSE_ENV)
    ctx.store.write(COMPOSE_ENV, LEGACY_USER_DEFAULT.sub(f'#{USER_VAR}="1000:1000"', text))
    return True


# -- pypowerwall.env --

def credential_default(step_name: str, probe: str, line: str) -> MigrationStep:
    """Append `line` to the credentials file unless `probe` already occurs in it."""

    def needed(ctx: StepContext) -> bool:
        return probe not in ctx.store.read(CREDENTIALS_FILE)

    def apply(ctx: StepContext) -> bool:
        key = line.split("=", 1)[0]
        ctx.log("INFO", f"Your pypowerwall environmental settings are missing {key}. Adding...", step=step_name)
        text = ctx.store.read(CREDENTIALS_FILE)
        if text and not text.endswith("\n"):
            text += "\n"
        ctx.store.write(CREDENTIALS_FILE, f"{text}{line}\n")
        return True

    return MigrationStep(name=step_name, needed=needed, apply=apply)


# -- weather --

def _setup_weather(ctx: StepContext) -> bool:
    ctx.log("INFO", "This version allows you to add local weather data.", step="weather-setup")
    if ctx.weather is None or not ctx.weather.available():
        ctx.log("WARN", "However, you are missing the weather.sh setup file. Skipping...", step="weather-setup")
        return False
    try:
        ctx.weather.setup()
    except (subprocess.CalledProcessError, OSError) as e:
        ctx.log("WARN", f"Weather setup did not finish ({e}). Skipping...", step="weather-setup")
        return False
    return True


def default_steps() -> list[MigrationStep]:
    """The canonical migrations, in the order they must run."""
    steps = [
        create_from_template(GRAFANA_ENV, "grafana-env-create"),
        MigrationStep("grafana-env-refresh", _grafana_outdated, _refresh_grafana),
        create_from_template(COMPOSE_ENV, "compose-env-create"),
        # Rename first: the next step only recognizes the new name.
        MigrationStep("compose-env-rename-user", _compose_has_legacy_name, _rename_user_var),
        MigrationStep("compose-env-disable-default-user", _compose_has_default_user, _disable_default_user),
        create_from_template(TELEGRAF_LOCAL, "telegraf-local-create"),
    ]
    steps.extend(credential_default(*entry) for entry in CREDENTIAL_DEFAULTS)
    steps.append(MigrationStep("weather-setup", lambda ctx: not ctx.store.exists(WEATHER_CONF), _setup_weather))
    return steps
