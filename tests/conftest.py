import subprocess
import sys

import pytest

# Ensure project root is importable (so `import cli` works without installing)
import os as _os
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from dsu import journal  # noqa: E402
from dsu.errors import HelperError  # noqa: E402
from dsu.settings import Settings  # noqa: E402
from dsu.steps import GRAFANA_PLUGIN_MARKER  # noqa: E402
from dsu.stores import MemoryConfigStore, MemoryMarkerStore  # noqa: E402


TEST_SETTINGS = Settings(
    stack_dir=".",
    journal_path="journal.db",
    echo=False,
    poll_interval_s=0,
    connect_timeout_s=1,
)


@pytest.fixture(autouse=True)
def isolated_journal(tmp_path, monkeypatch):
    """Every test gets its own journal database."""
    s = Settings(stack_dir=str(tmp_path / "journal"), journal_path="journal.db", echo=False)
    monkeypatch.setattr(journal, "settings", s)
    journal.init_db()
    return s


def stack_files() -> dict[str, str]:
    """A stack that has been set up by an older release."""
    return {
        "VERSION": "2.9.0\n",
        "tz": "Europe/Berlin\n",
        "pypowerwall.env": "PW_EMAIL=me@example.com\nPW_PASSWORD=secret\nPW_HOST=10.0.1.2\n",
        "grafana.env.sample": f"GF_INSTALL_PLUGINS=https://example.com/{GRAFANA_PLUGIN_MARKER};boomtable\n",
        "compose.env.sample": '#PWD_USER="1000:1000"\n',
        "telegraf.local.sample": "# local telegraf config\n",
        "influxdb/influxdb.sql": "CREATE DATABASE powerwall\n",
        "influxdb/run-once.sql": "SELECT 1\n",
        "influxdb/run-once-2.sql": "SELECT 2\n",
        "influxdb/run-once-3.sql": "SELECT 3\n",
    }


@pytest.fixture
def store():
    return MemoryConfigStore(stack_files())


@pytest.fixture
def markers():
    return MemoryMarkerStore()


class FakeControl:
    """Records every request instead of talking to docker."""

    def __init__(self, running=("influxdb", "grafana", "pypowerwall", "telegraf", "weather411"), timeline=None):
        self.running = set(running)
        self.calls = []
        self.timeline = timeline if timeline is not None else []
        self.fail_paths = {}

    def reconcile(self):
        self.calls.append(("reconcile",))
        self.timeline.append("reconcile")

    def stop(self, name):
        self.calls.append(("stop", name))
        return name in self.running

    def remove(self, name):
        self.calls.append(("remove", name))
        if name not in self.running:
            return False
        self.running.discard(name)
        return True

    def exec(self, name, command):
        self.calls.append(("exec", name, command))
        script = command[-1]
        self.timeline.append(f"exec:{script.rsplit('/', 1)[-1]}")
        for path, code in self.fail_paths.items():
            if path in script:
                return code, "error parsing query"
        return 0, ""

    def imported(self):
        return [c[2][-1].rsplit("/", 1)[-1] for c in self.calls if c[0] == "exec"]


class FakeTimezone:
    def __init__(self, available=True, fail_on=()):
        self._available = available
        self.fail_on = set(fail_on)
        self.history = []

    def available(self):
        return self._available

    def set(self, tz):
        self.history.append(tz)
        if tz in self.fail_on:
            raise HelperError(f"tz.sh {tz} failed: exit status 1")


class FakeWeather:
    def __init__(self, available=True, exit_code=0):
        self._available = available
        self.exit_code = exit_code
        self.setups = 0

    def available(self):
        return self._available

    def setup(self):
        self.setups += 1
        if self.exit_code:
            raise subprocess.CalledProcessError(self.exit_code, ["bash", "./weather.sh", "setup"])


@pytest.fixture
def control():
    return FakeControl()


@pytest.fixture
def tz_setter():
    return FakeTimezone()
