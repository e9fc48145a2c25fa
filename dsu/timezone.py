from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Protocol

from . import journal
from .stores import ConfigStore

TZ_FILE = "tz"


class TimezoneSetter(Protocol):
    def available(self) -> bool: ...

    def set(self, tz: str) -> None: ...


def read_timezone(store: ConfigStore, default: str) -> str:
    if not store.exists(TZ_FILE):
        return default
    return store.read(TZ_FILE).strip() or default


@contextmanager
def normalized_timezone(store: ConfigStore, setter: TimezoneSetter, default: str) -> Iterator[str]:
    """Force the host timezone to `default` for the block, then put the operator's back.

    Restores on every exit path, including errors and Ctrl-C. Yields the saved value.
    """
    saved = read_timezone(store, default)
    if not setter.available():
        journal.log_event("WARN", "Timezone helper tz.sh not found; leaving timezone as is.", step="timezone")
        yield saved
        return

    journal.log_event("INFO", "Resetting Timezone to Default...", step="timezone")
    setter.set(default)
    failed = False
    try:
        yield saved
    except BaseException:
        failed = True
        raise
    finally:
        journal.log_event("INFO", f"Setting Timezone back to {saved}...", step="timezone")
        try:
            setter.set(saved)
        except Exception as e:
            journal.log_event("ERROR", f"Could not restore timezone {saved}: {e}", step="timezone")
            # An error raised inside the block wins.
            if not failed:
                raise
