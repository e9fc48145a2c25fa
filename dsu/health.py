from __future__ import annotations

import threading
import time
from typing import Callable

import httpx

from .errors import HealthCheckTimeout, WaitCancelled


def check_status(
    url: str,
    expected_status: int,
    connect_timeout_s: float = 5.0,
    transport: httpx.BaseTransport | None = None,
) -> tuple[bool, str]:
    """HEAD the endpoint, following redirects.

    Returns (ready, message). A connection failure just means "not yet".
    """
    timeout = httpx.Timeout(connect_timeout_s * 2, connect=connect_timeout_s)
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True, transport=transport) as client:
            resp = client.head(url)
    except httpx.HTTPError as e:
        return False, f"No response ({type(e).__name__})"
    if resp.status_code != expected_status:
        return False, f"HTTP {resp.status_code}"
    return True, "Ready"


def wait_until_ready(
    url: str,
    expected_status: int,
    poll_interval_s: float = 5.0,
    connect_timeout_s: float = 5.0,
    max_wait_s: float | None = None,
    cancel: threading.Event | None = None,
    probe: Callable[[str, int, float], tuple[bool, str]] = check_status,
    on_retry: Callable[[str], None] | None = None,
) -> float:
    """Block until `url` answers with `expected_status`; returns seconds waited.

    Unbounded unless `max_wait_s` is given. Setting `cancel` interrupts the wait.
    """
    cancel = cancel or threading.Event()
    t0 = time.monotonic()
    while True:
        if cancel.is_set():
            raise WaitCancelled(f"Stopped waiting for {url}.")
        ok, msg = probe(url, expected_status, connect_timeout_s)
        if ok:
            return round(time.monotonic() - t0, 2)
        if on_retry is not None:
            on_retry(msg)
        if max_wait_s is not None and time.monotonic() - t0 + poll_interval_s > max_wait_s:
            raise HealthCheckTimeout(f"{url} did not answer {expected_status} within {max_wait_s}s (last: {msg}).")
        # Event.wait doubles as an interruptible sleep.
        if cancel.wait(poll_interval_s):
            raise WaitCancelled(f"Stopped waiting for {url}.")
