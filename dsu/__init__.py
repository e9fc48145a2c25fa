"""Dashboard Stack Upgrader (DSU).

In-place upgrader for a single-host, compose-managed monitoring stack:
 - preflight checks before anything is touched
 - idempotent configuration migrations
 - readiness-gated service recycling
 - one-time data migrations applied at most once

Every phase is safe to re-run, so an interrupted upgrade is resumed by running it again.
"""

TARGET_VERSION = "2.10.0"
