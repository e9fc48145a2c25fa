from __future__ import annotations

from pydantic import BaseModel, Field


class StepReport(BaseModel):
    applied: list[str] = Field(default_factory=list, description="Steps whose action ran")
    skipped: list[str] = Field(default_factory=list, description="Steps no longer needed")
    declined: list[str] = Field(default_factory=list, description="Steps the operator said no to")


class RunOnceReport(BaseModel):
    applied: list[str] = Field(default_factory=list)
    already_done: list[str] = Field(default_factory=list)
    unregistered: list[str] = Field(default_factory=list, description="Artifacts on disk with no registered unit")


class UpgradeReport(BaseModel):
    installed_version: str
    target_version: str
    status: str = Field("running", description="running|completed|cancelled|failed")
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)
    config: StepReport = Field(default_factory=StepReport)
    run_once: RunOnceReport = Field(default_factory=RunOnceReport)
    recycled: list[str] = Field(default_factory=list)
    reconciles: int = Field(0, ge=0)
    waited_s: float | None = None
