"""Dry-run planner: report what a sync would do without writing anything."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from docsync.db.repository import Repository
from docsync.sources.base import SourceDescriptor, SourceLoadError
from docsync.sources.loader import load_source


@dataclass(frozen=True)
class PlannedAction:
    path: str
    action: str  # create | refresh | skip | error
    detail: str = ""


@dataclass
class SyncPlan:
    actions: list[PlannedAction] = field(default_factory=list)
    prune: list[str] = field(default_factory=list)

    def count(self, action: str) -> int:
        return sum(1 for a in self.actions if a.action == action)


def plan_sync(
    repo: Repository,
    descriptors: Sequence[SourceDescriptor],
    refresh_all: bool = False,
) -> SyncPlan:
    """Load every source and compare checksums against the store (read-only).

    Sources that fail to load are reported as ``error`` and, like removed
    sources, listed under ``prune``.
    """
    plan = SyncPlan()
    kept: set[str] = set()

    for descriptor in descriptors:
        try:
            parsed = load_source(descriptor)
        except SourceLoadError as exc:
            plan.actions.append(PlannedAction(descriptor.path, "error", str(exc)))
            continue
        kept.add(descriptor.path)
        existing = repo.find_document_by_path(descriptor.path)
        if existing is None:
            action = PlannedAction(descriptor.path, "create", f"{len(parsed.sections)} sections")
        elif existing.checksum is None:
            action = PlannedAction(descriptor.path, "refresh", "incomplete previous run")
        elif existing.checksum != parsed.checksum:
            action = PlannedAction(descriptor.path, "refresh", "content changed")
        elif refresh_all:
            action = PlannedAction(descriptor.path, "refresh", "forced")
        else:
            action = PlannedAction(descriptor.path, "skip")
        plan.actions.append(action)

    plan.prune = [doc.path for doc in repo.list_documents() if doc.path not in kept]
    return plan
