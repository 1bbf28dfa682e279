"""Incremental synchronization of a docs tree into embedded sections."""

from docsync.sync.context import SyncContext, new_version_stamp, open_sync_context
from docsync.sync.engine import prune_stale_documents, run_sync, sync_documents, sync_source
from docsync.sync.outcomes import Failed, Refreshed, Skipped, SourceOutcome, SyncSummary
from docsync.sync.plan import PlannedAction, SyncPlan, plan_sync

__all__ = [
    "Failed",
    "PlannedAction",
    "Refreshed",
    "Skipped",
    "SourceOutcome",
    "SyncContext",
    "SyncPlan",
    "SyncSummary",
    "new_version_stamp",
    "open_sync_context",
    "plan_sync",
    "prune_stale_documents",
    "run_sync",
    "sync_documents",
    "sync_source",
]
