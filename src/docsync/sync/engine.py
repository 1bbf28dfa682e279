"""Incremental sync engine: docs tree → documents + embedded sections.

Per source, in enumeration order:
  1. Load and parse the source.
  2. Look up the stored document by logical path.
  3. Unchanged checksum (and no forced refresh): refresh metadata, version
     stamp and timestamp only; sections stay as they are.
  4. Otherwise: in one transaction delete old sections and upsert the document
     with a NULL checksum. Then embed and insert every section in order, and
     write the new checksum last.

A NULL checksum marks a document whose sections are incomplete. A crash or an
embedding failure leaves it NULL, so the next run sees a mismatch and retries.

Any exception while handling one source is recorded as ``Failed`` and the run
continues. After the loop every document not stamped by this run is deleted
with its sections (removed sources, and sources that failed to load), then
parent links are re-resolved from ``parent_path``.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable, Sequence

from docsync.config import ConfigError, DocsyncConfig
from docsync.db.models import Document, Section
from docsync.sources.base import SourceDescriptor
from docsync.sources.loader import load_source
from docsync.sources.walk import walk
from docsync.sync.context import SyncContext, open_sync_context
from docsync.sync.outcomes import Failed, Refreshed, Skipped, SourceOutcome, SyncSummary

OutcomeCallback = Callable[[SourceOutcome], None]


def sync_source(ctx: SyncContext, descriptor: SourceDescriptor) -> Skipped | Refreshed:
    """Reconcile one source with the store.

    Raises:
        SourceLoadError: If the source cannot be read or parsed.
        EmbeddingError: If any section fails to embed (remaining sections are
            not inserted and the document keeps a NULL checksum).
        sqlite3.Error: On database failure.
    """
    parsed = load_source(descriptor)
    metadata = json.dumps(parsed.metadata, default=str, sort_keys=True)
    existing = ctx.repo.find_document_by_path(descriptor.path)

    needs_refresh = (
        existing is None or existing.checksum != parsed.checksum or ctx.refresh_all
    )

    if not needs_refresh:
        ctx.repo.update_document(
            existing.id,
            metadata=metadata,
            parent_path=descriptor.parent_path,
            version_stamp=ctx.version_stamp,
            last_refreshed_at=ctx.run_timestamp,
        )
        return Skipped(descriptor.path)

    parent = (
        ctx.repo.find_document_by_path(descriptor.parent_path)
        if descriptor.parent_path
        else None
    )
    fields = {
        "parent_document_id": parent.id if parent else None,
        "parent_path": descriptor.parent_path,
        "checksum": None,
        "metadata": metadata,
        "version_stamp": ctx.version_stamp,
        "last_refreshed_at": ctx.run_timestamp,
    }
    with ctx.repo.transaction():
        if existing is None:
            document_id = str(uuid.uuid4())
            ctx.repo.insert_document(Document(id=document_id, path=descriptor.path, **fields))
        else:
            document_id = existing.id
            ctx.repo.delete_sections_by_document_id(document_id)
            ctx.repo.update_document(document_id, **fields)

    for parsed_section in parsed.sections:
        embedding = ctx.embedder.embed(parsed_section.content)
        ctx.repo.insert_section(
            Section(
                id=str(uuid.uuid4()),
                document_id=document_id,
                heading=parsed_section.heading,
                slug=parsed_section.slug,
                content=parsed_section.content,
                embedding=embedding.vector,
                token_count=embedding.token_count,
            )
        )

    ctx.repo.update_document(document_id, checksum=parsed.checksum)
    return Refreshed(
        descriptor.path, created=existing is None, section_count=len(parsed.sections)
    )


def prune_stale_documents(ctx: SyncContext) -> int:
    """Delete documents (and their sections) not stamped by this run."""
    return ctx.repo.delete_documents_where_version_not(ctx.version_stamp)


def sync_documents(
    ctx: SyncContext,
    descriptors: Sequence[SourceDescriptor],
    on_outcome: OutcomeCallback | None = None,
) -> SyncSummary:
    """Reconcile every descriptor sequentially, then prune and repair parent links.

    Per-source errors are isolated into ``Failed`` outcomes. Errors raised by
    the pruning step propagate.

    Args:
        ctx: Run context.
        descriptors: Sources in enumeration order (parents before children).
        on_outcome: Called with each outcome as soon as it is known.
    """
    summary = SyncSummary(version_stamp=ctx.version_stamp, discovered=len(descriptors))

    for descriptor in descriptors:
        try:
            outcome: SourceOutcome = sync_source(ctx, descriptor)
        except Exception as exc:  # noqa: BLE001
            outcome = Failed(descriptor.path, f"{type(exc).__name__}: {exc}")
        summary.outcomes.append(outcome)
        if on_outcome is not None:
            on_outcome(outcome)

    with ctx.repo.transaction():
        summary.pruned = prune_stale_documents(ctx)
        ctx.repo.repair_parent_links()
    return summary


def run_sync(
    config: DocsyncConfig,
    api_key: str | None,
    *,
    refresh_all: bool | None = None,
    descriptors: Sequence[SourceDescriptor] | None = None,
    on_outcome: OutcomeCallback | None = None,
) -> SyncSummary:
    """Run one full sync of the docs root against the configured store.

    The docs root is enumerated unless *descriptors* were already collected.

    Raises:
        ConfigError: If no docs root is configured.
        OSError: If the docs root cannot be enumerated (fatal: nothing is written).
        sqlite3.Error: If the database cannot be opened or the pruning step fails.
    """
    if descriptors is None:
        if not config.docs.root:
            raise ConfigError("No docs root configured (docs.root / DOCSYNC_DOCS_ROOT).")
        descriptors = walk(
            config.docs.root,
            exclude=config.docs.exclude,
            extensions=config.docs.extensions,
        )
    with open_sync_context(config, api_key, refresh_all=refresh_all) as ctx:
        return sync_documents(ctx, descriptors, on_outcome=on_outcome)
