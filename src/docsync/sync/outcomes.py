"""Per-source outcomes and the run summary they aggregate into."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class Skipped:
    """Content unchanged: metadata, version stamp and timestamp refreshed only."""

    path: str


@dataclass(frozen=True)
class Refreshed:
    """Sections regenerated and embedded; ``created`` is True for a new document."""

    path: str
    created: bool
    section_count: int


@dataclass(frozen=True)
class Failed:
    """Loading, embedding or persisting this source raised; the run went on."""

    path: str
    reason: str


SourceOutcome = Union[Skipped, Refreshed, Failed]


@dataclass
class SyncSummary:
    """Everything one run did.

    Attributes:
        version_stamp: Token written to every document touched by this run.
        discovered: Number of sources enumerated.
        outcomes: One outcome per source, in enumeration order.
        pruned: Documents deleted by the end-of-run sweep.
    """

    version_stamp: str
    discovered: int = 0
    outcomes: list[SourceOutcome] = field(default_factory=list)
    pruned: int = 0

    @property
    def skipped(self) -> list[Skipped]:
        return [o for o in self.outcomes if isinstance(o, Skipped)]

    @property
    def refreshed(self) -> list[Refreshed]:
        return [o for o in self.outcomes if isinstance(o, Refreshed)]

    @property
    def created(self) -> list[Refreshed]:
        return [o for o in self.refreshed if o.created]

    @property
    def failed(self) -> list[Failed]:
        return [o for o in self.outcomes if isinstance(o, Failed)]

    @property
    def ok(self) -> bool:
        return not self.failed
