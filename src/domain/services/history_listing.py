from __future__ import annotations

from typing import Callable, Iterable, Iterator

from src.domain.entities.history_entry import HistoryEntry, HistoryItemSummary, is_unnamed
from src.domain.services.operation_catalog import OperationCatalog


def live_entries(entries: Iterable[HistoryEntry]) -> list[HistoryEntry]:
    """Last entry of every (operation, instance) pair, newest first."""
    last: dict[tuple[str, int], HistoryEntry] = {}
    for entry in sorted(entries, key=lambda e: e.seq):
        last[entry.identity] = entry
    return sorted(last.values(), key=lambda e: e.seq, reverse=True)


def display_name(entry: HistoryEntry, catalog: OperationCatalog, with_state: bool = False) -> str:
    name = catalog.display_name(entry.operation)
    if not is_unnamed(entry.instance_label):
        name = f"{name} {entry.instance_label}"
    if with_state:
        name = f"{name} ({'on' if entry.enabled else 'off'})"
    return name


class HistoryListing:
    """
    Live history rows of one item, newest first.

    Every iteration reads the store again, so a listing can be kept around
    and re-iterated after the history changed.
    """

    def __init__(
        self,
        load: Callable[[], list[HistoryEntry]],
        catalog: OperationCatalog,
        active_only: bool = False,
    ) -> None:
        self._load = load
        self.catalog = catalog
        self.active_only = active_only

    def __iter__(self) -> Iterator[HistoryItemSummary]:
        for entry in live_entries(self._load()):
            if self.active_only and not entry.enabled:
                continue
            yield HistoryItemSummary(
                seq=entry.seq,
                operation=entry.operation,
                name=display_name(entry, self.catalog, with_state=not self.active_only),
                enabled=entry.enabled,
            )


def summary_lines(entries: Iterable[HistoryEntry], catalog: OperationCatalog) -> list[str]:
    """Every entry of a history, newest first, with its on/off state."""
    return [
        display_name(entry, catalog, with_state=True)
        for entry in sorted(entries, key=lambda e: e.seq, reverse=True)
    ]
