from __future__ import annotations

from typing import Iterable

from src.domain.entities.history_entry import HistoryEntry, StagingEntry
from src.domain.errors import NoSourceHistory


def build_staging(
    source_history: Iterable[HistoryEntry],
    selection: Iterable[int] | None = None,
    merge: bool = False,
) -> list[StagingEntry]:
    """
    Select the source entries to copy.

    With ``merge`` and no explicit selection, only the last entry of every
    (operation, instance) pair is kept, so intermediate edits collapse into
    the state currently applied on the source. In every other case the
    entries at the selected ``seq`` values (or all of them) are kept as
    recorded.

    Raises:
        NoSourceHistory: if nothing is left to copy.
    """
    entries = sorted(source_history, key=lambda e: e.seq)
    wanted = set(selection or ())

    if merge and not wanted:
        last: dict[tuple[str, int], HistoryEntry] = {}
        for entry in entries:
            last[entry.identity] = entry
        picked = sorted(last.values(), key=lambda e: e.seq)
    elif wanted:
        picked = [e for e in entries if e.seq in wanted]
    else:
        picked = entries

    if not picked:
        raise NoSourceHistory("Source item has no history to copy")

    return [StagingEntry.from_history(row, entry) for row, entry in enumerate(picked, start=1)]
