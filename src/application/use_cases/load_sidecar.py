from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from src.application.hooks import HistoryHooks, run_hooks
from src.domain.entities.batch_result import BatchResult
from src.domain.entities.history_entry import HistoryEntry
from src.domain.errors import HistoryError
from src.infrastructure.database.repositories.history_repository import HistoryRepository
from src.infrastructure.database.repositories.selection_repository import SelectionRepository
from src.infrastructure.sidecar.json_sidecar import JsonSidecar

logger = logging.getLogger(__name__)


@dataclass
class LoadSidecarUseCase:
    """Replace an item's history with the content of a sidecar file."""

    history_repo: HistoryRepository
    selection_repo: SelectionRepository
    sidecar: JsonSidecar
    hooks: HistoryHooks

    def execute(self, item_id: int, path: str | Path, history_only: bool = False) -> list[HistoryEntry]:
        """
        Load ``path`` into the history of ``item_id``.

        When ``history_only`` is False the non-history metadata of the sidecar
        is handed to the hooks as well.

        Raises:
            SidecarParseError: If the sidecar cannot be parsed; history is unchanged
            StoreError: If the store failed
        """
        doc = self.sidecar.read(path, item_id=item_id)
        with self.history_repo.transaction() as tx:
            tx.lock_item(item_id)
            tx.delete_entries(item_id)
            tx.delete_masks(item_id)
            tx.insert_entries(doc.entries)
            tx.insert_masks(item_id, doc.masks)
            history_end = doc.history_end if doc.history_end is not None else len(doc.entries)
            tx.set_active_length(item_id, history_end)

        logger.info("Loaded %d history entries from %s onto item %s", len(doc.entries), path, item_id)
        hooks = [self.hooks.reload_if_current, self.hooks.invalidate_thumbnail]
        if not history_only:
            hooks.insert(0, partial(self.hooks.apply_metadata, metadata=doc.metadata))
        run_hooks(item_id, *hooks)
        return doc.entries

    def execute_on_selection(self, path: str | Path) -> BatchResult:
        result = BatchResult()
        for item_id in self.selection_repo.list_selected():
            try:
                self.execute(item_id, path, history_only=True)
            except HistoryError as exc:
                logger.warning("Loading sidecar %s onto item %s failed: %s", path, item_id, exc)
                result.failed.append(item_id)
            else:
                result.processed.append(item_id)
        return result
