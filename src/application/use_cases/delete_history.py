from __future__ import annotations

import logging
from dataclasses import dataclass

from src.application.hooks import HistoryHooks, run_hooks
from src.domain.entities.batch_result import BatchResult
from src.domain.errors import HistoryError
from src.infrastructure.database.repositories.history_repository import HistoryRepository
from src.infrastructure.database.repositories.selection_repository import SelectionRepository

logger = logging.getLogger(__name__)


@dataclass
class DeleteHistoryUseCase:
    """Discard the whole history stack and the masks of items."""

    history_repo: HistoryRepository
    selection_repo: SelectionRepository
    hooks: HistoryHooks

    def execute(self, item_id: int) -> int:
        """
        Delete all history and mask rows of an item and reset its active length.

        Deleting an item without history is a no-op apart from the hooks.

        Returns:
            Number of history entries removed
        """
        with self.history_repo.transaction() as tx:
            tx.lock_item(item_id)
            removed = tx.delete_entries(item_id)
            tx.set_active_length(item_id, 0)
            tx.delete_masks(item_id)

        logger.info("Deleted %d history entries of item %s", removed, item_id)
        run_hooks(
            item_id,
            self.hooks.remove_auto_presets_flag,
            self.hooks.sync_sidecar,
            self.hooks.reload_if_current,
            self.hooks.invalidate_thumbnail,
            self.hooks.detach_style_tags,
        )
        return removed

    def execute_on_selection(self) -> BatchResult:
        result = BatchResult()
        for item_id in self.selection_repo.list_selected():
            try:
                self.execute(item_id)
                run_hooks(item_id, self.hooks.update_aspect_ratio)
            except HistoryError as exc:
                logger.exception("Deleting history of item %s failed: %s", item_id, exc)
                result.failed.append(item_id)
            else:
                result.processed.append(item_id)
        return result
