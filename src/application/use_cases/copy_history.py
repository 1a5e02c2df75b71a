from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from src.application.hooks import HistoryHooks, run_hooks
from src.domain.entities.batch_result import BatchResult
from src.domain.entities.history_entry import HistoryEntry
from src.domain.errors import HistoryError, InvalidOperation, NoSourceHistory
from src.domain.services.history_writer import HistoryStackWriter
from src.domain.services.merge_planner import plan_merge
from src.domain.services.multi_instance import normalize_instances
from src.domain.services.operation_catalog import OperationCatalog
from src.domain.services.staging import build_staging
from src.infrastructure.database.repositories.history_repository import HistoryRepository
from src.infrastructure.database.repositories.selection_repository import SelectionRepository

logger = logging.getLogger(__name__)


@dataclass
class CopyHistoryUseCase:
    """
    Copy the history of one item onto others.

    In replace mode the destination stack is discarded and becomes a copy of
    the selected source entries. In merge mode the source entries are
    appended on top of the destination's active stack; multi-instance
    operations already present on the destination are renumbered so that no
    (operation, instance) pair is duplicated.

    Each destination is written in its own transaction: it is either fully
    pasted or left untouched.
    """

    history_repo: HistoryRepository
    selection_repo: SelectionRepository
    catalog: OperationCatalog
    hooks: HistoryHooks

    def execute(
        self,
        source_id: int | None,
        dest_id: int,
        merge: bool = False,
        selection: Iterable[int] | None = None,
    ) -> list[HistoryEntry]:
        """
        Paste the history of ``source_id`` onto ``dest_id``.

        Args:
            source_id: Item to copy from, None when nothing was copied yet
            dest_id: Item to paste onto
            merge: Append onto the destination stack instead of replacing it
            selection: Source ``seq`` values to copy, everything when empty

        Returns:
            The entries written to the destination

        Raises:
            InvalidOperation: If source and destination are the same item
            NoSourceHistory: If there is nothing to copy
            StoreError: If the store failed; the destination is left unchanged
        """
        if source_id == dest_id:
            raise InvalidOperation(f"Cannot paste the history of item {dest_id} onto itself")
        if source_id is None or source_id < 0:
            logger.warning("You need to copy history from an image before you paste it onto another")
            raise NoSourceHistory("No history has been copied")

        selection = sorted(set(selection or ()))
        with self.history_repo.transaction() as tx:
            tx.lock_item(dest_id)
            staging = build_staging(tx.list_entries(source_id), selection, merge)
            masks = tx.list_masks(source_id)
            writer = HistoryStackWriter(tx)

            if merge:
                writer.trim_redo_tail(dest_id)
                staging = normalize_instances(staging, self.catalog)
                plan = plan_merge(tx.list_entries(dest_id), staging, self.catalog)
                written = writer.append(dest_id, staging, plan, masks)
            else:
                written = writer.replace(dest_id, staging, masks)
            active_length = writer.activate_all(dest_id)

        logger.info(
            "Pasted %d history entries from item %s onto item %s (%s), active length %d",
            len(written), source_id, dest_id, "merge" if merge else "replace", active_length,
        )
        self._after_paste(dest_id)
        return written

    def execute_on_selection(
        self,
        source_id: int | None,
        merge: bool = False,
        selection: Iterable[int] | None = None,
    ) -> BatchResult:
        """
        Paste onto every selected item other than the source.

        A failing destination is logged and skipped; the others are still
        processed.

        Raises:
            NoSourceHistory: If nothing was copied yet
            InvalidOperation: If no other item is selected
        """
        if source_id is None or source_id < 0:
            logger.warning("You need to copy history from an image before you paste it onto another")
            raise NoSourceHistory("No history has been copied")

        dest_ids = self.selection_repo.list_selected(exclude=source_id)
        if not dest_ids:
            raise InvalidOperation("No destination image selected")

        selection = sorted(set(selection or ()))
        result = BatchResult()
        for dest_id in dest_ids:
            try:
                self.execute(source_id, dest_id, merge=merge, selection=selection)
            except HistoryError as exc:
                logger.exception("Pasting history of item %s onto item %s failed: %s", source_id, dest_id, exc)
                result.failed.append(dest_id)
            else:
                result.processed.append(dest_id)
        return result

    def _after_paste(self, dest_id: int) -> None:
        hooks = [self.hooks.reload_if_current, self.hooks.sync_sidecar, self.hooks.invalidate_thumbnail]
        # otherwise the ratio is recomputed with the next thumbnail
        if self.hooks.sort_by_aspect_ratio:
            hooks.append(self.hooks.update_aspect_ratio)
        run_hooks(dest_id, *hooks)
