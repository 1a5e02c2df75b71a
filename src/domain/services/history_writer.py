from __future__ import annotations

import logging
from typing import Any

from src.domain.entities.history_entry import HistoryEntry, StagingEntry
from src.domain.entities.mask import MaskForm
from src.domain.services.merge_planner import MergePlan

logger = logging.getLogger(__name__)


class HistoryStackWriter:
    """
    Writes staged entries into a destination history inside an open transaction.

    ``tx`` is a history store transaction (see
    ``HistoryRepository.transaction``); nothing here commits or rolls back.
    """

    def __init__(self, tx: Any) -> None:
        self.tx = tx

    def trim_redo_tail(self, item_id: int) -> int:
        """Drop entries above the active-length marker, i.e. undone edits."""
        active_length = self.tx.get_active_length(item_id)
        if active_length is None:
            return 0
        removed = self.tx.delete_entries(item_id, from_seq=active_length)
        if removed:
            logger.debug("Trimmed %d undone entries from item %s", removed, item_id)
        return removed

    def replace(
        self, item_id: int, staging: list[StagingEntry], masks: list[MaskForm]
    ) -> list[HistoryEntry]:
        self.tx.delete_entries(item_id)
        self.tx.delete_masks(item_id)
        entries = [s.to_history(item_id, seq) for seq, s in enumerate(staging)]
        self.tx.insert_entries(entries)
        self.tx.insert_masks(item_id, masks)
        return entries

    def append(
        self,
        item_id: int,
        staging: list[StagingEntry],
        plan: MergePlan,
        masks: list[MaskForm],
    ) -> list[HistoryEntry]:
        for shift in plan.shifts:
            self.tx.shift_instances(item_id, shift.operation, shift.offset)
        for update in plan.updates:
            self.tx.update_instance(item_id, update.operation, update.from_instance, update.to_instance)
            if update.matched_row is not None:
                logger.debug(
                    "Instance %d of %s on item %s is superseded by staged row %d",
                    update.to_instance, update.operation, item_id, update.matched_row,
                )

        offset = self.tx.max_seq(item_id) + 1
        entries = [s.to_history(item_id, offset + index) for index, s in enumerate(staging)]
        self.tx.insert_entries(entries)
        # shape ids are not reconciled, both sets are kept as they are
        self.tx.insert_masks(item_id, masks)
        return entries

    def activate_all(self, item_id: int) -> int:
        """Make the whole stack active and return the new active length."""
        active_length = self.tx.max_seq(item_id) + 1
        self.tx.set_active_length(item_id, active_length)
        return active_length
