"""Side effects fired after a history change has been committed.

None of these take part in the history transaction. The service has no
render pipeline or thumbnail cache of its own, so the default implementation
records what it would invalidate and keeps the JSON sidecar of the item in
sync when ``SIDECAR_DIR`` is configured.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Callable

from src.infrastructure.database.repositories.history_repository import HistoryRepository
from src.infrastructure.sidecar.json_sidecar import JsonSidecar

logger = logging.getLogger(__name__)


def run_hooks(item_id: int, *hooks: Callable[[int], Any]) -> None:
    """
    Call post-commit hooks for an item in order.

    The history change is already committed when these run, so a failing
    hook is logged and the remaining hooks still run.
    """
    for hook in hooks:
        try:
            hook(item_id)
        except Exception:
            logger.exception(
                "Post-commit hook %s failed for item %s", getattr(hook, "__name__", hook), item_id
            )


class HistoryHooks:
    def __init__(
        self,
        history_repo: HistoryRepository,
        sidecar: JsonSidecar | None = None,
        sort_by_aspect_ratio: bool | None = None,
        current_item_id: int | None = None,
    ) -> None:
        self.history_repo = history_repo
        self.sidecar = sidecar if sidecar is not None else JsonSidecar()
        if sort_by_aspect_ratio is None:
            sort_by_aspect_ratio = os.getenv("SORT_BY_ASPECT_RATIO", "0") == "1"
        self.sort_by_aspect_ratio = sort_by_aspect_ratio
        # item an embedding editor has open; the HTTP service leaves it unset
        self.current_item_id = current_item_id

    def reload_if_current(self, item_id: int) -> bool:
        """Tell whether ``item_id`` is the item open in an embedding editor and must be reloaded."""
        if item_id != self.current_item_id:
            return False
        logger.info("Reloading history of item %s opened for editing", item_id)
        return True

    def invalidate_thumbnail(self, item_id: int) -> None:
        logger.debug("Thumbnail of item %s invalidated", item_id)

    def remove_auto_presets_flag(self, item_id: int) -> None:
        logger.debug("Auto-presets flag cleared on item %s", item_id)

    def detach_style_tags(self, item_id: int) -> None:
        logger.debug("Style tags detached from item %s", item_id)

    def update_aspect_ratio(self, item_id: int) -> None:
        logger.debug("Aspect ratio of item %s scheduled for recomputation", item_id)

    def apply_metadata(self, item_id: int, metadata: dict[str, Any]) -> None:
        if metadata:
            logger.debug("Sidecar metadata for item %s: %s", item_id, sorted(metadata))

    def sync_sidecar(self, item_id: int) -> None:
        path = self.sidecar.path_for(item_id)
        if path is None:
            return
        with self.history_repo.transaction() as tx:
            entries = tx.list_entries(item_id)
            masks = tx.list_masks(item_id)
            history_end = tx.get_active_length(item_id)
        self.sidecar.write(path, item_id, entries, masks, history_end)
        logger.debug("Sidecar of item %s written to %s", item_id, path)
