from __future__ import annotations

from dataclasses import dataclass

from src.domain.services.history_listing import HistoryListing, summary_lines
from src.domain.services.operation_catalog import OperationCatalog
from src.infrastructure.database.repositories.history_repository import HistoryRepository


@dataclass
class ListHistoryUseCase:
    history_repo: HistoryRepository
    catalog: OperationCatalog

    def list_history(self, item_id: int, active_only: bool = False) -> HistoryListing:
        """Live (operation, instance) rows of an item, newest first, read lazily."""
        return HistoryListing(
            lambda: self.history_repo.list_entries(item_id), self.catalog, active_only=active_only
        )

    def summary_string(self, item_id: int) -> str:
        """Full history of an item, newest first, one ``name (on|off)`` line per entry."""
        return "\n".join(summary_lines(self.history_repo.list_entries(item_id), self.catalog))
