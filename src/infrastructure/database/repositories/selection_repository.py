from __future__ import annotations

import os
import threading
from typing import Iterable

import psycopg2

from src.domain.errors import StoreError
from src.infrastructure.database.postgres_client import get_postgres_client

# module-level in-memory selection for disabled mode, kept in selection order
_MEM_SELECTION: list[int] = []
_MEM_SELECTION_LOCK = threading.Lock()


def reset_memory_selection() -> None:
    with _MEM_SELECTION_LOCK:
        _MEM_SELECTION.clear()


class SelectionRepository:
    """The set of items currently selected by the user."""

    def __init__(self) -> None:
        self.use_local_db = os.getenv("USE_LOCAL_DB", "0") == "1"
        self.pg_client = get_postgres_client() if self.use_local_db else None

    def list_selected(self, exclude: int | None = None) -> list[int]:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                if exclude is None:
                    rows = self.pg_client.execute_many(
                        "SELECT imgid FROM selected_images ORDER BY imgid"
                    )
                else:
                    rows = self.pg_client.execute_many(
                        "SELECT imgid FROM selected_images WHERE imgid != %s ORDER BY imgid",
                        (exclude,),
                    )
            except psycopg2.Error as exc:
                raise StoreError(f"PostgreSQL list selection failed: {exc}") from exc
            return [row["imgid"] for row in rows]

        # In-memory mode
        with _MEM_SELECTION_LOCK:
            return [item_id for item_id in _MEM_SELECTION if item_id != exclude]

    def replace(self, item_ids: Iterable[int]) -> list[int]:
        """Replace the whole selection, dropping duplicates."""
        ids = list(dict.fromkeys(item_ids))
        if self.use_local_db and self.pg_client:
            try:
                with self.pg_client.get_cursor(dict_cursor=False) as cursor:
                    cursor.execute("DELETE FROM selected_images")
                    cursor.executemany(
                        "INSERT INTO selected_images (imgid) VALUES (%s)", [(i,) for i in ids]
                    )
            except psycopg2.Error as exc:
                raise StoreError(f"PostgreSQL replace selection failed: {exc}") from exc
            return ids

        with _MEM_SELECTION_LOCK:
            _MEM_SELECTION[:] = ids
        return ids

    def clear(self) -> None:
        if self.use_local_db and self.pg_client:
            try:
                self.pg_client.execute_update("DELETE FROM selected_images")
            except psycopg2.Error as exc:
                raise StoreError(f"PostgreSQL clear selection failed: {exc}") from exc
            return

        reset_memory_selection()
