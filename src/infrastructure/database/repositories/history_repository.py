from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Generator

import psycopg2

from src.domain.entities.history_entry import UNNAMED_LABEL, HistoryEntry
from src.domain.entities.mask import MaskForm
from src.domain.errors import StoreError
from src.infrastructure.database.postgres_client import get_postgres_client

logger = logging.getLogger(__name__)

# module-level in-memory store used when no database is configured
_MEM_HISTORY: dict[int, list[HistoryEntry]] = {}
_MEM_MASKS: dict[int, list[MaskForm]] = {}
_MEM_ACTIVE_LENGTH: dict[int, int] = {}
_MEM_LOCK = threading.RLock()

_HISTORY_COLUMNS = (
    "imgid, num, module, operation, op_params, enabled, "
    "blendop_params, blendop_version, multi_priority, multi_name"
)
_MASK_COLUMNS = "formid, form, name, version, points, points_count, source"


def reset_memory_store() -> None:
    """Drop everything held by the in-memory store."""
    with _MEM_LOCK:
        _MEM_HISTORY.clear()
        _MEM_MASKS.clear()
        _MEM_ACTIVE_LENGTH.clear()


def _row_to_entry(row: dict) -> HistoryEntry:
    """Convert database row to HistoryEntry."""
    label = row.get("multi_name")
    blend_version = row.get("blendop_version")
    module_version = row.get("module")
    return HistoryEntry(
        item_id=row["imgid"],
        seq=row["num"],
        operation=row["operation"],
        instance=row["multi_priority"],
        instance_label=UNNAMED_LABEL if label is None else label,
        enabled=bool(row["enabled"]),
        params=bytes(row.get("op_params") or b""),
        blend_params=bytes(row.get("blendop_params") or b""),
        blend_version=0 if blend_version is None else blend_version,
        module_version=1 if module_version is None else module_version,
    )


def _row_to_mask(row: dict) -> MaskForm:
    return MaskForm(
        form_id=row["formid"],
        form_type=row["form"],
        name=row.get("name") or "",
        version=row.get("version") or 0,
        points=bytes(row.get("points") or b""),
        points_count=row.get("points_count") or 0,
        source=bytes(row.get("source") or b""),
    )


class _MemoryTables:
    """
    Pending changes of one in-memory transaction, published only on commit.

    Reads fall through to the shared tables for items the transaction has
    not written.
    """

    def __init__(self) -> None:
        self._history: dict[int, list[HistoryEntry]] = {}
        self._masks: dict[int, list[MaskForm]] = {}
        self._active_length: dict[int, int] = {}

    def history(self, item_id: int) -> list[HistoryEntry]:
        if item_id in self._history:
            return self._history[item_id]
        return _MEM_HISTORY.get(item_id, [])

    def set_history(self, item_id: int, entries: list[HistoryEntry]) -> None:
        self._history[item_id] = entries

    def masks(self, item_id: int) -> list[MaskForm]:
        if item_id in self._masks:
            return self._masks[item_id]
        return _MEM_MASKS.get(item_id, [])

    def set_masks(self, item_id: int, masks: list[MaskForm]) -> None:
        self._masks[item_id] = masks

    def active_length(self, item_id: int) -> int | None:
        if item_id in self._active_length:
            return self._active_length[item_id]
        return _MEM_ACTIVE_LENGTH.get(item_id)

    def set_active_length(self, item_id: int, active_length: int) -> None:
        self._active_length[item_id] = active_length

    def commit(self) -> None:
        for item_id, entries in self._history.items():
            if entries:
                _MEM_HISTORY[item_id] = entries
            else:
                _MEM_HISTORY.pop(item_id, None)
        for item_id, masks in self._masks.items():
            if masks:
                _MEM_MASKS[item_id] = masks
            else:
                _MEM_MASKS.pop(item_id, None)
        _MEM_ACTIVE_LENGTH.update(self._active_length)


class HistoryTransaction:
    """
    Operations on the history store bound to one open transaction.

    Exactly one of ``cursor`` (PostgreSQL mode) or ``tables`` (in-memory
    mode) is set.
    """

    def __init__(self, cursor: Any = None, tables: _MemoryTables | None = None) -> None:
        self.cursor = cursor
        self.tables = tables

    def lock_item(self, item_id: int) -> None:
        """Serialize writers of the same item until the transaction ends."""
        if self.cursor is not None:
            self.cursor.execute(
                "INSERT INTO images (id) VALUES (%s) ON CONFLICT (id) DO NOTHING", (item_id,)
            )
            self.cursor.execute("SELECT id FROM images WHERE id = %s FOR UPDATE", (item_id,))
        # in-memory transactions already hold the global store lock

    def list_entries(self, item_id: int) -> list[HistoryEntry]:
        # PostgreSQL mode
        if self.cursor is not None:
            self.cursor.execute(
                f"SELECT {_HISTORY_COLUMNS} FROM history WHERE imgid = %s ORDER BY num",
                (item_id,),
            )
            return [_row_to_entry(dict(row)) for row in self.cursor.fetchall()]

        # In-memory mode
        return sorted(self.tables.history(item_id), key=lambda e: e.seq)

    def max_seq(self, item_id: int) -> int:
        """Highest ``seq`` of the item, -1 for an empty history."""
        if self.cursor is not None:
            self.cursor.execute(
                "SELECT COALESCE(MAX(num), -1) AS max_num FROM history WHERE imgid = %s",
                (item_id,),
            )
            return int(self.cursor.fetchone()["max_num"])

        return max((e.seq for e in self.tables.history(item_id)), default=-1)

    def delete_entries(self, item_id: int, from_seq: int | None = None) -> int:
        """Delete the item's entries, or only those with ``seq >= from_seq``."""
        if self.cursor is not None:
            if from_seq is None:
                self.cursor.execute("DELETE FROM history WHERE imgid = %s", (item_id,))
            else:
                self.cursor.execute(
                    "DELETE FROM history WHERE imgid = %s AND num >= %s", (item_id, from_seq)
                )
            return self.cursor.rowcount

        entries = self.tables.history(item_id)
        kept = [] if from_seq is None else [e for e in entries if e.seq < from_seq]
        self.tables.set_history(item_id, kept)
        return len(entries) - len(kept)

    def insert_entries(self, entries: list[HistoryEntry]) -> None:
        if not entries:
            return
        if self.cursor is not None:
            self.cursor.executemany(
                f"INSERT INTO history ({_HISTORY_COLUMNS}) "
                "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)",
                [
                    (
                        e.item_id, e.seq, e.module_version, e.operation,
                        psycopg2.Binary(e.params), e.enabled, psycopg2.Binary(e.blend_params),
                        e.blend_version, e.instance, e.instance_label,
                    )
                    for e in entries
                ],
            )
            return

        for entry in entries:
            current = self.tables.history(entry.item_id)
            if any(e.seq == entry.seq for e in current):
                raise StoreError(f"Duplicate history entry {entry.seq} for item {entry.item_id}")
            self.tables.set_history(entry.item_id, current + [entry])

    def shift_instances(self, item_id: int, operation: str, offset: int) -> None:
        if self.cursor is not None:
            self.cursor.execute(
                "UPDATE history SET multi_priority = multi_priority + %s "
                "WHERE imgid = %s AND operation = %s",
                (offset, item_id, operation),
            )
            return

        shifted = [
            replace(e, instance=e.instance + offset)
            if e.operation == operation
            else e
            for e in self.tables.history(item_id)
        ]
        self.tables.set_history(item_id, shifted)

    def update_instance(self, item_id: int, operation: str, from_instance: int, to_instance: int) -> None:
        if self.cursor is not None:
            self.cursor.execute(
                "UPDATE history SET multi_priority = %s "
                "WHERE imgid = %s AND operation = %s AND multi_priority = %s",
                (to_instance, item_id, operation, from_instance),
            )
            return

        updated = [
            replace(e, instance=to_instance)
            if e.operation == operation and e.instance == from_instance
            else e
            for e in self.tables.history(item_id)
        ]
        self.tables.set_history(item_id, updated)

    def get_active_length(self, item_id: int) -> int | None:
        if self.cursor is not None:
            self.cursor.execute("SELECT history_end FROM images WHERE id = %s", (item_id,))
            row = self.cursor.fetchone()
            return int(row["history_end"]) if row else None

        return self.tables.active_length(item_id)

    def set_active_length(self, item_id: int, active_length: int) -> None:
        if self.cursor is not None:
            self.cursor.execute(
                "INSERT INTO images (id, history_end) VALUES (%s, %s) "
                "ON CONFLICT (id) DO UPDATE SET history_end = EXCLUDED.history_end",
                (item_id, active_length),
            )
            return

        self.tables.set_active_length(item_id, active_length)

    def list_masks(self, item_id: int) -> list[MaskForm]:
        if self.cursor is not None:
            self.cursor.execute(f"SELECT {_MASK_COLUMNS} FROM mask WHERE imgid = %s", (item_id,))
            return [_row_to_mask(dict(row)) for row in self.cursor.fetchall()]

        return list(self.tables.masks(item_id))

    def delete_masks(self, item_id: int) -> int:
        if self.cursor is not None:
            self.cursor.execute("DELETE FROM mask WHERE imgid = %s", (item_id,))
            return self.cursor.rowcount

        removed = len(self.tables.masks(item_id))
        self.tables.set_masks(item_id, [])
        return removed

    def insert_masks(self, item_id: int, masks: list[MaskForm]) -> None:
        if not masks:
            return
        if self.cursor is not None:
            self.cursor.executemany(
                f"INSERT INTO mask (imgid, {_MASK_COLUMNS}) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)",
                [
                    (
                        item_id, m.form_id, m.form_type, m.name, m.version,
                        psycopg2.Binary(m.points), m.points_count, psycopg2.Binary(m.source),
                    )
                    for m in masks
                ],
            )
            return

        self.tables.set_masks(item_id, self.tables.masks(item_id) + list(masks))


class HistoryRepository:
    def __init__(self) -> None:
        self.use_local_db = os.getenv("USE_LOCAL_DB", "0") == "1"
        self.pg_client = get_postgres_client() if self.use_local_db else None

    @contextmanager
    def transaction(self) -> Generator[HistoryTransaction, None, None]:
        """
        Open one store transaction.

        Everything done through the yielded ``HistoryTransaction`` is committed
        when the block exits normally and discarded when it raises.

        Raises:
            StoreError: if the database rejects any statement.
        """
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                with self.pg_client.get_cursor() as cursor:
                    yield HistoryTransaction(cursor=cursor)
            except psycopg2.Error as exc:
                logger.warning("History transaction rolled back: %s", exc)
                raise StoreError(f"PostgreSQL history transaction failed: {exc}") from exc
            return

        # In-memory mode
        with _MEM_LOCK:
            tables = _MemoryTables()
            yield HistoryTransaction(tables=tables)
            tables.commit()

    def list_entries(self, item_id: int) -> list[HistoryEntry]:
        with self.transaction() as tx:
            return tx.list_entries(item_id)

    def list_masks(self, item_id: int) -> list[MaskForm]:
        with self.transaction() as tx:
            return tx.list_masks(item_id)

    def get_active_length(self, item_id: int) -> int | None:
        with self.transaction() as tx:
            return tx.get_active_length(item_id)
