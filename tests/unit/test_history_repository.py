import pytest

from src.domain.entities.history_entry import HistoryEntry
from src.domain.errors import StoreError
from src.infrastructure.database.repositories import history_repository
from src.infrastructure.database.repositories.history_repository import _row_to_entry


def _row(**overrides):
    row = {
        "imgid": 1,
        "num": 0,
        "module": 3,
        "operation": "exposure",
        "op_params": b"p",
        "enabled": 1,
        "blendop_params": b"b",
        "blendop_version": 9,
        "multi_priority": 2,
        "multi_name": "soft",
    }
    row.update(overrides)
    return row


def test_row_conversion_keeps_falsy_stored_values():
    entry = _row_to_entry(_row(module=0, multi_name="", blendop_version=0))

    assert entry.module_version == 0
    assert entry.instance_label == ""
    assert entry.blend_version == 0


def test_row_conversion_fills_missing_columns():
    entry = _row_to_entry(_row(module=None, multi_name=None, blendop_version=None, op_params=None))

    assert entry.module_version == 1
    assert entry.instance_label == "0"
    assert entry.blend_version == 0
    assert entry.params == b""


def test_writes_leave_other_items_untouched(history_repo, seed):
    seed(2, [("blur", 0, "0", True, b"b")])
    stored = history_repository._MEM_HISTORY[2]

    seed(1, [("exposure", 0, "0", True, b"e")])
    history_repo.list_entries(2)

    assert history_repository._MEM_HISTORY[2] is stored


def test_uncommitted_writes_are_not_visible_to_later_transactions(history_repo, seed):
    before = seed(1, [("exposure", 0, "0", True, b"e")])

    with pytest.raises(StoreError):
        with history_repo.transaction() as tx:
            tx.delete_entries(1)
            tx.insert_entries([HistoryEntry(item_id=1, seq=0, operation="blur", instance=0)])
            tx.set_active_length(1, 5)
            assert [e.operation for e in tx.list_entries(1)] == ["blur"]
            raise StoreError("connection lost")

    assert history_repo.list_entries(1) == before
    assert history_repo.get_active_length(1) == 1


def test_deleting_all_entries_drops_the_item(history_repo, seed):
    seed(1, [("exposure", 0, "0", True, b"e")])

    with history_repo.transaction() as tx:
        tx.delete_entries(1)

    assert 1 not in history_repository._MEM_HISTORY
    assert history_repo.list_entries(1) == []
