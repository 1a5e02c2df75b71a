from __future__ import annotations

import json
from unittest.mock import Mock

import pytest

from src.application.hooks import HistoryHooks
from src.application.use_cases.delete_history import DeleteHistoryUseCase
from src.application.use_cases.load_sidecar import LoadSidecarUseCase
from src.domain.entities.mask import MaskForm
from src.domain.errors import SidecarParseError, StoreError
from src.infrastructure.database.repositories.history_repository import HistoryTransaction
from src.infrastructure.sidecar.json_sidecar import JsonSidecar


@pytest.fixture()
def hooks():
    mock = Mock(spec=HistoryHooks)
    mock.sort_by_aspect_ratio = False
    return mock


class TestDeleteHistory:
    def test_removes_entries_masks_and_active_length(self, history_repo, selection_repo, hooks, seed):
        seed(3, [("exposure", 0, "0", True, b"e"), ("blur", 0, "0", True, b"b")],
             masks=[MaskForm(form_id=1, form_type=1, name="m", version=1)])

        removed = DeleteHistoryUseCase(history_repo, selection_repo, hooks).execute(3)

        assert removed == 2
        assert history_repo.list_entries(3) == []
        assert history_repo.list_masks(3) == []
        assert history_repo.get_active_length(3) == 0
        hooks.remove_auto_presets_flag.assert_called_once_with(3)
        hooks.invalidate_thumbnail.assert_called_once_with(3)
        hooks.detach_style_tags.assert_called_once_with(3)

    def test_is_idempotent_on_item_without_history(self, history_repo, selection_repo, hooks):
        uc = DeleteHistoryUseCase(history_repo, selection_repo, hooks)

        assert uc.execute(8) == 0
        assert uc.execute(8) == 0
        assert history_repo.list_entries(8) == []

    def test_on_selection_continues_past_failures(self, history_repo, selection_repo, hooks, seed, monkeypatch):
        for item_id in (1, 2, 3):
            seed(item_id, [("exposure", 0, "0", True, b"e")])
        selection_repo.replace([1, 2, 3])

        original = HistoryTransaction.delete_entries

        def flaky_delete(self, item_id, from_seq=None):
            if item_id == 2:
                raise StoreError("locked")
            return original(self, item_id, from_seq)

        monkeypatch.setattr(HistoryTransaction, "delete_entries", flaky_delete)

        result = DeleteHistoryUseCase(history_repo, selection_repo, hooks).execute_on_selection()

        assert result.processed == [1, 3]
        assert result.failed == [2]
        assert history_repo.list_entries(1) == []
        assert len(history_repo.list_entries(2)) == 1
        assert hooks.update_aspect_ratio.call_count == 2

    def test_on_selection_survives_a_failing_hook(self, history_repo, selection_repo, hooks, seed):
        for item_id in (1, 2, 3):
            seed(item_id, [("exposure", 0, "0", True, b"e")])
        selection_repo.replace([1, 2, 3])
        hooks.sync_sidecar.side_effect = OSError("No space left on device")

        result = DeleteHistoryUseCase(history_repo, selection_repo, hooks).execute_on_selection()

        assert result.ok
        assert result.processed == [1, 2, 3]
        for item_id in (1, 2, 3):
            assert history_repo.list_entries(item_id) == []
        assert hooks.detach_style_tags.call_count == 3
        assert hooks.update_aspect_ratio.call_count == 3


class TestSidecar:
    def test_written_sidecar_loads_onto_another_item(self, history_repo, selection_repo, hooks, seed, tmp_path):
        mask = MaskForm(form_id=4, form_type=2, name="brush", version=6, points=b"\x00\x01", points_count=2)
        source = seed(
            1,
            [("exposure", 0, "0", True, b"\x00\xffe"), ("blur", 1, "soft", False, b"b")],
            active_length=1,
            masks=[mask],
        )
        sidecar = JsonSidecar(tmp_path)
        real_hooks = HistoryHooks(history_repo, sidecar)
        real_hooks.sync_sidecar(1)

        path = sidecar.path_for(1)
        assert path.exists()

        entries = LoadSidecarUseCase(history_repo, selection_repo, sidecar, hooks).execute(5, path)

        loaded = history_repo.list_entries(5)
        assert loaded == entries
        assert [(e.operation, e.instance, e.instance_label, e.enabled, e.params) for e in loaded] == [
            (e.operation, e.instance, e.instance_label, e.enabled, e.params) for e in source
        ]
        assert history_repo.list_masks(5) == [mask]
        assert history_repo.get_active_length(5) == 1
        hooks.apply_metadata.assert_called_once()

    def test_history_only_ignores_metadata(self, history_repo, selection_repo, hooks, tmp_path):
        path = tmp_path / "item.json"
        path.write_text(json.dumps({"history": [{"operation": "exposure"}], "metadata": {"rating": 3}}))

        LoadSidecarUseCase(history_repo, selection_repo, JsonSidecar(tmp_path), hooks).execute(
            2, path, history_only=True
        )

        hooks.apply_metadata.assert_not_called()
        assert history_repo.get_active_length(2) == 1

    def test_malformed_sidecar_leaves_history_unchanged(self, history_repo, selection_repo, hooks, seed, tmp_path):
        before = seed(2, [("exposure", 0, "0", True, b"e")])
        path = tmp_path / "broken.json"
        path.write_text('{"history": [{"instance": "not a number"}]}')
        uc = LoadSidecarUseCase(history_repo, selection_repo, JsonSidecar(tmp_path), hooks)

        with pytest.raises(SidecarParseError):
            uc.execute(2, path)

        assert history_repo.list_entries(2) == before
        hooks.invalidate_thumbnail.assert_not_called()

    @pytest.mark.parametrize(
        "content",
        ["not json at all", '{"history": [{"operation": "exposure", "params": "%%%"}]}', '{"version": 99}'],
    )
    def test_unreadable_payloads_raise(self, tmp_path, content):
        path = tmp_path / "bad.json"
        path.write_text(content)

        with pytest.raises(SidecarParseError):
            JsonSidecar(tmp_path).read(path)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(SidecarParseError):
            JsonSidecar(tmp_path).read(tmp_path / "missing.json")

    def test_sidecar_on_selection_loads_every_item(self, history_repo, selection_repo, hooks, tmp_path):
        path = tmp_path / "shared.json"
        path.write_text(json.dumps({"history": [{"operation": "exposure"}, {"operation": "blur"}]}))
        selection_repo.replace([1, 2])

        result = LoadSidecarUseCase(history_repo, selection_repo, JsonSidecar(tmp_path), hooks).execute_on_selection(
            path
        )

        assert result.ok
        assert [e.operation for e in history_repo.list_entries(2)] == ["exposure", "blur"]

    def test_hooks_without_sidecar_directory_write_nothing(self, history_repo, seed, tmp_path):
        seed(1, [("exposure", 0, "0", True, b"e")])

        HistoryHooks(history_repo, JsonSidecar(None)).sync_sidecar(1)

        assert list(tmp_path.iterdir()) == []
