import os
import sys
from pathlib import Path
import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")
os.environ["USE_LOCAL_DB"] = "0"
os.environ.pop("SIDECAR_DIR", None)
os.environ.pop("OPERATION_CATALOG_PATH", None)


@pytest.fixture(autouse=True)
def clean_store():
    from src.infrastructure.database.repositories.history_repository import reset_memory_store
    from src.infrastructure.database.repositories.selection_repository import reset_memory_selection

    reset_memory_store()
    reset_memory_selection()
    yield
    reset_memory_store()
    reset_memory_selection()


@pytest.fixture()
def catalog():
    from src.domain.services.operation_catalog import OperationCatalog, OperationInfo

    return OperationCatalog(
        {
            "blur": OperationInfo("blur", display_name="blur"),
            "exposure": OperationInfo("exposure", display_name="exposure"),
            "sharpen": OperationInfo("sharpen", display_name="sharpen"),
            "flip": OperationInfo("flip", single_instance=True, display_name="orientation"),
            "demosaic": OperationInfo("demosaic", single_instance=True, display_name="demosaic"),
        }
    )


@pytest.fixture()
def history_repo():
    from src.infrastructure.database.repositories.history_repository import HistoryRepository

    return HistoryRepository()


@pytest.fixture()
def selection_repo():
    from src.infrastructure.database.repositories.selection_repository import SelectionRepository

    return SelectionRepository()


@pytest.fixture()
def seed(history_repo):
    """Write ``(operation, instance, label, enabled, params)`` tuples as an item's history."""
    from src.domain.entities.history_entry import HistoryEntry

    def _seed(item_id, rows, active_length=None, masks=()):
        entries = [
            HistoryEntry(
                item_id=item_id,
                seq=seq,
                operation=op,
                instance=instance,
                instance_label=label,
                enabled=enabled,
                params=params,
            )
            for seq, (op, instance, label, enabled, params) in enumerate(rows)
        ]
        with history_repo.transaction() as tx:
            tx.insert_entries(entries)
            tx.insert_masks(item_id, list(masks))
            tx.set_active_length(item_id, len(entries) if active_length is None else active_length)
        return entries

    return _seed


@pytest.fixture(scope="session")
def client() -> TestClient:
    # lazy import after env configured
    from src.main import create_app

    app = create_app()
    return TestClient(app)


@pytest.fixture()
def auth_header() -> dict[str, str]:
    # any token is accepted in disabled mode
    return {"Authorization": "Bearer test-token"}
