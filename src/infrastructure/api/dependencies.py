from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.application.hooks import HistoryHooks
from src.application.use_cases.copy_history import CopyHistoryUseCase
from src.application.use_cases.delete_history import DeleteHistoryUseCase
from src.application.use_cases.list_history import ListHistoryUseCase
from src.application.use_cases.load_sidecar import LoadSidecarUseCase
from src.domain.services.operation_catalog import OperationCatalog, load_operation_catalog
from src.infrastructure.database.repositories.history_repository import HistoryRepository
from src.infrastructure.database.repositories.selection_repository import SelectionRepository
from src.infrastructure.database.supabase_client import SupabaseAuthAdapter, UserInfo
from src.infrastructure.sidecar.json_sidecar import JsonSidecar

_bearer_scheme = HTTPBearer(auto_error=False)

_CATALOG: OperationCatalog | None = None


def get_auth_adapter() -> SupabaseAuthAdapter:
    return SupabaseAuthAdapter()


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer_scheme)] = None,
    auth: Annotated[SupabaseAuthAdapter, Depends(get_auth_adapter)] = None,
) -> UserInfo:
    if not credentials or not credentials.scheme or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = credentials.credentials
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        user = auth.validate_token(token)
        return user
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))


def get_catalog() -> OperationCatalog:
    global _CATALOG
    if _CATALOG is None:
        _CATALOG = load_operation_catalog()
    return _CATALOG


def get_history_repo() -> HistoryRepository:
    return HistoryRepository()


def get_selection_repo() -> SelectionRepository:
    return SelectionRepository()


def get_sidecar() -> JsonSidecar:
    return JsonSidecar()


def get_hooks(
    history_repo: HistoryRepository = Depends(get_history_repo),
    sidecar: JsonSidecar = Depends(get_sidecar),
) -> HistoryHooks:
    return HistoryHooks(history_repo, sidecar)


def get_copy_history(
    history_repo: HistoryRepository = Depends(get_history_repo),
    selection_repo: SelectionRepository = Depends(get_selection_repo),
    catalog: OperationCatalog = Depends(get_catalog),
    hooks: HistoryHooks = Depends(get_hooks),
) -> CopyHistoryUseCase:
    return CopyHistoryUseCase(history_repo, selection_repo, catalog, hooks)


def get_delete_history(
    history_repo: HistoryRepository = Depends(get_history_repo),
    selection_repo: SelectionRepository = Depends(get_selection_repo),
    hooks: HistoryHooks = Depends(get_hooks),
) -> DeleteHistoryUseCase:
    return DeleteHistoryUseCase(history_repo, selection_repo, hooks)


def get_load_sidecar(
    history_repo: HistoryRepository = Depends(get_history_repo),
    selection_repo: SelectionRepository = Depends(get_selection_repo),
    sidecar: JsonSidecar = Depends(get_sidecar),
    hooks: HistoryHooks = Depends(get_hooks),
) -> LoadSidecarUseCase:
    return LoadSidecarUseCase(history_repo, selection_repo, sidecar, hooks)


def get_list_history(
    history_repo: HistoryRepository = Depends(get_history_repo),
    catalog: OperationCatalog = Depends(get_catalog),
) -> ListHistoryUseCase:
    return ListHistoryUseCase(history_repo, catalog)
