from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from src.application.dtos.common_dto import ErrorResponse
from src.application.dtos.history_dto import (
    DeleteHistoryResponse,
    HistoryItem,
    HistorySummaryResponse,
    ListHistoryResponse,
    LoadSidecarRequest,
    LoadSidecarResponse,
    PasteHistoryRequest,
    PasteHistoryResponse,
)
from src.application.use_cases.copy_history import CopyHistoryUseCase
from src.application.use_cases.delete_history import DeleteHistoryUseCase
from src.application.use_cases.list_history import ListHistoryUseCase
from src.application.use_cases.load_sidecar import LoadSidecarUseCase
from src.domain.errors import (
    HistoryError,
    InvalidOperation,
    NoSourceHistory,
    SidecarParseError,
    StoreError,
)
from src.infrastructure.api.dependencies import (
    get_copy_history,
    get_current_user,
    get_delete_history,
    get_list_history,
    get_load_sidecar,
)

router = APIRouter(
    prefix="/items",
    tags=["History"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        422: {"description": "Validation Error - Invalid request format"},
        500: {"model": ErrorResponse, "description": "Store failure - the item was left unchanged"},
    },
)


def history_http_error(exc: HistoryError) -> HTTPException:
    """Translate a history failure into the HTTP error returned to the client."""
    if isinstance(exc, InvalidOperation):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NoSourceHistory):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, SidecarParseError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, StoreError):
        return HTTPException(status_code=500, detail=f"History store failed: {exc}")
    return HTTPException(status_code=500, detail=str(exc))


@router.get(
    "/{item_id}/history",
    response_model=ListHistoryResponse,
    summary="List Item History",
    description="""
    List the live history of an item: one row per (operation, instance),
    newest first.

    With `active_only=true` only enabled operations are listed and names
    carry no on/off suffix.

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="Live history rows of the item",
)
async def list_history(
    item_id: int,
    active_only: bool = Query(False, description="Only list enabled operations"),
    user=Depends(get_current_user),
    uc: ListHistoryUseCase = Depends(get_list_history),
):
    """Get the live history of an item."""
    try:
        rows = [HistoryItem.from_entity(row) for row in uc.list_history(item_id, active_only)]
    except HistoryError as exc:
        raise history_http_error(exc) from exc
    return ListHistoryResponse(item_id=item_id, history=rows)


@router.get(
    "/{item_id}/history/summary",
    response_model=HistorySummaryResponse,
    summary="Item History Summary",
    description="""
    Render every history entry of an item, newest first, one
    `name (on|off)` line per entry.

    **Authentication required**: Yes (Bearer token)
    """,
)
async def history_summary(
    item_id: int,
    user=Depends(get_current_user),
    uc: ListHistoryUseCase = Depends(get_list_history),
):
    """Get the full history of an item as text."""
    try:
        summary = uc.summary_string(item_id)
    except HistoryError as exc:
        raise history_http_error(exc) from exc
    return HistorySummaryResponse(item_id=item_id, summary=summary)


@router.delete(
    "/{item_id}/history",
    response_model=DeleteHistoryResponse,
    summary="Delete Item History",
    description="""
    Discard the whole history stack and the masks of an item.

    Deleting the history of an item that has none succeeds.

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="Confirmation of successful deletion",
)
async def delete_history(
    item_id: int,
    user=Depends(get_current_user),
    uc: DeleteHistoryUseCase = Depends(get_delete_history),
):
    """Delete the history of an item."""
    try:
        removed = uc.execute(item_id)
    except HistoryError as exc:
        raise history_http_error(exc) from exc
    return DeleteHistoryResponse(ok=True, removed=removed)


@router.post(
    "/{item_id}/history/paste",
    response_model=PasteHistoryResponse,
    summary="Paste History Onto Item",
    description="""
    Copy the history of `source_id` onto this item.

    **Modes:**
    - `merge=false` replaces the destination history and masks
    - `merge=true` appends onto the destination's active stack; instances of
      multi-instance operations are reconciled by name

    **Authentication required**: Yes (Bearer token)
    """,
    responses={
        400: {"description": "Source and destination are the same item"},
        404: {"description": "Nothing to copy"},
    },
)
async def paste_history(
    item_id: int,
    body: PasteHistoryRequest,
    user=Depends(get_current_user),
    uc: CopyHistoryUseCase = Depends(get_copy_history),
):
    """Paste the history of another item onto this one."""
    try:
        written = uc.execute(body.source_id, item_id, merge=body.merge, selection=body.selection)
    except HistoryError as exc:
        raise history_http_error(exc) from exc
    return PasteHistoryResponse(item_id=item_id, entries_written=len(written))


@router.post(
    "/{item_id}/history/sidecar",
    response_model=LoadSidecarResponse,
    summary="Load Sidecar Into History",
    description="""
    Replace the history of an item with the content of a sidecar file
    readable by the server.

    **Authentication required**: Yes (Bearer token)
    """,
    responses={422: {"description": "The sidecar could not be parsed"}},
)
async def load_sidecar(
    item_id: int,
    body: LoadSidecarRequest,
    user=Depends(get_current_user),
    uc: LoadSidecarUseCase = Depends(get_load_sidecar),
):
    """Load a sidecar file into the history of an item."""
    try:
        entries = uc.execute(item_id, body.path, history_only=body.history_only)
    except HistoryError as exc:
        raise history_http_error(exc) from exc
    return LoadSidecarResponse(item_id=item_id, entries_loaded=len(entries))
