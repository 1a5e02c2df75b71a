from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.application.dtos.history_dto import (
    BatchResultResponse,
    PasteHistoryRequest,
    SelectionRequest,
    SelectionResponse,
)
from src.application.use_cases.copy_history import CopyHistoryUseCase
from src.application.use_cases.delete_history import DeleteHistoryUseCase
from src.application.use_cases.load_sidecar import LoadSidecarUseCase
from src.domain.errors import HistoryError
from src.infrastructure.api.dependencies import (
    get_copy_history,
    get_current_user,
    get_delete_history,
    get_load_sidecar,
    get_selection_repo,
)
from src.infrastructure.api.routes.history_routes import history_http_error
from src.infrastructure.database.repositories.selection_repository import SelectionRepository

router = APIRouter(
    prefix="/selection",
    tags=["Selection"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


class SelectionSidecarRequest(BaseModel):
    """Request model for loading one sidecar onto every selected item."""
    path: str = Field(..., min_length=1, description="Path of the sidecar file on the server")


@router.get(
    "",
    response_model=SelectionResponse,
    summary="Get Selection",
    description="List the currently selected items.",
)
async def get_selection(
    user=Depends(get_current_user),
    selection: SelectionRepository = Depends(get_selection_repo),
):
    try:
        return SelectionResponse(item_ids=selection.list_selected())
    except HistoryError as exc:
        raise history_http_error(exc) from exc


@router.put(
    "",
    response_model=SelectionResponse,
    summary="Replace Selection",
    description="Replace the set of selected items.",
)
async def replace_selection(
    body: SelectionRequest,
    user=Depends(get_current_user),
    selection: SelectionRepository = Depends(get_selection_repo),
):
    try:
        return SelectionResponse(item_ids=selection.replace(body.item_ids))
    except HistoryError as exc:
        raise history_http_error(exc) from exc


@router.delete(
    "/history",
    response_model=BatchResultResponse,
    summary="Delete History On Selection",
    description="""
    Delete the history of every selected item.

    A failing item does not stop the others; it is reported in `failed`.

    **Authentication required**: Yes (Bearer token)
    """,
)
async def delete_history_on_selection(
    user=Depends(get_current_user),
    uc: DeleteHistoryUseCase = Depends(get_delete_history),
):
    try:
        result = uc.execute_on_selection()
    except HistoryError as exc:
        raise history_http_error(exc) from exc
    return BatchResultResponse.from_entity(result)


@router.post(
    "/history/paste",
    response_model=BatchResultResponse,
    summary="Paste History On Selection",
    description="""
    Copy the history of `source_id` onto every other selected item, each in
    its own transaction.

    A failing destination does not stop the others; it is reported in
    `failed`. Fails with 400 when no other item is selected.

    **Authentication required**: Yes (Bearer token)
    """,
    responses={400: {"description": "No destination item selected"}},
)
async def paste_history_on_selection(
    body: PasteHistoryRequest,
    user=Depends(get_current_user),
    uc: CopyHistoryUseCase = Depends(get_copy_history),
):
    try:
        result = uc.execute_on_selection(body.source_id, merge=body.merge, selection=body.selection)
    except HistoryError as exc:
        raise history_http_error(exc) from exc
    return BatchResultResponse.from_entity(result)


@router.post(
    "/history/sidecar",
    response_model=BatchResultResponse,
    summary="Load Sidecar On Selection",
    description="""
    Load the history of one sidecar file onto every selected item.
    Non-history metadata is ignored.

    **Authentication required**: Yes (Bearer token)
    """,
)
async def load_sidecar_on_selection(
    body: SelectionSidecarRequest,
    user=Depends(get_current_user),
    uc: LoadSidecarUseCase = Depends(get_load_sidecar),
):
    try:
        result = uc.execute_on_selection(body.path)
    except HistoryError as exc:
        raise history_http_error(exc) from exc
    return BatchResultResponse.from_entity(result)
