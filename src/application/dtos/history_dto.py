from __future__ import annotations

from pydantic import BaseModel, Field

from src.domain.entities.batch_result import BatchResult
from src.domain.entities.history_entry import HistoryItemSummary


class HistoryItem(BaseModel):
    """One live operation instance in an item's history."""
    seq: int = Field(..., description="Stack position of the entry", example=3)
    operation: str = Field(..., description="Name of the processing operation", example="exposure")
    name: str = Field(..., description="Human readable name of the instance", example="exposure 1 (on)")
    enabled: bool = Field(..., description="Whether the operation is applied")

    @classmethod
    def from_entity(cls, item: HistoryItemSummary) -> HistoryItem:
        return cls(seq=item.seq, operation=item.operation, name=item.name, enabled=item.enabled)


class ListHistoryResponse(BaseModel):
    """Response model for listing the live history of an item, newest first."""
    item_id: int = Field(..., description="ID of the item")
    history: list[HistoryItem] = Field(..., description="List of history items")


class HistorySummaryResponse(BaseModel):
    """Full history of an item rendered as text."""
    item_id: int = Field(..., description="ID of the item")
    summary: str = Field(..., description="One line per entry, newest first", example="exposure (on)\nsharpen (off)")


class DeleteHistoryResponse(BaseModel):
    """Response model for history deletion."""
    ok: bool = Field(True, description="Indicates whether the deletion was successful")
    removed: int = Field(0, description="Number of history entries removed")


class PasteHistoryRequest(BaseModel):
    """Request model for copying history from one item onto others."""
    source_id: int = Field(..., description="ID of the item to copy history from", example=12)
    merge: bool = Field(False, description="Append onto the destination stack instead of replacing it")
    selection: list[int] | None = Field(
        None,
        description="Stack positions of the source entries to copy, everything when omitted",
        example=[0, 2, 3],
    )


class PasteHistoryResponse(BaseModel):
    """Response model for a paste onto a single item."""
    item_id: int = Field(..., description="ID of the destination item")
    entries_written: int = Field(..., description="Number of history entries pasted")


class LoadSidecarRequest(BaseModel):
    """Request model for loading a sidecar file into history."""
    path: str = Field(..., min_length=1, description="Path of the sidecar file on the server")
    history_only: bool = Field(False, description="Ignore non-history metadata of the sidecar")


class LoadSidecarResponse(BaseModel):
    item_id: int = Field(..., description="ID of the item")
    entries_loaded: int = Field(..., description="Number of history entries loaded")


class BatchResultResponse(BaseModel):
    """Outcome of a history operation applied to the selection."""
    ok: bool = Field(..., description="False when at least one item failed")
    processed: list[int] = Field(default_factory=list, description="Items processed successfully")
    failed: list[int] = Field(default_factory=list, description="Items that failed and were left unchanged")

    @classmethod
    def from_entity(cls, result: BatchResult) -> BatchResultResponse:
        return cls(ok=result.ok, processed=result.processed, failed=result.failed)


class SelectionRequest(BaseModel):
    item_ids: list[int] = Field(..., description="IDs of the items to select", example=[12, 13, 14])


class SelectionResponse(BaseModel):
    item_ids: list[int] = Field(..., description="IDs of the selected items")
