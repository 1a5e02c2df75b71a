from __future__ import annotations

from dataclasses import dataclass

# multi_name value stored for instances the user never named
UNNAMED_LABEL = "0"


def is_unnamed(label: str | None) -> bool:
    return label is None or label.strip() in ("", UNNAMED_LABEL)


@dataclass(frozen=True)
class HistoryEntry:
    item_id: int
    seq: int  # stack position, contiguous from 0 after any write
    operation: str
    instance: int  # multi-priority, always 0 for single-instance operations
    instance_label: str = UNNAMED_LABEL
    enabled: bool = True
    params: bytes = b""
    blend_params: bytes = b""
    blend_version: int = 0
    module_version: int = 1

    @property
    def identity(self) -> tuple[str, int]:
        return (self.operation, self.instance)


@dataclass(frozen=True)
class StagingEntry:
    row: int  # provisional 1-based order inside one copy/paste call
    source_seq: int
    operation: str
    instance: int
    instance_label: str = UNNAMED_LABEL
    enabled: bool = True
    params: bytes = b""
    blend_params: bytes = b""
    blend_version: int = 0
    module_version: int = 1

    @property
    def identity(self) -> tuple[str, int]:
        return (self.operation, self.instance)

    @classmethod
    def from_history(cls, row: int, entry: HistoryEntry) -> StagingEntry:
        return cls(
            row=row,
            source_seq=entry.seq,
            operation=entry.operation,
            instance=entry.instance,
            instance_label=entry.instance_label,
            enabled=entry.enabled,
            params=entry.params,
            blend_params=entry.blend_params,
            blend_version=entry.blend_version,
            module_version=entry.module_version,
        )

    def to_history(self, item_id: int, seq: int) -> HistoryEntry:
        return HistoryEntry(
            item_id=item_id,
            seq=seq,
            operation=self.operation,
            instance=self.instance,
            instance_label=self.instance_label,
            enabled=self.enabled,
            params=self.params,
            blend_params=self.blend_params,
            blend_version=self.blend_version,
            module_version=self.module_version,
        )


@dataclass(frozen=True)
class HistoryItemSummary:
    """One human-readable row of an item's history listing."""

    seq: int
    operation: str
    name: str
    enabled: bool
