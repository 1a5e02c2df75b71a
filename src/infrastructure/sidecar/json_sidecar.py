"""JSON sidecar files mirroring an item's history.

A sidecar holds the full history stack, the mask rows and the active length
of one item so it can be restored or shared outside the database. Binary
payloads are stored base64-encoded.
"""
from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from src.domain.entities.history_entry import UNNAMED_LABEL, HistoryEntry
from src.domain.entities.mask import MaskForm
from src.domain.errors import SidecarParseError

SIDECAR_VERSION = 1


class SidecarHistoryEntry(BaseModel):
    operation: str = Field(..., min_length=1, description="Operation name")
    instance: int = Field(0, ge=0, description="Multi-instance priority")
    instance_label: str = Field(UNNAMED_LABEL, description="User given instance name, '0' when unnamed")
    enabled: bool = Field(True, description="Whether the operation is applied")
    params: str = Field("", description="Base64 encoded operation parameters")
    blend_params: str = Field("", description="Base64 encoded blend parameters")
    blend_version: int = Field(0, ge=0)
    module_version: int = Field(1, ge=0)


class SidecarMask(BaseModel):
    form_id: int
    form_type: int
    name: str = ""
    version: int = 0
    points: str = Field("", description="Base64 encoded shape points")
    points_count: int = Field(0, ge=0)
    source: str = Field("", description="Base64 encoded shape source")


class SidecarFile(BaseModel):
    version: int = Field(SIDECAR_VERSION, description="Sidecar format version")
    item_id: int | None = None
    history_end: int | None = Field(None, ge=0, description="Active length of the stack")
    history: list[SidecarHistoryEntry] = Field(default_factory=list)
    masks: list[SidecarMask] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict, description="Non-history item metadata")


@dataclass
class SidecarDocument:
    """Decoded sidecar content, not yet bound to a destination item."""

    entries: list[HistoryEntry]
    masks: list[MaskForm]
    history_end: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def _decode(value: str) -> bytes:
    return base64.b64decode(value.encode("ascii"), validate=True) if value else b""


def _encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


class JsonSidecar:
    """Reads and writes ``<item_id>.json`` sidecars."""

    def __init__(self, directory: str | Path | None = None) -> None:
        directory = directory if directory is not None else os.getenv("SIDECAR_DIR")
        self.directory = Path(directory) if directory else None

    def path_for(self, item_id: int) -> Path | None:
        if self.directory is None:
            return None
        return self.directory / f"{item_id}.json"

    def read(self, path: str | Path, item_id: int = 0) -> SidecarDocument:
        """
        Parse a sidecar file.

        Entries are renumbered from 0 in file order and bound to ``item_id``.

        Raises:
            SidecarParseError: if the file is missing, not JSON, or invalid.
        """
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise SidecarParseError(f"Cannot read sidecar {path}: {exc}") from exc
        try:
            doc = SidecarFile.model_validate_json(raw)
        except ValidationError as exc:
            raise SidecarParseError(f"Invalid sidecar {path}: {exc}") from exc
        if doc.version > SIDECAR_VERSION:
            raise SidecarParseError(f"Unsupported sidecar version {doc.version} in {path}")

        try:
            entries = [
                HistoryEntry(
                    item_id=item_id,
                    seq=seq,
                    operation=h.operation,
                    instance=h.instance,
                    instance_label=h.instance_label,
                    enabled=h.enabled,
                    params=_decode(h.params),
                    blend_params=_decode(h.blend_params),
                    blend_version=h.blend_version,
                    module_version=h.module_version,
                )
                for seq, h in enumerate(doc.history)
            ]
            masks = [
                MaskForm(
                    form_id=m.form_id,
                    form_type=m.form_type,
                    name=m.name,
                    version=m.version,
                    points=_decode(m.points),
                    points_count=m.points_count,
                    source=_decode(m.source),
                )
                for m in doc.masks
            ]
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise SidecarParseError(f"Invalid binary payload in sidecar {path}: {exc}") from exc

        history_end = doc.history_end
        if history_end is not None:
            history_end = min(history_end, len(entries))
        return SidecarDocument(entries=entries, masks=masks, history_end=history_end, metadata=doc.metadata)

    def write(
        self,
        path: str | Path,
        item_id: int,
        entries: list[HistoryEntry],
        masks: list[MaskForm],
        history_end: int | None,
    ) -> Path:
        doc = SidecarFile(
            item_id=item_id,
            history_end=history_end,
            history=[
                SidecarHistoryEntry(
                    operation=e.operation,
                    instance=e.instance,
                    instance_label=e.instance_label,
                    enabled=e.enabled,
                    params=_encode(e.params),
                    blend_params=_encode(e.blend_params),
                    blend_version=e.blend_version,
                    module_version=e.module_version,
                )
                for e in sorted(entries, key=lambda e: e.seq)
            ],
            masks=[
                SidecarMask(
                    form_id=m.form_id,
                    form_type=m.form_type,
                    name=m.name,
                    version=m.version,
                    points=_encode(m.points),
                    points_count=m.points_count,
                    source=_encode(m.source),
                )
                for m in masks
            ],
        )
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_suffix(target.suffix + ".tmp")
        tmp.write_text(doc.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(target)
        return target
