from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MaskForm:
    """A mask/shape row attached to an item. Geometry is opaque and copied verbatim."""

    form_id: int
    form_type: int
    name: str
    version: int
    points: bytes = b""
    points_count: int = 0
    source: bytes = b""
