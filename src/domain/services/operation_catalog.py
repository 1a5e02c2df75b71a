"""Read-only catalog of known processing operations.

The catalog answers two questions for the history engine: whether an
operation may only exist once on an item, and how to display its name.
Unknown operations are treated as multi-instance and displayed by their
raw name.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping


@dataclass(frozen=True)
class OperationInfo:
    name: str
    single_instance: bool = False
    display_name: str | None = None


# Operations shipped with the service
DEFAULT_OPERATIONS: tuple[OperationInfo, ...] = (
    OperationInfo("rawprepare", single_instance=True, display_name="raw black/white point"),
    OperationInfo("demosaic", single_instance=True, display_name="demosaic"),
    OperationInfo("temperature", single_instance=True, display_name="white balance"),
    OperationInfo("highlights", single_instance=True, display_name="highlight reconstruction"),
    OperationInfo("lens", single_instance=True, display_name="lens correction"),
    OperationInfo("flip", single_instance=True, display_name="orientation"),
    OperationInfo("clipping", single_instance=True, display_name="crop and rotate"),
    OperationInfo("exposure", display_name="exposure"),
    OperationInfo("colorin", single_instance=True, display_name="input color profile"),
    OperationInfo("colorout", single_instance=True, display_name="output color profile"),
    OperationInfo("basecurve", display_name="base curve"),
    OperationInfo("tonecurve", display_name="tone curve"),
    OperationInfo("colorbalance", display_name="color balance"),
    OperationInfo("sharpen", display_name="sharpen"),
    OperationInfo("bilateral", display_name="surface blur"),
    OperationInfo("blurs", display_name="blurs"),
    OperationInfo("vignette", display_name="vignetting"),
    OperationInfo("watermark", display_name="watermark"),
    OperationInfo("spots", single_instance=True, display_name="spot removal"),
    OperationInfo("gamma", single_instance=True, display_name="display encoding"),
)


class OperationCatalog:
    def __init__(self, operations: Mapping[str, OperationInfo] | None = None) -> None:
        self._operations: dict[str, OperationInfo] = dict(operations or {})

    @classmethod
    def default(cls) -> OperationCatalog:
        return cls({op.name: op for op in DEFAULT_OPERATIONS})

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> OperationCatalog:
        """Build a catalog from ``{"operations": {name: {"single_instance": .., "display_name": ..}}}``."""
        ops: dict[str, OperationInfo] = {}
        for name, meta in (data.get("operations") or {}).items():
            meta = meta or {}
            ops[name] = OperationInfo(
                name=name,
                single_instance=bool(meta.get("single_instance", False)),
                display_name=meta.get("display_name"),
            )
        return cls(ops)

    @classmethod
    def from_file(cls, path: str | Path) -> OperationCatalog:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_mapping(data)

    def is_single_instance(self, operation: str) -> bool:
        info = self._operations.get(operation)
        return bool(info and info.single_instance)

    def display_name(self, operation: str) -> str:
        info = self._operations.get(operation)
        if info is None or not info.display_name:
            return operation
        return info.display_name


def load_operation_catalog() -> OperationCatalog:
    path = os.getenv("OPERATION_CATALOG_PATH")
    if path:
        return OperationCatalog.from_file(path)
    return OperationCatalog.default()
