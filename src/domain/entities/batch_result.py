from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class BatchResult:
    """Outcome of applying one history operation to several items."""

    processed: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed
