"""Reconciliation of incoming staged entries with a destination history.

Merging works as if the staged entries were appended to the destination
stack. It runs in two phases:

1. Every destination instance of an operation that is being copied is shifted
   past the highest staged instance of that operation, so the two ranges no
   longer collide.
2. Destination instances are walked in (operation, instance) order. An
   instance whose label matches a staged instance takes over that staged
   instance number, so the appended entry supersedes it. Any other instance
   is pushed to the next free number after all staged instances.

Single-instance operations are never renumbered: the appended entry simply
becomes the last one for instance 0.

The result is a ``MergePlan``. Its steps must be applied in order; applied
that way no step ever writes an instance number still held by a family that
has not been processed yet.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable

from src.domain.entities.history_entry import HistoryEntry, StagingEntry, is_unnamed
from src.domain.services.operation_catalog import OperationCatalog


@dataclass(frozen=True)
class InstanceShift:
    operation: str
    offset: int


@dataclass(frozen=True)
class InstanceUpdate:
    operation: str
    from_instance: int
    to_instance: int
    matched_row: int | None = None  # staged row superseding this instance, if any


@dataclass
class MergePlan:
    shifts: list[InstanceShift] = field(default_factory=list)
    updates: list[InstanceUpdate] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.shifts and not self.updates

    def apply(self, entries: Iterable[HistoryEntry]) -> list[HistoryEntry]:
        """Evaluate the plan against in-memory entries of one item."""
        out = list(entries)
        for shift in self.shifts:
            out = [
                replace(e, instance=e.instance + shift.offset) if e.operation == shift.operation else e
                for e in out
            ]
        for update in self.updates:
            out = [
                replace(e, instance=update.to_instance)
                if e.operation == update.operation and e.instance == update.from_instance
                else e
                for e in out
            ]
        return out


@dataclass
class _StagedInstance:
    instance: int
    label: str
    row: int
    consumed: bool = False


def _staged_instances(
    staging: list[StagingEntry], catalog: OperationCatalog
) -> dict[str, list[_StagedInstance]]:
    """Staged multi-instance operations, each with its instances in first-seen row order."""
    by_op: dict[str, dict[int, _StagedInstance]] = {}
    for entry in sorted(staging, key=lambda e: e.row):
        if catalog.is_single_instance(entry.operation):
            continue
        instances = by_op.setdefault(entry.operation, {})
        staged = instances.get(entry.instance)
        if staged is None:
            instances[entry.instance] = _StagedInstance(entry.instance, entry.instance_label, entry.row)
        else:
            # later rows carry the current label of that instance
            staged.label = entry.instance_label
    return {op: list(instances.values()) for op, instances in by_op.items()}


def _find_match(candidates: list[_StagedInstance], label: str) -> _StagedInstance | None:
    for staged in candidates:
        if staged.consumed:
            continue
        if is_unnamed(label):
            if is_unnamed(staged.label):
                return staged
        elif staged.label == label:
            return staged
    return None


def _live_families(entries: list[HistoryEntry], operation: str) -> list[HistoryEntry]:
    """Most recent entry of each destination instance of ``operation``, by instance."""
    last: dict[int, HistoryEntry] = {}
    for entry in sorted(entries, key=lambda e: e.seq):
        if entry.operation == operation:
            last[entry.instance] = entry
    return [last[instance] for instance in sorted(last)]


def plan_merge(
    destination: list[HistoryEntry],
    staging: list[StagingEntry],
    catalog: OperationCatalog,
) -> MergePlan:
    """
    Plan how destination instances are renumbered before ``staging`` is appended.

    ``staging`` must already be normalized. Only operations present in the
    staging set are touched.
    """
    staged = _staged_instances(staging, catalog)
    plan = MergePlan()
    if not staged:
        return plan

    highest = {op: max(s.instance for s in instances) for op, instances in staged.items()}

    # phase A: make room for the incoming instances
    for operation in sorted(highest):
        plan.shifts.append(InstanceShift(operation, highest[operation] + 1))
    shifted = plan.apply(e for e in destination if e.operation in highest)

    # phase B: reconcile by label, push the rest after the incoming instances
    for operation in sorted(highest):
        next_free = highest[operation]
        for family in _live_families(shifted, operation):
            match = _find_match(staged[operation], family.instance_label)
            if match is not None:
                match.consumed = True
                target, row = match.instance, match.row
            else:
                next_free += 1
                target, row = next_free, None
            if target != family.instance:
                plan.updates.append(InstanceUpdate(operation, family.instance, target, row))
    return plan
