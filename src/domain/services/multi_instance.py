"""Repair of multi-instance numbering inside a staging set.

Letting the user pick which history entries to copy can leave gaps, e.g. when
the second of three instances of an operation is not copied. Every
multi-instance operation must end up numbered 0, 1, 2, ... with no gap, so
the staged instances of each operation are renumbered in ascending order.
"""
from __future__ import annotations

from dataclasses import replace
from itertools import groupby

from src.domain.entities.history_entry import StagingEntry
from src.domain.services.operation_catalog import OperationCatalog


def instance_mapping(
    staging: list[StagingEntry], catalog: OperationCatalog
) -> dict[tuple[str, int], int]:
    """Return ``{(operation, old_instance): new_instance}`` for instances that must move."""
    identities = sorted({entry.identity for entry in staging})
    mapping: dict[tuple[str, int], int] = {}
    for operation, group in groupby(identities, key=lambda identity: identity[0]):
        # single-instance operations keep their instance untouched
        if catalog.is_single_instance(operation):
            continue
        for new_instance, (_, old_instance) in enumerate(group):
            if old_instance != new_instance:
                mapping[(operation, old_instance)] = new_instance
    return mapping


def normalize_instances(
    staging: list[StagingEntry], catalog: OperationCatalog
) -> list[StagingEntry]:
    """
    Renumber staged instances so each operation uses ``0..k-1``.

    Rows sharing an (operation, instance) pair keep sharing it. When nothing
    has to move, the given list is returned as is.
    """
    mapping = instance_mapping(staging, catalog)
    if not mapping:
        return staging
    return [
        replace(entry, instance=mapping[entry.identity]) if entry.identity in mapping else entry
        for entry in staging
    ]
