"""Errors raised by the history copy/paste engine."""
from __future__ import annotations


class HistoryError(Exception):
    """Base class for history stack failures."""


class InvalidOperation(HistoryError, ValueError):
    """Self-copy, or a batch call with no destination selected."""


class NoSourceHistory(HistoryError, LookupError):
    """Nothing to copy: no source item, or an empty source selection."""


class SidecarParseError(HistoryError, ValueError):
    """The external sidecar file could not be read or parsed."""


class StoreError(HistoryError, RuntimeError):
    """The underlying store failed; the surrounding transaction is rolled back."""
