"""Run-level errors raised by the reconciliation engine."""

from __future__ import annotations


class SyncConfigurationError(Exception):
    """Settings are missing something a run needs; raised before any network call."""
