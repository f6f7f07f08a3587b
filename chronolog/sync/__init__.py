"""Sync engine: reference diff, entry normalizer and orchestrator."""

from chronolog.sync.diff import DiffResult, compute_diff
from chronolog.sync.migrate import migrate_entries

__all__ = ["DiffResult", "compute_diff", "migrate_entries"]
