"""Per-document synchronisation and batch orchestration."""

from __future__ import annotations

from .batch import (
    SYNC_CHUNK_CALLBACK,
    SYNC_ITEM_CALLBACK,
    BatchOrchestrator,
    BatchStateMachine,
)
from .manager import SyncManager, validate_source_id

__all__ = [
    "SYNC_CHUNK_CALLBACK",
    "SYNC_ITEM_CALLBACK",
    "BatchOrchestrator",
    "BatchStateMachine",
    "SyncManager",
    "validate_source_id",
]
